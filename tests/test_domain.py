"""Tests for domain.py: AT-URIs, reply contexts and profile merging."""

from types import SimpleNamespace

import pytest
from atproto import models

from domain import PostRef, merge_profile, parse_at_uri, post_url, reply_context_for
from errors import ToolInputError


class TestParseAtUri:
    """Tests for AT-URI parsing."""

    def test_valid_uri(self):
        """A valid AT-URI should split into repo, collection and rkey."""
        assert parse_at_uri("at://did:plc:abc/app.bsky.feed.post/3kx") == (
            "did:plc:abc",
            "app.bsky.feed.post",
            "3kx",
        )

    @pytest.mark.parametrize(
        "uri",
        ["", "https://bsky.app/profile/x/post/y", "at://did:plc:abc", "at://did:plc:abc/app.bsky.feed.post/"],
    )
    def test_invalid_uri(self, uri):
        """Malformed AT-URIs should raise ToolInputError."""
        with pytest.raises(ToolInputError):
            parse_at_uri(uri)

    def test_post_url(self):
        """A post uri should map to its bsky.app url."""
        url = post_url("alice.bsky.social", "at://did:plc:abc/app.bsky.feed.post/3kx")
        assert url == "https://bsky.app/profile/alice.bsky.social/post/3kx"


class TestReplyContext:
    """Root inference for replies."""

    def test_top_level_parent_is_root(self):
        """A top-level parent should be its own root."""
        parent = PostRef(uri="at://did:plc:a/app.bsky.feed.post/1", cid="c1")
        context = reply_context_for(parent, SimpleNamespace(reply=None))
        assert context.root == parent
        assert context.parent == parent

    def test_reply_parent_reuses_its_root(self):
        """A parent that is a reply should pass on its root."""
        parent = PostRef(uri="at://did:plc:a/app.bsky.feed.post/2", cid="c2")
        root = SimpleNamespace(uri="at://did:plc:a/app.bsky.feed.post/1", cid="c1")
        context = reply_context_for(parent, SimpleNamespace(reply=SimpleNamespace(root=root, parent=root)))
        assert context.root == PostRef(uri=root.uri, cid=root.cid)
        assert context.parent == parent

    def test_reply_ref_model(self):
        """The reply context should convert to the SDK ReplyRef model."""
        parent = PostRef(uri="at://did:plc:a/app.bsky.feed.post/1", cid="c1")
        ref = reply_context_for(parent, SimpleNamespace(reply=None)).to_reply_ref()
        assert isinstance(ref, models.AppBskyFeedPost.ReplyRef)
        assert ref.root.cid == "c1"


class TestMergeProfile:
    """Only given fields change."""

    def test_none_leaves_fields_untouched(self):
        """Fields given as None should keep their existing values."""
        existing = models.AppBskyActorProfile.Record(display_name="Name", description="Bio")
        merged = merge_profile(existing, description="New bio")
        assert merged.display_name == "Name"
        assert merged.description == "New bio"
        assert existing.description == "Bio"

    def test_no_existing_profile(self):
        """Merging onto no profile should start a new record."""
        merged = merge_profile(None, display_name="Fresh")
        assert merged.display_name == "Fresh"
        assert merged.description is None

    def test_empty_string_clears_field(self):
        """An empty string should clear a field."""
        existing = models.AppBskyActorProfile.Record(display_name="Name", description="Bio")
        merged = merge_profile(existing, description="")
        assert merged.description == ""
        assert merged.display_name == "Name"
