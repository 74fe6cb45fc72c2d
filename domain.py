"""
Request-scoped domain types shared by the adapter, shaper and tool handlers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from atproto import models

from errors import ToolInputError

BSKY_APP_URL = "https://bsky.app"

POST_COLLECTION = "app.bsky.feed.post"
LIKE_COLLECTION = "app.bsky.feed.like"
REPOST_COLLECTION = "app.bsky.feed.repost"
FOLLOW_COLLECTION = "app.bsky.graph.follow"
LIST_COLLECTION = "app.bsky.graph.list"
LISTITEM_COLLECTION = "app.bsky.graph.listitem"
PROFILE_COLLECTION = "app.bsky.actor.profile"


@dataclass(frozen=True)
class PostRef:
    """A uri/cid pair pinning one revision of a record."""

    uri: str
    cid: str

    def to_strong_ref(self) -> models.ComAtprotoRepoStrongRef.Main:
        return models.ComAtprotoRepoStrongRef.Main(uri=self.uri, cid=self.cid)


@dataclass(frozen=True)
class ReplyContext:
    root: PostRef
    parent: PostRef

    def to_reply_ref(self) -> models.AppBskyFeedPost.ReplyRef:
        return models.AppBskyFeedPost.ReplyRef(
            root=self.root.to_strong_ref(),
            parent=self.parent.to_strong_ref(),
        )


@dataclass(frozen=True)
class PostResult:
    uri: str
    cid: str
    url: str

    @property
    def ref(self) -> PostRef:
        return PostRef(uri=self.uri, cid=self.cid)

    def as_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "cid": self.cid, "url": self.url}


def parse_at_uri(uri: str) -> Tuple[str, str, str]:
    """
    Split an at:// URI into its parts:
      at://did:plc:XXXX/app.bsky.feed.post/3m4abc -> (repo, collection, rkey)
    """
    if not uri or not uri.startswith("at://"):
        raise ToolInputError(f"Not an at:// uri: {uri}")
    parts = uri[len("at://"):].split("/")
    if len(parts) < 3 or not all(parts):
        raise ToolInputError(f"Malformed at:// uri: {uri}")
    repo = parts[0]
    collection = "/".join(parts[1:-1])
    rkey = parts[-1]
    return repo, collection, rkey


def post_url(handle: str, uri: str) -> str:
    """Public web URL for a post record."""
    _, _, rkey = parse_at_uri(uri)
    return f"{BSKY_APP_URL}/profile/{handle}/post/{rkey}"


def reply_context_for(parent: PostRef, parent_record: Any) -> ReplyContext:
    """
    Build the reply context for a new post under ``parent``.

    When the parent is itself a reply its own root is reused, which keeps the
    whole conversation rooted at the original top-level post.
    """
    parent_reply = getattr(parent_record, "reply", None)
    if parent_reply is not None:
        root = PostRef(uri=parent_reply.root.uri, cid=parent_reply.root.cid)
    else:
        root = parent
    return ReplyContext(root=root, parent=parent)


def merge_profile(
    existing: Optional[models.AppBskyActorProfile.Record],
    *,
    display_name: Optional[str] = None,
    description: Optional[str] = None,
    avatar: Any = None,
) -> models.AppBskyActorProfile.Record:
    """
    Return ``existing`` with only the given fields replaced.

    ``None`` leaves a field untouched; every other field of the stored
    profile (banner, labels, pinned post, ...) is carried over as is.
    """
    overrides: Dict[str, Any] = {}
    if display_name is not None:
        overrides["display_name"] = display_name
    if description is not None:
        overrides["description"] = description
    if avatar is not None:
        overrides["avatar"] = avatar

    if existing is None:
        return models.AppBskyActorProfile.Record(**overrides)
    return existing.model_copy(update=overrides)
