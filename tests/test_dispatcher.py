"""Tests for dispatcher.py: routing, validation and error results."""

import json
from types import SimpleNamespace

import httpx
import pytest
from pydantic import BaseModel

from conftest import OTHER_DID, TEST_DID, make_upstream_exception, png_base64, post_uri
from dispatcher import Dispatcher
from errors import ConfigurationError
from tools import REGISTRY
from tools.registry import ToolDescriptor


# Smallest valid arguments for every tool.
MINIMAL_ARGUMENTS = {
    "post": {"text": "hello @alice.bsky.social #python https://example.com"},
    "reply": {"uri": post_uri("p1", OTHER_DID), "cid": "cid-p1", "text": "hi"},
    "create_thread": {"posts": ["one", "two"]},
    "quote_post": {"uri": post_uri("p1", OTHER_DID), "cid": "cid-p1", "text": "look at this"},
    "delete_post": {"uri": post_uri("post1")},
    "get_timeline": {},
    "get_author_feed": {"handle": "alice.bsky.social"},
    "get_post_thread": {"uri": post_uri("root", OTHER_DID)},
    "search_posts": {"query": "python"},
    "search_users": {"query": "alice"},
    "like_post": {"uri": post_uri("p1", OTHER_DID), "cid": "cid-p1"},
    "unlike_post": {"like_uri": f"at://{TEST_DID}/app.bsky.feed.like/l1"},
    "repost": {"uri": post_uri("p1", OTHER_DID), "cid": "cid-p1"},
    "delete_repost": {"repost_uri": f"at://{TEST_DID}/app.bsky.feed.repost/r1"},
    "follow": {"actor": "alice.bsky.social"},
    "unfollow": {"follow_uri": f"at://{TEST_DID}/app.bsky.graph.follow/f1"},
    "get_post_likes": {"uri": post_uri("p1", OTHER_DID)},
    "get_post_reposts": {"uri": post_uri("p1", OTHER_DID)},
    "get_followers": {},
    "get_following": {},
    "get_profile": {},
    "update_profile": {"displayName": "New Name"},
    "update_avatar": {"image": {"data": png_base64()}},
    "create_list": {"name": "Friends"},
    "add_to_list": {"list_uri": f"at://{TEST_DID}/app.bsky.graph.list/l1", "subject": "alice.bsky.social"},
    "remove_from_list": {"listitem_uri": f"at://{TEST_DID}/app.bsky.graph.listitem/i1"},
    "get_lists": {},
}


def _text(result) -> str:
    assert len(result.content) == 1
    return result.content[0].text


class _NoArgs(BaseModel):
    pass


def _registry_with(handler) -> dict:
    return {"custom_tool": ToolDescriptor(name="custom_tool", description="Custom tool", input_model=_NoArgs, handler=handler)}


class TestListTools:
    """Tests for the published tool list."""

    def test_every_registered_tool_is_listed(self, dispatcher):
        """Every registered tool should be listed in registry order."""
        names = [tool.name for tool in dispatcher.list_tools()]
        assert names == list(REGISTRY)

    def test_minimal_arguments_cover_every_tool(self):
        """The success fixtures should cover every registered tool."""
        assert set(MINIMAL_ARGUMENTS) == set(REGISTRY)

    def test_tools_carry_object_schemas(self, dispatcher):
        """Every listed tool should have a description and an object schema."""
        for tool in dispatcher.list_tools():
            assert tool.inputSchema["type"] == "object"
            assert tool.description

    def test_read_only_tools_are_annotated(self, dispatcher):
        """Read-only and destructive hints should be set on the listed tools."""
        tools = {tool.name: tool for tool in dispatcher.list_tools()}
        assert tools["get_timeline"].annotations.readOnlyHint is True
        assert tools["delete_post"].annotations.destructiveHint is True
        assert tools["post"].annotations.readOnlyHint is False


class TestDispatchSuccess:
    """Every tool succeeds with its minimal arguments."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", sorted(MINIMAL_ARGUMENTS))
    async def test_tool_succeeds(self, dispatcher, name):
        """Each tool should return a JSON payload with a message."""
        result = await dispatcher.dispatch(name, MINIMAL_ARGUMENTS[name])
        assert result.isError is False, _text(result)
        payload = json.loads(_text(result))
        assert isinstance(payload, dict)
        assert "message" in payload

    @pytest.mark.asyncio
    async def test_post_result_has_url(self, dispatcher):
        """A post result should include the uri and the bsky.app url."""
        result = await dispatcher.dispatch("post", {"text": "hello"})
        payload = json.loads(_text(result))
        assert payload["success"] is True
        assert payload["uri"] == post_uri("post1")
        assert payload["url"] == "https://bsky.app/profile/tester.bsky.social/post/post1"
        assert payload["url"] in payload["message"]

    @pytest.mark.asyncio
    async def test_arguments_default_to_empty(self, dispatcher):
        """Missing arguments should be treated as an empty object."""
        result = await dispatcher.dispatch("get_timeline", None)
        assert result.isError is False

    @pytest.mark.asyncio
    async def test_create_thread_returns_every_post(self, dispatcher):
        """A thread result should list every post in order."""
        result = await dispatcher.dispatch("create_thread", {"posts": ["a", "b", "c"]})
        payload = json.loads(_text(result))
        assert payload["count"] == 3
        assert [post["uri"] for post in payload["thread"]] == [post_uri(f"post{n}") for n in (1, 2, 3)]
        assert payload["first_post_url"].endswith("/post/post1")


class TestDispatchErrors:
    """Failures become isError results instead of exceptions."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher):
        """An unknown tool name should return an error result."""
        result = await dispatcher.dispatch("no_such_tool", {})
        assert result.isError is True
        assert _text(result) == "Unknown tool: no_such_tool"

    @pytest.mark.asyncio
    async def test_validation_error(self, dispatcher, atproto_client):
        """Invalid arguments should return an error without calling upstream."""
        result = await dispatcher.dispatch("post", {"text": "x" * 301})
        assert result.isError is True
        assert _text(result).startswith("Error executing post: Invalid arguments")
        assert "text" in _text(result)
        atproto_client.send_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, dispatcher):
        """A missing required argument should be named in the error."""
        result = await dispatcher.dispatch("like_post", {"uri": post_uri("p1")})
        assert result.isError is True
        assert "cid" in _text(result)

    @pytest.mark.asyncio
    async def test_extra_argument_rejected(self, dispatcher):
        """An unexpected argument should be named in the error."""
        result = await dispatcher.dispatch("get_timeline", {"limit": 5, "cursor": "abc"})
        assert result.isError is True
        assert "cursor" in _text(result)

    @pytest.mark.asyncio
    async def test_upstream_error(self, dispatcher, atproto_client):
        """Upstream failures should return the actionable message and detail."""
        atproto_client.get_timeline.side_effect = make_upstream_exception(429, "RateLimitExceeded", "slow down")
        result = await dispatcher.dispatch("get_timeline", {})
        assert result.isError is True
        text = _text(result)
        assert text.startswith("Error executing get_timeline:")
        assert "Rate limited" in text
        assert "slow down" in text

    @pytest.mark.asyncio
    async def test_handler_precondition_error(self, dispatcher, atproto_client):
        """A wrong record type should be reported before calling upstream."""
        result = await dispatcher.dispatch("unlike_post", {"like_uri": post_uri("p1")})
        assert result.isError is True
        assert "app.bsky.feed.like" in _text(result)
        atproto_client.unlike.assert_not_called()

    @pytest.mark.asyncio
    async def test_thread_partial_failure_lists_created_posts(self, dispatcher, atproto_client):
        """A failed thread should append the published posts as JSON details."""
        atproto_client.send_post.side_effect = [
            SimpleNamespace(uri=post_uri("first"), cid="cid-first"),
            make_upstream_exception(500, "InternalServerError", "boom"),
        ]
        result = await dispatcher.dispatch("create_thread", {"posts": ["one", "two", "three"]})
        assert result.isError is True
        text = _text(result)
        assert "post 2 of 3" in text
        details = json.loads(text[text.index("\n") + 1:])
        assert details["count"] == 1
        assert details["created"][0]["uri"] == post_uri("first")

    @pytest.mark.asyncio
    async def test_thread_dropped_connection_lists_created_posts(self, dispatcher, atproto_client):
        """A dropped connection mid-thread should still list the published posts."""
        atproto_client.send_post.side_effect = [
            SimpleNamespace(uri=post_uri("a"), cid="cid-a"),
            httpx.RemoteProtocolError("Server disconnected without sending a response."),
        ]
        result = await dispatcher.dispatch("create_thread", {"posts": ["one", "two", "three"]})
        assert result.isError is True
        text = _text(result)
        assert "post 2 of 3" in text
        assert "at://did:plc:tester123/app.bsky.feed.post/a" in text

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_result(self, bluesky):
        """An unexpected exception should become an error result."""
        async def explode(params, client):
            raise RuntimeError("kaboom")

        result = await Dispatcher(bluesky, registry=_registry_with(explode)).dispatch("custom_tool", {})
        assert result.isError is True
        assert _text(result) == "Error executing custom_tool: kaboom"

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, bluesky):
        """A configuration error should propagate out of dispatch."""
        async def misconfigured(params, client):
            raise ConfigurationError("no credentials")

        with pytest.raises(ConfigurationError):
            await Dispatcher(bluesky, registry=_registry_with(misconfigured)).dispatch("custom_tool", {})
