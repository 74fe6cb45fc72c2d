"""Shared pytest fixtures for Bluesky MCP Server tests."""

import base64
import io
import itertools
import json
from types import SimpleNamespace
from typing import Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
from atproto_client.models.blob_ref import BlobRef
from PIL import Image

from bluesky_client import BlueskyClient, BlueskyConfig
from dispatcher import Dispatcher

TEST_HANDLE = "tester.bsky.social"
TEST_DID = "did:plc:tester123"
OTHER_DID = "did:plc:other456"


# ---------------------------------------------------------------------------
# Environment fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_env(monkeypatch):
    """Remove Bluesky-related env vars for a clean test environment."""
    monkeypatch.delenv("BLUESKY_HANDLE", raising=False)
    monkeypatch.delenv("BLUESKY_APP_PASSWORD", raising=False)
    monkeypatch.delenv("BLUESKY_SERVICE", raising=False)
    monkeypatch.delenv("BLUESKY_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def env_with_credentials(monkeypatch):
    """Set up environment with a handle and app password."""
    monkeypatch.setenv("BLUESKY_HANDLE", TEST_HANDLE)
    monkeypatch.setenv("BLUESKY_APP_PASSWORD", "abcd-efgh-ijkl-mnop")


@pytest.fixture
def mock_credentials() -> Dict[str, str]:
    """Return mock credentials dict."""
    return {"handle": TEST_HANDLE, "app_password": "abcd-efgh-ijkl-mnop"}


@pytest.fixture
def credentials_file(tmp_path, mock_credentials):
    """Create a temporary credentials.json file."""
    creds_path = tmp_path / "credentials.json"
    creds_path.write_text(json.dumps(mock_credentials))
    return str(creds_path)


# ---------------------------------------------------------------------------
# View builders (shapes returned by the atproto SDK)
# ---------------------------------------------------------------------------


def post_uri(rkey: str, did: str = TEST_DID) -> str:
    return f"at://{did}/app.bsky.feed.post/{rkey}"


def make_author(handle: str = "alice.bsky.social", did: str = OTHER_DID, display_name: str = "Alice"):
    return SimpleNamespace(did=did, handle=handle, display_name=display_name, avatar=None)


def make_post_view(rkey: str, text: str = "hello", author=None, likes: int = 0):
    author = author or make_author()
    return SimpleNamespace(
        uri=post_uri(rkey, author.did),
        cid=f"cid-{rkey}",
        author=author,
        record=SimpleNamespace(text=text),
        reply_count=0,
        repost_count=0,
        like_count=likes,
        indexed_at="2025-01-15T12:00:00Z",
    )


def make_thread_node(post, replies=None):
    return SimpleNamespace(post=post, replies=replies or [])


def make_not_found_node():
    return SimpleNamespace(uri=post_uri("gone"), not_found=True)


def make_blob(size: int = 100, mime_type: str = "image/png") -> BlobRef:
    return BlobRef(mime_type=mime_type, size=size, ref="bafkreibbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb")


def png_bytes(width: int = 4, height: int = 2) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def png_base64(width: int = 4, height: int = 2) -> str:
    return base64.b64encode(png_bytes(width, height)).decode()


# ---------------------------------------------------------------------------
# Fake atproto client
# ---------------------------------------------------------------------------


def _sequential(collection: str, prefix: str):
    counter = itertools.count(1)

    async def create(*args, **kwargs):
        n = next(counter)
        return SimpleNamespace(uri=f"at://{TEST_DID}/{collection}/{prefix}{n}", cid=f"bafy{prefix}{n}")

    return create


def _created_records():
    counter = itertools.count(1)

    async def create_record(data):
        n = next(counter)
        return SimpleNamespace(uri=f"at://{TEST_DID}/{data['collection']}/rec{n}", cid=f"bafyrec{n}")

    return create_record


def make_atproto_client() -> MagicMock:
    """MagicMock standing in for atproto.AsyncClient with awaitable endpoints."""
    api = MagicMock()
    api.login = AsyncMock(return_value=SimpleNamespace(did=TEST_DID, handle=TEST_HANDLE))

    api.send_post = AsyncMock(side_effect=_sequential("app.bsky.feed.post", "post"))
    api.delete_post = AsyncMock(return_value=True)
    api.upload_blob = AsyncMock(return_value=SimpleNamespace(blob=make_blob()))
    api.app.bsky.feed.post.get = AsyncMock(
        return_value=SimpleNamespace(value=SimpleNamespace(text="parent", reply=None), cid="cid-parent")
    )

    api.like = AsyncMock(side_effect=_sequential("app.bsky.feed.like", "like"))
    api.unlike = AsyncMock(return_value=True)
    api.repost = AsyncMock(side_effect=_sequential("app.bsky.feed.repost", "repost"))
    api.unrepost = AsyncMock(return_value=True)
    api.follow = AsyncMock(side_effect=_sequential("app.bsky.graph.follow", "follow"))
    api.unfollow = AsyncMock(return_value=True)

    api.get_timeline = AsyncMock(
        return_value=SimpleNamespace(feed=[SimpleNamespace(post=make_post_view("t1", "first"))])
    )
    api.get_author_feed = AsyncMock(
        return_value=SimpleNamespace(feed=[SimpleNamespace(post=make_post_view("a1", "mine"))])
    )
    api.get_post_thread = AsyncMock(
        return_value=SimpleNamespace(
            thread=make_thread_node(make_post_view("root"), [make_thread_node(make_post_view("r1"))])
        )
    )
    api.app.bsky.feed.search_posts = AsyncMock(
        return_value=SimpleNamespace(posts=[make_post_view("s1", "python tips")])
    )
    api.app.bsky.actor.search_actors = AsyncMock(return_value=SimpleNamespace(actors=[make_author()]))

    api.get_likes = AsyncMock(
        return_value=SimpleNamespace(likes=[SimpleNamespace(actor=make_author(), indexed_at="2025-01-15T12:00:00Z")])
    )
    api.get_reposted_by = AsyncMock(return_value=SimpleNamespace(reposted_by=[make_author()]))
    api.get_followers = AsyncMock(return_value=SimpleNamespace(followers=[make_author()]))
    api.get_follows = AsyncMock(return_value=SimpleNamespace(follows=[make_author()]))

    api.get_profile = AsyncMock(
        return_value=SimpleNamespace(
            did=TEST_DID,
            handle=TEST_HANDLE,
            display_name="Tester",
            avatar=None,
            description="bio",
            followers_count=3,
            follows_count=4,
            posts_count=5,
        )
    )
    api.app.bsky.actor.profile.get = AsyncMock(
        return_value=SimpleNamespace(value=None, cid="cid-profile")
    )
    api.com.atproto.repo.put_record = AsyncMock(
        return_value=SimpleNamespace(uri=f"at://{TEST_DID}/app.bsky.actor.profile/self", cid="cid-new")
    )
    api.com.atproto.repo.create_record = AsyncMock(side_effect=_created_records())
    api.com.atproto.repo.delete_record = AsyncMock(return_value=None)
    api.com.atproto.identity.resolve_handle = AsyncMock(return_value=SimpleNamespace(did=OTHER_DID))
    api.app.bsky.graph.get_lists = AsyncMock(
        return_value=SimpleNamespace(
            lists=[
                SimpleNamespace(
                    uri=f"at://{TEST_DID}/app.bsky.graph.list/l1",
                    cid="cid-l1",
                    name="Friends",
                    purpose="app.bsky.graph.defs#curatelist",
                    description=None,
                    list_item_count=2,
                )
            ]
        )
    )
    return api


@pytest.fixture
def atproto_client() -> MagicMock:
    """Fake SDK client; individual tests override return values as needed."""
    return make_atproto_client()


@pytest.fixture
def bluesky(atproto_client) -> BlueskyClient:
    """A logged-in BlueskyClient over the fake SDK, with no pacing delay."""
    client = BlueskyClient(
        BlueskyConfig(handle=TEST_HANDLE, app_password="secret"),
        client=atproto_client,
        thread_delay=0,
    )
    client.did = TEST_DID
    return client


@pytest.fixture
def dispatcher(bluesky) -> Dispatcher:
    return Dispatcher(bluesky)


# ---------------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------------


def make_upstream_exception(status: int, error: str = "InvalidRequest", message: str = "bad things"):
    """An atproto RequestException carrying an XRPC error body."""
    from atproto_client.exceptions import RequestException

    response = SimpleNamespace(
        status_code=status,
        content=SimpleNamespace(error=error, message=message),
        headers={},
    )
    return RequestException(response)

