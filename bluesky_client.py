"""
Bluesky domain adapter.

Wraps one authenticated ``atproto.AsyncClient`` session and exposes the
account operations the tools need: posting (with facets, replies, images,
quotes), feeds, search, engagement, profile and list management. Every SDK
or HTTP transport failure is converted into an ``UpstreamError`` carrying the
upstream message.
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Sequence

import httpx
from atproto import AsyncClient, models
from atproto_client import exceptions as atproto_exceptions

import richtext
from domain import (
    FOLLOW_COLLECTION,
    LIKE_COLLECTION,
    LIST_COLLECTION,
    LISTITEM_COLLECTION,
    POST_COLLECTION,
    PROFILE_COLLECTION,
    REPOST_COLLECTION,
    PostRef,
    PostResult,
    ReplyContext,
    merge_profile,
    parse_at_uri,
    post_url,
    reply_context_for,
)
from errors import (
    ConfigurationError,
    ThreadCreationError,
    ToolInputError,
    UpstreamError,
)
from media import ImagePayload

logger = logging.getLogger("bluesky_mcp.client")

DEFAULT_SERVICE_URL = "https://bsky.social"

# Pause between posts of a thread to stay clear of abuse thresholds.
THREAD_POST_DELAY = 1.0

MAX_IMAGES_PER_POST = 4

LIST_PURPOSES = {
    "curation": "app.bsky.graph.defs#curatelist",
    "moderation": "app.bsky.graph.defs#modlist",
}

_STATUS_MESSAGES = {
    400: "Bluesky rejected the request.",
    401: "Authentication failed. Check BLUESKY_HANDLE and BLUESKY_APP_PASSWORD.",
    403: "Bluesky refused the request for this account.",
    404: "Not found on Bluesky. Check the uri or handle.",
    429: "Rate limited by Bluesky. Wait a moment before retrying.",
}


@dataclass
class BlueskyConfig:
    handle: str
    app_password: str
    service_url: Optional[str] = None


def _upstream_detail(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    content = getattr(response, "content", None)
    if isinstance(content, dict):
        detail = content.get("message") or content.get("error")
    else:
        detail = getattr(content, "message", None) or getattr(content, "error", None)
    return detail or str(exc) or type(exc).__name__


def _upstream_error(action: str, exc: Exception) -> UpstreamError:
    """Convert an SDK exception into an actionable UpstreamError."""
    status = getattr(getattr(exc, "response", None), "status_code", None)
    detail = _upstream_detail(exc)
    if status is None:
        message = f"Failed to {action}: {detail}"
    else:
        summary = _STATUS_MESSAGES.get(status, f"HTTP {status} from Bluesky.")
        message = f"Failed to {action}: {summary} ({detail})"
    logger.warning(f"Upstream error during '{action}' (status={status}): {detail}")
    return UpstreamError(message, status=status)


def _is_record_not_found(exc: Exception) -> bool:
    content = getattr(getattr(exc, "response", None), "content", None)
    error = content.get("error") if isinstance(content, dict) else getattr(content, "error", None)
    return error == "RecordNotFound"


@contextmanager
def _upstream(action: str) -> Iterator[None]:
    try:
        yield
    except (atproto_exceptions.AtProtocolError, httpx.HTTPError) as e:
        raise _upstream_error(action, e) from e


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_collection(uri: str, collection: str, hint: str) -> tuple:
    repo, found, rkey = parse_at_uri(uri)
    if found != collection:
        raise ToolInputError(f"{uri} is a {found} record, not {collection}. {hint}")
    return repo, found, rkey


class BlueskyClient:
    """
    Single-account Bluesky session.

    Login happens once at startup; afterwards the session is only read.
    Operations run sequentially except image uploads for one post, which are
    issued concurrently and awaited before the post record is written.
    """

    def __init__(
        self,
        cfg: BlueskyConfig,
        client: Optional[AsyncClient] = None,
        thread_delay: float = THREAD_POST_DELAY,
    ):
        self.cfg = cfg
        self.client = client or AsyncClient(cfg.service_url or DEFAULT_SERVICE_URL)
        self.thread_delay = thread_delay
        self.handle = cfg.handle
        self.did: Optional[str] = None

    # ---------------- Session ----------------

    async def login(self) -> None:
        """Authenticate once. Failure here is a startup problem, not a tool error."""
        try:
            profile = await self.client.login(self.cfg.handle, self.cfg.app_password)
        except atproto_exceptions.AtProtocolError as e:
            raise ConfigurationError(
                f"Bluesky login failed for {self.cfg.handle}: {_upstream_detail(e)}"
            ) from e
        self.did = profile.did
        self.handle = profile.handle
        logger.info(f"Logged in to Bluesky as @{self.handle} ({self.did})")

    # ---------------- Helpers ----------------

    async def resolve_did(self, actor: str) -> str:
        """Return a DID for a DID or handle (a leading '@' is ignored)."""
        actor = actor.strip().lstrip("@")
        if actor.startswith("did:"):
            return actor
        with _upstream(f"resolve handle @{actor}"):
            response = await self.client.com.atproto.identity.resolve_handle(params={"handle": actor})
        return response.did

    async def _build_facets(self, text: str) -> List[models.AppBskyRichtextFacet.Main]:
        facets = []
        for span in richtext.detect_facets(text):
            if span.kind == richtext.LINK:
                feature = models.AppBskyRichtextFacet.Link(uri=span.value)
            elif span.kind == richtext.TAG:
                feature = models.AppBskyRichtextFacet.Tag(tag=span.value)
            else:
                try:
                    did = await self.resolve_did(span.value)
                except UpstreamError:
                    # an unknown handle stays plain text
                    logger.info(f"Mention @{span.value} did not resolve; leaving it unlinked")
                    continue
                feature = models.AppBskyRichtextFacet.Mention(did=did)
            facets.append(
                models.AppBskyRichtextFacet.Main(
                    index=models.AppBskyRichtextFacet.ByteSlice(
                        byte_start=span.byte_start, byte_end=span.byte_end
                    ),
                    features=[feature],
                )
            )
        return facets

    async def resolve_reply(self, parent: PostRef) -> ReplyContext:
        """Fetch the parent record and infer the thread root from it."""
        repo, _, rkey = _require_collection(
            parent.uri, POST_COLLECTION, "Replies must point at a post."
        )
        with _upstream("fetch the post being replied to"):
            record = await self.client.app.bsky.feed.post.get(repo, rkey)
        return reply_context_for(parent, record.value)

    async def _upload_image(self, image: ImagePayload) -> models.AppBskyEmbedImages.Image:
        with _upstream("upload image"):
            uploaded = await self.client.upload_blob(image.data)
        logger.debug(f"Uploaded {image.mime_type} image ({image.size} bytes)")

        aspect = None
        if image.width and image.height:
            aspect = models.AppBskyEmbedDefs.AspectRatio(width=image.width, height=image.height)
        return models.AppBskyEmbedImages.Image(
            alt=image.alt,
            image=uploaded.blob,
            aspect_ratio=aspect,
        )

    async def _images_embed(self, images: Sequence[ImagePayload]) -> models.AppBskyEmbedImages.Main:
        if len(images) > MAX_IMAGES_PER_POST:
            raise ToolInputError(f"A post can carry at most {MAX_IMAGES_PER_POST} images.")
        uploaded = await asyncio.gather(*(self._upload_image(image) for image in images))
        return models.AppBskyEmbedImages.Main(images=list(uploaded))

    def _result(self, uri: str, cid: str) -> PostResult:
        return PostResult(uri=uri, cid=cid, url=post_url(self.handle, uri))

    # ---------------- Posting ----------------

    async def create_post(
        self,
        text: str,
        reply_to: Optional[PostRef] = None,
        images: Optional[Sequence[ImagePayload]] = None,
        embed: Any = None,
    ) -> PostResult:
        facets = await self._build_facets(text)

        reply = None
        if reply_to is not None:
            reply = (await self.resolve_reply(reply_to)).to_reply_ref()

        if images:
            media = await self._images_embed(images)
            if embed is None:
                embed = media
            else:
                embed = models.AppBskyEmbedRecordWithMedia.Main(record=embed, media=media)

        with _upstream("create post"):
            created = await self.client.send_post(
                text=text,
                reply_to=reply,
                embed=embed,
                facets=facets or None,
            )
        logger.info(f"Created post {created.uri}")
        return self._result(created.uri, created.cid)

    async def create_thread(self, texts: Sequence[str]) -> List[PostResult]:
        """
        Post ``texts`` as a chain where each post replies to the previous one.

        Posts are created strictly one after another with ``thread_delay``
        seconds between them. A failure stops the chain and raises
        ThreadCreationError listing what was already published; nothing is
        rolled back.
        """
        created: List[PostResult] = []
        previous: Optional[PostRef] = None
        for index, text in enumerate(texts):
            if index:
                await asyncio.sleep(self.thread_delay)
            try:
                result = await self.create_post(text, reply_to=previous)
            except ConfigurationError:
                raise
            except Exception as e:
                raise ThreadCreationError(
                    f"Thread stopped at post {index + 1} of {len(texts)} "
                    f"after publishing {len(created)}: {e}",
                    created=[post.as_dict() for post in created],
                ) from e
            created.append(result)
            previous = result.ref
        return created

    async def quote_post(
        self,
        text: str,
        target: PostRef,
        images: Optional[Sequence[ImagePayload]] = None,
    ) -> PostResult:
        _require_collection(target.uri, POST_COLLECTION, "Only posts can be quoted.")
        embed = models.AppBskyEmbedRecord.Main(record=target.to_strong_ref())
        return await self.create_post(text, images=images, embed=embed)

    async def delete_post(self, uri: str) -> None:
        _require_collection(uri, POST_COLLECTION, "Use the uri returned when the post was created.")
        with _upstream("delete post"):
            await self.client.delete_post(uri)
        logger.info(f"Deleted post {uri}")

    # ---------------- Feeds & search ----------------

    async def get_timeline(self, limit: int = 50) -> list:
        with _upstream("load timeline"):
            response = await self.client.get_timeline(limit=limit)
        return response.feed

    async def get_author_feed(self, handle: str, limit: int = 50) -> list:
        with _upstream(f"load posts from @{handle}"):
            response = await self.client.get_author_feed(actor=handle, limit=limit)
        return response.feed

    async def get_post_thread(self, uri: str, depth: Optional[int] = None) -> Any:
        with _upstream("load thread"):
            response = await self.client.get_post_thread(uri=uri, depth=depth)
        return response.thread

    async def search_posts(self, query: str, limit: int = 25) -> list:
        with _upstream("search posts"):
            response = await self.client.app.bsky.feed.search_posts(params={"q": query, "limit": limit})
        return response.posts

    async def search_actors(self, query: str, limit: int = 25) -> list:
        with _upstream("search users"):
            response = await self.client.app.bsky.actor.search_actors(params={"q": query, "limit": limit})
        return response.actors

    # ---------------- Engagement & graph ----------------

    async def like(self, target: PostRef) -> PostRef:
        with _upstream("like post"):
            response = await self.client.like(target.uri, target.cid)
        return PostRef(uri=response.uri, cid=response.cid)

    async def unlike(self, like_uri: str) -> None:
        _require_collection(like_uri, LIKE_COLLECTION, "Pass the like_uri returned by like_post.")
        with _upstream("remove like"):
            await self.client.unlike(like_uri)

    async def repost(self, target: PostRef) -> PostRef:
        with _upstream("repost"):
            response = await self.client.repost(target.uri, target.cid)
        return PostRef(uri=response.uri, cid=response.cid)

    async def unrepost(self, repost_uri: str) -> None:
        _require_collection(repost_uri, REPOST_COLLECTION, "Pass the repost_uri returned by repost.")
        with _upstream("delete repost"):
            await self.client.unrepost(repost_uri)

    async def follow(self, actor: str) -> PostRef:
        did = await self.resolve_did(actor)
        with _upstream("follow user"):
            response = await self.client.follow(did)
        return PostRef(uri=response.uri, cid=response.cid)

    async def unfollow(self, follow_uri: str) -> None:
        _require_collection(follow_uri, FOLLOW_COLLECTION, "Pass the follow_uri returned by follow.")
        with _upstream("unfollow user"):
            await self.client.unfollow(follow_uri)

    async def get_likes(self, uri: str, limit: int = 50) -> list:
        with _upstream("load likes"):
            response = await self.client.get_likes(uri=uri, limit=limit)
        return response.likes

    async def get_reposted_by(self, uri: str, limit: int = 50) -> list:
        with _upstream("load reposts"):
            response = await self.client.get_reposted_by(uri=uri, limit=limit)
        return response.reposted_by

    async def get_followers(self, handle: Optional[str] = None, limit: int = 50) -> list:
        actor = handle or self.handle
        with _upstream(f"load followers of @{actor}"):
            response = await self.client.get_followers(actor=actor, limit=limit)
        return response.followers

    async def get_follows(self, handle: Optional[str] = None, limit: int = 50) -> list:
        actor = handle or self.handle
        with _upstream(f"load accounts followed by @{actor}"):
            response = await self.client.get_follows(actor=actor, limit=limit)
        return response.follows

    # ---------------- Profile ----------------

    async def get_profile(self, handle: Optional[str] = None) -> Any:
        actor = handle or self.handle
        with _upstream(f"load profile @{actor}"):
            return await self.client.get_profile(actor=actor)

    async def _read_profile_record(self):
        """Current profile record and its cid, or (None, None) if none exists yet."""
        try:
            response = await self.client.app.bsky.actor.profile.get(self.did, "self")
        except atproto_exceptions.AtProtocolError as e:
            if _is_record_not_found(e):
                return None, None
            raise _upstream_error("read current profile", e) from e
        except httpx.HTTPError as e:
            raise _upstream_error("read current profile", e) from e
        return response.value, response.cid

    async def _patch_profile(self, **overrides: Any) -> None:
        existing, cid = await self._read_profile_record()
        merged = merge_profile(existing, **overrides)
        with _upstream("update profile"):
            await self.client.com.atproto.repo.put_record(
                data={
                    "repo": self.did,
                    "collection": PROFILE_COLLECTION,
                    "rkey": "self",
                    "record": merged,
                    "swap_record": cid,
                }
            )

    async def update_profile(
        self,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        if display_name is None and description is None:
            raise ToolInputError("Provide display_name and/or description to update.")
        await self._patch_profile(display_name=display_name, description=description)
        logger.info("Profile updated")

    async def update_avatar(self, image: ImagePayload) -> None:
        with _upstream("upload avatar"):
            uploaded = await self.client.upload_blob(image.data)
        await self._patch_profile(avatar=uploaded.blob)
        logger.info(f"Avatar updated ({image.mime_type}, {image.size} bytes)")

    # ---------------- Lists ----------------

    async def _create_record(self, collection: str, record: Any, action: str) -> PostRef:
        with _upstream(action):
            response = await self.client.com.atproto.repo.create_record(
                data={"repo": self.did, "collection": collection, "record": record}
            )
        return PostRef(uri=response.uri, cid=response.cid)

    async def create_list(self, name: str, purpose: str, description: Optional[str] = None) -> PostRef:
        if purpose not in LIST_PURPOSES:
            raise ToolInputError(f"List purpose must be one of: {', '.join(LIST_PURPOSES)}")
        record = models.AppBskyGraphList.Record(
            name=name,
            purpose=LIST_PURPOSES[purpose],
            description=description,
            created_at=_now_iso(),
        )
        ref = await self._create_record(LIST_COLLECTION, record, "create list")
        logger.info(f"Created {purpose} list {ref.uri}")
        return ref

    async def add_to_list(self, list_uri: str, subject: str) -> PostRef:
        _require_collection(list_uri, LIST_COLLECTION, "Pass the list_uri returned by create_list.")
        did = await self.resolve_did(subject)
        record = models.AppBskyGraphListitem.Record(
            list=list_uri,
            subject=did,
            created_at=_now_iso(),
        )
        return await self._create_record(LISTITEM_COLLECTION, record, "add user to list")

    async def remove_from_list(self, listitem_uri: str) -> None:
        repo, collection, rkey = _require_collection(
            listitem_uri, LISTITEM_COLLECTION, "Pass the listitem_uri returned by add_to_list."
        )
        with _upstream("remove user from list"):
            await self.client.com.atproto.repo.delete_record(
                data={"repo": repo, "collection": collection, "rkey": rkey}
            )

    async def get_lists(self, handle: Optional[str] = None, limit: int = 50) -> list:
        actor = handle or self.handle
        with _upstream(f"load lists of @{actor}"):
            response = await self.client.app.bsky.graph.get_lists(params={"actor": actor, "limit": limit})
        return response.lists
