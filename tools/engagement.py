"""
Engagement and social-graph tools.

Every "undo" tool takes the uri of the record its "do" tool returned
(like_uri, repost_uri, follow_uri), never the post or user itself.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import AT_URI_PATTERN, PostTargetInput, limit_field
from tools.registry import ToolDescriptor, read_only, write


class LikeInput(PostTargetInput):
    """Input for liking a post."""


class RepostInput(PostTargetInput):
    """Input for reposting a post."""


class UnlikeInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    like_uri: str = Field(..., description="The AT-URI of the like record to delete", pattern=AT_URI_PATTERN)


class DeleteRepostInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    repost_uri: str = Field(..., description="The AT-URI of the repost record to delete", pattern=AT_URI_PATTERN)


class FollowInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    actor: str = Field(..., description="The DID or handle of the user to follow", min_length=1)


class UnfollowInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    follow_uri: str = Field(..., description="The AT-URI of the follow record to delete", pattern=AT_URI_PATTERN)


class PostActorsInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    uri: str = Field(..., description="The AT-URI of the post", pattern=AT_URI_PATTERN)
    limit: int = limit_field(50, "users")


class GraphInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    handle: Optional[str] = Field(
        default=None, description="The handle to look up (leave empty for yourself)"
    )
    limit: int = limit_field(50, "users")


async def handle_like_post(params: LikeInput, client) -> Dict[str, Any]:
    like = await client.like(params.ref)
    return shaping.acknowledged("Post liked successfully!", like_uri=like.uri)


async def handle_unlike_post(params: UnlikeInput, client) -> Dict[str, Any]:
    await client.unlike(params.like_uri)
    return shaping.acknowledged("Like removed successfully!")


async def handle_repost(params: RepostInput, client) -> Dict[str, Any]:
    repost = await client.repost(params.ref)
    return shaping.acknowledged("Post reposted successfully!", repost_uri=repost.uri)


async def handle_delete_repost(params: DeleteRepostInput, client) -> Dict[str, Any]:
    await client.unrepost(params.repost_uri)
    return shaping.acknowledged("Repost deleted successfully!")


async def handle_follow(params: FollowInput, client) -> Dict[str, Any]:
    follow = await client.follow(params.actor)
    return shaping.acknowledged("User followed successfully!", follow_uri=follow.uri)


async def handle_unfollow(params: UnfollowInput, client) -> Dict[str, Any]:
    await client.unfollow(params.follow_uri)
    return shaping.acknowledged("User unfollowed successfully!")


async def handle_get_post_likes(params: PostActorsInput, client) -> Dict[str, Any]:
    likes = await client.get_likes(params.uri, params.limit)
    results = [
        {**shaping.actor_summary(like.actor), "indexedAt": getattr(like, "indexed_at", None)}
        for like in likes
    ]
    return {
        "uri": params.uri,
        "likes": results,
        "count": len(results),
        "message": f"Retrieved {len(results)} likes",
    }


async def handle_get_post_reposts(params: PostActorsInput, client) -> Dict[str, Any]:
    results = [shaping.actor_summary(actor) for actor in await client.get_reposted_by(params.uri, params.limit)]
    return {
        "uri": params.uri,
        "reposts": results,
        "count": len(results),
        "message": f"Retrieved {len(results)} reposts",
    }


async def handle_get_followers(params: GraphInput, client) -> Dict[str, Any]:
    results = [shaping.actor_summary(actor) for actor in await client.get_followers(params.handle, params.limit)]
    return {
        "handle": params.handle or "your account",
        "followers": results,
        "count": len(results),
        "message": f"Retrieved {len(results)} followers",
    }


async def handle_get_following(params: GraphInput, client) -> Dict[str, Any]:
    results = [shaping.actor_summary(actor) for actor in await client.get_follows(params.handle, params.limit)]
    return {
        "handle": params.handle or "your account",
        "following": results,
        "count": len(results),
        "message": f"Retrieved {len(results)} accounts being followed",
    }


TOOLS = [
    ToolDescriptor(
        name="like_post",
        description="""Like a post on Bluesky. Provide the post URI and CID. Keep the returned like_uri: unlike_post needs it.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "cid": "bafyrei..."}""",
        input_model=LikeInput,
        handler=handle_like_post,
        annotations=write("Like a Bluesky Post"),
    ),
    ToolDescriptor(
        name="unlike_post",
        description="""Remove a like from a post. Provide the URI of the like record (not the post).

Example: {"like_uri": "at://did:plc:.../app.bsky.feed.like/..."}""",
        input_model=UnlikeInput,
        handler=handle_unlike_post,
        annotations=write("Unlike a Bluesky Post", destructive=True, idempotent=True),
    ),
    ToolDescriptor(
        name="repost",
        description="""Repost (similar to retweet) a post on Bluesky. Keep the returned repost_uri: delete_repost needs it.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "cid": "bafyrei..."}""",
        input_model=RepostInput,
        handler=handle_repost,
        annotations=write("Repost a Bluesky Post"),
    ),
    ToolDescriptor(
        name="delete_repost",
        description="""Delete a repost. Provide the URI of the repost record (not the original post).

Example: {"repost_uri": "at://did:plc:.../app.bsky.feed.repost/..."}""",
        input_model=DeleteRepostInput,
        handler=handle_delete_repost,
        annotations=write("Delete a Bluesky Repost", destructive=True, idempotent=True),
    ),
    ToolDescriptor(
        name="follow",
        description="""Follow a user on Bluesky. Provide their DID or handle. Keep the returned follow_uri: unfollow needs it.

Example: {"actor": "did:plc:..."} or {"actor": "user.bsky.social"}""",
        input_model=FollowInput,
        handler=handle_follow,
        annotations=write("Follow a Bluesky User"),
    ),
    ToolDescriptor(
        name="unfollow",
        description="""Unfollow a user. Provide the URI of the follow record.

Example: {"follow_uri": "at://did:plc:.../app.bsky.graph.follow/..."}""",
        input_model=UnfollowInput,
        handler=handle_unfollow,
        annotations=write("Unfollow a Bluesky User", destructive=True, idempotent=True),
    ),
    ToolDescriptor(
        name="get_post_likes",
        description="""Get a list of users who liked a specific post.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "limit": 50}""",
        input_model=PostActorsInput,
        handler=handle_get_post_likes,
        annotations=read_only("Get Bluesky Post Likes"),
    ),
    ToolDescriptor(
        name="get_post_reposts",
        description="""Get a list of users who reposted a specific post.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "limit": 50}""",
        input_model=PostActorsInput,
        handler=handle_get_post_reposts,
        annotations=read_only("Get Bluesky Post Reposts"),
    ),
    ToolDescriptor(
        name="get_followers",
        description="""Get the list of users who follow an account. If no handle is provided, returns your own followers.

Example: {"handle": "user.bsky.social", "limit": 50}""",
        input_model=GraphInput,
        handler=handle_get_followers,
        annotations=read_only("Get Bluesky Followers"),
    ),
    ToolDescriptor(
        name="get_following",
        description="""Get the list of users that an account follows. If no handle is provided, returns who you follow.

Example: {"handle": "user.bsky.social", "limit": 50}""",
        input_model=GraphInput,
        handler=handle_get_following,
        annotations=read_only("Get Bluesky Follows"),
    ),
]
