"""
Feed tools: get_timeline, get_author_feed, get_post_thread.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import AT_URI_PATTERN, limit_field
from tools.registry import ToolDescriptor, read_only


class TimelineInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: int = limit_field(50, "posts")


class AuthorFeedInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    handle: str = Field(..., description="The handle of the user (e.g., user.bsky.social)", min_length=1)
    limit: int = limit_field(50, "posts")


class PostThreadInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    uri: str = Field(..., description="The AT-URI of the post", pattern=AT_URI_PATTERN)
    depth: Optional[int] = Field(
        default=None, ge=0, le=1000, description="How many levels of replies to include"
    )


async def handle_get_timeline(params: TimelineInput, client) -> Dict[str, Any]:
    posts = shaping.feed_posts(await client.get_timeline(params.limit))
    return {
        "posts": posts,
        "count": len(posts),
        "message": f"Retrieved {len(posts)} posts from your timeline",
    }


async def handle_get_author_feed(params: AuthorFeedInput, client) -> Dict[str, Any]:
    handle = params.handle.lstrip("@")
    feed = await client.get_author_feed(handle, params.limit)
    posts = shaping.feed_posts(feed, include_author=False)
    return {
        "handle": handle,
        "posts": posts,
        "count": len(posts),
        "message": f"Retrieved {len(posts)} posts from @{handle}",
    }


async def handle_get_post_thread(params: PostThreadInput, client) -> Dict[str, Any]:
    thread = shaping.thread_tree(await client.get_post_thread(params.uri, params.depth))
    if thread is None:
        message = "The post is deleted or unavailable"
    else:
        message = f"Thread retrieved successfully ({shaping.count_posts(thread)} posts)"
    return {"thread": thread, "message": message}


TOOLS = [
    ToolDescriptor(
        name="get_timeline",
        description="""Get your home timeline feed. Shows posts from accounts you follow.

Example: {"limit": 20}""",
        input_model=TimelineInput,
        handler=handle_get_timeline,
        annotations=read_only("Get Bluesky Timeline"),
    ),
    ToolDescriptor(
        name="get_author_feed",
        description="""Get posts from a specific user's profile.

Example: {"handle": "user.bsky.social", "limit": 25}""",
        input_model=AuthorFeedInput,
        handler=handle_get_author_feed,
        annotations=read_only("Get a User's Bluesky Posts"),
    ),
    ToolDescriptor(
        name="get_post_thread",
        description="""Get a full post thread including the original post and all replies. Deleted or unavailable replies are left out together with their own replies.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/..."}""",
        input_model=PostThreadInput,
        handler=handle_get_post_thread,
        annotations=read_only("Get Bluesky Post Thread"),
    ),
]
