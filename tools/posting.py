"""
Posting tools: post, reply, create_thread, quote_post, delete_post.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import (
    AT_URI_PATTERN,
    MAX_POST_LENGTH,
    ImageInput,
    PostTargetInput,
    image_field,
    load_images,
)
from tools.registry import ToolDescriptor, write

PostText = Annotated[str, Field(min_length=1, max_length=MAX_POST_LENGTH)]


class PostInput(BaseModel):
    """Input for a new top-level post."""
    model_config = ConfigDict(extra="forbid")

    text: PostText = Field(..., description="The text content of the post (max 300 characters)")
    images: Optional[List[ImageInput]] = image_field()


class ReplyInput(PostTargetInput):
    """Input for replying to a post."""
    text: PostText = Field(..., description="The reply text (max 300 characters)")
    images: Optional[List[ImageInput]] = image_field()


class CreateThreadInput(BaseModel):
    """Input for posting a connected thread."""
    model_config = ConfigDict(extra="forbid")

    posts: List[PostText] = Field(
        ...,
        description="Array of post texts (max 300 chars each)",
        min_length=2,
        max_length=25,
    )


class QuotePostInput(PostTargetInput):
    """Input for quoting a post."""
    text: PostText = Field(..., description="Your commentary (max 300 characters)")
    images: Optional[List[ImageInput]] = image_field()


class DeletePostInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    uri: str = Field(..., description="The AT-URI of your post to delete", pattern=AT_URI_PATTERN)


async def handle_post(params: PostInput, client) -> Dict[str, Any]:
    result = await client.create_post(params.text, images=load_images(params.images))
    return shaping.created(result, "Post created successfully!")


async def handle_reply(params: ReplyInput, client) -> Dict[str, Any]:
    result = await client.create_post(
        params.text,
        reply_to=params.ref,
        images=load_images(params.images),
    )
    return shaping.created(result, "Reply posted successfully!")


async def handle_create_thread(params: CreateThreadInput, client) -> Dict[str, Any]:
    results = await client.create_thread(params.posts)
    first_url = results[0].url
    return {
        "success": True,
        "thread": [result.as_dict() for result in results],
        "count": len(results),
        "first_post_url": first_url,
        "message": f"Thread created with {len(results)} posts! View at: {first_url}",
    }


async def handle_quote_post(params: QuotePostInput, client) -> Dict[str, Any]:
    result = await client.quote_post(
        params.text,
        params.ref,
        images=load_images(params.images),
    )
    return shaping.created(result, "Quote post created successfully!")


async def handle_delete_post(params: DeletePostInput, client) -> Dict[str, Any]:
    await client.delete_post(params.uri)
    return shaping.acknowledged("Post deleted successfully!", uri=params.uri)


TOOLS = [
    ToolDescriptor(
        name="post",
        description="""Post to Bluesky. Supports text posts up to 300 characters, with automatic link, mention and hashtag detection. Optionally attach up to 4 images (PNG or JPEG) from a local path or base64 data.

Examples:
- Simple text: {"text": "Just shipped a new feature!"}
- With mention: {"text": "Great work @handle.bsky.social!"}
- With image: {"text": "Check this out!", "images": [{"path": "/tmp/chart.png", "alt": "Weekly chart"}]}""",
        input_model=PostInput,
        handler=handle_post,
        annotations=write("Create a Bluesky Post"),
    ),
    ToolDescriptor(
        name="reply",
        description="""Reply to a post on Bluesky. You must provide the URI and CID of the post you're replying to. Replies to replies stay in the original conversation.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "cid": "bafyrei...", "text": "Great point!"}""",
        input_model=ReplyInput,
        handler=handle_reply,
        annotations=write("Reply to a Bluesky Post"),
    ),
    ToolDescriptor(
        name="create_thread",
        description="""Create a thread (2-25 connected posts). Each post replies to the one before it. Posts are published one per second; if one fails, the posts already published are listed in the error.

Example: {"posts": ["First post in the thread", "Second post", "Third post"]}""",
        input_model=CreateThreadInput,
        handler=handle_create_thread,
        annotations=write("Create a Bluesky Thread"),
    ),
    ToolDescriptor(
        name="quote_post",
        description="""Quote a post: publish your own post that embeds another one.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/...", "cid": "bafyrei...", "text": "Worth reading"}""",
        input_model=QuotePostInput,
        handler=handle_quote_post,
        annotations=write("Quote a Bluesky Post"),
    ),
    ToolDescriptor(
        name="delete_post",
        description="""Delete one of your own posts.

Example: {"uri": "at://did:plc:.../app.bsky.feed.post/..."}""",
        input_model=DeletePostInput,
        handler=handle_delete_post,
        annotations=write("Delete a Bluesky Post", destructive=True, idempotent=True),
    ),
]
