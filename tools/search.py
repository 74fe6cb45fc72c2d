"""
Search tools: search_posts, search_users.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import limit_field
from tools.registry import ToolDescriptor, read_only


class SearchInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    query: str = Field(..., description="The search query", min_length=1)
    limit: int = limit_field(25, "results")


async def handle_search_posts(params: SearchInput, client) -> Dict[str, Any]:
    results = [shaping.post_summary(post) for post in await client.search_posts(params.query, params.limit)]
    return {
        "query": params.query,
        "results": results,
        "count": len(results),
        "message": f'Found {len(results)} posts matching "{params.query}"',
    }


async def handle_search_users(params: SearchInput, client) -> Dict[str, Any]:
    results = [shaping.actor_summary(actor) for actor in await client.search_actors(params.query, params.limit)]
    return {
        "query": params.query,
        "results": results,
        "count": len(results),
        "message": f'Found {len(results)} users matching "{params.query}"',
    }


TOOLS = [
    ToolDescriptor(
        name="search_posts",
        description="""Search for posts on Bluesky by keyword or phrase. Results keep Bluesky's relevance order.

Example: {"query": "AI coding tools", "limit": 25}""",
        input_model=SearchInput,
        handler=handle_search_posts,
        annotations=read_only("Search Bluesky Posts"),
    ),
    ToolDescriptor(
        name="search_users",
        description="""Search for Bluesky accounts by name, handle or bio.

Example: {"query": "python", "limit": 10}""",
        input_model=SearchInput,
        handler=handle_search_users,
        annotations=read_only("Search Bluesky Users"),
    ),
]
