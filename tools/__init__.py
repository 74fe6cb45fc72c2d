"""
Bluesky MCP tools - every tool the server exposes, keyed by name.
"""

from typing import Dict

from tools import engagement, feeds, lists, posting, profile, search
from tools.registry import ToolDescriptor, build_registry


REGISTRY: Dict[str, ToolDescriptor] = build_registry(
    posting.TOOLS,
    feeds.TOOLS,
    search.TOOLS,
    engagement.TOOLS,
    profile.TOOLS,
    lists.TOOLS,
)
