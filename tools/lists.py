"""
List tools: create_list, add_to_list, remove_from_list, get_lists.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import AT_URI_PATTERN, limit_field
from tools.registry import ToolDescriptor, read_only, write


class ListPurpose(str, Enum):
    CURATION = "curation"
    MODERATION = "moderation"


class CreateListInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., description="List name", min_length=1, max_length=64)
    description: Optional[str] = Field(default=None, description="What the list is for", max_length=300)
    purpose: ListPurpose = Field(
        default=ListPurpose.CURATION,
        description="'curation' (a list people can browse/feed from) or 'moderation' (for mute/block)",
    )


class AddToListInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    list_uri: str = Field(..., description="The AT-URI of the list", pattern=AT_URI_PATTERN)
    subject: str = Field(..., description="DID or handle of the user to add", min_length=1)


class RemoveFromListInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    listitem_uri: str = Field(
        ..., description="The AT-URI of the list membership record (returned by add_to_list)", pattern=AT_URI_PATTERN
    )


class GetListsInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    handle: Optional[str] = Field(default=None, description="Whose lists to show (leave empty for yourself)")
    limit: int = limit_field(50, "lists")


async def handle_create_list(params: CreateListInput, client) -> Dict[str, Any]:
    ref = await client.create_list(params.name, params.purpose.value, params.description)
    return shaping.acknowledged(
        f"List '{params.name}' created",
        list_uri=ref.uri,
        cid=ref.cid,
        purpose=params.purpose.value,
    )


async def handle_add_to_list(params: AddToListInput, client) -> Dict[str, Any]:
    ref = await client.add_to_list(params.list_uri, params.subject)
    return shaping.acknowledged("User added to list", listitem_uri=ref.uri)


async def handle_remove_from_list(params: RemoveFromListInput, client) -> Dict[str, Any]:
    await client.remove_from_list(params.listitem_uri)
    return shaping.acknowledged("User removed from list")


async def handle_get_lists(params: GetListsInput, client) -> Dict[str, Any]:
    results = [shaping.list_summary(view) for view in await client.get_lists(params.handle, params.limit)]
    return {
        "handle": params.handle or "your account",
        "lists": results,
        "count": len(results),
        "message": f"Retrieved {len(results)} lists",
    }


TOOLS = [
    ToolDescriptor(
        name="create_list",
        description="""Create a user list. Purpose is 'curation' (default) or 'moderation'.

Example: {"name": "Python folks", "description": "People I learn from", "purpose": "curation"}""",
        input_model=CreateListInput,
        handler=handle_create_list,
        annotations=write("Create a Bluesky List"),
    ),
    ToolDescriptor(
        name="add_to_list",
        description="""Add a user to one of your lists. Keep the returned listitem_uri: remove_from_list needs it.

Example: {"list_uri": "at://did:plc:.../app.bsky.graph.list/...", "subject": "user.bsky.social"}""",
        input_model=AddToListInput,
        handler=handle_add_to_list,
        annotations=write("Add User to Bluesky List"),
    ),
    ToolDescriptor(
        name="remove_from_list",
        description="""Remove a user from a list. Provide the URI of the membership record (not the list or the user).

Example: {"listitem_uri": "at://did:plc:.../app.bsky.graph.listitem/..."}""",
        input_model=RemoveFromListInput,
        handler=handle_remove_from_list,
        annotations=write("Remove User from Bluesky List", destructive=True, idempotent=True),
    ),
    ToolDescriptor(
        name="get_lists",
        description="""Get the lists an account has created. If no handle is provided, returns your own lists.

Example: {"handle": "user.bsky.social"}""",
        input_model=GetListsInput,
        handler=handle_get_lists,
        annotations=read_only("Get Bluesky Lists"),
    ),
]
