"""
Profile tools: get_profile, update_profile, update_avatar.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

import shaping
from tools.common import ImageInput
from tools.registry import ToolDescriptor, read_only, write

MAX_DISPLAY_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 256


class GetProfileInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    handle: Optional[str] = Field(
        default=None,
        description="The handle of the user (e.g., user.bsky.social). Leave empty for your own profile.",
    )


class UpdateProfileInput(BaseModel):
    """Fields left out keep their current value."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    display_name: Optional[str] = Field(
        default=None,
        alias="displayName",
        description="New display name",
        max_length=MAX_DISPLAY_NAME_LENGTH,
    )
    description: Optional[str] = Field(
        default=None, description="New bio/description", max_length=MAX_DESCRIPTION_LENGTH
    )


class UpdateAvatarInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    image: ImageInput = Field(..., description="The new avatar image (PNG or JPEG)")


async def handle_get_profile(params: GetProfileInput, client) -> Dict[str, Any]:
    profile = shaping.profile_summary(await client.get_profile(params.handle))
    profile["message"] = f"Profile: @{profile['handle']}"
    return profile


async def handle_update_profile(params: UpdateProfileInput, client) -> Dict[str, Any]:
    await client.update_profile(
        display_name=params.display_name,
        description=params.description,
    )
    return shaping.acknowledged(
        "Profile updated successfully",
        updated={
            "displayName": params.display_name is not None,
            "description": params.description is not None,
        },
    )


async def handle_update_avatar(params: UpdateAvatarInput, client) -> Dict[str, Any]:
    image = params.image.to_payload()
    await client.update_avatar(image)
    return shaping.acknowledged(
        "Avatar updated successfully",
        mimeType=image.mime_type,
        size=image.size,
    )


TOOLS = [
    ToolDescriptor(
        name="get_profile",
        description="""Get profile information for a Bluesky user. If no handle is provided, returns your own profile.

Example: {"handle": "user.bsky.social"}""",
        input_model=GetProfileInput,
        handler=handle_get_profile,
        annotations=read_only("Get Bluesky Profile"),
    ),
    ToolDescriptor(
        name="update_profile",
        description="""Update your Bluesky profile. You can update display name and/or bio (description); anything you leave out stays as it is.

Example: {"description": "New bio text here"}""",
        input_model=UpdateProfileInput,
        handler=handle_update_profile,
        annotations=write("Update Bluesky Profile", idempotent=True),
    ),
    ToolDescriptor(
        name="update_avatar",
        description="""Replace your profile picture. Provide a local path or base64 data; the rest of the profile is unchanged.

Example: {"image": {"path": "/tmp/avatar.png"}}""",
        input_model=UpdateAvatarInput,
        handler=handle_update_avatar,
        annotations=write("Update Bluesky Avatar", idempotent=True),
    ),
]
