"""
Input pieces shared by several tool groups.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from domain import PostRef
from media import ImagePayload, load_image

MAX_POST_LENGTH = 300
MAX_IMAGES = 4
MAX_ALT_LENGTH = 2000
MAX_LIMIT = 100

AT_URI_PATTERN = r"^at://\S+$"


def limit_field(default: int, noun: str):
    return Field(
        default=default,
        ge=1,
        le=MAX_LIMIT,
        description=f"Number of {noun} to retrieve (default: {default}, max: {MAX_LIMIT})",
    )


class ImageInput(BaseModel):
    """One image attachment, given as a local path or inline base64 data."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    path: Optional[str] = Field(default=None, description="Local path to a PNG or JPEG file")
    data: Optional[str] = Field(
        default=None, description="Base64-encoded image data (can include a data URL prefix)"
    )
    alt: Optional[str] = Field(
        default=None, description="Alt text for accessibility", max_length=MAX_ALT_LENGTH
    )

    def to_payload(self) -> ImagePayload:
        return load_image(path=self.path, data=self.data, alt=self.alt)


class PostTargetInput(BaseModel):
    """A post addressed by uri and cid."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    uri: str = Field(..., description="The AT-URI of the post", pattern=AT_URI_PATTERN)
    cid: str = Field(..., description="The CID of the post", min_length=1)

    @property
    def ref(self) -> PostRef:
        return PostRef(uri=self.uri, cid=self.cid)


def image_field(description: str = "Optional images to attach (max 4)."):
    return Field(default=None, description=description, max_length=MAX_IMAGES)


def load_images(images: Optional[List[ImageInput]]) -> List[ImagePayload]:
    return [image.to_payload() for image in images or []]
