"""
Image payloads for posts and avatars.

Images arrive either as a local file path or as inline base64 data (a
``data:image/...;base64,`` prefix is accepted). The mime type is taken from
the file extension, then the declared data-URL prefix, then the leading
magic bytes, and falls back to JPEG.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from errors import ToolInputError

logger = logging.getLogger("bluesky_mcp.media")

PNG = "image/png"
JPEG = "image/jpeg"

PNG_MAGIC = b"\x89PNG"

# Bluesky rejects image blobs above ~1,000,000 bytes with BlobTooLarge.
MAX_IMAGE_BYTES = 1_000_000

_EXTENSION_TYPES = {
    ".png": PNG,
    ".jpg": JPEG,
    ".jpeg": JPEG,
}


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    mime_type: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data)


def _split_data_url(value: str) -> Tuple[Optional[str], str]:
    """Return (declared prefix, base64 payload) for an inline image string."""
    if value.startswith("data:") and "," in value:
        prefix, payload = value.split(",", 1)
        return prefix, payload
    return None, value


def detect_mime_type(
    data: bytes,
    *,
    filename: Optional[str] = None,
    declared: Optional[str] = None,
) -> str:
    if filename:
        mime = _EXTENSION_TYPES.get(Path(filename).suffix.lower())
        if mime:
            return mime
    if declared:
        declared = declared.lower()
        if declared.startswith("data:image/png"):
            return PNG
        if declared.startswith(("data:image/jpeg", "data:image/jpg")):
            return JPEG
    if data.startswith(PNG_MAGIC):
        return PNG
    return JPEG


def _dimensions(data: bytes) -> Tuple[Optional[int], Optional[int]]:
    """Pixel size for the aspect-ratio hint, or (None, None) if Pillow can't read it."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            return im.size
    except OSError as e:
        logger.debug(f"Could not read image dimensions: {e}")
        return None, None


def decode_inline(value: str) -> Tuple[bytes, Optional[str]]:
    prefix, payload = _split_data_url(value.strip())
    # MIME-wrapped base64 carries line breaks
    payload = "".join(payload.split())
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ToolInputError(f"Image data is not valid base64: {e}") from e
    return data, prefix


def load_image(
    *,
    path: Optional[str] = None,
    data: Optional[str] = None,
    alt: Optional[str] = None,
) -> ImagePayload:
    """Build an ImagePayload from exactly one of ``path`` or inline ``data``."""
    if bool(path) == bool(data):
        raise ToolInputError("Each image needs either a path or inline data (but not both).")

    if path:
        file_path = Path(path).expanduser()
        if not file_path.is_file():
            raise ToolInputError(f"Image file not found: {path}")
        raw = file_path.read_bytes()
        mime_type = detect_mime_type(raw, filename=file_path.name)
    else:
        raw, prefix = decode_inline(data)
        mime_type = detect_mime_type(raw, declared=prefix)

    if not raw:
        raise ToolInputError("Image is empty.")
    if len(raw) > MAX_IMAGE_BYTES:
        raise ToolInputError(
            f"Image is {len(raw)} bytes; Bluesky accepts at most {MAX_IMAGE_BYTES} bytes per image."
        )

    width, height = _dimensions(raw)
    return ImagePayload(
        data=raw,
        mime_type=mime_type,
        alt=alt or "",
        width=width,
        height=height,
    )
