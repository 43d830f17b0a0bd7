"""Validation helpers for images attached to chat messages."""

import base64
import io
from typing import Optional, Tuple

from PIL import Image

from models.session_models import ImageAttachment

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}

_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

MAX_IMAGE_SIZE: Tuple[int, int] = (1568, 1568)


def _strip_data_url(image_b64: str) -> Tuple[str, Optional[str]]:
    """Split a `data:<mime>;base64,<payload>` string into payload and MIME type."""
    if image_b64.startswith("data:") and "," in image_b64:
        header, payload = image_b64.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0].strip().lower() or None
        return payload, mime
    return image_b64, None


def decode_image_attachment(
    image_b64: str,
    mime_type: Optional[str] = None,
    max_size: Tuple[int, int] = MAX_IMAGE_SIZE,
) -> ImageAttachment:
    """Decode, verify and if needed downscale a base64 image.

    Accepts raw base64 or a data URL. Images larger than `max_size` are
    re-encoded as JPEG within the bound, preserving aspect ratio.

    Raises:
        ValueError: If the payload is not valid base64, not an image, or an
            unsupported image type.
    """
    payload, url_mime = _strip_data_url((image_b64 or "").strip())
    if not payload:
        raise ValueError("Image payload is empty.")
    try:
        raw = base64.b64decode(payload, validate=True)
    except Exception as exc:
        raise ValueError("Invalid base64 image data provided") from exc

    try:
        src = Image.open(io.BytesIO(raw))
        src.load()
    except Exception as exc:
        raise ValueError("Decoded bytes are not a supported image format") from exc

    detected = _FORMAT_MIME.get(src.format or "")
    declared = (mime_type or url_mime or "").lower().split(";", 1)[0].strip()
    if detected is None or (declared and declared not in ALLOWED_IMAGE_TYPES):
        raise ValueError(f"Unsupported image type: '{declared or src.format}'")

    if src.width <= max_size[0] and src.height <= max_size[1]:
        return ImageAttachment(data=raw, mime_type=detected)

    if src.mode != "RGB":
        src = src.convert("RGB")
    src.thumbnail(max_size, Image.LANCZOS)
    out_io = io.BytesIO()
    src.save(out_io, format="JPEG", quality=90)
    return ImageAttachment(data=out_io.getvalue(), mime_type="image/jpeg")
