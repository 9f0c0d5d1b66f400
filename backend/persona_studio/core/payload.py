"""Data-URI encoding of image payloads and export filenames."""
import base64
import binascii
import re
import time
from typing import Optional

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

DEFAULT_MIME_TYPE = "image/jpeg"


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(value: str) -> tuple[str, bytes]:
    """Split a data URI into (mime_type, raw bytes).

    A bare base64 string is accepted and treated as DEFAULT_MIME_TYPE.

    Raises:
        ValueError: When the payload is not valid base64.
    """
    match = _DATA_URI_RE.match(value)
    if match:
        mime_type, encoded = match.group("mime"), match.group("data")
    else:
        mime_type, encoded = DEFAULT_MIME_TYPE, value
    try:
        return mime_type, base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 image payload: {exc}") from exc


def is_image_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")


def story_image_filename(prefix: str, position: int) -> str:
    """Filename for the position-th (0-based) image of a batch: '<prefix>-<n>.png'."""
    return f"{prefix}-{position + 1}.png"


def reference_filename(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"influencer-reference-{now_ms}.png"
