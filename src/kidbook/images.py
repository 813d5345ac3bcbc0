"""Image helpers: base64 data-URI encoding and the illustration style suffix.

Page illustrations travel through the studio as ``data:<mime>;base64,<data>``
strings so they can be stored on a page, re-sent for editing, and written
into archives without touching the filesystem.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import re
from pathlib import Path

from kidbook.config import DEFAULT_STYLE_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def to_data_uri(data: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    """Encode raw image bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into ``(mime_type, raw_bytes)``.

    Raises:
        ValueError: If ``uri`` is not a base64 data URI.
    """
    match = _DATA_URI_RE.match(uri.strip())
    if match is None:
        raise ValueError("Not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc
    return match.group("mime"), data


def data_uri_payload(uri: str) -> bytes:
    """Return only the decoded bytes of a data URI."""
    return parse_data_uri(uri)[1]


def load_image_file(path: Path) -> str:
    """Read an image file from disk and return it as a data URI."""
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        logger.warning("Unrecognized image type for %s, assuming %s", path, DEFAULT_MIME_TYPE)
        mime_type = DEFAULT_MIME_TYPE
    return to_data_uri(path.read_bytes(), mime_type)


def apply_style(prompt: str, style_suffix: str = DEFAULT_STYLE_SUFFIX) -> str:
    """Append the fixed illustration style to an image instruction."""
    return f"{prompt.rstrip().rstrip('.')}. {style_suffix}"
