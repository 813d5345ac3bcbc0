"""Parsing helpers for structured (JSON) model output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from kidbook.errors import MalformedResponseError

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences and surrounding prose from JSON output.

    Structured-output mode normally returns bare JSON, but search-grounded
    calls sometimes wrap it in a ```json block or add a preamble.
    """
    text = text.strip()
    match = _JSON_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    # Earliest opening delimiter wins
    starts = [(text.find(open_ch), open_ch, close_ch) for open_ch, close_ch in (("{", "}"), ("[", "]"))]
    starts = sorted(s for s in starts if s[0] != -1)
    for start, _open_ch, close_ch in starts:
        end = text.rfind(close_ch)
        if end > start:
            return text[start : end + 1]

    return text


def parse_structured(text: str | None, target: Any, *, label: str) -> Any:
    """Parse model output as JSON and validate it against ``target``.

    Args:
        text: Raw response text (may be None when the model returned nothing).
        target: A pydantic model class or typing form such as ``list[Model]``.
        label: Operation name used in log lines and error messages.

    Raises:
        MalformedResponseError: If the text is empty, not JSON, or does not
            match ``target``.
    """
    if not text or not text.strip():
        raise MalformedResponseError(f"Empty response ({label})")

    try:
        data = json.loads(strip_json_fences(text))
    except json.JSONDecodeError as exc:
        logger.debug("Unparseable %s response: %s", label, text[:300])
        raise MalformedResponseError(f"Response is not valid JSON ({label})") from exc

    try:
        return TypeAdapter(target).validate_python(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Response does not match the expected shape ({label}): "
            f"{exc.error_count()} error(s)"
        ) from exc
