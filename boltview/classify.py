"""Value classification: JSON, UTF-8 text, or binary."""

import json
import math
from dataclasses import dataclass
from typing import Any, Literal

from .hexdump import dump

ValueKind = Literal["JSON", "Text", "Binary"]

TEXT_PREVIEW_CHARS = 1000
HEX_PREVIEW_BYTES = 256
MAX_TEXT_SCAN = 1024 * 1024
TRUNCATION_MARKER = "\n... (truncated)"


@dataclass(frozen=True)
class ClassifiedValue:
    """A raw value with its detected kind and display forms."""

    key: str
    size: int
    kind: ValueKind
    value: Any
    preview: str
    is_binary: bool

    @property
    def is_json(self) -> bool:
        return self.kind == "JSON"


def is_text(data: bytes) -> bool:
    """True for non-empty, NUL-free, valid UTF-8 no larger than 1 MiB."""
    if not data or len(data) > MAX_TEXT_SCAN or b"\x00" in data:
        return False
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if math.isinf(value):
        raise ValueError(f"number out of range: {literal}")
    return value


def parse_json(data: bytes) -> tuple[bool, Any]:
    """Parse a complete JSON document, returning ``(ok, value)``."""
    try:
        text = data.decode("utf-8")
        return True, json.loads(
            text, parse_constant=_reject_constant, parse_float=_finite_float
        )
    except (ValueError, RecursionError):
        return False, None


def _truncate(text: str, limit: int | None) -> str:
    if limit is None or len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def _format_json(document: Any) -> str:
    formatted = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
    try:
        formatted.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates from \u escapes cannot be encoded; keep them escaped.
        formatted = json.dumps(document, indent=2, sort_keys=True)
    return formatted


def classify(
    data: bytes,
    *,
    key: str = "",
    full: bool = False,
    text_limit: int | None = TEXT_PREVIEW_CHARS,
    hex_limit: int | None = HEX_PREVIEW_BYTES,
) -> ClassifiedValue:
    """Classify a raw value; the first matching rule wins.

    1. A complete JSON document is ``JSON``; the preview is the document
       re-serialized with two-space indentation.
    2. Empty, oversized, NUL-bearing or non-UTF-8 data is ``Binary``;
       the preview is a hex dump.
    3. Anything else is ``Text``.

    Args:
        data: The raw value bytes.
        key: The key the value was stored under.
        full: Disable all preview truncation.
        text_limit: Character budget for JSON and text previews, None
            for unbounded.
        hex_limit: Byte budget for hex previews, None for unbounded.
    """
    if full:
        text_limit = hex_limit = None

    ok, document = parse_json(data)
    if ok:
        formatted = _format_json(document)
        return ClassifiedValue(
            key=key,
            size=len(data),
            kind="JSON",
            value=document,
            preview=_truncate(formatted, text_limit),
            is_binary=False,
        )

    if not is_text(data):
        return ClassifiedValue(
            key=key,
            size=len(data),
            kind="Binary",
            value=f"<{len(data)} bytes binary data>",
            preview=dump(data, hex_limit),
            is_binary=True,
        )

    text = data.decode("utf-8")
    return ClassifiedValue(
        key=key,
        size=len(data),
        kind="Text",
        value=text,
        preview=_truncate(text, text_limit),
        is_binary=False,
    )
