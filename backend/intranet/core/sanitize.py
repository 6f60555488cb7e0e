"""Input sanitization helpers for request payloads and indexed text."""

from __future__ import annotations

import html
import re
import unicodedata
from typing import Iterable

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")
_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
_SLUG_RE = re.compile(r"[^a-z0-9_]+")


def _strip_control_chars(value: str, *, allow_newlines: bool) -> str:
    return "".join(
        ch
        for ch in value
        if (ch == "\n" and allow_newlines) or unicodedata.category(ch) != "Cc"
    )


def clean_text(value: str | None, *, allow_newlines: bool = False) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = _strip_control_chars(value, allow_newlines=allow_newlines).strip()
    if not allow_newlines:
        return _WHITESPACE_RE.sub(" ", value)
    value = "\n".join(line.strip() for line in value.split("\n"))
    return re.sub(r"\n{3,}", "\n\n", value)


def clean_single_line(value: str | None) -> str:
    return clean_text(value, allow_newlines=False)


def clean_multiline(value: str | None) -> str:
    return clean_text(value, allow_newlines=True)


def clean_optional(value: str | None) -> str | None:
    cleaned = clean_single_line(value)
    return cleaned or None


def clean_email(value: str | None) -> str:
    return clean_single_line(value).lower()


def clean_color(value: str | None, *, default: str = "#3b82f6") -> str:
    cleaned = clean_single_line(value)
    if not cleaned:
        return default
    if not _HEX_COLOR_RE.match(cleaned):
        raise ValueError("invalid_color")
    return cleaned.lower()


def clean_field_name(value: str | None) -> str:
    """Machine name for a custom form field (lowercase, underscores)."""
    slug = _SLUG_RE.sub("_", clean_single_line(value).lower()).strip("_")
    if not slug:
        raise ValueError("invalid_field_name")
    return slug


def strip_html(value: str | None) -> str:
    """Plain text from HTML content: tags removed, entities decoded, whitespace collapsed."""
    if not value:
        return ""
    text = _TAG_RE.sub(" ", value)
    return _WHITESPACE_RE.sub(" ", html.unescape(text)).strip()


def clean_list(
    values: Iterable[str] | str | None,
    *,
    max_items: int | None = None,
    item_max_length: int | None = None,
    allow_newlines: bool = False,
) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    cleaned: list[str] = []
    seen: set[str] = set()
    for item in values:
        if item is None:
            continue
        item_clean = clean_text(str(item), allow_newlines=allow_newlines)
        if not item_clean:
            continue
        if item_max_length and len(item_clean) > item_max_length:
            raise ValueError("item_too_long")
        key = item_clean.casefold()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(item_clean)
    if max_items is not None and len(cleaned) > max_items:
        raise ValueError("too_many_items")
    return cleaned
