"""Optimistic concurrency helpers for versioned rows."""

from __future__ import annotations

from typing import Any

from intranet.core.exceptions import VersionConflictError


def resolve_expected_version(body_version: int | None, header_version: int | None) -> int | None:
    """Body wins over the If-Match header when both are sent."""
    if body_version is not None:
        return body_version
    return header_version


def check_version(resource: str, row: Any, expected: int | None) -> None:
    if expected is None:
        return
    current = int(row.version or 0)
    if current != expected:
        raise VersionConflictError(resource, expected=expected, current=current)


def bump_version(row: Any) -> int:
    row.version = int(row.version or 0) + 1
    return row.version
