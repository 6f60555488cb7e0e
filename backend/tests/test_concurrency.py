from __future__ import annotations

from types import SimpleNamespace

import pytest

from intranet.core.concurrency import bump_version, check_version, resolve_expected_version
from intranet.core.deps import expected_version
from intranet.core.exceptions import BadRequestError, VersionConflictError


def test_body_version_wins_over_header() -> None:
    assert resolve_expected_version(3, 5) == 3
    assert resolve_expected_version(None, 5) == 5
    assert resolve_expected_version(None, None) is None


def test_if_match_header_parsing() -> None:
    assert expected_version(None) is None
    assert expected_version('"4"') == 4
    assert expected_version('W/"7"') == 7
    assert expected_version("2") == 2
    with pytest.raises(BadRequestError):
        expected_version('"abc"')


def test_stale_version_conflicts_with_current_number() -> None:
    row = SimpleNamespace(version=4)

    check_version("page", row, None)
    check_version("page", row, 4)
    with pytest.raises(VersionConflictError) as excinfo:
        check_version("page", row, 3)

    assert excinfo.value.status_code == 409
    assert excinfo.value.current_version == 4
    assert excinfo.value.to_dict()["details"] == {"expected_version": 3, "current_version": 4}


def test_bump_version_increments() -> None:
    row = SimpleNamespace(version=1)
    assert bump_version(row) == 2
    assert row.version == 2
