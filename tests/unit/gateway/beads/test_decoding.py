"""Tests for bd JSON decoding."""

import pytest

from beadsroute.gateway.beads.decoding import (
    DecodeError,
    decode_issue,
    decode_issues,
    decode_merge_slot_status,
    decode_object,
    decode_repo_stats,
    decode_single_issue,
    decode_swarm_status,
    load_json,
    unwrap_array,
)

ISSUE_JSON = {
    "id": "gt-1",
    "title": "Fix login",
    "description": "",
    "status": "open",
    "priority": 1,
    "issue_type": "bug",
    "created_at": "2024-01-15T14:30:00Z",
    "updated_at": "2024-01-15T14:30:00Z",
    "labels": ["gt:bug"],
    "assignee": "",
    "dependencies": [
        {
            "id": "gt-2",
            "title": "Schema",
            "status": "open",
            "priority": 2,
            "issue_type": "task",
            "dependency_type": "blocks",
        }
    ],
}


class TestUnwrapArray:
    def test_bare_array(self) -> None:
        assert unwrap_array([1, 2], "issues") == [1, 2]

    def test_null_is_empty(self) -> None:
        assert unwrap_array(None, "issues") == []

    def test_wrapped_array(self) -> None:
        assert unwrap_array({"issues": [1]}, "issues") == [1]

    def test_wrapped_null_is_empty(self) -> None:
        assert unwrap_array({"gates": None}, "gates") == []

    def test_wrong_key(self) -> None:
        with pytest.raises(DecodeError):
            unwrap_array({"other": []}, "issues")

    def test_strict_rejects_wrapper(self) -> None:
        """The raw gateway sees bd's wrapper shape as an error."""
        with pytest.raises(DecodeError):
            unwrap_array({"issues": []}, "issues", strict=True)

    def test_strict_reads_null_as_empty(self) -> None:
        assert unwrap_array(None, "issues", strict=True) == []


def test_load_json_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        load_json(b"Error: something")


def test_load_json_accepts_bytes_and_str() -> None:
    assert load_json(b'{"a": 1}') == {"a": 1}
    assert load_json("[]") == []


def test_decode_issue_normalizes_empty_optional_fields() -> None:
    """bd prints "" for unset optional fields; they decode to None."""
    issue = decode_issue(ISSUE_JSON)

    assert issue.assignee is None
    assert issue.parent is None
    assert issue.closed_at is None
    assert issue.labels == ("gt:bug",)
    assert issue.dependencies[0].id == "gt-2"
    assert issue.dependencies[0].assignee is None


def test_decode_issue_requires_id() -> None:
    with pytest.raises(DecodeError):
        decode_issue({"title": "no id"})


def test_decode_issues_wrapped_and_bare_agree() -> None:
    assert decode_issues([ISSUE_JSON]) == decode_issues({"issues": [ISSUE_JSON]})


def test_decode_issues_rejects_non_objects() -> None:
    with pytest.raises(DecodeError):
        decode_issues(["gt-1"])


def test_decode_single_issue_shapes() -> None:
    assert decode_single_issue([]) is None
    assert decode_single_issue(None) is None
    from_array = decode_single_issue([ISSUE_JSON])
    from_object = decode_single_issue(ISSUE_JSON)

    assert from_array is not None
    assert from_array == from_object


def test_decode_swarm_status_counts_and_lists() -> None:
    """Count fields may arrive as numbers or as task arrays."""
    status = decode_swarm_status(
        {
            "id": "gt-s1",
            "status": "active",
            "total_tasks": 3,
            "ready": [{"id": "gt-1", "title": "A"}],
            "blocked": 2,
            "workers": [{"id": "w1", "task": "gt-1", "status": "working"}],
        }
    )

    assert status.ready == 1
    assert status.ready_tasks[0].id == "gt-1"
    assert status.blocked == 2
    assert status.blocked_tasks == ()
    assert status.workers[0].task == "gt-1"


def test_decode_merge_slot_status_error_field() -> None:
    status = decode_merge_slot_status({"error": "not found"})

    assert status.error == "not found"
    assert status.available is False


def test_decode_repo_stats_missing_summary() -> None:
    stats = decode_repo_stats({})

    assert stats.summary.total_issues == 0
    assert stats.issues_by_type == {}


def test_decode_object_rejects_array() -> None:
    with pytest.raises(DecodeError):
        decode_object([], decode_repo_stats)
