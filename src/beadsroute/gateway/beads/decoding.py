"""Canonical JSON decoders for bd output.

bd is inconsistent about the shape of list output: some commands print a
bare array, some wrap it as {"<plural>": [...]}, and some print null for an
empty list. Every list decoder here accepts all three shapes through
unwrap_array(). The raw gateway passes strict=True, which still reads null
as an empty list but rejects the wrapper.
"""

import json
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from beadsroute.gateway.beads.types import (
    DaemonHealth,
    DaemonStatus,
    DoctorCheck,
    DoctorReport,
    Formula,
    Gate,
    Issue,
    IssueDep,
    MergeSlotStatus,
    MolCurrentOutput,
    MoleculeProto,
    RepoStats,
    RepoStatsSummary,
    Slot,
    SwarmStatus,
    SwarmTask,
    SwarmWorker,
    SyncStatus,
)

T = TypeVar("T")


class DecodeError(ValueError):
    """bd printed something that does not have the expected shape."""


def load_json(raw: bytes | str) -> Any:
    """Parse bd stdout as JSON."""
    text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON from bd: {e}") from e


def unwrap_array(payload: Any, plural: str, *, strict: bool = False) -> list[Any]:
    """Return the list inside a bd list payload.

    Accepts a bare array, {"<plural>": [...]} and null. With strict=True the
    wrapper is rejected.
    """
    if isinstance(payload, list):
        return payload
    if payload is None:
        return []
    if strict:
        raise DecodeError(f"expected a JSON array, got {type(payload).__name__}")
    if isinstance(payload, Mapping) and plural in payload:
        inner = payload[plural]
        if inner is None:
            return []
        if isinstance(inner, list):
            return inner
    raise DecodeError(f"expected a JSON array or {{{plural!r}: [...]}}")


def decode_list(
    payload: Any,
    plural: str,
    decode_item: Callable[[Mapping[str, Any]], T],
    *,
    strict: bool = False,
) -> list[T]:
    items = unwrap_array(payload, plural, strict=strict)
    return [decode_item(_require_object(item)) for item in items]


def _require_object(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise DecodeError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _str_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    return tuple(str(item) for item in value)


def _optional_str(value: Any) -> str | None:
    # bd omits empty optional fields; treat "" the same as absent
    if value is None or value == "":
        return None
    return str(value)


def decode_issue_dep(data: Mapping[str, Any]) -> IssueDep:
    return IssueDep(
        id=data.get("id", ""),
        title=data.get("title", ""),
        status=data.get("status", ""),
        priority=int(data.get("priority", 0)),
        issue_type=data.get("issue_type", ""),
        assignee=_optional_str(data.get("assignee")),
        dependency_type=data.get("dependency_type", ""),
    )


def decode_issue(data: Mapping[str, Any]) -> Issue:
    """Decode one issue object as printed by show/list/create."""
    if "id" not in data:
        raise DecodeError("issue object has no 'id'")
    return Issue(
        id=data["id"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        status=data.get("status", ""),
        priority=int(data.get("priority", 0)),
        issue_type=data.get("issue_type", ""),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
        closed_at=_optional_str(data.get("closed_at")),
        created_by=data.get("created_by", "") or "",
        parent=_optional_str(data.get("parent")),
        assignee=_optional_str(data.get("assignee")),
        notes=data.get("notes", "") or "",
        labels=_str_tuple(data.get("labels")),
        children=_str_tuple(data.get("children")),
        depends_on=_str_tuple(data.get("depends_on")),
        blocks=_str_tuple(data.get("blocks")),
        blocked_by=_str_tuple(data.get("blocked_by")),
        dependency_count=int(data.get("dependency_count", 0)),
        dependent_count=int(data.get("dependent_count", 0)),
        blocked_by_count=int(data.get("blocked_by_count", 0)),
        dependencies=tuple(decode_issue_dep(d) for d in data.get("dependencies") or ()),
        dependents=tuple(decode_issue_dep(d) for d in data.get("dependents") or ()),
        hook_bead=data.get("hook_bead", "") or "",
        role_bead=data.get("role_bead", "") or "",
        agent_state=data.get("agent_state", "") or "",
        ephemeral=bool(data.get("ephemeral", False)),
    )


def decode_issues(payload: Any, *, plural: str = "issues", strict: bool = False) -> list[Issue]:
    return decode_list(payload, plural, decode_issue, strict=strict)


def decode_single_issue(payload: Any) -> Issue | None:
    """Decode show output: an array with zero or one element, or a bare object.

    Returns None for an empty array or null.
    """
    if payload is None:
        return None
    if isinstance(payload, list):
        if not payload:
            return None
        return decode_issue(_require_object(payload[0]))
    return decode_issue(_require_object(payload))


def decode_sync_status(data: Mapping[str, Any]) -> SyncStatus:
    return SyncStatus(
        branch=data.get("branch", ""),
        ahead=int(data.get("ahead", 0)),
        behind=int(data.get("behind", 0)),
        conflicts=_str_tuple(data.get("conflicts")),
    )


def decode_daemon_status(data: Mapping[str, Any]) -> DaemonStatus:
    return DaemonStatus(
        running=bool(data.get("running", False)),
        pid=int(data.get("pid", 0)),
        uptime=data.get("uptime", ""),
    )


def decode_daemon_health(data: Mapping[str, Any]) -> DaemonHealth:
    return DaemonHealth(
        status=data.get("status", ""),
        latency_ms=int(data.get("latency_ms", 0)),
        queue_size=int(data.get("queue_size", 0)),
    )


def decode_mol_current(data: Mapping[str, Any]) -> MolCurrentOutput:
    return MolCurrentOutput(
        id=data.get("id", ""),
        title=data.get("title", ""),
        status=data.get("status", ""),
        step_num=int(data.get("step_num", 0)),
        step_name=data.get("step_name", ""),
    )


def decode_proto(data: Mapping[str, Any]) -> MoleculeProto:
    return MoleculeProto(
        id=data.get("id", ""),
        name=data.get("name", ""),
        description=data.get("description", ""),
        steps=_str_tuple(data.get("steps")),
    )


def decode_gate(data: Mapping[str, Any]) -> Gate:
    return Gate(
        id=data.get("id", ""),
        status=data.get("status", ""),
        close_reason=data.get("close_reason", "") or "",
        waiters=_str_tuple(data.get("waiters")),
        opened_at=data.get("opened_at", "") or "",
        closed_at=data.get("closed_at", "") or "",
    )


def _decode_tasks(value: Any) -> tuple[SwarmTask, ...]:
    return tuple(
        SwarmTask(id=item.get("id", ""), title=item.get("title", "")) for item in value or ()
    )


def decode_swarm_status(data: Mapping[str, Any]) -> SwarmStatus:
    workers = tuple(
        SwarmWorker(id=w.get("id", ""), task=w.get("task", ""), status=w.get("status", ""))
        for w in data.get("workers") or ()
    )
    # "ready", "blocked" and "completed" are counts; task lists use the same
    # key only when bd prints them as arrays
    return SwarmStatus(
        id=data.get("id", ""),
        status=data.get("status", ""),
        total_tasks=int(data.get("total_tasks", 0)),
        completed=_count(data.get("completed")),
        in_progress=_count(data.get("in_progress")),
        blocked=_count(data.get("blocked")),
        ready=_count(data.get("ready")),
        workers=workers,
        ready_tasks=_decode_tasks(_list_or_none(data.get("ready"))),
        active_tasks=_decode_tasks(_list_or_none(data.get("active"))),
        blocked_tasks=_decode_tasks(_list_or_none(data.get("blocked"))),
        completed_tasks=_decode_tasks(_list_or_none(data.get("completed"))),
    )


def _count(value: Any) -> int:
    if isinstance(value, list):
        return len(value)
    if value is None:
        return 0
    return int(value)


def _list_or_none(value: Any) -> list[Any] | None:
    return value if isinstance(value, list) else None


def decode_formula(data: Mapping[str, Any]) -> Formula:
    return Formula(
        name=data.get("name", ""),
        description=data.get("description", ""),
        steps=_str_tuple(data.get("steps")),
        tracked=_str_tuple(data.get("tracked")),
    )


def decode_doctor_report(data: Mapping[str, Any]) -> DoctorReport:
    checks = tuple(
        DoctorCheck(
            name=c.get("name", ""),
            status=c.get("status", ""),
            message=c.get("message", "") or "",
        )
        for c in data.get("checks") or ()
    )
    return DoctorReport(
        status=data.get("status", ""),
        checks=checks,
        warnings=_str_tuple(data.get("warnings")),
        errors=_str_tuple(data.get("errors")),
    )


def decode_slot(data: Mapping[str, Any]) -> Slot:
    return Slot(
        id=data.get("id", ""),
        issue_id=data.get("issue_id", "") or "",
        agent=data.get("agent", "") or "",
        hooked_at=data.get("hooked_at", "") or "",
    )


def decode_merge_slot_status(data: Mapping[str, Any]) -> MergeSlotStatus:
    return MergeSlotStatus(
        id=data.get("id", "") or "",
        available=bool(data.get("available", False)),
        holder=data.get("holder", "") or "",
        waiters=_str_tuple(data.get("waiters")),
        error=data.get("error", "") or "",
    )


def decode_repo_stats(data: Mapping[str, Any]) -> RepoStats:
    summary = data.get("summary") or {}
    return RepoStats(
        summary=RepoStatsSummary(
            total_issues=int(summary.get("total_issues", 0)),
            open_issues=int(summary.get("open_issues", 0)),
            in_progress_issues=int(summary.get("in_progress_issues", 0)),
            closed_issues=int(summary.get("closed_issues", 0)),
            blocked_issues=int(summary.get("blocked_issues", 0)),
            deferred_issues=int(summary.get("deferred_issues", 0)),
            ready_issues=int(summary.get("ready_issues", 0)),
            tombstone_issues=int(summary.get("tombstone_issues", 0)),
            pinned_issues=int(summary.get("pinned_issues", 0)),
        ),
        issues_by_type=dict(data.get("issues_by_type") or {}),
        issues_by_status=dict(data.get("issues_by_status") or {}),
    )


def decode_object(payload: Any, decode: Callable[[Mapping[str, Any]], T]) -> T:
    """Decode a single-object payload with the given entity decoder."""
    return decode(_require_object(payload))
