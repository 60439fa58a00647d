"""Data types for Beads (bd) operations.

Entities mirror bd's JSON output. All of them are frozen and hold tuples
rather than lists, so values handed out by any gateway cannot be used to
mutate gateway state.
"""

from dataclasses import dataclass, field

STATUS_OPEN = "open"
STATUS_IN_PROGRESS = "in_progress"
STATUS_CLOSED = "closed"
STATUS_HOOKED = "hooked"
STATUS_PINNED = "pinned"

# "open" as a list filter is a family of statuses, not a single value
OPEN_STATUS_FAMILY: frozenset[str] = frozenset(
    {STATUS_OPEN, STATUS_IN_PROGRESS, STATUS_HOOKED, STATUS_PINNED}
)

# Filter values that match every status
ALL_STATUSES_FILTER = "all"

DEP_TYPE_BLOCKS = "blocks"

# Type is stored both as issue_type and as a gt:<type> label
TYPE_LABEL_PREFIX = "gt:"

MIN_PRIORITY = 0
MAX_PRIORITY = 4


def status_matches(status_filter: str | None, status: str) -> bool:
    """Check whether an issue status satisfies a list/search status filter.

    None, "" and "all" match everything; "open" matches the open family;
    anything else must match exactly.
    """
    if not status_filter or status_filter == ALL_STATUSES_FILTER:
        return True
    if status_filter == STATUS_OPEN:
        return status in OPEN_STATUS_FAMILY
    return status == status_filter


def type_label(issue_type: str) -> str:
    """Return the label bd uses to tag an issue type (e.g. "gt:task")."""
    return f"{TYPE_LABEL_PREFIX}{issue_type}"


@dataclass(frozen=True)
class IssueDep:
    """A related issue as embedded in show output.

    Attributes:
        id: Related issue ID
        title: Related issue title
        status: Related issue status
        priority: Related issue priority
        issue_type: Related issue type
        assignee: Related issue assignee, None if unassigned
        dependency_type: Edge type ("blocks", "tracks", ...)
    """

    id: str
    title: str
    status: str
    priority: int
    issue_type: str
    assignee: str | None
    dependency_type: str


@dataclass(frozen=True)
class Issue:
    """A bead.

    Dependency fields are projections: show populates dependencies and
    dependents, list populates the counts, blocked populates blocked_by.
    Callers must not assume a field is filled outside the operation that
    fills it.
    """

    id: str
    title: str
    description: str
    status: str
    priority: int
    issue_type: str
    created_at: str
    updated_at: str
    closed_at: str | None = None
    created_by: str = ""
    parent: str | None = None
    assignee: str | None = None
    notes: str = ""
    labels: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    blocks: tuple[str, ...] = ()
    blocked_by: tuple[str, ...] = ()
    dependency_count: int = 0
    dependent_count: int = 0
    blocked_by_count: int = 0
    dependencies: tuple[IssueDep, ...] = ()
    dependents: tuple[IssueDep, ...] = ()
    hook_bead: str = ""
    role_bead: str = ""
    agent_state: str = ""
    ephemeral: bool = False


@dataclass(frozen=True)
class ListOptions:
    """Filters for list_issues().

    priority of None means no priority filter. all_statuses includes closed
    issues regardless of status.
    """

    status: str | None = None
    issue_type: str | None = None
    label: str | None = None
    labels: tuple[str, ...] = ()
    priority: int | None = None
    parent: str | None = None
    assignee: str | None = None
    no_assignee: bool = False
    limit: int | None = None
    all_statuses: bool = False


@dataclass(frozen=True)
class CreateOptions:
    """Fields for create() and create_with_id().

    actor falls back to the BD_ACTOR environment variable when empty.
    prefix, when given to create_with_id(), must match the ID's prefix.
    """

    title: str
    issue_type: str = "task"
    priority: int = 2
    description: str = ""
    parent: str | None = None
    actor: str = ""
    ephemeral: bool = False
    labels: tuple[str, ...] = ()
    prefix: str | None = None


@dataclass(frozen=True)
class UpdateOptions:
    """Fields for update(). None means "leave unchanged".

    set_labels replaces the whole label set and takes precedence over
    add_labels/remove_labels.
    """

    title: str | None = None
    status: str | None = None
    priority: int | None = None
    description: str | None = None
    assignee: str | None = None
    unassign: bool = False
    notes: str = ""
    add_labels: tuple[str, ...] = ()
    remove_labels: tuple[str, ...] = ()
    set_labels: tuple[str, ...] | None = None


@dataclass(frozen=True)
class CloseOptions:
    """Options for close_with_options(). An empty session falls back to the env."""

    reason: str = ""
    session: str = ""
    force: bool = False


@dataclass(frozen=True)
class DeleteOptions:
    """Options for delete_with_options(). Deletes are always hard."""

    force: bool = False


@dataclass(frozen=True)
class InitOptions:
    prefix: str = ""
    quiet: bool = True


@dataclass(frozen=True)
class MigrateOptions:
    update_repo_id: bool = False
    yes: bool = False


@dataclass(frozen=True)
class MolSeedOptions:
    patrol: bool = False


@dataclass(frozen=True)
class WispCreateOptions:
    """Options for wisp_create_with_options().

    Attributes:
        proto_id: Prototype (or formula) to instantiate
        actor: Actor recorded on the wisp
        variables: Template substitutions passed as --var key=value
    """

    proto_id: str
    actor: str = ""
    variables: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class SearchOptions:
    status: str | None = None
    issue_type: str | None = None
    limit: int | None = None


@dataclass(frozen=True)
class BurnOptions:
    """Cost record for burn()."""

    session_id: str = ""
    tokens: int = 0
    cost: float = 0.0
    model: str = ""


@dataclass(frozen=True)
class SyncStatus:
    branch: str
    ahead: int
    behind: int
    conflicts: tuple[str, ...]


@dataclass(frozen=True)
class DaemonStatus:
    running: bool
    pid: int = 0
    uptime: str = ""


@dataclass(frozen=True)
class DaemonHealth:
    status: str
    latency_ms: int
    queue_size: int


@dataclass(frozen=True)
class MolCurrentOutput:
    """The current step of a molecule."""

    id: str
    title: str
    status: str
    step_num: int
    step_name: str


@dataclass(frozen=True)
class MoleculeProto:
    id: str
    name: str
    description: str
    steps: tuple[str, ...]


@dataclass(frozen=True)
class Gate:
    """A synchronization gate. status is "open" or "closed"."""

    id: str
    status: str
    close_reason: str = ""
    waiters: tuple[str, ...] = ()
    opened_at: str = ""
    closed_at: str = ""


@dataclass(frozen=True)
class SwarmTask:
    id: str
    title: str


@dataclass(frozen=True)
class SwarmWorker:
    id: str
    task: str
    status: str


@dataclass(frozen=True)
class SwarmStatus:
    id: str
    status: str
    total_tasks: int = 0
    completed: int = 0
    in_progress: int = 0
    blocked: int = 0
    ready: int = 0
    workers: tuple[SwarmWorker, ...] = ()
    ready_tasks: tuple[SwarmTask, ...] = ()
    active_tasks: tuple[SwarmTask, ...] = ()
    blocked_tasks: tuple[SwarmTask, ...] = ()
    completed_tasks: tuple[SwarmTask, ...] = ()


@dataclass(frozen=True)
class Formula:
    name: str
    description: str
    steps: tuple[str, ...]
    tracked: tuple[str, ...] = ()


@dataclass(frozen=True)
class DoctorCheck:
    name: str
    status: str
    message: str = ""


@dataclass(frozen=True)
class DoctorReport:
    status: str
    checks: tuple[DoctorCheck, ...]
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class Slot:
    """Hook slot of an agent bead."""

    id: str
    issue_id: str
    agent: str
    hooked_at: str


@dataclass(frozen=True)
class MergeSlotStatus:
    """State of a rig's merge slot.

    error is "not found" when no slot has been created yet.
    """

    id: str
    available: bool
    holder: str = ""
    waiters: tuple[str, ...] = ()
    error: str = ""


@dataclass(frozen=True)
class RepoStatsSummary:
    total_issues: int = 0
    open_issues: int = 0
    in_progress_issues: int = 0
    closed_issues: int = 0
    blocked_issues: int = 0
    deferred_issues: int = 0
    ready_issues: int = 0
    tombstone_issues: int = 0
    pinned_issues: int = 0


@dataclass(frozen=True)
class RepoStats:
    summary: RepoStatsSummary
    issues_by_type: dict[str, int] = field(default_factory=dict)
    issues_by_status: dict[str, int] = field(default_factory=dict)
