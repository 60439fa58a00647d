"""In-memory fake implementation of BeadsOps for testing.

The fake models bd's observable behavior, quirks included, closely enough
that the conformance matrix passes identically against it and against
RealBeadsGateway.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path

from beadsroute.errors import BadArgumentError, NotARepoError, NotFoundError, UpstreamError
from beadsroute.gateway.beads.abc import BeadsDoubleControls, BeadsOps
from beadsroute.gateway.beads.types import (
    DEP_TYPE_BLOCKS,
    STATUS_CLOSED,
    STATUS_OPEN,
    BurnOptions,
    CloseOptions,
    CreateOptions,
    DaemonHealth,
    DaemonStatus,
    DeleteOptions,
    DoctorCheck,
    DoctorReport,
    Formula,
    Gate,
    InitOptions,
    Issue,
    IssueDep,
    ListOptions,
    MergeSlotStatus,
    MigrateOptions,
    MolCurrentOutput,
    MoleculeProto,
    MolSeedOptions,
    RepoStats,
    RepoStatsSummary,
    SearchOptions,
    Slot,
    SwarmStatus,
    SyncStatus,
    UpdateOptions,
    WispCreateOptions,
    status_matches,
    type_label,
)
from beadsroute.gateway.beads.validation import (
    check_bead_id,
    check_create,
    check_id_prefix,
    check_slot_name,
    check_update,
)
from beadsroute.gateway.time.abc import Time
from beadsroute.paths import extract_prefix

WISP_LABEL = "gt:wisp"
BONDED_LABEL = "gt:bonded"
BOND_DEP_TYPE = "bonded"
FORMULA_LABEL = "gt:formula"
STEP_LABEL = "gt:step"
SWARM_TYPE = "swarm"
EPIC_TYPE = "epic"
FORMULA_NAME_PREFIX = "mol-"

FAKE_VERSION = "1.0.0-double"
FAKE_DAEMON_PID = 12345
FAKE_DAEMON_UPTIME = "1h30m"
MERGE_SLOT_NOT_FOUND = "not found"

PRIME_CONTENT = """# Beads Workflow Context

Use `bd ready` to find unblocked work, `bd update <id> --status=in_progress`
to claim it, and `bd close <id>` when done.
"""


class ReadWriteLock:
    """Any number of concurrent readers, or one exclusive writer.

    Not reentrant: a holder must not acquire it again.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._readers > 0:
                self._condition.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


@dataclass(frozen=True)
class _Edge:
    target: str
    dep_type: str


@dataclass
class _MergeSlot:
    id: str
    holder: str = ""
    waiters: list[str] = field(default_factory=list)


@dataclass
class _Database:
    """State of one prefix's database.

    dependencies holds outgoing edges of issues in this database, whatever
    database the target lives in. dependents indexes incoming edges of
    issues in this database: target ID -> {source ID: edge type}.
    """

    prefix: str
    active: bool = True
    issues: dict[str, Issue] = field(default_factory=dict)
    sequence: dict[str, int] = field(default_factory=dict)
    next_id: int = 1
    dependencies: dict[str, list[_Edge]] = field(default_factory=dict)
    dependents: dict[str, dict[str, str]] = field(default_factory=dict)
    config: dict[str, str] = field(default_factory=dict)
    daemon_running: bool = False
    molecule_steps: dict[str, MolCurrentOutput] = field(default_factory=dict)
    prototypes: dict[str, MoleculeProto] = field(default_factory=dict)
    gates: dict[str, Gate] = field(default_factory=dict)
    swarms: dict[str, SwarmStatus] = field(default_factory=dict)
    formulas: dict[str, Formula] = field(default_factory=dict)
    sync: SyncStatus = field(
        default_factory=lambda: SyncStatus(branch="beads-sync", ahead=0, behind=0, conflicts=())
    )
    merge_slot: _MergeSlot | None = None


class FakeBeadsGateway(BeadsOps, BeadsDoubleControls):
    """In-memory fake implementation for testing.

    State Management:
    -----------------
    The fake holds one database per prefix plus a current prefix. create,
    create_with_id, list_issues, ready and blocked act on the current
    database. Every operation that takes a bead ID acts on the database named
    by the ID's prefix (falling back to the current one for unknown
    prefixes). set_work_dir() switches the current prefix when the directory
    was bound with configure_route().

    All state sits behind a single ReadWriteLock. Public methods take it once
    and call *_locked helpers. Returned Issue values are frozen.

    Mutation Tracking:
    -----------------
    - created_issue_ids: IDs created via create/create_with_id, in order
    - closed_issue_ids: IDs closed via any close variant, in order
    - deleted_issue_ids: IDs removed via delete variants or mol_burn
    """

    def __init__(
        self,
        *,
        time: Time,
        prefix: str = "gt",
        actor: str = "",
        issues: list[Issue] | None = None,
    ) -> None:
        """Create FakeBeadsGateway with pre-configured state.

        Args:
            time: Time abstraction for created_at/updated_at timestamps.
            prefix: Prefix of the initial, current database.
            actor: created_by for issues whose CreateOptions has no actor.
            issues: Issues to preload; each goes to the database of its prefix.
        """
        self._time = time
        self._actor = actor
        self._lock = ReadWriteLock()
        self._databases: dict[str, _Database] = {prefix: _Database(prefix=prefix)}
        self._current = prefix
        self._routes: dict[Path, str] = {}
        self._work_dir: Path | None = None
        self._sequence = 0
        self._created_issue_ids: list[str] = []
        self._closed_issue_ids: list[str] = []
        self._deleted_issue_ids: list[str] = []
        for issue in issues or ():
            self._preload_issue(issue)

    def _preload_issue(self, issue: Issue) -> None:
        db = self._ensure_db_locked(extract_prefix(issue.id) or self._current)
        self._store_locked(db, issue)
        suffix = issue.id[len(db.prefix) + 1 :]
        if suffix.isdigit():
            db.next_id = max(db.next_id, int(suffix) + 1)

    # === Mutation tracking ===

    @property
    def created_issue_ids(self) -> list[str]:
        return list(self._created_issue_ids)

    @property
    def closed_issue_ids(self) -> list[str]:
        return list(self._closed_issue_ids)

    @property
    def deleted_issue_ids(self) -> list[str]:
        return list(self._deleted_issue_ids)

    # === Test controls ===

    @property
    def current_prefix(self) -> str:
        with self._lock.read():
            return self._current

    @property
    def work_dir(self) -> Path | None:
        with self._lock.read():
            return self._work_dir

    def add_database(self, prefix: str) -> None:
        with self._lock.write():
            self._ensure_db_locked(prefix)

    def configure_route(self, work_dir: Path, prefix: str) -> None:
        with self._lock.write():
            self._ensure_db_locked(prefix)
            self._routes[work_dir] = prefix

    def set_work_dir(self, work_dir: Path) -> None:
        with self._lock.write():
            self._work_dir = work_dir
            prefix = self._routes.get(work_dir)
            if prefix is not None:
                self._current = prefix

    def set_current_prefix(self, prefix: str) -> None:
        with self._lock.write():
            self._ensure_db_locked(prefix)
            self._current = prefix

    def set_active(self, active: bool) -> None:
        with self._lock.write():
            self._current_db_locked().active = active

    def add_prototype(self, proto: MoleculeProto) -> None:
        with self._lock.write():
            self._current_db_locked().prototypes[proto.id] = proto

    def add_formula(self, formula: Formula) -> None:
        with self._lock.write():
            self._current_db_locked().formulas[formula.name] = formula

    def add_gate(self, gate: Gate) -> None:
        with self._lock.write():
            self._db_for_locked(gate.id).gates[gate.id] = gate

    def add_swarm(self, issue: Issue, status: SwarmStatus) -> None:
        with self._lock.write():
            db = self._db_for_locked(issue.id)
            self._store_locked(db, issue)
            db.swarms[issue.id] = status

    def set_daemon_running(self, running: bool) -> None:
        with self._lock.write():
            self._current_db_locked().daemon_running = running

    def set_sync_status(self, status: SyncStatus) -> None:
        with self._lock.write():
            self._current_db_locked().sync = status

    def set_molecule_step(self, molecule_id: str, step: MolCurrentOutput) -> None:
        with self._lock.write():
            self._db_for_locked(molecule_id).molecule_steps[molecule_id] = step

    def get_issue(self, bead_id: str) -> Issue | None:
        with self._lock.read():
            return self._lookup_locked(bead_id)

    def all_issues(self) -> list[Issue]:
        with self._lock.read():
            everything = [
                (db.sequence[issue.id], issue)
                for db in self._databases.values()
                for issue in db.issues.values()
            ]
        return [issue for _, issue in sorted(everything, key=lambda pair: pair[0])]

    # === Internal helpers (caller holds the lock) ===

    def _now(self) -> str:
        return self._time.now().isoformat()

    def _ensure_db_locked(self, prefix: str) -> _Database:
        db = self._databases.get(prefix)
        if db is None:
            db = _Database(prefix=prefix)
            self._databases[prefix] = db
        return db

    def _current_db_locked(self) -> _Database:
        return self._databases[self._current]

    def _active_current_db_locked(self) -> _Database:
        db = self._current_db_locked()
        if not db.active:
            raise NotARepoError(f"{db.prefix}: not a beads repository")
        return db

    def _db_for_locked(self, bead_id: str) -> _Database:
        """Database owning bead_id; the current one if the prefix is unknown."""
        db = self._databases.get(extract_prefix(bead_id))
        if db is None:
            return self._current_db_locked()
        return db

    def _active_db_for_locked(self, bead_id: str) -> _Database:
        db = self._db_for_locked(bead_id)
        if not db.active:
            raise NotARepoError(f"{db.prefix}: not a beads repository")
        return db

    def _lookup_locked(self, bead_id: str) -> Issue | None:
        return self._db_for_locked(bead_id).issues.get(bead_id)

    def _require_locked(self, bead_id: str) -> tuple[_Database, Issue]:
        db = self._active_db_for_locked(bead_id)
        issue = db.issues.get(bead_id)
        if issue is None:
            raise NotFoundError(f"issue {bead_id} not found")
        return db, issue

    def _store_locked(self, db: _Database, issue: Issue) -> None:
        if issue.id not in db.sequence:
            self._sequence += 1
            db.sequence[issue.id] = self._sequence
        db.issues[issue.id] = issue

    def _next_id_locked(self, db: _Database) -> str:
        bead_id = f"{db.prefix}-{db.next_id}"
        db.next_id += 1
        return bead_id

    def _touch_locked(self, db: _Database, issue: Issue, **changes: object) -> Issue:
        updated = replace(issue, updated_at=self._now(), **changes)
        db.issues[issue.id] = updated
        return updated

    def _add_child_locked(self, parent_id: str, child_id: str) -> None:
        parent_db = self._db_for_locked(parent_id)
        parent = parent_db.issues.get(parent_id)
        if parent is not None and child_id not in parent.children:
            parent_db.issues[parent_id] = replace(parent, children=(*parent.children, child_id))

    def _new_issue_locked(
        self,
        db: _Database,
        bead_id: str,
        *,
        title: str,
        issue_type: str,
        labels: tuple[str, ...],
        priority: int = 2,
        description: str = "",
        parent: str | None = None,
        created_by: str = "",
        ephemeral: bool = False,
    ) -> Issue:
        timestamp = self._now()
        issue = Issue(
            id=bead_id,
            title=title,
            description=description,
            status=STATUS_OPEN,
            priority=priority,
            issue_type=issue_type,
            created_at=timestamp,
            updated_at=timestamp,
            created_by=created_by,
            parent=parent,
            labels=tuple(dict.fromkeys(labels)),
            ephemeral=ephemeral,
        )
        self._store_locked(db, issue)
        if parent:
            self._add_child_locked(parent, bead_id)
        return issue

    def _create_locked(self, db: _Database, bead_id: str, options: CreateOptions) -> Issue:
        labels = (type_label(options.issue_type),) if options.issue_type else ()
        issue = self._new_issue_locked(
            db,
            bead_id,
            title=options.title,
            issue_type=options.issue_type,
            labels=(*labels, *options.labels),
            priority=options.priority,
            description=options.description,
            parent=options.parent,
            created_by=options.actor or self._actor,
            ephemeral=options.ephemeral,
        )
        self._created_issue_ids.append(bead_id)
        return issue

    def _blocking_targets_locked(self, db: _Database, bead_id: str) -> list[str]:
        """Targets of bead_id's "blocks" edges that are not closed."""
        blockers: list[str] = []
        for edge in db.dependencies.get(bead_id, []):
            if edge.dep_type != DEP_TYPE_BLOCKS:
                continue
            target = self._lookup_locked(edge.target)
            if target is not None and target.status != STATUS_CLOSED:
                blockers.append(edge.target)
        return blockers

    def _issue_dep_locked(self, issue: Issue, dep_type: str) -> IssueDep:
        return IssueDep(
            id=issue.id,
            title=issue.title,
            status=issue.status,
            priority=issue.priority,
            issue_type=issue.issue_type,
            assignee=issue.assignee,
            dependency_type=dep_type,
        )

    def _show_projection_locked(self, db: _Database, issue: Issue) -> Issue:
        edges = db.dependencies.get(issue.id, [])
        dependencies = []
        for edge in edges:
            target = self._lookup_locked(edge.target)
            if target is not None:
                dependencies.append(self._issue_dep_locked(target, edge.dep_type))
        dependents = []
        for source_id, dep_type in db.dependents.get(issue.id, {}).items():
            source = self._lookup_locked(source_id)
            if source is not None:
                dependents.append(self._issue_dep_locked(source, dep_type))
        return replace(
            issue,
            depends_on=tuple(edge.target for edge in edges),
            dependencies=tuple(dependencies),
            dependents=tuple(dependents),
        )

    def _list_projection_locked(self, db: _Database, issue: Issue) -> Issue:
        return replace(
            issue,
            dependency_count=len(db.dependencies.get(issue.id, [])),
            dependent_count=len(db.dependents.get(issue.id, {})),
        )

    def _remove_edge_locked(self, source_db: _Database, source_id: str, target_id: str) -> None:
        edges = source_db.dependencies.get(source_id, [])
        remaining = [edge for edge in edges if edge.target != target_id]
        if remaining:
            source_db.dependencies[source_id] = remaining
        else:
            source_db.dependencies.pop(source_id, None)
        target_index = self._db_for_locked(target_id).dependents.get(target_id)
        if target_index is not None:
            target_index.pop(source_id, None)

    def _delete_locked(self, bead_id: str) -> None:
        db = self._db_for_locked(bead_id)
        issue = db.issues.pop(bead_id, None)
        if issue is None:
            return
        db.sequence.pop(bead_id, None)
        for edge in list(db.dependencies.get(bead_id, [])):
            self._remove_edge_locked(db, bead_id, edge.target)
        for source_id in list(db.dependents.pop(bead_id, {})):
            self._remove_edge_locked(self._db_for_locked(source_id), source_id, bead_id)
        if issue.parent:
            parent_db = self._db_for_locked(issue.parent)
            parent = parent_db.issues.get(issue.parent)
            if parent is not None:
                children = tuple(c for c in parent.children if c != bead_id)
                parent_db.issues[parent.id] = replace(parent, children=children)
        self._deleted_issue_ids.append(bead_id)

    def _update_locked(self, bead_id: str, options: UpdateOptions) -> None:
        db, issue = self._require_locked(bead_id)
        changes: dict[str, object] = {}
        if options.title is not None:
            changes["title"] = options.title
        if options.status is not None:
            changes["status"] = options.status
            if options.status == STATUS_CLOSED and issue.status != STATUS_CLOSED:
                changes["closed_at"] = self._now()
            elif options.status != STATUS_CLOSED:
                changes["closed_at"] = None
        if options.priority is not None:
            changes["priority"] = options.priority
        if options.description is not None:
            changes["description"] = options.description
        if options.assignee is not None:
            changes["assignee"] = options.assignee or None
        if options.unassign:
            changes["assignee"] = None
        if options.notes:
            changes["notes"] = options.notes

        if options.set_labels is not None:
            changes["labels"] = tuple(dict.fromkeys(label for label in options.set_labels if label))
        else:
            labels = list(issue.labels)
            for label in options.add_labels:
                if label not in labels:
                    labels.append(label)
            labels = [label for label in labels if label not in options.remove_labels]
            changes["labels"] = tuple(labels)

        self._touch_locked(db, issue, **changes)

    def _close_locked(self, bead_ids: tuple[str, ...]) -> None:
        self._active_current_db_locked()
        for bead_id in bead_ids:
            db = self._db_for_locked(bead_id)
            issue = db.issues.get(bead_id)
            if issue is None:
                # bd close ignores IDs it cannot resolve
                continue
            closed_at = issue.closed_at if issue.status == STATUS_CLOSED else self._now()
            self._touch_locked(db, issue, status=STATUS_CLOSED, closed_at=closed_at)
            self._closed_issue_ids.append(bead_id)

    def _ready_locked(self) -> list[Issue]:
        db = self._active_current_db_locked()
        ready = [
            issue
            for issue in db.issues.values()
            if issue.status == STATUS_OPEN and not self._blocking_targets_locked(db, issue.id)
        ]
        ready.sort(key=lambda i: (-i.priority, i.created_at, db.sequence[i.id]))
        return ready

    def _merge_slot_status(self, slot: _MergeSlot) -> MergeSlotStatus:
        return MergeSlotStatus(
            id=slot.id,
            available=slot.holder == "",
            holder=slot.holder,
            waiters=tuple(slot.waiters),
        )

    # === Issue CRUD ===

    def list_issues(self, options: ListOptions) -> list[Issue]:
        with self._lock.read():
            db = self._active_current_db_locked()
            matches = [
                issue for issue in db.issues.values() if _list_filter_matches(issue, options)
            ]
            matches.sort(key=lambda i: (i.created_at, db.sequence[i.id]), reverse=True)
            if options.limit:
                matches = matches[: options.limit]
            return [self._list_projection_locked(db, issue) for issue in matches]

    def show(self, bead_id: str) -> Issue:
        check_bead_id(bead_id)
        with self._lock.read():
            db, issue = self._require_locked(bead_id)
            return self._show_projection_locked(db, issue)

    def show_multiple(self, bead_ids: list[str]) -> dict[str, Issue]:
        with self._lock.read():
            self._active_current_db_locked()
            result: dict[str, Issue] = {}
            for bead_id in bead_ids:
                issue = self._lookup_locked(bead_id)
                if issue is not None:
                    result[bead_id] = issue
            return result

    def create(self, options: CreateOptions) -> Issue:
        check_create(options)
        with self._lock.write():
            db = self._active_current_db_locked()
            return self._create_locked(db, self._next_id_locked(db), options)

    def create_with_id(self, bead_id: str, options: CreateOptions) -> Issue:
        check_create(options)
        check_id_prefix(bead_id, options.prefix)
        with self._lock.write():
            db = self._active_current_db_locked()
            check_id_prefix(bead_id, db.prefix)
            if bead_id in db.issues:
                raise UpstreamError(
                    ["create", f"--id={bead_id}"], f"issue {bead_id} already exists"
                )
            return self._create_locked(db, bead_id, options)

    def update(self, bead_id: str, options: UpdateOptions) -> None:
        check_bead_id(bead_id)
        check_update(options)
        with self._lock.write():
            self._update_locked(bead_id, options)

    def close(self, *bead_ids: str) -> None:
        with self._lock.write():
            self._close_locked(bead_ids)

    def close_with_reason(self, reason: str, *bead_ids: str) -> None:
        self.close_with_options(CloseOptions(reason=reason), *bead_ids)

    def close_with_options(self, options: CloseOptions, *bead_ids: str) -> None:
        # Reason, session and force only matter for bd's audit trail
        with self._lock.write():
            self._close_locked(bead_ids)

    def delete(self, *bead_ids: str) -> None:
        with self._lock.write():
            self._active_current_db_locked()
            for bead_id in bead_ids:
                self._delete_locked(bead_id)

    def delete_with_options(self, options: DeleteOptions, *bead_ids: str) -> None:
        self.delete(*bead_ids)

    def reopen(self, bead_id: str) -> None:
        check_bead_id(bead_id)
        with self._lock.write():
            db, issue = self._require_locked(bead_id)
            self._touch_locked(db, issue, status=STATUS_OPEN, closed_at=None)

    def release(self, bead_id: str) -> None:
        self.release_with_reason(bead_id, "")

    def release_with_reason(self, bead_id: str, reason: str) -> None:
        notes = f"Released: {reason}" if reason else ""
        self.update(bead_id, UpdateOptions(status=STATUS_OPEN, assignee="", notes=notes))

    # === Dependencies ===

    def ready(self) -> list[Issue]:
        with self._lock.read():
            return self._ready_locked()

    def ready_with_label(self, label: str, limit: int | None) -> list[Issue]:
        with self._lock.read():
            result = [issue for issue in self._ready_locked() if label in issue.labels]
        if limit:
            result = result[:limit]
        return result

    def blocked(self) -> list[Issue]:
        with self._lock.read():
            db = self._active_current_db_locked()
            result = []
            for issue in db.issues.values():
                if issue.status != STATUS_OPEN:
                    continue
                blockers = self._blocking_targets_locked(db, issue.id)
                if blockers:
                    result.append(
                        replace(issue, blocked_by=tuple(blockers), blocked_by_count=len(blockers))
                    )
            return result

    def add_dependency(self, bead_id: str, depends_on_id: str) -> None:
        self.add_dependency_with_type(bead_id, depends_on_id, DEP_TYPE_BLOCKS)

    def add_dependency_with_type(self, bead_id: str, depends_on_id: str, dep_type: str) -> None:
        with self._lock.write():
            source_db, _ = self._require_locked(bead_id)
            if self._lookup_locked(depends_on_id) is None:
                raise NotFoundError(f"issue {depends_on_id} not found")
            edges = source_db.dependencies.setdefault(bead_id, [])
            for index, edge in enumerate(edges):
                if edge.target == depends_on_id:
                    edges[index] = _Edge(target=depends_on_id, dep_type=dep_type)
                    break
            else:
                edges.append(_Edge(target=depends_on_id, dep_type=dep_type))
            target_db = self._db_for_locked(depends_on_id)
            target_db.dependents.setdefault(depends_on_id, {})[bead_id] = dep_type

    def remove_dependency(self, bead_id: str, depends_on_id: str) -> None:
        with self._lock.write():
            source_db, _ = self._require_locked(bead_id)
            self._remove_edge_locked(source_db, bead_id, depends_on_id)

    # === Sync ===

    def sync(self) -> None:
        with self._lock.write():
            db = self._active_current_db_locked()
            db.sync = replace(db.sync, ahead=0, behind=0, conflicts=())

    def sync_from_main(self) -> None:
        self.sync()

    def sync_import_only(self) -> None:
        with self._lock.write():
            db = self._active_current_db_locked()
            db.sync = replace(db.sync, behind=0, conflicts=())

    def get_sync_status(self) -> SyncStatus:
        with self._lock.read():
            return self._active_current_db_locked().sync

    # === Config & lifecycle ===

    def config_get(self, key: str) -> str:
        with self._lock.read():
            return self._active_current_db_locked().config.get(key, "")

    def config_set(self, key: str, value: str) -> None:
        with self._lock.write():
            self._active_current_db_locked().config[key] = value

    def init(self, options: InitOptions) -> None:
        with self._lock.write():
            if options.prefix:
                self._ensure_db_locked(options.prefix)
                self._current = options.prefix
            db = self._current_db_locked()
            db.active = True
            db.config["issue_prefix"] = db.prefix

    def migrate(self, options: MigrateOptions) -> None:
        with self._lock.write():
            self._active_current_db_locked()

    def is_beads_repo(self) -> bool:
        with self._lock.read():
            return self._current_db_locked().active

    # === Daemon ===

    def daemon_start(self) -> None:
        with self._lock.write():
            self._current_db_locked().daemon_running = True

    def daemon_stop(self) -> None:
        with self._lock.write():
            self._current_db_locked().daemon_running = False

    def daemon_status(self) -> DaemonStatus:
        with self._lock.read():
            running = self._current_db_locked().daemon_running
        if not running:
            return DaemonStatus(running=False)
        return DaemonStatus(running=True, pid=FAKE_DAEMON_PID, uptime=FAKE_DAEMON_UPTIME)

    def daemon_health(self) -> DaemonHealth:
        with self._lock.read():
            running = self._current_db_locked().daemon_running
        if not running:
            raise UpstreamError(["daemon", "health", "--json"], "daemon not running")
        return DaemonHealth(status="healthy", latency_ms=5, queue_size=0)

    # === Molecules ===

    def mol_seed(self, options: MolSeedOptions) -> None:
        with self._lock.write():
            self._active_current_db_locked()

    def mol_current(self, molecule_id: str) -> MolCurrentOutput:
        with self._lock.read():
            step = self._active_db_for_locked(molecule_id).molecule_steps.get(molecule_id)
        if step is None:
            raise NotFoundError(f"molecule {molecule_id} not found")
        return step

    def mol_catalog(self) -> list[MoleculeProto]:
        with self._lock.read():
            return list(self._active_current_db_locked().prototypes.values())

    def wisp_create(self, proto_id: str, actor: str) -> Issue:
        return self.wisp_create_with_options(WispCreateOptions(proto_id=proto_id, actor=actor))

    def wisp_create_with_options(self, options: WispCreateOptions) -> Issue:
        variables = dict(options.variables)
        with self._lock.write():
            db = self._active_current_db_locked()
            proto = db.prototypes.get(options.proto_id)
            if proto is None:
                raise NotFoundError(f"prototype {options.proto_id} not found")
            return self._new_issue_locked(
                db,
                self._next_id_locked(db),
                title=variables.get("feature", f"{proto.name} wisp"),
                issue_type="",
                labels=(WISP_LABEL,),
                created_by=options.actor,
                ephemeral=True,
            )

    def wisp_list(self, all_: bool) -> list[Issue]:
        with self._lock.read():
            db = self._active_current_db_locked()
            return [
                issue
                for issue in db.issues.values()
                if WISP_LABEL in issue.labels and (all_ or issue.status != STATUS_CLOSED)
            ]

    def wisp_gc(self) -> None:
        with self._lock.write():
            db = self._active_current_db_locked()
            closed_wisps = [
                issue.id
                for issue in db.issues.values()
                if WISP_LABEL in issue.labels and issue.status == STATUS_CLOSED
            ]
            for bead_id in closed_wisps:
                self._delete_locked(bead_id)

    def mol_bond(self, wisp_id: str, bead_id: str) -> Issue:
        with self._lock.write():
            wisp_db, wisp = self._require_locked(wisp_id)
            bead = self._lookup_locked(bead_id)
            if bead is None:
                raise NotFoundError(f"bead {bead_id} not found")
            labels = wisp.labels if BONDED_LABEL in wisp.labels else (*wisp.labels, BONDED_LABEL)
            wisp = self._touch_locked(wisp_db, wisp, labels=labels)
            edges = wisp_db.dependencies.setdefault(wisp_id, [])
            if all(edge.target != bead_id for edge in edges):
                edges.append(_Edge(target=bead_id, dep_type=BOND_DEP_TYPE))
                target_index = self._db_for_locked(bead_id).dependents.setdefault(bead_id, {})
                target_index[wisp_id] = BOND_DEP_TYPE
            return replace(wisp, parent=bead.id)

    def mol_burn(self, *bead_ids: str) -> None:
        with self._lock.write():
            self._active_current_db_locked()
            for bead_id in bead_ids:
                self._delete_locked(bead_id)

    # === Gates ===

    def _require_gate_locked(self, gate_id: str) -> tuple[_Database, Gate]:
        db = self._active_db_for_locked(gate_id)
        gate = db.gates.get(gate_id)
        if gate is None:
            raise NotFoundError(f"gate {gate_id} not found")
        return db, gate

    def gate_show(self, gate_id: str) -> Gate:
        with self._lock.read():
            return self._require_gate_locked(gate_id)[1]

    def gate_wait(self, gate_id: str, notify_agent: str) -> None:
        with self._lock.write():
            db, gate = self._require_gate_locked(gate_id)
            if gate.status == STATUS_OPEN:
                return
            if notify_agent:
                db.gates[gate_id] = replace(gate, waiters=(*gate.waiters, notify_agent))

    def gate_list(self, all_: bool) -> list[Gate]:
        with self._lock.read():
            db = self._active_current_db_locked()
            return [gate for gate in db.gates.values() if all_ or gate.status != STATUS_CLOSED]

    def gate_resolve(self, gate_id: str) -> None:
        with self._lock.write():
            db, gate = self._require_gate_locked(gate_id)
            db.gates[gate_id] = replace(gate, status=STATUS_CLOSED, closed_at=self._now())

    def gate_add_waiter(self, gate_id: str, waiter: str) -> None:
        with self._lock.write():
            db, gate = self._require_gate_locked(gate_id)
            db.gates[gate_id] = replace(gate, waiters=(*gate.waiters, waiter))

    def gate_check(self) -> None:
        with self._lock.write():
            self._active_current_db_locked()

    # === Swarms ===

    def _require_epic_locked(self, epic_id: str) -> tuple[_Database, Issue]:
        db, epic = self._require_locked(epic_id)
        if epic.issue_type != EPIC_TYPE:
            raise UpstreamError(["swarm", epic_id], f"issue {epic_id} is not an epic")
        return db, epic

    def swarm_status(self, swarm_id: str) -> SwarmStatus:
        with self._lock.read():
            status = self._active_db_for_locked(swarm_id).swarms.get(swarm_id)
        if status is None:
            raise NotFoundError(f"swarm {swarm_id} not found")
        return status

    def swarm_create(self, epic_id: str) -> Issue:
        with self._lock.write():
            db, epic = self._require_epic_locked(epic_id)
            swarm = self._new_issue_locked(
                db,
                self._next_id_locked(db),
                title=f"Swarm: {epic.title}",
                issue_type=SWARM_TYPE,
                labels=(type_label(SWARM_TYPE),),
                parent=epic_id,
            )
            db.swarms[swarm.id] = SwarmStatus(id=swarm.id, status="active")
            return swarm

    def swarm_list(self) -> list[Issue]:
        with self._lock.read():
            db = self._active_current_db_locked()
            return [issue for issue in db.issues.values() if issue.issue_type == SWARM_TYPE]

    def swarm_validate(self, epic_id: str) -> None:
        with self._lock.read():
            self._require_epic_locked(epic_id)

    # === Formulas ===

    def _find_formula_locked(self, name: str) -> Formula:
        formulas = self._active_current_db_locked().formulas
        formula = formulas.get(name) or formulas.get(f"{FORMULA_NAME_PREFIX}{name}")
        if formula is None:
            raise NotFoundError(f"formula {name} not found")
        return formula

    def formula_show(self, name: str) -> Formula:
        with self._lock.read():
            return self._find_formula_locked(name)

    def formula_list(self) -> list[Formula]:
        with self._lock.read():
            return list(self._active_current_db_locked().formulas.values())

    def cook(self, formula_name: str) -> Issue:
        with self._lock.write():
            formula = self._find_formula_locked(formula_name)
            db = self._current_db_locked()
            return self._new_issue_locked(
                db,
                self._next_id_locked(db),
                title=f"{formula.name} instance",
                issue_type="",
                labels=(FORMULA_LABEL, f"formula:{formula.name}"),
            )

    def leg_add(self, formula_id: str, step_name: str) -> None:
        with self._lock.write():
            db, _ = self._require_locked(formula_id)
            self._new_issue_locked(
                db,
                self._next_id_locked(db),
                title=step_name,
                issue_type="",
                labels=(STEP_LABEL,),
                parent=formula_id,
            )

    # === Agents, labels, comments ===

    def agent_state(self, bead_id: str, state: str) -> None:
        with self._lock.write():
            db, issue = self._require_locked(bead_id)
            self._touch_locked(db, issue, agent_state=state)

    def label_add(self, bead_id: str, label: str) -> None:
        with self._lock.write():
            db, issue = self._require_locked(bead_id)
            if label not in issue.labels:
                self._touch_locked(db, issue, labels=(*issue.labels, label))

    def label_remove(self, bead_id: str, label: str) -> None:
        with self._lock.write():
            db, issue = self._require_locked(bead_id)
            if label in issue.labels:
                labels = tuple(existing for existing in issue.labels if existing != label)
                self._touch_locked(db, issue, labels=labels)

    def comment(self, bead_id: str, message: str) -> None:
        with self._lock.write():
            db, issue = self._require_locked(bead_id)
            if issue.description:
                description = f"{issue.description}\n\n---\n{message}"
            else:
                description = message
            self._touch_locked(db, issue, description=description)

    # === Slots ===

    def slot_show(self, bead_id: str) -> Slot:
        with self._lock.read():
            _, issue = self._require_locked(bead_id)
        return Slot(
            id=bead_id,
            issue_id=issue.hook_bead,
            agent=issue.assignee or "",
            hooked_at=issue.updated_at,
        )

    def slot_set(self, agent_id: str, slot_name: str, bead_id: str) -> None:
        check_slot_name(slot_name)
        with self._lock.write():
            db, agent = self._require_locked(agent_id)
            if self._lookup_locked(bead_id) is None:
                raise NotFoundError(f"issue {bead_id} not found")
            field_name = _slot_field(slot_name)
            self._touch_locked(db, agent, **{field_name: bead_id})

    def slot_clear(self, agent_id: str, slot_name: str) -> None:
        check_slot_name(slot_name)
        with self._lock.write():
            db, agent = self._require_locked(agent_id)
            self._touch_locked(db, agent, **{_slot_field(slot_name): ""})

    def merge_slot_create(self) -> str:
        with self._lock.write():
            db = self._active_current_db_locked()
            if db.merge_slot is None:
                db.merge_slot = _MergeSlot(id=f"{db.prefix}-merge-slot")
            return db.merge_slot.id

    def merge_slot_check(self) -> MergeSlotStatus:
        with self._lock.read():
            slot = self._active_current_db_locked().merge_slot
            if slot is None:
                return MergeSlotStatus(id="", available=False, error=MERGE_SLOT_NOT_FOUND)
            return self._merge_slot_status(slot)

    def merge_slot_acquire(self, holder: str, add_waiter: bool) -> MergeSlotStatus:
        if not holder:
            raise BadArgumentError("merge slot holder must not be empty")
        with self._lock.write():
            slot = self._active_current_db_locked().merge_slot
            if slot is None:
                raise NotFoundError("merge slot not found")
            if slot.holder == "":
                slot.holder = holder
                if holder in slot.waiters:
                    slot.waiters.remove(holder)
            elif slot.holder != holder and add_waiter and holder not in slot.waiters:
                slot.waiters.append(holder)
            return self._merge_slot_status(slot)

    def merge_slot_release(self, holder: str) -> None:
        with self._lock.write():
            slot = self._active_current_db_locked().merge_slot
            if slot is None:
                raise NotFoundError("merge slot not found")
            if slot.holder != holder:
                raise UpstreamError(
                    ["merge-slot", "release", f"--holder={holder}"],
                    f"merge slot is held by {slot.holder or 'nobody'}, not {holder}",
                )
            slot.holder = ""

    def merge_slot_ensure_exists(self) -> str:
        return self.merge_slot_create()

    # === Search, stats, housekeeping ===

    def search(self, query: str, options: SearchOptions) -> list[Issue]:
        needle = query.lower()
        with self._lock.read():
            db = self._active_current_db_locked()
            results = []
            for issue in db.issues.values():
                if not status_matches(options.status, issue.status):
                    continue
                if options.issue_type and issue.issue_type != options.issue_type:
                    continue
                if needle in issue.title.lower() or needle in issue.description.lower():
                    results.append(issue)
                if options.limit and len(results) >= options.limit:
                    break
            return results

    def version(self) -> str:
        return FAKE_VERSION

    def doctor(self) -> DoctorReport:
        with self._lock.read():
            self._active_current_db_locked()
        return DoctorReport(
            status="healthy",
            checks=(
                DoctorCheck(name="database", status="ok"),
                DoctorCheck(name="sync", status="ok"),
            ),
        )

    def prime(self) -> str:
        with self._lock.read():
            self._active_current_db_locked()
        return PRIME_CONTENT

    def stats(self) -> str:
        summary = self.stats_json().summary
        return (
            f"Total: {summary.total_issues}, Open: {summary.open_issues}, "
            f"Closed: {summary.closed_issues}"
        )

    def stats_json(self) -> RepoStats:
        with self._lock.read():
            issues = list(self._active_current_db_locked().issues.values())
        by_type: dict[str, int] = {}
        by_status: dict[str, int] = {}
        for issue in issues:
            by_status[issue.status] = by_status.get(issue.status, 0) + 1
            if issue.issue_type:
                by_type[issue.issue_type] = by_type.get(issue.issue_type, 0) + 1
        closed = by_status.get(STATUS_CLOSED, 0)
        return RepoStats(
            summary=RepoStatsSummary(
                total_issues=len(issues),
                open_issues=len(issues) - closed,
                in_progress_issues=by_status.get("in_progress", 0),
                closed_issues=closed,
                pinned_issues=by_status.get("pinned", 0),
            ),
            issues_by_type=by_type,
            issues_by_status=by_status,
        )

    def flush(self) -> None:
        return None

    def burn(self, options: BurnOptions) -> None:
        with self._lock.read():
            self._active_current_db_locked()

    def run(self, *args: str) -> bytes:
        raise UpstreamError(list(args), "raw bd commands are not available in the fake")


def _list_filter_matches(issue: Issue, options: ListOptions) -> bool:
    if not options.all_statuses and not status_matches(options.status, issue.status):
        return False
    if options.issue_type and type_label(options.issue_type) not in issue.labels:
        if issue.issue_type != options.issue_type:
            return False
    if options.label and options.label not in issue.labels:
        return False
    if any(label not in issue.labels for label in options.labels):
        return False
    if options.priority is not None and issue.priority != options.priority:
        return False
    if options.parent and issue.parent != options.parent:
        return False
    if options.assignee and issue.assignee != options.assignee:
        return False
    if options.no_assignee and issue.assignee is not None:
        return False
    return True


def _slot_field(slot_name: str) -> str:
    return "hook_bead" if slot_name == "hook" else "role_bead"
