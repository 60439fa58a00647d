"""Abstract interfaces for Beads (bd) operations.

BeadsOps is the full capability surface of bd as used by the town. It has
three implementations:

- RealBeadsGateway: shells out to bd and works around its routing bugs
- RawBeadsGateway: shells out to bd with no workarounds (diagnostic)
- FakeBeadsGateway: in-memory model of bd's observable behavior

BeadsDoubleControls is the extra, test-only surface of the fake. Test code
that needs to install fixtures takes it as a separate handle instead of
checking which BeadsOps implementation it was given.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from beadsroute.gateway.beads.types import (
    BurnOptions,
    CloseOptions,
    CreateOptions,
    DaemonHealth,
    DaemonStatus,
    DeleteOptions,
    DoctorReport,
    Formula,
    Gate,
    InitOptions,
    Issue,
    ListOptions,
    MergeSlotStatus,
    MigrateOptions,
    MolCurrentOutput,
    MoleculeProto,
    MolSeedOptions,
    RepoStats,
    SearchOptions,
    Slot,
    SwarmStatus,
    SyncStatus,
    UpdateOptions,
    WispCreateOptions,
)


class BeadsOps(ABC):
    """Every bd operation the town relies on.

    Operations that take a bead ID must act on the database that owns the
    ID's prefix, whatever the working directory of the handle.

    Errors are raised as the kinds in beadsroute.errors: NotInstalledError,
    NotFoundError, NotARepoError, RoutingError, BadArgumentError and
    UpstreamError.
    """

    # === Issue CRUD ===

    @abstractmethod
    def list_issues(self, options: ListOptions) -> list[Issue]:
        """List issues of the current database, newest first.

        Status "open" matches open, in_progress, hooked and pinned. Results
        carry dependency counts but not blocked_by.
        """
        ...

    @abstractmethod
    def show(self, bead_id: str) -> Issue:
        """Return one issue with its dependencies and dependents.

        Raises:
            NotFoundError: If no issue has this ID
        """
        ...

    @abstractmethod
    def show_multiple(self, bead_ids: list[str]) -> dict[str, Issue]:
        """Fetch several issues at once. Missing IDs are left out of the result."""
        ...

    @abstractmethod
    def create(self, options: CreateOptions) -> Issue:
        """Create an issue in the current database and return it.

        The type is recorded both as issue_type and as a gt:<type> label.
        """
        ...

    @abstractmethod
    def create_with_id(self, bead_id: str, options: CreateOptions) -> Issue:
        """Create an issue with a caller-chosen ID.

        Raises:
            RoutingError: If the ID has no prefix or options.prefix disagrees with it
        """
        ...

    @abstractmethod
    def update(self, bead_id: str, options: UpdateOptions) -> None:
        """Apply the non-None fields of options to an issue."""
        ...

    @abstractmethod
    def close(self, *bead_ids: str) -> None:
        """Close issues. Closing an already-closed issue is not an error."""
        ...

    @abstractmethod
    def close_with_reason(self, reason: str, *bead_ids: str) -> None:
        ...

    @abstractmethod
    def close_with_options(self, options: CloseOptions, *bead_ids: str) -> None:
        ...

    @abstractmethod
    def delete(self, *bead_ids: str) -> None:
        """Permanently delete issues. show() raises NotFoundError afterwards."""
        ...

    @abstractmethod
    def delete_with_options(self, options: DeleteOptions, *bead_ids: str) -> None:
        ...

    @abstractmethod
    def reopen(self, bead_id: str) -> None:
        """Set a closed issue back to open and clear closed_at."""
        ...

    @abstractmethod
    def release(self, bead_id: str) -> None:
        """Move an issue back to open and clear its assignee."""
        ...

    @abstractmethod
    def release_with_reason(self, bead_id: str, reason: str) -> None:
        """Like release(), recording "Released: <reason>" in the notes."""
        ...

    # === Dependencies ===

    @abstractmethod
    def ready(self) -> list[Issue]:
        """Open issues with no unclosed "blocks" dependency.

        Ordered by priority descending, then creation time ascending.
        """
        ...

    @abstractmethod
    def ready_with_label(self, label: str, limit: int | None) -> list[Issue]:
        ...

    @abstractmethod
    def blocked(self) -> list[Issue]:
        """Open issues with at least one unclosed "blocks" dependency."""
        ...

    @abstractmethod
    def add_dependency(self, bead_id: str, depends_on_id: str) -> None:
        """Make bead_id depend on depends_on_id with a blocking edge."""
        ...

    @abstractmethod
    def add_dependency_with_type(self, bead_id: str, depends_on_id: str, dep_type: str) -> None:
        """Add a typed edge. Only the "blocks" type makes bead_id blocked."""
        ...

    @abstractmethod
    def remove_dependency(self, bead_id: str, depends_on_id: str) -> None:
        ...

    # === Sync ===

    @abstractmethod
    def sync(self) -> None:
        ...

    @abstractmethod
    def sync_from_main(self) -> None:
        ...

    @abstractmethod
    def sync_import_only(self) -> None:
        ...

    @abstractmethod
    def get_sync_status(self) -> SyncStatus:
        ...

    # === Config & lifecycle ===

    @abstractmethod
    def config_get(self, key: str) -> str:
        """Return a config value, or "" if the key is not set."""
        ...

    @abstractmethod
    def config_set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def init(self, options: InitOptions) -> None:
        ...

    @abstractmethod
    def migrate(self, options: MigrateOptions) -> None:
        ...

    @abstractmethod
    def is_beads_repo(self) -> bool:
        """Check whether the handle's working directory has a beads database."""
        ...

    # === Daemon ===

    @abstractmethod
    def daemon_start(self) -> None:
        ...

    @abstractmethod
    def daemon_stop(self) -> None:
        ...

    @abstractmethod
    def daemon_status(self) -> DaemonStatus:
        """Return daemon status. A stopped daemon is reported, not raised."""
        ...

    @abstractmethod
    def daemon_health(self) -> DaemonHealth:
        ...

    # === Molecules ===

    @abstractmethod
    def mol_seed(self, options: MolSeedOptions) -> None:
        ...

    @abstractmethod
    def mol_current(self, molecule_id: str) -> MolCurrentOutput:
        ...

    @abstractmethod
    def mol_catalog(self) -> list[MoleculeProto]:
        ...

    @abstractmethod
    def wisp_create(self, proto_id: str, actor: str) -> Issue:
        ...

    @abstractmethod
    def wisp_create_with_options(self, options: WispCreateOptions) -> Issue:
        """Instantiate a prototype as a wisp.

        Raises:
            NotFoundError: If the prototype does not exist
        """
        ...

    @abstractmethod
    def wisp_list(self, all_: bool) -> list[Issue]:
        """List wisps; closed ones are included only when all_ is True."""
        ...

    @abstractmethod
    def wisp_gc(self) -> None:
        ...

    @abstractmethod
    def mol_bond(self, wisp_id: str, bead_id: str) -> Issue:
        """Attach a wisp to a bead with a non-blocking edge."""
        ...

    @abstractmethod
    def mol_burn(self, *bead_ids: str) -> None:
        ...

    # === Gates ===

    @abstractmethod
    def gate_show(self, gate_id: str) -> Gate:
        ...

    @abstractmethod
    def gate_wait(self, gate_id: str, notify_agent: str) -> None:
        """Register interest in a gate. Never blocks on the gate opening."""
        ...

    @abstractmethod
    def gate_list(self, all_: bool) -> list[Gate]:
        ...

    @abstractmethod
    def gate_resolve(self, gate_id: str) -> None:
        ...

    @abstractmethod
    def gate_add_waiter(self, gate_id: str, waiter: str) -> None:
        ...

    @abstractmethod
    def gate_check(self) -> None:
        ...

    # === Swarms ===

    @abstractmethod
    def swarm_status(self, swarm_id: str) -> SwarmStatus:
        ...

    @abstractmethod
    def swarm_create(self, epic_id: str) -> Issue:
        """Create a swarm molecule for an epic."""
        ...

    @abstractmethod
    def swarm_list(self) -> list[Issue]:
        ...

    @abstractmethod
    def swarm_validate(self, epic_id: str) -> None:
        ...

    # === Formulas ===

    @abstractmethod
    def formula_show(self, name: str) -> Formula:
        ...

    @abstractmethod
    def formula_list(self) -> list[Formula]:
        ...

    @abstractmethod
    def cook(self, formula_name: str) -> Issue:
        ...

    @abstractmethod
    def leg_add(self, formula_id: str, step_name: str) -> None:
        ...

    # === Agents, labels, comments ===

    @abstractmethod
    def agent_state(self, bead_id: str, state: str) -> None:
        ...

    @abstractmethod
    def label_add(self, bead_id: str, label: str) -> None:
        """Add a label. Adding a present label is a no-op."""
        ...

    @abstractmethod
    def label_remove(self, bead_id: str, label: str) -> None:
        """Remove a label. Removing an absent label is a no-op."""
        ...

    @abstractmethod
    def comment(self, bead_id: str, message: str) -> None:
        ...

    # === Slots ===

    @abstractmethod
    def slot_show(self, bead_id: str) -> Slot:
        ...

    @abstractmethod
    def slot_set(self, agent_id: str, slot_name: str, bead_id: str) -> None:
        """Point an agent bead's slot ("hook" or "role") at another bead."""
        ...

    @abstractmethod
    def slot_clear(self, agent_id: str, slot_name: str) -> None:
        ...

    @abstractmethod
    def merge_slot_create(self) -> str:
        """Create the rig's merge slot if needed and return its ID."""
        ...

    @abstractmethod
    def merge_slot_check(self) -> MergeSlotStatus:
        """Return merge slot state; error is "not found" when there is no slot."""
        ...

    @abstractmethod
    def merge_slot_acquire(self, holder: str, add_waiter: bool) -> MergeSlotStatus:
        """Try to take the merge slot.

        If someone else holds it, the held status is returned unchanged and,
        with add_waiter, holder is queued as a waiter.
        """
        ...

    @abstractmethod
    def merge_slot_release(self, holder: str) -> None:
        ...

    @abstractmethod
    def merge_slot_ensure_exists(self) -> str:
        ...

    # === Search, stats, housekeeping ===

    @abstractmethod
    def search(self, query: str, options: SearchOptions) -> list[Issue]:
        """Case-insensitive substring search over titles and descriptions."""
        ...

    @abstractmethod
    def version(self) -> str:
        ...

    @abstractmethod
    def doctor(self) -> DoctorReport:
        ...

    @abstractmethod
    def prime(self) -> str:
        ...

    @abstractmethod
    def stats(self) -> str:
        ...

    @abstractmethod
    def stats_json(self) -> RepoStats:
        ...

    @abstractmethod
    def flush(self) -> None:
        ...

    @abstractmethod
    def burn(self, options: BurnOptions) -> None:
        ...

    @abstractmethod
    def run(self, *args: str) -> bytes:
        """Run an arbitrary bd command and return its stdout.

        Escape hatch for tests; production code should use a typed operation.
        """
        ...


class BeadsDoubleControls(ABC):
    """Test-only controls of the in-memory fake.

    Lets a test set up several databases, simulate running from different
    working directories, and install fixtures (prototypes, formulas, gates,
    swarms) that bd would otherwise read from disk.
    """

    @property
    @abstractmethod
    def current_prefix(self) -> str:
        """Prefix of the database that create/list/ready/blocked act on."""
        ...

    @abstractmethod
    def add_database(self, prefix: str) -> None:
        """Create an empty database for prefix. Existing databases are kept."""
        ...

    @abstractmethod
    def configure_route(self, work_dir: Path, prefix: str) -> None:
        """Bind a working directory to a database prefix."""
        ...

    @abstractmethod
    def set_work_dir(self, work_dir: Path) -> None:
        """Act as if invoked from work_dir; switches the current prefix if routed."""
        ...

    @abstractmethod
    def set_current_prefix(self, prefix: str) -> None:
        ...

    @abstractmethod
    def set_active(self, active: bool) -> None:
        """Mark the current database as (not) a beads repository."""
        ...

    @abstractmethod
    def add_prototype(self, proto: MoleculeProto) -> None:
        ...

    @abstractmethod
    def add_formula(self, formula: Formula) -> None:
        ...

    @abstractmethod
    def add_gate(self, gate: Gate) -> None:
        ...

    @abstractmethod
    def add_swarm(self, issue: Issue, status: SwarmStatus) -> None:
        ...

    @abstractmethod
    def set_daemon_running(self, running: bool) -> None:
        ...

    @abstractmethod
    def set_sync_status(self, status: SyncStatus) -> None:
        ...

    @abstractmethod
    def set_molecule_step(self, molecule_id: str, step: MolCurrentOutput) -> None:
        ...

    @abstractmethod
    def get_issue(self, bead_id: str) -> Issue | None:
        """Look an issue up in any database without going through show()."""
        ...

    @abstractmethod
    def all_issues(self) -> list[Issue]:
        """Every issue in every database, in creation order."""
        ...
