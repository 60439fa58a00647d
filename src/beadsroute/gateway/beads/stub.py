"""Error-injecting BeadsOps wrapper for testing failure paths.

StubBeadsGateway delegates every operation to a wrapped implementation
(usually FakeBeadsGateway) but raises a configured exception for selected
operations, so callers' error handling can be exercised without staging the
failure in the underlying store.
"""

from beadsroute.gateway.beads.abc import BeadsOps
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


class StubBeadsGateway(BeadsOps):
    """Delegating wrapper with per-operation error injection.

    Mutation Tracking:
    -----------------
    - calls: names of invoked operations in call order, including ones that
      raised an injected error
    """

    def __init__(self, wrapped: BeadsOps, *, errors: dict[str, Exception] | None = None) -> None:
        """Create StubBeadsGateway.

        Args:
            wrapped: Implementation that handles non-failing operations.
            errors: Mapping of operation name to the exception it raises.
        """
        self._wrapped = wrapped
        self._errors = dict(errors) if errors is not None else {}
        self._calls: list[str] = []

    @property
    def calls(self) -> list[str]:
        return list(self._calls)

    def set_error(self, operation: str, error: Exception | None) -> None:
        """Inject (or with None, clear) the error raised by operation."""
        if error is None:
            self._errors.pop(operation, None)
        else:
            self._errors[operation] = error

    def _enter(self, operation: str) -> None:
        self._calls.append(operation)
        error = self._errors.get(operation)
        if error is not None:
            raise error

    def list_issues(self, options: ListOptions) -> list[Issue]:
        self._enter("list_issues")
        return self._wrapped.list_issues(options)

    def show(self, bead_id: str) -> Issue:
        self._enter("show")
        return self._wrapped.show(bead_id)

    def show_multiple(self, bead_ids: list[str]) -> dict[str, Issue]:
        self._enter("show_multiple")
        return self._wrapped.show_multiple(bead_ids)

    def create(self, options: CreateOptions) -> Issue:
        self._enter("create")
        return self._wrapped.create(options)

    def create_with_id(self, bead_id: str, options: CreateOptions) -> Issue:
        self._enter("create_with_id")
        return self._wrapped.create_with_id(bead_id, options)

    def update(self, bead_id: str, options: UpdateOptions) -> None:
        self._enter("update")
        self._wrapped.update(bead_id, options)

    def close(self, *bead_ids: str) -> None:
        self._enter("close")
        self._wrapped.close(*bead_ids)

    def close_with_reason(self, reason: str, *bead_ids: str) -> None:
        self._enter("close_with_reason")
        self._wrapped.close_with_reason(reason, *bead_ids)

    def close_with_options(self, options: CloseOptions, *bead_ids: str) -> None:
        self._enter("close_with_options")
        self._wrapped.close_with_options(options, *bead_ids)

    def delete(self, *bead_ids: str) -> None:
        self._enter("delete")
        self._wrapped.delete(*bead_ids)

    def delete_with_options(self, options: DeleteOptions, *bead_ids: str) -> None:
        self._enter("delete_with_options")
        self._wrapped.delete_with_options(options, *bead_ids)

    def reopen(self, bead_id: str) -> None:
        self._enter("reopen")
        self._wrapped.reopen(bead_id)

    def release(self, bead_id: str) -> None:
        self._enter("release")
        self._wrapped.release(bead_id)

    def release_with_reason(self, bead_id: str, reason: str) -> None:
        self._enter("release_with_reason")
        self._wrapped.release_with_reason(bead_id, reason)

    def ready(self) -> list[Issue]:
        self._enter("ready")
        return self._wrapped.ready()

    def ready_with_label(self, label: str, limit: int | None) -> list[Issue]:
        self._enter("ready_with_label")
        return self._wrapped.ready_with_label(label, limit)

    def blocked(self) -> list[Issue]:
        self._enter("blocked")
        return self._wrapped.blocked()

    def add_dependency(self, bead_id: str, depends_on_id: str) -> None:
        self._enter("add_dependency")
        self._wrapped.add_dependency(bead_id, depends_on_id)

    def add_dependency_with_type(self, bead_id: str, depends_on_id: str, dep_type: str) -> None:
        self._enter("add_dependency_with_type")
        self._wrapped.add_dependency_with_type(bead_id, depends_on_id, dep_type)

    def remove_dependency(self, bead_id: str, depends_on_id: str) -> None:
        self._enter("remove_dependency")
        self._wrapped.remove_dependency(bead_id, depends_on_id)

    def sync(self) -> None:
        self._enter("sync")
        self._wrapped.sync()

    def sync_from_main(self) -> None:
        self._enter("sync_from_main")
        self._wrapped.sync_from_main()

    def sync_import_only(self) -> None:
        self._enter("sync_import_only")
        self._wrapped.sync_import_only()

    def get_sync_status(self) -> SyncStatus:
        self._enter("get_sync_status")
        return self._wrapped.get_sync_status()

    def config_get(self, key: str) -> str:
        self._enter("config_get")
        return self._wrapped.config_get(key)

    def config_set(self, key: str, value: str) -> None:
        self._enter("config_set")
        self._wrapped.config_set(key, value)

    def init(self, options: InitOptions) -> None:
        self._enter("init")
        self._wrapped.init(options)

    def migrate(self, options: MigrateOptions) -> None:
        self._enter("migrate")
        self._wrapped.migrate(options)

    def is_beads_repo(self) -> bool:
        self._enter("is_beads_repo")
        return self._wrapped.is_beads_repo()

    def daemon_start(self) -> None:
        self._enter("daemon_start")
        self._wrapped.daemon_start()

    def daemon_stop(self) -> None:
        self._enter("daemon_stop")
        self._wrapped.daemon_stop()

    def daemon_status(self) -> DaemonStatus:
        self._enter("daemon_status")
        return self._wrapped.daemon_status()

    def daemon_health(self) -> DaemonHealth:
        self._enter("daemon_health")
        return self._wrapped.daemon_health()

    def mol_seed(self, options: MolSeedOptions) -> None:
        self._enter("mol_seed")
        self._wrapped.mol_seed(options)

    def mol_current(self, molecule_id: str) -> MolCurrentOutput:
        self._enter("mol_current")
        return self._wrapped.mol_current(molecule_id)

    def mol_catalog(self) -> list[MoleculeProto]:
        self._enter("mol_catalog")
        return self._wrapped.mol_catalog()

    def wisp_create(self, proto_id: str, actor: str) -> Issue:
        self._enter("wisp_create")
        return self._wrapped.wisp_create(proto_id, actor)

    def wisp_create_with_options(self, options: WispCreateOptions) -> Issue:
        self._enter("wisp_create_with_options")
        return self._wrapped.wisp_create_with_options(options)

    def wisp_list(self, all_: bool) -> list[Issue]:
        self._enter("wisp_list")
        return self._wrapped.wisp_list(all_)

    def wisp_gc(self) -> None:
        self._enter("wisp_gc")
        self._wrapped.wisp_gc()

    def mol_bond(self, wisp_id: str, bead_id: str) -> Issue:
        self._enter("mol_bond")
        return self._wrapped.mol_bond(wisp_id, bead_id)

    def mol_burn(self, *bead_ids: str) -> None:
        self._enter("mol_burn")
        self._wrapped.mol_burn(*bead_ids)

    def gate_show(self, gate_id: str) -> Gate:
        self._enter("gate_show")
        return self._wrapped.gate_show(gate_id)

    def gate_wait(self, gate_id: str, notify_agent: str) -> None:
        self._enter("gate_wait")
        self._wrapped.gate_wait(gate_id, notify_agent)

    def gate_list(self, all_: bool) -> list[Gate]:
        self._enter("gate_list")
        return self._wrapped.gate_list(all_)

    def gate_resolve(self, gate_id: str) -> None:
        self._enter("gate_resolve")
        self._wrapped.gate_resolve(gate_id)

    def gate_add_waiter(self, gate_id: str, waiter: str) -> None:
        self._enter("gate_add_waiter")
        self._wrapped.gate_add_waiter(gate_id, waiter)

    def gate_check(self) -> None:
        self._enter("gate_check")
        self._wrapped.gate_check()

    def swarm_status(self, swarm_id: str) -> SwarmStatus:
        self._enter("swarm_status")
        return self._wrapped.swarm_status(swarm_id)

    def swarm_create(self, epic_id: str) -> Issue:
        self._enter("swarm_create")
        return self._wrapped.swarm_create(epic_id)

    def swarm_list(self) -> list[Issue]:
        self._enter("swarm_list")
        return self._wrapped.swarm_list()

    def swarm_validate(self, epic_id: str) -> None:
        self._enter("swarm_validate")
        self._wrapped.swarm_validate(epic_id)

    def formula_show(self, name: str) -> Formula:
        self._enter("formula_show")
        return self._wrapped.formula_show(name)

    def formula_list(self) -> list[Formula]:
        self._enter("formula_list")
        return self._wrapped.formula_list()

    def cook(self, formula_name: str) -> Issue:
        self._enter("cook")
        return self._wrapped.cook(formula_name)

    def leg_add(self, formula_id: str, step_name: str) -> None:
        self._enter("leg_add")
        self._wrapped.leg_add(formula_id, step_name)

    def agent_state(self, bead_id: str, state: str) -> None:
        self._enter("agent_state")
        self._wrapped.agent_state(bead_id, state)

    def label_add(self, bead_id: str, label: str) -> None:
        self._enter("label_add")
        self._wrapped.label_add(bead_id, label)

    def label_remove(self, bead_id: str, label: str) -> None:
        self._enter("label_remove")
        self._wrapped.label_remove(bead_id, label)

    def comment(self, bead_id: str, message: str) -> None:
        self._enter("comment")
        self._wrapped.comment(bead_id, message)

    def slot_show(self, bead_id: str) -> Slot:
        self._enter("slot_show")
        return self._wrapped.slot_show(bead_id)

    def slot_set(self, agent_id: str, slot_name: str, bead_id: str) -> None:
        self._enter("slot_set")
        self._wrapped.slot_set(agent_id, slot_name, bead_id)

    def slot_clear(self, agent_id: str, slot_name: str) -> None:
        self._enter("slot_clear")
        self._wrapped.slot_clear(agent_id, slot_name)

    def merge_slot_create(self) -> str:
        self._enter("merge_slot_create")
        return self._wrapped.merge_slot_create()

    def merge_slot_check(self) -> MergeSlotStatus:
        self._enter("merge_slot_check")
        return self._wrapped.merge_slot_check()

    def merge_slot_acquire(self, holder: str, add_waiter: bool) -> MergeSlotStatus:
        self._enter("merge_slot_acquire")
        return self._wrapped.merge_slot_acquire(holder, add_waiter)

    def merge_slot_release(self, holder: str) -> None:
        self._enter("merge_slot_release")
        self._wrapped.merge_slot_release(holder)

    def merge_slot_ensure_exists(self) -> str:
        self._enter("merge_slot_ensure_exists")
        return self._wrapped.merge_slot_ensure_exists()

    def search(self, query: str, options: SearchOptions) -> list[Issue]:
        self._enter("search")
        return self._wrapped.search(query, options)

    def version(self) -> str:
        self._enter("version")
        return self._wrapped.version()

    def doctor(self) -> DoctorReport:
        self._enter("doctor")
        return self._wrapped.doctor()

    def prime(self) -> str:
        self._enter("prime")
        return self._wrapped.prime()

    def stats(self) -> str:
        self._enter("stats")
        return self._wrapped.stats()

    def stats_json(self) -> RepoStats:
        self._enter("stats_json")
        return self._wrapped.stats_json()

    def flush(self) -> None:
        self._enter("flush")
        self._wrapped.flush()

    def burn(self, options: BurnOptions) -> None:
        self._enter("burn")
        self._wrapped.burn(options)

    def run(self, *args: str) -> bytes:
        self._enter("run")
        return self._wrapped.run(*args)
