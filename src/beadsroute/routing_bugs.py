"""Registry of bd operations that misroute cross-rig bead IDs.

bd resolves most bead IDs through the town routing table on its own. A few
commands still act on the database of the working directory instead, so a
cross-rig ID either fails with "not found" or touches the wrong rig.
RealBeadsGateway consults this registry to decide whether to run such a
command from the owning rig's directory. The conformance harness consults
it to decide whether a RawBeadsGateway failure is expected.

Flipping an entry to fixed is an edit to BD_ROUTING_BUGS below, done after the
harness reports that the raw bd case started passing. The table is never
mutated at runtime.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType


class RoutingBugRegistry:
    """Immutable mapping of operation name -> "bd routes this correctly".

    Operations with no entry are assumed to route correctly.
    """

    def __init__(self, entries: Mapping[str, bool]) -> None:
        self._entries: Mapping[str, bool] = MappingProxyType(dict(entries))

    def is_fixed(self, operation: str) -> bool:
        """Return True if bd routes this operation correctly (or it is unknown)."""
        return self._entries.get(operation, True)

    def broken_operations(self) -> list[str]:
        """Return the sorted names of operations bd still misroutes."""
        return sorted(name for name, fixed in self._entries.items() if not fixed)

    def entries(self) -> Mapping[str, bool]:
        """Read-only view of every registered operation."""
        return self._entries

    def with_fixed(self, operations: Iterable[str]) -> "RoutingBugRegistry":
        """Return a new registry with the given operations marked fixed."""
        updated = dict(self._entries)
        for operation in operations:
            updated[operation] = True
        return RoutingBugRegistry(updated)

    def __contains__(self, operation: object) -> bool:
        return operation in self._entries


# Operations of BeadsOps that take a bead (or gate/swarm/molecule) ID argument.
ID_TAKING_OPERATIONS: frozenset[str] = frozenset(
    {
        "show",
        "show_multiple",
        "create_with_id",
        "update",
        "close",
        "close_with_reason",
        "close_with_options",
        "delete",
        "delete_with_options",
        "reopen",
        "release",
        "release_with_reason",
        "add_dependency",
        "add_dependency_with_type",
        "remove_dependency",
        "mol_current",
        "mol_bond",
        "mol_burn",
        "gate_show",
        "gate_wait",
        "gate_resolve",
        "gate_add_waiter",
        "swarm_status",
        "swarm_create",
        "swarm_validate",
        "leg_add",
        "agent_state",
        "label_add",
        "label_remove",
        "comment",
        "slot_show",
        "slot_set",
        "slot_clear",
    }
)

BD_ROUTING_BUGS = RoutingBugRegistry(
    {
        # Issue CRUD
        "list_issues": True,
        "show": True,
        "show_multiple": True,
        "create": True,
        "create_with_id": True,
        "update": True,
        "close": True,
        "close_with_reason": True,
        "close_with_options": True,
        "delete": False,
        "delete_with_options": False,
        "reopen": False,
        "release": True,
        "release_with_reason": True,
        # Dependencies
        "ready": True,
        "ready_with_label": True,
        "blocked": True,
        "add_dependency": False,
        "add_dependency_with_type": False,
        "remove_dependency": False,
        # Sync, config, lifecycle
        "sync": True,
        "sync_from_main": True,
        "sync_import_only": True,
        "get_sync_status": True,
        "config_get": True,
        "config_set": True,
        "init": True,
        "migrate": True,
        "is_beads_repo": True,
        # Daemon
        "daemon_start": True,
        "daemon_stop": True,
        "daemon_status": True,
        "daemon_health": True,
        # Molecules and wisps
        "mol_seed": True,
        "mol_current": True,
        "mol_catalog": True,
        "wisp_create": True,
        "wisp_create_with_options": True,
        "wisp_list": True,
        "wisp_gc": True,
        "mol_bond": True,
        "mol_burn": True,
        # Gates
        "gate_show": True,
        "gate_wait": True,
        "gate_list": True,
        "gate_resolve": True,
        "gate_add_waiter": True,
        "gate_check": True,
        # Swarms
        "swarm_status": True,
        "swarm_create": True,
        "swarm_list": True,
        "swarm_validate": True,
        # Formulas
        "formula_show": True,
        "formula_list": True,
        "cook": True,
        "leg_add": True,
        # Agents, labels, comments
        "agent_state": False,
        "label_add": False,
        "label_remove": False,
        "comment": False,
        # Slots
        "slot_show": True,
        "slot_set": True,
        "slot_clear": True,
        "merge_slot_create": True,
        "merge_slot_check": True,
        "merge_slot_acquire": True,
        "merge_slot_release": True,
        "merge_slot_ensure_exists": True,
        # Search, stats, housekeeping
        "search": True,
        "version": True,
        "doctor": True,
        "prime": True,
        "stats": True,
        "stats_json": True,
        "flush": True,
        "burn": True,
        "run": True,
    }
)
