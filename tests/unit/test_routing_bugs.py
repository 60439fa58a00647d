"""Tests for the bd routing bug registry."""

import inspect

import pytest

from beadsroute.gateway.beads.abc import BeadsOps
from beadsroute.routing_bugs import BD_ROUTING_BUGS, ID_TAKING_OPERATIONS, RoutingBugRegistry


def _beads_ops_method_names() -> set[str]:
    return {
        name
        for name, member in inspect.getmembers(BeadsOps, inspect.isfunction)
        if not name.startswith("_")
    }


def test_every_operation_has_an_entry() -> None:
    """Each BeadsOps method is registered, so the default never hides a gap."""
    missing = _beads_ops_method_names() - set(BD_ROUTING_BUGS.entries())

    assert missing == set()


def test_entries_are_beads_ops_methods() -> None:
    unknown = set(BD_ROUTING_BUGS.entries()) - _beads_ops_method_names()

    assert unknown == set()


def test_id_taking_operations_are_registered() -> None:
    assert ID_TAKING_OPERATIONS <= set(BD_ROUTING_BUGS.entries())


def test_broken_operations_take_ids() -> None:
    """Routing bugs only exist for operations that receive a bead ID."""
    assert set(BD_ROUTING_BUGS.broken_operations()) <= ID_TAKING_OPERATIONS


def test_known_broken_operations() -> None:
    assert BD_ROUTING_BUGS.broken_operations() == [
        "add_dependency",
        "add_dependency_with_type",
        "agent_state",
        "comment",
        "delete",
        "delete_with_options",
        "label_add",
        "label_remove",
        "remove_dependency",
        "reopen",
    ]


@pytest.mark.parametrize("operation", sorted(BD_ROUTING_BUGS.entries()))
def test_is_fixed_agrees_with_broken_operations(operation: str) -> None:
    broken = operation in BD_ROUTING_BUGS.broken_operations()

    assert BD_ROUTING_BUGS.is_fixed(operation) is not broken


def test_unknown_operation_is_fixed() -> None:
    registry = RoutingBugRegistry({"show": False})

    assert registry.is_fixed("something_else") is True
    assert "something_else" not in registry


def test_with_fixed_returns_new_registry() -> None:
    registry = RoutingBugRegistry({"delete": False, "reopen": False})

    updated = registry.with_fixed(["delete"])

    assert updated.is_fixed("delete") is True
    assert updated.is_fixed("reopen") is False
    assert registry.is_fixed("delete") is False


def test_entries_are_read_only() -> None:
    registry = RoutingBugRegistry({"delete": False})

    with pytest.raises(TypeError):
        registry.entries()["delete"] = True  # type: ignore[index]


def test_registry_copies_input() -> None:
    source = {"delete": False}
    registry = RoutingBugRegistry(source)

    source["delete"] = True

    assert registry.is_fixed("delete") is False
