"""Input checks shared by every BeadsOps implementation.

These run before any work is done, so the fake and the bd-backed gateways
reject the same inputs with the same BadArgumentError.
"""

from beadsroute.errors import BadArgumentError, RoutingError
from beadsroute.gateway.beads.types import MAX_PRIORITY, MIN_PRIORITY, CreateOptions, UpdateOptions
from beadsroute.paths import extract_prefix

# Slots that slot_set/slot_clear accept on an agent bead
VALID_SLOT_NAMES: frozenset[str] = frozenset({"hook", "role"})


def check_priority(priority: int | None) -> None:
    if priority is None:
        return
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise BadArgumentError(
            f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {priority}"
        )


def check_create(options: CreateOptions) -> None:
    if not options.title.strip():
        raise BadArgumentError("title must not be empty")
    check_priority(options.priority)


def check_update(options: UpdateOptions) -> None:
    if options.title is not None and not options.title.strip():
        raise BadArgumentError("title must not be empty")
    check_priority(options.priority)


def check_bead_id(bead_id: str) -> None:
    if not bead_id:
        raise BadArgumentError("bead ID must not be empty")


def check_slot_name(slot_name: str) -> None:
    if slot_name not in VALID_SLOT_NAMES:
        valid = ", ".join(sorted(VALID_SLOT_NAMES))
        raise BadArgumentError(f"unknown slot {slot_name!r} (valid: {valid})")


def check_id_prefix(bead_id: str, expected_prefix: str | None) -> None:
    """Validate an explicit ID against an explicit prefix before invoking anything.

    Raises:
        RoutingError: If the ID has no prefix or it differs from expected_prefix
    """
    prefix = extract_prefix(bead_id)
    if not prefix:
        raise RoutingError(f"bead ID {bead_id!r} has no prefix")
    if expected_prefix is not None and expected_prefix.removesuffix("-") != prefix:
        raise RoutingError(f"bead ID {bead_id!r} does not match prefix {expected_prefix!r}")
