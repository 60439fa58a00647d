"""Diagnostic implementation of BeadsOps: bd with no workarounds.

RawBeadsGateway issues the same bd commands as RealBeadsGateway but leaves
out everything RealBeadsGateway does to paper over bd:

- BEADS_DIR is never set (an inherited value is removed), so bd discovers
  its database on its own
- no operation is re-routed to the rig that owns its bead ID
- list output must be a bare JSON array or null; wrapped output is an error
- "(not set)" config values and exit-0-with-stderr results pass through

The conformance harness runs it to find out whether bd still needs the
workarounds. A passing case here is a signal, not a requirement.
"""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from beadsroute.gateway.beads.decoding import decode_issues, decode_list
from beadsroute.gateway.beads.real import RealBeadsGateway
from beadsroute.gateway.beads.types import Issue
from beadsroute.routing_bugs import RoutingBugRegistry
from beadsroute.subprocess_utils import BD_BINARY, copied_env_for_bd_subprocess

T = TypeVar("T")

# No entries: every operation counts as correctly routed, so none is rewritten
_NO_WORKAROUNDS = RoutingBugRegistry({})


class RawBeadsGateway(RealBeadsGateway):
    """bd invoked from one working directory with an isolated HOME only."""

    def __init__(
        self, *, work_dir: Path, home: Path | None = None, bd_binary: str = BD_BINARY
    ) -> None:
        super().__init__(
            work_dir=work_dir,
            town_root=None,
            home=home,
            registry=_NO_WORKAROUNDS,
            bd_binary=bd_binary,
        )

    def routed_for(self, bead_id: str) -> "RawBeadsGateway":
        return self

    def _child_env(self) -> dict[str, str]:
        return copied_env_for_bd_subprocess(beads_dir=None, home=self._home, drop_beads_dir=True)

    def _reports_silent_failures(self) -> bool:
        return False

    def _normalize_config_value(self, value: str) -> str:
        return value

    def _decode_issue_list(self, args: tuple[str, ...], payload: Any, plural: str) -> list[Issue]:
        return self._decode(args, lambda: decode_issues(payload, plural=plural, strict=True))

    def _decode_entity_list(
        self,
        args: tuple[str, ...],
        payload: Any,
        plural: str,
        decode_item: Callable[[Mapping[str, Any]], T],
    ) -> list[T]:
        return self._decode(args, lambda: decode_list(payload, plural, decode_item, strict=True))
