"""Per-operation routing for ID-taking bd commands.

@routes_by_bead_id wraps each ID-taking method of a bd-backed gateway. It
looks the operation up in the routing bug registry once per call. If bd
routes the operation correctly, the method runs as is. Otherwise it runs on
a gateway re-rooted at the directory of the rig that owns the bead.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, cast

from beadsroute.routing_bugs import RoutingBugRegistry

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class RoutableGateway(Protocol):
    """What the decorator needs from a gateway."""

    @property
    def routing_registry(self) -> RoutingBugRegistry: ...

    def routed_for(self, bead_id: str) -> "RoutableGateway":
        """Return a gateway whose working directory owns bead_id (possibly self)."""
        ...


def routes_by_bead_id(operation: str, *, id_position: int = 0) -> Callable[[F], F]:
    """Route a gateway method by the prefix of one of its bead ID arguments.

    Args:
        operation: Registry key of the operation
        id_position: Index of the bead ID among the positional arguments
            (after self). For variadic ID lists, the first ID routes the call.
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        def wrapper(self: RoutableGateway, *args: Any, **kwargs: Any) -> Any:
            if self.routing_registry.is_fixed(operation):
                return method(self, *args, **kwargs)
            if len(args) <= id_position:
                # Empty variadic ID list; nothing to route
                return method(self, *args, **kwargs)

            bead_id = args[id_position]
            target = self.routed_for(bead_id)
            if target is not self:
                logger.debug("Routing %s(%s) to owning rig", operation, bead_id)
            return method(target, *args, **kwargs)

        return cast(F, wrapper)

    return decorator
