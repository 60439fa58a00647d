"""Error kinds surfaced by Beads operations.

Every implementation of BeadsOps raises these same kinds, so callers can
branch on the kind without knowing whether they talk to bd or to the
in-memory fake.
"""

from pathlib import Path


class BeadsError(Exception):
    """Base class for all errors raised by Beads operations."""


class NotInstalledError(BeadsError):
    """The bd executable is not on PATH."""


class NotFoundError(BeadsError):
    """A referenced bead, gate, prototype, or formula does not exist."""


class NotARepoError(BeadsError):
    """The working directory has no resolvable beads storage directory."""


class RoutingError(BeadsError):
    """A bead ID cannot be routed: unknown prefix or prefix mismatch."""


class BadArgumentError(BeadsError, ValueError):
    """An input violates a documented constraint (empty title, bad priority, ...)."""


class UpstreamError(BeadsError):
    """bd failed for any other reason.

    The stderr text is carried verbatim. Callers should pass it along rather
    than parse it.
    """

    def __init__(self, args_: list[str], stderr: str) -> None:
        self.args_ = list(args_)
        self.stderr = stderr
        super().__init__(f"bd {' '.join(self.args_)}: {stderr}")


class TownRootNotFoundError(BeadsError):
    """No ancestor of the start directory carries a routing table."""

    def __init__(self, start_dir: Path) -> None:
        self.start_dir = start_dir
        super().__init__(f"no town root found above {start_dir}")
