"""Path resolution for beads storage directories and prefix routing.

These are pure functions over the filesystem layout of a town:

    <town>/mayor/town.json              town marker
    <town>/.beads/routes.jsonl          prefix -> path routing table
    <town>/<rig>/.beads/redirect        "the real storage is elsewhere"
    <town>/<rig>/mayor/rig/.beads/      a rig's actual storage

Nothing in this module writes to disk.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from beadsroute.errors import TownRootNotFoundError

logger = logging.getLogger(__name__)

BEADS_DIR_NAME = ".beads"
ROUTES_FILE_NAME = "routes.jsonl"
REDIRECT_FILE_NAME = "redirect"
TOWN_MARKER = Path("mayor") / "town.json"

# Redirect chains longer than this are treated as misconfiguration
MAX_REDIRECT_DEPTH = 10


@dataclass(frozen=True)
class Route:
    """One routing table record.

    Attributes:
        prefix: ID prefix including its trailing hyphen (e.g. "gt-")
        path: Directory relative to the town root ("." for the town itself)
    """

    prefix: str
    path: str

    @property
    def bare_prefix(self) -> str:
        """Prefix without the trailing hyphen."""
        return self.prefix.removesuffix("-")


def extract_prefix(bead_id: str) -> str:
    """Return the prefix of a bead ID, the text before the first hyphen.

    Returns "" when the ID has no hyphen or starts with one; callers treat
    that as "no routing information".
    """
    index = bead_id.find("-")
    if index <= 0:
        return ""
    return bead_id[:index]


def resolve_beads_dir(work_dir: Path) -> Path:
    """Resolve the storage directory for a working directory.

    Starts at <work_dir>/.beads and follows redirect files. Relative redirect
    targets are interpreted against the parent of the directory holding the
    redirect. The walk stops at the first directory with no redirect, on a
    cycle, or at MAX_REDIRECT_DEPTH; it never raises. If there is no marker
    at all the original candidate is returned.
    """
    current = work_dir / BEADS_DIR_NAME
    seen: set[Path] = set()

    for _ in range(MAX_REDIRECT_DEPTH):
        redirect_file = current / REDIRECT_FILE_NAME
        if not redirect_file.is_file():
            return current

        target_text = redirect_file.read_text(encoding="utf-8").strip()
        if not target_text:
            return current

        seen.add(current.resolve())
        target = Path(target_text)
        if not target.is_absolute():
            target = current.parent / target

        if target.resolve() in seen:
            logger.debug("Redirect cycle at %s -> %s, stopping", redirect_file, target)
            return current
        current = target

    logger.debug("Redirect chain from %s exceeded %d hops", work_dir, MAX_REDIRECT_DEPTH)
    return current


def is_town_root(path: Path) -> bool:
    """Check whether a directory carries both the town marker and routing table."""
    return (path / TOWN_MARKER).is_file() and (path / BEADS_DIR_NAME / ROUTES_FILE_NAME).is_file()


def find_town_root(start_dir: Path) -> Path:
    """Walk up from start_dir to the first ancestor holding a routing table.

    Raises:
        TownRootNotFoundError: If the filesystem root is reached first
    """
    current = start_dir.resolve()
    while True:
        if (current / BEADS_DIR_NAME / ROUTES_FILE_NAME).is_file():
            return current
        if current == current.parent:
            raise TownRootNotFoundError(start_dir)
        current = current.parent


def load_routes(town_root: Path) -> list[Route]:
    """Read the town routing table.

    Blank and malformed lines are skipped. A missing table yields an empty list.
    """
    routes_file = town_root / BEADS_DIR_NAME / ROUTES_FILE_NAME
    if not routes_file.is_file():
        return []

    routes: list[Route] = []
    for line_number, line in enumerate(routes_file.read_text(encoding="utf-8").splitlines(), 1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            record = json.loads(stripped)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed route at %s:%d", routes_file, line_number)
            continue
        if not isinstance(record, dict):
            continue
        prefix = record.get("prefix")
        path = record.get("path")
        if not isinstance(prefix, str) or not isinstance(path, str):
            continue
        routes.append(Route(prefix=prefix, path=path))
    return routes


def route_for_prefix(routes: list[Route], prefix: str) -> Route | None:
    """Find the route whose prefix matches, ignoring the trailing hyphen."""
    wanted = prefix.removesuffix("-")
    for route in routes:
        if route.bare_prefix == wanted:
            return route
    return None


def resolve_hook_dir(town_root: Path, bead_id: str, fallback_work_dir: Path) -> Path:
    """Map a bead ID to the directory of the rig that owns it.

    Returns fallback_work_dir when the ID carries no prefix or the prefix
    is not in the routing table.
    """
    prefix = extract_prefix(bead_id)
    if not prefix:
        return fallback_work_dir

    route = route_for_prefix(load_routes(town_root), prefix)
    if route is None:
        return fallback_work_dir
    if route.path == ".":
        return town_root
    return town_root / route.path
