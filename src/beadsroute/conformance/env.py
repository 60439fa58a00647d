"""Hermetic town layout for conformance runs.

The layout mirrors a real town with two rigs:

    <root>/
        mayor/town.json
        .beads/routes.jsonl          hq- -> ., gt- -> gastown, ap- -> ai_platform
        .beads/issues.jsonl
        gastown/.beads/redirect      -> mayor/rig/.beads
        gastown/mayor/rig/.beads/issues.jsonl
        ai_platform/.beads/redirect  -> mayor/rig/.beads
        ai_platform/mayor/rig/.beads/issues.jsonl
        home/
"""

import json
from dataclasses import dataclass
from pathlib import Path

from beadsroute.paths import BEADS_DIR_NAME, REDIRECT_FILE_NAME, ROUTES_FILE_NAME, TOWN_MARKER

TOWN_NAME = "test-town"
ISSUES_FILE_NAME = "issues.jsonl"

HQ_PREFIX = "hq"
GASTOWN_PREFIX = "gt"
AI_PLATFORM_PREFIX = "ap"

_RIG_STORAGE_REDIRECT = "mayor/rig/.beads"


@dataclass(frozen=True)
class TownEnv:
    """Paths of a town created by setup_town_env().

    Attributes:
        town_root: Town root (holds the routing table and the hq database)
        gastown_dir: Working directory of the gt rig
        ai_platform_dir: Working directory of the ap rig
        home: Isolated HOME for bd child processes
    """

    town_root: Path
    gastown_dir: Path
    ai_platform_dir: Path
    home: Path

    def dir_for_prefix(self, prefix: str) -> Path:
        return {
            HQ_PREFIX: self.town_root,
            GASTOWN_PREFIX: self.gastown_dir,
            AI_PLATFORM_PREFIX: self.ai_platform_dir,
        }[prefix]


def _route_line(prefix: str, path: str) -> str:
    return json.dumps({"prefix": f"{prefix}-", "path": path})


def _ensure_storage(beads_dir: Path) -> None:
    beads_dir.mkdir(parents=True, exist_ok=True)
    issues_file = beads_dir / ISSUES_FILE_NAME
    if not issues_file.exists():
        issues_file.write_text("", encoding="utf-8")


def setup_town_env(root: Path, *, home: Path | None = None) -> TownEnv:
    """Create (or complete) a two-rig town under root.

    Args:
        root: Town root directory; created if missing.
        home: Isolated home directory. Defaults to <root>/home.

    Returns:
        TownEnv describing the created layout.
    """
    town_root = root
    gastown_dir = town_root / "gastown" / "mayor" / "rig"
    ai_platform_dir = town_root / "ai_platform" / "mayor" / "rig"
    home_dir = home if home is not None else town_root / "home"

    marker = town_root / TOWN_MARKER
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_text(json.dumps({"name": TOWN_NAME}), encoding="utf-8")

    town_beads = town_root / BEADS_DIR_NAME
    _ensure_storage(town_beads)
    routes = [
        _route_line(HQ_PREFIX, "."),
        _route_line(GASTOWN_PREFIX, "gastown/mayor/rig"),
        _route_line(AI_PLATFORM_PREFIX, "ai_platform/mayor/rig"),
    ]
    (town_beads / ROUTES_FILE_NAME).write_text("\n".join(routes) + "\n", encoding="utf-8")

    for rig_dir in (gastown_dir, ai_platform_dir):
        _ensure_storage(rig_dir / BEADS_DIR_NAME)
        rig_root_beads = rig_dir.parent.parent / BEADS_DIR_NAME
        rig_root_beads.mkdir(parents=True, exist_ok=True)
        (rig_root_beads / REDIRECT_FILE_NAME).write_text(
            f"{_RIG_STORAGE_REDIRECT}\n", encoding="utf-8"
        )

    home_dir.mkdir(parents=True, exist_ok=True)

    return TownEnv(
        town_root=town_root,
        gastown_dir=gastown_dir,
        ai_platform_dir=ai_platform_dir,
        home=home_dir,
    )
