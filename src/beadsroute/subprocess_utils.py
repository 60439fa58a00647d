"""Subprocess plumbing for bd invocations.

Both shelling gateways go through run_subprocess_with_context(), so the
"bd is not installed" mapping and the debug logging live in one place.
"""

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from beadsroute.errors import (
    BeadsError,
    NotARepoError,
    NotFoundError,
    NotInstalledError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

BD_BINARY = "bd"

# Environment variable names read or written around bd calls
BEADS_DIR_ENV = "BEADS_DIR"
HOME_ENV = "HOME"
ACTOR_ENV = "BD_ACTOR"
SESSION_ENV = "GT_SESSION_ID"

# stderr fragments bd uses when an ID does not resolve
_NOT_FOUND_MARKERS = ("not found", "issue not found", "no issue found")

# Long free-text arguments are elided from debug logs
_MAX_LOGGED_ARG_CHARS = 80


def _build_timing_description(cmd: Sequence[str]) -> str:
    parts: list[str] = []
    for arg in cmd:
        if len(arg) > _MAX_LOGGED_ARG_CHARS:
            parts.append(f"<{len(arg)} chars>")
        else:
            parts.append(arg)
    return " ".join(parts)


def copied_env_for_bd_subprocess(
    *,
    beads_dir: Path | None,
    home: Path | None,
    drop_beads_dir: bool,
) -> dict[str, str]:
    """Copy the process environment with the storage and home overrides applied.

    Args:
        beads_dir: Value for BEADS_DIR, or None to leave it as inherited
        home: Value for HOME, or None to leave it as inherited
        drop_beads_dir: Remove any inherited BEADS_DIR (ignored if beads_dir is set)
    """
    env = os.environ.copy()
    if beads_dir is not None:
        env[BEADS_DIR_ENV] = str(beads_dir)
    elif drop_beads_dir:
        env.pop(BEADS_DIR_ENV, None)
    if home is not None:
        env[HOME_ENV] = str(home)
    return env


def run_subprocess_with_context(
    *,
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path,
    env: Mapping[str, str],
) -> subprocess.CompletedProcess[bytes]:
    """Run a command, capturing output, without raising on non-zero exit.

    Args:
        cmd: Full command line including the executable
        operation_context: Short description for logs
        cwd: Working directory
        env: Complete child environment

    Raises:
        NotInstalledError: If the executable cannot be found on PATH
        NotARepoError: If cwd does not exist
    """
    # LBYL: both conditions otherwise surface as the same FileNotFoundError
    if shutil.which(cmd[0], path=env.get("PATH")) is None:
        raise NotInstalledError(f"{cmd[0]} executable not found on PATH")
    if not cwd.is_dir():
        raise NotARepoError(f"working directory {cwd} does not exist")

    description = _build_timing_description(cmd)
    logger.debug("Running %s (%s) in %s", description, operation_context, cwd)
    start = time.perf_counter()
    result = subprocess.run(
        list(cmd),
        capture_output=True,
        cwd=cwd,
        env=dict(env),
        check=False,
    )
    elapsed = time.perf_counter() - start
    logger.debug("%s exited %d after %.3fs", description, result.returncode, elapsed)
    return result


def is_not_found_message(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _NOT_FOUND_MARKERS)


def classify_bd_failure(args: Sequence[str], stderr: str) -> BeadsError:
    """Map a failed bd call to an error kind.

    Only the "not found" family is recognized; everything else is an
    UpstreamError carrying stderr verbatim.
    """
    stripped = stderr.strip()
    if is_not_found_message(stripped):
        return NotFoundError(f"bd {' '.join(args)}: {stripped}")
    return UpstreamError(list(args), stripped)
