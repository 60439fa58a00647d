"""Implementations the conformance matrix runs against."""

import logging
import shutil
from dataclasses import dataclass
from enum import Enum

from beadsroute.conformance.env import (
    AI_PLATFORM_PREFIX,
    GASTOWN_PREFIX,
    HQ_PREFIX,
    TownEnv,
)
from beadsroute.errors import BeadsError
from beadsroute.gateway.beads.abc import BeadsDoubleControls, BeadsOps
from beadsroute.gateway.beads.fake import FakeBeadsGateway
from beadsroute.gateway.beads.raw import RawBeadsGateway
from beadsroute.gateway.beads.real import RealBeadsGateway
from beadsroute.gateway.beads.types import InitOptions
from beadsroute.gateway.time.abc import Time
from beadsroute.gateway.time.real import RealTime
from beadsroute.paths import BEADS_DIR_NAME
from beadsroute.subprocess_utils import BD_BINARY

logger = logging.getLogger(__name__)


class ImplementationKind(Enum):
    DOUBLE = "double"
    WRAPPER = "wrapper"
    RAW_WRAPPER = "raw-wrapper"

    @property
    def needs_bd(self) -> bool:
        return self is not ImplementationKind.DOUBLE


@dataclass(frozen=True)
class Target:
    """One implementation, ready to run cases against.

    Attributes:
        kind: Which implementation ops is
        ops: The implementation, rooted at the gastown rig
        controls: Test-only controls; set only for the in-memory fake
        env: Town the implementation lives in
    """

    kind: ImplementationKind
    ops: BeadsOps
    controls: BeadsDoubleControls | None
    env: TownEnv


def bd_available() -> bool:
    return shutil.which(BD_BINARY) is not None


def available_kinds() -> list[ImplementationKind]:
    """Kinds that can run here; the shelling ones need bd on PATH."""
    if bd_available():
        return list(ImplementationKind)
    return [kind for kind in ImplementationKind if not kind.needs_bd]


def init_real_bd(env: TownEnv) -> None:
    """Initialize the hq, gt and ap databases with bd, under the isolated HOME.

    A database that is already initialized makes bd fail; that is ignored.
    """
    for prefix in (HQ_PREFIX, GASTOWN_PREFIX, AI_PLATFORM_PREFIX):
        work_dir = env.dir_for_prefix(prefix)
        gateway = RealBeadsGateway(
            work_dir=work_dir,
            beads_dir=work_dir / BEADS_DIR_NAME,
            home=env.home,
        )
        try:
            gateway.init(InitOptions(prefix=prefix, quiet=True))
        except BeadsError as e:
            logger.debug("bd init for %s skipped: %s", prefix, e)


def _build_fake(env: TownEnv, time: Time) -> FakeBeadsGateway:
    fake = FakeBeadsGateway(time=time, prefix=GASTOWN_PREFIX)
    for prefix in (AI_PLATFORM_PREFIX, HQ_PREFIX):
        fake.add_database(prefix)
    for prefix in (HQ_PREFIX, GASTOWN_PREFIX, AI_PLATFORM_PREFIX):
        fake.configure_route(env.dir_for_prefix(prefix), prefix)
    fake.set_work_dir(env.gastown_dir)
    return fake


def build_target(kind: ImplementationKind, env: TownEnv, *, time: Time | None = None) -> Target:
    """Construct the implementation of the given kind, rooted at the gastown rig.

    Args:
        kind: Implementation to build.
        env: Town created by setup_town_env().
        time: Clock for the fake. Defaults to the wall clock.
    """
    if kind is ImplementationKind.DOUBLE:
        fake = _build_fake(env, time if time is not None else RealTime())
        return Target(kind=kind, ops=fake, controls=fake, env=env)

    init_real_bd(env)
    if kind is ImplementationKind.WRAPPER:
        ops: BeadsOps = RealBeadsGateway(
            work_dir=env.gastown_dir, town_root=env.town_root, home=env.home
        )
    else:
        ops = RawBeadsGateway(work_dir=env.gastown_dir, home=env.home)
    return Target(kind=kind, ops=ops, controls=None, env=env)
