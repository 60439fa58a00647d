"""Fixtures for the conformance matrix.

Every matrix test runs once per implementation kind. The bd-backed kinds are
skipped when bd is not on PATH, so the fake is always covered.
"""

from pathlib import Path

import pytest

from beadsroute.conformance.env import setup_town_env
from beadsroute.conformance.harness import RigContext
from beadsroute.conformance.targets import ImplementationKind, Target, bd_available, build_target
from beadsroute.gateway.time.fake import FakeTime


@pytest.fixture(params=list(ImplementationKind), ids=lambda kind: kind.value)
def target(request: pytest.FixtureRequest, tmp_path: Path) -> Target:
    kind: ImplementationKind = request.param
    if kind.needs_bd and not bd_available():
        pytest.skip("bd CLI not installed")
    env = setup_town_env(tmp_path / "town")
    return build_target(kind, env, time=FakeTime())


@pytest.fixture(params=list(RigContext), ids=lambda context: context.value)
def rig_context(request: pytest.FixtureRequest) -> RigContext:
    return request.param
