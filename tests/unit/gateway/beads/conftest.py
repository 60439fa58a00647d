from pathlib import Path

import pytest

from beadsroute.conformance.env import TownEnv, setup_town_env
from tests.unit.gateway.beads.scripted_bd import ScriptedBd


@pytest.fixture
def scripted_bd(monkeypatch: pytest.MonkeyPatch) -> ScriptedBd:
    scripted = ScriptedBd()
    monkeypatch.setattr("beadsroute.gateway.beads.real.run_subprocess_with_context", scripted)
    return scripted


@pytest.fixture
def town(tmp_path: Path) -> TownEnv:
    return setup_town_env(tmp_path / "town")
