"""Integration tests for the bd-backed gateways.

These tests run the real bd CLI inside a hermetic two-rig town and check
that RealBeadsGateway reaches beads in another rig where RawBeadsGateway
relies on bd's own routing.

Tests are skipped if the `bd` CLI is not installed on the system.
"""

import shutil
from pathlib import Path

import pytest

from beadsroute.conformance.env import TownEnv, setup_town_env
from beadsroute.conformance.targets import init_real_bd
from beadsroute.errors import BadArgumentError, NotFoundError
from beadsroute.gateway.beads.raw import RawBeadsGateway
from beadsroute.gateway.beads.real import RealBeadsGateway
from beadsroute.gateway.beads.types import (
    STATUS_CLOSED,
    STATUS_OPEN,
    CreateOptions,
    ListOptions,
    UpdateOptions,
)

# Skip all tests in this module if bd CLI is not installed
pytestmark = pytest.mark.skipif(
    shutil.which("bd") is None,
    reason="bd CLI not installed",
)


@pytest.fixture
def town(tmp_path: Path) -> TownEnv:
    env = setup_town_env(tmp_path / "town")
    init_real_bd(env)
    return env


def _gastown(env: TownEnv) -> RealBeadsGateway:
    return RealBeadsGateway(work_dir=env.gastown_dir, town_root=env.town_root, home=env.home)


def _ai_platform(env: TownEnv) -> RealBeadsGateway:
    return RealBeadsGateway(work_dir=env.ai_platform_dir, home=env.home)


def test_create_uses_rig_prefix(town: TownEnv) -> None:
    """Beads created from a rig directory carry that rig's prefix."""
    gt_issue = _gastown(town).create(CreateOptions(title="In gastown"))
    ap_issue = _ai_platform(town).create(CreateOptions(title="In ai_platform"))

    assert gt_issue.id.startswith("gt-")
    assert ap_issue.id.startswith("ap-")


def test_list_issues_empty_result(town: TownEnv) -> None:
    """list_issues on a fresh rig returns an empty list."""
    assert _gastown(town).list_issues(ListOptions(all_statuses=True)) == []


def test_show_missing_raises_not_found(town: TownEnv) -> None:
    with pytest.raises(NotFoundError):
        _gastown(town).show("gt-doesnotexist")


def test_show_rejects_empty_id(town: TownEnv) -> None:
    with pytest.raises(BadArgumentError):
        _gastown(town).show("")


def test_cross_rig_update_and_close(town: TownEnv) -> None:
    """The gastown gateway updates and closes a bead stored in ai_platform."""
    bead_id = _ai_platform(town).create(CreateOptions(title="Remote")).id
    gateway = _gastown(town)

    gateway.update(bead_id, UpdateOptions(title="Renamed"))
    gateway.close(bead_id)

    issue = _ai_platform(town).show(bead_id)
    assert issue.title == "Renamed"
    assert issue.status == STATUS_CLOSED


def test_cross_rig_reopen(town: TownEnv) -> None:
    """reopen has no routing in bd; the gateway must still reach ai_platform."""
    ap_gateway = _ai_platform(town)
    bead_id = ap_gateway.create(CreateOptions(title="Remote")).id
    ap_gateway.close(bead_id)

    _gastown(town).reopen(bead_id)

    assert ap_gateway.show(bead_id).status == STATUS_OPEN


def test_cross_rig_labels(town: TownEnv) -> None:
    ap_gateway = _ai_platform(town)
    bead_id = ap_gateway.create(CreateOptions(title="Remote")).id

    _gastown(town).label_add(bead_id, "routed")

    assert "routed" in ap_gateway.show(bead_id).labels


def test_cross_rig_dependency(town: TownEnv) -> None:
    ap_gateway = _ai_platform(town)
    parent_id = ap_gateway.create(CreateOptions(title="Parent")).id
    child_id = ap_gateway.create(CreateOptions(title="Child")).id

    _gastown(town).add_dependency(child_id, parent_id)

    deps = {dep.id for dep in ap_gateway.show(child_id).dependencies}
    assert parent_id in deps


def test_raw_gateway_same_rig(town: TownEnv) -> None:
    """Without routing the raw gateway still handles beads of its own rig."""
    raw = RawBeadsGateway(work_dir=town.gastown_dir, home=town.home)
    bead_id = raw.create(CreateOptions(title="Local")).id

    raw.label_add(bead_id, "local")

    assert "local" in raw.show(bead_id).labels


def test_is_beads_repo(town: TownEnv) -> None:
    assert _gastown(town).is_beads_repo()


def test_version_is_reported(town: TownEnv) -> None:
    assert _gastown(town).version().strip()
