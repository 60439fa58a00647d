"""Tests for RealBeadsGateway with bd replaced by a scripted stand-in.

These verify the command lines the gateway builds, the environment and
working directory it runs bd with, the routing workaround for operations
bd misroutes, and the mapping of bd output to results and error kinds.
"""

import json
from pathlib import Path

import pytest

from beadsroute.conformance.env import TownEnv
from beadsroute.errors import (
    BadArgumentError,
    NotARepoError,
    NotFoundError,
    RoutingError,
    UpstreamError,
)
from beadsroute.gateway.beads.real import RealBeadsGateway
from beadsroute.gateway.beads.types import (
    BurnOptions,
    CloseOptions,
    CreateOptions,
    DeleteOptions,
    ListOptions,
    SearchOptions,
    UpdateOptions,
)
from beadsroute.routing_bugs import BD_ROUTING_BUGS
from tests.unit.gateway.beads.scripted_bd import ScriptedBd


def _issue_json(bead_id: str, **fields: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": bead_id,
        "title": "Title",
        "description": "",
        "status": "open",
        "priority": 2,
        "issue_type": "task",
        "created_at": "2024-01-15T14:30:00Z",
        "updated_at": "2024-01-15T14:30:00Z",
    }
    data.update(fields)
    return data


def _json(payload: object) -> bytes:
    return json.dumps(payload).encode("utf-8")


def _gateway(town: TownEnv) -> RealBeadsGateway:
    return RealBeadsGateway(work_dir=town.gastown_dir, town_root=town.town_root, home=town.home)


class TestInvocation:
    def test_reads_skip_daemon(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json([]))

        _gateway(town).list_issues(ListOptions())

        assert scripted_bd.last.args == ("--no-daemon", "--allow-stale", "list", "--json")

    def test_daemon_writes_run_plain_bd(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).sync()

        assert scripted_bd.last.args == ("sync",)

    def test_env_pins_beads_dir_and_home(
        self, town: TownEnv, scripted_bd: ScriptedBd, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An inherited BEADS_DIR is replaced by the resolved storage directory."""
        monkeypatch.setenv("BEADS_DIR", "/somewhere/else")
        scripted_bd.respond(_json([]))

        _gateway(town).ready()

        call = scripted_bd.last
        assert call.cwd == town.gastown_dir
        assert call.env["BEADS_DIR"] == str(town.gastown_dir / ".beads")
        assert call.env["HOME"] == str(town.home)

    def test_beads_dir_follows_redirect(self, town: TownEnv) -> None:
        gateway = RealBeadsGateway(work_dir=town.gastown_dir.parent.parent)

        assert gateway.beads_dir == town.gastown_dir.parent.parent / "mayor/rig/.beads"

    def test_explicit_beads_dir(self, tmp_path: Path) -> None:
        gateway = RealBeadsGateway(work_dir=tmp_path, beads_dir=tmp_path / "store")

        assert gateway.beads_dir == tmp_path / "store"

    def test_for_work_dir_discovers_town(self, town: TownEnv) -> None:
        gateway = RealBeadsGateway.for_work_dir(town.gastown_dir)

        assert gateway.town_root == town.town_root.resolve()

    def test_for_work_dir_outside_town(self, tmp_path: Path) -> None:
        assert RealBeadsGateway.for_work_dir(tmp_path).town_root is None


class TestFailures:
    def test_nonzero_exit_is_upstream_error(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(stderr=b"database is locked", returncode=1)

        with pytest.raises(UpstreamError) as exc_info:
            _gateway(town).update("gt-1", UpdateOptions(title="x"))

        assert exc_info.value.stderr == "database is locked"

    def test_not_found_stderr(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(stderr=b"Error: issue not found: gt-9", returncode=1)

        with pytest.raises(NotFoundError):
            _gateway(town).show("gt-9")

    def test_silent_failure_detected(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        """Exit 0 with nothing on stdout but an error on stderr is a failure."""
        scripted_bd.respond(stderr=b"no issue found matching gt-9")

        with pytest.raises(NotFoundError):
            _gateway(town).update("gt-9", UpdateOptions(title="x"))

    def test_missing_storage_is_not_a_repo(self, tmp_path: Path, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(stderr=b"no beads database found", returncode=1)

        with pytest.raises(NotARepoError):
            RealBeadsGateway(work_dir=tmp_path).list_issues(ListOptions())

    def test_invalid_json_is_upstream_error(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(b"Created issue gt-1")

        with pytest.raises(UpstreamError):
            _gateway(town).create(CreateOptions(title="x"))

    def test_validation_happens_before_bd(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        with pytest.raises(BadArgumentError):
            _gateway(town).create(CreateOptions(title=""))
        with pytest.raises(BadArgumentError):
            _gateway(town).update("gt-1", UpdateOptions(priority=9))
        with pytest.raises(BadArgumentError):
            _gateway(town).slot_set("gt-1", "pocket", "gt-2")

        assert scripted_bd.calls == []


class TestIssueCommands:
    def test_list_filters(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json({"issues": [_issue_json("gt-1")]}))

        issues = _gateway(town).list_issues(
            ListOptions(
                status="open",
                issue_type="bug",
                labels=("a",),
                priority=1,
                parent="gt-e",
                limit=5,
                all_statuses=True,
            )
        )

        assert [issue.id for issue in issues] == ["gt-1"]
        assert scripted_bd.last.args[2:] == (
            "list",
            "--json",
            "--status=open",
            "--type=bug",
            "-l",
            "a",
            "--priority=1",
            "--parent=gt-e",
            "--limit=5",
            "--all",
        )

    def test_show_decodes_single_element_array(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        scripted_bd.respond(_json([_issue_json("gt-1", title="Hello")]))

        issue = _gateway(town).show("gt-1")

        assert issue.title == "Hello"
        assert scripted_bd.last.args[2:] == ("show", "gt-1", "--json")

    @pytest.mark.parametrize("stdout", [b"", b"[]", b"null", b"  \n"])
    def test_show_empty_output_is_not_found(
        self, town: TownEnv, scripted_bd: ScriptedBd, stdout: bytes
    ) -> None:
        scripted_bd.respond(stdout)

        with pytest.raises(NotFoundError):
            _gateway(town).show("gt-1")

    def test_show_multiple_swallows_failure(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(stderr=b"issue not found: gt-2", returncode=1)

        assert _gateway(town).show_multiple(["gt-1", "gt-2"]) == {}

    def test_show_multiple_empty_input(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        assert _gateway(town).show_multiple([]) == {}
        assert scripted_bd.calls == []

    def test_create_args(
        self, town: TownEnv, scripted_bd: ScriptedBd, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BD_ACTOR", "mayor")
        scripted_bd.respond(_json(_issue_json("gt-1")))

        _gateway(town).create(
            CreateOptions(
                title="Fix",
                issue_type="bug",
                priority=1,
                description="desc",
                parent="gt-e",
                ephemeral=True,
                labels=("x",),
            )
        )

        assert scripted_bd.last.args[2:] == (
            "create",
            "--json",
            "--title=Fix",
            "--labels=gt:bug",
            "--priority=1",
            "--description=desc",
            "--parent=gt-e",
            "--ephemeral",
            "--labels=x",
            "--actor=mayor",
        )

    def test_create_with_id_rejects_mismatch(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        with pytest.raises(RoutingError):
            _gateway(town).create_with_id("ap-1", CreateOptions(title="x", prefix="gt"))

        assert scripted_bd.calls == []

    def test_update_args(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).update(
            "gt-1",
            UpdateOptions(
                title="T",
                status="in_progress",
                assignee="polecat",
                add_labels=("a",),
                remove_labels=("b",),
            ),
        )

        assert scripted_bd.last.args[2:] == (
            "update",
            "gt-1",
            "--title=T",
            "--status=in_progress",
            "--assignee=polecat",
            "--add-label=a",
            "--remove-label=b",
        )

    def test_update_set_labels_empty(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).update("gt-1", UpdateOptions(set_labels=()))

        assert scripted_bd.last.args[2:] == ("update", "gt-1", "--set-labels=")

    def test_close_with_options(
        self, town: TownEnv, scripted_bd: ScriptedBd, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GT_SESSION_ID", "sess-1")

        _gateway(town).close_with_options(CloseOptions(reason="done", force=True), "gt-1", "gt-2")

        assert scripted_bd.last.args[2:] == (
            "close",
            "gt-1",
            "gt-2",
            "--reason=done",
            "--force",
            "--session=sess-1",
        )

    def test_release_with_reason(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).release_with_reason("gt-1", "stuck")

        assert scripted_bd.last.args[2:] == (
            "update",
            "gt-1",
            "--status=open",
            "--assignee=",
            "--notes=Released: stuck",
        )

    def test_delete_is_hard(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).delete("gt-1")
        _gateway(town).delete_with_options(DeleteOptions(force=False), "gt-2")

        assert scripted_bd.calls[0].args[2:] == ("delete", "--force", "--hard", "gt-1")
        assert scripted_bd.calls[1].args[2:] == ("delete", "--hard", "gt-2")

    def test_dependency_args(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).add_dependency_with_type("gt-2", "gt-1", "tracks")

        assert scripted_bd.last.args[2:] == ("dep", "add", "gt-2", "gt-1", "--type=tracks")

    def test_ready_with_label_limit(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json(None))

        assert _gateway(town).ready_with_label("pick", 3) == []
        assert scripted_bd.last.args[2:] == ("ready", "--json", "--label", "pick", "-n", "3")

    def test_search_args(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json([]))

        _gateway(town).search("login", SearchOptions(status="open", limit=2))

        assert scripted_bd.last.args[2:] == (
            "search",
            "login",
            "--json",
            "--status",
            "open",
            "--limit",
            "2",
        )


class TestRouting:
    def test_broken_operation_runs_in_owning_rig(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        _gateway(town).reopen("ap-1")

        call = scripted_bd.last
        assert call.cwd == town.ai_platform_dir
        assert call.env["BEADS_DIR"] == str(town.ai_platform_dir / ".beads")

    def test_fixed_operation_runs_in_place(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json([_issue_json("ap-1")]))

        _gateway(town).show("ap-1")

        assert scripted_bd.last.cwd == town.gastown_dir

    def test_same_rig_id_runs_in_place(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).label_add("gt-1", "x")

        assert scripted_bd.last.cwd == town.gastown_dir
        assert scripted_bd.last.args[2:] == ("label", "add", "gt-1", "x")

    def test_town_level_prefix(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).comment("hq-1", "note")

        assert scripted_bd.last.cwd == town.town_root

    def test_variadic_delete_routes_by_first_id(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        _gateway(town).delete("ap-1", "ap-2")

        assert scripted_bd.last.cwd == town.ai_platform_dir
        assert scripted_bd.last.args[2:] == ("delete", "--force", "--hard", "ap-1", "ap-2")

    def test_unknown_prefix_on_broken_operation(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        with pytest.raises(RoutingError):
            _gateway(town).add_dependency("zz-1", "gt-1")

        assert scripted_bd.calls == []

    def test_without_town_root_runs_in_place(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        RealBeadsGateway(work_dir=town.gastown_dir).reopen("ap-1")

        assert scripted_bd.last.cwd == town.gastown_dir

    def test_fixed_entry_disables_workaround(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        gateway = RealBeadsGateway(
            work_dir=town.gastown_dir,
            town_root=town.town_root,
            registry=BD_ROUTING_BUGS.with_fixed(["reopen"]),
        )

        gateway.reopen("ap-1")

        assert scripted_bd.last.cwd == town.gastown_dir

    def test_routed_for_keeps_settings(self, town: TownEnv) -> None:
        routed = _gateway(town).routed_for("ap-1")

        assert routed.work_dir == town.ai_platform_dir
        assert routed.town_root == town.town_root
        assert routed.routing_registry is BD_ROUTING_BUGS


class TestOutputNormalization:
    def test_config_not_set_is_empty(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(b"types.custom (not set)\n")

        assert _gateway(town).config_get("types.custom") == ""

    def test_config_value(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(b"gt\n")

        assert _gateway(town).config_get("issue_prefix") == "gt"

    def test_sync_status_without_branch(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(stderr=b"sync branch does not exist", returncode=1)

        status = _gateway(town).get_sync_status()

        assert (status.ahead, status.behind, status.conflicts) == (0, 0, ())

    def test_daemon_status_failure_means_stopped(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        scripted_bd.respond(stderr=b"daemon not running", returncode=1)

        assert _gateway(town).daemon_status().running is False

    def test_wisp_list_wrapped(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json({"wisps": [_issue_json("gt-w1")]}))

        assert [w.id for w in _gateway(town).wisp_list(True)] == ["gt-w1"]
        assert scripted_bd.last.args[2:] == ("mol", "wisp", "list", "--json", "--all")

    def test_gate_list_null(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(_json({"gates": None}))

        assert _gateway(town).gate_list(False) == []

    def test_merge_slot_ensure_exists_creates(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        scripted_bd.respond(stderr=b"merge slot not found", returncode=1)
        scripted_bd.respond(_json({"id": "gt-merge-slot", "available": True}))

        assert _gateway(town).merge_slot_ensure_exists() == "gt-merge-slot"
        assert scripted_bd.last.args[2:] == ("merge-slot", "create", "--json")

    def test_merge_slot_ensure_exists_existing(
        self, town: TownEnv, scripted_bd: ScriptedBd
    ) -> None:
        scripted_bd.respond(_json({"id": "gt-merge-slot", "available": False, "holder": "r"}))

        assert _gateway(town).merge_slot_ensure_exists() == "gt-merge-slot"
        assert len(scripted_bd.calls) == 1

    def test_burn_args(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        _gateway(town).burn(BurnOptions(session_id="s", tokens=10, cost=0.5, model="m"))

        assert scripted_bd.last.args[2:] == (
            "burn",
            "--session=s",
            "--tokens=10",
            "--cost=0.500000",
            "--model=m",
        )

    def test_version_strips(self, town: TownEnv, scripted_bd: ScriptedBd) -> None:
        scripted_bd.respond(b"bd version 0.30.0\n")

        assert _gateway(town).version() == "bd version 0.30.0"

    def test_is_beads_repo_checks_storage(self, town: TownEnv, tmp_path: Path) -> None:
        assert _gateway(town).is_beads_repo() is True
        assert RealBeadsGateway(work_dir=tmp_path).is_beads_repo() is False
