"""Tests for subprocess_utils module."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from beadsroute.errors import NotARepoError, NotFoundError, NotInstalledError, UpstreamError
from beadsroute.subprocess_utils import (
    _build_timing_description,
    classify_bd_failure,
    copied_env_for_bd_subprocess,
    is_not_found_message,
    run_subprocess_with_context,
)


def test_build_timing_description_regular_command() -> None:
    """Short arguments are passed through unchanged."""
    cmd = ["bd", "list", "--json"]

    assert _build_timing_description(cmd) == "bd list --json"


def test_build_timing_description_elides_long_arguments() -> None:
    """Long free text is replaced with its character count."""
    description = "x" * 200
    cmd = ["bd", "create", f"--description={description}"]

    result = _build_timing_description(cmd)

    assert "xxxx" not in result
    assert result == f"bd create <{len(description) + 14} chars>"


def test_copied_env_sets_beads_dir_and_home(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEADS_DIR", "/inherited")

    env = copied_env_for_bd_subprocess(
        beads_dir=Path("/town/.beads"), home=Path("/tmp/home"), drop_beads_dir=False
    )

    assert env["BEADS_DIR"] == "/town/.beads"
    assert env["HOME"] == "/tmp/home"
    assert "PATH" in env


def test_copied_env_drops_inherited_beads_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEADS_DIR", "/inherited")

    env = copied_env_for_bd_subprocess(beads_dir=None, home=None, drop_beads_dir=True)

    assert "BEADS_DIR" not in env


def test_copied_env_keeps_inherited_beads_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEADS_DIR", "/inherited")

    env = copied_env_for_bd_subprocess(beads_dir=None, home=None, drop_beads_dir=False)

    assert env["BEADS_DIR"] == "/inherited"


def test_run_subprocess_missing_executable(tmp_path: Path) -> None:
    with patch("beadsroute.subprocess_utils.shutil.which", return_value=None):
        with pytest.raises(NotInstalledError):
            run_subprocess_with_context(
                cmd=["bd", "version"], operation_context="version", cwd=tmp_path, env={}
            )


def test_run_subprocess_missing_cwd(tmp_path: Path) -> None:
    with patch("beadsroute.subprocess_utils.shutil.which", return_value="/usr/bin/bd"):
        with pytest.raises(NotARepoError):
            run_subprocess_with_context(
                cmd=["bd", "version"],
                operation_context="version",
                cwd=tmp_path / "missing",
                env={},
            )


def test_run_subprocess_does_not_raise_on_failure(tmp_path: Path) -> None:
    completed = subprocess.CompletedProcess(
        args=["bd", "show", "gt-1"], returncode=1, stdout=b"", stderr=b"boom"
    )
    with (
        patch("beadsroute.subprocess_utils.shutil.which", return_value="/usr/bin/bd"),
        patch("beadsroute.subprocess_utils.subprocess.run", return_value=completed) as mock_run,
    ):
        result = run_subprocess_with_context(
            cmd=["bd", "show", "gt-1"],
            operation_context="show",
            cwd=tmp_path,
            env={"PATH": "/usr/bin"},
        )

    assert result is completed
    call_kwargs = mock_run.call_args.kwargs
    assert call_kwargs["cwd"] == tmp_path
    assert call_kwargs["env"] == {"PATH": "/usr/bin"}
    assert call_kwargs["check"] is False
    assert call_kwargs["capture_output"] is True


@pytest.mark.parametrize(
    "stderr",
    ["Error: issue not found: gt-1", "no issue found matching gt-1", "gt-9 NOT FOUND"],
)
def test_is_not_found_message(stderr: str) -> None:
    assert is_not_found_message(stderr) is True


def test_classify_not_found() -> None:
    error = classify_bd_failure(["show", "gt-1"], "Error: issue not found\n")

    assert isinstance(error, NotFoundError)


def test_classify_other_failure_keeps_stderr() -> None:
    error = classify_bd_failure(["update", "gt-1"], "  database is locked \n")

    assert isinstance(error, UpstreamError)
    assert error.stderr == "database is locked"
    assert error.args_ == ["update", "gt-1"]
