"""Production implementation of BeadsOps using the bd CLI."""

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from beadsroute.errors import (
    BeadsError,
    NotARepoError,
    NotFoundError,
    RoutingError,
    TownRootNotFoundError,
    UpstreamError,
)
from beadsroute.gateway.beads.abc import BeadsOps
from beadsroute.gateway.beads.decoding import (
    DecodeError,
    decode_daemon_health,
    decode_daemon_status,
    decode_doctor_report,
    decode_formula,
    decode_gate,
    decode_issue,
    decode_issues,
    decode_list,
    decode_merge_slot_status,
    decode_mol_current,
    decode_object,
    decode_proto,
    decode_repo_stats,
    decode_single_issue,
    decode_slot,
    decode_swarm_status,
    decode_sync_status,
    load_json,
)
from beadsroute.gateway.beads.routing import routes_by_bead_id
from beadsroute.gateway.beads.types import (
    STATUS_OPEN,
    BurnOptions,
    CloseOptions,
    CreateOptions,
    DaemonHealth,
    DaemonStatus,
    DeleteOptions,
    DoctorReport,
    Formula,
    Gate,
    InitOptions,
    Issue,
    ListOptions,
    MergeSlotStatus,
    MigrateOptions,
    MolCurrentOutput,
    MoleculeProto,
    MolSeedOptions,
    RepoStats,
    SearchOptions,
    Slot,
    SwarmStatus,
    SyncStatus,
    UpdateOptions,
    WispCreateOptions,
    type_label,
)
from beadsroute.gateway.beads.validation import (
    check_bead_id,
    check_create,
    check_id_prefix,
    check_slot_name,
    check_update,
)
from beadsroute.paths import (
    extract_prefix,
    find_town_root,
    load_routes,
    resolve_beads_dir,
    resolve_hook_dir,
    route_for_prefix,
)
from beadsroute.routing_bugs import BD_ROUTING_BUGS, RoutingBugRegistry
from beadsroute.subprocess_utils import (
    ACTOR_ENV,
    BD_BINARY,
    SESSION_ENV,
    classify_bd_failure,
    copied_env_for_bd_subprocess,
    run_subprocess_with_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Reads skip the daemon and tolerate a database that lags its JSONL export
_READ_FLAGS = ("--no-daemon", "--allow-stale")

NOT_SET_SUFFIX = "(not set)"
MERGE_SLOT_NOT_FOUND = "not found"


class RealBeadsGateway(BeadsOps):
    """Production implementation using the bd CLI.

    Every invocation sets BEADS_DIR explicitly to the storage directory
    resolved from the working directory, so an inherited BEADS_DIR never
    leaks between rigs. ID-taking operations that bd misroutes (see
    BD_ROUTING_BUGS) are run from the directory of the rig that owns the ID.
    """

    def __init__(
        self,
        *,
        work_dir: Path,
        town_root: Path | None = None,
        beads_dir: Path | None = None,
        home: Path | None = None,
        registry: RoutingBugRegistry = BD_ROUTING_BUGS,
        bd_binary: str = BD_BINARY,
    ) -> None:
        """Initialize RealBeadsGateway.

        Args:
            work_dir: Directory bd runs in.
            town_root: Town root used for routing workarounds. Without it,
                every operation runs from work_dir.
            beads_dir: Explicit storage directory. If None, resolved from
                work_dir by following redirects.
            home: HOME for the bd child process (tests pass an isolated one).
            registry: Routing bug registry consulted per operation.
            bd_binary: Name or path of the bd executable.
        """
        self._work_dir = work_dir
        self._town_root = town_root
        self._beads_dir = beads_dir
        self._home = home
        self._registry = registry
        self._bd_binary = bd_binary

    @classmethod
    def for_work_dir(cls, work_dir: Path, *, home: Path | None = None) -> "RealBeadsGateway":
        """Build a gateway for work_dir, discovering its town root if there is one."""
        try:
            town_root: Path | None = find_town_root(work_dir)
        except TownRootNotFoundError:
            town_root = None
        return cls(work_dir=work_dir, town_root=town_root, home=home)

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    @property
    def town_root(self) -> Path | None:
        return self._town_root

    @property
    def routing_registry(self) -> RoutingBugRegistry:
        return self._registry

    @property
    def beads_dir(self) -> Path:
        """Storage directory bd is pointed at."""
        if self._beads_dir is not None:
            return self._beads_dir
        return resolve_beads_dir(self._work_dir)

    def routed_for(self, bead_id: str) -> "RealBeadsGateway":
        """Return a gateway rooted at the rig that owns bead_id.

        Returns self when there is no town root, the ID has no prefix, or the
        owning rig is this gateway's own directory.

        Raises:
            RoutingError: If the prefix is not in the town routing table
        """
        if self._town_root is None:
            return self
        prefix = extract_prefix(bead_id)
        if not prefix:
            return self
        if route_for_prefix(load_routes(self._town_root), prefix) is None:
            raise RoutingError(f"no route for prefix {prefix!r} of {bead_id}")

        work_dir = resolve_hook_dir(self._town_root, bead_id, self._work_dir)
        if work_dir == self._work_dir:
            return self
        return type(self)(
            work_dir=work_dir,
            town_root=self._town_root,
            home=self._home,
            registry=self._registry,
            bd_binary=self._bd_binary,
        )

    # === Invocation ===

    def _child_env(self) -> dict[str, str]:
        return copied_env_for_bd_subprocess(
            beads_dir=self.beads_dir, home=self._home, drop_beads_dir=True
        )

    def _reports_silent_failures(self) -> bool:
        """Whether exit 0 with empty stdout and non-empty stderr counts as failure."""
        return True

    def _run(self, *args: str, daemon: bool = False) -> bytes:
        """Run bd and return stdout.

        Reads pass --no-daemon --allow-stale; daemon=True runs plain bd so
        writes go through the daemon.
        """
        flags: tuple[str, ...] = () if daemon else _READ_FLAGS
        cmd = [self._bd_binary, *flags, *args]
        result = run_subprocess_with_context(
            cmd=cmd,
            operation_context=f"bd {args[0] if args else ''}",
            cwd=self._work_dir,
            env=self._child_env(),
        )
        stderr = result.stderr.decode("utf-8", errors="replace")
        if result.returncode != 0:
            raise self._failure(args, stderr)
        if self._reports_silent_failures() and not result.stdout.strip() and stderr.strip():
            # bd --no-daemon exits 0 on some lookup failures, printing only to stderr
            raise self._failure(args, stderr)
        return result.stdout

    def _failure(self, args: tuple[str, ...], stderr: str) -> BeadsError:
        error = classify_bd_failure(args, stderr)
        if isinstance(error, UpstreamError) and not self.beads_dir.is_dir():
            return NotARepoError(f"{self.beads_dir} is not a beads directory: {error.stderr}")
        return error

    def _run_json(self, *args: str, daemon: bool = False) -> Any:
        out = self._run(*args, daemon=daemon)
        try:
            return load_json(out)
        except DecodeError as e:
            raise UpstreamError(list(args), str(e)) from e

    def _decode(self, args: tuple[str, ...], decode: Callable[[], T]) -> T:
        try:
            return decode()
        except DecodeError as e:
            raise UpstreamError(list(args), str(e)) from e

    def _decode_issue_list(self, args: tuple[str, ...], payload: Any, plural: str) -> list[Issue]:
        return self._decode(args, lambda: decode_issues(payload, plural=plural))

    def _decode_entity_list(
        self,
        args: tuple[str, ...],
        payload: Any,
        plural: str,
        decode_item: Callable[[Mapping[str, Any]], T],
    ) -> list[T]:
        return self._decode(args, lambda: decode_list(payload, plural, decode_item))

    def _normalize_config_value(self, value: str) -> str:
        if value.endswith(NOT_SET_SUFFIX):
            return ""
        return value

    def _list_issues_cmd(self, plural: str, *args: str) -> list[Issue]:
        return self._decode_issue_list(args, self._run_json(*args), plural)

    def _issue_cmd(self, *args: str, daemon: bool = False) -> Issue:
        payload = self._run_json(*args, daemon=daemon)
        return self._decode(args, lambda: decode_object(payload, decode_issue))

    # === Issue CRUD ===

    def list_issues(self, options: ListOptions) -> list[Issue]:
        """Runs: bd list --json [filters]"""
        args = ["list", "--json"]
        if options.status:
            args.append(f"--status={options.status}")
        if options.label:
            args.append(f"--label={options.label}")
        if options.issue_type:
            args.append(f"--type={options.issue_type}")
        for label in options.labels:
            args.extend(["-l", label])
        if options.priority is not None:
            args.append(f"--priority={options.priority}")
        if options.parent:
            args.append(f"--parent={options.parent}")
        if options.assignee:
            args.append(f"--assignee={options.assignee}")
        if options.no_assignee:
            args.append("--no-assignee")
        if options.limit:
            args.append(f"--limit={options.limit}")
        if options.all_statuses:
            args.append("--all")
        return self._list_issues_cmd("issues", *args)

    @routes_by_bead_id("show")
    def show(self, bead_id: str) -> Issue:
        """Runs: bd show ID --json

        bd prints an array with zero or one element; empty output also means
        the ID did not resolve.
        """
        check_bead_id(bead_id)
        args = ("show", bead_id, "--json")
        out = self._run(*args)
        if not out.strip():
            raise NotFoundError(f"issue {bead_id} not found")
        payload = self._decode(args, lambda: load_json(out))
        issue = self._decode(args, lambda: decode_single_issue(payload))
        if issue is None:
            raise NotFoundError(f"issue {bead_id} not found")
        return issue

    def show_multiple(self, bead_ids: list[str]) -> dict[str, Issue]:
        if not bead_ids:
            return {}
        args = ("show", "--json", *bead_ids)
        try:
            payload = self._run_json(*args)
        except (NotFoundError, UpstreamError) as e:
            # Some IDs may not exist; bd fails the whole call in that case
            logger.debug("bd show of %d IDs failed: %s", len(bead_ids), e)
            return {}
        issues = self._decode_issue_list(args, payload, "issues")
        return {issue.id: issue for issue in issues}

    def _create_args(self, options: CreateOptions) -> list[str]:
        args = [f"--title={options.title}"]
        if options.issue_type:
            args.append(f"--labels={type_label(options.issue_type)}")
        args.append(f"--priority={options.priority}")
        if options.description:
            args.append(f"--description={options.description}")
        if options.parent:
            args.append(f"--parent={options.parent}")
        if options.ephemeral:
            args.append("--ephemeral")
        for label in options.labels:
            args.append(f"--labels={label}")
        actor = options.actor or os.environ.get(ACTOR_ENV, "")
        if actor:
            args.append(f"--actor={actor}")
        return args

    def create(self, options: CreateOptions) -> Issue:
        """Runs: bd create --json --title=... --labels=gt:<type> ..."""
        check_create(options)
        return self._issue_cmd("create", "--json", *self._create_args(options))

    @routes_by_bead_id("create_with_id")
    def create_with_id(self, bead_id: str, options: CreateOptions) -> Issue:
        check_create(options)
        check_id_prefix(bead_id, options.prefix)
        return self._issue_cmd("create", "--json", f"--id={bead_id}", *self._create_args(options))

    @routes_by_bead_id("update")
    def update(self, bead_id: str, options: UpdateOptions) -> None:
        check_bead_id(bead_id)
        check_update(options)
        args = ["update", bead_id]
        if options.title is not None:
            args.append(f"--title={options.title}")
        if options.status is not None:
            args.append(f"--status={options.status}")
        if options.priority is not None:
            args.append(f"--priority={options.priority}")
        if options.description is not None:
            args.append(f"--description={options.description}")
        if options.assignee is not None:
            args.append(f"--assignee={options.assignee}")
        if options.unassign:
            args.append("--unassign")
        if options.notes:
            args.append(f"--notes={options.notes}")
        if options.set_labels is not None:
            # bd has no "clear all labels" flag; an empty set still needs one arg
            labels = options.set_labels if options.set_labels else ("",)
            args.extend(f"--set-labels={label}" for label in labels)
        else:
            args.extend(f"--add-label={label}" for label in options.add_labels)
            args.extend(f"--remove-label={label}" for label in options.remove_labels)
        self._run(*args)

    @routes_by_bead_id("close")
    def close(self, *bead_ids: str) -> None:
        self.close_with_options(CloseOptions(), *bead_ids)

    @routes_by_bead_id("close_with_reason", id_position=1)
    def close_with_reason(self, reason: str, *bead_ids: str) -> None:
        self.close_with_options(CloseOptions(reason=reason), *bead_ids)

    @routes_by_bead_id("close_with_options", id_position=1)
    def close_with_options(self, options: CloseOptions, *bead_ids: str) -> None:
        """Runs: bd close IDs [--reason=] [--force] [--session=]

        The session falls back to GT_SESSION_ID for work attribution.
        """
        if not bead_ids:
            return
        args = ["close", *bead_ids]
        if options.reason:
            args.append(f"--reason={options.reason}")
        if options.force:
            args.append("--force")
        session = options.session or os.environ.get(SESSION_ENV, "")
        if session:
            args.append(f"--session={session}")
        self._run(*args)

    @routes_by_bead_id("delete")
    def delete(self, *bead_ids: str) -> None:
        """Runs: bd delete --force --hard IDs

        --hard bypasses tombstones so show() raises NotFoundError afterwards.
        """
        if not bead_ids:
            return
        self._run("delete", "--force", "--hard", *bead_ids)

    @routes_by_bead_id("delete_with_options", id_position=1)
    def delete_with_options(self, options: DeleteOptions, *bead_ids: str) -> None:
        if not bead_ids:
            return
        args = ["delete", "--hard"]
        if options.force:
            args.append("--force")
        self._run(*args, *bead_ids)

    @routes_by_bead_id("reopen")
    def reopen(self, bead_id: str) -> None:
        check_bead_id(bead_id)
        self._run("reopen", bead_id)

    @routes_by_bead_id("release")
    def release(self, bead_id: str) -> None:
        self.release_with_reason(bead_id, "")

    @routes_by_bead_id("release_with_reason")
    def release_with_reason(self, bead_id: str, reason: str) -> None:
        notes = f"Released: {reason}" if reason else ""
        self.update(bead_id, UpdateOptions(status=STATUS_OPEN, assignee="", notes=notes))

    # === Dependencies ===

    def ready(self) -> list[Issue]:
        return self._list_issues_cmd("issues", "ready", "--json")

    def ready_with_label(self, label: str, limit: int | None) -> list[Issue]:
        args = ["ready", "--json", "--label", label]
        if limit:
            args.extend(["-n", str(limit)])
        return self._list_issues_cmd("issues", *args)

    def blocked(self) -> list[Issue]:
        return self._list_issues_cmd("issues", "blocked", "--json")

    @routes_by_bead_id("add_dependency")
    def add_dependency(self, bead_id: str, depends_on_id: str) -> None:
        self._run("dep", "add", bead_id, depends_on_id)

    @routes_by_bead_id("add_dependency_with_type")
    def add_dependency_with_type(self, bead_id: str, depends_on_id: str, dep_type: str) -> None:
        self._run("dep", "add", bead_id, depends_on_id, f"--type={dep_type}")

    @routes_by_bead_id("remove_dependency")
    def remove_dependency(self, bead_id: str, depends_on_id: str) -> None:
        self._run("dep", "remove", bead_id, depends_on_id)

    # === Sync ===

    def sync(self) -> None:
        self._run("sync", daemon=True)

    def sync_from_main(self) -> None:
        self._run("sync", "--from-main")

    def sync_import_only(self) -> None:
        self._run("sync", "--import-only")

    def get_sync_status(self) -> SyncStatus:
        args = ("sync", "--status", "--json")
        try:
            payload = self._run_json(*args)
        except UpstreamError as e:
            # A repo without a sync branch has nothing to report
            if "does not exist" in e.stderr:
                return SyncStatus(branch="", ahead=0, behind=0, conflicts=())
            raise
        return self._decode(args, lambda: decode_object(payload, decode_sync_status))

    # === Config & lifecycle ===

    def config_get(self, key: str) -> str:
        out = self._run("config", "get", key)
        return self._normalize_config_value(out.decode("utf-8").strip())

    def config_set(self, key: str, value: str) -> None:
        self._run("config", "set", key, value)

    def init(self, options: InitOptions) -> None:
        args = ["init"]
        if options.prefix:
            args.extend(["--prefix", options.prefix])
        if options.quiet:
            args.append("--quiet")
        self._run(*args)

    def migrate(self, options: MigrateOptions) -> None:
        args = ["migrate"]
        if options.update_repo_id:
            args.append("--update-repo-id")
        if options.yes:
            args.append("--yes")
        self._run(*args)

    def is_beads_repo(self) -> bool:
        # Existence check, not stderr parsing
        return self.beads_dir.is_dir()

    # === Daemon ===

    def daemon_start(self) -> None:
        self._run("daemon", "--start", daemon=True)

    def daemon_stop(self) -> None:
        self._run("daemon", "--stop", daemon=True)

    def daemon_status(self) -> DaemonStatus:
        args = ("daemon", "--status", "--json")
        try:
            payload = self._run_json(*args, daemon=True)
        except (NotFoundError, NotARepoError, UpstreamError) as e:
            logger.debug("bd daemon status failed, reporting stopped: %s", e)
            return DaemonStatus(running=False)
        return self._decode(args, lambda: decode_object(payload, decode_daemon_status))

    def daemon_health(self) -> DaemonHealth:
        args = ("daemon", "health", "--json")
        payload = self._run_json(*args, daemon=True)
        return self._decode(args, lambda: decode_object(payload, decode_daemon_health))

    # === Molecules ===

    def mol_seed(self, options: MolSeedOptions) -> None:
        args = ["mol", "seed"]
        if options.patrol:
            args.append("--patrol")
        self._run(*args)

    @routes_by_bead_id("mol_current")
    def mol_current(self, molecule_id: str) -> MolCurrentOutput:
        args = ("mol", "current", molecule_id, "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_mol_current))

    def mol_catalog(self) -> list[MoleculeProto]:
        args = ("mol", "catalog", "--json")
        try:
            payload = self._run_json(*args)
            return self._decode_entity_list(args, payload, "protos", decode_proto)
        except (NotFoundError, UpstreamError) as e:
            # Older bd builds have no catalog command
            logger.debug("bd mol catalog unavailable: %s", e)
            return []

    def wisp_create(self, proto_id: str, actor: str) -> Issue:
        return self.wisp_create_with_options(WispCreateOptions(proto_id=proto_id, actor=actor))

    def wisp_create_with_options(self, options: WispCreateOptions) -> Issue:
        args = ["mol", "wisp", options.proto_id]
        if options.actor:
            args.extend(["--actor", options.actor])
        for key, value in options.variables:
            args.extend(["--var", f"{key}={value}"])
        return self._issue_cmd(*args)

    def wisp_list(self, all_: bool) -> list[Issue]:
        args = ["mol", "wisp", "list", "--json"]
        if all_:
            args.append("--all")
        try:
            payload = self._run_json(*args)
        except (NotFoundError, UpstreamError) as e:
            logger.debug("bd mol wisp list failed: %s", e)
            return []
        return self._decode_issue_list(tuple(args), payload, "wisps")

    def wisp_gc(self) -> None:
        self._run("mol", "wisp", "gc")

    @routes_by_bead_id("mol_bond")
    def mol_bond(self, wisp_id: str, bead_id: str) -> Issue:
        return self._issue_cmd("mol", "bond", wisp_id, bead_id, "--json")

    @routes_by_bead_id("mol_burn")
    def mol_burn(self, *bead_ids: str) -> None:
        if not bead_ids:
            return
        self._run("mol", "burn", "--force", *bead_ids)

    # === Gates ===

    @routes_by_bead_id("gate_show")
    def gate_show(self, gate_id: str) -> Gate:
        args = ("gate", "show", gate_id, "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_gate))

    @routes_by_bead_id("gate_wait")
    def gate_wait(self, gate_id: str, notify_agent: str) -> None:
        args = ["gate", "wait", gate_id]
        if notify_agent:
            args.extend(["--notify", notify_agent])
        self._run(*args, daemon=True)

    def gate_list(self, all_: bool) -> list[Gate]:
        args = ["gate", "list", "--json"]
        if all_:
            args.append("--all")
        try:
            payload = self._run_json(*args)
        except (NotFoundError, UpstreamError) as e:
            logger.debug("bd gate list failed: %s", e)
            return []
        return self._decode_entity_list(tuple(args), payload, "gates", decode_gate)

    @routes_by_bead_id("gate_resolve")
    def gate_resolve(self, gate_id: str) -> None:
        self._run("gate", "resolve", gate_id, daemon=True)

    @routes_by_bead_id("gate_add_waiter")
    def gate_add_waiter(self, gate_id: str, waiter: str) -> None:
        self._run("gate", "add-waiter", gate_id, waiter, daemon=True)

    def gate_check(self) -> None:
        self._run("gate", "check", daemon=True)

    # === Swarms ===

    @routes_by_bead_id("swarm_status")
    def swarm_status(self, swarm_id: str) -> SwarmStatus:
        args = ("swarm", "status", swarm_id, "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_swarm_status))

    @routes_by_bead_id("swarm_create")
    def swarm_create(self, epic_id: str) -> Issue:
        return self._issue_cmd("swarm", "create", epic_id, "--json", daemon=True)

    def swarm_list(self) -> list[Issue]:
        return self._list_issues_cmd("swarms", "swarm", "list", "--json")

    @routes_by_bead_id("swarm_validate")
    def swarm_validate(self, epic_id: str) -> None:
        self._run("swarm", "validate", epic_id)

    # === Formulas ===

    def formula_show(self, name: str) -> Formula:
        args = ("formula", "show", name, "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_formula))

    def formula_list(self) -> list[Formula]:
        args = ("formula", "list", "--json")
        try:
            payload = self._run_json(*args)
            return self._decode_entity_list(args, payload, "formulas", decode_formula)
        except (NotFoundError, UpstreamError) as e:
            logger.debug("bd formula list unavailable: %s", e)
            return []

    def cook(self, formula_name: str) -> Issue:
        return self._issue_cmd("cook", formula_name, "--json")

    @routes_by_bead_id("leg_add")
    def leg_add(self, formula_id: str, step_name: str) -> None:
        self._run("leg", "add", formula_id, step_name)

    # === Agents, labels, comments ===

    @routes_by_bead_id("agent_state")
    def agent_state(self, bead_id: str, state: str) -> None:
        self._run("agent", "state", bead_id, state)

    @routes_by_bead_id("label_add")
    def label_add(self, bead_id: str, label: str) -> None:
        self._run("label", "add", bead_id, label)

    @routes_by_bead_id("label_remove")
    def label_remove(self, bead_id: str, label: str) -> None:
        self._run("label", "remove", bead_id, label)

    @routes_by_bead_id("comment")
    def comment(self, bead_id: str, message: str) -> None:
        self._run("comment", bead_id, message)

    # === Slots ===

    @routes_by_bead_id("slot_show")
    def slot_show(self, bead_id: str) -> Slot:
        args = ("slot", "show", bead_id, "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_slot))

    @routes_by_bead_id("slot_set")
    def slot_set(self, agent_id: str, slot_name: str, bead_id: str) -> None:
        check_slot_name(slot_name)
        self._run("slot", "set", agent_id, slot_name, bead_id, daemon=True)

    @routes_by_bead_id("slot_clear")
    def slot_clear(self, agent_id: str, slot_name: str) -> None:
        check_slot_name(slot_name)
        self._run("slot", "clear", agent_id, slot_name, daemon=True)

    def merge_slot_create(self) -> str:
        args = ("merge-slot", "create", "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_merge_slot_status)).id

    def merge_slot_check(self) -> MergeSlotStatus:
        args = ("merge-slot", "check", "--json")
        try:
            payload = self._run_json(*args)
        except NotFoundError:
            return MergeSlotStatus(id="", available=False, error=MERGE_SLOT_NOT_FOUND)
        return self._decode(args, lambda: decode_object(payload, decode_merge_slot_status))

    def merge_slot_acquire(self, holder: str, add_waiter: bool) -> MergeSlotStatus:
        args = ["merge-slot", "acquire", f"--holder={holder}", "--json"]
        if add_waiter:
            args.append("--wait")
        payload = self._run_json(*args)
        return self._decode(tuple(args), lambda: decode_object(payload, decode_merge_slot_status))

    def merge_slot_release(self, holder: str) -> None:
        self._run("merge-slot", "release", f"--holder={holder}")

    def merge_slot_ensure_exists(self) -> str:
        status = self.merge_slot_check()
        if status.error == MERGE_SLOT_NOT_FOUND:
            return self.merge_slot_create()
        return status.id

    # === Search, stats, housekeeping ===

    def search(self, query: str, options: SearchOptions) -> list[Issue]:
        args = ["search", query, "--json"]
        if options.status:
            args.extend(["--status", options.status])
        if options.issue_type:
            args.extend(["--type", options.issue_type])
        if options.limit:
            args.extend(["--limit", str(options.limit)])
        return self._list_issues_cmd("issues", *args)

    def version(self) -> str:
        return self._run("version").decode("utf-8").strip()

    def doctor(self) -> DoctorReport:
        args = ("doctor", "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_doctor_report))

    def prime(self) -> str:
        return self._run("prime").decode("utf-8")

    def stats(self) -> str:
        return self._run("stats").decode("utf-8")

    def stats_json(self) -> RepoStats:
        args = ("stats", "--json")
        payload = self._run_json(*args)
        return self._decode(args, lambda: decode_object(payload, decode_repo_stats))

    def flush(self) -> None:
        self._run("daemon", "flush", daemon=True)

    def burn(self, options: BurnOptions) -> None:
        args = ["burn"]
        if options.session_id:
            args.append(f"--session={options.session_id}")
        if options.tokens > 0:
            args.append(f"--tokens={options.tokens}")
        if options.cost > 0:
            args.append(f"--cost={options.cost:.6f}")
        if options.model:
            args.append(f"--model={options.model}")
        self._run(*args)

    def run(self, *args: str) -> bytes:
        return self._run(*args)

