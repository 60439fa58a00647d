"""Diagnostic CLI over the path resolver and the routing bug registry."""

import logging
from pathlib import Path
from typing import NoReturn

import click

from beadsroute.errors import RoutingError, TownRootNotFoundError
from beadsroute.paths import (
    extract_prefix,
    find_town_root,
    load_routes,
    resolve_beads_dir,
    resolve_hook_dir,
    route_for_prefix,
)
from beadsroute.routing_bugs import BD_ROUTING_BUGS

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

_from_option = click.option(
    "--from",
    "from_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory to resolve from (default: current directory)",
)


def _error(message: str) -> NoReturn:
    click.echo(click.style("Error: ", fg="red") + message, err=True)
    raise SystemExit(1)


def _start_dir(from_dir: Path | None) -> Path:
    if from_dir is None:
        return Path.cwd()
    return from_dir.resolve()


def _town_root_or_exit(start_dir: Path) -> Path:
    try:
        return find_town_root(start_dir)
    except TownRootNotFoundError as e:
        _error(str(e))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="beadsroute")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Inspect how bead IDs route across the rigs of a town."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")


@cli.command("town-root")
@_from_option
def town_root_cmd(from_dir: Path | None) -> None:
    """Print the town root enclosing a directory."""
    click.echo(str(_town_root_or_exit(_start_dir(from_dir))))


@cli.command("storage-dir")
@_from_option
def storage_dir_cmd(from_dir: Path | None) -> None:
    """Print the storage directory bd uses, after following redirects."""
    click.echo(str(resolve_beads_dir(_start_dir(from_dir))))


@cli.command("route")
@click.argument("bead_id")
@_from_option
def route_cmd(bead_id: str, from_dir: Path | None) -> None:
    """Show which rig directory BEAD_ID routes to."""
    start_dir = _start_dir(from_dir)
    prefix = extract_prefix(bead_id)
    if not prefix:
        click.echo(f"{bead_id}: no prefix, runs in {start_dir}")
        return

    town_root = _town_root_or_exit(start_dir)
    route = route_for_prefix(load_routes(town_root), prefix)
    if route is None:
        _error(str(RoutingError(f"no route for prefix {prefix!r} of {bead_id}")))
    target = resolve_hook_dir(town_root, bead_id, start_dir)
    click.echo(f"prefix: {prefix}")
    click.echo(f"directory: {target}")
    click.echo(f"storage: {resolve_beads_dir(target)}")


@cli.command("routes")
@_from_option
def routes_cmd(from_dir: Path | None) -> None:
    """List the town routing table."""
    town_root = _town_root_or_exit(_start_dir(from_dir))
    routes = load_routes(town_root)
    if not routes:
        click.echo("No routes configured")
        return
    width = max(len(route.prefix) for route in routes)
    for route in routes:
        click.echo(f"{route.prefix.ljust(width)}  {route.path}")


@cli.command("bugs")
@click.option("--all", "show_all", is_flag=True, help="Show every operation, not just broken ones")
def bugs_cmd(show_all: bool) -> None:
    """List bd operations that misroute cross-rig bead IDs."""
    if not show_all:
        for operation in BD_ROUTING_BUGS.broken_operations():
            click.echo(operation)
        return

    for operation, fixed in sorted(BD_ROUTING_BUGS.entries().items()):
        if fixed:
            status = click.style("fixed", fg="green")
        else:
            status = click.style("broken", fg="red")
        click.echo(f"{operation}: {status}")


def main() -> None:
    """CLI entry point used by the `beadsroute` console script."""
    cli()
