"""CLI adapter for ``lib_cluster_registry`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators bootstrap the combined store and inspect the merged registry
without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling and ``--verbose`` logging.
* :func:`cli_bootstrap` – rebuild the combined store.
* :func:`cli_list` / :func:`cli_show` / :func:`cli_validate` – registry queries.
* :func:`cli_contexts` – context names in the combined store.
* :func:`cli_init` – write the example override document.
* :func:`cli_info` – distribution metadata.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. Commands call the composition root only. Expected outcomes
(unknown anchor, nothing configured) print a message and exit ``1``; anything
else is funnelled through ``lib_cli_exit_tools``.
"""

from __future__ import annotations

import json
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, NoReturn, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .application.pipeline import EntryState
from .core import (
    bootstrap,
    check_bootstrap,
    get_cluster,
    list_all_clusters,
    list_configured_clusters,
    load_settings,
    validate_cluster,
)
from .domain.errors import ClusterRegistryError, NotFound
from .examples import EXAMPLE_OVERRIDES, generate_overrides_example
from .observability import get_logger

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(message)s %(context)s"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when metadata is missing."""

    try:
        return metadata.version("lib_cluster_registry")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Cluster registry and combined kubeconfig bootstrap",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_cluster_registry",
    message="lib_cluster_registry version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log pipeline events to stderr")
@click.pass_context
def cli(ctx: click.Context, traceback: bool, verbose: bool) -> None:
    """Root command configuring traceback handling and logging for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and, with ``--verbose``,
        attaches a stderr handler to the package logger for the duration of the
        command.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    if verbose:
        _attach_stderr_handler(ctx)


def _attach_stderr_handler(ctx: click.Context) -> None:
    logger = get_logger()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    def _detach() -> None:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)

    ctx.call_on_close(_detach)


def _fail(message: str) -> NoReturn:
    click.echo(message, err=True)
    raise SystemExit(1)


@cli.command("bootstrap", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Base cluster registry (defaults to the shipped catalog)",
)
@click.option(
    "--overrides",
    "overrides_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="User override document",
)
@click.option(
    "--store",
    "store_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Combined kubeconfig to write",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds allowed for each obtain command",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Obtain commands allowed to run at once",
)
def cli_bootstrap(
    registry_path: Optional[Path],
    overrides_path: Optional[Path],
    store_path: Optional[Path],
    timeout: Optional[float],
    workers: Optional[int],
) -> None:
    """Obtain credentials for every configured cluster and rebuild the combined store.

    Exits ``1`` when no cluster ends up in the store and prints an example
    override document to get started.
    """

    settings = load_settings(
        registry_path=registry_path,
        overrides_path=overrides_path,
        store_path=store_path,
        obtain_timeout=timeout,
        workers=workers,
    )
    result = bootstrap(settings)
    for warning in result.warnings:
        click.echo(f"warning: {warning}", err=True)
    for outcome in result.summary.outcomes:
        if outcome.state is EntryState.UNCONFIGURED:
            continue
        line = f"  {outcome.state.value:<8} {outcome.anchor}"
        if outcome.reason:
            line += f": {outcome.reason}"
        click.echo(line)
        for note in outcome.notes:
            click.echo(f"           note: {note}")

    summary = result.summary
    click.echo(
        f"Configured: {summary.configured}, skipped: {summary.skipped}, "
        f"failed: {summary.failed}, unconfigured: {summary.unconfigured}"
    )
    click.echo(f"Store: {result.store_path}")
    if summary.ok:
        return
    if summary.nothing_configured:
        click.echo(f"No clusters configured. Create {settings.overrides_path}, for example:", err=True)
    else:
        click.echo(f"No cluster could be configured. Check {settings.overrides_path}, for example:", err=True)
    _fail(EXAMPLE_OVERRIDES)


@cli.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--all", "show_all", is_flag=True, default=False, help="Include unconfigured clusters")
def cli_list(show_all: bool) -> None:
    """Print configured clusters (or every cluster with ``--all``) as JSON."""

    try:
        settings = load_settings()
        clusters = list_all_clusters(settings) if show_all else list_configured_clusters(settings)
    except ClusterRegistryError as exc:
        click.echo(f"error: {exc}", err=True)
        clusters = []
    click.echo(json.dumps(clusters, indent=2))


@cli.command("show", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("anchor")
def cli_show(anchor: str) -> None:
    """Print the merged registry entry for ANCHOR as JSON."""

    try:
        entry = get_cluster(anchor)
    except NotFound as exc:
        _fail(str(exc))
    click.echo(json.dumps(entry.to_mapping(), indent=2))


@cli.command("validate", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("anchor")
@click.option(
    "--require-store/--no-require-store",
    default=False,
    help="Also require the combined store to exist",
    show_default=True,
)
def cli_validate(anchor: str, require_store: bool) -> None:
    """Check that ANCHOR exists, is configured and has a well-formed override."""

    settings = load_settings()
    try:
        if require_store:
            check_bootstrap(settings)
        validate_cluster(anchor, settings)
    except ClusterRegistryError as exc:
        _fail(str(exc))
    click.echo(f"Cluster '{anchor}' is ready")


@cli.command("contexts", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_contexts() -> None:
    """List context names in the combined store; the current one is starred."""

    try:
        store = check_bootstrap()
    except ClusterRegistryError as exc:
        _fail(str(exc))
    for name in store.context_names:
        marker = "*" if name == store.current_context else " "
        click.echo(f"{marker} {name}")


@cli.command("init", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--force/--no-force",
    default=False,
    help="Overwrite an existing override document",
    show_default=True,
)
def cli_init(force: bool) -> None:
    """Write the example override document into the state directory."""

    settings = load_settings()
    created = generate_overrides_example(settings.overrides_path.parent, force=force)
    if not created:
        click.echo(f"{settings.overrides_path} already exists; pass --force to overwrite", err=True)
    click.echo(json.dumps([str(path) for path in created], indent=2))


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_cluster_registry")
    except metadata.PackageNotFoundError:
        click.echo("lib_cluster_registry (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_cluster_registry')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.11')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")
    for entry in meta.get_all("Project-URL") or []:
        click.echo(f"  {entry}")


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_cluster_registry",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
