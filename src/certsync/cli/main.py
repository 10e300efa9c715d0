"""CLI entry point for certsync.

Invoked as::

    certsync [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m certsync.cli.main

Commands
--------
run         Rotate every configured certificate family
inventory   List the certificates on the remote appliance
init        Write a sample configuration file
version     Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

DEFAULT_CONFIG = "certsync.ini"

_STATE_STYLES = {
    "retired": "green",
    "rebound": "yellow",
    "imported": "yellow",
    "skipped": "dim",
    "failed": "red",
}


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="certsync")
def cli() -> None:
    """Keep a remote appliance's certificates in sync with a local store"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from certsync import __version__

    console.print(f"[bold]certsync[/bold] v{__version__}")


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@cli.command(name="init")
@click.argument("path", type=click.Path(dir_okay=False), default=DEFAULT_CONFIG)
def init_command(path: str) -> None:
    """Write a sample configuration to PATH."""
    from certsync.config import write_sample_config

    target = Path(path)
    if target.exists():
        console.print(f"[red]Error:[/red] {target} already exists; not overwriting.")
        sys.exit(1)
    write_sample_config(target)
    console.print(f"[green]Sample configuration written to[/green] {target}")


# ------------------------------------------------------------------
# run
# ------------------------------------------------------------------


@cli.command(name="run")
@click.argument("config", type=click.Path(dir_okay=False), default=DEFAULT_CONFIG)
@click.option("--force", is_flag=True, help="Rotate even if the local certificate is not newer.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Append log entries to this file (default: certsync.log next to CONFIG).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages.")
def run_command(config: str, force: bool, log_file: str | None, verbose: bool) -> None:
    """Rotate every certificate family described in CONFIG."""
    from certsync.certificates.local_store import FilesystemCertificateSource
    from certsync.config import load_settings, write_sample_config
    from certsync.errors import AuthError, ConfigError
    from certsync.logging_setup import configure_logging
    from certsync.remote.client import RemoteApplianceClient
    from certsync.rotation.orchestrator import RotationOrchestrator, RotationState

    config_path = Path(config)
    log_path = Path(log_file) if log_file else config_path.with_name("certsync.log")
    logger = configure_logging(log_path, logging.DEBUG if verbose else logging.INFO)

    if not config_path.exists():
        write_sample_config(config_path)
        logger.critical("FATAL Configuration %s was missing; a sample was written. Edit it and re-run.", config_path)
        console.print(f"[red]Error:[/red] edit the sample configuration at {config_path} and re-run.")
        sys.exit(2)

    try:
        settings = load_settings(config_path)
        client = RemoteApplianceClient(settings.remote)
        client.verify_auth()
    except (ConfigError, AuthError) as exc:
        logger.critical("FATAL %s", exc)
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(2)

    orchestrator = RotationOrchestrator(
        client,
        FilesystemCertificateSource(settings.local.store_root),
        scope=settings.remote.scope,
    )
    outcomes = orchestrator.run(settings.families, force=force)

    table = Table(title="Rotation outcomes", show_header=True)
    table.add_column("Family", style="cyan")
    table.add_column("State")
    table.add_column("Old slot")
    table.add_column("New slot")
    table.add_column("Rebound", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Detail")

    for outcome in outcomes:
        style = _STATE_STYLES.get(outcome.state.value, "")
        detail = outcome.error
        if not detail and outcome.decision is not None:
            detail = outcome.decision.reason.value
        if outcome.state is RotationState.REBOUND:
            detail = "old slot kept"
        table.add_row(
            outcome.family,
            f"[{style}]{outcome.state.value}[/{style}]" if style else outcome.state.value,
            outcome.old_identifier or "-",
            outcome.new_identifier or "-",
            str(outcome.rebound),
            str(outcome.rebind_failures),
            escape(detail),
        )
    console.print(table)

    if any(o.state is RotationState.FAILED for o in outcomes):
        sys.exit(1)


# ------------------------------------------------------------------
# inventory
# ------------------------------------------------------------------


@cli.command(name="inventory")
@click.argument("config", type=click.Path(exists=True, dir_okay=False))
@click.option("--family", "-f", default=None, help="Only list certificates of this family.")
def inventory_command(config: str, family: str | None) -> None:
    """List the certificates on the remote appliance."""
    from certsync.certificates.naming import SlotName
    from certsync.config import load_settings
    from certsync.errors import CertSyncError
    from certsync.remote.client import RemoteApplianceClient

    try:
        settings = load_settings(Path(config))
        client = RemoteApplianceClient(settings.remote)
        client.verify_auth()
        predicate = (lambda name: SlotName.matches(name, family)) if family else None
        records = client.list_certificates(settings.remote.scope, predicate=predicate)
    except CertSyncError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(2)

    table = Table(title="Remote certificates", show_header=True)
    table.add_column("Identifier", style="cyan")
    table.add_column("Family")
    table.add_column("Subject")
    table.add_column("Issuer")
    table.add_column("Expires")

    for record in sorted(records, key=lambda r: (SlotName.parse(r.identifier).family.lower(), r.expiry)):
        table.add_row(
            record.identifier,
            SlotName.parse(record.identifier).family,
            record.subject_cn,
            record.issuer_o or record.issuer_cn,
            record.expiry.date().isoformat(),
        )
    console.print(table)


if __name__ == "__main__":
    cli()
