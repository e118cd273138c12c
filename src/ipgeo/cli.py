"""Command line: look up addresses, serve the HTTP API and update the databases."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

import click
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from . import __version__
from .cli_errors import CLIError, handle_cli_errors
from .config import AppSettings
from .exceptions import InvalidIPError
from .logging_config import setup_logging
from .models import UnifiedResult
from .provisioning import DatabaseProvisioner, ensure_databases
from .resolver import Resolver
from .serialize import dump_to_path, dumps
from .server import run_server
from .sources import GeoSources

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON or YAML configuration file.",
)
@click.pass_context
@handle_cli_errors(context="Configuration")
def cli(ctx: click.Context, config_file: str | None) -> None:
    """
    ipgeo: IP geolocation from ASN, domestic and global databases.
    """
    settings = AppSettings.from_file(config_file)
    setup_logging(settings.LOG_LEVEL, log_dir=settings.LOG_DIR, mask_ips=settings.MASK_CLIENT_IPS)
    ctx.obj = settings


def _provision(settings: AppSettings, force: bool = False) -> list[Path]:
    with Progress(console=console, transient=True) as progress:
        return asyncio.run(ensure_databases(settings, force=force, progress=progress))


def _render_table(result: UnifiedResult) -> Table:
    table = Table(title=f"{result.ip} ({result.version})", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    location = result.location
    regions = " / ".join(region.name for region in location.regions)
    table.add_row("ASN", f"AS{result.asn.number} {result.asn.name}".strip())
    table.add_row("Carrier", result.asn.info)
    table.add_row("Network", f"{result.network.range.cidr} ({result.network.type})")
    table.add_row("Range", f"{result.network.range.start_ip} - {result.network.range.end_ip}")
    table.add_row("Addresses", str(result.network.range.total_ips))
    table.add_row("Country", f"{location.country.name} {location.country.code}".strip())
    table.add_row("Regions", regions)
    table.add_row(
        "Coordinates", f"{location.coordinates.latitude}, {location.coordinates.longitude}"
    )
    table.add_row("Timezone", location.timezone)
    table.add_row("ISP", f"{result.isp.name} {result.isp.type}".strip())
    return table


def _lookup_all(resolver: Resolver, addresses: Sequence[str]) -> tuple[list[UnifiedResult], int]:
    results: list[UnifiedResult] = []
    invalid = 0
    for address in addresses:
        try:
            results.append(resolver.resolve(address))
        except InvalidIPError as e:
            click.echo(f"❌ {e}", err=True)
            invalid += 1
    return results, invalid


@cli.command()
@click.argument("addresses", nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table.")
@click.option("--output", "output_file", type=click.Path(dir_okay=False), default=None)
@click.pass_obj
@handle_cli_errors(context="Lookup")
def lookup(
    settings: AppSettings, addresses: tuple[str, ...], as_json: bool, output_file: str | None
) -> None:
    """Resolve one or more IP addresses."""
    _provision(settings)

    with GeoSources.open(settings) as sources:
        results, invalid = _lookup_all(Resolver(sources, settings), addresses)

    payload = [result.to_dict() for result in results]
    if output_file:
        dump_to_path(Path(output_file), payload)
        click.echo(f"Results saved to: {output_file}")
    elif as_json:
        click.echo(dumps(payload, indent=2))
    else:
        for result in results:
            console.print(_render_table(result))

    if invalid:
        raise CLIError(f"{invalid} of {len(addresses)} addresses were invalid", "Lookup")


@cli.command()
@click.option("--host", type=str, default=None, help="Listen address.")
@click.option("--port", type=int, default=None, help="Listen port.")
@click.pass_obj
@handle_cli_errors(context="Server")
def serve(settings: AppSettings, host: str | None, port: int | None) -> None:
    """Provision the databases and serve the HTTP API."""
    if host:
        settings.HOST = host
    if port:
        settings.PORT = port

    _provision(settings)

    with GeoSources.open(settings) as sources:
        run_server(Resolver(sources, settings), settings)


@cli.command("update-databases")
@click.option("--force", is_flag=True, help="Download even if the files exist.")
@click.pass_obj
@handle_cli_errors(context="Database update")
def update_databases(settings: AppSettings, force: bool) -> None:
    """Download missing (or, with --force, all) geo databases."""
    console.print("Updating geo databases...")
    downloaded = _provision(settings, force=force)

    if downloaded:
        for path in downloaded:
            console.print(f"✅ {path}")
    else:
        console.print("All databases already present.")

    if not DatabaseProvisioner(settings).verify_databases():
        raise CLIError("Some databases are missing or empty.")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":  # pragma: no cover - module execution convenience
    main()
