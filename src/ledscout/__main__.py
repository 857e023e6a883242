"""CLI entry point for ledscout."""

import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Optional

import click

from .config import Config
from .discovery.network import get_local_ipv4_addresses
from .discovery.scanner import DeviceScanner
from .exceptions import ConfigurationError
from .log_setup import setup_logging
from .models.common import ScanStatus
from .models.device import ScanResult

PROTOCOLS = ("wled", "pixelit")


@click.group()
@click.option(
    "--config-file", "-c",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Path to a JSON configuration file.",
    envvar="LEDSCOUT_CONFIG_FILE"
)
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None, # Falls back to the Config default unless set
    help="Override the logging level (e.g., DEBUG, INFO).",
    envvar="LEDSCOUT_LOGGING_LEVEL"
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Override logging format.",
    envvar="LEDSCOUT_LOGGING_FORMAT"
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str], log_format: Optional[str]) -> None:
    """ledscout - finds WLED and PixelIt controllers on the local network."""
    try:
        cfg = Config.from_file(Path(config_file)) if config_file else Config()
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if log_level:
        cfg.logging.level = log_level.upper()
    if log_format:
        cfg.logging.format = log_format.lower()

    setup_logging(cfg.logging)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


def _apply_scan_overrides(config: Config, subnet: Optional[str], interface: Optional[str], max_concurrency: Optional[int]) -> Config:
    overrides = {}
    if subnet is not None:
        overrides["subnet"] = subnet
    if interface is not None:
        overrides["interface"] = interface
    if max_concurrency is not None:
        overrides["max_concurrency"] = max_concurrency
    if not overrides:
        return config
    # Re-validate so CLI values obey the same constraints as file/env values
    scanner = config.scanner.model_validate({**config.scanner.model_dump(), **overrides})
    return config.model_copy(update={"scanner": scanner})


async def _run_scans(config: Config, protocols: tuple[str, ...]) -> dict[str, ScanResult]:
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        pass # Windows event loops have no signal handlers; Ctrl+C then aborts via KeyboardInterrupt

    results: dict[str, ScanResult] = {}
    try:
        async with DeviceScanner(config) as scanner:
            # WLED and PixelIt sweeps are independent and may run side by side
            coros = []
            for protocol in protocols:
                if protocol == "wled":
                    coros.append(scanner.scan_for_wled_devices(cancel_event))
                else:
                    coros.append(scanner.scan_for_pixelit_devices(cancel_event))
            for protocol, result in zip(protocols, await asyncio.gather(*coros)):
                results[protocol] = result
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    return results


def _echo_result(protocol: str, result: ScanResult) -> None:
    click.echo(f"\n--- {protocol.upper()} ---")
    if result.status == ScanStatus.ABORTED_NO_INTERFACE:
        click.echo("  No usable local network interface found.")
        return
    if result.status == ScanStatus.ABORTED_NOT_PRIVATE:
        click.echo(f"  Subnet {result.subnet}.x is not a private network; scan refused.")
        return
    if result.cancelled:
        click.echo("  Scan cancelled.")
        return
    if not result.devices:
        click.echo(f"  No devices found on {result.subnet}.x")
        return
    for device in result.devices:
        extra = f"  leds={device.led_count}" if getattr(device, "led_count", 0) else ""
        click.echo(f"  {device.ip_address:<16} {device.name:<28} {device.endpoint}{extra}")


@cli.command()
@click.argument("protocol", type=click.Choice([*PROTOCOLS, "all"], case_sensitive=False))
@click.option("--subnet", "-s", help="3-octet subnet prefix to sweep instead of the detected one (e.g. 192.168.1).")
@click.option("--interface", "-i", help="Only use addresses bound to this interface.")
@click.option("--max-concurrency", type=click.IntRange(1, 64), default=None, help="Maximum probes in flight.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_context
def scan(ctx: click.Context, protocol: str, subnet: Optional[str], interface: Optional[str],
         max_concurrency: Optional[int], as_json: bool) -> None:
    """Sweep the local private subnet for WLED and/or PixelIt devices."""
    try:
        config = _apply_scan_overrides(ctx.obj["config"], subnet, interface, max_concurrency)
    except ValueError as e: # pydantic.ValidationError is a ValueError
        raise click.BadParameter(str(e)) from e

    protocols = PROTOCOLS if protocol.lower() == "all" else (protocol.lower(),)
    try:
        results = asyncio.run(_run_scans(config, protocols))
    except KeyboardInterrupt:
        click.echo("\nScan interrupted by user.", err=True)
        sys.exit(130)

    if as_json:
        payload = {name: result.model_dump(mode="json", exclude={"devices": {"__all__": {"response_content"}}})
                   for name, result in results.items()}
        click.echo(json.dumps(payload, indent=2))
    else:
        for name, result in results.items():
            _echo_result(name, result)

    if any(result.cancelled for result in results.values()):
        sys.exit(130)


@cli.command()
@click.pass_context
def interfaces(ctx: click.Context) -> None:
    """List local IPv4 addresses usable for scanning."""
    config: Config = ctx.obj["config"]
    addresses = get_local_ipv4_addresses(config.scanner.interface)
    if not addresses:
        click.echo("No usable private IPv4 address found.")
        return
    for address in addresses:
        click.echo(address)


@cli.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    click.echo(f"ledscout v{__version__}")


@cli.command()
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config = ctx.obj["config"]
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    cli()
