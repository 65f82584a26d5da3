"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from pathlib import Path

import typer

from hygroscan.core.config import LoadedConfig, load_config, parse_bind_key
from hygroscan.core.errors import HygroscanError
from hygroscan.core.events import decode_event
from hygroscan.core.frame import decode_frame
from hygroscan.core.model import READING_EVENTS, FrameControl, ReadingContext
from hygroscan.core.service import SensorScanner
from hygroscan.transports.bleak_scanner import BleakRadioDriver

app = typer.Typer(help="Decode environmental sensor readings from BLE advertisements")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_reading(event_name: str, value: object, context: ReadingContext) -> None:
    typer.echo(f"{context.address or context.identifier} {event_name}={value}")


def _print_error(error: Exception, context: ReadingContext) -> None:
    source = context.address or context.identifier or "scanner"
    typer.echo(f"Error: [{source}] {error}", err=True)


async def _run_scan(loaded: LoadedConfig, duration: float | None) -> None:
    driver = BleakRadioDriver(adapter=loaded.adapter)
    scanner = SensorScanner(driver, loaded.scanner)
    for event_name in READING_EVENTS:
        scanner.subscribe(event_name, partial(_print_reading, event_name))
    scanner.subscribe("error", _print_error)

    await driver.open()
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        scanner.stop()
        await driver.close()


def _flag_names(control: FrameControl) -> str:
    names = [name for name in FrameControl.FLAGS if getattr(control, name)]
    return ", ".join(names) if names else "<none>"


@app.command("scan")
def scan(
    address: str | None = typer.Option(None, "--address", help="Sensor MAC or platform identifier"),
    config: Path | None = typer.Option(None, "--config", help="YAML config file"),
    bind_key: str | None = typer.Option(None, "--bind-key", help="32 hex character bind key"),
    interval: float | None = typer.Option(None, "--interval", help="Scan window in seconds"),
    restart_delay: float | None = typer.Option(None, "--restart-delay", help="Seconds before a stopped scan restarts"),
    no_force: bool = typer.Option(False, "--no-force", help="Do not restart scanning once it stops"),
    adapter: str | None = typer.Option(None, "--adapter", help="Bluetooth adapter, e.g. hci0"),
    duration: float | None = typer.Option(None, "--duration", help="Exit after this many seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Scan for sensor advertisements and print decoded readings."""
    _configure_logging(verbose)
    try:
        loaded = load_config(
            config,
            address=address,
            bind_key=bind_key,
            discover_interval_s=interval,
            restart_delay_s=restart_delay,
            force_discovering=False if no_force else None,
            adapter=adapter,
        )
        asyncio.run(_run_scan(loaded, duration))
    except HygroscanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        typer.echo("Stopped", err=True)


@app.command("decode")
def decode(
    payload: str = typer.Argument(..., help="Service data as hex"),
    bind_key: str | None = typer.Option(None, "--bind-key", help="32 hex character bind key"),
    address: str | None = typer.Option(None, "--address", help="Advertisement address, used for encrypted frames without a MAC"),
) -> None:
    """Decode one service data payload and print its fields and readings."""
    try:
        try:
            raw = bytes.fromhex(payload.replace(" ", ""))
        except ValueError:
            raise typer.BadParameter("payload must be hex") from None
        frame = decode_frame(raw, parse_bind_key(bind_key), address=address)

        typer.echo(f"flags: {_flag_names(frame.frame_control)}")
        typer.echo(f"version: {frame.frame_control.version}")
        typer.echo(f"product_id: 0x{frame.product_id:04x}")
        typer.echo(f"frame_counter: {frame.frame_counter}")
        if frame.device_address:
            typer.echo(f"device_address: {frame.device_address}")
        if frame.capabilities is not None:
            typer.echo(f"capabilities: 0x{frame.capabilities:02x}")
        if frame.event is None:
            typer.echo("No event")
            return
        typer.echo(f"event: 0x{frame.event.event_type:04x} ({frame.event.length} bytes)")
        for reading in decode_event(frame.event.event_type, frame.event.payload, strict=False):
            typer.echo(f"  {reading.event_name}: {reading.value}")
    except HygroscanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
