"""Typer CLI entrypoint."""

from __future__ import annotations

import dataclasses
import logging
import threading
from pathlib import Path

import typer

from standgateway.api import Gateway
from standgateway.core.config_loader import load_config
from standgateway.core.errors import StandGatewayError
from standgateway.core.model import Event

app = typer.Typer(help="Bridge to a paired serial Bluetooth peer")


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _build_gateway(
    config_path: Path | None,
    target: str | None = None,
    timeout: float | None = None,
) -> Gateway:
    loaded = load_config(config_path)
    config = loaded.config
    if target:
        config = dataclasses.replace(config, target_name=target)
    if timeout is not None:
        config = dataclasses.replace(config, wait_timeout_s=timeout)

    gateway = Gateway(config=config)
    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    for warning in getattr(gateway, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return gateway


@app.command("connect")
def connect(
    config: Path | None = typer.Option(None, "--config", help="YAML config file"),
    target: str | None = typer.Option(None, "--target", help="Paired device name"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds to wait for an outcome"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """Connect to the target peer and print the connection log."""
    _setup_logging(verbose)
    try:
        gateway = _build_gateway(config, target=target, timeout=timeout)
    except StandGatewayError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    done = threading.Event()
    outcome: list[Event] = []

    def _sink(event: Event) -> None:
        typer.echo(event.text)
        if event.final:
            outcome.append(event)
            done.set()

    gateway.subscribe(_sink, name="cli")
    gateway.connect()
    finished = done.wait(gateway.config.wait_timeout_s)
    gateway.close(timeout=1.0)

    if not finished:
        typer.echo(
            f"Error: no outcome after {gateway.config.wait_timeout_s:g}s",
            err=True,
        )
        raise typer.Exit(code=1)
    if outcome[0].level == "error":
        raise typer.Exit(code=1)


@app.command("devices")
def list_devices(
    config: Path | None = typer.Option(None, "--config", help="YAML config file"),
    target: str | None = typer.Option(None, "--target", help="Paired device name"),
) -> None:
    """List paired Bluetooth devices and mark the target."""
    try:
        gateway = _build_gateway(config, target=target)
        peers = gateway.list_peers()
        if not peers:
            typer.echo("No paired Bluetooth devices found")
            return

        for peer in peers:
            marker = " <- target" if peer.name == gateway.config.target_name else ""
            typer.echo(f"{peer.address} {peer.name}{marker}")
    except StandGatewayError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Show the effective configuration and where it came from."""
    try:
        loaded = load_config(config)
    except StandGatewayError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    for field in dataclasses.fields(loaded.config):
        value = getattr(loaded.config, field.name)
        typer.echo(f"{field.name}: {'-' if value is None else value}")
    typer.echo(f"sources: {', '.join(loaded.sources)}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
