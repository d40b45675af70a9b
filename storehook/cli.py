"""Command line interface for replaying webhooks and inspecting key-sets."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from storehook.config import load_config
from storehook.dispatch import build_dispatcher
from storehook.errors import KeyFetchFailed
from storehook.keys import KeyResolver
from storehook.receiver import WebhookReceiver
from storehook.sinks import get_sink

app = typer.Typer(help="CLI for storehook webhook processing")

keys_app = typer.Typer(help="Commands for inspecting platform signing keys")
app.add_typer(keys_app, name="keys")


class PlatformChoice(str, Enum):
    apple = "apple"
    google = "google"


class LogLevel(str, Enum):
    debug = "DEBUG"
    info = "INFO"
    warning = "WARNING"
    error = "ERROR"
    critical = "CRITICAL"


@app.callback()
def main(
    log_level: LogLevel = typer.Option(
        LogLevel.warning, case_sensitive=False, help="Logging level for storehook"
    ),
) -> None:
    """storehook CLI entry point."""
    logging.basicConfig(level=log_level.value)


@app.command("dispatch")
def dispatch_command(
    payload_path: Path,
    platform: Optional[PlatformChoice] = typer.Option(
        None, help="Skip trial validation and use this platform's handler"
    ),
    verify: bool = typer.Option(
        True, help="Verify signed envelopes; --no-verify accepts unsigned fixtures"
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """
    Dispatch a stored notification body and print the canonical event.

    Example:
        storehook dispatch ./fixtures/initial_buy.json --no-verify
        storehook dispatch ./rtdn.json --platform google
    """
    if not payload_path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    config = load_config(config_path)
    if not verify:
        config.apple.verify_signatures = False

    receiver = WebhookReceiver(build_dispatcher(config), get_sink(config=config))
    result = asyncio.run(
        receiver.receive(
            payload_path.read_bytes(), platform=platform.value if platform else None
        )
    )

    if result.event is None:
        typer.secho("No suitable webhook handler found", fg=typer.colors.RED)
        if result.error is not None:
            for name, code in result.error.rejections.items():
                typer.echo(f"  {name}: {code}")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result.event.to_dict(), indent=2, default=str))


@keys_app.command("show")
def keys_show(
    config_path: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Fetch the Apple key-set and list the key ids it publishes."""
    apple = load_config(config_path).apple
    resolver = KeyResolver.from_url(
        apple.jwks_url,
        timeout=apple.fetch_timeout,
        retries=apple.fetch_retries,
        retry_backoff=apple.retry_backoff,
        name="apple",
    )
    try:
        key_set = resolver.refresh()
    except KeyFetchFailed as exc:
        typer.secho(f"Key-set fetch failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if not len(key_set):
        typer.echo("No keys published.")
        return
    for kid, key in key_set.keys.items():
        typer.echo(f"{kid}\t{key.algorithm_name}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
