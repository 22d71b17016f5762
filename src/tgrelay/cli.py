from __future__ import annotations

from pathlib import Path

import anyio
import typer

from . import __version__
from .config import ConfigError, load_config
from .logging import get_logger, setup_logging
from .relay import run_relay

logger = get_logger(__name__)

app = typer.Typer(add_completion=False, help="Relay Telegram chats to a completion API.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.command()
def run(
    config: Path | None = typer.Option(
        None, "--config", help="Path to tgrelay.toml."
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Log debug output to the console."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Run the relay bot until interrupted."""
    setup_logging(debug=debug)
    try:
        relay_config, config_path = load_config(config)
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from None
    logger.info("relay.config", path=str(config_path))
    try:
        anyio.run(run_relay, relay_config)
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        logger.info("relay.stopped")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
