"""
Main entry point for the note daemon.

This module provides the command line interface and server initialization.
"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from .config import USAGE, LogLevel, Settings, settings
from .domain import Domain
from .index import InMemoryIndexStore
from .logging import configure_logging, get_logger
from .manager import IndexManager
from .parser import MarkdownParser
from .server import run_server
from .utils import NoteDaemonError
from .vault import FileSystemVault

logger = get_logger(__name__)

app = typer.Typer(add_completion=False, help=f"Usage: {USAGE}")


def build_domain(config: Settings) -> Domain:
    """Wire the vault, parser, store and manager into a Domain."""
    vault = FileSystemVault(config.vault_path)
    manager = IndexManager(vault, InMemoryIndexStore(), MarkdownParser())
    return Domain(manager, config)


async def serve(config: Settings) -> None:
    domain = build_domain(config)
    logger.info("daemon_starting", vault=str(config.vault_path))

    try:
        await domain.reindex_all()
    except (NoteDaemonError, OSError) as e:
        # The daemon stays up; a later core.reindex can recover.
        logger.error("initial_reindex_failed", error=str(e))

    await run_server(domain)


@app.command()
def main(
    vault: Annotated[Optional[Path], typer.Option(
        "--vault", "-v", help="Root directory of the Markdown vault",
    )] = None,
    log_level: Annotated[Optional[LogLevel], typer.Option(
        "--log-level", "-l", help="Log verbosity on stderr", case_sensitive=False,
    )] = None,
):
    """Index a Markdown vault and answer JSON-RPC requests on stdio."""
    config = settings.with_overrides(vault_path=vault, log_level=log_level)
    configure_logging(config.log_level)
    asyncio.run(serve(config))


if __name__ == "__main__":
    app()
