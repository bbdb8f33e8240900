"""CLI entry point for pi-share. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from pi.share.bandwidth import IDLE
from pi.share.config import Config

logger = logging.getLogger("pi.share")

LOG_LEVELS = ["debug", "info", "warning", "error"]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@click.group(invoke_without_command=True)
@click.option("--db", default=None, help="SQLite database holding saved preferences")
@click.option("--log-level", default="info", type=click.Choice(LOG_LEVELS))
@click.pass_context
def main(ctx, db, log_level):
    """Share a folder over HTTP with uploads and a control console."""
    _setup_logging(log_level)
    config = Config()
    if db:
        config.db_path = db
    ctx.obj = config
    if ctx.invoked_subcommand is None:
        ctx.invoke(console)


@main.command()
@click.option("--host", default=None, help="Console host (default: 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Console port (default: 8765)")
@click.pass_obj
def console(config: Config, host, port):
    """Run the control console."""
    if host:
        config.host = host
    if port:
        config.port = port

    from pi.share.console.app import create_app

    app = create_app(config)

    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)


@main.command()
@click.option("--host", default=None, help="Hostname to bind (default: saved preference)")
@click.option("--port", default=None, help="Port to bind (default: saved preference)")
@click.option(
    "--dir",
    "directory",
    default=None,
    type=click.Path(file_okay=False),
    help="Folder to serve (default: saved preference)",
)
@click.option("--not-found", default=None, type=click.Path(dir_okay=False), help="Custom 404 HTML page")
@click.pass_obj
def serve(config: Config, host, port, directory, not_found):
    """Run the file server without the console."""
    try:
        ok = asyncio.run(_serve(config, host, port, directory, not_found))
    except KeyboardInterrupt:
        ok = True
    if not ok:
        sys.exit(1)


async def _serve(
    config: Config,
    host: str | None,
    port: str | None,
    directory: str | None,
    not_found: str | None,
) -> bool:
    from pi.share.controller import ShareController
    from pi.share.storage.database import Database
    from pi.share.storage.preferences import PreferenceStore

    db = Database(config.db_path)
    await db.connect()
    try:
        controller = ShareController(PreferenceStore(db), log_capacity=config.log_capacity)
        await controller.load_preferences()
    finally:
        await db.close()

    prefs = controller.prefs
    if host:
        prefs.hostname = host
    if port:
        prefs.port = port
    if directory:
        prefs.selected_directory = str(Path(directory).expanduser().resolve())
    if not_found:
        prefs.not_found_page = str(Path(not_found).expanduser().resolve())

    if not await controller.start():
        click.echo(controller.status, err=True)
        return False
    click.echo(controller.status)

    try:
        last = IDLE
        while True:
            await asyncio.sleep(1)
            current = controller.meter.current
            if current != last:
                logger.info("Bandwidth: %s", current)
                last = current
    finally:
        await controller.stop()


if __name__ == "__main__":
    main()
