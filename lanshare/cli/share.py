# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from pathlib import Path

import click

from lanshare.fileserver.utils import ServerStartError
from lanshare.registry import HandleRegistry

logger = logging.getLogger(__name__)


@click.command("share")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
)
@click.option("--host", default=None, help="Listen address (defaults to configuration)")
@click.option(
    "--port",
    default=None,
    type=click.IntRange(0, 65535),
    help="Listen port (defaults to configuration)",
)
def share(files: tuple[str, ...], host: str | None, port: int | None):
    """Share FILES for download until interrupted."""
    registry = HandleRegistry(host=host, port=port)
    try:
        registry.replace(Path(f).as_uri() for f in files)
    except ServerStartError as e:
        logger.debug("Failed to start file server: %s", e)
        raise click.ClickException(str(e))

    click.echo("Selected files:")
    for index, handle in enumerate(registry.handles, start=1):
        click.echo(f"{index}. {handle.display_name}")
    click.echo(f"Open {registry.url} in a browser on the receiving device to download.")
    click.echo("Press Ctrl+C to stop sharing.")
    try:
        registry.wait()
    except KeyboardInterrupt:
        logger.debug("Interrupted, stopping file server")
    finally:
        registry.clear()
    click.echo("Server stopped.")
