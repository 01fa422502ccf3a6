# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import click

from lanshare.cli.common import load_config
from lanshare.cli.share import share
from lanshare.log import setup_logging

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group("lanshare", context_settings=CONTEXT_SETTINGS)
@click.option("-v", "--verbose", is_flag=True, help="Increase output verbosity")
@click.option(
    "--config-file",
    "config_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file to load (may be repeated)",
)
def cli(verbose: bool, config_files: tuple[str, ...]):
    """Share files with other devices on the local network."""
    load_config(config_files)
    setup_logging(verbose)


def main():
    """Register commands and run the CLI."""
    cli.add_command(share)

    cli()


if __name__ == "__main__":
    main()
