# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from oslo_config import cfg
from oslo_log import log as logging

CONF = cfg.CONF
DOMAIN = "lanshare"

_options_registered = False


def register_options() -> None:
    """Register oslo.log options once; must run before the config is parsed."""
    global _options_registered
    if _options_registered:
        return
    logging.register_options(CONF)
    _options_registered = True


def setup_logging(verbose: bool = False) -> None:
    """Configure process wide logging from the parsed configuration."""
    if verbose:
        CONF.set_override("debug", True)
    logging.setup(CONF, DOMAIN)
