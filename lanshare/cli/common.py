# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Iterable

from oslo_config import cfg

from lanshare.log import DOMAIN, register_options

CONF = cfg.CONF

logger = logging.getLogger(__name__)


def load_config(config_files: Iterable[str] = ()) -> None:
    """Parse configuration files into the global oslo.config object.

    Only the given files are read; no default search path is used.
    """
    register_options()
    config_files = list(config_files)
    CONF(
        args=[],
        project=DOMAIN,
        prog=DOMAIN,
        version="1.0.0",
        default_config_files=config_files,
    )
    logger.debug("Loaded configuration from %s", config_files or "defaults")
