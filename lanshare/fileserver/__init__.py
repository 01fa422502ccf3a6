# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0
"""Fileserver package for sharing selected files over HTTP.

Exposes a small HTTP server that lists a snapshot of file handles and
streams their content to downloaders on the local network.
"""

from .handles import FileHandle, Snapshot
from .resolver import FileResolver, LocalFileResolver, Resolution, ResolutionStatus
from .server import FileServer, ServerState, make_application
from .utils import BadRequestError, ServerStartError

__all__ = [
    "BadRequestError",
    "FileHandle",
    "FileResolver",
    "FileServer",
    "LocalFileResolver",
    "Resolution",
    "ResolutionStatus",
    "ServerStartError",
    "ServerState",
    "Snapshot",
    "make_application",
]
