# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0
"""Translate file handles into byte streams, sizes and MIME types.

The file server never touches the filesystem directly. It asks a
``FileResolver`` for a ``Resolution`` and maps the result status onto an
HTTP response, so a revoked or unreadable handle becomes a clean error
instead of an exception escaping the request.
"""

import logging
import mimetypes
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlsplit

from .handles import FileHandle

LOG = logging.getLogger(__name__)


class ResolutionStatus(Enum):
    """Outcome of resolving a handle."""

    OK = "ok"
    OPEN_FAILED = "open-failed"
    UNKNOWN_LENGTH = "unknown-length"


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a handle; ``stream`` is only set when OK."""

    status: ResolutionStatus
    stream: BinaryIO | None = None
    length: int | None = None
    mime_type: str | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.OK


class FileResolver:
    """Interface to the platform's file handle resolution layer."""

    def open_stream(self, handle: FileHandle) -> BinaryIO:
        """Open the handle's content for reading.

        Raises OSError or ValueError when the handle cannot be opened.
        """
        raise NotImplementedError

    def get_length(self, handle: FileHandle) -> int | None:
        """Return the content length in bytes, or None when unknown."""
        raise NotImplementedError

    def stream_length(self, handle: FileHandle, stream: BinaryIO) -> int | None:
        """Return the length of an already opened stream.

        Defaults to ``get_length``; resolvers that can size the open stream
        itself should, so the length matches the bytes that will be sent.
        """
        return self.get_length(handle)

    def get_mime_type(self, handle: FileHandle) -> str | None:
        """Return the content MIME type, or None when unknown."""
        raise NotImplementedError

    def resolve(self, handle: FileHandle) -> Resolution:
        """Open and size a handle, reporting failures as a status."""
        try:
            stream = self.open_stream(handle)
        except (OSError, ValueError) as exc:
            LOG.warning("Unable to open %s: %s", handle.canonical_key, exc)
            return Resolution(ResolutionStatus.OPEN_FAILED, detail=str(exc))

        length = self.stream_length(handle, stream)
        if length is None or length < 0:
            stream.close()
            return Resolution(
                ResolutionStatus.UNKNOWN_LENGTH,
                detail=f"unable to determine size of {handle.canonical_key}",
            )
        return Resolution(
            ResolutionStatus.OK,
            stream=stream,
            length=length,
            mime_type=self.get_mime_type(handle),
        )


def local_path(canonical_key: str) -> Path:
    """Map a plain path or ``file://`` URI to a local path.

    Raises ValueError for any other URI scheme.
    """
    parts = urlsplit(canonical_key)
    if parts.scheme == "file":
        if parts.netloc not in ("", "localhost"):
            raise ValueError(f"remote file URI not supported: {canonical_key}")
        return Path(unquote(parts.path))
    # A one letter scheme is a Windows drive, not a URI.
    if parts.scheme and len(parts.scheme) > 1:
        raise ValueError(f"unsupported URI scheme: {parts.scheme}")
    return Path(canonical_key)


def _regular_size(st: os.stat_result) -> int | None:
    if not stat.S_ISREG(st.st_mode):
        return None
    return st.st_size


class LocalFileResolver(FileResolver):
    """Resolve handles that point at files on the local filesystem."""

    def open_stream(self, handle: FileHandle) -> BinaryIO:
        return open(local_path(handle.canonical_key), "rb")

    def get_length(self, handle: FileHandle) -> int | None:
        try:
            st = local_path(handle.canonical_key).stat()
        except (OSError, ValueError) as exc:
            LOG.debug("stat failed for %s: %s", handle.canonical_key, exc)
            return None
        return _regular_size(st)

    def stream_length(self, handle: FileHandle, stream: BinaryIO) -> int | None:
        try:
            st = os.fstat(stream.fileno())
        except (OSError, ValueError) as exc:
            LOG.debug("fstat failed for %s: %s", handle.canonical_key, exc)
            return None
        return _regular_size(st)

    def get_mime_type(self, handle: FileHandle) -> str | None:
        try:
            path = local_path(handle.canonical_key)
        except ValueError:
            return None
        mime, _ = mimetypes.guess_type(path.name)
        return mime
