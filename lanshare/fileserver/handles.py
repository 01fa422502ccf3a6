# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0
"""Value objects describing what the file server is allowed to serve."""

import itertools
import time
from dataclasses import dataclass, field
from typing import Iterable, Iterator
from urllib.parse import unquote, urlsplit

UNKNOWN_NAME = "Unknown"

_TAG_COUNTER = itertools.count()


def new_tag() -> str:
    """Return a fresh disambiguation tag (millisecond timestamp plus counter)."""
    return f"{time.time_ns() // 1_000_000}-{next(_TAG_COUNTER)}"


def display_name_for(canonical_key: str) -> str:
    """Derive a human readable file name from a canonical key.

    Plain paths keep their last segment verbatim. For URIs the last path
    segment is percent-decoded first, so keys that encode a nested path into
    a single segment (``primary%3ADocs%2Freport.pdf``) still yield
    ``report.pdf``.
    """
    try:
        parts = urlsplit(canonical_key)
    except ValueError:
        parts = None
    # A one letter scheme is a Windows drive, not a URI.
    if parts is not None and len(parts.scheme) > 1:
        segment = unquote(parts.path.rstrip("/").rsplit("/", 1)[-1])
        name = segment.rsplit("/", 1)[-1]
    else:
        name = canonical_key.rstrip("/").rsplit("/", 1)[-1]
    return name or UNKNOWN_NAME


@dataclass(frozen=True)
class FileHandle:
    """Opaque reference to a shared file.

    Equality and hashing only consider ``canonical_key``; two picks of the
    same file compare equal even though their tags differ.
    """

    canonical_key: str
    tag: str = field(default_factory=new_tag, compare=False)

    @property
    def display_name(self) -> str:
        """Return the name offered to downloaders."""
        return display_name_for(self.canonical_key)

    def retag(self) -> "FileHandle":
        """Return a copy of this handle carrying a fresh tag."""
        return FileHandle(self.canonical_key)


def to_handle(value) -> FileHandle:
    """Wrap a raw key in a freshly tagged FileHandle."""
    if isinstance(value, FileHandle):
        return value.retag()
    key = str(value)
    if not key:
        raise ValueError("file handle must not be empty")
    return FileHandle(key)


@dataclass(frozen=True)
class Snapshot:
    """Immutable ordered listing bound to one server instance."""

    handles: tuple[FileHandle, ...] = ()

    @classmethod
    def of(cls, handles: Iterable[FileHandle]) -> "Snapshot":
        return cls(tuple(handles))

    def lookup(self, canonical_key: str) -> FileHandle | None:
        """Return the first handle whose canonical key matches."""
        for handle in self.handles:
            if handle.canonical_key == canonical_key:
                return handle
        return None

    def __iter__(self) -> Iterator[FileHandle]:
        return iter(self.handles)

    def __len__(self) -> int:
        return len(self.handles)
