"""Utility helpers for the fileserver implementation (framework-agnostic)."""

# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0
import html
from typing import Iterable
from urllib.parse import quote

from .handles import FileHandle

CHUNK_READ_SIZE = 64 * 1024
DEFAULT_MIME_TYPE = "application/octet-stream"
FILE_ROUTE = "/file"

INDEX_TEMPLATE = """<html>
<head><meta charset="utf-8"></head>
<body>
    <h1>File Download</h1>
    <div>{links}</div>
</body>
</html>
"""


class BadRequestError(Exception):
    """Raised when a client input is invalid."""

    pass


class ServerStartError(Exception):
    """Raised when the file server cannot bind its listening socket."""

    pass


def parse_canonical_key(value: str | None) -> str:
    """Validate the ``uri`` query parameter of the file route.

    The key is returned verbatim. Raises BadRequestError when the value is
    missing, empty or carries control characters.
    """
    if value is None:
        raise BadRequestError("uri is required")
    if not value:
        raise BadRequestError("uri must not be empty")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        raise BadRequestError("uri contains control characters")
    return value


def file_link(handle: FileHandle) -> str:
    """Return the anchor element that downloads ``handle``."""
    target = f"{FILE_ROUTE}?uri={quote(handle.canonical_key, safe='')}"
    return f'<a href="{target}">Download -> {html.escape(handle.display_name)}</a>'


def render_index(handles: Iterable[FileHandle]) -> str:
    """Render the download index, one link per handle in listing order."""
    return INDEX_TEMPLATE.format(links="<br>".join(file_link(h) for h in handles))


def content_disposition(filename: str) -> str:
    """Build an attachment Content-Disposition header for ``filename``.

    Header values must be Latin-1 on the wire; other names get an ASCII
    fallback plus an RFC 5987 ``filename*`` parameter.
    """
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    try:
        escaped.encode("latin-1")
    except UnicodeEncodeError:
        fallback = escaped.encode("ascii", "replace").decode("ascii")
        return (
            f'attachment; filename="{fallback}"; '
            f"filename*=UTF-8''{quote(filename, safe='')}"
        )
    return f'attachment; filename="{escaped}"'
