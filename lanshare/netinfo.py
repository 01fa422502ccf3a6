# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import socket as pysocket

LOG = logging.getLogger(__name__)

WILDCARD_ADDRESSES = ("", "0.0.0.0", "::")


def get_local_ip_address() -> str | None:
    """Determine the address other hosts on the LAN can reach us on.

    Connecting a UDP socket sends no packets; it only asks the kernel which
    interface would route to a non-local address.
    """
    try:
        with pysocket.socket(pysocket.AF_INET, pysocket.SOCK_DGRAM) as s:
            s.connect(("10.255.255.255", 1))
            return s.getsockname()[0]
    except OSError as e:
        LOG.debug("Unable to determine local IP address: %s", e)
        return None


def download_url(host: str, port: int) -> str:
    """Return the index URL receivers should open."""
    if host in WILDCARD_ADDRESSES:
        host = get_local_ip_address() or "127.0.0.1"
    return f"http://{host}:{port}/"
