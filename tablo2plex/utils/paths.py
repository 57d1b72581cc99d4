"""
Path and host helpers for tablo2plex.
"""

import logging
import os
import socket
from pathlib import Path

logger = logging.getLogger(__name__)


def get_local_ipv4_address() -> str:
    """Get the LAN address HDHomeRun clients should use to reach this host."""
    try:
        # Connecting a UDP socket sends nothing but selects the outbound interface
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine local IPv4 address: {e}")
        return "127.0.0.1"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """
    Replace a file's contents in one step.

    The data is written to a sibling temp file which is then renamed over the
    target, so readers never observe a partially written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with open(tmp_path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, path)


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


__all__ = [
    "get_local_ipv4_address",
    "atomic_write_bytes",
    "atomic_write_text",
]
