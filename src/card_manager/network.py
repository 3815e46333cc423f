"""Connectivity probe behind the online/offline banner."""
from __future__ import annotations

import logging
import socket
from typing import Optional

from .config import AppConfig

logger = logging.getLogger(__name__)


def is_online(config: Optional[AppConfig] = None, timeout: float = 1.0) -> bool:
    """Return ``True`` if the configured probe host accepts a TCP connection."""

    config = config or AppConfig()
    address = (config.connectivity_host, config.connectivity_port)
    try:
        with socket.create_connection(address, timeout=timeout):
            return True
    except OSError as exc:
        logger.debug("Connectivity probe to %s:%s failed: %s", *address, exc)
        return False


def status_text(online: bool) -> str:
    if online:
        return "ONLINE - hosted QR links available"
    return "OFFLINE - hosted QR links will not load"


__all__ = ["is_online", "status_text"]
