"""Utility functions for dirlock"""

import os
import socket
import time
import uuid

from .errors import SetupError


def current_node() -> str:
    """Return the local host name used to tag entries"""
    return socket.gethostname() or 'localhost'


def new_id() -> str:
    """Return a random unique token without dashes"""
    return uuid.uuid4().hex


def current_epoch() -> int:
    """Return the current time in nanoseconds since the epoch"""
    return time.time_ns()


def ensure_directory(directory: str, mode: int = 0o774) -> str:
    """Create the lock directory if it does not exist yet"""
    try:
        os.makedirs(directory, mode=mode, exist_ok=True)
    except OSError as e:
        raise SetupError(f"unable to create lock dir {directory}: {e}") from e
    return directory
