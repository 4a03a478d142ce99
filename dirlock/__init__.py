"""dirlock - mutual exclusion through a shared directory."""

from .config import Config, LockConfig
from .entry import Entry, EntryKind, EntrySet, decode, encode, is_oldest, list_entries
from .errors import (
    CleanupError,
    ConsistencyError,
    ContentionTimeoutError,
    DirLockError,
    LockCreateError,
    LockNotFoundError,
    LockTimeoutError,
    MalformedEntryError,
    SetupError,
    ValidationError,
)
from .lock import AcquireState, DirLock, acquire, find_by_id, release

__version__ = "0.1.0"
__all__ = [
    "DirLock",
    "AcquireState",
    "acquire",
    "release",
    "find_by_id",
    "Config",
    "LockConfig",
    "Entry",
    "EntryKind",
    "EntrySet",
    "encode",
    "decode",
    "is_oldest",
    "list_entries",
    "DirLockError",
    "ValidationError",
    "MalformedEntryError",
    "SetupError",
    "LockTimeoutError",
    "ContentionTimeoutError",
    "ConsistencyError",
    "LockCreateError",
    "CleanupError",
    "LockNotFoundError",
]
