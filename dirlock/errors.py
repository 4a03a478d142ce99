"""dirlock exception classes."""


class DirLockError(Exception):
    """Base exception for all dirlock errors."""
    pass


class ValidationError(DirLockError):
    """Raised when a configuration value or entry field is invalid."""
    pass


class MalformedEntryError(DirLockError):
    """Raised when a file name does not decode to a request or lock entry."""
    pass


class SetupError(DirLockError):
    """Raised when the lock directory or the request entry cannot be created."""
    pass


class LockTimeoutError(DirLockError):
    """Raised when the acquire deadline elapses."""

    def __init__(self, message: str, phase=None, max_wait: float = None):
        super().__init__(message)
        self.phase = phase
        self.max_wait = max_wait


class ContentionTimeoutError(LockTimeoutError):
    """Raised when existing lock entries were still present at the deadline."""
    pass


class ConsistencyError(DirLockError):
    """Raised when more lock entries exist than the protocol ever allows."""

    def __init__(self, message: str, count: int = None):
        super().__init__(message)
        self.count = count


class LockCreateError(DirLockError):
    """Raised when the lock file cannot be written."""
    pass


class CleanupError(DirLockError):
    """Raised when an entry we own could not be removed.

    The stale file has to be removed by hand. ``primary`` holds the error that
    triggered the cleanup, if any, and ``lock`` the lock entry still held when
    the request could not be removed after a successful acquire.
    """

    def __init__(self, message: str, path: str = None, primary: Exception = None, lock=None):
        super().__init__(message)
        self.path = path
        self.primary = primary
        self.lock = lock


class LockNotFoundError(DirLockError):
    """Raised when a lock id does not match exactly one entry."""

    def __init__(self, message: str, lock_id: str = None, matches: int = 0):
        super().__init__(message)
        self.lock_id = lock_id
        self.matches = matches
