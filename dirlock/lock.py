"""Directory based locking for independent processes"""

import glob
import os
import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import LockConfig
from .entry import Entry, EntryKind, create_entry, decode, is_oldest, locks, requests
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
)
from .utils import current_epoch, current_node, ensure_directory, new_id

logger = logging.getLogger(__name__)

# Lock files tolerated while a previous holder hands over
MAX_TRANSIENT_LOCKS = 2


class AcquireState(str, Enum):
    REQUESTING = "requesting"
    WAITING_TURN = "waiting_turn"
    ATTEMPTING_LOCK = "attempting_lock"
    ACQUIRED = "acquired"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class AttemptOutcome(str, Enum):
    ACQUIRED = "acquired"
    CONTENDED = "contended"
    FAILED = "failed"


@dataclass
class LockAttempt:
    """Result of one attempt to create the lock file"""
    outcome: AttemptOutcome
    count: int = 0
    entry: Optional[Entry] = None
    error: Optional[DirLockError] = None


class DirLock:
    """Lock coordinated through request and lock files in a shared directory"""

    def __init__(self,
                 config: Optional[LockConfig] = None,
                 node_provider: Callable[[], str] = current_node,
                 id_provider: Callable[[], str] = new_id,
                 epoch_provider: Callable[[], int] = current_epoch,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep,
                 progress_callback: Optional[Callable] = None):
        self.config = (config or LockConfig()).validate()
        self.node = self.config.node or node_provider()
        self.id_provider = id_provider
        self.epoch_provider = epoch_provider
        self.clock = clock
        self.sleep = sleep
        self.progress_callback = progress_callback or (lambda state, elapsed: None)
        self.state = None
        self.lock = None

    def _new_entry(self, kind: EntryKind) -> Entry:
        return create_entry(
            self.config.directory,
            self.config.name,
            self.node,
            self.id_provider(),
            self.epoch_provider(),
            kind,
        )

    def _set_state(self, state: AcquireState):
        logger.info(f"{self.config.name}: {state.value}")
        self.state = state

    def acquire(self) -> Entry:
        """Queue a request and create the lock file once it is our turn

        Returns:
            The lock entry; its ``id`` can be handed to :func:`release`.
        """
        start = self.clock()

        def elapsed() -> float:
            return self.clock() - start

        def timed_out() -> bool:
            return elapsed() > self.config.max_wait

        self._set_state(AcquireState.REQUESTING)
        try:
            ensure_directory(self.config.directory)
            request = self._new_entry(EntryKind.REQUEST)
        except SetupError:
            self._set_state(AcquireState.FAILED)
            raise
        except (OSError, DirLockError) as e:
            self._set_state(AcquireState.FAILED)
            raise SetupError(f"failed to create request in {self.config.directory}: {e}") from e

        self._set_state(AcquireState.WAITING_TURN)
        while not is_oldest(request, requests(self.config.directory)):
            if timed_out():
                self._set_state(AcquireState.TIMED_OUT)
                self._abort(request, LockTimeoutError(
                    f"Timed out ({self.config.max_wait}s) waiting in queue for lock {self.config.name!r}",
                    phase=AcquireState.WAITING_TURN,
                    max_wait=self.config.max_wait,
                ))
            self.progress_callback(self.state, elapsed())
            self.sleep(self.config.poll_interval)

        self._set_state(AcquireState.ATTEMPTING_LOCK)
        while True:
            attempt = self.attempt_lock()
            if attempt.outcome == AttemptOutcome.ACQUIRED:
                break
            if attempt.outcome == AttemptOutcome.FAILED:
                self._set_state(AcquireState.FAILED)
                self._abort(request, attempt.error)
            if timed_out():
                self._set_state(AcquireState.TIMED_OUT)
                self._abort(request, ContentionTimeoutError(
                    f"Timed out ({self.config.max_wait}s) waiting for {attempt.count} "
                    f"existing lock(s) in {self.config.directory} to be released",
                    phase=AcquireState.ATTEMPTING_LOCK,
                    max_wait=self.config.max_wait,
                ))
            self.progress_callback(self.state, elapsed())
            self.sleep(self.config.poll_interval)

        self._set_state(AcquireState.ACQUIRED)
        self.lock = attempt.entry
        try:
            request.remove()
        except CleanupError as e:
            raise CleanupError(
                f"Acquired lock {attempt.entry.id} but {e}",
                path=request.path,
                lock=attempt.entry,
            ) from e
        logger.info(f"acquired lock {attempt.entry.path}")
        return attempt.entry

    def attempt_lock(self) -> LockAttempt:
        """Create the lock file unless lock files already exist"""
        count = len(locks(self.config.directory))
        if count > MAX_TRANSIENT_LOCKS:
            return LockAttempt(
                AttemptOutcome.FAILED,
                count=count,
                error=ConsistencyError(
                    f"{count} locks found in {self.config.directory}, expected <= {MAX_TRANSIENT_LOCKS}",
                    count=count,
                ),
            )
        if count > 0:
            logger.info(f"{count} lock(s) already exist in {self.config.directory}")
            return LockAttempt(AttemptOutcome.CONTENDED, count=count)

        try:
            entry = self._new_entry(EntryKind.LOCK)
        except FileExistsError:
            return LockAttempt(AttemptOutcome.CONTENDED, count=1)
        except (OSError, DirLockError) as e:
            return LockAttempt(
                AttemptOutcome.FAILED,
                error=LockCreateError(f"failed to create lock in {self.config.directory}: {e}"),
            )
        return LockAttempt(AttemptOutcome.ACQUIRED, entry=entry)

    def _abort(self, request: Entry, error: DirLockError):
        """Remove our request, then raise ``error``"""
        logger.error(str(error))
        try:
            request.remove()
        except CleanupError as e:
            raise CleanupError(
                f"{error} (also failed to remove request {request.path}: "
                f"{e.__cause__} - please remove manually)",
                path=request.path,
                primary=error,
            ) from error
        raise error

    def release(self, lock: Optional[Entry] = None):
        """Remove a held lock file"""
        lock = lock or self.lock
        if lock is None:
            raise DirLockError("no lock held")
        lock.remove()
        if lock == self.lock:
            self.lock = None
        logger.info(f"released lock {lock.path}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.lock is not None:
            self.release()


def acquire(config: Optional[LockConfig] = None, **kwargs) -> Entry:
    """Acquire a lock with a one-off :class:`DirLock`"""
    return DirLock(config, **kwargs).acquire()


def find_by_id(directory: str, lock_id: str) -> Entry:
    """Look up the single entry carrying ``lock_id``"""
    lock_id = lock_id.strip().replace('-', '')
    if not lock_id or glob.has_magic(lock_id):
        raise LockNotFoundError(f"Invalid lock id {lock_id!r}", lock_id=lock_id)

    matches = glob.glob(os.path.join(glob.escape(directory), f"*__{lock_id}__*"))
    if len(matches) != 1:
        raise LockNotFoundError(
            f"Found {len(matches)} entries with id {lock_id} in {directory}",
            lock_id=lock_id,
            matches=len(matches),
        )
    try:
        return decode(matches[0])
    except MalformedEntryError as e:
        raise LockNotFoundError(str(e), lock_id=lock_id, matches=1) from e


def release(lock_id: str, directory: Optional[str] = None):
    """Remove the lock file with the given id"""
    entry = find_by_id(directory or LockConfig().directory, lock_id)
    entry.remove()
    logger.info(f"released {entry.kind.value} {entry.path}")
