import logging
import os
from fcntl import LOCK_EX, LOCK_NB, LOCK_UN, flock
from typing import IO, Optional

from .errors import AlreadyRunningError

logger = logging.getLogger(__name__)


class RunLock:
    """
    Exclusive advisory lock on a file, held for the lifetime of a run.

    The lock dies with the process, so a crashed run never leaves a
    stale lock behind. A path of None makes this a no-op.
    """

    def __init__(self, path: Optional[str]):
        self.path = path
        self._file: Optional[IO[str]] = None

    def acquire(self) -> None:
        if self.path is None:
            return
        handle = open(self.path, "a+")
        try:
            flock(handle.fileno(), LOCK_EX | LOCK_NB)
        except OSError as e:
            handle.close()
            raise AlreadyRunningError(f"Already running according to {self.path}") from e
        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._file = handle
        logger.debug(f"Locked {self.path}")

    def release(self) -> None:
        if self._file is None:
            return
        flock(self._file.fileno(), LOCK_UN)
        self._file.close()
        self._file = None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
