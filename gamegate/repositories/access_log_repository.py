"""Repository for the plain-text access log of gated games."""
import logging
import threading
from typing import List

from ..errors import StorageError


class AccessLogRepository:
    """Append-only text file, one entry per line.

    Every :meth:`append` is a single ``write`` on a file opened in append
    mode while holding ``self._lock``, so concurrent requests never
    interleave partial lines and earlier lines are never rewritten.
    """

    def __init__(self, file_path: str = 'log.txt') -> None:
        self._path = file_path
        self._lock = threading.Lock()
        self._log = logging.getLogger('gamegate.repository.AccessLogRepository')

    @property
    def path(self) -> str:
        return self._path

    def append(self, line: str) -> None:
        """Append *line* (newline added if missing), creating the file if needed.

        Raises:
            StorageError: If the file cannot be opened or written.
        """
        if not line.endswith('\n'):
            line += '\n'
        with self._lock:
            try:
                with open(self._path, 'a', encoding='utf-8') as fh:
                    fh.write(line)
            except OSError as exc:
                self._log.error("Failed to write log file %s: %s", self._path, exc)
                raise StorageError(f"{self._path}: {exc}") from exc

    def read_text(self) -> str:
        """Return the whole log, or ``""`` if nothing has been logged yet.

        Bytes that are not valid UTF-8 are replaced, not rejected.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        with self._lock:
            try:
                with open(self._path, 'r', encoding='utf-8',
                          errors='replace') as fh:
                    return fh.read()
            except FileNotFoundError:
                return ''
            except OSError as exc:
                self._log.error("Failed to read log file %s: %s", self._path, exc)
                raise StorageError(f"{self._path}: {exc}") from exc

    def lines(self) -> List[str]:
        """Return the logged entries without their trailing newlines."""
        return self.read_text().splitlines()
