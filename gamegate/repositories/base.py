"""Repository base class used by all concrete repositories."""
import json
import logging
import os
import stat
import tempfile
from typing import Any

from ..errors import ParseError, StorageError


class BaseRepository:
    """Provides JSON-backed persistence for a single data file.

    Sub-classes call :meth:`_load` to read data from disk and :meth:`_save`
    to atomically persist data back.  Unlike a cache, a failed read is
    never papered over with a default: the caller decides whether the
    previous in-memory state survives.

    The atomic write uses a write-then-rename strategy so the file is never
    left in a partially-written state.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._log = logging.getLogger(f'gamegate.repository.{type(self).__name__}')

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> Any:
        """Read and decode JSON from *self._path*.

        Raises:
            StorageError: If the file cannot be opened or read.
            ParseError: If the contents are not valid UTF-8 JSON.
        """
        try:
            with open(self._path, 'r', encoding='utf-8') as fh:
                return json.load(fh)
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both land here
            self._log.warning("Could not parse %s: %s", self._path, exc)
            raise ParseError(f"{self._path}: {exc}") from exc
        except OSError as exc:
            self._log.warning("Could not read %s: %s", self._path, exc)
            raise StorageError(f"{self._path}: {exc}") from exc

    def _save(self, data: Any) -> None:
        """Atomically write *data* as indented JSON to *self._path*.

        The file keeps its previous permissions (0644 for a new file) and is
        fsync'd before the rename.

        Raises:
            StorageError: If the temp file cannot be written or renamed.
        """
        dir_name = os.path.dirname(os.path.abspath(self._path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix='.tmp')
        except OSError as exc:
            self._log.error("Could not create temp file for %s: %s", self._path, exc)
            raise StorageError(f"{self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
                fh.write('\n')
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            self._log.error("Could not write %s: %s", self._path, exc)
            raise StorageError(f"{self._path}: {exc}") from exc

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(os.stat(self._path).st_mode)
        except OSError:
            return 0o644
