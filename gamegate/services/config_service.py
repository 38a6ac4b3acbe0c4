"""Business logic for the shared game configuration map."""
import logging
import threading
from typing import Dict, Optional

from ..errors import NotFoundError, ParseError, StorageError
from ..repositories.config_repository import OPEN_FIELD, GameConfigRepository

logger = logging.getLogger('gamegate.config')


class ConfigService:
    """Owns the in-memory ``{game_id: record}`` map, delegating file I/O to
    :class:`~gamegate.repositories.config_repository.GameConfigRepository`.

    Rules
    -----
    * Every operation runs under ``self._lock``; readers see either the
      old or the new map in full, never a mix.
    * Records handed to callers are copies.  Mutation is copy, change one
      field, replace the stored entry.
    * A mutation is saved before the lock is released.  If the save
      fails the in-memory map stays authoritative and the error is raised.
    * A failed load leaves the current map untouched.
    """

    def __init__(self, repository: GameConfigRepository) -> None:
        self._repo = repository
        self._lock = threading.RLock()
        self._configs: Dict[str, Dict] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the in-memory map with the contents of the config file.

        Raises:
            StorageError: If the file cannot be read.
            ParseError: If the file is malformed.
        """
        with self._lock:
            try:
                configs = self._repo.load()
            except (StorageError, ParseError) as exc:
                logger.error("Config load failed, keeping %d game(s): %s",
                             len(self._configs), exc)
                raise
            self._configs = configs
            logger.info("Config loaded: %d game(s) from %s",
                        len(configs), self._repo.path)

    def reload(self) -> Dict[str, Dict]:
        """Load from disk and return the resulting map."""
        with self._lock:
            self.load()
            return self.all()

    def get(self, game_id: str) -> Optional[Dict]:
        """Return a copy of the record for *game_id*, or ``None``."""
        with self._lock:
            record = self._configs.get(game_id)
            return dict(record) if record is not None else None

    def all(self) -> Dict[str, Dict]:
        """Return a copy of every record as ``{game_id: record}``."""
        with self._lock:
            return {game_id: dict(record)
                    for game_id, record in self._configs.items()}

    def set_open(self, game_id: str, is_open: bool) -> Dict:
        """Set ``isOpen`` on *game_id* and persist the map.

        Returns:
            A copy of the updated record.

        Raises:
            NotFoundError: If *game_id* has no record; nothing changes.
            StorageError: If the save fails; memory keeps the new value.
        """
        with self._lock:
            current = self._configs.get(game_id)
            if current is None:
                raise NotFoundError(game_id)
            updated = dict(current)
            updated[OPEN_FIELD] = bool(is_open)
            self._configs[game_id] = updated
            self.save()
            logger.info("gameId '%s' isOpen set to %s", game_id, updated[OPEN_FIELD])
            return dict(updated)

    def save(self) -> None:
        """Write the full map to the config file.

        Raises:
            StorageError: If the write fails.
        """
        with self._lock:
            self._repo.save(self._configs)
            logger.info("Config saved to %s", self._repo.path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._configs)

    @staticmethod
    def is_gated(record: Dict) -> bool:
        """``True`` if *record* describes a game that is not yet open."""
        return not record.get(OPEN_FIELD, False)
