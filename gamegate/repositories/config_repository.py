"""Repository for per-game configuration records ({game_id: {url, ..., isOpen}})."""
from typing import Dict

from ..errors import ParseError
from .base import BaseRepository

# Persisted field names.  The casing is part of the file format shared with
# existing deployments and must not change.
STRING_FIELDS = ('url', 'AFKey', 'AdjustToken', 'Orientation', 'JSInterfaceName')
OPEN_FIELD = 'isOpen'


def normalise_record(game_id: str, raw) -> Dict:
    """Return *raw* reduced to the fixed record shape.

    Missing or ``null`` strings become ``""`` and a missing or ``null``
    ``isOpen`` becomes ``False``; a ``null`` record is all defaults.
    Unknown keys are dropped.

    Raises:
        ParseError: If *raw* is not an object or a field has the wrong type.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ParseError(f"config for '{game_id}' is not an object")
    record: Dict = {}
    for field in STRING_FIELDS:
        value = raw.get(field)
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise ParseError(f"config for '{game_id}': {field} must be a string")
        record[field] = value
    is_open = raw.get(OPEN_FIELD)
    if is_open is None:
        is_open = False
    if not isinstance(is_open, bool):
        raise ParseError(f"config for '{game_id}': {OPEN_FIELD} must be a boolean")
    record[OPEN_FIELD] = is_open
    return record


class GameConfigRepository(BaseRepository):
    """Reads and writes the game configuration file.

    Schema::

        {
            "<game_id>": {
                "url":             <str>,
                "AFKey":           <str>,
                "AdjustToken":     <str>,
                "Orientation":     <str>,
                "JSInterfaceName": <str>,
                "isOpen":          <bool>
            }
        }

    The repository holds no state of its own; the in-memory map belongs to
    :class:`~gamegate.services.config_service.ConfigService`.
    """

    def __init__(self, file_path: str = 'config.json') -> None:
        super().__init__(file_path)

    def load(self) -> Dict[str, Dict]:
        """Return the full map read from disk.

        Raises:
            StorageError: If the file cannot be read.
            ParseError: If the file is not a JSON object of records.
        """
        raw = self._load()
        if not isinstance(raw, dict):
            self._log.warning("%s does not hold a JSON object", self._path)
            raise ParseError(f"{self._path}: top level must be an object")
        try:
            return {str(game_id): normalise_record(game_id, value)
                    for game_id, value in raw.items()}
        except ParseError as exc:
            self._log.warning("Rejected %s: %s", self._path, exc)
            raise

    def save(self, data: Dict[str, Dict]) -> None:
        """Replace the file contents with *data*, game ids in sorted order.

        Fields inside a record keep their schema order.
        """
        self._save({game_id: data[game_id] for game_id in sorted(data)})
