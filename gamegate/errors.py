"""Exception types raised by the GameGate repositories and services."""


class GameGateError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(GameGateError):
    """Raised when a game id has no configuration record."""

    def __init__(self, game_id: str) -> None:
        super().__init__(f"gameId '{game_id}' not found")
        self.game_id = game_id


class StorageError(GameGateError):
    """Raised when the config file or access log cannot be read or written."""


class ParseError(GameGateError):
    """Raised when the persisted config is not valid JSON of the fixed shape."""


class ResolutionError(GameGateError):
    """Raised when an IP address cannot be resolved to a location."""
