"""Repository package — expose all concrete repositories from one import."""
from .config_repository import GameConfigRepository
from .access_log_repository import AccessLogRepository

__all__ = [
    'GameConfigRepository',
    'AccessLogRepository',
]
