"""Access auditing for games that are not yet open."""
import datetime
import ipaddress
import logging
from typing import Optional

from ..errors import ResolutionError, StorageError
from ..repositories.access_log_repository import AccessLogRepository
from .geo_service import GeoService

logger = logging.getLogger('gamegate.audit')

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def extract_ip(remote_addr: str) -> str:
    """Return the bare IP in *remote_addr*, dropping any port.

    Accepts ``"1.2.3.4"``, ``"1.2.3.4:5678"``, ``"::1"`` and
    ``"[::1]:5678"``.

    Raises:
        ValueError: If no valid IP address can be extracted.
    """
    addr = (remote_addr or '').strip()
    try:
        return str(ipaddress.ip_address(addr))
    except ValueError:
        pass
    if addr.startswith('['):
        host, sep, port = addr[1:].partition(']:')
        if not sep or not port:
            raise ValueError(f"invalid remote address: {remote_addr!r}")
    else:
        host, sep, port = addr.rpartition(':')
        if not sep or not port or ':' in host:
            raise ValueError(f"invalid remote address: {remote_addr!r}")
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        raise ValueError(f"invalid remote ip: {host!r}") from None


class AuditService:
    """Writes one access-log line per request for a gated game.

    Line format::

        [YYYY-MM-DD HH:MM:SS] <ip> <country> <city> <gameId> <path>

    Logging is best-effort: a bad remote address or an unwritable log file
    is reported through the ``gamegate.audit`` logger and never reaches
    the request.  A failed geolocation still produces a line, with empty
    country and city.
    """

    def __init__(self, repository: AccessLogRepository,
                 geo: GeoService) -> None:
        self._repo = repository
        self._geo = geo

    @staticmethod
    def format_entry(timestamp: datetime.datetime, ip: str, country: str,
                     city: str, game_id: str, request_path: str) -> str:
        return (f"[{timestamp.strftime(TIMESTAMP_FORMAT)}] "
                f"{ip} {country} {city} {game_id} {request_path}\n")

    def log_access(self, remote_addr: str, game_id: str, request_path: str,
                   now: Optional[datetime.datetime] = None) -> bool:
        """Record an access to *game_id*.

        Returns:
            ``True`` if a line was appended; ``False`` if logging was skipped.
        """
        try:
            ip = extract_ip(remote_addr)
        except ValueError as exc:
            logger.error("Skipping access log entry for '%s': %s", game_id, exc)
            return False

        try:
            country, city = self._geo.resolve(ip)
        except ResolutionError as exc:
            logger.warning("%s; logging without location", exc)
            country, city = '', ''

        line = self.format_entry(now or datetime.datetime.now(), ip,
                                 country, city, game_id, request_path)
        logger.info(line.rstrip('\n'))
        try:
            self._repo.append(line)
        except StorageError:
            return False
        return True

    def read_log(self) -> str:
        """Return the full access log text."""
        return self._repo.read_text()

    @property
    def geo_available(self) -> bool:
        return self._geo.available

    def close(self) -> None:
        self._geo.close()
