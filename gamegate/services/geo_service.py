"""IP geolocation backed by a MaxMind GeoLite2 City database."""
import ipaddress
import logging
from typing import Optional, Tuple

import geoip2.database
import geoip2.errors

from ..errors import ResolutionError

logger = logging.getLogger('gamegate.geo')

LOCAL_LABELS = ('本地', 'localhost')
LOOPBACK_ADDRESSES = frozenset({'127.0.0.1', '::1'})


class GeoService:
    """Resolves client IPs to ``(country, city)`` labels.

    The reader is read-only once opened and is shared between request
    threads without locking.  A service without a reader still answers
    for loopback addresses; every other lookup raises
    :class:`~gamegate.errors.ResolutionError`.
    """

    def __init__(self, reader: Optional[geoip2.database.Reader] = None,
                 country_locale: str = 'zh-CN') -> None:
        self._reader = reader
        self.country_locale = country_locale

    @classmethod
    def open(cls, db_path: str, country_locale: str = 'zh-CN') -> 'GeoService':
        """Open *db_path*; a missing or unreadable database is logged, not fatal."""
        try:
            reader = geoip2.database.Reader(db_path)
        except (OSError, RuntimeError, ValueError) as exc:
            logger.error("Failed to open GeoIP database %s: %s", db_path, exc)
            return cls(None, country_locale)
        logger.info("GeoIP database loaded from %s", db_path)
        return cls(reader, country_locale)

    @property
    def available(self) -> bool:
        return self._reader is not None

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def resolve(self, ip: str) -> Tuple[str, str]:
        """Return ``(country, city)`` for *ip*.

        The country name is in :attr:`country_locale`, the city in English.
        Either is ``""`` when the database has no name for it.

        Raises:
            ValueError: If *ip* is not an IP address.
            ResolutionError: If the lookup fails.
        """
        if ip in LOOPBACK_ADDRESSES:
            return LOCAL_LABELS
        address = ipaddress.ip_address(ip)
        if self._reader is None:
            raise ResolutionError(f"no GeoIP database loaded, cannot resolve {ip}")
        try:
            record = self._reader.city(str(address))
        except (geoip2.errors.GeoIP2Error, RuntimeError, TypeError, ValueError) as exc:
            # ValueError: IPv6 address against an IPv4-only database
            raise ResolutionError(f"lookup failed for {ip}: {exc}") from exc
        country = record.country.names.get(self.country_locale, '')
        city = record.city.names.get('en', '')
        return country, city
