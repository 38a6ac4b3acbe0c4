"""Services package — expose all concrete services from one import."""
from .config_service import ConfigService
from .geo_service import GeoService
from .audit_service import AuditService

__all__ = [
    'ConfigService',
    'GeoService',
    'AuditService',
]
