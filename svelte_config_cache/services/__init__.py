"""
Services package.

Long-lived, lifecycle-managed services owned by the host process.
"""

from .base import BaseService
from .config_cache import ConfigCache, directory_key
from .service_container import ServiceContainer

__all__ = [
    "BaseService",
    "ConfigCache",
    "ServiceContainer",
    "directory_key",
]
