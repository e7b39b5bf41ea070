"""
Utilities Package

Common utilities and data types shared by the config cache services.
"""

from .errors import ConfigCacheError, ConfigLoadError
from .logging import get_logger, setup_logging, stop_logging
from .tasks import cancel_and_wait, spawn
from .types import DefaultLanguages, DirectoryKey, SvelteConfig

__all__ = [
    "ConfigCacheError",
    "ConfigLoadError",
    "DefaultLanguages",
    "DirectoryKey",
    "SvelteConfig",
    "cancel_and_wait",
    "get_logger",
    "setup_logging",
    "spawn",
    "stop_logging",
]
