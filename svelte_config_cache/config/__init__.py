from .settings import CacheSettings, SettingsLoader
from .config_loader import ConfigLoader, ConfigResolver

__all__ = [
    "CacheSettings",
    "ConfigLoader",
    "ConfigResolver",
    "SettingsLoader",
]
