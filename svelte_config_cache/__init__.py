"""
Per-directory Svelte configuration cache for language tooling.

Typical host usage::

    container = ServiceContainer()
    await container.initialize()
    cache = container.config_cache
    await cache.preload_configs(workspace_root)
    config = cache.get_config_sync(path_to_file)
"""

from .config import CacheSettings, ConfigLoader, ConfigResolver, SettingsLoader
from .helpers import FallbackPreprocessorProvider, Preprocess, PreprocessKind, Processed
from .services import ConfigCache, ServiceContainer, directory_key
from .utils import ConfigCacheError, ConfigLoadError, DefaultLanguages, SvelteConfig

__version__ = "0.1.0"

__all__ = [
    "CacheSettings",
    "ConfigCache",
    "ConfigCacheError",
    "ConfigLoadError",
    "ConfigLoader",
    "ConfigResolver",
    "DefaultLanguages",
    "FallbackPreprocessorProvider",
    "Preprocess",
    "PreprocessKind",
    "Processed",
    "ServiceContainer",
    "SettingsLoader",
    "SvelteConfig",
    "directory_key",
]
