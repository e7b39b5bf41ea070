"""
Service Container

Holds the single ConfigCache of the host process and manages its lifecycle.
"""

from typing import Any

from svelte_config_cache.config.config_loader import ConfigResolver
from svelte_config_cache.config.settings import CacheSettings, SettingsLoader
from svelte_config_cache.utils.logging import get_logger

from .config_cache import ConfigCache, FileEnumerator, PreprocessorProvider


class ServiceContainer:
    """
    Central container for the config cache services.

    The host creates one container at startup and passes it (or the cache it
    holds) to every consumer instead of relying on a module-level global.
    """

    def __init__(self, settings: CacheSettings | None = None) -> None:
        self.logger = get_logger("services.container")
        self._settings = settings
        self._config_cache: ConfigCache | None = None
        self._initialized = False

    @property
    def config_cache(self) -> ConfigCache:
        """Get the config cache."""
        if self._config_cache is None:
            raise RuntimeError("ConfigCache not initialized")
        return self._config_cache

    @property
    def settings(self) -> CacheSettings:
        if self._settings is None:
            self._settings = SettingsLoader.load_settings()
        return self._settings

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(
        self,
        *,
        resolver: ConfigResolver | None = None,
        preprocessor_provider: PreprocessorProvider | None = None,
        file_enumerator: FileEnumerator | None = None,
    ) -> None:
        """
        Create and initialize all services.

        Collaborators default to the file-system implementations and can be
        replaced for tests or alternative hosts.
        """
        if self._initialized:
            self.logger.warning("Services already initialized")
            return

        self.logger.info("Initializing service container")
        cache = ConfigCache(
            resolver=resolver,
            preprocessor_provider=preprocessor_provider,
            file_enumerator=file_enumerator,
            settings=self.settings,
        )
        await cache.initialize()
        self._config_cache = cache

        self._initialized = True
        self.logger.info("Service container initialized")

    async def shutdown(self) -> None:
        """Shutdown all services."""
        if not self._initialized:
            return

        self.logger.info("Shutting down service container")
        if self._config_cache is not None:
            await self._config_cache.shutdown()
        self._config_cache = None
        self._initialized = False
        self.logger.info("Service container shutdown complete")

    async def health_check(self) -> dict[str, Any]:
        """Aggregate health information from every service."""
        services: dict[str, Any] = {}
        if self._config_cache is not None:
            services["config_cache"] = await self._config_cache.health_check()

        return {
            "initialized": self._initialized,
            "settings": SettingsLoader.get_settings_status(),
            "services": services,
        }
