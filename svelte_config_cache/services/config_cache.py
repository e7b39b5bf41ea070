"""Directory-scoped cache of Svelte configurations with sync and async access."""

import asyncio
import copy
import os
from functools import partial
from pathlib import Path
from typing import Any, Protocol

from svelte_config_cache.config.config_loader import ConfigLoader, ConfigResolver
from svelte_config_cache.config.settings import CacheSettings
from svelte_config_cache.helpers.file_enumerator import DirectoryFileEnumerator
from svelte_config_cache.helpers.preprocess import (
    FALLBACK_OPTIONS,
    FallbackPreprocessorProvider,
    Preprocess,
    PreprocessorFactory,
)
from svelte_config_cache.utils.types import DirectoryKey, SvelteConfig

from .base import BaseService

DEFAULT_OPTIONS: dict[str, Any] = {"dev": True}
NO_GENERATE: dict[str, Any] = {"generate": False}


class PreprocessorProvider(Protocol):
    def get(self, directory: Path) -> PreprocessorFactory: ...


class FileEnumerator(Protocol):
    async def enumerate(self, root_dir: Path, extensions: Any) -> list[Path]: ...


def directory_key(file: str | os.PathLike[str]) -> DirectoryKey:
    """Normalized absolute path of the directory containing ``file``."""
    return os.path.dirname(os.path.normpath(os.path.abspath(os.fspath(file))))


class ConfigCache(BaseService):
    """
    Resolves and caches the config that applies to each directory.

    Provides both a synchronous and an asynchronous lookup because document
    snapshots need the config synchronously. The host is expected to call
    ``preload_configs`` (or ``get_config``) for a directory before relying on
    ``get_config_sync`` there.

    A cached config is never replaced, so callers may key derived artifacts
    on its identity. Concurrent misses for one directory share a single
    resolution.
    """

    def __init__(
        self,
        resolver: ConfigResolver | None = None,
        preprocessor_provider: PreprocessorProvider | None = None,
        file_enumerator: FileEnumerator | None = None,
        settings: CacheSettings | None = None,
    ) -> None:
        super().__init__("config_cache")
        self.settings = settings or CacheSettings()
        self._resolver = resolver or ConfigLoader(self.settings.config_extensions)
        self._preprocessors = preprocessor_provider or FallbackPreprocessorProvider()
        self._file_enumerator = file_enumerator or DirectoryFileEnumerator(
            self.settings.preload_ignore_dirs
        )
        self._configs: dict[DirectoryKey, SvelteConfig] = {}
        self._in_flight: dict[DirectoryKey, asyncio.Task[SvelteConfig]] = {}
        self._enabled = self.settings.enabled

    async def _initialize_impl(self) -> None:
        self.logger.info(
            "Config cache ready (enabled=%s, config file stem=%s)",
            self._enabled,
            self.settings.config_file_stem,
        )

    async def _shutdown_impl(self) -> None:
        # Pending resolutions were cancelled by the base; cached entries are kept
        self._in_flight.clear()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable/disable loading of configs (for security reasons for example).

        Existing entries are kept and become visible again when re-enabled.
        """
        if enabled != self._enabled:
            self.logger.info(f"Config loading {'enabled' if enabled else 'disabled'}")
        self._enabled = enabled

    async def get_config(self, file: str | os.PathLike[str]) -> SvelteConfig | None:
        """
        Return the config for ``file``, resolving its directory on first use.

        Args:
            file: Path of the analyzed file

        Returns:
            The cached config, or None while loading is disabled
        """
        if not self._enabled:
            return None

        directory = directory_key(file)
        cached = self._configs.get(directory)
        if cached is not None:
            return cached

        config = await self._load_and_cache(directory)
        return config if self._enabled else None

    def get_config_sync(self, file: str | os.PathLike[str]) -> SvelteConfig | None:
        """
        Return the config for ``file`` if its directory was already resolved.

        None means either "disabled" or "not resolved yet"; callers need a
        fallback for both.
        """
        if not self._enabled:
            return None
        return self._configs.get(directory_key(file))

    async def preload_configs(self, root_dir: str | os.PathLike[str]) -> list[SvelteConfig]:
        """
        Resolve the config of every directory under ``root_dir`` holding a
        candidate source file, so later sync lookups there succeed.

        Args:
            root_dir: Root of the tree to scan

        Returns:
            One config per distinct directory, ordered by directory path

        Raises:
            OSError: If the tree cannot be enumerated
        """
        if not self._enabled:
            self.logger.debug("Config loading disabled; skipping preload of %s", root_dir)
            return []

        root = Path(root_dir)
        files = await self._file_enumerator.enumerate(
            root, self.settings.preload_extensions
        )
        directories = sorted({directory_key(root / file) for file in files})
        self.logger.info(
            f"Preloading configs for {len(directories)} directories",
            extra={"root_dir": root},
        )

        configs = await asyncio.gather(
            *(self._cached_or_load(directory) for directory in directories)
        )
        if not self._enabled:
            return []
        return list(configs)

    def cached_directories(self) -> list[DirectoryKey]:
        """Snapshot of the directories with a cached config."""
        return sorted(self._configs)

    async def health_check(self) -> dict[str, Any]:
        """Return health information for the config cache."""
        base_health = await super().health_check()

        return {
            **base_health,
            "enabled": self._enabled,
            "cached_directories": len(self._configs),
            "in_flight": len(self._in_flight),
            "configs_with_errors": sum(
                1 for config in self._configs.values() if config.load_config_error
            ),
        }

    # -------------------------------------------------------------------------
    # Load-and-cache
    # -------------------------------------------------------------------------

    async def _cached_or_load(self, directory: DirectoryKey) -> SvelteConfig:
        cached = self._configs.get(directory)
        if cached is not None:
            return cached
        return await self._load_and_cache(directory)

    async def _load_and_cache(self, directory: DirectoryKey) -> SvelteConfig:
        """Join the pending resolution for ``directory`` or start one."""
        task = self._in_flight.get(directory)
        if task is None:
            task = self._spawn(self._resolve(directory), name=f"resolve-config:{directory}")
            self._in_flight[directory] = task
            task.add_done_callback(partial(self._forget_in_flight, directory))
        else:
            self.logger.debug("Joining in-flight resolution", extra={"directory": directory})

        # A cancelled waiter must not cancel the resolution other callers share
        return await asyncio.shield(task)

    def _forget_in_flight(self, directory: DirectoryKey, task: asyncio.Task[SvelteConfig]) -> None:
        if self._in_flight.get(directory) is task:
            del self._in_flight[directory]

    async def _resolve(self, directory: DirectoryKey) -> SvelteConfig:
        # The fallback provider may walk the file system
        defaults = await asyncio.to_thread(self._default_config, directory)
        try:
            config = await self._resolver.resolve(
                Path(directory), self.settings.config_file_stem, defaults
            )
        except Exception as e:
            # Resolvers report broken config files as data; this is a resolver bug
            self.logger.exception(
                "Config resolver failed; caching defaults",
                extra={"directory": directory},
            )
            config = defaults.with_error(e)

        return self._store(directory, config)

    def _store(self, directory: DirectoryKey, config: SvelteConfig) -> SvelteConfig:
        if not self._enabled:
            self.logger.debug(
                "Config loading disabled during resolution; not caching",
                extra={"directory": directory},
            )
            return config

        # First write wins so handed-out references stay canonical
        stored = self._configs.setdefault(directory, config)
        if stored is config:
            self.logger.debug(
                "Cached config%s",
                " (with load error)" if config.load_config_error else "",
                extra={"directory": directory},
            )
        return stored

    def _default_config(self, directory: DirectoryKey) -> SvelteConfig:
        return SvelteConfig(
            compiler_options={**DEFAULT_OPTIONS, **NO_GENERATE},
            preprocess=self._fallback_preprocessor(directory),
        )

    def _fallback_preprocessor(self, directory: DirectoryKey) -> Preprocess:
        try:
            factory = self._preprocessors.get(Path(directory))
            group = factory(copy.deepcopy(FALLBACK_OPTIONS))
        except Exception:
            self.logger.exception(
                "Could not create fallback preprocessor",
                extra={"directory": directory},
            )
            return Preprocess.none()

        self.logger.debug(
            "Using svelte-preprocess as fallback unless a config file overrides it",
            extra={"directory": directory},
        )
        return Preprocess.single(group)
