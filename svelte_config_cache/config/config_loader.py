# config/config_loader.py

import asyncio
import copy
import dataclasses
import importlib
import importlib.util
import json
import uuid
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any, Protocol

import yaml

from svelte_config_cache.config.settings import DEFAULT_CONFIG_EXTENSIONS
from svelte_config_cache.helpers.preprocess import Preprocess
from svelte_config_cache.utils.errors import ConfigLoadError
from svelte_config_cache.utils.logging import get_logger
from svelte_config_cache.utils.types import SvelteConfig

logger = get_logger(__name__)

COMPILER_OPTIONS_KEYS = ("compilerOptions", "compiler_options")
PREPROCESS_KEY = "preprocess"


class ConfigResolver(Protocol):
    async def resolve(
        self, cwd: Path, stem: str, defaults: SvelteConfig
    ) -> SvelteConfig: ...


class ConfigLoader:
    """
    Finds and loads ``<stem>.{py,yaml,yml,json}`` for a directory.

    The search starts in ``cwd`` and walks up to the filesystem root; the
    nearest file wins. Values are merged over the supplied defaults.

    Observability:
        - Logs DEBUG when no config file is found (defaults apply)
        - Logs INFO with the resolved path on successful load
        - Logs WARNING when a found file cannot be loaded (degraded config)
    """

    def __init__(self, extensions: Sequence[str] = DEFAULT_CONFIG_EXTENSIONS) -> None:
        self.extensions = tuple(extensions)

    async def resolve(
        self, cwd: Path, stem: str, defaults: SvelteConfig
    ) -> SvelteConfig:
        """Return the config for ``cwd``. Never raises for a broken config file.

        Args:
            cwd: Directory the search starts in
            stem: File name without extension, e.g. "svelte.config"
            defaults: Values used where the file sets nothing

        Returns:
            ``defaults`` itself when no file is found, otherwise a new merged
            config. Load failures are reported through ``load_config_error``.
        """
        config_file = await asyncio.to_thread(self.find_config_file, Path(cwd), stem)
        if config_file is None:
            logger.debug(
                "No %s file found; using defaults", stem, extra={"directory": cwd}
            )
            return defaults

        try:
            raw = await asyncio.to_thread(self._read_config_file, config_file)
            config = self._merge(raw, defaults, config_file)
        except ConfigLoadError as e:
            logger.warning(
                "Error loading config file: %s", e, extra={"config_file": config_file}
            )
            return defaults.with_error(e, config_file)
        except Exception as e:
            error = ConfigLoadError(config_file, f"{type(e).__name__}: {e}")
            error.__cause__ = e
            logger.warning(
                "Error loading config file: %s", error, extra={"config_file": config_file}
            )
            return defaults.with_error(error, config_file)

        logger.info("Config loaded successfully from %s", config_file)
        return config

    def find_config_file(self, cwd: Path, stem: str) -> Path | None:
        """Return the nearest ``<stem><ext>`` at or above ``cwd``, if any."""
        for directory in _self_and_parents(cwd.absolute()):
            for ext in self.extensions:
                candidate = directory / f"{stem}{ext}"
                if candidate.is_file():
                    return candidate
        return None

    def _read_config_file(self, path: Path) -> dict[str, Any]:
        if path.suffix == ".py":
            return self._read_python_config(path)

        try:
            with path.open(encoding="utf-8") as file:
                if path.suffix == ".json":
                    data = json.load(file)
                else:
                    data = yaml.safe_load(file)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigLoadError(path, f"invalid syntax: {e}") from e
        except UnicodeDecodeError as e:
            raise ConfigLoadError(path, f"encoding error: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                path, f"expected a mapping at top level, got {type(data).__name__}"
            )
        data = dict(data)
        if PREPROCESS_KEY in data:
            data[PREPROCESS_KEY] = _import_preprocessors(path, data[PREPROCESS_KEY])
        return data

    def _read_python_config(self, path: Path) -> dict[str, Any]:
        # Unique module name so that two configs with the same file name never clash
        module_name = f"_svelte_config_{uuid.uuid4().hex}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ConfigLoadError(path, "cannot be imported")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise ConfigLoadError(path, f"{type(e).__name__}: {e}") from e

        config = getattr(module, "config", None)
        if config is None:
            raise ConfigLoadError(path, "does not define a module-level 'config'")
        if not isinstance(config, dict):
            raise ConfigLoadError(
                path, f"'config' must be a dict, got {type(config).__name__}"
            )
        return dict(config)

    def _merge(
        self, raw: dict[str, Any], defaults: SvelteConfig, path: Path
    ) -> SvelteConfig:
        compiler_options = copy.deepcopy(defaults.compiler_options)
        for key in COMPILER_OPTIONS_KEYS:
            if key not in raw:
                continue
            options = raw[key]
            if options is None:
                continue
            if not isinstance(options, dict):
                raise ConfigLoadError(path, f"'{key}' must be a mapping")
            compiler_options = _deep_merge(compiler_options, options)

        preprocess = defaults.preprocess
        if raw.get(PREPROCESS_KEY) is not None:
            preprocess = Preprocess.of(raw[PREPROCESS_KEY])

        unknown = set(raw) - {*COMPILER_OPTIONS_KEYS, PREPROCESS_KEY}
        if unknown:
            logger.debug("Ignoring unknown keys %s in %s", sorted(unknown), path)

        return dataclasses.replace(
            defaults,
            compiler_options=compiler_options,
            preprocess=preprocess,
            load_config_error=None,
            config_file=path,
        )


def _self_and_parents(path: Path) -> Iterator[Path]:
    yield path
    yield from path.parents


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested mappings merge, other values replace."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _import_preprocessors(path: Path, specs: Any) -> Any:
    """Resolve ``"module:attribute"`` specs from a data config into groups."""
    if specs is None:
        return None
    single = isinstance(specs, str)
    if single:
        specs = [specs]
    if not isinstance(specs, list):
        raise ConfigLoadError(path, "'preprocess' must be an import spec or a list of them")

    groups = []
    for spec in specs:
        if not isinstance(spec, str) or ":" not in spec:
            raise ConfigLoadError(
                path, f"invalid preprocess spec {spec!r}, expected 'module:attribute'"
            )
        module_name, _, attribute = spec.partition(":")
        try:
            target = getattr(importlib.import_module(module_name), attribute)
        except (ImportError, AttributeError) as e:
            raise ConfigLoadError(path, f"cannot import preprocessor '{spec}': {e}") from e
        # A class or zero-argument factory builds the group
        groups.append(target() if callable(target) else target)

    return groups[0] if single else groups
