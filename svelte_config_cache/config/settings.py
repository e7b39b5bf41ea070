# config/settings.py

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

import yaml

SETTINGS_ENV_VAR = "SVELTE_CONFIG_CACHE_SETTINGS"

DEFAULT_CONFIG_FILE_STEM = "svelte.config"
DEFAULT_CONFIG_EXTENSIONS = (".py", ".yaml", ".yml", ".json")
DEFAULT_PRELOAD_EXTENSIONS = frozenset(
    {"svelte", "ts", "js", "mts", "mjs", "cjs", "cts"}
)
DEFAULT_IGNORE_DIRS = frozenset({"node_modules"})
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class CacheSettings:
    """Host-level settings for the config cache."""

    enabled: bool = True
    config_file_stem: str = DEFAULT_CONFIG_FILE_STEM
    config_extensions: tuple[str, ...] = DEFAULT_CONFIG_EXTENSIONS
    preload_extensions: frozenset[str] = DEFAULT_PRELOAD_EXTENSIONS
    preload_ignore_dirs: frozenset[str] = DEFAULT_IGNORE_DIRS
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "CacheSettings":
        """
        Build settings from a parsed YAML mapping.

        Invalid values are logged and replaced with their defaults so that a
        bad settings file never prevents the cache from starting.
        """
        defaults = cls()

        enabled = data.get("enabled", defaults.enabled)
        if not isinstance(enabled, bool):
            logging.warning("Invalid 'enabled' setting %r; defaulting to True", enabled)
            enabled = defaults.enabled

        stem = data.get("config_file_stem", defaults.config_file_stem)
        if not isinstance(stem, str) or not stem.strip():
            logging.warning("Invalid 'config_file_stem' setting %r; using default", stem)
            stem = defaults.config_file_stem

        config_extensions = _normalize_extensions(
            data.get("config_extensions"), defaults.config_extensions, dotted=True
        )

        preload = data.get("preload") or {}
        if not isinstance(preload, dict):
            logging.warning("'preload' settings must be a mapping; using defaults")
            preload = {}
        preload_extensions = frozenset(
            _normalize_extensions(
                preload.get("extensions"),
                tuple(sorted(defaults.preload_extensions)),
                dotted=False,
            )
        )
        ignore_dirs = preload.get("ignore_dirs", sorted(defaults.preload_ignore_dirs))
        if not isinstance(ignore_dirs, list) or not all(
            isinstance(name, str) for name in ignore_dirs
        ):
            logging.warning("Invalid 'preload.ignore_dirs' setting %r; using default", ignore_dirs)
            ignore_dirs = sorted(defaults.preload_ignore_dirs)

        logging_config = data.get("logging") or {}
        if not isinstance(logging_config, dict):
            logging.warning("'logging' settings must be a mapping; using defaults")
            logging_config = {}
        level = str(logging_config.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning(
                f"Invalid logging level '{level}' in settings. Defaulting to 'INFO'."
            )
            level = "INFO"

        known = {"enabled", "config_file_stem", "config_extensions", "preload", "logging"}
        return cls(
            enabled=enabled,
            config_file_stem=stem.strip(),
            config_extensions=config_extensions,
            preload_extensions=preload_extensions,
            preload_ignore_dirs=frozenset(ignore_dirs),
            log_level=level,
            extra={k: v for k, v in data.items() if k not in known},
        )


def _normalize_extensions(
    raw: Any, default: tuple[str, ...], *, dotted: bool
) -> tuple[str, ...]:
    """Normalize an extension list to ``.ext`` (dotted) or bare ``ext`` form."""
    if raw is None:
        return default
    if not isinstance(raw, list) or not raw:
        logging.warning("Invalid extension list %r in settings; using default", raw)
        return default

    normalized: list[str] = []
    for item in raw:
        if not isinstance(item, str) or not item.strip(". "):
            logging.warning("Ignoring invalid extension %r in settings", item)
            continue
        bare = item.strip().lstrip(".").lower()
        ext = f".{bare}" if dotted else bare
        if ext not in normalized:
            normalized.append(ext)
    return tuple(normalized) or default


class SettingsLoader:
    """
    Singleton class to load and provide access to the host settings.

    Observability:
        - Logs INFO on successful settings load with path
        - Logs WARNING on missing settings file (degraded mode)
        - Logs ERROR on YAML parse errors
        - Tracks settings_status for health reporting
    """

    _settings: ClassVar[CacheSettings | None] = None
    _settings_status: ClassVar[str] = "not_loaded"  # "ok", "defaults", "degraded", "error"
    _settings_path: ClassVar[str | None] = None

    @classmethod
    def load_settings(cls, settings_path: str | None = None) -> CacheSettings:
        """Load the settings from a YAML file if not already loaded.

        Args:
            settings_path: Path to the settings file. If not provided, uses the
                SVELTE_CONFIG_CACHE_SETTINGS env var, or built-in defaults when
                neither is set.

        Returns:
            CacheSettings: Loaded settings.
        """
        if cls._settings is not None:
            return cls._settings

        # Resolve settings path with priority: explicit arg > env var > defaults
        if settings_path is None:
            settings_path = os.environ.get(SETTINGS_ENV_VAR)
            if settings_path:
                logging.info(
                    "Settings path overridden via %s env: %s",
                    SETTINGS_ENV_VAR,
                    settings_path,
                )

        cls._settings_path = settings_path
        if not settings_path:
            cls._settings = CacheSettings()
            cls._settings_status = "defaults"
            return cls._settings

        data: dict[str, Any] = {}
        try:
            with Path(settings_path).open(encoding="utf-8") as file:
                loaded = yaml.safe_load(file) or {}

            if not isinstance(loaded, dict):
                logging.warning(
                    "Settings file didn't contain a mapping; using default settings."
                )
                cls._settings_status = "degraded"
            else:
                data = loaded
                cls._settings_status = "ok"
                logging.info("Settings loaded successfully from %s", settings_path)

        except FileNotFoundError:
            logging.warning(
                "Settings file not found at path: %s; "
                "using default settings (degraded mode).",
                settings_path,
            )
            cls._settings_status = "degraded"
        except yaml.YAMLError as e:
            logging.exception(
                "Error parsing settings YAML at %s: %s; using default settings.",
                settings_path,
                e,
            )
            cls._settings_status = "error"
        except UnicodeDecodeError as e:
            logging.exception(
                "Encoding error reading settings at %s: %s; using default settings.",
                settings_path,
                e,
            )
            cls._settings_status = "error"

        cls._settings = CacheSettings.from_mapping(data)
        return cls._settings

    @classmethod
    def get_settings_status(cls) -> dict[str, Any]:
        """Return settings health status for observability endpoints."""
        return {
            "settings_status": cls._settings_status,
            "settings_path": cls._settings_path,
            "settings_loaded": cls._settings is not None,
        }

    @classmethod
    def reset(cls) -> None:
        """Reset the settings loader state (useful for testing)."""
        cls._settings = None
        cls._settings_status = "not_loaded"
        cls._settings_path = None
