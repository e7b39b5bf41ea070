"""
Custom exception classes for the config cache.

These provide a hierarchy of typed exceptions for better error handling.
"""

from pathlib import Path


class ConfigCacheError(Exception):
    """Base exception for config-cache errors."""

    pass


class ConfigLoadError(ConfigCacheError):
    """
    A config file was found but could not be loaded.

    Never raised out of the resolver; it is attached to the returned
    configuration as ``load_config_error`` with the original exception
    chained as ``__cause__``.
    """

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = Path(path)
        self.message = message
