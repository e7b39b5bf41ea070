"""
Type definitions and common data structures for the config cache.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, NamedTuple

if TYPE_CHECKING:
    from svelte_config_cache.helpers.preprocess import Preprocess


class DefaultLanguages(NamedTuple):
    """Languages a preprocessor assumes when a section has no ``lang`` attribute."""

    markup: str | None = None
    script: str | None = None
    style: str | None = None


def _empty_preprocess() -> Preprocess:
    from svelte_config_cache.helpers.preprocess import Preprocess

    return Preprocess.none()


@dataclass
class SvelteConfig:
    """Configuration that applies to every file in one directory.

    Instances handed out by the cache are shared; treat them as read-only.
    """

    compiler_options: dict[str, Any] = field(default_factory=dict)
    preprocess: Preprocess = field(default_factory=_empty_preprocess)
    # Set only when a config file existed but failed to load
    load_config_error: BaseException | None = None
    config_file: Path | None = None

    def with_error(self, error: BaseException, config_file: Path | None = None) -> SvelteConfig:
        """Return a copy carrying a load error, keeping the defaults otherwise."""
        return dataclasses.replace(
            self,
            compiler_options=dict(self.compiler_options),
            load_config_error=error,
            config_file=config_file if config_file is not None else self.config_file,
        )


# Type aliases
DirectoryKey = str
