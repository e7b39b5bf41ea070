"""
Preprocessing capabilities attached to a configuration.

A config may carry no preprocessor, one group, or an ordered list of groups.
``Preprocess`` wraps all three shapes behind a single ``apply`` call so that
consumers never branch on the shape.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from svelte_config_cache.utils.logging import get_logger
from svelte_config_cache.utils.types import DefaultLanguages

logger = get_logger(__name__)

SECTIONS = ("markup", "script", "style")

PREPROCESS_PACKAGE = "svelte-preprocess"
BUNDLED_PREPROCESS_VERSION = "5.1.4"

# Options handed to the fallback group. ``transpile_only`` is only read by
# 3.x; 4.x dropped it but the option is harmless there.
FALLBACK_OPTIONS: dict[str, Any] = {
    "typescript": {
        "transpile_only": True,
        "compiler_options": {"source_map": True, "inline_source_map": False},
    }
}


@dataclass
class Processed:
    """Result of running a preprocessor over one section."""

    code: str
    map: Any = None
    dependencies: list[str] = field(default_factory=list)


class PreprocessorGroup(Protocol):
    """
    A set of optional ``markup``, ``script`` and ``style`` hooks.

    Hooks take keyword arguments and may be sync or async. They return a
    ``Processed``, a mapping with a ``code`` key, a plain string, or ``None``
    when they leave the section untouched.
    """

    default_languages: DefaultLanguages | None


class PreprocessKind(Enum):
    NONE = "none"
    SINGLE = "single"
    SEQUENCE = "sequence"


class Preprocess:
    """Tagged variant over zero, one or many preprocessor groups."""

    __slots__ = ("kind", "groups")

    def __init__(self, kind: PreprocessKind, groups: tuple[PreprocessorGroup, ...] = ()) -> None:
        if kind is PreprocessKind.NONE and groups:
            raise ValueError("NONE preprocess cannot carry groups")
        if kind is PreprocessKind.SINGLE and len(groups) != 1:
            raise ValueError("SINGLE preprocess needs exactly one group")
        self.kind = kind
        self.groups = groups

    @classmethod
    def none(cls) -> Preprocess:
        return cls(PreprocessKind.NONE)

    @classmethod
    def single(cls, group: PreprocessorGroup) -> Preprocess:
        return cls(PreprocessKind.SINGLE, (group,))

    @classmethod
    def sequence(cls, groups: Iterable[PreprocessorGroup]) -> Preprocess:
        return cls(PreprocessKind.SEQUENCE, tuple(groups))

    @classmethod
    def of(cls, value: Any) -> Preprocess:
        """Normalize ``None``, a group, a list of groups or a Preprocess."""
        if isinstance(value, Preprocess):
            return value
        if value is None:
            return cls.none()
        if isinstance(value, list | tuple):
            return cls.sequence(value)
        return cls.single(value)

    def __bool__(self) -> bool:
        return self.kind is not PreprocessKind.NONE

    def __repr__(self) -> str:
        return f"Preprocess({self.kind.value}, groups={list(self.groups)!r})"

    @property
    def default_languages(self) -> DefaultLanguages | None:
        """The first language hint offered by any group, if any."""
        for group in self.groups:
            hint = getattr(group, "default_languages", None)
            if hint is not None:
                return hint
        return None

    async def apply(
        self,
        section: str,
        content: str,
        attributes: Mapping[str, Any] | None = None,
        filename: str | None = None,
    ) -> Processed:
        """
        Run every group's hook for ``section`` in order, feeding each the
        previous output.

        Args:
            section: One of "markup", "script" or "style"
            content: Source text of the section
            attributes: Tag attributes (ignored for markup)
            filename: Name of the file the section came from

        Returns:
            The final Processed result. Unchanged content if no group handled it.
        """
        if section not in SECTIONS:
            raise ValueError(f"Unknown section '{section}', expected one of {SECTIONS}")

        result = Processed(code=content)
        for group in self.groups:
            hook = getattr(group, section, None)
            if hook is None:
                continue

            kwargs: dict[str, Any] = {"content": result.code, "filename": filename}
            if section != "markup":
                kwargs["attributes"] = dict(attributes or {})

            output = hook(**kwargs)
            if inspect.isawaitable(output):
                output = await output

            step = _coerce_processed(output)
            if step is None:
                continue
            result = Processed(
                code=step.code,
                map=step.map if step.map is not None else result.map,
                dependencies=result.dependencies + step.dependencies,
            )
        return result


def _coerce_processed(output: Any) -> Processed | None:
    if output is None or isinstance(output, Processed):
        return output
    if isinstance(output, str):
        return Processed(code=output)
    if isinstance(output, Mapping) and "code" in output:
        return Processed(
            code=output["code"],
            map=output.get("map"),
            dependencies=list(output.get("dependencies") or []),
        )
    raise TypeError(f"Preprocessor returned unsupported value {type(output).__name__}")


class SveltePreprocessFallback:
    """
    Stand-in for the svelte-preprocess auto-preprocessor.

    The transform itself lives in the external package; this group only
    carries the options and the language hints so downstream analysis can
    treat every section as a best-effort transpile.
    """

    def __init__(self, options: Mapping[str, Any] | None = None, version: str = BUNDLED_PREPROCESS_VERSION) -> None:
        self.version = version
        self.major = _major_version(version)
        self.options = dict(options or {})
        if self.major < 4:
            self.default_languages = None
        else:
            # 4.x and later know their defaults and ignore transpile_only
            self.default_languages = DefaultLanguages("html", "javascript", "css")
            typescript = self.options.get("typescript")
            if isinstance(typescript, Mapping) and "transpile_only" in typescript:
                self.options["typescript"] = {
                    k: v for k, v in typescript.items() if k != "transpile_only"
                }

    def __repr__(self) -> str:
        return f"SveltePreprocessFallback(version={self.version!r})"

    def markup(self, *, content: str, filename: str | None = None) -> None:
        return None

    def script(self, *, content: str, attributes: dict[str, Any], filename: str | None = None) -> Processed:
        return self._passthrough("script", content, attributes)

    def style(self, *, content: str, attributes: dict[str, Any], filename: str | None = None) -> Processed:
        return self._passthrough("style", content, attributes)

    def _passthrough(self, section: str, content: str, attributes: dict[str, Any]) -> Processed:
        lang = attributes.get("lang") or attributes.get("type")
        if lang is None and self.default_languages is not None:
            lang = getattr(self.default_languages, section)
        return Processed(code=content, map={"lang": lang, "source_map": self._wants_source_map(section)})

    def _wants_source_map(self, section: str) -> bool:
        if section != "script":
            return False
        typescript = self.options.get("typescript") or {}
        compiler_options = typescript.get("compiler_options") or {}
        return bool(compiler_options.get("source_map", False))


PreprocessorFactory = Callable[[Mapping[str, Any]], PreprocessorGroup]


class FallbackPreprocessorProvider:
    """
    Finds the svelte-preprocess version installed nearest to a directory
    and returns a factory for fallback groups of that version.

    Lookups are memoized per directory for the lifetime of the provider;
    call ``clear`` after installing or upgrading packages.
    """

    def __init__(self, bundled_version: str = BUNDLED_PREPROCESS_VERSION) -> None:
        self.bundled_version = bundled_version
        self._versions: dict[Path, str] = {}

    def get(self, directory: Path | str) -> PreprocessorFactory:
        directory = Path(directory).absolute()
        version = self._versions.get(directory)
        if version is None:
            version = _installed_version(directory, self.bundled_version)
            self._versions[directory] = version

        def factory(options: Mapping[str, Any]) -> SveltePreprocessFallback:
            return SveltePreprocessFallback(options, version=version)

        return factory

    def clear(self) -> None:
        """Forget memoized versions."""
        self._versions.clear()


def _installed_version(directory: Path, bundled_version: str) -> str:
    """Walk up from ``directory`` looking for node_modules/svelte-preprocess."""
    for candidate in (directory, *directory.parents):
        manifest = candidate / "node_modules" / PREPROCESS_PACKAGE / "package.json"
        if not manifest.is_file():
            continue
        try:
            version = json.loads(manifest.read_text(encoding="utf-8")).get("version")
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable {PREPROCESS_PACKAGE} manifest at {manifest}: {e}")
            continue
        if isinstance(version, str) and version:
            logger.debug(f"Using {PREPROCESS_PACKAGE} {version} from {manifest.parent}")
            return version
    return bundled_version


def _major_version(version: str) -> int:
    head = version.lstrip("v^~=").split(".", 1)[0]
    try:
        return int(head)
    except ValueError:
        return 0
