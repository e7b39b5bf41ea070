"""Recursive discovery of candidate source files for config preloading."""

import asyncio
import os
from collections.abc import Collection
from pathlib import Path

from svelte_config_cache.config.settings import DEFAULT_IGNORE_DIRS
from svelte_config_cache.utils.logging import get_logger

logger = get_logger(__name__)


class DirectoryFileEnumerator:
    """
    Lists files under a root whose extension is in a given set.

    Hidden files and directories are skipped, as are directories named in
    ``ignore_dirs``.
    """

    def __init__(self, ignore_dirs: Collection[str] = DEFAULT_IGNORE_DIRS) -> None:
        self.ignore_dirs = frozenset(ignore_dirs)

    async def enumerate(self, root_dir: Path | str, extensions: Collection[str]) -> list[Path]:
        """
        Args:
            root_dir: Directory to search recursively
            extensions: Extensions without the leading dot, e.g. {"svelte", "ts"}

        Returns:
            Sorted absolute file paths.

        Raises:
            FileNotFoundError: If root_dir does not exist
            NotADirectoryError: If root_dir is not a directory
        """
        root = Path(root_dir).absolute()
        wanted = frozenset(ext.lstrip(".").lower() for ext in extensions)
        files = await asyncio.to_thread(self._walk, root, wanted)
        logger.debug(f"Found {len(files)} candidate files under {root}")
        return files

    def _walk(self, root: Path, wanted: frozenset[str]) -> list[Path]:
        if not root.exists():
            raise FileNotFoundError(f"Preload root does not exist: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Preload root is not a directory: {root}")

        def _raise(error: OSError) -> None:
            raise error

        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = [
                name
                for name in dirnames
                if not name.startswith(".") and name not in self.ignore_dirs
            ]
            for name in filenames:
                if name.startswith("."):
                    continue
                ext = os.path.splitext(name)[1].lstrip(".").lower()
                if ext in wanted:
                    found.append(Path(dirpath, name))
        found.sort()
        return found
