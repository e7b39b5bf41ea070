"""Collaborators used by the config cache: preprocessing and file discovery."""

from .file_enumerator import DirectoryFileEnumerator
from .preprocess import (
    FALLBACK_OPTIONS,
    FallbackPreprocessorProvider,
    Preprocess,
    PreprocessKind,
    Processed,
    SveltePreprocessFallback,
)

__all__ = [
    "FALLBACK_OPTIONS",
    "DirectoryFileEnumerator",
    "FallbackPreprocessorProvider",
    "Preprocess",
    "PreprocessKind",
    "Processed",
    "SveltePreprocessFallback",
]
