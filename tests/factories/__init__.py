"""
Test Factories Module

Centralized factory functions and fakes for creating test objects.
"""

from .config_factories import (
    FakeEnumerator,
    FakeResolver,
    install_preprocess_package,
    make_project,
    make_settings,
    temp_settings_file,
    write_config_file,
)

__all__ = [
    "FakeEnumerator",
    "FakeResolver",
    "install_preprocess_package",
    "make_project",
    "make_settings",
    "temp_settings_file",
    "write_config_file",
]
