"""
Settings store module.

Implements the Strategy Pattern for pluggable key/value option persistence.
"""

from .strategies import (
    SettingsStoreStrategy,
    DatabaseSettingsStore,
    InMemorySettingsStore,
    SettingsStoreError,
)
from .factory import SettingsStoreFactory, SettingsStoreBackend

__all__ = [
    "SettingsStoreStrategy",
    "DatabaseSettingsStore",
    "InMemorySettingsStore",
    "SettingsStoreError",
    "SettingsStoreFactory",
    "SettingsStoreBackend",
]
