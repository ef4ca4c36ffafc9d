"""
Factory for creating settings store instances.
Simple factory with singleton caching.
"""

import logging
from enum import Enum

from .strategies import SettingsStoreStrategy, DatabaseSettingsStore, InMemorySettingsStore
from tracker_app.database.connection import SessionLocal

logger = logging.getLogger(__name__)


class SettingsStoreBackend(Enum):
    """Available settings store backends"""
    DATABASE = "database"
    MEMORY = "memory"


class SettingsStoreFactory:
    """
    Simple factory for creating settings store instances.
    """

    _instance: SettingsStoreStrategy = None

    @classmethod
    def create(cls, backend: SettingsStoreBackend) -> SettingsStoreStrategy:
        """
        Create or return cached settings store instance.

        Args:
            backend: Type of store backend (from enum)

        Returns:
            Singleton settings store instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == SettingsStoreBackend.DATABASE:
            cls._instance = DatabaseSettingsStore(session_factory=SessionLocal)
            logger.info("Database settings store initialized")

        elif backend == SettingsStoreBackend.MEMORY:
            cls._instance = InMemorySettingsStore()
            logger.info("In-memory settings store initialized")

        else:
            raise ValueError(f"Unknown settings store backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
