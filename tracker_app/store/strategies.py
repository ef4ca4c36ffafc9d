"""
Settings store strategies using Strategy Pattern.

The settings store is plain key/value persistence with get/set semantics:
- Database: SQLAlchemy-backed `options` table (default)
- Memory: process-local dict, for tests and throwaway setups
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from tracker_app.models.option import Option

logger = logging.getLogger(__name__)


class SettingsStoreError(Exception):
    """Raised when the settings store cannot read or persist a value."""


class SettingsStoreStrategy(ABC):
    """
    Abstract base class for settings stores.

    Reads return None for keys that were never set and raise
    SettingsStoreError when the backend is unreachable, so callers can tell
    "not configured" apart from "unknown". Options are never deleted, so
    there is no delete operation.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get an option value.

        Args:
            key: Option name

        Returns:
            Stored value or None if the option was never set

        Raises:
            SettingsStoreError: if the backend could not be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """
        Create or update an option value.

        Args:
            key: Option name
            value: New value

        Returns:
            True if successful

        Raises:
            SettingsStoreError: if the value could not be persisted
        """
        pass

    async def set_many(self, values: Dict[str, str]) -> bool:
        """
        Create or update several options.

        Backends that support transactions write all of them or none.
        """
        for key, value in values.items():
            await self.set(key, value)
        return True


class DatabaseSettingsStore(SettingsStoreStrategy):
    """
    SQLAlchemy implementation of the settings store.

    Opens a short-lived session per call from the given session factory.
    Async for interface consistency; queries are sync and hit one indexed row.
    """

    def __init__(self, session_factory):
        """
        Args:
            session_factory: Callable returning a SQLAlchemy Session
        """
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            option = db.query(Option).filter(Option.key == key).first()
            return option.value if option else None
        except SQLAlchemyError as e:
            logger.error("Settings store read failed for %s: %s", key, e)
            raise SettingsStoreError(f"Could not read option {key}") from e
        finally:
            db.close()

    async def set(self, key: str, value: str) -> bool:
        return await self.set_many({key: value})

    async def set_many(self, values: Dict[str, str]) -> bool:
        """Upsert every option in a single transaction."""
        db = self.session_factory()
        try:
            for key, value in values.items():
                option = db.query(Option).filter(Option.key == key).first()
                if option is None:
                    db.add(Option(key=key, value=value))
                else:
                    option.value = value
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Settings store write failed for %s: %s", ", ".join(values), e)
            raise SettingsStoreError(f"Could not save options {', '.join(values)}") from e
        finally:
            db.close()


class InMemorySettingsStore(SettingsStoreStrategy):
    """Dict-backed settings store. Lost on restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._options: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._options.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._options[key] = value
        return True

    async def set_many(self, values: Dict[str, str]) -> bool:
        self._options.update(values)
        return True
