"""
Factory for creating viewer identity strategies.
"""

import logging
from enum import Enum

from .strategies import ViewerIdentityStrategy, AnonymousIdentity, TokenIdentity
from tracker_app.config import settings

logger = logging.getLogger(__name__)


class IdentityBackend(Enum):
    """Available viewer identity backends"""
    TOKEN = "token"
    ANONYMOUS = "anonymous"


class IdentityFactory:
    """Creates the viewer identity strategy once and reuses it."""

    _instance: ViewerIdentityStrategy = None

    @classmethod
    def create(cls, backend: IdentityBackend) -> ViewerIdentityStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == IdentityBackend.TOKEN:
            if not settings.admin_token:
                logger.warning("ADMIN_TOKEN is not set; admin pages are unreachable")
            cls._instance = TokenIdentity(
                admin_token=settings.admin_token,
                session_cookie_name=settings.session_cookie_name,
            )

        elif backend == IdentityBackend.ANONYMOUS:
            cls._instance = AnonymousIdentity()

        else:
            raise ValueError(f"Unknown identity backend: {backend}")

        logger.info("Viewer identity backend: %s", backend.value)
        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
