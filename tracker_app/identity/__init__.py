"""
Viewer identity module.
"""

from .strategies import (
    Viewer,
    ANONYMOUS,
    ViewerIdentityStrategy,
    AnonymousIdentity,
    TokenIdentity,
)
from .factory import IdentityFactory, IdentityBackend

__all__ = [
    "Viewer",
    "ANONYMOUS",
    "ViewerIdentityStrategy",
    "AnonymousIdentity",
    "TokenIdentity",
    "IdentityFactory",
    "IdentityBackend",
]
