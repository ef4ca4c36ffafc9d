"""
Viewer identity strategies.

Answers two questions about the current request: is the viewer logged in,
and does the viewer hold administrative capability. The tracking snippet is
only emitted when both answers are no.
"""

import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from starlette.requests import HTTPConnection


@dataclass(frozen=True)
class Viewer:
    """Authentication state of the current viewer."""
    is_authenticated: bool = False
    is_admin: bool = False

    @property
    def is_anonymous(self) -> bool:
        return not self.is_authenticated and not self.is_admin


ANONYMOUS = Viewer()


class ViewerIdentityStrategy(ABC):
    """Resolve a Viewer from an incoming request."""

    @abstractmethod
    def resolve(self, request: HTTPConnection) -> Viewer:
        pass


class AnonymousIdentity(ViewerIdentityStrategy):
    """
    Null Object - every viewer is anonymous.

    Useful when this service only fronts public pages and admin access is
    handled elsewhere.
    """

    def resolve(self, request: HTTPConnection) -> Viewer:
        return ANONYMOUS


class TokenIdentity(ViewerIdentityStrategy):
    """
    Identity from request credentials.

    - `Authorization: Bearer <admin_token>` or `X-Admin-Token: <admin_token>`
      marks an authenticated admin.
    - A session cookie marks an authenticated (non-admin) user.
    - Anything else is anonymous.

    With an empty admin_token nobody is admin.
    """

    def __init__(self, admin_token: str, session_cookie_name: str = "session"):
        self.admin_token = admin_token
        self.session_cookie_name = session_cookie_name

    def _presented_token(self, request: HTTPConnection) -> Optional[str]:
        auth = request.headers.get("authorization", "")
        scheme, _, credentials = auth.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
        return request.headers.get("x-admin-token")

    def resolve(self, request: HTTPConnection) -> Viewer:
        token = self._presented_token(request)
        if self.admin_token and token and hmac.compare_digest(
            token.encode("utf-8"), self.admin_token.encode("utf-8")
        ):
            return Viewer(is_authenticated=True, is_admin=True)

        if request.cookies.get(self.session_cookie_name):
            return Viewer(is_authenticated=True, is_admin=False)

        return ANONYMOUS
