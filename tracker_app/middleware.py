"""
Page render hook: inserts the tracking snippet into outgoing HTML.

Runs after the route handler. For HTML GET responses outside the excluded
paths it asks the emitter for a snippet and writes it right before </head>.
"""

import logging
import re
from typing import Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tracker_app.config import settings
from tracker_app.dependencies import get_cache, get_identity, get_settings_store
from tracker_app.services.settings_service import TrackerSettingsService
from tracker_app.services.snippet import render_tracking_snippet
from tracker_app.store.strategies import SettingsStoreError

logger = logging.getLogger(__name__)

_HEAD_CLOSE = re.compile(rb"</head\s*>", re.IGNORECASE)
_CHARSET = re.compile(r"charset=([\w.:-]+)", re.IGNORECASE)


def inject_snippet(html: bytes, snippet: bytes) -> bytes:
    """Insert snippet before the first </head>. No </head> means no change."""
    match = _HEAD_CLOSE.search(html)
    if not match or not snippet:
        return html
    return html[:match.start()] + snippet + html[match.start():]


def _provider(request: Request, dependency: Callable):
    """Call a dependency provider, honoring app.dependency_overrides."""
    overrides = getattr(request.app, "dependency_overrides", {}) or {}
    return overrides.get(dependency, dependency)()


def _encode_for(response: Response, snippet: str) -> bytes:
    """Encode the snippet in the page's declared charset, utf-8 if unknown."""
    match = _CHARSET.search(response.headers.get("content-type", ""))
    charset = match.group(1) if match else "utf-8"
    try:
        return snippet.encode(charset, errors="xmlcharrefreplace")
    except LookupError:
        logger.warning("Unknown charset %r, encoding snippet as utf-8", charset)
        return snippet.encode("utf-8")


class TrackingSnippetMiddleware(BaseHTTPMiddleware):
    """
    Adds the Umami <script> tag to HTML pages for anonymous visitors.

    Skips non-GET requests, non-HTML or already-encoded (gzip) responses and
    any path under excluded_paths.
    """

    def __init__(self, app, excluded_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        if excluded_paths is None:
            excluded_paths = settings.snippet_excluded_paths
        self.excluded_paths = tuple(p for p in excluded_paths if p)

    def _is_excluded(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix.rstrip("/") + "/")
            for prefix in self.excluded_paths
        )

    def _should_inject(self, request: Request, response: Response) -> bool:
        if request.method != "GET":
            return False
        if self._is_excluded(request.url.path):
            return False
        content_type = response.headers.get("content-type", "").lower()
        if not content_type.startswith("text/html"):
            return False
        if response.headers.get("content-encoding"):
            return False
        return True

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if not self._should_inject(request, response):
            return response

        viewer = _provider(request, get_identity).resolve(request)
        if not viewer.is_anonymous:
            return response

        service = TrackerSettingsService(
            store=_provider(request, get_settings_store),
            cache=_provider(request, get_cache),
        )
        try:
            config = await service.get_config()
        except SettingsStoreError as e:
            logger.warning("Tracker settings unavailable, serving %s without snippet: %s", request.url.path, e)
            return response
        snippet = render_tracking_snippet(viewer, config)
        if not snippet:
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        body = inject_snippet(body, _encode_for(response, snippet))

        new_response = Response(
            content=body,
            status_code=response.status_code,
            background=response.background,
        )
        new_response.raw_headers = [
            (key, value)
            for key, value in response.raw_headers
            if key.lower() != b"content-length"
        ] + [(b"content-length", str(len(body)).encode("latin-1"))]
        return new_response
