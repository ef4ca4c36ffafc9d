"""
Tracking snippet emitter.

Decides whether a page gets the Umami <script> reference and builds it.
Pure functions: the caller writes the result into the page.
"""

import re
from typing import Optional
from urllib.parse import quote

from markupsafe import escape

from tracker_app.config import settings
from tracker_app.identity.strategies import Viewer
from tracker_app.schemas.tracker import TrackerConfig

SNIPPET_TEMPLATE = '<script async defer data-website-id="{website_id}" src="{src}"></script>'

ALLOWED_URL_SCHEMES = ("http", "https")

# Reserved and unreserved characters per RFC 3986, plus "%" so existing
# escapes are kept. Everything else gets percent-encoded.
_URL_SAFE_CHARS = "-._~:/?#[]@!$&'()*+,;=%"
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_SCHEME = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")


def escape_attr(value: str) -> str:
    """Escape a value for use inside a double-quoted HTML attribute."""
    return str(escape(value))


def clean_url(url: Optional[str]) -> str:
    """
    Normalize a URL for storage or output.

    Strips whitespace and control characters and percent-encodes anything
    outside the URL-safe set. URLs with a scheme other than http/https come
    back as an empty string. A URL with no scheme that is not a relative
    path gets "http://" prepended.
    """
    if not url:
        return ""

    url = _CONTROL_CHARS.sub("", url.strip())
    if not url:
        return ""

    match = _SCHEME.match(url)
    if match:
        if match.group(1).lower() not in ALLOWED_URL_SCHEMES:
            return ""
    elif not url.startswith(("/", "#", "?")):
        url = "http://" + url

    return quote(url, safe=_URL_SAFE_CHARS)


def escape_url(url: Optional[str]) -> str:
    """Clean a URL and HTML-escape it for an src/href attribute."""
    return escape_attr(clean_url(url))


def resolve_script_url(
    analytics_base_url: Optional[str],
    default_collector_url: Optional[str] = None,
    script_name: Optional[str] = None,
) -> str:
    """
    Build the tracker script URL.

    An empty base URL falls back to the default collector. The base always
    ends with exactly one slash before the script name, so
    "https://x.com" and "https://x.com/" both give "https://x.com/umami.js".
    """
    if default_collector_url is None:
        default_collector_url = settings.default_collector_url
    if script_name is None:
        script_name = settings.tracker_script_name

    base = (analytics_base_url or "").strip()
    if not base:
        base = (default_collector_url or "").strip()
    if not base:
        return ""

    return base.rstrip("/\\") + "/" + script_name


def render_tracking_snippet(
    viewer: Viewer,
    config: TrackerConfig,
    default_collector_url: Optional[str] = None,
    script_name: Optional[str] = None,
) -> str:
    """
    Return the tracking <script> tag for this viewer, or "" for none.

    Logged-in users and admins are never tracked. Missing configuration
    silently suppresses the tag.
    """
    if viewer.is_authenticated or viewer.is_admin:
        return ""

    script_url = resolve_script_url(
        config.analytics_base_url, default_collector_url, script_name
    )
    website_id = config.website_id or ""
    src = escape_url(script_url)

    if not website_id or not src:
        return ""

    return SNIPPET_TEMPLATE.format(website_id=escape_attr(website_id), src=src)
