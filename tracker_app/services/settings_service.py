import logging
import re
from typing import Dict, Optional

from tracker_app.cache.strategies import CacheStrategy
from tracker_app.config import settings
from tracker_app.schemas.tracker import TrackerConfig
from tracker_app.services.snippet import clean_url
from tracker_app.store.strategies import SettingsStoreStrategy

logger = logging.getLogger(__name__)

WEBSITE_ID_OPTION = "umami_website_id"
ANALYTICS_URL_OPTION = "umami_analytics_url"

PRIVACY_POLICY_TEXT = (
    "This site uses Umami Analytics to track visitor information. Umami is "
    "privacy-focused and does not use cookies or collect personal data."
    "\n\n"
    "Umami Analytics does not track or store any personal information about "
    "visitors. It only collects anonymous usage data such as page views, "
    "referrers, and browser information."
)

_TAGS = re.compile(r"<[^>]*>?")
_WHITESPACE = re.compile(r"\s+")


def sanitize_text_field(value: Optional[str]) -> str:
    """Strip tags and line breaks, collapse whitespace, trim."""
    if not value:
        return ""
    value = _TAGS.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


class TrackerSettingsService:
    """
    Reads and writes the tracker configuration record.

    Store and cache are injected. Reads go cache-first (Cache-Aside);
    writes go to the store and then invalidate the cached option.
    """

    def __init__(
        self,
        store: SettingsStoreStrategy,
        cache: Optional[CacheStrategy] = None,
    ):
        self.store = store
        self.cache = cache

    @staticmethod
    def _cache_key(option: str) -> str:
        return f"option:{option}"

    async def get_option(self, option: str) -> str:
        """
        Return an option value, or "" when it was never set.

        Store read errors propagate and nothing is cached, so a failed read
        is never remembered as "not configured".
        """
        cache_key = self._cache_key(option)

        if self.cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        value = await self.store.get(option) or ""

        if self.cache:
            await self.cache.set(cache_key, value, ttl=settings.cache_ttl)

        return value

    async def set_options(self, values: Dict[str, str]) -> None:
        """Write options together, then drop their cached values."""
        await self.store.set_many(values)
        if self.cache:
            for option in values:
                await self.cache.delete(self._cache_key(option))

    async def get_config(self) -> TrackerConfig:
        return TrackerConfig(
            website_id=await self.get_option(WEBSITE_ID_OPTION),
            analytics_base_url=await self.get_option(ANALYTICS_URL_OPTION),
        )

    async def update_config(self, website_id: str, analytics_url: str) -> TrackerConfig:
        """
        Sanitize and save both options.

        The website id is treated as a plain text field. The analytics URL
        keeps only http/https; anything else is stored as "" which means
        "use the default collector".

        Raises:
            SettingsStoreError: if the store cannot persist the values;
                neither option is changed in that case
        """
        config = TrackerConfig(
            website_id=sanitize_text_field(website_id),
            analytics_base_url=clean_url(analytics_url),
        )
        await self.set_options({
            WEBSITE_ID_OPTION: config.website_id,
            ANALYTICS_URL_OPTION: config.analytics_base_url,
        })

        logger.info(
            "Tracker settings saved (website_id set: %s, analytics_url: %r)",
            bool(config.website_id),
            config.analytics_base_url,
        )
        return config

    async def is_configured(self) -> bool:
        """True when both the website id and the analytics URL are stored."""
        config = await self.get_config()
        return bool(config.website_id) and bool(config.analytics_base_url)

    @staticmethod
    def get_privacy_policy_text() -> str:
        return PRIVACY_POLICY_TEXT
