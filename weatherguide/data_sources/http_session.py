"""Shared outbound HTTP session: on-disk response cache plus retries with backoff."""
from __future__ import annotations

import requests
import requests_cache
from retry_requests import retry

from weatherguide import config
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http_session")

CACHE_NAME = ".cache"


def build_session(settings: config.Settings | None = None) -> requests.Session:
    """Return a cached, retrying requests session configured from settings."""
    settings = settings or config.settings
    cache_session = requests_cache.CachedSession(CACHE_NAME, expire_after=settings.http_cache_seconds)
    logger.debug(
        "Built cached HTTP session",
        extra={"expire_after": settings.http_cache_seconds, "retries": settings.http_retries},
    )
    return retry(cache_session, retries=settings.http_retries, backoff_factor=0.2)


session = build_session()
