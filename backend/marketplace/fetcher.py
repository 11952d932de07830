"""Fetching third party listing pages"""

from __future__ import annotations
import logging
from typing import Optional, Protocol

import requests

from .errors import UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 15
UNREACHABLE_MESSAGE = "Não foi possível aceder ao anúncio. Verifique o URL."


class PageFetcher(Protocol):
    def fetch(self, url: str) -> str: ...


class RequestsPageFetcher:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.session = session
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch(self, url: str) -> str:
        """Return the page markup, raising UpstreamFetchError on anything but a 2xx"""
        client = self.session or requests
        # Marketplaces block obvious bots, so look like a Portuguese browser
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "pt-PT,pt;q=0.9,en;q=0.8",
        }
        try:
            response = client.get(url, timeout=self.timeout, headers=headers)
        except requests.RequestException as e:
            logger.warning("Fetching %s failed: %s", url, e)
            raise UpstreamFetchError(UNREACHABLE_MESSAGE) from e
        if not 200 <= response.status_code < 300:
            logger.warning("Fetching %s answered %s", url, response.status_code)
            raise UpstreamFetchError(UNREACHABLE_MESSAGE)
        return response.text
