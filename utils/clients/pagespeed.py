"""
Google PageSpeed Insights client.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from analyzer.errors import PerformanceProviderError
from config import get_pagespeed_api_key, settings

logger = logging.getLogger(__name__)

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"


class PageSpeedClient:
    """Fetches raw PSI results for a URL (mobile strategy, performance category)"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else get_pagespeed_api_key()
        self.timeout = timeout or settings.PAGESPEED_TIMEOUT
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_metrics(self, url: str) -> Dict[str, Any]:
        """
        Run PageSpeed Insights for url.

        Returns:
            Raw PSI JSON, or {} when no API key is configured

        Raises:
            PerformanceProviderError: PSI answered with a non-2xx status
        """
        if not self.configured:
            logger.warning("⚠️ PageSpeed API key missing, returning empty performance data")
            return {}

        params = {
            "url": url,
            "strategy": "mobile",
            "category": "performance",
            "key": self.api_key,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(PAGESPEED_ENDPOINT, params=params)

        if response.status_code >= 400:
            raise PerformanceProviderError(
                f"PageSpeed Insights returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        logger.info(f"📊 PageSpeed data fetched for {url}")
        return response.json()
