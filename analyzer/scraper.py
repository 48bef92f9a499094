"""
Playwright page scraper for GEO Analyzer

Loads a page in the shared browser and returns its HTML, visible text,
robots.txt, llms.txt and navigation timing data.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_fixed

from analyzer.errors import HostResolutionError, ScrapeError, ScrapeTimeoutError
from analyzer.models import ScrapeResult
from config import settings
from core.browser import BrowserManager, get_browser_manager
from utils.urls import normalize_url

logger = logging.getLogger(__name__)

NAME_NOT_RESOLVED = "net::ERR_NAME_NOT_RESOLVED"

BODY_TEXT_JS = "() => document.body ? document.body.innerText : ''"
META_DESCRIPTION_JS = """() => {
    const el = document.querySelector('meta[name="description"]');
    return el ? el.getAttribute('content') || '' : '';
}"""
PERFORMANCE_JS = "() => JSON.parse(JSON.stringify(window.performance))"


def _is_retryable(error: BaseException) -> bool:
    # Timeouts usually mean a bad site; unresolved hosts never recover
    return not isinstance(error, (ScrapeTimeoutError, HostResolutionError))


class PageScraper:
    """
    Scrapes one URL with bounded retries and an overall timeout per attempt.
    """

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self._browser_manager = browser_manager
        self.max_retries = max_retries or settings.SCRAPE_MAX_RETRIES
        self.retry_delay = settings.SCRAPE_RETRY_DELAY if retry_delay is None else retry_delay
        self.timeout = timeout or settings.SCRAPE_TIMEOUT

    @property
    def browser_manager(self) -> BrowserManager:
        if self._browser_manager is None:
            self._browser_manager = get_browser_manager()
        return self._browser_manager

    async def scrape(self, url: str) -> ScrapeResult:
        """
        Scrape a URL.

        Raises:
            HostResolutionError: The domain does not resolve
            ScrapeTimeoutError: An attempt exceeded the overall timeout
            ScrapeError: Every attempt failed
        """
        normalized = normalize_url(url)

        def log_retry(retry_state):
            logger.warning(
                f"🔄 Scrape attempt {retry_state.attempt_number}/{self.max_retries} failed for "
                f"{normalized}: {retry_state.outcome.exception()}. Retrying in {self.retry_delay}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    logger.info(
                        f"🌐 Scrape attempt {attempt.retry_state.attempt_number}/{self.max_retries}: {normalized}"
                    )
                    return await self._scrape_with_timeout(normalized)
        except (ScrapeTimeoutError, HostResolutionError):
            raise
        except Exception as e:
            raise ScrapeError(
                f"Failed to scrape page after {self.max_retries} attempts: {normalized}. Error: {str(e)}"
            ) from e

    async def _scrape_with_timeout(self, url: str) -> ScrapeResult:
        try:
            return await asyncio.wait_for(self._scrape_once(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"⏱️ Scraping timed out after {self.timeout}s for {url}")
            raise ScrapeTimeoutError(f"Scraping timed out after {self.timeout}s: {url}")

    async def _scrape_once(self, url: str) -> ScrapeResult:
        async with self.browser_manager.open_page() as page:
            try:
                response = await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=settings.SCRAPE_NAVIGATION_TIMEOUT * 1000,
                )
            except PlaywrightError as e:
                if NAME_NOT_RESOLVED in str(e):
                    raise HostResolutionError(
                        f"Domain could not be resolved: {url}. Please check the URL and try again."
                    ) from e
                raise ScrapeError(f"Navigation failed for {url}: {str(e)}") from e

            try:
                await page.wait_for_load_state(
                    "networkidle", timeout=settings.SCRAPE_NETWORK_IDLE_TIMEOUT * 1000
                )
            except PlaywrightTimeoutError:
                logger.warning("⚠️ Network idle timeout (non-fatal)")

            if response is None or not response.ok:
                status = response.status if response is not None else None
                raise ScrapeError(f"HTTP error! Status: {status} for {url}")

            html = await page.content()
            content = await page.evaluate(BODY_TEXT_JS) or ""
            if len(content.strip()) < settings.MIN_CONTENT_LENGTH:
                raise ScrapeError(
                    "Insufficient content scraped. The page may not have loaded properly."
                )

            title = await page.title()
            meta_description = await page.evaluate(META_DESCRIPTION_JS) or ""

            robots_txt, llms_txt = await asyncio.gather(
                self._fetch_text(page, urljoin(url, "/robots.txt")),
                self._fetch_text(page, urljoin(url, "/llms.txt")),
            )

            try:
                performance_metrics = await page.evaluate(PERFORMANCE_JS)
            except PlaywrightError:
                logger.warning("⚠️ Could not get performance metrics")
                performance_metrics = {}

            logger.info(f"✅ Scraped {url}: {len(content)} chars of text")
            return ScrapeResult(
                url=url,
                final_url=page.url,
                status_code=response.status,
                title=title or "",
                meta_description=meta_description,
                content=content,
                html=html,
                robots_txt=robots_txt,
                llms_txt=llms_txt,
                performance_metrics=performance_metrics,
            )

    async def _fetch_text(self, page: Page, url: str) -> Optional[str]:
        """GET a sibling text file through the page's context, None on any failure"""
        try:
            response = await page.context.request.get(
                url, timeout=settings.SCRAPE_AUX_TIMEOUT * 1000
            )
            if not response.ok:
                return None
            return await response.text()
        except PlaywrightError as e:
            logger.debug(f"Could not fetch {url}: {str(e)}")
            return None
