import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from analyzer.errors import HostResolutionError, ScrapeError, ScrapeTimeoutError
from analyzer.scraper import PageScraper
from core.browser import BrowserManager


class ScriptedScraper(PageScraper):
    """PageScraper whose single attempt follows a script of results"""

    def __init__(self, script, **kwargs):
        kwargs.setdefault("max_retries", 3)
        kwargs.setdefault("retry_delay", 0)
        kwargs.setdefault("timeout", 1)
        super().__init__(browser_manager=object(), **kwargs)
        self.script = list(script)
        self.urls = []

    async def _scrape_once(self, url):
        self.urls.append(url)
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        if step == "hang":
            await asyncio.sleep(10)
        return step


async def test_retries_until_success(scrape_result):
    scraper = ScriptedScraper([ScrapeError("HTTP error! Status: 503"), RuntimeError("reset"), scrape_result])

    result = await scraper.scrape("acme.com")

    assert result is scrape_result
    assert scraper.urls == ["https://acme.com"] * 3


async def test_gives_up_after_max_attempts():
    scraper = ScriptedScraper([ScrapeError("one"), ScrapeError("two"), ScrapeError("three")])

    with pytest.raises(ScrapeError) as excinfo:
        await scraper.scrape("https://acme.com")

    assert "after 3 attempts" in str(excinfo.value)
    assert "three" in str(excinfo.value)
    assert len(scraper.urls) == 3


async def test_unresolvable_host_is_not_retried(scrape_result):
    scraper = ScriptedScraper([HostResolutionError("Domain could not be resolved"), scrape_result])

    with pytest.raises(HostResolutionError):
        await scraper.scrape("https://no-such-host.invalid")

    assert len(scraper.urls) == 1


async def test_timeout_is_not_retried(scrape_result):
    scraper = ScriptedScraper(["hang", scrape_result], timeout=0.05)

    with pytest.raises(ScrapeTimeoutError):
        await scraper.scrape("https://slow.example")

    assert len(scraper.urls) == 1


class StubPage:
    def __init__(self, closed_log, goto):
        self.closed_log = closed_log
        self._goto = goto

    async def goto(self, url, **kwargs):
        return await self._goto(url)

    async def close(self):
        self.closed_log.append("page")


class StubContext:
    def __init__(self, closed_log, goto):
        self.closed_log = closed_log
        self.goto = goto

    async def new_page(self):
        return StubPage(self.closed_log, self.goto)

    async def close(self):
        self.closed_log.append("context")


class StubBrowser:
    def __init__(self, goto):
        self.goto = goto
        self.closed_log = []

    def is_connected(self):
        return True

    async def new_context(self, **kwargs):
        return StubContext(self.closed_log, self.goto)


class StubBrowserManager(BrowserManager):
    """BrowserManager serving pages whose navigation runs the given coroutine"""

    def __init__(self, goto):
        super().__init__()
        self.stub = StubBrowser(goto)

    async def _launch(self):
        self._loop = asyncio.get_running_loop()
        self._browser = self.stub
        return self._browser


async def test_timeout_closes_page_and_context():
    async def hang(url):
        await asyncio.sleep(10)

    manager = StubBrowserManager(hang)
    scraper = PageScraper(browser_manager=manager, timeout=0.05, retry_delay=0)

    with pytest.raises(ScrapeTimeoutError):
        await scraper.scrape("https://slow.example")

    assert manager.stub.closed_log == ["page", "context"]


async def test_unresolved_host_closes_page_and_context():
    async def unresolved(url):
        raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://no-such-host.invalid/")

    manager = StubBrowserManager(unresolved)
    scraper = PageScraper(browser_manager=manager, timeout=1, retry_delay=0)

    with pytest.raises(HostResolutionError):
        await scraper.scrape("https://no-such-host.invalid")

    assert manager.stub.closed_log == ["page", "context"]
