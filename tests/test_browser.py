import asyncio

from core.browser import BrowserManager, resolve_executable_path


class FakeBrowser:
    def __init__(self):
        self.connected = True
        self.closed = False

    def is_connected(self):
        return self.connected

    async def close(self):
        self.closed = True
        self.connected = False


class CountingManager(BrowserManager):
    """BrowserManager with a fake, slow launch instead of Playwright"""

    async def _launch(self):
        await asyncio.sleep(0.02)
        self._loop = asyncio.get_running_loop()
        self._browser = FakeBrowser()
        self.launch_count += 1
        return self._browser


async def test_concurrent_callers_share_one_launch():
    manager = CountingManager()

    browsers = await asyncio.gather(*(manager.get_browser() for _ in range(5)))

    assert manager.launch_count == 1
    assert all(b is browsers[0] for b in browsers)


async def test_connected_browser_is_reused():
    manager = CountingManager()
    first = await manager.get_browser()
    second = await manager.get_browser()

    assert first is second
    assert manager.launch_count == 1


async def test_disconnected_browser_is_relaunched():
    manager = CountingManager()
    first = await manager.get_browser()
    first.connected = False

    second = await manager.get_browser()

    assert second is not first
    assert manager.launch_count == 2


async def test_close_releases_browser():
    manager = CountingManager()
    browser = await manager.get_browser()

    await manager.close()

    assert browser.closed
    assert manager._browser is None
    await manager.get_browser()
    assert manager.launch_count == 2


def test_configured_executable_path_wins(tmp_path):
    chrome = tmp_path / "chrome"
    chrome.write_text("")
    assert resolve_executable_path(str(chrome)) == str(chrome)
