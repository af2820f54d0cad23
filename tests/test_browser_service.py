"""Тесты жизненного цикла браузерных сессий на заглушках Playwright."""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from bookbright.config import BrowserSettings
from bookbright.scrapers.alibaba_scraper import AlibabaScraper
from bookbright.scrapers.ebay_scraper import EbayScraper
from bookbright.services import browser_service
from bookbright.services.browser_service import BrowserError, BrowserService

from fakes import ALIBABA_URL, EBAY_URL

DESTROYED = (
    "Execution context was destroyed, most likely because of a navigation"
)


class StubPage:
    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.url = "about:blank"

    def _check(self, method: str) -> None:
        if self.fail_on == method:
            raise PlaywrightError(DESTROYED)

    async def add_init_script(self, script: str) -> None:
        return None

    async def goto(self, url: str, **kwargs) -> None:
        self._check("goto")
        self.url = url

    async def wait_for_timeout(self, ms: int) -> None:
        self._check("wait_for_timeout")

    async def evaluate(self, script: str) -> None:
        return None

    async def title(self) -> str:
        self._check("title")
        return "Product page"

    async def content(self) -> str:
        self._check("content")
        return "<html><body></body></html>"


class StubContext:
    def __init__(self, page: StubPage) -> None:
        self.page = page
        self.closed = 0

    def set_default_timeout(self, timeout: int) -> None:
        return None

    def set_default_navigation_timeout(self, timeout: int) -> None:
        return None

    async def new_page(self) -> StubPage:
        return self.page

    async def close(self) -> None:
        self.closed += 1


class StubBrowser:
    def __init__(self, context: StubContext) -> None:
        self.context = context
        self.closed = 0

    async def new_context(self, **kwargs) -> StubContext:
        return self.context

    async def close(self) -> None:
        self.closed += 1


class StubChromium:
    def __init__(self, browser: StubBrowser, fail: bool) -> None:
        self.browser = browser
        self.fail = fail

    async def launch(self, **kwargs) -> StubBrowser:
        if self.fail:
            raise PlaywrightError("Executable doesn't exist")
        return self.browser


class StubPlaywright:
    def __init__(self, page: StubPage, fail_launch: bool = False) -> None:
        self.context = StubContext(page)
        self.browser = StubBrowser(self.context)
        self.chromium = StubChromium(self.browser, fail_launch)
        self.stopped = 0

    async def stop(self) -> None:
        self.stopped += 1


class StubStarter:
    def __init__(self, playwright: StubPlaywright) -> None:
        self._playwright = playwright

    async def start(self) -> StubPlaywright:
        return self._playwright


@pytest.fixture
def install_playwright(monkeypatch):
    """Подменяет async_playwright заглушкой и убирает случайные паузы."""
    monkeypatch.setattr(browser_service.random, "uniform", lambda a, b: 0)

    def install(page_fail_on: str | None = None, fail_launch: bool = False) -> StubPlaywright:
        playwright = StubPlaywright(StubPage(page_fail_on), fail_launch)
        monkeypatch.setattr(browser_service, "async_playwright", lambda: StubStarter(playwright))
        return playwright

    return install


def make_service() -> BrowserService:
    return BrowserService(BrowserSettings(page_wait_time=1))


def assert_released(playwright: StubPlaywright) -> None:
    assert playwright.context.closed == 1
    assert playwright.browser.closed == 1
    assert playwright.stopped == 1


class TestSessionLifecycle:
    """Контекст, браузер и Playwright закрываются на любом пути выхода"""

    @pytest.mark.asyncio
    async def test_released_after_success(self, install_playwright):
        playwright = install_playwright()

        async with make_service().session() as session:
            await session.navigate(ALIBABA_URL)
            assert await session.content() == "<html><body></body></html>"

        assert_released(playwright)

    @pytest.mark.asyncio
    async def test_released_after_body_error(self, install_playwright):
        playwright = install_playwright()

        with pytest.raises(RuntimeError, match="parse failed"):
            async with make_service().session():
                raise RuntimeError("parse failed")

        assert_released(playwright)

    @pytest.mark.asyncio
    async def test_launch_failure_stops_playwright(self, install_playwright):
        playwright = install_playwright(fail_launch=True)

        with pytest.raises(BrowserError, match="Could not launch browser"):
            async with make_service().session():
                pytest.fail("session body must not run")

        assert playwright.browser.closed == 0
        assert playwright.context.closed == 0
        assert playwright.stopped == 1

    @pytest.mark.asyncio
    async def test_released_after_cancellation(self, install_playwright):
        playwright = install_playwright()
        entered = asyncio.Event()

        async def hold_session():
            async with make_service().session():
                entered.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(hold_session())
        await entered.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert_released(playwright)


class TestSessionErrors:
    """Ошибки страницы Playwright превращаются в BrowserError"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["content", "title"])
    async def test_page_read_error(self, install_playwright, method):
        playwright = install_playwright(page_fail_on=method)

        with pytest.raises(BrowserError, match="Execution context was destroyed"):
            async with make_service().session() as session:
                await getattr(session, method)()

        assert_released(playwright)

    @pytest.mark.asyncio
    async def test_wait_error(self, install_playwright):
        install_playwright(page_fail_on="wait_for_timeout")

        with pytest.raises(BrowserError):
            async with make_service().session() as session:
                await session.navigate(EBAY_URL)

    @pytest.mark.asyncio
    async def test_alibaba_content_error_is_failed_result(self, install_playwright):
        playwright = install_playwright(page_fail_on="content")

        result = await AlibabaScraper(make_service()).scrape_product(ALIBABA_URL)

        assert not result.success
        assert "Execution context was destroyed" in result.error
        assert_released(playwright)

    @pytest.mark.asyncio
    async def test_ebay_title_error_is_failed_result(self, install_playwright):
        playwright = install_playwright(page_fail_on="title")

        result = await EbayScraper(make_service()).scrape_product(EBAY_URL)

        assert not result.success
        assert result.error.startswith("Could not load eBay page")
        assert_released(playwright)
