"""Сервис управления Playwright-браузером.

Каждый headless-скрапинг получает собственную изолированную сессию:
отдельный процесс Chromium, контекст со stealth-настройками и страницу.
Сессия открывается через асинхронный контекстный менеджер session()
и закрывается на любом пути выхода: успех, ошибка разбора, таймаут
навигации, отмена задачи.
"""

import asyncio
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from bookbright.config import BrowserSettings, get_logger

logger = get_logger("browser_service")

# Список User-Agent для ротации при каждом запуске
USER_AGENTS: list[str] = [
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/123.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
]

# JavaScript для сокрытия признаков автоматизации
STEALTH_SCRIPT: str = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => false,
    });

    window.chrome = {
        runtime: {
            onConnect: null,
            onMessage: null
        }
    };

    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en', 'nb']
    });
"""

# Аргументы запуска Chromium для антидетекта
BROWSER_ARGS: list[str] = [
    "--disable-blink-features=AutomationControlled",
    "--exclude-switches=enable-automation",
    "--disable-extensions",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-default-apps",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-first-run",
    "--password-store=basic",
    "--use-mock-keychain",
]


class BrowserError(Exception):
    """Браузер не запустился или страница не загрузилась."""


class BrowserSession:
    """Открытая страница одной headless-сессии.

    Создаётся только внутри BrowserService.session(); за пределами
    блока async with страница уже закрыта.
    """

    def __init__(self, page: Page, settings: BrowserSettings) -> None:
        self._page = page
        self._settings = settings

    async def navigate(self, url: str) -> None:
        """Переходит по URL и ждёт отрисовки карточки товара.

        Raises:
            BrowserError: Таймаут навигации или сетевая ошибка.
        """
        delay = random.uniform(0.5, 1.5)
        logger.info("navigation_started", url=url, delay=round(delay, 1))
        await asyncio.sleep(delay)

        try:
            await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self._settings.navigation_timeout,
            )
        except PlaywrightError as e:
            logger.warning("navigation_failed", url=url, error=str(e))
            raise BrowserError(f"Navigation failed: {e}") from e

        await self.wait()
        logger.info("navigation_success", url=url, current_url=self._page.url)

    async def scroll(self) -> None:
        """Прокручивает страницу, чтобы догрузились ленивые изображения."""
        try:
            for fraction in (4, 2, 1):
                await self._page.evaluate(
                    f"window.scrollTo(0, document.body.scrollHeight / {fraction})"
                )
                await asyncio.sleep(random.uniform(0.3, 0.8))
            await self._page.evaluate("window.scrollTo(0, 0)")
        except PlaywrightError as e:
            logger.warning("page_scroll_failed", error=str(e))

    async def wait(self, milliseconds: int | None = None) -> None:
        """Ожидает указанное время (по умолчанию PAGE_WAIT_TIME).

        Raises:
            BrowserError: Страница закрылась или упала во время ожидания.
        """
        wait_ms = milliseconds or self._settings.page_wait_time
        try:
            await self._page.wait_for_timeout(wait_ms)
        except PlaywrightError as e:
            raise BrowserError(f"Page wait failed: {e}") from e

    async def content(self) -> str:
        """HTML страницы.

        Raises:
            BrowserError: Контекст выполнения уничтожен или страница упала.
        """
        try:
            return await self._page.content()
        except PlaywrightError as e:
            logger.warning("page_content_failed", url=self._page.url, error=str(e))
            raise BrowserError(f"Could not read page content: {e}") from e

    async def title(self) -> str:
        try:
            return await self._page.title()
        except PlaywrightError as e:
            logger.warning("page_title_failed", url=self._page.url, error=str(e))
            raise BrowserError(f"Could not read page title: {e}") from e

    @property
    def url(self) -> str:
        return self._page.url


class BrowserService:
    """Фабрика изолированных браузерных сессий со stealth-режимом.

    Сервис не хранит браузер между вызовами: параллельные скрапинги
    не делят ни процесс, ни cookies.

    Attributes:
        _settings: Настройки браузера из конфигурации.
    """

    def __init__(self, settings: BrowserSettings) -> None:
        self._settings = settings

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        """Открывает браузер, контекст и страницу на время блока async with.

        Yields:
            BrowserSession с готовой страницей.

        Raises:
            BrowserError: Если браузер не удалось запустить.
        """
        playwright: Playwright | None = None
        browser: Browser | None = None
        context: BrowserContext | None = None

        try:
            try:
                playwright = await async_playwright().start()
                browser = await playwright.chromium.launch(
                    headless=self._settings.headless,
                    args=BROWSER_ARGS,
                )
                context = await browser.new_context(
                    user_agent=random.choice(USER_AGENTS),
                    viewport={
                        "width": random.randint(1280, 1920),
                        "height": random.randint(800, 1080),
                    },
                    locale="en-US",
                    timezone_id="Europe/Oslo",
                    color_scheme="light",
                    extra_http_headers={
                        "Accept-Language": "en-US,en;q=0.9,nb;q=0.8",
                    },
                )
                context.set_default_timeout(self._settings.navigation_timeout)
                context.set_default_navigation_timeout(
                    self._settings.navigation_timeout
                )
                page = await context.new_page()
                await page.add_init_script(STEALTH_SCRIPT)
            except PlaywrightError as e:
                logger.error("browser_launch_failed", exc_info=True, error=str(e))
                raise BrowserError(f"Could not launch browser: {e}") from e

            logger.info("browser_session_opened", headless=self._settings.headless)
            yield BrowserSession(page, self._settings)

        finally:
            await self._close(context, browser, playwright)

    @staticmethod
    async def _close(
        context: BrowserContext | None,
        browser: Browser | None,
        playwright: Playwright | None,
    ) -> None:
        """Закрывает контекст, браузер и Playwright в правильном порядке.

        Ошибки закрытия логируются и не маскируют исходное исключение.
        """
        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        except PlaywrightError as e:
            logger.warning("browser_close_error", error=str(e))
        finally:
            if playwright is not None:
                await playwright.stop()
            logger.info("browser_session_closed")
