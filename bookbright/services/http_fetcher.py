"""Лёгкая загрузка HTML-страниц поставщиков через aiohttp.

Используется для страниц, где данные товара встроены в HTML и
браузер не нужен (Temu). Сетевые ошибки и ответы 5xx повторяются
с экспоненциальной задержкой, ответы 4xx не повторяются.
"""

import random

import aiohttp

from bookbright.config import HttpSettings, get_logger
from bookbright.scrapers.parsing import is_blocked_page, make_soup
from bookbright.services.browser_service import USER_AGENTS
from bookbright.utils import async_retry

logger = get_logger("http_fetcher")

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": (
        "text/html,application/xhtml+xml,"
        "application/xml;q=0.9,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9,nb;q=0.8",
}


class FetchError(Exception):
    """Страницу не удалось получить.

    Attributes:
        status: HTTP-статус ответа (None для сетевых ошибок).
        retryable: Имеет ли смысл повторять запрос.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class _RetryableFetchError(FetchError):
    """Внутренний тип для ответов 5xx, которые стоит повторить."""


class HtmlFetcher:
    """Загружает HTML страницы с повторами и проверкой блокировки.

    Attributes:
        _settings: Настройки HTTP (таймаут, попытки, задержка).
        _session: Общая aiohttp-сессия для переиспользования соединений.
    """

    def __init__(self, settings: HttpSettings) -> None:
        self._settings = settings
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.timeout),
                headers=DEFAULT_HEADERS,
            )
        return self._session

    async def fetch(self, url: str) -> str:
        """Загружает страницу и возвращает её HTML.

        Args:
            url: Нормализованный URL страницы.

        Returns:
            HTML страницы.

        Raises:
            FetchError: Ответ 4xx, исчерпаны попытки для 5xx и сетевых
                ошибок, либо вместо товара пришла страница антибота.
        """

        @async_retry(
            max_retries=self._settings.max_retries,
            delay=self._settings.retry_delay,
            backoff_factor=2.0,
            exceptions=(aiohttp.ClientError, TimeoutError, _RetryableFetchError),
        )
        async def _do_fetch() -> tuple[str, str]:
            session = await self._get_session()
            headers = {"User-Agent": random.choice(USER_AGENTS)}
            async with session.get(url, headers=headers) as response:
                if response.status >= 500:
                    raise _RetryableFetchError(
                        f"HTTP {response.status}",
                        status=response.status,
                        retryable=True,
                    )
                if response.status >= 400:
                    raise FetchError(
                        f"HTTP {response.status}", status=response.status
                    )
                return await response.text(), str(response.url)

        try:
            html, final_url = await _do_fetch()
        except FetchError:
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            raise FetchError(f"Network error: {e}", retryable=True) from e

        title_tag = make_soup(html).title
        title = title_tag.get_text(strip=True) if title_tag else ""
        if is_blocked_page(title, final_url):
            logger.warning("page_blocked", url=url, final_url=final_url)
            raise FetchError("Blocked by anti-bot protection")

        logger.debug("page_fetched", url=url, length=len(html))
        return html

    async def close(self) -> None:
        """Закрывает aiohttp-сессию."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.info("http_session_closed")
