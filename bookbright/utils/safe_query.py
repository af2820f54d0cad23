"""Обёртка для запросов на чтение, которые не должны ронять страницу."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from bookbright.config import get_logger

logger = get_logger("safe_query")

T = TypeVar("T")


async def safe_query(
    fn: Callable[[], Awaitable[T]],
    fallback: T,
    label: str = "query",
) -> T:
    """Выполняет запрос на чтение, подменяя любой сбой значением fallback.

    Только для путей чтения (витрина, hero-товар): там пустой результат
    лучше ошибки 500. Пути записи этой обёрткой не пользуются.

    Args:
        fn: Функция без аргументов, возвращающая корутину.
        fallback: Значение, возвращаемое при ошибке.
        label: Имя запроса для логов.

    Returns:
        Результат fn() или fallback.
    """
    try:
        return await fn()
    except Exception as e:
        logger.warning(
            "safe_query_failed",
            label=label,
            error=str(e),
            error_type=type(e).__name__,
        )
        return fallback
