"""Retry-декоратор для временных сбоев сетевых вызовов.

Пример использования:
    @async_retry(max_retries=3, delay=1.0, exceptions=(aiohttp.ClientError,))
    async def fetch(url: str) -> str:
        ...

Для вызовов, где параметры берутся из настроек во время выполнения,
есть функция retry_call с теми же правилами.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from bookbright.config import get_logger

logger = get_logger("retry")

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


async def retry_call(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    name: str = "",
) -> T:
    """Вызывает корутинную функцию с повторами и экспоненциальной задержкой.

    Args:
        func: Функция без аргументов, возвращающая корутину.
        max_retries: Общее число попыток (включая первую).
        delay: Начальная задержка между попытками в секундах.
        backoff_factor: Множитель задержки после каждой попытки.
        exceptions: Типы исключений, при которых делается повтор.
        name: Имя операции для логов.

    Returns:
        Результат первой успешной попытки.

    Raises:
        Последнее пойманное исключение, если все попытки исчерпаны.
        Исключения других типов пробрасываются сразу.
    """
    operation = name or getattr(func, "__name__", "call")
    current_delay = delay
    attempts = max(1, max_retries)

    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt == attempts:
                logger.error(
                    "retry_exhausted",
                    function=operation,
                    attempt=attempt,
                    max_retries=attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            logger.warning(
                "retry_attempt",
                function=operation,
                attempt=attempt,
                max_retries=attempts,
                next_delay=current_delay,
                error=str(e),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(current_delay)
            current_delay *= backoff_factor

    raise RuntimeError("unreachable")


def async_retry(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """Декоратор retry для асинхронных функций.

    Те же правила, что у retry_call, но параметры фиксируются
    в момент декорирования.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await retry_call(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                delay=delay,
                backoff_factor=backoff_factor,
                exceptions=exceptions,
                name=func.__name__,
            )

        return wrapper  # type: ignore[return-value]

    return decorator
