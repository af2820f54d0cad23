"""Пакет утилит и вспомогательных инструментов.

Предоставляет переиспользуемые компоненты:
    from bookbright.utils import async_retry, improve_title, safe_query
"""

from bookbright.utils.retry import async_retry, retry_call
from bookbright.utils.safe_query import safe_query
from bookbright.utils.titles import improve_title

__all__ = [
    "async_retry",
    "improve_title",
    "retry_call",
    "safe_query",
]
