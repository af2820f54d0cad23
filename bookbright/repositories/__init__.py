"""Пакет репозиториев для хранения данных.

Предоставляет абстракции и SQLite-реализацию хранилища:
    from bookbright.repositories import SQLiteStoreRepository
"""

from bookbright.repositories.base import BaseOrderRepository, BaseProductRepository
from bookbright.repositories.sqlite_repository import SQLiteStoreRepository

__all__ = [
    "BaseOrderRepository",
    "BaseProductRepository",
    "SQLiteStoreRepository",
]
