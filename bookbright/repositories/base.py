"""Абстрактные репозитории товаров и заказов.

Определяют контракт, которому должна соответствовать любая
реализация хранилища. Сервисы зависят от этих абстракций,
а не от SQLite (Dependency Inversion).
"""

from abc import ABC, abstractmethod

from bookbright.models import (
    ImportedProduct,
    Order,
    StoredProduct,
    SupplierOrderStatus,
)


class BaseProductRepository(ABC):
    """Хранилище товаров витрины и их вариантов."""

    @abstractmethod
    def initialize(self) -> None:
        """Создаёт таблицы и индексы. Вызывается один раз при старте."""

    @abstractmethod
    def find_product_by_supplier_url(self, supplier_url: str) -> StoredProduct | None:
        """Ищет товар по нормализованному URL поставщика.

        Args:
            supplier_url: Нормализованный URL - ключ идентичности товара.

        Returns:
            Найденный товар или None.
        """

    @abstractmethod
    def create_product(
        self, product: ImportedProduct, slug: str, sku: str
    ) -> StoredProduct:
        """Сохраняет товар вместе с вариантами в одной транзакции.

        Args:
            product: Нормализованный товар (минимум один вариант).
            slug: Уникальный slug для URL витрины.
            sku: Уникальный артикул; варианты получают sku-V<n>.

        Returns:
            Сохранённый товар.

        Raises:
            ValueError: Если у товара нет вариантов.
            RuntimeError: Ошибка базы данных (транзакция откатывается).
        """

    @abstractmethod
    def get_product(self, product_id: str) -> StoredProduct | None:
        """Возвращает товар с вариантами по ID."""

    @abstractmethod
    def find_hero_product(self) -> StoredProduct | None:
        """Активный товар с флагом is_hero."""

    @abstractmethod
    def find_newest_product(self) -> StoredProduct | None:
        """Последний созданный активный товар."""

    @abstractmethod
    def set_hero_product(self, product_id: str) -> None:
        """Делает товар единственным hero-товаром витрины."""

    @abstractmethod
    def count_products(self) -> int:
        """Количество товаров в хранилище."""

    @abstractmethod
    def close(self) -> None:
        """Закрывает соединение с хранилищем."""


class BaseOrderRepository(ABC):
    """Хранилище заказов и их позиций."""

    @abstractmethod
    def create_order(self, order: Order) -> None:
        """Сохраняет заказ с позициями (создание заказа - вне конвейера)."""

    @abstractmethod
    def get_order(self, order_id: str) -> Order | None:
        """Возвращает заказ с позициями и данными поставщика товаров."""

    @abstractmethod
    def update_supplier_status(
        self,
        order_id: str,
        status: SupplierOrderStatus,
        supplier_order_id: str | None = None,
    ) -> None:
        """Записывает статус заказа у поставщика.

        Args:
            order_id: ID заказа.
            status: Новый статус.
            supplier_order_id: Номер заказа у поставщика, если выдан.
        """
