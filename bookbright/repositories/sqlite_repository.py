"""SQLite-реализация репозиториев товаров и заказов.

Таблицы: products, product_variants, orders, order_items.
Списки и словари (изображения, теги, атрибуты) хранятся как JSON.
Товар и его варианты создаются одной транзакцией.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from bookbright.config import get_logger
from bookbright.models import (
    ImportedProduct,
    Order,
    OrderItem,
    StoredProduct,
    StoredVariant,
    SupplierOrderStatus,
    SupplierSource,
)
from bookbright.repositories.base import BaseOrderRepository, BaseProductRepository

logger = get_logger("sqlite_repository")

_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS products (
        id                TEXT PRIMARY KEY,
        name              TEXT NOT NULL,
        slug              TEXT NOT NULL UNIQUE,
        sku               TEXT NOT NULL UNIQUE,
        price             INTEGER NOT NULL,
        compare_at_price  INTEGER,
        supplier_price    INTEGER,
        description       TEXT DEFAULT '',
        short_description TEXT DEFAULT '',
        category          TEXT NOT NULL,
        images            TEXT NOT NULL DEFAULT '[]',
        tags              TEXT NOT NULL DEFAULT '[]',
        supplier_name     TEXT,
        supplier_url      TEXT,
        stock             INTEGER NOT NULL DEFAULT 0,
        is_active         INTEGER NOT NULL DEFAULT 1,
        is_hero           INTEGER NOT NULL DEFAULT 0,
        created_at        TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS product_variants (
        id                TEXT PRIMARY KEY,
        product_id        TEXT NOT NULL REFERENCES products (id) ON DELETE CASCADE,
        name              TEXT NOT NULL,
        sku               TEXT NOT NULL,
        price             INTEGER NOT NULL,
        compare_at_price  INTEGER,
        supplier_price    INTEGER NOT NULL,
        image             TEXT,
        attributes        TEXT NOT NULL DEFAULT '{}',
        stock             INTEGER NOT NULL DEFAULT 0,
        sort_order        INTEGER NOT NULL DEFAULT 0,
        is_active         INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id                    TEXT PRIMARY KEY,
        customer_name         TEXT NOT NULL,
        customer_email        TEXT NOT NULL,
        shipping_address      TEXT NOT NULL,
        shipping_postal_code  TEXT NOT NULL,
        shipping_city         TEXT NOT NULL,
        shipping_country      TEXT NOT NULL DEFAULT 'NO',
        total                 INTEGER NOT NULL DEFAULT 0,
        supplier_order_status TEXT NOT NULL DEFAULT 'not_sent',
        supplier_order_id     TEXT,
        created_at            TEXT NOT NULL,
        updated_at            TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id            TEXT PRIMARY KEY,
        order_id      TEXT NOT NULL REFERENCES orders (id) ON DELETE CASCADE,
        product_id    TEXT NOT NULL,
        quantity      INTEGER NOT NULL,
        unit_price    INTEGER NOT NULL,
        product_name  TEXT DEFAULT '',
        variant_name  TEXT,
        position      INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_products_supplier_url ON products (supplier_url)",
    "CREATE INDEX IF NOT EXISTS idx_variants_product ON product_variants (product_id)",
    "CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items (order_id)",
)

# Товар показывается на витрине, только если есть остаток у него
# самого или хотя бы у одного активного варианта.
_IN_STOCK = (
    "(p.stock > 0 OR EXISTS (SELECT 1 FROM product_variants v "
    "WHERE v.product_id = p.id AND v.is_active = 1 AND v.stock > 0))"
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class SQLiteStoreRepository(BaseProductRepository, BaseOrderRepository):
    """Репозиторий товаров и заказов на базе SQLite.

    Attributes:
        _db_path: Путь к файлу базы данных.
        _connection: Активное соединение с SQLite.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._connection: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Возвращает активное соединение, создавая его при первом вызове.

        Raises:
            RuntimeError: Если не удалось установить соединение.
        """
        if self._connection is None:
            try:
                if self._db_path != ":memory:":
                    Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

                # API обслуживает запросы из потоков пула, поэтому
                # соединение не привязано к создавшему его потоку.
                self._connection = sqlite3.connect(
                    self._db_path, check_same_thread=False
                )
                self._connection.row_factory = sqlite3.Row
                self._connection.execute("PRAGMA journal_mode=WAL")
                self._connection.execute("PRAGMA foreign_keys=ON")

                logger.info("database_connected", db_path=self._db_path)
            except sqlite3.Error as e:
                logger.error(
                    "database_connection_failed",
                    exc_info=True,
                    db_path=self._db_path,
                    error=str(e),
                )
                raise RuntimeError(
                    f"Не удалось подключиться к БД: {self._db_path}"
                ) from e
        return self._connection

    def initialize(self) -> None:
        """Создаёт таблицы и индексы, если они ещё не существуют."""
        conn = self._get_connection()
        try:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
            logger.info("database_initialized", db_path=self._db_path)
        except sqlite3.Error as e:
            logger.error("database_init_failed", exc_info=True, error=str(e))
            raise RuntimeError("Не удалось инициализировать таблицы БД") from e

    @staticmethod
    def _deserialize_datetime(value: str) -> datetime:
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    # Товары

    def _row_to_variant(self, row: sqlite3.Row) -> StoredVariant:
        return StoredVariant(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            supplier_price=row["supplier_price"],
            stock=row["stock"],
            attributes=json.loads(row["attributes"] or "{}"),
            compare_at_price=row["compare_at_price"],
            image=row["image"],
            sort_order=row["sort_order"],
            is_active=bool(row["is_active"]),
        )

    def _row_to_product(self, row: sqlite3.Row) -> StoredProduct:
        conn = self._get_connection()
        variant_rows = conn.execute(
            "SELECT * FROM product_variants WHERE product_id = ? "
            "ORDER BY sort_order",
            (row["id"],),
        ).fetchall()

        return StoredProduct(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            sku=row["sku"],
            price=row["price"],
            compare_at_price=row["compare_at_price"],
            supplier_price=row["supplier_price"],
            description=row["description"],
            short_description=row["short_description"],
            category=row["category"],
            images=json.loads(row["images"] or "[]"),
            tags=json.loads(row["tags"] or "[]"),
            supplier_name=SupplierSource.parse(row["supplier_name"]),
            supplier_url=row["supplier_url"],
            stock=row["stock"],
            is_active=bool(row["is_active"]),
            is_hero=bool(row["is_hero"]),
            created_at=self._deserialize_datetime(row["created_at"]),
            variants=[self._row_to_variant(v) for v in variant_rows],
        )

    def _fetch_one_product(self, query: str, params: tuple = ()) -> StoredProduct | None:
        conn = self._get_connection()
        try:
            row = conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            logger.error("product_query_failed", exc_info=True, error=str(e))
            raise RuntimeError("Ошибка чтения товара из БД") from e
        return self._row_to_product(row) if row is not None else None

    def find_product_by_supplier_url(self, supplier_url: str) -> StoredProduct | None:
        return self._fetch_one_product(
            "SELECT * FROM products WHERE supplier_url = ? LIMIT 1",
            (supplier_url,),
        )

    def create_product(
        self, product: ImportedProduct, slug: str, sku: str
    ) -> StoredProduct:
        if not product.variants:
            raise ValueError("Товар должен содержать хотя бы один вариант")

        conn = self._get_connection()
        product_id = _new_id()
        created_at = _now().isoformat()
        total_stock = sum(v.stock for v in product.variants)

        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO products (
                        id, name, slug, sku, price, compare_at_price,
                        supplier_price, description, short_description,
                        category, images, tags, supplier_name, supplier_url,
                        stock, is_active, is_hero, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, 0, ?)
                    """,
                    (
                        product_id,
                        product.name,
                        slug,
                        sku,
                        product.price,
                        product.compare_at_price,
                        product.supplier_price,
                        product.description or product.short_description,
                        product.short_description,
                        product.category,
                        json.dumps(product.images, ensure_ascii=False),
                        json.dumps(product.tags, ensure_ascii=False),
                        product.supplier.value,
                        product.supplier_url,
                        total_stock,
                        created_at,
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO product_variants (
                        id, product_id, name, sku, price, compare_at_price,
                        supplier_price, image, attributes, stock, sort_order
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            _new_id(),
                            product_id,
                            variant.name,
                            f"{sku}-V{index + 1}",
                            variant.price,
                            variant.compare_at_price,
                            variant.supplier_price,
                            variant.image,
                            json.dumps(variant.attributes, ensure_ascii=False),
                            variant.stock,
                            index,
                        )
                        for index, variant in enumerate(product.variants)
                    ],
                )
        except sqlite3.Error as e:
            logger.error(
                "product_create_failed",
                exc_info=True,
                supplier_url=product.supplier_url,
                error=str(e),
            )
            raise RuntimeError("Не удалось сохранить товар в БД") from e

        logger.info(
            "product_created",
            product_id=product_id,
            sku=sku,
            variants=len(product.variants),
        )
        stored = self.get_product(product_id)
        assert stored is not None
        return stored

    def get_product(self, product_id: str) -> StoredProduct | None:
        return self._fetch_one_product(
            "SELECT * FROM products WHERE id = ?", (product_id,)
        )

    def find_hero_product(self) -> StoredProduct | None:
        return self._fetch_one_product(
            "SELECT * FROM products p WHERE p.is_hero = 1 AND p.is_active = 1 "
            f"AND {_IN_STOCK} ORDER BY p.created_at DESC LIMIT 1"
        )

    def find_newest_product(self) -> StoredProduct | None:
        return self._fetch_one_product(
            "SELECT * FROM products p WHERE p.is_active = 1 "
            f"AND {_IN_STOCK} ORDER BY p.created_at DESC LIMIT 1"
        )

    def set_hero_product(self, product_id: str) -> None:
        conn = self._get_connection()
        try:
            with conn:
                exists = conn.execute(
                    "SELECT 1 FROM products WHERE id = ?", (product_id,)
                ).fetchone()
                if exists is None:
                    raise ValueError(f"Товар {product_id} не найден")
                conn.execute("UPDATE products SET is_hero = 0 WHERE is_hero = 1")
                conn.execute(
                    "UPDATE products SET is_hero = 1 WHERE id = ?", (product_id,)
                )
        except sqlite3.Error as e:
            logger.error("hero_update_failed", exc_info=True, error=str(e))
            raise RuntimeError("Не удалось обновить hero-товар") from e
        logger.info("hero_product_set", product_id=product_id)

    def count_products(self) -> int:
        row = self._get_connection().execute(
            "SELECT COUNT(*) AS cnt FROM products"
        ).fetchone()
        return row["cnt"]

    # Заказы

    def create_order(self, order: Order) -> None:
        conn = self._get_connection()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO orders (
                        id, customer_name, customer_email, shipping_address,
                        shipping_postal_code, shipping_city, shipping_country,
                        total, supplier_order_status, supplier_order_id,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        order.id,
                        order.customer_name,
                        order.customer_email,
                        order.shipping_address,
                        order.shipping_postal_code,
                        order.shipping_city,
                        order.shipping_country,
                        order.total,
                        order.supplier_order_status.value,
                        order.supplier_order_id,
                        order.created_at.isoformat(),
                        order.updated_at.isoformat(),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO order_items (
                        id, order_id, product_id, quantity, unit_price,
                        product_name, variant_name, position
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            item.id,
                            order.id,
                            item.product_id,
                            item.quantity,
                            item.unit_price,
                            item.product_name,
                            item.variant_name,
                            position,
                        )
                        for position, item in enumerate(order.items)
                    ],
                )
        except sqlite3.Error as e:
            logger.error("order_create_failed", exc_info=True, error=str(e))
            raise RuntimeError("Не удалось сохранить заказ в БД") from e

    def get_order(self, order_id: str) -> Order | None:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
        if row is None:
            return None

        item_rows = conn.execute(
            """
            SELECT oi.*, p.supplier_name, p.supplier_url,
                   COALESCE(NULLIF(oi.product_name, ''), p.name, '') AS display_name
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id = ?
            ORDER BY oi.position
            """,
            (order_id,),
        ).fetchall()

        items = [
            OrderItem(
                id=item["id"],
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                product_name=item["display_name"],
                variant_name=item["variant_name"],
                supplier_name=SupplierSource.parse(item["supplier_name"]),
                supplier_url=item["supplier_url"],
            )
            for item in item_rows
        ]

        return Order(
            id=row["id"],
            customer_name=row["customer_name"],
            customer_email=row["customer_email"],
            shipping_address=row["shipping_address"],
            shipping_postal_code=row["shipping_postal_code"],
            shipping_city=row["shipping_city"],
            shipping_country=row["shipping_country"],
            total=row["total"],
            items=items,
            supplier_order_status=SupplierOrderStatus(row["supplier_order_status"]),
            supplier_order_id=row["supplier_order_id"],
            created_at=self._deserialize_datetime(row["created_at"]),
            updated_at=self._deserialize_datetime(row["updated_at"]),
        )

    def update_supplier_status(
        self,
        order_id: str,
        status: SupplierOrderStatus,
        supplier_order_id: str | None = None,
    ) -> None:
        conn = self._get_connection()
        try:
            with conn:
                conn.execute(
                    """
                    UPDATE orders
                    SET supplier_order_status = ?,
                        supplier_order_id = COALESCE(?, supplier_order_id),
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (status.value, supplier_order_id, _now().isoformat(), order_id),
                )
        except sqlite3.Error as e:
            logger.error(
                "order_status_update_failed",
                exc_info=True,
                order_id=order_id,
                error=str(e),
            )
            raise RuntimeError("Не удалось обновить статус заказа") from e

        logger.info(
            "order_supplier_status_updated",
            order_id=order_id,
            status=status.value,
            supplier_order_id=supplier_order_id,
        )

    def close(self) -> None:
        """Закрывает соединение с базой данных."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("database_closed")
