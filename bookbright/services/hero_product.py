"""Выбор hero-товара для главной страницы витрины.

Порядок: товар с флагом is_hero, затем самый новый активный товар,
затем пустой результат. Оба запроса идут через safe_query, поэтому
сбой хранилища не роняет главную страницу.
"""

import asyncio
from dataclasses import dataclass

from bookbright.config import get_logger
from bookbright.models import StoredProduct
from bookbright.repositories import BaseProductRepository
from bookbright.utils import safe_query

logger = get_logger("hero_product")

SOURCE_HERO = "isHero"
SOURCE_NEWEST = "newest"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class HeroProductResult:
    """Выбранный hero-товар и стратегия, которая его нашла."""

    product: StoredProduct | None
    source: str

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict() if self.product else None,
            "source": self.source,
        }


async def get_hero_product(repository: BaseProductRepository) -> HeroProductResult:
    """Возвращает hero-товар; никогда не выбрасывает исключений."""
    hero = await safe_query(
        lambda: asyncio.to_thread(repository.find_hero_product),
        None,
        label="hero_product:is_hero",
    )
    if hero is not None:
        return HeroProductResult(product=hero, source=SOURCE_HERO)

    newest = await safe_query(
        lambda: asyncio.to_thread(repository.find_newest_product),
        None,
        label="hero_product:newest",
    )
    if newest is not None:
        logger.info("hero_fallback_newest", product_id=newest.id)
        return HeroProductResult(product=newest, source=SOURCE_NEWEST)

    logger.info("hero_not_found")
    return HeroProductResult(product=None, source=SOURCE_NONE)
