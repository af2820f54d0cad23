"""BookBright: импорт товаров поставщиков (Temu, Alibaba, eBay) в витрину
и отправка заказов поставщику."""

__version__ = "1.0.0"
