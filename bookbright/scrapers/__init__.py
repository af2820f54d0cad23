"""Скраперы страниц товаров поставщиков.

Модули подключаются напрямую:
    from bookbright.scrapers.temu_scraper import TemuScraper
"""
