"""Пакет сервисов бизнес-логики.

Сервисы подключаются напрямую из модулей, например:
    from bookbright.services.import_service import ImportService
"""
