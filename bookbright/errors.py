"""Иерархия исключений сервиса.

Каждое исключение несёт HTTP-статус, с которым его отдаёт API,
и необязательную подсказку (hint) для администратора. Сообщения
исключений - пользовательские: они попадают в поле "error" ответа.
"""


class BookBrightError(Exception):
    """Базовое исключение конвейера импорта и отправки заказов."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        supplier: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.supplier = supplier

    def to_dict(self) -> dict[str, str]:
        """Тело JSON-ответа об ошибке (без стек-трейса)."""
        body: dict[str, str] = {"error": self.message}
        if self.supplier:
            body["supplier"] = self.supplier
        if self.hint:
            body["hint"] = self.hint
        return body


class ImportValidationError(BookBrightError):
    """URL отсутствует, некорректен или не совпадает с указанным провайдером."""

    status_code = 400


class UnsupportedSupplierError(BookBrightError):
    """URL не принадлежит ни одному из поддерживаемых поставщиков."""

    status_code = 400


class ProviderFetchError(BookBrightError):
    """Скрапер вернул неуспешный результат; провайдер превращает его в исключение."""

    status_code = 500


class ImportTimeoutError(ProviderFetchError):
    """Провайдер не уложился в отведённое время."""


class OrderNotFoundError(BookBrightError):
    """Заказ не найден или не содержит позиций."""

    status_code = 404


class SupplierApiError(BookBrightError):
    """API поставщика недоступно или отклонило запрос."""

    status_code = 502


class SupplierDispatchError(BookBrightError):
    """Не удалось отправить заказ поставщику."""

    status_code = 500


class ImageValidationError(BookBrightError):
    """Пачка изображений не прошла проверку (количество, тип, размер)."""

    status_code = 400


class ImageUploadError(BookBrightError):
    """Хостинг изображений вернул ошибку при загрузке."""

    status_code = 500


class ImageHostNotConfiguredError(BookBrightError):
    """Реквизиты хостинга изображений не заданы."""

    status_code = 500


class AuthenticationError(BookBrightError):
    """Запрос без валидной сессии."""

    status_code = 401


class AuthorizationError(BookBrightError):
    """Сессия валидна, но пользователь не администратор."""

    status_code = 403
