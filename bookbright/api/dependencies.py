"""Зависимости FastAPI: контейнер сервисов и проверка администратора."""

from fastapi import Header, Request

from bookbright.container import Container


def get_container(request: Request) -> Container:
    return request.app.state.container


def bearer_token(authorization: str | None) -> str | None:
    """Токен из заголовка "Authorization: Bearer <token>"."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_admin(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str:
    """Пропускает только администраторов.

    Выполняется до разбора логики маршрута: AuthenticationError (401)
    и AuthorizationError (403) превращаются в JSON обработчиком ошибок.
    """
    container = get_container(request)
    return container.authorizer.authorize(bearer_token(authorization))
