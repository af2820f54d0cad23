"""Доступ к админ-API: сессии по bearer-токену и список администраторов.

Список email администраторов хранится во внешнем файле (по одному
на строку, строки с "#" игнорируются) и перечитывается при изменении
файла. Если файл не задан, отсутствует или не читается, администраторов
нет: доступ закрыт.
"""

import os
from pathlib import Path

from bookbright.config import get_logger
from bookbright.errors import AuthenticationError, AuthorizationError

logger = get_logger("auth_service")


class AdminPolicy:
    """Перечитываемый список email администраторов.

    Attributes:
        _path: Путь к файлу списка.
        _mtime: Время изменения файла при последнем чтении.
        _emails: Email администраторов в нижнем регистре.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path) if path else None
        self._mtime: int | None = None
        self._emails: frozenset[str] = frozenset()

    def _reload_if_changed(self) -> None:
        if self._path is None:
            self._emails = frozenset()
            return

        try:
            mtime = os.stat(self._path).st_mtime_ns
        except OSError:
            if self._emails:
                logger.warning("admin_list_missing", path=str(self._path))
            self._mtime = None
            self._emails = frozenset()
            return

        if mtime == self._mtime:
            return

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("admin_list_unreadable", path=str(self._path), error=str(e))
            self._mtime = None
            self._emails = frozenset()
            return

        self._emails = frozenset(
            line.strip().lower()
            for line in text.splitlines()
            if line.strip() and not line.strip().startswith("#")
        )
        self._mtime = mtime
        logger.info("admin_list_loaded", path=str(self._path), admins=len(self._emails))

    def is_admin(self, email: str | None) -> bool:
        """Есть ли email в списке администраторов (без учёта регистра)."""
        if not email:
            return False
        self._reload_if_changed()
        return email.strip().lower() in self._emails


class TokenSessionProvider:
    """Сессии по статическим bearer-токенам из настроек."""

    def __init__(self, tokens: dict[str, str]) -> None:
        self._tokens = dict(tokens)

    def get_email(self, token: str | None) -> str | None:
        """Email сессии или None для неизвестного токена."""
        if not token:
            return None
        return self._tokens.get(token)


class AdminAuthorizer:
    """Проверка доступа к админ-API до любой логики конвейера."""

    def __init__(self, sessions: TokenSessionProvider, policy: AdminPolicy) -> None:
        self._sessions = sessions
        self._policy = policy

    def authorize(self, token: str | None) -> str:
        """Возвращает email администратора.

        Raises:
            AuthenticationError: Токен отсутствует или неизвестен (401).
            AuthorizationError: Пользователь не администратор (403).
        """
        email = self._sessions.get_email(token)
        if email is None:
            raise AuthenticationError("Unauthorized")
        if not self._policy.is_admin(email):
            logger.warning("admin_access_denied", email=email)
            raise AuthorizationError("Forbidden")
        return email
