"""Общие фикстуры тестов."""

import pytest

from bookbright.config import DatabaseSettings, ImportSettings, Settings
from bookbright.repositories import SQLiteStoreRepository


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        imports=ImportSettings(timeout=0.5, max_concurrency=2),
        database=DatabaseSettings(db_path=str(tmp_path / "bookbright.db")),
    )


@pytest.fixture
def repository(settings):
    repo = SQLiteStoreRepository(settings.database.db_path)
    repo.initialize()
    yield repo
    repo.close()
