"""Database URL handling for the API and for migrations."""

import pytest

from otakusensei.config import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@db:5432/otaku", "postgresql://u:p@db:5432/otaku"),
        ("postgresql://u:p@db:5432/otaku", "postgresql://u:p@db:5432/otaku"),
        ("postgresql+asyncpg://u:p@db:5432/otaku", "postgresql://u:p@db:5432/otaku"),
        ("sqlite+aiosqlite:///otaku.db", "sqlite:///otaku.db"),
    ],
)
def test_sync_database_url(raw, expected):
    assert Settings(database_url=raw).sync_database_url == expected


def test_async_database_url_adds_driver():
    settings = Settings(database_url="postgresql://u:p@db:5432/otaku")

    assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/otaku"
