import pytest

from videotube.db import normalize_database_url


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite+aiosqlite:///./videotube.db", "sqlite+aiosqlite:///./videotube.db"),
    ],
)
def test_normalize_database_url(raw, expected):
    assert normalize_database_url(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "mysql://u:p@db/app"])
def test_normalize_database_url_rejects_missing_or_unsupported(raw):
    with pytest.raises(ValueError):
        normalize_database_url(raw)
