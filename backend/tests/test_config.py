from warehouse.core.config import Settings, settings


def test_settings_loaded():
    assert settings.HOST == "0.0.0.0"
    assert settings.SECRET_KEY
    assert settings.ALGORITHM == "HS256"
    assert settings.CACHE_TTL_SECONDS == 300


def test_database_url():
    assert "sqlite" in settings.effective_database_url


def test_postgres_parts_override_database_url():
    s = Settings(
        SECRET_KEY="x",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        POSTGRES_HOST="db",
        POSTGRES_USER="wh",
        POSTGRES_PASSWORD="pw",
        POSTGRES_DB="stock",
    )
    assert s.effective_database_url == "postgresql+asyncpg://wh:pw@db:5432/stock"


def test_cors_origins_from_comma_list():
    s = Settings(SECRET_KEY="x", CORS_ORIGINS="http://a.test, http://b.test")
    assert s.CORS_ORIGINS == ["http://a.test", "http://b.test"]


def test_cors_origins_from_json():
    s = Settings(SECRET_KEY="x", CORS_ORIGINS='["http://a.test"]')
    assert s.CORS_ORIGINS == ["http://a.test"]
