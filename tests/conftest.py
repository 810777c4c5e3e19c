"""Shared test fixtures for Modelvault."""

import pytest
from httpx import ASGITransport, AsyncClient


API_KEY = "test-service-api-key"
USER_ID = "user_1"


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Create a test app with in-memory DB and a temporary object store."""
    monkeypatch.setenv("MODELVAULT_DB_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("MODELVAULT_API_KEY", API_KEY)
    monkeypatch.setenv("MODELVAULT_STORAGE_DIR", str(tmp_path / "objects"))
    monkeypatch.delenv("MODELVAULT_STRIPE_WEBHOOK_SECRET", raising=False)

    # Clear caches and singletons so new env vars take effect
    from modelvault.common.config import get_settings
    get_settings.cache_clear()

    from modelvault.deps import reset_singletons
    reset_singletons()

    from modelvault.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from modelvault.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def service_headers():
    return {"X-Modelvault-Api-Key": API_KEY}


@pytest.fixture
def user_headers():
    return {"X-Modelvault-User": USER_ID}
