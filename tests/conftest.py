import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from config import Settings
from database import BookingStore
from main import create_app


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture
async def store(tmp_path):
    """Open a booking store backed by a temporary SQLite file."""
    booking_store = BookingStore(sqlite_url(tmp_path / "bookings.db"))
    await booking_store.open()
    yield booking_store
    await booking_store.close()


@pytest.fixture
def admin_key():
    return "test-admin-key"


@pytest.fixture
def settings(tmp_path, admin_key):
    static_dir = tmp_path / "public"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<html><body>booking wizard</body></html>")
    (static_dir / "script.js").write_text("console.log('wizard');")
    return Settings(
        database_url=sqlite_url(tmp_path / "data" / "bookings.db"),
        admin_key=admin_key,
        static_dir=static_dir,
    )


@pytest.fixture
def client(settings):
    """Create FastAPI test client (runs the app lifespan)."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client
