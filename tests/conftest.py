"""Test fixtures — async test client, test database, fake collaborators, factories."""
import os

os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.database import Base
from app.api.deps import get_db, get_file_storage, get_notifier
from app.core.exceptions import NotificationError, StorageError
from app.main import app
from app.models.user_model import User
from app.services.notification_service import DecisionEvent
from app.services.storage_service import LocalFileStorage, UploadedBlob


TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"
API_KEY = os.environ["API_KEY"]
ADMIN_HEADERS = {"X-API-Key": API_KEY}
IDENTITY_HEADER = "X-Authenticated-Email"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class RecordingNotifier:
    """Collects published decisions."""

    def __init__(self):
        self.events: List[DecisionEvent] = []

    async def publish_decision(self, event: DecisionEvent) -> None:
        self.events.append(event)


class FailingNotifier(RecordingNotifier):
    async def publish_decision(self, event: DecisionEvent) -> None:
        self.events.append(event)
        raise NotificationError("mail relay is down")


class FlakyStorage(LocalFileStorage):
    """Local storage that fails on the Nth store and remembers deletions."""

    def __init__(self, root, fail_on: int = 2, fail_delete: bool = False):
        super().__init__(root)
        self.fail_on = fail_on
        self.fail_delete = fail_delete
        self.calls = 0
        self.stored: List[str] = []
        self.deleted: List[str] = []

    async def store(self, blob: UploadedBlob) -> str:
        self.calls += 1
        if self.calls == self.fail_on:
            raise StorageError("disk full")
        path = await super().store(blob)
        self.stored.append(path)
        return path

    async def delete(self, path: str) -> bool:
        self.deleted.append(path)
        if self.fail_delete:
            raise StorageError("permission denied")
        return await super().delete(path)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables and yield a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(
        tmp_path / "uploads",
        url_prefix="/uploads",
        max_bytes=1024 * 1024,
        allowed_extensions=[".jpg", ".jpeg", ".png", ".pdf"],
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    storage: LocalFileStorage,
    notifier: RecordingNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an HTTP test client with the test DB and fake collaborators injected."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, email: str, name: str, role: str = "agent") -> User:
    user = User(email=email, name=name, role=role)
    db.add(user)
    await db.commit()
    return user


def make_submission_fields(**overrides) -> dict:
    """Valid multipart form fields for POST /api/v1/listings/submit."""
    defaults = {
        "title": "Sunny Flat",
        "description": "Bright two-bedroom flat close to the river.",
        "address": "12 Rua das Flores, Lisboa",
        "price": "250000",
        "category": "sale",
        "house_type": "apartment",
        "bedrooms": "2",
        "bathrooms": "1",
        "area_sq_ft": "850",
        "owner_name": "Ana Silva",
        "owner_phone": "+351 910 000 000",
        "owner_email": "ana@example.com",
        "drive_link": "https://drive.google.com/file/d/abc123/view",
    }
    defaults.update(overrides)
    return {k: v for k, v in defaults.items() if v is not None}


def make_listing_payload(**overrides) -> dict:
    """Valid JSON payload for direct (admin) creation."""
    defaults = {
        "title": "Townhouse with garden",
        "description": "Three floors, private garden.",
        "address": "4 Avenida da Liberdade, Lisboa",
        "price": 480000.00,
        "category": "sale",
        "house_type": "townhouse",
        "bedrooms": 3,
        "bathrooms": 2,
        "area_sq_ft": 1600.0,
        "facilities": ["garden", "parking"],
    }
    defaults.update(overrides)
    return defaults
