"""
Test configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from emailwriter.config import Settings
from emailwriter.db.postgres import Database
from emailwriter.models.user import User
from emailwriter.services.crypto import CredentialCipher
from emailwriter.services.history import HistoryRecorder
from emailwriter.services.settings_store import SettingsStore

TEST_ENCRYPTION_KEY = "test-master-key-not-for-production"
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def config():
    return Settings(
        database_url=TEST_DATABASE_URL,
        secret_key="test-secret-key-for-testing-only",
        encryption_key=TEST_ENCRYPTION_KEY,
        allowed_origins="http://test",
    )


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database per test"""
    db = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def cipher():
    return CredentialCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def settings_store(database, cipher):
    return SettingsStore(database.sessionmaker, cipher)


@pytest.fixture
def history(database):
    return HistoryRecorder(database.sessionmaker)


@pytest_asyncio.fixture
async def user_id(database) -> int:
    async with database.sessionmaker() as session:
        user = User(email="writer@example.com", hashed_password="not-a-real-hash")
        session.add(user)
        await session.commit()
        return user.id
