"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator
from core.database import build_engine, build_session_factory
from models import Base


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """SQLite database file per test, tables created up front"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'contactflow_test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_contact_data():
    """Upstream payload where every record is valid"""
    return [
        {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
            "phone": "+44 20 7946 0000"
        },
        {
            "firstName": "Grace",
            "lastName": "Hopper",
            "email": "grace@example.com"
        }
    ]


@pytest.fixture
def mixed_contact_data():
    """One valid record, one missing lastName and email"""
    return [
        {"firstName": "A", "lastName": "B", "email": "a@b.com"},
        {"firstName": "C"}
    ]


class RefusingSessionFactory:
    """Session factory whose connections are refused, the way asyncpg fails on a closed port"""

    def __call__(self):
        return self

    async def __aenter__(self):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def refusing_session_factory():
    return RefusingSessionFactory()
