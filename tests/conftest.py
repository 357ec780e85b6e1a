"""
Pytest 配置与共享 fixture。

数据库使用内存 SQLite（aiosqlite + StaticPool），每个测试独立建表；
图片存储指向临时目录。环境变量需在导入 app 之前设置。
"""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="quiz-storage-"))
os.environ.setdefault("PUBLIC_STORAGE_URL", "http://testserver/storage")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.db import enable_sqlite_foreign_keys, get_db
from app.core.security import create_identity_token
from app.models import Base
from app.repositories.admin_repository import add_admin_email

ADMIN_EMAIL = "admin@example.com"


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from app.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(session_factory):
    async with session_factory() as session:
        await add_admin_email(session, ADMIN_EMAIL)
    return {"Authorization": f"Bearer {create_identity_token(ADMIN_EMAIL)}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {create_identity_token('student@example.com')}"}
