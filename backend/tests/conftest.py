import os

# 必须在导入 linkshelf 之前设置，避免测试写入真实数据库
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from linkshelf.database import Base, get_db
from linkshelf.main import app
from linkshelf.models import User
from linkshelf.api.deps import get_metadata_resolver
from linkshelf.services.metadata import MetadataResolver
from linkshelf.utils.cache import invalidate_cache
from linkshelf.utils.security import hash_password, create_access_token


PAGES = {
    "youtube.com": """
        <html><head>
        <title>Never Gonna Give You Up</title>
        <meta property="og:site_name" content="YouTube">
        <meta property="og:description" content="Official music video">
        <meta property="og:image" content="https://i.ytimg.com/vi/x/hq.jpg">
        <link rel="icon" href="/s/favicon.ico">
        </head><body></body></html>
    """,
    "example.com": """
        <html><head><title>Example Domain</title></head><body></body></html>
    """,
    "login.example.net": """
        <html><head><title>Sign in</title></head><body></body></html>
    """,
}

# 主机 -> 重定向目标
REDIRECTS = {
    "example.org": "https://login.example.net/signin?next=/doc",
}


def fake_web(request: httpx.Request) -> httpx.Response:
    """模拟外部网站：已知主机返回固定 HTML，其余主机连接失败"""
    host = request.url.host
    if host in REDIRECTS:
        return httpx.Response(302, headers={"location": REDIRECTS[host]})
    if host.startswith("www."):
        host = host[4:]
    if host in PAGES:
        return httpx.Response(200, html=PAGES[host])
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture(autouse=True)
def clear_cache():
    invalidate_cache()
    yield
    invalidate_cache()


# ==================== 服务层（异步）====================

@pytest.fixture
async def db_session(tmp_path) -> AsyncSession:
    """每个测试独立的 SQLite 数据库"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


async def make_user(db: AsyncSession, name: str) -> str:
    user = User(email=f"{name}@test.com", username=name, password_hash="x")
    db.add(user)
    await db.commit()
    return user.id


@pytest.fixture
async def owner_id(db_session) -> str:
    return await make_user(db_session, "alice")


@pytest.fixture
async def other_id(db_session) -> str:
    return await make_user(db_session, "bob")


# ==================== API 层（TestClient）====================

@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "api.db"


@pytest.fixture
def sync_session(db_path):
    """同步会话，用于直接在数据库中准备测试数据"""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = session_factory()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db_path, sync_session):
    """FastAPI 测试客户端：数据库指向临时文件，外部网络由 fake_web 模拟"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def override_resolver():
        return MetadataResolver(check_dns=False, transport=httpx.MockTransport(fake_web))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_metadata_resolver] = override_resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def create_user_and_get_token(sync_session):
    """直接在数据库中创建用户并签发访问令牌"""
    def _create(name: str = None):
        name = name or f"user{str(uuid.uuid4())[:8]}"
        user = User(email=f"{name}@test.com", username=name, password_hash=hash_password("password123"))
        sync_session.add(user)
        sync_session.commit()
        return user.id, create_access_token(user.id)
    return _create


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
