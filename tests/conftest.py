"""测试夹具：为 pytest 提供数据库、客户端与令牌的共享配置。"""

import itertools
import os
import tempfile
from typing import Generator

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用之前设置：配置对象在首次导入时被缓存
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("OWNER_LOCK_BACKEND", "memory")
os.environ.setdefault("CONTENT_STORAGE_TYPE", "none")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "drive-test-logs"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.drive.core.dependencies import get_db  # noqa: E402
from app.packages.drive.core.security import create_access_token  # noqa: E402
from app.packages.drive.db import session as db_session  # noqa: E402
from app.packages.drive.db.init_db import init_db  # noqa: E402
from app.packages.drive.models.base import Base  # noqa: E402
from app.packages.drive.services.content_storage import ContentStorage  # noqa: E402
from app.packages.drive.services.trash_service import trash_service  # noqa: E402

_owner_ids = itertools.count(1000)


class RecordingContentStorage(ContentStorage):
    """记录被释放的存储键；``failing`` 中的键会抛出异常。"""

    def __init__(self, failing=()):
        self.released: list[str] = []
        self.failing = set(failing)

    def release(self, storage_key: str) -> bool:
        if storage_key in self.failing:
            raise OSError(f"cannot release {storage_key}")
        self.released.append(storage_key)
        return True


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def owner_id() -> int:
    """每个用例使用独立的用户，互不干扰。"""
    return next(_owner_ids)


@pytest.fixture()
def content_storage() -> Generator[RecordingContentStorage, None, None]:
    storage = RecordingContentStorage()
    previous = trash_service._content_storage
    trash_service.content_storage = storage
    yield storage
    trash_service.content_storage = previous


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(owner_id: int) -> dict[str, str]:
    token = create_access_token({"owner_id": owner_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers(owner_id: int) -> dict[str, str]:
    return auth_headers(owner_id)


@pytest.fixture()
def make_headers():
    """按用户签发令牌并返回请求头，便于在同一用例中模拟多个用户。"""
    return auth_headers
