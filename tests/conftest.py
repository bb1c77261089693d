# tests/conftest.py
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from serialtrack.api.api import api_router
from serialtrack.api.deps import get_current_user, get_db, get_file_storage
from serialtrack.core.config import settings
from serialtrack.core.security import get_password_hash
from serialtrack.db import models  # noqa: F401
from serialtrack.db.models.base import Base
from serialtrack.db.models.enums import UserRole
from serialtrack.db.models.user import User
from serialtrack.services.file_storage_service import FileStorageService
from serialtrack.services.stock_service import StockService

# In-memory SQLite database shared by every connection of the test engine
TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

API = settings.API_V1_STR


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db, email, username, role, password="secret123"):
    user = User(
        email=email,
        username=username,
        full_name=username.title(),
        hashed_password=get_password_hash(password),
        role=role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db):
    return _make_user(db, "admin@serialtrack.io", "admin", UserRole.ADMIN)


@pytest.fixture()
def regular_user(db):
    return _make_user(db, "clerk@serialtrack.io", "clerk", UserRole.USER)


@pytest.fixture()
def file_storage(tmp_path):
    return FileStorageService(str(tmp_path / "order_files"))


@pytest.fixture()
def stock_in(db):
    """Receive units into stock; returns the created inventory rows."""
    service = StockService(db)

    def _stock_in(*serials, category="Scanner", model="SX-100", size="M"):
        return [
            service.stock_in_item(
                serial_number=serial,
                equipment_category=category,
                model=model,
                size=size,
                stocked_in_by="admin@serialtrack.io",
            )
            for serial in serials
        ]

    return _stock_in


def _build_app(db, user, file_storage):
    app = FastAPI()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_file_storage] = lambda: file_storage
    app.include_router(api_router, prefix=API)
    return app


@pytest.fixture()
def client(db, admin_user, file_storage):
    """TestClient authenticated as an administrator."""
    return TestClient(_build_app(db, admin_user, file_storage))


@pytest.fixture()
def user_client(db, regular_user, file_storage):
    """TestClient authenticated as a regular user."""
    return TestClient(_build_app(db, regular_user, file_storage))
