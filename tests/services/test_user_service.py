# tests/services/test_user_service.py
from datetime import timedelta

import pytest

from serialtrack import schemas
from serialtrack.api.deps import SecurityContext
from serialtrack.core.exceptions import AuthenticationException, BusinessRuleException, DuplicateEntityException
from serialtrack.core.security import create_access_token, decode_token, verify_password
from serialtrack.core.utils import utc_now
from serialtrack.db.models.enums import UserRole
from serialtrack.services.user_service import UserService


def _user_in(**overrides):
    data = {
        "email": "tech@serialtrack.io",
        "username": "tech",
        "full_name": "Field Tech",
        "password": "fieldtech1",
    }
    data.update(overrides)
    return schemas.UserCreate(**data)


def test_create_user_hashes_password(db):
    user = UserService(db).create_user(_user_in())
    assert user.id is not None
    assert user.role == UserRole.USER.value
    assert user.is_active is True
    assert user.hashed_password != "fieldtech1"
    assert verify_password("fieldtech1", user.hashed_password)


def test_create_user_rejects_duplicates_and_short_passwords(db):
    service = UserService(db)
    service.create_user(_user_in())
    with pytest.raises(DuplicateEntityException):
        service.create_user(_user_in(username="other"))
    with pytest.raises(DuplicateEntityException):
        service.create_user(_user_in(email="other@serialtrack.io"))
    with pytest.raises(BusinessRuleException):
        service.create_user(_user_in(email="short@serialtrack.io", username="short", password="abc"))


def test_update_user(db, regular_user):
    service = UserService(db)
    updated = service.update_user(
        regular_user.id, schemas.UserUpdate(full_name="Senior Clerk", role=UserRole.ADMIN, password="newsecret")
    )
    assert updated.full_name == "Senior Clerk"
    assert updated.is_admin
    assert verify_password("newsecret", updated.hashed_password)


def test_update_user_email_conflict(db, admin_user, regular_user):
    with pytest.raises(DuplicateEntityException):
        UserService(db).update_user(regular_user.id, schemas.UserUpdate(email=admin_user.email))


def test_authenticate_by_email_or_username(db, regular_user):
    service = UserService(db)
    assert service.authenticate_user("clerk@serialtrack.io", "secret123").id == regular_user.id
    assert service.authenticate_user("clerk", "secret123").id == regular_user.id
    assert service.authenticate_user("clerk", "wrong") is None
    assert service.authenticate_user("nobody", "secret123") is None
    db.refresh(regular_user)
    assert regular_user.last_login is not None


def test_tokens_and_refresh(db, regular_user):
    service = UserService(db)
    tokens = service.create_tokens(regular_user)
    assert tokens["token_type"] == "bearer"
    assert decode_token(tokens["access_token"])["type"] == "access"

    refreshed = service.refresh_token(tokens["refresh_token"])
    assert decode_token(refreshed["access_token"])["sub"] == str(regular_user.id)

    with pytest.raises(AuthenticationException):
        service.refresh_token(tokens["access_token"])
    with pytest.raises(AuthenticationException):
        service.refresh_token("not-a-token")


def test_refresh_rejected_for_inactive_user(db, regular_user):
    service = UserService(db)
    refresh = service.create_tokens(regular_user)["refresh_token"]
    service.update_user(regular_user.id, schemas.UserUpdate(is_active=False))
    with pytest.raises(AuthenticationException):
        service.refresh_token(refresh)


def test_change_password(db, regular_user):
    service = UserService(db)
    with pytest.raises(AuthenticationException):
        service.change_password(regular_user.id, "wrong", "another1")
    with pytest.raises(BusinessRuleException):
        service.change_password(regular_user.id, "secret123", "secret123")
    assert service.change_password(regular_user.id, "secret123", "another1") is True
    assert service.authenticate_user("clerk", "another1") is not None


def test_delete_user_guards_self(db, admin_user, regular_user):
    service = UserService(db, security_context=SecurityContext(admin_user))
    with pytest.raises(BusinessRuleException):
        service.delete_user(admin_user.id)
    service.delete_user(regular_user.id)
    assert service.get_by_email("clerk@serialtrack.io") is None


def test_user_statistics(db, admin_user, regular_user):
    regular_user.last_login = utc_now() - timedelta(days=1)
    admin_user.created_at = utc_now() - timedelta(days=90)
    db.commit()

    assert UserService(db).get_user_statistics() == {
        "total_users": 2,
        "admin_users": 1,
        "regular_users": 1,
        "recent_users": 1,
        "active_users": 1,
    }


def test_ensure_first_superuser_is_idempotent(db):
    service = UserService(db)
    first = service.ensure_first_superuser()
    second = service.ensure_first_superuser()
    assert first.id == second.id
    assert first.is_admin
    assert create_access_token(first.id)
