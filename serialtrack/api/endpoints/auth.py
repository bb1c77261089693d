# serialtrack/api/endpoints/auth.py
"""
Authentication API endpoints for SerialTrack.

This module provides endpoints for password login, token refresh
and password changes.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from serialtrack import schemas
from serialtrack.api import deps
from serialtrack.core.exceptions import AuthenticationException, BusinessRuleException
from serialtrack.db.models.user import User
from serialtrack.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/token", response_model=schemas.Token)
def login_access_token(
    db: Session = Depends(deps.get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> Any:
    """
    OAuth2 compatible token login, get an access token for future requests.
    """
    user_service = UserService(db)
    user = user_service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    logger.info(f"User {user.email} logged in")
    return user_service.create_tokens(user)


@router.post("/refresh", response_model=schemas.Token)
def refresh_token(
    refresh_token_in: schemas.TokenRefresh = Body(...),
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Refresh access token using a refresh token.
    """
    user_service = UserService(db)
    try:
        return user_service.refresh_token(refresh_token_in.refresh_token)
    except AuthenticationException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.put(
    "/me/password",
    status_code=status.HTTP_204_NO_CONTENT,
)
def change_password(
    password_data: schemas.UserPasswordChange = Body(...),
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(deps.get_db),
) -> None:
    """
    Change current user's password.
    """
    user_service = UserService(db)
    try:
        user_service.change_password(
            current_user.id,
            password_data.current_password,
            password_data.new_password,
        )
    except (AuthenticationException, BusinessRuleException) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
