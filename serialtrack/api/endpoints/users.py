# serialtrack/api/endpoints/users.py
"""
User management API endpoints for SerialTrack.

This module provides endpoints for user management,
including listing, creating, updating, and deleting users.
"""

from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from serialtrack.api.deps import (
    SecurityContext,
    get_current_active_user,
    get_current_admin_user,
)
from serialtrack.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
)
from serialtrack.db.session import get_db
from serialtrack.schemas.user import User, UserCreate, UserStatistics, UserUpdate
from serialtrack.services.user_service import UserService

router = APIRouter()


@router.get("/", response_model=List[User])
def list_users(
    *,
    db: Session = Depends(get_db),
    current_user: Any = Depends(get_current_admin_user),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
) -> Any:
    """
    Retrieve users with pagination.

    This endpoint requires admin privileges.
    """
    user_service = UserService(db)
    return user_service.get_all_users(skip=skip, limit=limit)


@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(
    *,
    db: Session = Depends(get_db),
    user_in: UserCreate,
    current_user: Any = Depends(get_current_admin_user),
) -> Any:
    """
    Create a new user.

    This endpoint requires admin privileges.
    """
    user_service = UserService(db)
    try:
        return user_service.create_user(user_in)
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/me", response_model=User)
def get_current_user_info(
    current_user: Any = Depends(get_current_active_user),
) -> Any:
    """
    Get information about the current user.
    """
    return current_user


@router.get("/statistics", response_model=UserStatistics)
def get_user_statistics(
    *,
    db: Session = Depends(get_db),
    current_user: Any = Depends(get_current_admin_user),
) -> Any:
    """
    Account counts for the user-management screen.
    """
    return UserService(db).get_user_statistics()


@router.get("/{user_id}", response_model=User)
def get_user(
    *,
    db: Session = Depends(get_db),
    user_id: int = Path(..., ge=1, description="The ID of the user to retrieve"),
    current_user: Any = Depends(get_current_admin_user),
) -> Any:
    """
    Get detailed information about a specific user.

    This endpoint requires admin privileges.
    """
    user_service = UserService(db)
    try:
        return user_service.get_user(user_id)
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )


@router.put("/{user_id}", response_model=User)
def update_user(
    *,
    db: Session = Depends(get_db),
    user_id: int = Path(..., ge=1, description="The ID of the user to update"),
    user_in: UserUpdate,
    current_user: Any = Depends(get_current_admin_user),
) -> Any:
    """
    Update a user.

    This endpoint requires admin privileges.
    """
    user_service = UserService(db)
    try:
        return user_service.update_user(user_id, user_in)
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    except DuplicateEntityException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{user_id}", response_model=User)
def delete_user(
    *,
    db: Session = Depends(get_db),
    user_id: int = Path(..., ge=1, description="The ID of the user to delete"),
    current_user: Any = Depends(get_current_admin_user),
) -> Any:
    """
    Delete a user.

    This endpoint requires admin privileges.
    """
    user_service = UserService(db, security_context=SecurityContext(current_user))
    try:
        deleted = User.model_validate(user_service.get_user(user_id))
        user_service.delete_user(user_id)
        return deleted
    except EntityNotFoundException:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    except BusinessRuleException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
