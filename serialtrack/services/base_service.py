# File: serialtrack/services/base_service.py

from typing import TypeVar, Generic, List, Optional, Type, Dict, Any
from contextlib import contextmanager
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import logging
from datetime import datetime

from serialtrack.core.exceptions import (
    SerialTrackException,
    DatabaseException,
    DuplicateEntityException,
    EntityNotFoundException,
)
from serialtrack.repositories.base_repository import BaseRepository

T = TypeVar("T")
logger = logging.getLogger(__name__)


class BaseService(Generic[T]):
    """
    Base service for all SerialTrack services.

    Provides common functionality including:
    - Transaction management
    - Error translation from the database layer
    - Audit logging
    - Basic read operations
    """

    def __init__(
            self,
            session: Session,
            repository_class: Optional[Type[BaseRepository]] = None,
            repository: Optional[BaseRepository] = None,
            security_context=None,
    ):
        """
        Initialize service with dependencies.

        Args:
            session: Database session for persistence operations
            repository_class: Repository class to instantiate (optional if repository is provided)
            repository: Repository instance (optional if repository_class is provided)
            security_context: Optional security context carrying ``current_user``
        """
        self.session = session

        if repository is not None:
            self.repository = repository
        elif repository_class is not None:
            self.repository = repository_class(session)
        else:
            self.repository = None

        self.security_context = security_context

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope around operations.

        Commits on success. On failure the session is rolled back and the
        error is re-raised, translated to a domain exception when possible.
        """
        try:
            yield
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            if isinstance(e, SerialTrackException):
                logger.info(f"Transaction aborted: {e.message}")
                raise
            logger.error(f"Transaction failed: {str(e)}", exc_info=True)

            transformed = self._transform_error(e)
            if transformed:
                raise transformed from e
            raise

    def get_by_id(self, id: int) -> Optional[T]:
        """
        Get entity by ID.

        Args:
            id: Entity ID to retrieve

        Returns:
            Entity if found, None otherwise
        """
        return self.repository.get_by_id(id)

    def list(self, skip: int = 0, limit: int = 100, **filters) -> List[T]:
        """List entities with pagination and filtering."""
        return self.repository.list(skip=skip, limit=limit, **filters)

    def get_entity_or_404(self, id: int) -> T:
        """
        Get an entity by ID or raise EntityNotFoundException.

        Args:
            id: Entity ID to retrieve

        Returns:
            Entity if found

        Raises:
            EntityNotFoundException: If entity is not found
        """
        entity = self.get_by_id(id)
        if not entity:
            entity_name = self.repository.model.__name__ if self.repository else "Entity"
            raise EntityNotFoundException(entity_name, id)
        return entity

    def _current_username(self) -> Optional[str]:
        if self.security_context and hasattr(self.security_context, "current_user"):
            user = self.security_context.current_user
            return getattr(user, "email", None) or getattr(user, "username", None)
        return None

    def _log_operation(
            self,
            operation: str,
            entity_type: str,
            entity_id: Any = None,
            details: Dict[str, Any] = None,
    ) -> None:
        """
        Log an operation for auditing purposes.

        Args:
            operation: Operation name (create, update, delete, etc.)
            entity_type: Type of entity being operated on
            entity_id: Optional entity ID
            details: Optional operation details
        """
        user_id = None
        if self.security_context and hasattr(self.security_context, "current_user"):
            user_id = getattr(self.security_context.current_user, "id", None)

        log_data = {
            "operation": operation,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user_id": user_id,
            "timestamp": datetime.now().isoformat(),
            "details": details,
        }

        logger.info(f"{operation.upper()} {entity_type} {entity_id}", extra=log_data)

    def _transform_error(self, error: Exception) -> Optional[SerialTrackException]:
        """
        Transform database exceptions to domain exceptions.

        Override in subclasses for entity-specific translations.

        Args:
            error: The original exception

        Returns:
            Transformed domain exception, or None to re-raise original
        """
        if isinstance(error, IntegrityError):
            return DuplicateEntityException(
                "A record with the same unique key already exists",
                details={"error": str(error.orig)},
            )
        if isinstance(error, SQLAlchemyError):
            return DatabaseException(f"Database error: {error}")
        return None
