# File: serialtrack/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class SerialTrackException(Exception):
    """Base exception for all SerialTrack errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a SerialTrack exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(SerialTrackException):
    """Base exception for domain-related errors."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# Inventory-related exceptions
class InventoryException(SerialTrackException):
    """Base exception for inventory-related errors."""

    CODE_PREFIX = "INVENTORY_"


class ItemNotAvailableException(InventoryException):
    """Raised when an item cannot be reserved, loaned or otherwise moved."""

    def __init__(self, message: str, serial_number: str):
        super().__init__(
            message,
            f"{self.CODE_PREFIX}001",
            {"serial_number": serial_number},
        )


# Validation exceptions
class ValidationException(SerialTrackException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Security exceptions
class SecurityException(SerialTrackException):
    """Base exception for security-related errors."""

    CODE_PREFIX = "SECURITY_"


class AuthenticationException(SecurityException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, f"{self.CODE_PREFIX}003", {})


class PermissionDeniedException(SecurityException):
    """Raised when a user lacks permission for an action."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, f"{self.CODE_PREFIX}004", {})


# Business rule exceptions
class BusinessRuleException(SerialTrackException):
    """Raised when a business rule or constraint is violated."""

    CODE_PREFIX = "BUSINESS_"

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if rule_name:
            error_details["rule_name"] = rule_name
        super().__init__(message, f"{self.CODE_PREFIX}001", error_details)


class InvalidStatusTransitionException(BusinessRuleException):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, message: str, allowed_transitions: Optional[List[str]] = None):
        details = {}
        if allowed_transitions is not None:
            details["allowed_transitions"] = allowed_transitions
        super().__init__(
            message, rule_name="INVALID_STATUS_TRANSITION", details=details
        )


class DuplicateEntityException(SerialTrackException):
    """Raised when an attempt is made to create an entity that already exists."""

    def __init__(
        self,
        message: str = "Duplicate entity detected",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "DUPLICATE_ENTITY", details or {})


# Storage exceptions
class StorageException(SerialTrackException):
    """Base exception for storage-related errors."""

    CODE_PREFIX = "STORAGE_"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, f"{self.CODE_PREFIX}001", details or {})


class FileStorageException(StorageException):
    """
    Exception raised for file storage-specific errors.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if file_path:
            error_details["file_path"] = file_path
        if operation:
            error_details["operation"] = operation
        super().__init__(message=message, details=error_details)


class DatabaseException(SerialTrackException):
    """
    Exception raised for database-related errors.
    """

    CODE_PREFIX = "DATABASE_"

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if entity_type:
            error_details["entity_type"] = entity_type
        super().__init__(message=message, code=f"{self.CODE_PREFIX}001", details=error_details)
