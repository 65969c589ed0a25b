"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class NotificationDeliveryException(ExternalServiceException):
    """Exception for notification webhook failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Notification Gateway", message, details)


class InvalidCheckException(ValidationException):
    """Raised when a check record is missing or carries malformed required fields."""

    def __init__(
        self,
        check_id: Optional[str],
        reason: str,
        details: Optional[dict] = None
    ):
        self.check_id = check_id
        super().__init__(
            f"Invalid check {check_id or '<unknown>'}: {reason}",
            details or {"check_id": check_id, "reason": reason}
        )


class InvalidTransitionException(DomainException):
    """Raised when an operator requests a transition the lifecycle forbids."""

    def __init__(
        self,
        check_id: str,
        current_status: str,
        requested_status: str,
        details: Optional[dict] = None
    ):
        self.check_id = check_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot move check {check_id} from {current_status} to {requested_status}",
            details or {
                "check_id": check_id,
                "current_status": current_status,
                "requested_status": requested_status,
            }
        )
