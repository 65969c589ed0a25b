"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system: the exception hierarchy and the business
calendar.
"""

from checktrack.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    NotificationDeliveryException,
    InvalidCheckException,
    InvalidTransitionException,
)
from checktrack.core.calendar import (
    add_business_days,
    business_days_between,
    calendar_days_between,
    calendar_days_until,
    is_business_day,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "NotificationDeliveryException",
    "InvalidCheckException",
    "InvalidTransitionException",
    "add_business_days",
    "business_days_between",
    "calendar_days_between",
    "calendar_days_until",
    "is_business_day",
]
