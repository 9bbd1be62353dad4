"""
Custom exceptions for the Registrar engine.

Expected business-rule outcomes are returned as results, never raised. These
exceptions cover invalid input to constructors, configuration problems and
storage failures.
"""

from typing import Optional, Any, Dict


class RegistrarException(Exception):
    """Base exception for all Registrar-related errors."""
    
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(RegistrarException):
    """Raised when data validation fails."""
    pass


class AuthorizationError(RegistrarException):
    """Raised when access is denied."""
    pass


class ConcurrencyError(RegistrarException):
    """Raised when a lock cannot be acquired in time."""
    pass


class PersistenceError(RegistrarException):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(RegistrarException):
    """Raised when configuration is invalid."""
    pass
