"""
Services module containing the registration, grading and administration workflows.
"""

from .access_control_service import AccessControlService, MaintenanceModeCache
from .administration_service import AdministrationService
from .concurrency_manager import ConcurrencyManager, LockInfo
from .grading_service import GradingService
from .registration_service import RegistrationService

__all__ = [
    "AccessControlService",
    "MaintenanceModeCache",
    "AdministrationService",
    "ConcurrencyManager",
    "LockInfo",
    "GradingService",
    "RegistrationService",
]
