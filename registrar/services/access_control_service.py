"""
Access control service: maintenance-mode cache and the write gate.
"""

import logging
import threading
from typing import Optional

from ..core.access import authorize
from ..core.entities import AccessDecision
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..core.interfaces import RecordStore


logger = logging.getLogger(__name__)


class MaintenanceModeCache:
    """Process-wide view of the maintenance flag.

    The flag is read from the store on first use and kept until ``refresh``
    or ``set`` replaces it. Last writer wins; other processes see the change
    after their next refresh.
    """

    def __init__(self, store: RecordStore):
        self._store = store
        self._active: Optional[bool] = None
        self._lock = threading.Lock()

    def is_active(self) -> bool:
        """Current flag, loaded lazily."""
        with self._lock:
            if self._active is None:
                self._active = self._store.is_maintenance_mode_active()
            return self._active

    def refresh(self) -> bool:
        """Re-read the flag from the store."""
        active = self._store.is_maintenance_mode_active()
        with self._lock:
            self._active = active
        return active

    def set(self, enabled: bool, role: Role) -> None:
        """Write the flag through to the store. Administrators only."""
        if role is not Role.ADMIN:
            raise AuthorizationError("Only administrators can change maintenance mode",
                                     details={'role': role.value})
        self._store.set_maintenance_mode(enabled)
        with self._lock:
            self._active = enabled
        logger.info("Maintenance mode %s", "enabled" if enabled else "disabled")


class AccessControlService:
    """Gate every operation through the maintenance rules."""

    def __init__(self, maintenance: MaintenanceModeCache):
        self._maintenance = maintenance

    @property
    def maintenance(self) -> MaintenanceModeCache:
        return self._maintenance

    def validate_operation(self, role: Role, is_write_operation: bool) -> AccessDecision:
        """Check whether ``role`` may run a read or write right now."""
        if not is_write_operation:
            return AccessDecision(allowed=True)
        return authorize(role, is_write_operation, self._maintenance.is_active())

    def is_maintenance_mode(self) -> bool:
        return self._maintenance.is_active()
