"""
Access gate for write operations under maintenance mode.
"""

from .entities import AccessDecision
from .enums import Role


MAINTENANCE_DENIAL = "Operation blocked: System is in maintenance mode. Only viewing is allowed."


def authorize(role: Role, is_write_operation: bool, maintenance_mode_active: bool) -> AccessDecision:
    """Decide whether ``role`` may perform an operation.

    Reads are always allowed and administrators are never blocked. Any other
    role is denied writes while maintenance mode is active.
    """
    if not is_write_operation:
        return AccessDecision(allowed=True)

    if role is Role.ADMIN:
        return AccessDecision(allowed=True)

    if maintenance_mode_active:
        return AccessDecision(allowed=False, reason=MAINTENANCE_DENIAL)

    return AccessDecision(allowed=True)
