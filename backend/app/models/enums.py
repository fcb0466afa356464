"""
Account roles enumeration.

Defines the role types for the auto meter system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    Account role enumeration.

    Roles:
        ADMIN: Manages the system fare and the driver roster
        DRIVER: Records rides from the meter app (default role)
    """
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"
