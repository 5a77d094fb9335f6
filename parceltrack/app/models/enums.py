"""
User roles enumeration.

Defines the role types carried in access tokens.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        MANAGER: Full access to parcels, history and statistics
        DELIVERY_PERSON: Sees and updates the status of parcels assigned to them
        CLIENT: Sender client, creates parcels and follows the ones they sent
    """
    MANAGER = "MANAGER"
    DELIVERY_PERSON = "DELIVERY_PERSON"
    CLIENT = "CLIENT"
