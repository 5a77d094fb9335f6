"""
Parcel status and priority enumerations.
"""

import enum


class ParcelStatus(str, enum.Enum):
    """
    Parcel status enumeration.

    Documented flow:
        CREATED → COLLECTED → IN_STOCK → IN_TRANSIT → DELIVERED
    CREATED is the only initial value. Updates do not enforce the order.
    """
    CREATED = "CREATED"
    COLLECTED = "COLLECTED"
    IN_STOCK = "IN_STOCK"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"

    @property
    def display_name(self) -> str:
        return _STATUS_DISPLAY[self]

    @property
    def is_completed(self) -> bool:
        return self is ParcelStatus.DELIVERED

    @property
    def is_in_progress(self) -> bool:
        return self in IN_PROGRESS_STATUSES


class ParcelPriority(str, enum.Enum):
    """
    Parcel priority enumeration.

    URGENT and EXPRESS count as high priority.
    """
    NORMAL = "NORMAL"
    URGENT = "URGENT"
    EXPRESS = "EXPRESS"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def is_high_priority(self) -> bool:
        return self in HIGH_PRIORITIES


_STATUS_DISPLAY = {
    ParcelStatus.CREATED: "Created",
    ParcelStatus.COLLECTED: "Collected",
    ParcelStatus.IN_STOCK: "In Stock",
    ParcelStatus.IN_TRANSIT: "In Transit",
    ParcelStatus.DELIVERED: "Delivered",
}

HIGH_PRIORITIES = (ParcelPriority.URGENT, ParcelPriority.EXPRESS)
IN_PROGRESS_STATUSES = (ParcelStatus.COLLECTED, ParcelStatus.IN_STOCK, ParcelStatus.IN_TRANSIT)
