from .tables import (
    Activities,
    AvailabilityTemplates,
    Base,
    Bookings,
    Businesses,
    SlotCapacity,
    TemplateExceptions,
    Users,
    metadata,
)

__all__ = [
    "Activities",
    "AvailabilityTemplates",
    "Base",
    "Bookings",
    "Businesses",
    "SlotCapacity",
    "TemplateExceptions",
    "Users",
    "metadata",
]
