"""Entitlement view model.

An entitlement is derived on every read from a purchase and the current
time. It has no identity and is never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from learngrow.purchases.models import PaymentStatus, PlanType


class EntitlementStatus(str, Enum):
    """Access state shown to gates and UI."""

    ACTIVE = "active"
    EXPIRING = "expiring"  # Still grants access, renewal warning band
    EXPIRED = "expired"
    NONE = "none"  # No approved purchase


VALID_STATUSES = frozenset({EntitlementStatus.ACTIVE, EntitlementStatus.EXPIRING})


@dataclass(frozen=True)
class Entitlement:
    """A user's computed access to one course (or to the all-access plan)."""

    status: EntitlementStatus
    course_id: UUID | None = None
    purchase_id: UUID | None = None
    purchase_type: PlanType | None = None
    combo_id: UUID | None = None
    payment_status: PaymentStatus | None = None
    access_start_date: datetime | None = None
    access_end_date: datetime | None = None
    remaining_days: int | None = None
    progress: float | None = None

    @classmethod
    def none(cls, course_id: UUID | None = None) -> "Entitlement":
        """Entitlement for a user with no purchase covering the course."""
        return cls(status=EntitlementStatus.NONE, course_id=course_id)

    @property
    def has_valid_access(self) -> bool:
        return self.status in VALID_STATUSES

    @property
    def is_lifetime(self) -> bool:
        return self.has_valid_access and self.access_end_date is None
