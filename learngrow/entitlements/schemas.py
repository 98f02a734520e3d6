"""Pydantic schemas for entitlements."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learngrow.purchases.models import PaymentStatus, PlanType

from .models import Entitlement, EntitlementStatus
from .rules import format_remaining_access


class EntitlementResponse(BaseModel):
    """A user's current access to a course or to the all-access plan."""

    course_id: UUID | None = None
    status: EntitlementStatus
    has_valid_access: bool = Field(..., description="True while active or expiring")
    formatted_access: str = Field(..., description="Badge label, e.g. '3 days left'")
    purchase_id: UUID | None = None
    purchase_type: PlanType | None = None
    combo_id: UUID | None = None
    payment_status: PaymentStatus | None = Field(
        None, description="Set for pending/rejected purchases so the UI can explain"
    )
    access_start_date: datetime | None = None
    access_end_date: datetime | None = Field(None, description="None means lifetime")
    remaining_days: int | None = None
    progress: float | None = Field(None, ge=0.0, le=1.0)

    @classmethod
    def from_entitlement(cls, entitlement: Entitlement) -> "EntitlementResponse":
        """Create response from a computed Entitlement."""
        return cls(
            course_id=entitlement.course_id,
            status=entitlement.status,
            has_valid_access=entitlement.has_valid_access,
            formatted_access=format_remaining_access(entitlement),
            purchase_id=entitlement.purchase_id,
            purchase_type=entitlement.purchase_type,
            combo_id=entitlement.combo_id,
            payment_status=entitlement.payment_status,
            access_start_date=entitlement.access_start_date,
            access_end_date=entitlement.access_end_date,
            remaining_days=entitlement.remaining_days,
            progress=entitlement.progress,
        )


class EntitlementListResponse(BaseModel):
    """Response schema for listing entitlements."""

    items: list[EntitlementResponse]
    total: int
