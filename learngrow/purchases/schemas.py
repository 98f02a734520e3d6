"""Pydantic schemas for the purchase ledger.

Request/Response models for:
- Recording a purchase
- Settling a purchase (admin)
- Listing purchases
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import PaymentStatus, PlanType, Purchase, SettlementOutcome


# ==============================================================================
# Request Schemas
# ==============================================================================


class RecordPurchaseRequest(BaseModel):
    """Request to record a purchase for the current user."""

    plan_type: PlanType
    course_id: UUID | None = None
    combo_id: UUID | None = None
    price: int | None = Field(
        None,
        description="Amount paid in the smallest currency unit; ignored for combos",
    )


class SettlePurchaseRequest(BaseModel):
    """Request to settle a pending purchase."""

    outcome: SettlementOutcome


# ==============================================================================
# Response Schemas
# ==============================================================================


class PurchaseResponse(BaseModel):
    """Response schema for a single purchase."""

    id: UUID = Field(..., description="Purchase ID")
    user_id: UUID
    plan_type: PlanType
    course_id: UUID | None = None
    combo_id: UUID | None = None
    price: int
    payment_status: PaymentStatus
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime
    settled_at: datetime | None = None

    @classmethod
    def from_purchase(cls, purchase: Purchase) -> "PurchaseResponse":
        """Create response from Purchase entity."""
        return cls(
            id=purchase.purchase_id,
            user_id=purchase.user_id,
            plan_type=purchase.plan_type,
            course_id=purchase.course_id,
            combo_id=purchase.combo_id,
            price=purchase.price,
            payment_status=purchase.payment_status,
            start_date=purchase.start_date,
            end_date=purchase.end_date,
            created_at=purchase.created_at,
            settled_at=purchase.settled_at,
        )


class PurchaseListResponse(BaseModel):
    """Response schema for listing purchases."""

    items: list[PurchaseResponse]
    total: int

    @classmethod
    def from_purchases(cls, purchases: list[Purchase]) -> "PurchaseListResponse":
        return cls(
            items=[PurchaseResponse.from_purchase(p) for p in purchases],
            total=len(purchases),
        )
