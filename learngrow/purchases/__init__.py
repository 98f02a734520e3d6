"""Purchase ledger.

Records what a buyer paid for and settles each purchase exactly once:
- PlanType: SINGLE, QUARTERLY, COMBO, KIT, SCHOOL
- PaymentStatus: PENDING, APPROVED, REJECTED

The service lives in ``learngrow.purchases.service``; it depends on the
entitlement rules, which in turn read these models.
"""

from .models import (
    PaymentStatus,
    PlanType,
    Purchase,
    PurchaseTarget,
    SettlementOutcome,
)


__all__ = [
    "PaymentStatus",
    "PlanType",
    "Purchase",
    "PurchaseTarget",
    "SettlementOutcome",
]
