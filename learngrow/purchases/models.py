"""Purchase ledger models and Cassandra schema.

A purchase records what a buyer paid for and its payment state:
- SINGLE: one course
- QUARTERLY: time-boxed all-access subscription
- COMBO: discounted bundle of courses
- KIT / SCHOOL: physical kit or school deal, optionally with a course or bundle

Payment moves once, from PENDING to APPROVED or REJECTED, and never again.
A renewal is a new purchase.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from learngrow.catalog.models import ensure_utc_aware


if TYPE_CHECKING:
    from cassandra.cluster import Row


class PlanType(str, Enum):
    """What kind of product was bought."""

    SINGLE = "single"
    QUARTERLY = "quarterly"
    COMBO = "combo"
    KIT = "kit"
    SCHOOL = "school"


class PaymentStatus(str, Enum):
    """Payment state of a purchase."""

    PENDING = "pending"  # Awaiting payment confirmation
    APPROVED = "approved"  # Payment confirmed, access granted
    REJECTED = "rejected"  # Payment refused


class SettlementOutcome(str, Enum):
    """Terminal outcome applied when settling a pending purchase."""

    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def payment_status(self) -> PaymentStatus:
        return PaymentStatus(self.value)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Authoritative record; payment_status is only changed through a
# lightweight transaction conditioned on 'pending'
PURCHASES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases (
    purchase_id UUID PRIMARY KEY,
    user_id UUID,
    plan_type TEXT,
    course_id UUID,
    combo_id UUID,
    price BIGINT,
    payment_status TEXT,
    start_date TIMESTAMP,
    end_date TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    settled_at TIMESTAMP
)
"""

# Lookup by buyer; holds ids only, status is always read from purchases
PURCHASES_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases_by_user (
    user_id UUID,
    created_at TIMESTAMP,
    purchase_id UUID,
    plan_type TEXT,
    course_id UUID,
    combo_id UUID,
    PRIMARY KEY ((user_id), created_at, purchase_id)
) WITH CLUSTERING ORDER BY (created_at DESC, purchase_id ASC)
"""

PURCHASES_TABLES_CQL = [
    PURCHASES_TABLE_CQL,
    PURCHASES_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass(frozen=True)
class PurchaseTarget:
    """What a purchase points at: a course, a combo bundle, or nothing."""

    course_id: UUID | None = None
    combo_id: UUID | None = None


@dataclass
class Purchase:
    """A buyer's transaction for a plan."""

    user_id: UUID
    plan_type: PlanType
    price: int
    created_at: datetime
    updated_at: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    purchase_id: UUID = field(default_factory=uuid4)
    course_id: UUID | None = None
    combo_id: UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    settled_at: datetime | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Purchase":
        """Create instance from Cassandra row."""
        created_at = ensure_utc_aware(row.created_at)
        return cls(
            purchase_id=row.purchase_id,
            user_id=row.user_id,
            plan_type=PlanType(row.plan_type),
            price=row.price,
            payment_status=PaymentStatus(row.payment_status),
            course_id=row.course_id,
            combo_id=row.combo_id,
            start_date=ensure_utc_aware(row.start_date),
            end_date=ensure_utc_aware(row.end_date),
            created_at=created_at,
            updated_at=ensure_utc_aware(row.updated_at) or created_at,
            settled_at=ensure_utc_aware(row.settled_at),
        )

    @property
    def is_settled(self) -> bool:
        return self.payment_status != PaymentStatus.PENDING
