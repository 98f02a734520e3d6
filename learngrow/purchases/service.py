# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Purchase ledger service layer.

Business logic for:
- Recording pending purchases (target validation, server-side bundle price)
- Settling a pending purchase exactly once
- Reading purchases by id and by buyer
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from learngrow.catalog.models import ComboDuration
from learngrow.catalog.service import CatalogService
from learngrow.combos.service import ComboService
from learngrow.core.clock import Clock
from learngrow.core.logging import get_logger
from learngrow.entitlements.rules import (
    QUARTERLY_DURATION_DAYS,
    compute_access_end_date,
)

from .models import (
    PaymentStatus,
    PlanType,
    Purchase,
    PurchaseTarget,
    SettlementOutcome,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PurchaseError(Exception):
    """Base purchase error."""

    def __init__(self, message: str, code: str = "purchase_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidPlanError(PurchaseError):
    """Plan type and target (or price) do not fit together."""

    def __init__(self, message: str = "Invalid plan"):
        super().__init__(message, "invalid_plan")


class PurchaseNotFoundError(PurchaseError):
    """Purchase does not exist."""

    def __init__(self, message: str = "Purchase not found"):
        super().__init__(message, "purchase_not_found")


class AlreadySettledError(PurchaseError):
    """Purchase already left the pending state."""

    def __init__(self, message: str = "Purchase is already settled"):
        super().__init__(message, "already_settled")


class DuplicatePurchaseError(PurchaseError):
    """A purchase with the same id is already in the ledger."""

    def __init__(self, message: str = "Purchase already exists"):
        super().__init__(message, "duplicate_purchase")


# ==============================================================================
# Target rules
# ==============================================================================


def validate_target(plan_type: PlanType, target: PurchaseTarget) -> None:
    """Check that a plan points at what it must.

    Raises:
        InvalidPlanError: If the target does not fit the plan type
    """
    has_course = target.course_id is not None
    has_combo = target.combo_id is not None

    if has_course and has_combo:
        raise InvalidPlanError("A purchase targets a course or a combo, not both")

    if plan_type == PlanType.SINGLE and not has_course:
        raise InvalidPlanError("Single purchases require a course")
    if plan_type == PlanType.COMBO and not has_combo:
        raise InvalidPlanError("Combo purchases require a combo")
    if plan_type == PlanType.QUARTERLY and (has_course or has_combo):
        raise InvalidPlanError("Quarterly purchases cover every course, no target allowed")
    if plan_type == PlanType.SINGLE and has_combo:
        raise InvalidPlanError("Single purchases cannot target a combo")
    if plan_type == PlanType.COMBO and has_course:
        raise InvalidPlanError("Combo purchases cannot target a course")


# ==============================================================================
# Purchase Service
# ==============================================================================


class PurchaseService:
    """Service for the purchase ledger."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog: CatalogService,
        combos: ComboService,
        clock: Clock,
        quarterly_days: int = QUARTERLY_DURATION_DAYS,
    ):
        """Initialize with Cassandra session and catalog collaborators."""
        self.session = session
        self.keyspace = keyspace
        self.catalog = catalog
        self.combos = combos
        self.clock = clock
        self.quarterly_days = quarterly_days
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_purchase = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases
            (purchase_id, user_id, plan_type, course_id, combo_id, price,
             payment_status, start_date, end_date, created_at, updated_at,
             settled_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_purchase_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases_by_user
            (user_id, created_at, purchase_id, plan_type, course_id, combo_id)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._get_purchase = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.purchases
            WHERE purchase_id = ?
        """)

        self._get_user_purchase_ids = self.session.prepare(f"""
            SELECT purchase_id FROM {self.keyspace}.purchases_by_user
            WHERE user_id = ?
        """)

        # Lightweight transaction: only one settle can move a purchase
        self._settle_purchase = self.session.prepare(f"""
            UPDATE {self.keyspace}.purchases
            SET payment_status = ?, start_date = ?, end_date = ?,
                settled_at = ?, updated_at = ?
            WHERE purchase_id = ?
            IF payment_status = 'pending'
        """)

    # ==========================================================================
    # Recording
    # ==========================================================================

    async def record_purchase(
        self,
        user_id: UUID,
        plan_type: PlanType,
        target: PurchaseTarget,
        price: int | None = None,
    ) -> Purchase:
        """Record a new pending purchase.

        Combo purchases are priced from the resolved bundle; any client
        supplied price is ignored. A course purchase sent without a price
        is charged the course's catalog price.

        Raises:
            InvalidPlanError: If the target does not fit the plan, the price is
                missing or negative, or the course does not exist
            DuplicatePurchaseError: If the purchase id is already taken
            ComboError: If the combo cannot be resolved
        """
        validate_target(plan_type, target)

        if plan_type == PlanType.COMBO:
            pricing = await self.combos.resolve_combo(target.combo_id)
            if price is not None and price != pricing.effective_price:
                logger.warning(
                    "purchase_price_overridden",
                    combo_id=str(target.combo_id),
                    requested_price=price,
                    effective_price=pricing.effective_price,
                )
            price = pricing.effective_price
        elif target.combo_id is not None:
            await self.combos.get_combo(target.combo_id)

        if target.course_id is not None:
            course = await self.catalog.get_course(target.course_id)
            if course is None:
                raise InvalidPlanError(f"Course {target.course_id} does not exist")
            if price is None:
                price = course.price

        if price is None:
            raise InvalidPlanError("Price is required")
        if price < 0:
            raise InvalidPlanError(f"Price cannot be negative, got {price}")

        now = self.clock.now()
        purchase = Purchase(
            user_id=user_id,
            plan_type=plan_type,
            price=price,
            course_id=target.course_id,
            combo_id=target.combo_id,
            created_at=now,
            updated_at=now,
        )

        result = await self.session.aexecute(
            self._insert_purchase,
            [
                purchase.purchase_id,
                purchase.user_id,
                purchase.plan_type.value,
                purchase.course_id,
                purchase.combo_id,
                purchase.price,
                purchase.payment_status.value,
                None,
                None,
                purchase.created_at,
                purchase.updated_at,
                None,
            ],
        )
        if not result.was_applied:
            logger.error(
                "purchase_insert_conflict",
                purchase_id=str(purchase.purchase_id),
                user_id=str(user_id),
            )
            raise DuplicatePurchaseError(
                f"Purchase {purchase.purchase_id} already exists"
            )

        await self.session.aexecute(
            self._insert_purchase_by_user,
            [
                purchase.user_id,
                purchase.created_at,
                purchase.purchase_id,
                purchase.plan_type.value,
                purchase.course_id,
                purchase.combo_id,
            ],
        )

        logger.info(
            "purchase_recorded",
            purchase_id=str(purchase.purchase_id),
            user_id=str(user_id),
            plan_type=plan_type.value,
            price=price,
        )

        return purchase

    # ==========================================================================
    # Settlement
    # ==========================================================================

    async def settle_purchase(
        self,
        purchase_id: UUID,
        outcome: SettlementOutcome,
    ) -> Purchase:
        """Move a pending purchase to approved or rejected.

        On approval the access window starts now and its end follows the
        duration rule of the plan.

        Raises:
            PurchaseNotFoundError: If the purchase does not exist
            AlreadySettledError: If it is not pending, including when a
                concurrent settle won the race
        """
        purchase = await self.get_purchase(purchase_id)
        if purchase.is_settled:
            raise AlreadySettledError(
                f"Purchase {purchase_id} is already {purchase.payment_status.value}"
            )

        now = self.clock.now()
        start_date: datetime | None = None
        end_date: datetime | None = None
        if outcome == SettlementOutcome.APPROVED:
            start_date = now
            end_date = compute_access_end_date(
                purchase.plan_type,
                now,
                await self._combo_duration(purchase),
                quarterly_days=self.quarterly_days,
            )

        result = await self.session.aexecute(
            self._settle_purchase,
            [
                outcome.payment_status.value,
                start_date,
                end_date,
                now,
                now,
                purchase_id,
            ],
        )

        if not result.was_applied:
            logger.warning(
                "purchase_settle_conflict",
                purchase_id=str(purchase_id),
                outcome=outcome.value,
            )
            raise AlreadySettledError(f"Purchase {purchase_id} was settled concurrently")

        purchase.payment_status = outcome.payment_status
        purchase.start_date = start_date
        purchase.end_date = end_date
        purchase.settled_at = now
        purchase.updated_at = now

        logger.info(
            "purchase_settled",
            purchase_id=str(purchase_id),
            user_id=str(purchase.user_id),
            payment_status=purchase.payment_status.value,
            end_date=end_date.isoformat() if end_date else None,
        )

        return purchase

    async def _combo_duration(self, purchase: Purchase) -> ComboDuration | None:
        if purchase.combo_id is None:
            return None
        combo = await self.catalog.get_combo(purchase.combo_id)
        if combo is None:
            logger.warning(
                "purchase_combo_missing",
                purchase_id=str(purchase.purchase_id),
                combo_id=str(purchase.combo_id),
            )
            return None
        return combo.duration

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_purchase(self, purchase_id: UUID) -> Purchase:
        """Get a purchase by id.

        Raises:
            PurchaseNotFoundError: If the purchase does not exist
        """
        result = await self.session.aexecute(self._get_purchase, [purchase_id])
        row = result.one()
        if not row:
            raise PurchaseNotFoundError
        return Purchase.from_row(row)

    async def list_user_purchases(
        self,
        user_id: UUID,
        plan_type: PlanType | None = None,
        status: PaymentStatus | None = None,
    ) -> list[Purchase]:
        """List a buyer's purchases, newest first.

        Payment status is always read from the authoritative table.
        """
        result = await self.session.aexecute(self._get_user_purchase_ids, [user_id])

        purchases: list[Purchase] = []
        for row in result:
            try:
                purchase = await self.get_purchase(row.purchase_id)
            except PurchaseNotFoundError:
                logger.warning(
                    "purchase_index_orphan",
                    user_id=str(user_id),
                    purchase_id=str(row.purchase_id),
                )
                continue
            if plan_type is not None and purchase.plan_type != plan_type:
                continue
            if status is not None and purchase.payment_status != status:
                continue
            purchases.append(purchase)

        return purchases
