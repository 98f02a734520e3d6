"""Entitlement resolution service.

Loads a user's purchases and the bundles they reference, then hands them to
the pure rules in ``rules.py`` together with the injected clock's "now".
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

from learngrow.catalog.models import ComboBundle
from learngrow.catalog.service import CatalogService
from learngrow.core.clock import Clock
from learngrow.core.logging import get_logger
from learngrow.purchases.models import PlanType, Purchase

from .models import Entitlement
from .rules import (
    EXPIRING_THRESHOLD_DAYS,
    QUARTERLY_DURATION_DAYS,
    build_entitlement,
    resolve_entitlement,
    select_entitlement,
)


if TYPE_CHECKING:
    from learngrow.purchases.service import PurchaseService


logger = get_logger(__name__)


class EntitlementService:
    """Answers "what access does this user have right now"."""

    def __init__(
        self,
        purchases: "PurchaseService",
        catalog: CatalogService,
        clock: Clock,
        expiring_threshold_days: int = EXPIRING_THRESHOLD_DAYS,
        quarterly_days: int = QUARTERLY_DURATION_DAYS,
    ):
        self.purchases = purchases
        self.catalog = catalog
        self.clock = clock
        self.expiring_threshold_days = expiring_threshold_days
        self.quarterly_days = quarterly_days

    async def get_entitlement(self, user_id: UUID, course_id: UUID) -> Entitlement:
        """Resolve a user's access to one course.

        Raises:
            InvalidEntitlementStateError: If a stored purchase is malformed
        """
        purchases = await self.purchases.list_user_purchases(user_id)
        combos = await self._load_combos(purchases)

        entitlement = resolve_entitlement(
            course_id,
            purchases,
            combos,
            self.clock.now(),
            expiring_threshold_days=self.expiring_threshold_days,
            quarterly_days=self.quarterly_days,
        )
        self._check_stored_end_date(entitlement, purchases)

        logger.info(
            "entitlement_resolved",
            user_id=str(user_id),
            course_id=str(course_id),
            status=entitlement.status.value,
            purchase_id=str(entitlement.purchase_id) if entitlement.purchase_id else None,
            remaining_days=entitlement.remaining_days,
        )

        return entitlement

    async def list_entitlements(self, user_id: UUID) -> list[Entitlement]:
        """One surfaced entitlement per course the user ever bought into.

        Courses reachable only through the quarterly all-access plan are not
        enumerated; see ``get_subscription``.
        """
        purchases = await self.purchases.list_user_purchases(user_id)
        combos = await self._load_combos(purchases)
        now = self.clock.now()

        course_ids: list[UUID] = []
        for purchase in purchases:
            if purchase.course_id is not None:
                course_ids.append(purchase.course_id)
            combo = combos.get(purchase.combo_id) if purchase.combo_id else None
            if combo is not None:
                course_ids.extend(combo.course_ids)

        return [
            resolve_entitlement(
                course_id,
                purchases,
                combos,
                now,
                expiring_threshold_days=self.expiring_threshold_days,
                quarterly_days=self.quarterly_days,
            )
            for course_id in dict.fromkeys(course_ids)
        ]

    async def get_subscription(self, user_id: UUID) -> Entitlement:
        """Surfaced state of the user's quarterly all-access plan."""
        purchases = await self.purchases.list_user_purchases(
            user_id, plan_type=PlanType.QUARTERLY
        )
        now = self.clock.now()
        return select_entitlement(
            build_entitlement(
                purchase,
                now,
                expiring_threshold_days=self.expiring_threshold_days,
                quarterly_days=self.quarterly_days,
            )
            for purchase in purchases
        )

    async def _load_combos(self, purchases: Iterable[Purchase]) -> dict[UUID, ComboBundle]:
        combos: dict[UUID, ComboBundle] = {}
        for purchase in purchases:
            combo_id = purchase.combo_id
            if combo_id is None or combo_id in combos:
                continue
            combo = await self.catalog.get_combo(combo_id)
            if combo is None:
                logger.warning(
                    "entitlement_combo_missing",
                    purchase_id=str(purchase.purchase_id),
                    combo_id=str(combo_id),
                )
                continue
            combos[combo_id] = combo
        return combos

    def _check_stored_end_date(
        self, entitlement: Entitlement, purchases: Iterable[Purchase]
    ) -> None:
        # Only approved purchases carry a window to compare
        if entitlement.access_start_date is None:
            return
        for purchase in purchases:
            if purchase.purchase_id != entitlement.purchase_id:
                continue
            if purchase.end_date != entitlement.access_end_date:
                logger.warning(
                    "entitlement_end_date_drift",
                    purchase_id=str(purchase.purchase_id),
                    stored_end_date=(
                        purchase.end_date.isoformat() if purchase.end_date else None
                    ),
                    computed_end_date=(
                        entitlement.access_end_date.isoformat()
                        if entitlement.access_end_date
                        else None
                    ),
                )
            return
