"""Tests for EntitlementService."""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learngrow.catalog.models import ComboDuration
from learngrow.catalog.service import CatalogService
from learngrow.entitlements.models import EntitlementStatus
from learngrow.entitlements.rules import InvalidEntitlementStateError
from learngrow.entitlements.service import EntitlementService
from learngrow.purchases.models import PaymentStatus, PlanType
from learngrow.purchases.service import PurchaseService

from factories import START, make_combo, make_course, make_purchase


@pytest.fixture
def ledger():
    """Purchases returned by the mocked purchase service."""
    return []


@pytest.fixture
def purchases(ledger):
    service = Mock(spec=PurchaseService)

    async def list_user_purchases(user_id, plan_type=None, status=None):
        return [
            p
            for p in ledger
            if p.user_id == user_id and (plan_type is None or p.plan_type == plan_type)
        ]

    service.list_user_purchases = AsyncMock(side_effect=list_user_purchases)
    return service


@pytest.fixture
def bundles():
    return {}


@pytest.fixture
def catalog(bundles):
    catalog = Mock(spec=CatalogService)
    catalog.get_combo = AsyncMock(side_effect=lambda cid: bundles.get(cid))
    return catalog


@pytest.fixture
def entitlement_service(purchases, catalog, clock):
    return EntitlementService(purchases=purchases, catalog=catalog, clock=clock)


class TestGetEntitlement:
    """Resolving access to one course."""

    @pytest.mark.asyncio
    async def test_no_purchases(self, entitlement_service, user_id) -> None:
        course_id = uuid4()

        entitlement = await entitlement_service.get_entitlement(user_id, course_id)

        assert entitlement.status == EntitlementStatus.NONE
        assert entitlement.course_id == course_id

    @pytest.mark.asyncio
    async def test_uses_injected_clock(
        self, entitlement_service, ledger, clock, user_id
    ) -> None:
        course_id = uuid4()
        ledger.append(make_purchase(PlanType.QUARTERLY, user_id=user_id))

        clock.set(START + timedelta(days=30))
        active = await entitlement_service.get_entitlement(user_id, course_id)
        clock.advance(timedelta(days=59))
        expiring = await entitlement_service.get_entitlement(user_id, course_id)
        clock.advance(timedelta(days=1))
        expired = await entitlement_service.get_entitlement(user_id, course_id)

        assert active.status == EntitlementStatus.ACTIVE
        assert expiring.status == EntitlementStatus.EXPIRING
        assert expiring.remaining_days == 1
        assert expired.status == EntitlementStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_combo_purchase_covers_bundle_courses(
        self, entitlement_service, ledger, bundles, user_id
    ) -> None:
        courses = [make_course(), make_course()]
        combo = make_combo(courses, ComboDuration.THREE_MONTHS)
        bundles[combo.combo_id] = combo
        ledger.append(
            make_purchase(PlanType.COMBO, user_id=user_id, combo_id=combo.combo_id)
        )

        inside = await entitlement_service.get_entitlement(
            user_id, courses[0].course_id
        )
        outside = await entitlement_service.get_entitlement(user_id, uuid4())

        assert inside.status == EntitlementStatus.ACTIVE
        assert inside.access_end_date == START.replace(month=4)
        assert outside.status == EntitlementStatus.NONE

    @pytest.mark.asyncio
    async def test_deleted_bundle_grants_nothing(
        self, entitlement_service, ledger, user_id
    ) -> None:
        ledger.append(
            make_purchase(PlanType.COMBO, user_id=user_id, combo_id=uuid4())
        )

        entitlement = await entitlement_service.get_entitlement(user_id, uuid4())

        assert entitlement.status == EntitlementStatus.NONE

    @pytest.mark.asyncio
    async def test_bundles_are_loaded_once(
        self, entitlement_service, ledger, bundles, catalog, user_id
    ) -> None:
        combo = make_combo([make_course()])
        bundles[combo.combo_id] = combo
        for _ in range(3):
            ledger.append(
                make_purchase(PlanType.COMBO, user_id=user_id, combo_id=combo.combo_id)
            )

        await entitlement_service.get_entitlement(user_id, combo.course_ids[0])

        catalog.get_combo.assert_awaited_once_with(combo.combo_id)

    @pytest.mark.asyncio
    async def test_malformed_purchase_fails_fast(
        self, entitlement_service, ledger, user_id
    ) -> None:
        ledger.append(make_purchase(PlanType.QUARTERLY, user_id=user_id, price=-5))

        with pytest.raises(InvalidEntitlementStateError):
            await entitlement_service.get_entitlement(user_id, uuid4())


class TestListEntitlements:
    """One entitlement per purchased course."""

    @pytest.mark.asyncio
    async def test_lists_each_course_once(
        self, entitlement_service, ledger, bundles, user_id
    ) -> None:
        single_course = make_course()
        bundle_courses = [make_course(), single_course]
        combo = make_combo(bundle_courses, ComboDuration.ONE_MONTH)
        bundles[combo.combo_id] = combo
        ledger.extend(
            [
                make_purchase(
                    PlanType.SINGLE, user_id=user_id, course_id=single_course.course_id
                ),
                make_purchase(PlanType.COMBO, user_id=user_id, combo_id=combo.combo_id),
            ]
        )

        entitlements = await entitlement_service.list_entitlements(user_id)

        by_course = {e.course_id: e for e in entitlements}
        assert len(entitlements) == 2
        # Lifetime single purchase wins over the one-month bundle
        assert by_course[single_course.course_id].is_lifetime
        assert by_course[bundle_courses[0].course_id].combo_id == combo.combo_id


class TestGetSubscription:
    """Quarterly all-access state."""

    @pytest.mark.asyncio
    async def test_no_subscription(self, entitlement_service, user_id) -> None:
        subscription = await entitlement_service.get_subscription(user_id)
        assert subscription.status == EntitlementStatus.NONE

    @pytest.mark.asyncio
    async def test_renewed_subscription(
        self, entitlement_service, ledger, clock, user_id
    ) -> None:
        first = make_purchase(PlanType.QUARTERLY, user_id=user_id)
        renewal = make_purchase(
            PlanType.QUARTERLY,
            user_id=user_id,
            start_date=START + timedelta(days=88),
        )
        pending = make_purchase(
            PlanType.QUARTERLY,
            user_id=user_id,
            payment_status=PaymentStatus.PENDING,
        )
        ledger.extend([first, renewal, pending])
        clock.set(START + timedelta(days=95))

        subscription = await entitlement_service.get_subscription(user_id)

        assert subscription.purchase_id == renewal.purchase_id
        assert subscription.status == EntitlementStatus.ACTIVE
        assert subscription.course_id is None
