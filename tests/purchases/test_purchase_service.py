"""Tests for the purchase ledger service."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learngrow.catalog.models import ComboDuration
from learngrow.catalog.service import CatalogService
from learngrow.combos.models import ComboPricing
from learngrow.combos.service import ComboInactiveError, ComboService
from learngrow.purchases.models import (
    PaymentStatus,
    PlanType,
    Purchase,
    PurchaseTarget,
    SettlementOutcome,
)
from learngrow.purchases.service import (
    AlreadySettledError,
    DuplicatePurchaseError,
    InvalidPlanError,
    PurchaseNotFoundError,
    PurchaseService,
    validate_target,
)

from factories import (
    START,
    FakeResult,
    make_combo,
    make_course,
    make_purchase,
    purchase_row,
    row,
)


@pytest.fixture
def course():
    return make_course(2500)


@pytest.fixture
def catalog(course):
    catalog = Mock(spec=CatalogService)
    catalog.get_course = AsyncMock(
        side_effect=lambda cid: course if cid == course.course_id else None
    )
    catalog.get_combo = AsyncMock(return_value=None)
    return catalog


@pytest.fixture
def combos():
    combos = Mock(spec=ComboService)
    combos.resolve_combo = AsyncMock()
    combos.get_combo = AsyncMock()
    return combos


@pytest.fixture
def purchase_service(mock_session, catalog, combos, clock):
    """PurchaseService with mocked storage and catalog."""
    return PurchaseService(
        session=mock_session,
        keyspace="test_keyspace",
        catalog=catalog,
        combos=combos,
        clock=clock,
    )


class FakeLedger:
    """In-memory purchases table behind ``session.aexecute``.

    Applies the settle statement only while the stored status is pending,
    like the lightweight transaction it stands in for.
    """

    def __init__(self, service: PurchaseService):
        self.service = service
        self.rows = {}

    async def execute(self, statement, params):
        service = self.service
        if statement is service._get_purchase:
            stored = self.rows.get(params[0])
            return FakeResult([stored] if stored else [])
        if statement is service._settle_purchase:
            status, start, end, settled_at, updated_at, purchase_id = params
            stored = self.rows.get(purchase_id)
            if stored is None or stored.payment_status != "pending":
                return FakeResult(was_applied=False)
            stored.payment_status = status
            stored.start_date = start
            stored.end_date = end
            stored.settled_at = settled_at
            stored.updated_at = updated_at
            return FakeResult()
        return FakeResult()


class TestValidateTarget:
    """Plan type vs target rules."""

    @pytest.mark.parametrize(
        ("plan_type", "target"),
        [
            (PlanType.SINGLE, PurchaseTarget(course_id=uuid4())),
            (PlanType.QUARTERLY, PurchaseTarget()),
            (PlanType.COMBO, PurchaseTarget(combo_id=uuid4())),
            (PlanType.KIT, PurchaseTarget()),
            (PlanType.KIT, PurchaseTarget(course_id=uuid4())),
            (PlanType.SCHOOL, PurchaseTarget(combo_id=uuid4())),
        ],
    )
    def test_valid_targets(self, plan_type, target) -> None:
        validate_target(plan_type, target)

    @pytest.mark.parametrize(
        ("plan_type", "target"),
        [
            (PlanType.SINGLE, PurchaseTarget()),
            (PlanType.SINGLE, PurchaseTarget(combo_id=uuid4())),
            (PlanType.QUARTERLY, PurchaseTarget(course_id=uuid4())),
            (PlanType.QUARTERLY, PurchaseTarget(combo_id=uuid4())),
            (PlanType.COMBO, PurchaseTarget()),
            (PlanType.COMBO, PurchaseTarget(course_id=uuid4())),
            (PlanType.KIT, PurchaseTarget(course_id=uuid4(), combo_id=uuid4())),
        ],
    )
    def test_invalid_targets(self, plan_type, target) -> None:
        with pytest.raises(InvalidPlanError):
            validate_target(plan_type, target)


class TestRecordPurchase:
    """Recording pending purchases."""

    @pytest.mark.asyncio
    async def test_records_single_purchase(
        self, purchase_service, mock_session, course, clock
    ) -> None:
        user_id = uuid4()

        purchase = await purchase_service.record_purchase(
            user_id,
            PlanType.SINGLE,
            PurchaseTarget(course_id=course.course_id),
            price=2500,
        )

        assert purchase.payment_status == PaymentStatus.PENDING
        assert purchase.start_date is None
        assert purchase.created_at == clock.now()
        assert purchase.course_id == course.course_id
        # purchases + purchases_by_user
        assert mock_session.aexecute.await_count == 2
        insert_params = mock_session.aexecute.await_args_list[0].args[1]
        assert insert_params[0] == purchase.purchase_id
        assert insert_params[6] == "pending"

    @pytest.mark.asyncio
    async def test_combo_is_priced_by_the_server(
        self, purchase_service, combos
    ) -> None:
        courses = [make_course(1000), make_course(2000), make_course(3000)]
        combo = make_combo(courses, discount_percentage=20)
        combos.resolve_combo.return_value = ComboPricing(
            combo_id=combo.combo_id,
            name=combo.name,
            duration=combo.duration,
            courses=courses,
            original_total=6000,
            effective_price=4800,
            discount_amount=1200,
        )

        purchase = await purchase_service.record_purchase(
            uuid4(),
            PlanType.COMBO,
            PurchaseTarget(combo_id=combo.combo_id),
            price=1,
        )

        assert purchase.price == 4800
        combos.resolve_combo.assert_awaited_once_with(combo.combo_id)

    @pytest.mark.asyncio
    async def test_inactive_combo_is_not_sold(
        self, purchase_service, combos, mock_session
    ) -> None:
        combos.resolve_combo.side_effect = ComboInactiveError

        with pytest.raises(ComboInactiveError):
            await purchase_service.record_purchase(
                uuid4(), PlanType.COMBO, PurchaseTarget(combo_id=uuid4())
            )
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_target_mismatch(self, purchase_service, mock_session) -> None:
        with pytest.raises(InvalidPlanError):
            await purchase_service.record_purchase(
                uuid4(),
                PlanType.SINGLE,
                PurchaseTarget(combo_id=uuid4()),
                price=100,
            )
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_negative_price(self, purchase_service) -> None:
        with pytest.raises(InvalidPlanError):
            await purchase_service.record_purchase(
                uuid4(), PlanType.QUARTERLY, PurchaseTarget(), price=-10
            )

    @pytest.mark.asyncio
    async def test_missing_price(self, purchase_service) -> None:
        with pytest.raises(InvalidPlanError):
            await purchase_service.record_purchase(
                uuid4(), PlanType.QUARTERLY, PurchaseTarget()
            )

    @pytest.mark.asyncio
    async def test_unknown_course(self, purchase_service) -> None:
        with pytest.raises(InvalidPlanError):
            await purchase_service.record_purchase(
                uuid4(),
                PlanType.SINGLE,
                PurchaseTarget(course_id=uuid4()),
                price=100,
            )

    @pytest.mark.asyncio
    async def test_kit_with_combo_checks_the_combo_exists(
        self, purchase_service, combos
    ) -> None:
        combo_id = uuid4()

        purchase = await purchase_service.record_purchase(
            uuid4(), PlanType.KIT, PurchaseTarget(combo_id=combo_id), price=9900
        )

        combos.get_combo.assert_awaited_once_with(combo_id)
        combos.resolve_combo.assert_not_awaited()
        assert purchase.price == 9900

    @pytest.mark.asyncio
    async def test_course_price_used_when_none_sent(
        self, purchase_service, course
    ) -> None:
        purchase = await purchase_service.record_purchase(
            uuid4(), PlanType.SINGLE, PurchaseTarget(course_id=course.course_id)
        )

        assert purchase.price == course.price == 2500

    @pytest.mark.asyncio
    async def test_kit_with_course_falls_back_to_course_price(
        self, purchase_service, course
    ) -> None:
        purchase = await purchase_service.record_purchase(
            uuid4(), PlanType.KIT, PurchaseTarget(course_id=course.course_id)
        )

        assert purchase.price == 2500

    @pytest.mark.asyncio
    async def test_sent_price_wins_over_course_price(
        self, purchase_service, course
    ) -> None:
        purchase = await purchase_service.record_purchase(
            uuid4(),
            PlanType.SINGLE,
            PurchaseTarget(course_id=course.course_id),
            price=1999,
        )

        assert purchase.price == 1999

    @pytest.mark.asyncio
    async def test_existing_purchase_id_skips_user_index(
        self, purchase_service, mock_session, course
    ) -> None:
        mock_session.aexecute.return_value = FakeResult(was_applied=False)

        with pytest.raises(DuplicatePurchaseError):
            await purchase_service.record_purchase(
                uuid4(),
                PlanType.SINGLE,
                PurchaseTarget(course_id=course.course_id),
                price=2500,
            )

        # Only the conditional insert ran
        assert mock_session.aexecute.await_count == 1
        statement = mock_session.aexecute.await_args.args[0]
        assert statement is purchase_service._insert_purchase


class TestSettlePurchase:
    """The one-time pending -> approved|rejected transition."""

    @pytest.fixture
    def ledger(self, purchase_service, mock_session):
        ledger = FakeLedger(purchase_service)
        mock_session.aexecute.side_effect = ledger.execute
        return ledger

    def _store(self, ledger, purchase):
        ledger.rows[purchase.purchase_id] = purchase_row(purchase)

    @pytest.mark.asyncio
    async def test_approve_quarterly(self, purchase_service, ledger, clock) -> None:
        pending = make_purchase(
            PlanType.QUARTERLY, payment_status=PaymentStatus.PENDING
        )
        self._store(ledger, pending)
        clock.set(datetime(2024, 2, 10, 12, 0, tzinfo=UTC))

        settled = await purchase_service.settle_purchase(
            pending.purchase_id, SettlementOutcome.APPROVED
        )

        assert settled.payment_status == PaymentStatus.APPROVED
        assert settled.start_date == clock.now()
        assert settled.end_date == clock.now() + timedelta(days=90)
        assert settled.settled_at == clock.now()

    @pytest.mark.asyncio
    async def test_approve_single_is_lifetime(self, purchase_service, ledger) -> None:
        pending = make_purchase(
            PlanType.SINGLE,
            payment_status=PaymentStatus.PENDING,
            course_id=uuid4(),
        )
        self._store(ledger, pending)

        settled = await purchase_service.settle_purchase(
            pending.purchase_id, SettlementOutcome.APPROVED
        )

        assert settled.start_date == START
        assert settled.end_date is None

    @pytest.mark.asyncio
    async def test_approve_combo_uses_bundle_duration(
        self, purchase_service, ledger, catalog
    ) -> None:
        combo = make_combo([make_course()], ComboDuration.ONE_MONTH)
        catalog.get_combo.return_value = combo
        pending = make_purchase(
            PlanType.COMBO,
            payment_status=PaymentStatus.PENDING,
            combo_id=combo.combo_id,
        )
        self._store(ledger, pending)

        settled = await purchase_service.settle_purchase(
            pending.purchase_id, SettlementOutcome.APPROVED
        )

        assert settled.end_date == datetime(2024, 2, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_reject_leaves_no_window(self, purchase_service, ledger) -> None:
        pending = make_purchase(
            PlanType.QUARTERLY, payment_status=PaymentStatus.PENDING
        )
        self._store(ledger, pending)

        settled = await purchase_service.settle_purchase(
            pending.purchase_id, SettlementOutcome.REJECTED
        )

        assert settled.payment_status == PaymentStatus.REJECTED
        assert settled.start_date is None
        assert settled.end_date is None

    @pytest.mark.asyncio
    async def test_second_settle_fails(self, purchase_service, ledger) -> None:
        pending = make_purchase(
            PlanType.QUARTERLY, payment_status=PaymentStatus.PENDING
        )
        self._store(ledger, pending)

        first = await purchase_service.settle_purchase(
            pending.purchase_id, SettlementOutcome.APPROVED
        )
        with pytest.raises(AlreadySettledError):
            await purchase_service.settle_purchase(
                pending.purchase_id, SettlementOutcome.REJECTED
            )

        assert first.payment_status == PaymentStatus.APPROVED
        assert ledger.rows[pending.purchase_id].payment_status == "approved"

    @pytest.mark.asyncio
    async def test_lost_race_fails(
        self, purchase_service, mock_session, ledger
    ) -> None:
        pending = make_purchase(
            PlanType.QUARTERLY, payment_status=PaymentStatus.PENDING
        )
        self._store(ledger, pending)
        stale = purchase_row(pending)

        async def concurrent_settle(statement, params):
            # Another settle lands between our read and our conditional write
            if statement is purchase_service._get_purchase:
                ledger.rows[pending.purchase_id].payment_status = "rejected"
                return FakeResult([stale])
            return await ledger.execute(statement, params)

        mock_session.aexecute.side_effect = concurrent_settle

        with pytest.raises(AlreadySettledError):
            await purchase_service.settle_purchase(
                pending.purchase_id, SettlementOutcome.APPROVED
            )
        assert ledger.rows[pending.purchase_id].payment_status == "rejected"

    @pytest.mark.asyncio
    async def test_unknown_purchase(self, purchase_service, ledger) -> None:
        with pytest.raises(PurchaseNotFoundError):
            await purchase_service.settle_purchase(
                uuid4(), SettlementOutcome.APPROVED
            )


class TestListUserPurchases:
    """Reads by buyer."""

    @pytest.mark.asyncio
    async def test_filters_by_plan_and_status(
        self, purchase_service, mock_session
    ) -> None:
        user_id = uuid4()
        quarterly = make_purchase(PlanType.QUARTERLY, user_id=user_id)
        single = make_purchase(
            PlanType.SINGLE,
            user_id=user_id,
            course_id=uuid4(),
            payment_status=PaymentStatus.PENDING,
        )
        rows = {p.purchase_id: purchase_row(p) for p in (quarterly, single)}

        async def aexecute(statement, params):
            if statement is purchase_service._get_user_purchase_ids:
                return FakeResult([row(purchase_id=pid) for pid in rows])
            return FakeResult([rows[params[0]]])

        mock_session.aexecute.side_effect = aexecute

        everything = await purchase_service.list_user_purchases(user_id)
        only_quarterly = await purchase_service.list_user_purchases(
            user_id, plan_type=PlanType.QUARTERLY
        )
        only_pending = await purchase_service.list_user_purchases(
            user_id, status=PaymentStatus.PENDING
        )

        assert [p.purchase_id for p in everything] == [
            quarterly.purchase_id,
            single.purchase_id,
        ]
        assert [p.purchase_id for p in only_quarterly] == [quarterly.purchase_id]
        assert [p.purchase_id for p in only_pending] == [single.purchase_id]
        assert everything[0].start_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_skips_orphaned_index_rows(
        self, purchase_service, mock_session
    ) -> None:
        async def aexecute(statement, params):
            if statement is purchase_service._get_user_purchase_ids:
                return FakeResult([row(purchase_id=uuid4())])
            return FakeResult()

        mock_session.aexecute.side_effect = aexecute

        assert await purchase_service.list_user_purchases(uuid4()) == []


class TestPurchaseFromRow:
    """Timestamps come from the stored row, never the wall clock."""

    def test_missing_updated_at_uses_created_at(self) -> None:
        stored = purchase_row(make_purchase(PlanType.SINGLE, created_at=START))
        stored.updated_at = None

        purchase = Purchase.from_row(stored)

        assert purchase.created_at == START
        assert purchase.updated_at == START

    @pytest.mark.asyncio
    async def test_recorded_timestamps_follow_the_clock(
        self, purchase_service, course, clock
    ) -> None:
        clock.advance(timedelta(days=3))

        purchase = await purchase_service.record_purchase(
            uuid4(), PlanType.SINGLE, PurchaseTarget(course_id=course.course_id)
        )

        assert purchase.created_at == purchase.updated_at == START + timedelta(days=3)
