"""Access window and status rules.

Every function here is pure: results depend only on the arguments, and
"now" is always passed in. Callers (gates, renewal prompts, progress bars)
share these rules instead of redoing date math.

Duration rule, applied from the approval instant:
- single: lifetime
- quarterly: 90 days
- combo: the bundle's duration (calendar months) or lifetime
- kit / school: lifetime unless they reference a bundle with a duration

Status rule:
- payment not approved -> none
- no end date -> active
- remaining days <= 0 -> expired, 1..7 -> expiring, > 7 -> active
"""

import calendar
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from uuid import UUID

from learngrow.catalog.models import ComboBundle, ComboDuration
from learngrow.purchases.models import PaymentStatus, PlanType, Purchase

from .models import Entitlement, EntitlementStatus


EXPIRING_THRESHOLD_DAYS = 7
QUARTERLY_DURATION_DAYS = 90
ONE_DAY = timedelta(days=1)

_BUNDLE_PLANS = frozenset({PlanType.COMBO, PlanType.KIT, PlanType.SCHOOL})


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EntitlementError(Exception):
    """Base entitlement error."""

    def __init__(self, message: str, code: str = "entitlement_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidEntitlementStateError(EntitlementError):
    """Stored purchase data cannot produce a trustworthy access decision."""

    def __init__(self, message: str = "Invalid entitlement state"):
        super().__init__(message, "invalid_entitlement_state")


# ==============================================================================
# Date arithmetic
# ==============================================================================


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidEntitlementStateError(f"{name} must be timezone-aware")


def add_months(start: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def compute_access_end_date(
    plan_type: PlanType,
    start_date: datetime,
    combo_duration: ComboDuration | None = None,
    quarterly_days: int = QUARTERLY_DURATION_DAYS,
) -> datetime | None:
    """Compute when access ends for a plan approved at ``start_date``.

    Returns:
        End of the access window, or None for lifetime access
    """
    _require_aware(start_date, "start_date")

    if plan_type == PlanType.QUARTERLY:
        return start_date + timedelta(days=quarterly_days)

    if plan_type in _BUNDLE_PLANS and combo_duration is not None:
        months = combo_duration.months
        return None if months is None else add_months(start_date, months)

    # single, combo without a resolvable duration, plain kit/school
    return None


def remaining_days(now: datetime, access_end_date: datetime | None) -> int | None:
    """Whole days left, rounded up; None for lifetime.

    May be zero or negative once the window has passed.
    """
    if access_end_date is None:
        return None
    return -((now - access_end_date) // ONE_DAY)


def derive_status(
    now: datetime,
    access_start_date: datetime | None,
    access_end_date: datetime | None,
    payment_status: PaymentStatus,
    expiring_threshold_days: int = EXPIRING_THRESHOLD_DAYS,
) -> EntitlementStatus:
    """Classify access at ``now``.

    Raises:
        InvalidEntitlementStateError: If the window is malformed
    """
    if payment_status != PaymentStatus.APPROVED:
        return EntitlementStatus.NONE

    validate_window(access_start_date, access_end_date)
    if access_end_date is None:
        return EntitlementStatus.ACTIVE

    days = remaining_days(now, access_end_date)
    if days <= 0:
        return EntitlementStatus.EXPIRED
    if days <= expiring_threshold_days:
        return EntitlementStatus.EXPIRING
    return EntitlementStatus.ACTIVE


def validate_window(
    access_start_date: datetime | None,
    access_end_date: datetime | None,
) -> None:
    """Fail fast on windows that would produce a silently wrong status."""
    if access_start_date is None:
        raise InvalidEntitlementStateError("Approved access has no start date")
    _require_aware(access_start_date, "access_start_date")
    if access_end_date is None:
        return
    _require_aware(access_end_date, "access_end_date")
    if access_end_date < access_start_date:
        raise InvalidEntitlementStateError(
            f"Access ends ({access_end_date.isoformat()}) before it starts "
            f"({access_start_date.isoformat()})"
        )


def progress_fraction(
    now: datetime,
    access_start_date: datetime,
    access_end_date: datetime | None,
) -> float | None:
    """Elapsed share of the access window in [0, 1]; None for lifetime.

    For progress bars only, never for gating.
    """
    if access_end_date is None:
        return None
    total = access_end_date - access_start_date
    if total <= timedelta(0):
        return 1.0
    elapsed = now - access_start_date
    return min(1.0, max(0.0, elapsed / total))


def has_valid_access(entitlement: Entitlement) -> bool:
    """True iff the entitlement is active or expiring."""
    return entitlement.has_valid_access


# ==============================================================================
# Display helpers
# ==============================================================================


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} left"


def format_remaining_access(entitlement: Entitlement) -> str:
    """Short label for badges: "Lifetime access", "3 days left", "Expired"."""
    if entitlement.status == EntitlementStatus.NONE:
        return "No access"
    if entitlement.status == EntitlementStatus.EXPIRED:
        return "Expired"
    days = entitlement.remaining_days
    if days is None:
        return "Lifetime access"
    if days <= EXPIRING_THRESHOLD_DAYS:
        return _plural(days, "day")
    if days <= 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


def duration_label(duration: ComboDuration) -> str:
    """Bundle duration as shown on the storefront ("2 Months", "Lifetime")."""
    return duration.label


# ==============================================================================
# Purchase -> Entitlement
# ==============================================================================


def purchase_covers_course(
    purchase: Purchase,
    course_id: UUID,
    combos: Mapping[UUID, ComboBundle],
) -> bool:
    """Check whether a purchase applies to a course.

    Quarterly plans cover every course. Bundle-backed plans cover the courses
    of their bundle; a bundle missing from ``combos`` covers nothing.
    """
    if purchase.plan_type == PlanType.QUARTERLY:
        return True
    if purchase.course_id is not None and purchase.course_id == course_id:
        return True
    if purchase.combo_id is not None:
        combo = combos.get(purchase.combo_id)
        return combo is not None and combo.contains(course_id)
    return False


def build_entitlement(
    purchase: Purchase,
    now: datetime,
    course_id: UUID | None = None,
    combo: ComboBundle | None = None,
    expiring_threshold_days: int = EXPIRING_THRESHOLD_DAYS,
    quarterly_days: int = QUARTERLY_DURATION_DAYS,
) -> Entitlement:
    """Derive the entitlement a single purchase grants at ``now``.

    The access window is recomputed from the start date and the current
    duration rule; the end date stored on the purchase is ignored.

    Raises:
        InvalidEntitlementStateError: On negative price or malformed dates
    """
    if purchase.price < 0:
        raise InvalidEntitlementStateError(
            f"Purchase {purchase.purchase_id} has negative price {purchase.price}"
        )
    _require_aware(now, "now")

    base = {
        "course_id": course_id,
        "purchase_id": purchase.purchase_id,
        "purchase_type": purchase.plan_type,
        "combo_id": purchase.combo_id,
        "payment_status": purchase.payment_status,
    }

    if purchase.payment_status != PaymentStatus.APPROVED:
        return Entitlement(status=EntitlementStatus.NONE, **base)

    start = purchase.start_date
    validate_window(start, None)
    end = compute_access_end_date(
        purchase.plan_type,
        start,
        combo.duration if combo is not None else None,
        quarterly_days=quarterly_days,
    )
    status = derive_status(
        now, start, end, purchase.payment_status, expiring_threshold_days
    )
    days = remaining_days(now, end)

    return Entitlement(
        status=status,
        access_start_date=start,
        access_end_date=end,
        remaining_days=None if days is None else max(days, 0),
        progress=progress_fraction(now, start, end),
        **base,
    )


def _surface_rank(entitlement: Entitlement) -> tuple:
    """Sort key: higher ranks are surfaced first.

    Within a tier the elements line up by type, so end dates are only ever
    compared with end dates.
    """
    if entitlement.is_lifetime:
        return (3, True, None)
    if entitlement.has_valid_access:
        return (3, False, entitlement.access_end_date)
    if entitlement.status == EntitlementStatus.EXPIRED:
        return (2, False, entitlement.access_end_date)
    # Pending/rejected: surfaced only so the UI can explain the payment state
    pending = entitlement.payment_status == PaymentStatus.PENDING
    return (1, pending, None)


def select_entitlement(
    candidates: Iterable[Entitlement],
    course_id: UUID | None = None,
) -> Entitlement:
    """Pick the entitlement to surface from all applicable ones.

    Access is the logical OR of the candidates. A valid lifetime entitlement
    wins, then the valid one ending furthest in the future, then the most
    recently expired one, then a pending/rejected purchase.
    """
    best: Entitlement | None = None
    best_rank: tuple | None = None
    for candidate in candidates:
        rank = _surface_rank(candidate)
        if best_rank is None or rank > best_rank:
            best, best_rank = candidate, rank
    return best if best is not None else Entitlement.none(course_id)


def resolve_entitlement(
    course_id: UUID,
    purchases: Iterable[Purchase],
    combos: Mapping[UUID, ComboBundle],
    now: datetime,
    expiring_threshold_days: int = EXPIRING_THRESHOLD_DAYS,
    quarterly_days: int = QUARTERLY_DURATION_DAYS,
) -> Entitlement:
    """Resolve a user's entitlement to a course from all their purchases."""
    candidates = [
        build_entitlement(
            purchase,
            now,
            course_id=course_id,
            combo=combos.get(purchase.combo_id) if purchase.combo_id else None,
            expiring_threshold_days=expiring_threshold_days,
            quarterly_days=quarterly_days,
        )
        for purchase in purchases
        if purchase_covers_course(purchase, course_id, combos)
    ]
    return select_entitlement(candidates, course_id)
