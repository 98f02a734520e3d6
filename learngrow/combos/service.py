"""Combo resolution and bundle pricing.

Business logic for:
- Expanding a combo bundle into its constituent courses
- Computing original total, discount and effective price

Pricing precedence: an explicit ``discount_price`` always wins over
``discount_percentage``.
"""

from uuid import UUID

from learngrow.catalog.models import ComboBundle, Course
from learngrow.catalog.service import CatalogService
from learngrow.core.logging import get_logger

from .models import ComboPricing


logger = get_logger(__name__)

MAX_DISCOUNT_PERCENTAGE = 100


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ComboError(Exception):
    """Base combo error."""

    def __init__(self, message: str, code: str = "combo_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ComboNotFoundError(ComboError):
    """Combo (or one of its courses) does not exist in the catalog."""

    def __init__(self, message: str = "Combo not found"):
        super().__init__(message, "combo_not_found")


class ComboInactiveError(ComboError):
    """Combo is no longer sold."""

    def __init__(self, message: str = "This bundle is no longer available"):
        super().__init__(message, "combo_inactive")


class EmptyComboError(ComboError):
    """Combo has no courses."""

    def __init__(self, message: str = "Combo contains no courses"):
        super().__init__(message, "combo_empty")


class InvalidComboPricingError(ComboError):
    """Stored bundle pricing is inconsistent."""

    def __init__(self, message: str = "Combo pricing is invalid"):
        super().__init__(message, "combo_invalid_pricing")


# ==============================================================================
# Pricing
# ==============================================================================


def _percentage_of(amount: int, percentage: int) -> int:
    """Integer percentage rounded half-up."""
    return (amount * percentage + 50) // 100


def price_combo(combo: ComboBundle, courses: list[Course]) -> ComboPricing:
    """Price a combo given its resolved courses.

    Pure and deterministic; ``courses`` must be the bundle's courses in
    bundle order.

    Raises:
        ComboInactiveError: If the bundle is not active
        EmptyComboError: If the bundle has no courses
        InvalidComboPricingError: If any price or discount is out of range,
            or the explicit discount price exceeds the sum of the courses
    """
    if not combo.is_active:
        raise ComboInactiveError
    if not courses:
        raise EmptyComboError

    for course in courses:
        if course.price <= 0:
            raise InvalidComboPricingError(
                f"Course {course.course_id} has non-positive price {course.price}"
            )

    original_total = sum(course.price for course in courses)

    if combo.discount_price is not None:
        if combo.discount_price < 0:
            raise InvalidComboPricingError("Discount price cannot be negative")
        discount_amount = original_total - combo.discount_price
        if discount_amount < 0:
            raise InvalidComboPricingError(
                f"Bundle price {combo.discount_price} exceeds the sum of its "
                f"courses {original_total}"
            )
        effective_price = combo.discount_price
    else:
        percentage = combo.discount_percentage or 0
        if not 0 <= percentage <= MAX_DISCOUNT_PERCENTAGE:
            raise InvalidComboPricingError(
                f"Discount percentage {percentage} is outside 0-100"
            )
        discount_amount = _percentage_of(original_total, percentage)
        effective_price = original_total - discount_amount

    return ComboPricing(
        combo_id=combo.combo_id,
        name=combo.name,
        duration=combo.duration,
        courses=list(courses),
        original_total=original_total,
        effective_price=effective_price,
        discount_amount=discount_amount,
    )


# ==============================================================================
# Combo Service
# ==============================================================================


class ComboService:
    """Resolves combo ids against the catalog."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    async def get_combo(self, combo_id: UUID) -> ComboBundle:
        """Get a combo bundle.

        Raises:
            ComboNotFoundError: If the combo does not exist
        """
        combo = await self.catalog.get_combo(combo_id)
        if combo is None:
            raise ComboNotFoundError
        return combo

    async def resolve_combo(self, combo_id: UUID) -> ComboPricing:
        """Expand a combo into priced courses.

        Safe to call repeatedly, for display and for checkout price checks.

        Raises:
            ComboNotFoundError: If the combo or one of its courses is missing
            ComboInactiveError / EmptyComboError / InvalidComboPricingError
        """
        combo = await self.get_combo(combo_id)
        if not combo.is_active:
            raise ComboInactiveError
        if not combo.course_ids:
            raise EmptyComboError

        courses: list[Course] = []
        for course_id, course in zip(
            combo.course_ids,
            await self.catalog.get_courses(combo.course_ids),
            strict=True,
        ):
            if course is None:
                raise ComboNotFoundError(
                    f"Course {course_id} in combo {combo_id} not found"
                )
            courses.append(course)

        pricing = price_combo(combo, courses)

        logger.info(
            "combo_resolved",
            combo_id=str(combo_id),
            course_count=len(courses),
            original_total=pricing.original_total,
            effective_price=pricing.effective_price,
        )

        return pricing
