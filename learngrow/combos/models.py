"""Combo pricing result."""

from dataclasses import dataclass, field
from uuid import UUID

from learngrow.catalog.models import ComboDuration, Course


@dataclass(frozen=True)
class ComboPricing:
    """A combo bundle expanded into its courses and priced.

    Invariants: ``effective_price == original_total - discount_amount`` and
    ``0 <= effective_price <= original_total``.
    """

    combo_id: UUID
    name: str
    duration: ComboDuration
    courses: list[Course] = field(default_factory=list)
    original_total: int = 0
    effective_price: int = 0
    discount_amount: int = 0

    @property
    def course_ids(self) -> list[UUID]:
        return [course.course_id for course in self.courses]
