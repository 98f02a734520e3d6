"""Pydantic schemas for combo pricing."""

from uuid import UUID

from pydantic import BaseModel, Field

from learngrow.catalog.models import ComboDuration, Course

from .models import ComboPricing


class ComboCourseResponse(BaseModel):
    """A course inside a priced bundle."""

    course_id: UUID
    title: str
    price: int = Field(..., description="Price in the smallest currency unit")
    duration_label: str | None = None

    @classmethod
    def from_course(cls, course: Course) -> "ComboCourseResponse":
        return cls(
            course_id=course.course_id,
            title=course.title,
            price=course.price,
            duration_label=course.duration_label,
        )


class ComboPricingResponse(BaseModel):
    """Resolved bundle with its pricing breakdown."""

    combo_id: UUID
    name: str
    duration: ComboDuration
    duration_label: str
    courses: list[ComboCourseResponse]
    original_total: int
    discount_amount: int
    effective_price: int

    @classmethod
    def from_pricing(cls, pricing: ComboPricing) -> "ComboPricingResponse":
        """Create response from a ComboPricing result."""
        return cls(
            combo_id=pricing.combo_id,
            name=pricing.name,
            duration=pricing.duration,
            duration_label=pricing.duration.label,
            courses=[ComboCourseResponse.from_course(c) for c in pricing.courses],
            original_total=pricing.original_total,
            discount_amount=pricing.discount_amount,
            effective_price=pricing.effective_price,
        )
