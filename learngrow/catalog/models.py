"""Catalog models and Cassandra schema.

Courses and combo bundles are owned by the content side of the platform;
this service only reads them:
- Course: a single sellable course, priced in the smallest currency unit
- ComboBundle: a discounted, ordered set of courses with a shared duration
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID


if TYPE_CHECKING:
    from cassandra.cluster import Row


class ComboDuration(str, Enum):
    """Access window attached to a combo bundle."""

    ONE_MONTH = "1-month"
    TWO_MONTHS = "2-months"
    THREE_MONTHS = "3-months"
    LIFETIME = "lifetime"

    @property
    def months(self) -> int | None:
        """Number of calendar months, None for lifetime."""
        if self is ComboDuration.LIFETIME:
            return None
        return int(self.value.split("-")[0])

    @property
    def label(self) -> str:
        """Human readable label ("1 Month", "Lifetime")."""
        months = self.months
        if months is None:
            return "Lifetime"
        return f"{months} Month" if months == 1 else f"{months} Months"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    course_id UUID PRIMARY KEY,
    title TEXT,
    price BIGINT,
    duration_label TEXT,
    instructor_id UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COMBO_BUNDLES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.combo_bundles (
    combo_id UUID PRIMARY KEY,
    name TEXT,
    course_ids LIST<UUID>,
    discount_percentage INT,
    discount_price BIGINT,
    duration TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

CATALOG_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COMBO_BUNDLES_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Course:
    """A sellable course."""

    course_id: UUID
    title: str
    price: int
    duration_label: str | None = None
    instructor_id: UUID | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Course":
        """Create instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            title=row.title or "",
            price=row.price if row.price is not None else 0,
            duration_label=getattr(row, "duration_label", None),
            instructor_id=getattr(row, "instructor_id", None),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Course":
        """Rebuild from the cached dict form."""
        instructor_id = data.get("instructor_id")
        return cls(
            course_id=UUID(data["course_id"]),
            title=data["title"],
            price=data["price"],
            duration_label=data.get("duration_label"),
            instructor_id=UUID(instructor_id) if instructor_id else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "course_id": str(self.course_id),
            "title": self.title,
            "price": self.price,
            "duration_label": self.duration_label,
            "instructor_id": str(self.instructor_id) if self.instructor_id else None,
        }


@dataclass
class ComboBundle:
    """A discounted bundle of courses sold as one unit."""

    combo_id: UUID
    name: str
    course_ids: list[UUID] = field(default_factory=list)
    discount_percentage: int | None = None
    discount_price: int | None = None
    duration: ComboDuration = ComboDuration.LIFETIME
    is_active: bool = True

    @classmethod
    def from_row(cls, row: "Row") -> "ComboBundle":
        """Create instance from Cassandra row."""
        return cls(
            combo_id=row.combo_id,
            name=row.name or "",
            course_ids=list(row.course_ids or []),
            discount_percentage=row.discount_percentage,
            discount_price=row.discount_price,
            duration=ComboDuration(row.duration or ComboDuration.LIFETIME.value),
            is_active=bool(row.is_active),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComboBundle":
        """Rebuild from the cached dict form."""
        return cls(
            combo_id=UUID(data["combo_id"]),
            name=data["name"],
            course_ids=[UUID(cid) for cid in data["course_ids"]],
            discount_percentage=data.get("discount_percentage"),
            discount_price=data.get("discount_price"),
            duration=ComboDuration(data["duration"]),
            is_active=data["is_active"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "combo_id": str(self.combo_id),
            "name": self.name,
            "course_ids": [str(cid) for cid in self.course_ids],
            "discount_percentage": self.discount_percentage,
            "discount_price": self.discount_price,
            "duration": self.duration.value,
            "is_active": self.is_active,
        }

    def contains(self, course_id: UUID) -> bool:
        """Check if the bundle includes a course."""
        return course_id in self.course_ids
