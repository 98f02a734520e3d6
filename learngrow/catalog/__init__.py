"""Course and combo bundle catalog (read-only)."""

from .models import ComboBundle, ComboDuration, Course
from .service import CatalogService


__all__ = [
    "CatalogService",
    "ComboBundle",
    "ComboDuration",
    "Course",
]
