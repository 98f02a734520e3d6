"""Entitlement engine.

Turns settled purchases into time-bounded access:
- EntitlementStatus: ACTIVE, EXPIRING, EXPIRED, NONE
- Pure rules (duration, status, selection) in ``rules``
- EntitlementService loads purchases and bundles, then applies the rules
"""

from .models import Entitlement, EntitlementStatus
from .rules import (
    EXPIRING_THRESHOLD_DAYS,
    QUARTERLY_DURATION_DAYS,
    EntitlementError,
    InvalidEntitlementStateError,
    compute_access_end_date,
    derive_status,
    duration_label,
    format_remaining_access,
    has_valid_access,
    progress_fraction,
    resolve_entitlement,
    select_entitlement,
)
from .service import EntitlementService


__all__ = [
    "EXPIRING_THRESHOLD_DAYS",
    "QUARTERLY_DURATION_DAYS",
    "Entitlement",
    "EntitlementError",
    "EntitlementService",
    "EntitlementStatus",
    "InvalidEntitlementStateError",
    "compute_access_end_date",
    "derive_status",
    "duration_label",
    "format_remaining_access",
    "has_valid_access",
    "progress_fraction",
    "resolve_entitlement",
    "select_entitlement",
]
