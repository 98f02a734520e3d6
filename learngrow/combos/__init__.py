"""Combo bundle resolution and pricing.

- Expands a bundle into its ordered courses
- Prices it: explicit discount price first, else percentage off the total
"""

from .models import ComboPricing
from .service import (
    ComboError,
    ComboInactiveError,
    ComboNotFoundError,
    ComboService,
    EmptyComboError,
    InvalidComboPricingError,
    price_combo,
)


__all__ = [
    "ComboError",
    "ComboInactiveError",
    "ComboNotFoundError",
    "ComboPricing",
    "ComboService",
    "EmptyComboError",
    "InvalidComboPricingError",
    "price_combo",
]
