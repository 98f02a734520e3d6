"""HTTP endpoints for combo bundles.

Provides:
- GET /v1/combos/{combo_id}/pricing - Resolved bundle with pricing breakdown
"""

from uuid import UUID

from fastapi import APIRouter

from learngrow.auth.dependencies import CurrentUser

from .dependencies import ComboServiceDep, handle_combo_error
from .schemas import ComboPricingResponse
from .service import ComboError


router = APIRouter(prefix="/v1/combos", tags=["combos"])


@router.get(
    "/{combo_id}/pricing",
    response_model=ComboPricingResponse,
    summary="Resolve a combo bundle and its price",
)
async def get_combo_pricing(
    combo_id: UUID,
    service: ComboServiceDep,
    _current_user: CurrentUser,
) -> ComboPricingResponse:
    """Expand a bundle into its courses and compute the price to charge."""
    try:
        pricing = await service.resolve_combo(combo_id)
    except ComboError as e:
        raise handle_combo_error(e) from e
    return ComboPricingResponse.from_pricing(pricing)
