"""HTTP endpoints for the purchase ledger.

Provides:
- POST /v1/purchases - Record a purchase for the current user
- GET  /v1/purchases/my - List own purchases
- Admin endpoints for settling purchases and reading any user's ledger
"""

from uuid import UUID

from fastapi import APIRouter, status

from learngrow.auth.dependencies import AdminUser, CurrentUser
from learngrow.combos.dependencies import handle_combo_error
from learngrow.combos.service import ComboError

from .dependencies import PurchaseServiceDep, handle_purchase_error
from .models import PaymentStatus, PlanType, PurchaseTarget
from .schemas import (
    PurchaseListResponse,
    PurchaseResponse,
    RecordPurchaseRequest,
    SettlePurchaseRequest,
)
from .service import PurchaseError


router = APIRouter(prefix="/v1/purchases", tags=["purchases"])
admin_router = APIRouter(prefix="/v1/admin/purchases", tags=["admin-purchases"])


# ==============================================================================
# Buyer Endpoints
# ==============================================================================


@router.post(
    "",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a purchase",
)
async def record_purchase(
    request: RecordPurchaseRequest,
    service: PurchaseServiceDep,
    current_user: CurrentUser,
) -> PurchaseResponse:
    """Record a pending purchase for the current user.

    Combo purchases are charged the bundle's current effective price.
    """
    try:
        purchase = await service.record_purchase(
            user_id=current_user.id,
            plan_type=request.plan_type,
            target=PurchaseTarget(
                course_id=request.course_id,
                combo_id=request.combo_id,
            ),
            price=request.price,
        )
    except PurchaseError as e:
        raise handle_purchase_error(e) from e
    except ComboError as e:
        raise handle_combo_error(e) from e

    return PurchaseResponse.from_purchase(purchase)


@router.get(
    "/my",
    response_model=PurchaseListResponse,
    summary="List my purchases",
)
async def list_my_purchases(
    service: PurchaseServiceDep,
    current_user: CurrentUser,
    plan_type: PlanType | None = None,
    payment_status: PaymentStatus | None = None,
) -> PurchaseListResponse:
    """List the current user's purchases, newest first."""
    purchases = await service.list_user_purchases(
        current_user.id,
        plan_type=plan_type,
        status=payment_status,
    )
    return PurchaseListResponse.from_purchases(purchases)


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@admin_router.post(
    "/{purchase_id}/settle",
    response_model=PurchaseResponse,
    summary="Settle a pending purchase",
)
async def settle_purchase(
    purchase_id: UUID,
    request: SettlePurchaseRequest,
    service: PurchaseServiceDep,
    _admin: AdminUser,
) -> PurchaseResponse:
    """Approve or reject a pending purchase.

    A purchase is settled once; later attempts get 409.
    """
    try:
        purchase = await service.settle_purchase(purchase_id, request.outcome)
    except PurchaseError as e:
        raise handle_purchase_error(e) from e

    return PurchaseResponse.from_purchase(purchase)


@admin_router.get(
    "/user/{user_id}",
    response_model=PurchaseListResponse,
    summary="List a user's purchases",
)
async def list_user_purchases(
    user_id: UUID,
    service: PurchaseServiceDep,
    _admin: AdminUser,
    plan_type: PlanType | None = None,
    payment_status: PaymentStatus | None = None,
) -> PurchaseListResponse:
    """List any user's purchases, newest first."""
    purchases = await service.list_user_purchases(
        user_id,
        plan_type=plan_type,
        status=payment_status,
    )
    return PurchaseListResponse.from_purchases(purchases)
