"""FastAPI dependencies for the purchase ledger."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PurchaseError, PurchaseService


async def get_purchase_service(request: Request) -> PurchaseService:
    """Get purchase service from app state."""
    service = getattr(request.app.state, "purchase_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Purchase service not available",
        )
    return service


PurchaseServiceDep = Annotated[PurchaseService, Depends(get_purchase_service)]


def handle_purchase_error(error: PurchaseError) -> HTTPException:
    """Convert purchase errors to HTTP exceptions."""
    status_map = {
        "invalid_plan": status.HTTP_400_BAD_REQUEST,
        "purchase_not_found": status.HTTP_404_NOT_FOUND,
        "already_settled": status.HTTP_409_CONFLICT,
        "duplicate_purchase": status.HTTP_409_CONFLICT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
