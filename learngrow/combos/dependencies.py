"""FastAPI dependencies for combo resolution."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ComboError, ComboService


async def get_combo_service(request: Request) -> ComboService:
    """Get combo service from app state."""
    service = getattr(request.app.state, "combo_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Combo service not available",
        )
    return service


ComboServiceDep = Annotated[ComboService, Depends(get_combo_service)]


def handle_combo_error(error: ComboError) -> HTTPException:
    """Convert combo errors to HTTP exceptions."""
    status_map = {
        "combo_not_found": status.HTTP_404_NOT_FOUND,
        "combo_inactive": status.HTTP_410_GONE,
        "combo_empty": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "combo_invalid_pricing": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
