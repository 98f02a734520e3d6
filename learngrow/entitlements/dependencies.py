"""FastAPI dependencies for entitlements."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .rules import EntitlementError
from .service import EntitlementService


async def get_entitlement_service(request: Request) -> EntitlementService:
    """Get entitlement service from app state."""
    service = getattr(request.app.state, "entitlement_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Entitlement service not available",
        )
    return service


EntitlementServiceDep = Annotated[EntitlementService, Depends(get_entitlement_service)]


def handle_entitlement_error(error: EntitlementError) -> HTTPException:
    """Convert entitlement errors to HTTP exceptions.

    Malformed stored data is a server fault, never the caller's.
    """
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error.message,
    )
