"""HTTP endpoints for entitlements.

Provides:
- GET /v1/entitlements/my - Own entitlements, one per course
- GET /v1/entitlements/course/{course_id} - Own access to a course
- GET /v1/entitlements/subscription - Own quarterly plan state
- GET /v1/admin/entitlements/{user_id}/course/{course_id} - Any user's access
"""

from uuid import UUID

from fastapi import APIRouter

from learngrow.auth.dependencies import AdminUser, CurrentUser

from .dependencies import EntitlementServiceDep, handle_entitlement_error
from .rules import EntitlementError
from .schemas import EntitlementListResponse, EntitlementResponse


router = APIRouter(prefix="/v1/entitlements", tags=["entitlements"])
admin_router = APIRouter(prefix="/v1/admin/entitlements", tags=["admin-entitlements"])


@router.get(
    "/my",
    response_model=EntitlementListResponse,
    summary="List my entitlements",
)
async def list_my_entitlements(
    service: EntitlementServiceDep,
    current_user: CurrentUser,
) -> EntitlementListResponse:
    """List the current user's access, one entry per purchased course."""
    try:
        entitlements = await service.list_entitlements(current_user.id)
    except EntitlementError as e:
        raise handle_entitlement_error(e) from e

    return EntitlementListResponse(
        items=[EntitlementResponse.from_entitlement(e) for e in entitlements],
        total=len(entitlements),
    )


@router.get(
    "/course/{course_id}",
    response_model=EntitlementResponse,
    summary="Check my access to a course",
)
async def get_my_course_entitlement(
    course_id: UUID,
    service: EntitlementServiceDep,
    current_user: CurrentUser,
) -> EntitlementResponse:
    """Resolve the current user's access to a course from all purchases."""
    try:
        entitlement = await service.get_entitlement(current_user.id, course_id)
    except EntitlementError as e:
        raise handle_entitlement_error(e) from e

    return EntitlementResponse.from_entitlement(entitlement)


@router.get(
    "/subscription",
    response_model=EntitlementResponse,
    summary="My quarterly subscription",
)
async def get_my_subscription(
    service: EntitlementServiceDep,
    current_user: CurrentUser,
) -> EntitlementResponse:
    """State of the current user's all-access plan, for renewal prompts."""
    try:
        entitlement = await service.get_subscription(current_user.id)
    except EntitlementError as e:
        raise handle_entitlement_error(e) from e

    return EntitlementResponse.from_entitlement(entitlement)


@admin_router.get(
    "/{user_id}/course/{course_id}",
    response_model=EntitlementResponse,
    summary="Check a user's access to a course",
)
async def get_user_course_entitlement(
    user_id: UUID,
    course_id: UUID,
    service: EntitlementServiceDep,
    _admin: AdminUser,
) -> EntitlementResponse:
    """Resolve any user's access to a course (support tooling)."""
    try:
        entitlement = await service.get_entitlement(user_id, course_id)
    except EntitlementError as e:
        raise handle_entitlement_error(e) from e

    return EntitlementResponse.from_entitlement(entitlement)
