"""Bearer-token verification and role checks."""

from .dependencies import AdminUser, CurrentUser, get_current_user
from .permissions import UserRole, has_permission
from .schemas import AuthenticatedUser


__all__ = [
    "AdminUser",
    "AuthenticatedUser",
    "CurrentUser",
    "UserRole",
    "get_current_user",
    "has_permission",
]
