"""Pydantic schemas for the authenticated caller."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .permissions import UserRole


class AuthenticatedUser(BaseModel):
    """Caller identity taken from a verified access token."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    role: UserRole
