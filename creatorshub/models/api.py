"""
Pydantic models for the CreatorsHub API payloads.

Attributes are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Shared configuration for every wire model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class User(ApiModel):
    """Server-issued identity. Only replaced by an explicit refetch."""

    id: str
    username: str
    display_name: str
    bio: str | None = None
    profile_image_url: str | None = None


class AuthSession(ApiModel):
    """The authenticated result of a login or a successful verification."""

    user: User
    access_token: str
    refresh_token: str


class RegistrationResult(ApiModel):
    """Returned by registration, before the email is verified. Carries no tokens."""

    user_id: str
    message: str
    expires_at: str | None = None


class Track(ApiModel):
    track_id: str
    user_id: str
    title: str
    description: str | None = None
    file_url: str
    cover_image_url: str | None = None


class ApiErrorBody(ApiModel):
    """Body of any non-2xx response: ``{"error": ..., "userId": ...}``."""

    error: str
    user_id: str | None = None
