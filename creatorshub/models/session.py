"""
Immutable view of the signed-in identity handed to session observers.
"""

from dataclasses import dataclass

from .api import User


@dataclass(frozen=True)
class SessionSnapshot:
    """The user and both tokens as they stood after the last session mutation."""

    user: User | None = None
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None
