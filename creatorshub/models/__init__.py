"""
Data Models Layer.

This package contains the Pydantic models for the API payloads, the
session snapshot handed to observers, and the client configuration.
"""

from .api import ApiErrorBody, AuthSession, RegistrationResult, Track, User
from .config import ClientConfig
from .session import SessionSnapshot

__all__ = [
    "ApiErrorBody",
    "AuthSession",
    "ClientConfig",
    "RegistrationResult",
    "SessionSnapshot",
    "Track",
    "User",
]
