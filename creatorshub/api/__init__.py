"""
CreatorsHub API Layer.

This package handles all communication with the CreatorsHub HTTP API.
"""

from .auth import LoginOutcome, PendingVerification, SessionAuthenticator
from .client import CreatorsHubAPIClient

__all__ = [
    "CreatorsHubAPIClient",
    "LoginOutcome",
    "PendingVerification",
    "SessionAuthenticator",
]
