"""
Drives the sign-in flows on top of the API client and keeps the session
manager up to date with their results.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import aiofiles

from creatorshub.exceptions import LocalIOError, NotAuthenticatedError, ServerError
from creatorshub.models.api import AuthSession, RegistrationResult, Track, User

if TYPE_CHECKING:
    from creatorshub.storage.session import SessionManager

    from .client import CreatorsHubAPIClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingVerification:
    """
    An account that must verify its email before it can sign in.

    Held by the caller only. It is never written to the vault, so it does not
    survive a restart.
    """

    user_id: str
    message: str = "Email not verified."


@dataclass(frozen=True)
class LoginOutcome:
    """Either a saved session or the account that still needs verifying."""

    session: Optional[AuthSession] = None
    pending_verification: Optional[PendingVerification] = None

    @property
    def needs_verification(self) -> bool:
        return self.pending_verification is not None


class SessionAuthenticator:
    """
    Manages the authentication flow for the CreatorsHub API client.
    """

    def __init__(
        self, api_client: "CreatorsHubAPIClient", session_manager: "SessionManager"
    ):
        """
        Initializes the authenticator.

        Args:
            api_client: The client used for every request.
            session_manager: Receives the session after login or verification.
        """
        self._api_client = api_client
        self._session_manager = session_manager

    async def register(
        self, email: str, password: str, username: str, display_name: str
    ) -> RegistrationResult:
        """
        Creates an account. No session exists until the emailed code is verified.
        """
        log.info(f"Registering account: {username}")
        result = await self._api_client.register(
            email, password, username, display_name
        )
        log.debug(f"Registered user {result.user_id}, verification pending.")
        return result

    async def login(self, email: str, password: str) -> LoginOutcome:
        """
        Signs in with email and password.

        An unverified account does not raise; the outcome carries the user ID
        to verify instead. Every other failure propagates.
        """
        log.info(f"Logging in as: {email}")
        try:
            auth_session = await self._api_client.login(email, password)
        except ServerError as e:
            if e.needs_verification:
                log.info("Account email is not verified yet.")
                return LoginOutcome(
                    pending_verification=PendingVerification(user_id=e.user_id)
                )
            raise

        self._session_manager.save_auth_session(auth_session)
        return LoginOutcome(session=auth_session)

    async def verify(self, user_id: str, code: str) -> AuthSession:
        """Submits the emailed code and signs in on success."""
        auth_session = await self._api_client.verify_code(user_id, code)
        self._session_manager.save_auth_session(auth_session)
        log.info(f"Verified and signed in as: {auth_session.user.username}")
        return auth_session

    async def refresh_current_user(self) -> User:
        """
        Refetches the signed-in user and stores it alongside the existing tokens.

        If the session was logged out or replaced while the request was in
        flight, the fetched user is returned but not stored.
        """
        access_token = self._session_manager.access_token
        if not access_token:
            raise NotAuthenticatedError("Not logged in.")

        user = await self._api_client.get_current_user(access_token)
        self._session_manager.replace_user(user, expected_access_token=access_token)
        return user

    async def upload_track(
        self,
        file_path: Path,
        title: str,
        description: str,
        cover_path: Optional[Path] = None,
    ) -> Track:
        """
        Uploads a track as the signed-in user.

        Args:
            file_path: Local audio file.
            title: Track title.
            description: Track description.
            cover_path: Optional local JPEG used as cover art.

        Raises:
            NotAuthenticatedError: No session is active.
            LocalIOError: The audio file or the cover image could not be read.
        """
        access_token = self._session_manager.access_token
        if not access_token:
            raise NotAuthenticatedError("Not logged in.")

        cover_image = None
        if cover_path is not None:
            try:
                async with aiofiles.open(cover_path, "rb") as f:
                    cover_image = await f.read()
            except OSError as e:
                raise LocalIOError(f"Could not read '{cover_path}': {e}") from e

        return await self._api_client.upload_track(
            file_path,
            title,
            description,
            cover_image,
            access_token=access_token,
        )

    def logout(self) -> None:
        self._session_manager.logout()
