"""
Holds the signed-in identity in memory and mirrors it to a credential vault.
"""

import logging
import threading
from collections.abc import Callable

from pydantic import ValidationError

from creatorshub.exceptions import VaultError
from creatorshub.models.api import AuthSession, User
from creatorshub.models.config import DEFAULT_VAULT_NAMESPACE
from creatorshub.models.session import SessionSnapshot

from .vault import CredentialVault

log = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
CURRENT_USER_KEY = "currentUser"

SessionObserver = Callable[[SessionSnapshot], None]


class SessionManager:
    """
    The single authoritative holder of the current user and its tokens.

    Create one per process, call ``hydrate()`` once at startup, and pass it to
    whatever needs it. The user and both tokens always change together: after
    ``save_session``, ``logout`` or ``hydrate`` returns, readers see either the
    previous triple or the new one. In-memory state is authoritative for the
    rest of the process even when the vault rejects a write.

    State transitions are published to observers registered with
    ``subscribe`` (every change) or ``subscribe_authentication`` (only when the
    access token appears or disappears).
    """

    def __init__(
        self, vault: CredentialVault, namespace: str = DEFAULT_VAULT_NAMESPACE
    ):
        """
        Initializes an empty, signed-out session.

        Args:
            vault: Durable storage for the session entries.
            namespace: Prefix separating this installation's keys from others.
        """
        self._vault = vault
        self._namespace = namespace
        self._state = SessionSnapshot()
        self._lock = threading.RLock()
        self._observers: list[SessionObserver] = []

    def _key(self, name: str) -> str:
        return f"{self._namespace}.{name}"

    # Getters
    @property
    def current_user(self) -> User | None:
        return self._state.user

    @property
    def access_token(self) -> str | None:
        return self._state.access_token

    @property
    def refresh_token(self) -> str | None:
        return self._state.refresh_token

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def snapshot(self) -> SessionSnapshot:
        """Returns the current user and tokens as one consistent value."""
        return self._state

    # Observation
    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """
        Registers an observer called with the new snapshot after every change.

        Returns:
            A function that removes the observer again.
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def subscribe_authentication(
        self, observer: Callable[[bool], None]
    ) -> Callable[[], None]:
        """
        Registers an observer called only when the session becomes signed in
        or signed out. It receives the new ``is_authenticated`` value.
        """
        last = [self.is_authenticated]

        def on_change(snapshot: SessionSnapshot) -> None:
            if snapshot.is_authenticated != last[0]:
                last[0] = snapshot.is_authenticated
                observer(snapshot.is_authenticated)

        return self.subscribe(on_change)

    def _publish(self, previous: SessionSnapshot) -> None:
        """Notifies observers if the last mutation changed anything. Lock held."""
        current = self._state
        if current == previous:
            return
        for observer in list(self._observers):
            try:
                observer(current)
            except Exception as e:
                log.error(f"Session observer {observer!r} failed: {e}", exc_info=True)

    # Lifecycle
    def hydrate(self) -> SessionSnapshot:
        """
        Loads the session from the vault.

        Each entry is read and decoded on its own, so an unreadable user does
        not prevent the tokens from loading and vice versa. Missing entries
        leave their field empty.
        """
        with self._lock:
            previous = self._state
            self._state = SessionSnapshot(
                user=self._read_user(),
                access_token=self._read_text(ACCESS_TOKEN_KEY),
                refresh_token=self._read_text(REFRESH_TOKEN_KEY),
            )
            if self._state.user and not self._state.access_token:
                log.debug("Hydrated a stored user without an access token.")
            self._publish(previous)
            return self._state

    def save_session(self, user: User, access_token: str, refresh_token: str) -> bool:
        """
        Replaces the session with a new user and token pair and persists it.

        Every vault write is attempted even if an earlier one fails.

        Returns:
            True if all three entries were persisted.
        """
        with self._lock:
            previous = self._state
            self._state = SessionSnapshot(
                user=user, access_token=access_token, refresh_token=refresh_token
            )

            entries = {
                ACCESS_TOKEN_KEY: access_token.encode("utf-8"),
                REFRESH_TOKEN_KEY: refresh_token.encode("utf-8"),
                CURRENT_USER_KEY: user.model_dump_json(by_alias=True).encode("utf-8"),
            }
            persisted = True
            for name, value in entries.items():
                try:
                    self._vault.set(self._key(name), value)
                except VaultError as e:
                    persisted = False
                    log.warning(f"Could not persist '{name}': {e}")

            log.info(f"Session saved for [bold]{user.username}[/bold].")
            self._publish(previous)
            return persisted

    def save_auth_session(self, auth_session: AuthSession) -> bool:
        """Saves the result of a login or verification."""
        return self.save_session(
            auth_session.user, auth_session.access_token, auth_session.refresh_token
        )

    def replace_user(self, user: User, expected_access_token: str) -> bool:
        """
        Swaps in a refetched user, keeping both tokens as they are.

        Nothing changes unless the session still holds
        ``expected_access_token``, so a refetch that finishes after a logout
        or a re-login cannot bring the old session back.

        Returns:
            True if the user was replaced.
        """
        with self._lock:
            if self._state.access_token != expected_access_token:
                log.debug("Session changed during refetch; keeping the newer state.")
                return False

            previous = self._state
            self._state = SessionSnapshot(
                user=user,
                access_token=previous.access_token,
                refresh_token=previous.refresh_token,
            )
            try:
                self._vault.set(
                    self._key(CURRENT_USER_KEY),
                    user.model_dump_json(by_alias=True).encode("utf-8"),
                )
            except VaultError as e:
                log.warning(f"Could not persist '{CURRENT_USER_KEY}': {e}")

            self._publish(previous)
            return True

    def logout(self) -> None:
        """Clears the session from memory and removes every vault entry."""
        with self._lock:
            previous = self._state
            self._state = SessionSnapshot()

            for name in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, CURRENT_USER_KEY):
                try:
                    self._vault.delete(self._key(name))
                except VaultError as e:
                    log.warning(f"Could not delete '{name}': {e}")

            log.info("Session cleared.")
            self._publish(previous)

    def teardown(self) -> None:
        """Discards in-memory state. The vault keeps its copy."""
        with self._lock:
            self._state = SessionSnapshot()
            self._observers.clear()

    # Vault decoding
    def _read_text(self, name: str) -> str | None:
        raw = self._read(name)
        if raw is None:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            log.warning(f"Ignoring undecodable vault entry '{name}': {e}")
            return None

    def _read_user(self) -> User | None:
        raw = self._read(CURRENT_USER_KEY)
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError as e:
            log.warning(f"Ignoring undecodable vault entry '{CURRENT_USER_KEY}': {e}")
            return None

    def _read(self, name: str) -> bytes | None:
        try:
            return self._vault.get(self._key(name))
        except VaultError as e:
            log.warning(f"Could not read '{name}' from the vault: {e}")
            return None
