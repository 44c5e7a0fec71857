"""
Credential vaults: persistent key-value stores for session secrets.
"""

import hashlib
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken

from creatorshub.exceptions import VaultError

log = logging.getLogger(__name__)


class CredentialVault(Protocol):
    """
    Independent get/set/delete by key. No cross-key transactions.

    Implementations raise ``VaultError`` when the backing store fails.
    Deleting a key that does not exist is a no-op.
    """

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryVault:
    """A dict-backed vault. Contents live as long as the instance."""

    def __init__(self):
        self._entries: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._entries[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def keys(self) -> "set[str]":
        with self._lock:
            return set(self._entries)


class FileVault:
    """
    Stores each entry encrypted in its own owner-only file under ``<dir>/vault``.

    Entries are Fernet tokens (AES-CBC + HMAC) under a key kept in
    ``vault.key`` beside them, created on first use. File names are hashes of
    the keys so that keys never leak into the directory listing. Writes go
    through a temporary file and an atomic rename, so an entry is either the
    old value or the new one.
    """

    KEY_FILENAME = "vault.key"

    def __init__(self, directory_path: Path):
        """
        Initializes the vault, generating its encryption key if none exists.

        Args:
            directory_path: The directory that will hold the ``vault`` folder.

        Raises:
            VaultError: The directory or the key file cannot be prepared, or
            the key file does not hold a valid key.
        """
        self.vault_dir = directory_path / "vault"
        try:
            self.vault_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(self.vault_dir, 0o700)
            self._fernet = Fernet(self._load_or_create_key())
        except OSError as e:
            raise VaultError(f"Cannot prepare vault directory: {e}") from e
        except ValueError as e:
            raise VaultError(f"Vault key file is corrupt: {e}") from e
        log.debug(f"Using credential vault at {self.vault_dir}")

    @property
    def key_path(self) -> Path:
        return self.vault_dir / self.KEY_FILENAME

    def _load_or_create_key(self) -> bytes:
        """Reads the vault key, creating it exclusively if it does not exist."""
        try:
            fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            return self.key_path.read_bytes().strip()

        key = Fernet.generate_key()
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        log.debug("Generated a new vault key.")
        return key

    def _get_entry_path(self, key: str) -> Path:
        """Generates a safe filename for a given key."""
        hashed_key = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.vault_dir / f"{hashed_key}.bin"

    def get(self, key: str) -> bytes | None:
        entry_path = self._get_entry_path(key)
        try:
            token = entry_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise VaultError(f"Vault read failed for '{key}': {e}") from e

        try:
            return self._fernet.decrypt(token)
        except InvalidToken as e:
            raise VaultError(f"Vault entry '{key}' cannot be decrypted.") from e

    def set(self, key: str, value: bytes) -> None:
        entry_path = self._get_entry_path(key)
        token = self._fernet.encrypt(value)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.vault_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(token)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, entry_path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise VaultError(f"Vault write failed for '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._get_entry_path(key).unlink(missing_ok=True)
        except OSError as e:
            raise VaultError(f"Vault delete failed for '{key}': {e}") from e
