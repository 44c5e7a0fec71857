"""
Storage Layer.

This package handles all data persistence: the credential vault, the
session that is mirrored into it, and the configuration file.
"""

from .config_manager import ConfigManager
from .session import SessionManager
from .vault import CredentialVault, FileVault, InMemoryVault

__all__ = [
    "ConfigManager",
    "CredentialVault",
    "FileVault",
    "InMemoryVault",
    "SessionManager",
]
