"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, field_validator

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_VAULT_NAMESPACE = "creatorshub"


class ClientConfig(BaseModel):
    """A validated configuration model for the application."""

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    vault_namespace: str = DEFAULT_VAULT_NAMESPACE

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the endpoint is an http(s) origin and strips any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Ensures a reasonable request timeout."""
        if v < 1 or v > 300:
            raise ValueError("Timeout must be between 1 and 300 seconds.")
        return v

    @field_validator("vault_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v:
            raise ValueError("Vault namespace cannot be empty.")
        if "/" in v or "\\" in v:
            raise ValueError("Vault namespace cannot contain path separators.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
