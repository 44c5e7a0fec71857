"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"


class CreatorsHubError(Exception):
    """Base exception for all application-specific errors."""


class TransportError(CreatorsHubError):
    """Raised when no usable response was obtained from the server."""


class ServerError(CreatorsHubError):
    """
    Raised for any non-2xx response.

    When the body carried a structured error, ``code`` holds the server's error
    string and ``user_id`` is set for the unverified-account case. Otherwise
    only ``http_status`` is known.
    """

    def __init__(
        self,
        http_status: int,
        code: str | None = None,
        user_id: str | None = None,
    ):
        self.http_status = http_status
        self.code = code
        self.user_id = user_id
        super().__init__(code or f"Server returned HTTP {http_status}.")

    @property
    def needs_verification(self) -> bool:
        """True when the account exists but its email has not been verified yet."""
        return self.code == EMAIL_NOT_VERIFIED and bool(self.user_id)


class DecodeError(CreatorsHubError):
    """Raised when a 2xx response body does not match the expected shape."""


class LocalIOError(CreatorsHubError):
    """Raised when a local file cannot be read before a request is sent."""


class VaultError(CreatorsHubError):
    """Raised when the credential vault cannot read, write, or delete an entry."""


class NotAuthenticatedError(CreatorsHubError):
    """Raised when an operation needs an access token but no session exists."""


class ConfigurationError(CreatorsHubError):
    """Raised for issues related to configuration loading or validation."""
