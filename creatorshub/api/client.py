"""
Async client for the CreatorsHub HTTP API with uniform error classification.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Optional, TypeVar

import aiofiles
import aiohttp
from pydantic import BaseModel, ValidationError

from creatorshub import __version__
from creatorshub.exceptions import DecodeError, LocalIOError, ServerError, TransportError
from creatorshub.models.api import (
    ApiErrorBody,
    AuthSession,
    RegistrationResult,
    Track,
    User,
)
from creatorshub.models.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS

from .multipart import (
    FilePart,
    audio_mime_type,
    build_multipart_body,
    content_type_header,
    new_boundary,
)

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

COVER_IMAGE_FILENAME = "cover.jpg"
COVER_IMAGE_MIME_TYPE = "image/jpeg"


class CreatorsHubAPIClient:
    """
    Async client for the CreatorsHub JSON API.

    Every public method performs exactly one request and either returns the
    decoded payload or raises one of:

    - ``TransportError``: no response was obtained, or a 2xx came back empty.
    - ``ServerError``: the status was outside [200, 300).
    - ``DecodeError``: a 2xx body did not match the expected shape.
    - ``LocalIOError``: a local file could not be read; nothing was sent.

    Nothing is retried. Retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initializes the API client.

        Args:
            base_url: Origin of the API, e.g. ``http://localhost:3000``.
            timeout_seconds: Total time allowed for one request.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "CreatorsHubAPIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": f"creatorshub-client/{__version__}",
                    "Accept": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[dict[str, Any]] = None,
        data: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> bytes:
        """
        Sends one request and returns the raw body of a 2xx response.

        Raises:
            TransportError: The request failed before a response arrived, or a
            2xx response carried no body.
            ServerError: The response status was not 2xx.
        """
        await self._initialize_session()

        request_headers = dict(headers or {})
        if access_token:
            request_headers["Authorization"] = f"Bearer {access_token}"

        start_time = time.monotonic()
        try:
            async with self._session.request(
                method,
                self.base_url + path,
                json=json_body,
                data=data,
                headers=request_headers,
            ) as r:
                body = await r.read()
                status = r.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"{method} {path} failed before a response: {e!r}")
            raise TransportError(f"Could not reach the server: {e}") from e

        duration_ms = (time.monotonic() - start_time) * 1000
        log.debug(f"{method} {path} -> {status} ({duration_ms:.0f} ms)")

        if not 200 <= status < 300:
            raise self._server_error(status, body)

        if not body:
            raise TransportError(f"{method} {path} returned no response body.")

        return body

    @staticmethod
    def _server_error(status: int, body: bytes) -> ServerError:
        """Builds a ServerError, using the structured error body when it decodes."""
        try:
            api_error = ApiErrorBody.model_validate_json(body)
        except ValidationError:
            log.debug(f"Error body for HTTP {status} is not structured.")
            return ServerError(http_status=status)
        return ServerError(
            http_status=status, code=api_error.error, user_id=api_error.user_id
        )

    @staticmethod
    def _decode(model: type[ModelT], body: bytes) -> ModelT:
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(
                f"Unexpected response shape for {model.__name__}: "
                f"{e.error_count()} validation error(s)."
            ) from e

    # Public API Methods
    async def register(
        self, email: str, password: str, username: str, display_name: str
    ) -> RegistrationResult:
        body = await self._request(
            "POST",
            "/auth/register",
            json_body={
                "email": email,
                "password": password,
                "username": username,
                "displayName": display_name,
            },
        )
        return self._decode(RegistrationResult, body)

    async def login(self, email: str, password: str) -> AuthSession:
        """
        Exchanges credentials for a session.

        An unverified account surfaces as a ``ServerError`` whose
        ``needs_verification`` is true and whose ``user_id`` identifies the
        account to verify. The client does not act on it.
        """
        body = await self._request(
            "POST",
            "/auth/login",
            json_body={"email": email, "password": password},
        )
        return self._decode(AuthSession, body)

    async def verify_code(self, user_id: str, code: str) -> AuthSession:
        """
        Submits an email verification code.

        The code is sent as given; rejecting malformed codes is left to the server.
        """
        body = await self._request(
            "POST",
            "/auth/verify",
            json_body={"userId": user_id, "code": code},
        )
        return self._decode(AuthSession, body)

    async def get_current_user(self, access_token: str) -> User:
        body = await self._request("GET", "/users/me", access_token=access_token)
        return self._decode(User, body)

    async def upload_track(
        self,
        file_path: str | Path,
        title: str,
        description: str,
        cover_image: Optional[bytes] = None,
        *,
        access_token: str,
    ) -> Track:
        """
        Uploads an audio file with its metadata as a multipart request.

        Args:
            file_path: Local audio file. Its extension picks the content type.
            title: Track title.
            description: Track description, sent even when empty.
            cover_image: Optional JPEG bytes sent as ``cover.jpg``.
            access_token: Bearer token of the uploading user.

        Raises:
            LocalIOError: The audio file could not be read. No request is sent.
        """
        file_path = Path(file_path)
        try:
            async with aiofiles.open(file_path, "rb") as f:
                audio = await f.read()
        except OSError as e:
            raise LocalIOError(f"Could not read '{file_path}': {e}") from e

        files = [
            FilePart(
                name="file",
                filename=file_path.name,
                content_type=audio_mime_type(file_path),
                data=audio,
            )
        ]
        if cover_image is not None:
            files.append(
                FilePart(
                    name="coverImage",
                    filename=COVER_IMAGE_FILENAME,
                    content_type=COVER_IMAGE_MIME_TYPE,
                    data=cover_image,
                )
            )

        boundary = new_boundary()
        payload = build_multipart_body(
            boundary,
            fields=[("title", title), ("description", description)],
            files=files,
        )
        log.debug(
            f"Uploading '{file_path.name}' ({len(audio)} bytes, "
            f"cover={'yes' if cover_image is not None else 'no'})"
        )

        body = await self._request(
            "POST",
            "/tracks/upload",
            data=payload,
            headers={"Content-Type": content_type_header(boundary)},
            access_token=access_token,
        )
        return self._decode(Track, body)

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """Token refresh has no server-side exchange defined yet."""
        raise NotImplementedError("Token refresh is not supported by this client.")
