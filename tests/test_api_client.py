"""
CreatorsHub API client tests.

Every operation is driven against a local aiohttp server so that status
handling, body decoding and transport failures go through the real client
stack.
"""

import pytest
from aiohttp.test_utils import unused_port

from creatorshub.api.client import CreatorsHubAPIClient
from creatorshub.exceptions import (
    DecodeError,
    LocalIOError,
    ServerError,
    TransportError,
)
from creatorshub.models.api import AuthSession, RegistrationResult, Track, User

from .conftest import AUTH_PAYLOAD, USER_PAYLOAD

TRACK_PAYLOAD = {
    "trackId": "t1",
    "userId": "u1",
    "title": "Night Drive",
    "description": "Synthwave",
    "fileUrl": "https://cdn.example/t1.mp3",
    "coverImageUrl": None,
}


def split_multipart(body: bytes, boundary: str) -> list[tuple[dict[str, str], bytes]]:
    """Splits a multipart body into (headers, content) pairs."""
    delimiter = b"--" + boundary.encode()
    segments = body.split(delimiter)
    assert segments[0] == b""
    assert segments[-1] == b"--\r\n"

    parts = []
    for segment in segments[1:-1]:
        assert segment.startswith(b"\r\n") and segment.endswith(b"\r\n")
        raw_headers, content = segment[2:-2].split(b"\r\n\r\n", 1)
        headers = {}
        for line in raw_headers.decode().split("\r\n"):
            name, value = line.split(": ", 1)
            headers[name] = value
        parts.append((headers, content))
    return parts


def boundary_of(content_type: str) -> str:
    prefix = "multipart/form-data; boundary="
    assert content_type.startswith(prefix)
    return content_type[len(prefix):]


class TestRegister:
    @pytest.mark.asyncio
    async def test_success_returns_registration_result(self, fake_api, api_client):
        fake_api.respond(
            "POST",
            "/auth/register",
            201,
            {"userId": "u42", "message": "Check your email", "expiresAt": None},
        )

        result = await api_client.register("a@b.c", "pw", "neon", "Neon")

        assert isinstance(result, RegistrationResult)
        assert result.user_id == "u42"
        assert result.message == "Check your email"
        assert result.expires_at is None

    @pytest.mark.asyncio
    async def test_sends_camel_case_json(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/register", 200, {"userId": "u1", "message": "ok"})

        await api_client.register("a@b.c", "pw", "neon", "Neon Byte")

        request = fake_api.requests[0]
        assert request.headers["Content-Type"].startswith("application/json")
        assert request.json() == {
            "email": "a@b.c",
            "password": "pw",
            "username": "neon",
            "displayName": "Neon Byte",
        }
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_structured_error_is_classified(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/register", 409, {"error": "EMAIL_TAKEN"})

        with pytest.raises(ServerError) as exc_info:
            await api_client.register("a@b.c", "pw", "neon", "Neon")

        assert exc_info.value.code == "EMAIL_TAKEN"
        assert exc_info.value.http_status == 409
        assert exc_info.value.user_id is None

    @pytest.mark.asyncio
    async def test_unstructured_error_carries_only_status(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/register", 502, body=b"<html>Bad Gateway</html>")

        with pytest.raises(ServerError) as exc_info:
            await api_client.register("a@b.c", "pw", "neon", "Neon")

        assert exc_info.value.code is None
        assert exc_info.value.http_status == 502
        assert "502" in str(exc_info.value)


class TestLogin:
    @pytest.mark.asyncio
    async def test_success_returns_auth_session(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/login", 200, AUTH_PAYLOAD)

        auth = await api_client.login("a@b.c", "pw")

        assert isinstance(auth, AuthSession)
        assert auth.access_token == "AT1"
        assert auth.refresh_token == "RT1"
        assert auth.user.display_name == "Neon Byte"
        assert fake_api.requests[0].json() == {"email": "a@b.c", "password": "pw"}

    @pytest.mark.asyncio
    async def test_unverified_email_is_distinguished(self, fake_api, api_client):
        fake_api.respond(
            "POST", "/auth/login", 403, {"error": "EMAIL_NOT_VERIFIED", "userId": "u1"}
        )

        with pytest.raises(ServerError) as exc_info:
            await api_client.login("a@b.c", "pw")

        error = exc_info.value
        assert error.code == "EMAIL_NOT_VERIFIED"
        assert error.user_id == "u1"
        assert error.http_status == 403
        assert error.needs_verification

    @pytest.mark.asyncio
    async def test_unverified_without_user_id_is_not_actionable(
        self, fake_api, api_client
    ):
        fake_api.respond("POST", "/auth/login", 403, {"error": "EMAIL_NOT_VERIFIED"})

        with pytest.raises(ServerError) as exc_info:
            await api_client.login("a@b.c", "pw")

        assert not exc_info.value.needs_verification

    @pytest.mark.asyncio
    async def test_malformed_success_body_is_decode_error(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/login", 200, {"user": USER_PAYLOAD})

        with pytest.raises(DecodeError):
            await api_client.login("a@b.c", "pw")

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_decode_error(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/login", 200, body=b"not json")

        with pytest.raises(DecodeError):
            await api_client.login("a@b.c", "pw")

    @pytest.mark.asyncio
    async def test_empty_success_body_is_transport_error(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/login", 200, body=b"")

        with pytest.raises(TransportError):
            await api_client.login("a@b.c", "pw")


class TestVerifyCode:
    @pytest.mark.asyncio
    async def test_success_has_same_shape_as_login(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/verify", 200, AUTH_PAYLOAD)

        auth = await api_client.verify_code("u1", "123456")

        assert isinstance(auth, AuthSession)
        assert fake_api.requests[0].json() == {"userId": "u1", "code": "123456"}

    @pytest.mark.asyncio
    async def test_code_is_sent_unvalidated(self, fake_api, api_client):
        fake_api.respond("POST", "/auth/verify", 400, {"error": "INVALID_CODE"})

        with pytest.raises(ServerError) as exc_info:
            await api_client.verify_code("u1", "12ab")

        assert exc_info.value.code == "INVALID_CODE"
        assert fake_api.requests[0].json()["code"] == "12ab"


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, fake_api, api_client):
        fake_api.respond("GET", "/users/me", 200, USER_PAYLOAD)

        user = await api_client.get_current_user("AT1")

        assert isinstance(user, User)
        assert user.id == "u1"
        request = fake_api.requests[0]
        assert request.method == "GET"
        assert request.headers["Authorization"] == "Bearer AT1"
        assert request.body == b""

    @pytest.mark.asyncio
    async def test_rejected_token(self, fake_api, api_client):
        fake_api.respond("GET", "/users/me", 401, {"error": "UNAUTHORIZED"})

        with pytest.raises(ServerError) as exc_info:
            await api_client.get_current_user("stale")

        assert exc_info.value.http_status == 401


class TestUploadTrack:
    @pytest.mark.asyncio
    async def test_mp3_without_cover(self, fake_api, api_client, tmp_path):
        audio = b"ID3" + bytes(range(256)) * 64
        song = tmp_path / "song.mp3"
        song.write_bytes(audio)
        fake_api.respond("POST", "/tracks/upload", 201, TRACK_PAYLOAD)

        track = await api_client.upload_track(
            song, "Night Drive", "Synthwave", access_token="AT1"
        )

        assert isinstance(track, Track)
        assert track.track_id == "t1"

        request = fake_api.requests[0]
        assert request.headers["Authorization"] == "Bearer AT1"
        parts = split_multipart(
            request.body, boundary_of(request.headers["Content-Type"])
        )
        assert len(parts) == 3

        dispositions = [headers["Content-Disposition"] for headers, _ in parts]
        assert dispositions[0] == 'form-data; name="title"'
        assert dispositions[1] == 'form-data; name="description"'
        assert dispositions[2] == 'form-data; name="file"; filename="song.mp3"'
        assert not any("coverImage" in d for d in dispositions)

        assert parts[0][1] == b"Night Drive"
        assert parts[1][1] == b"Synthwave"
        assert "Content-Type" not in parts[0][0]

        file_headers, file_content = parts[2]
        assert file_headers["Content-Type"] == "audio/mpeg"
        assert file_content == audio

    @pytest.mark.asyncio
    async def test_cover_image_adds_jpeg_part(self, fake_api, api_client, tmp_path):
        song = tmp_path / "take.WAV"
        song.write_bytes(b"RIFF....WAVE")
        cover = b"\xff\xd8\xff\xe0jpeg"
        fake_api.respond("POST", "/tracks/upload", 200, TRACK_PAYLOAD)

        await api_client.upload_track(song, "t", "", cover, access_token="AT1")

        request = fake_api.requests[0]
        parts = split_multipart(
            request.body, boundary_of(request.headers["Content-Type"])
        )
        assert len(parts) == 4
        assert parts[1][1] == b""
        assert parts[2][0]["Content-Type"] == "audio/wav"

        cover_headers, cover_content = parts[3]
        assert (
            cover_headers["Content-Disposition"]
            == 'form-data; name="coverImage"; filename="cover.jpg"'
        )
        assert cover_headers["Content-Type"] == "image/jpeg"
        assert cover_content == cover

    @pytest.mark.asyncio
    async def test_each_request_uses_a_new_boundary(
        self, fake_api, api_client, tmp_path
    ):
        song = tmp_path / "song.aac"
        song.write_bytes(b"aac")
        fake_api.respond("POST", "/tracks/upload", 200, TRACK_PAYLOAD)

        await api_client.upload_track(song, "a", "b", access_token="AT1")
        await api_client.upload_track(song, "a", "b", access_token="AT1")

        first, second = (r.headers["Content-Type"] for r in fake_api.requests)
        assert boundary_of(first) != boundary_of(second)

    @pytest.mark.asyncio
    async def test_unreadable_file_never_reaches_server(
        self, fake_api, api_client, tmp_path
    ):
        with pytest.raises(LocalIOError):
            await api_client.upload_track(
                tmp_path / "missing.mp3", "t", "d", access_token="AT1"
            )

        assert fake_api.requests == []


class TestTransport:
    @pytest.mark.asyncio
    async def test_connection_refused_is_transport_error(self):
        async with CreatorsHubAPIClient(f"http://127.0.0.1:{unused_port()}") as client:
            with pytest.raises(TransportError):
                await client.login("a@b.c", "pw")

    @pytest.mark.asyncio
    async def test_refresh_is_not_implemented(self, api_client):
        with pytest.raises(NotImplementedError):
            await api_client.refresh_session("RT1")

    @pytest.mark.asyncio
    async def test_trailing_slash_in_base_url(self, fake_api):
        fake_api.respond("GET", "/users/me", 200, USER_PAYLOAD)

        async with CreatorsHubAPIClient(fake_api.base_url + "/") as client:
            await client.get_current_user("AT1")

        assert fake_api.requests[0].path == "/users/me"
