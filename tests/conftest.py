"""
Shared fixtures: a scriptable local CreatorsHub API and session helpers.

The fake API is a real aiohttp application served on a loopback port, so the
client is exercised through its actual transport.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from creatorshub.api.client import CreatorsHubAPIClient
from creatorshub.models.api import User
from creatorshub.storage.session import SessionManager
from creatorshub.storage.vault import InMemoryVault


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class FakeAPI:
    """Answers each (method, path) with a canned response and records requests."""

    base_url: str = ""
    responses: dict[tuple[str, str], tuple[int, bytes]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)
    gates: dict[tuple[str, str], asyncio.Event] = field(default_factory=dict)

    def respond(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        body: bytes = b"",
    ) -> None:
        if json_body is not None:
            body = json.dumps(json_body).encode()
        self.responses[(method, path)] = (status, body)

    def hold(self, method: str, path: str) -> asyncio.Event:
        """Delays the reply to (method, path) until the returned event is set."""
        gate = asyncio.Event()
        self.gates[(method, path)] = gate
        return gate

    async def handle(self, request: web.Request) -> web.Response:
        raw = await request.read()
        self.requests.append(
            RecordedRequest(request.method, request.path, dict(request.headers), raw)
        )
        if gate := self.gates.get((request.method, request.path)):
            await gate.wait()
        status, body = self.responses.get((request.method, request.path), (404, b""))
        return web.Response(status=status, body=body, content_type="application/json")


USER_PAYLOAD = {
    "id": "u1",
    "username": "neonbyte",
    "displayName": "Neon Byte",
    "bio": None,
    "profileImageUrl": None,
}

AUTH_PAYLOAD = {
    "user": USER_PAYLOAD,
    "accessToken": "AT1",
    "refreshToken": "RT1",
}


@pytest_asyncio.fixture
async def fake_api():
    api = FakeAPI()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", api.handle)
    server = TestServer(app)
    await server.start_server()
    api.base_url = str(server.make_url("/")).rstrip("/")
    yield api
    await server.close()


@pytest_asyncio.fixture
async def api_client(fake_api):
    async with CreatorsHubAPIClient(fake_api.base_url, timeout_seconds=10) as client:
        yield client


@pytest.fixture
def vault():
    return InMemoryVault()


@pytest.fixture
def session_manager(vault):
    return SessionManager(vault, namespace="test")


@pytest.fixture
def user():
    return User.model_validate(USER_PAYLOAD)
