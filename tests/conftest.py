"""Shared test fixtures for signaldesk.

HTTP behaviour is exercised against ``FakeOkxVenue``, an in-process aiohttp
application that records every request and replays programmed envelopes.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from multidict import CIMultiDict

from signaldesk.config import AppSettings, ExchangeSettings, ModelSettings, PollerSettings
from signaldesk.exchange.okx_client import OkxClient
from signaldesk.exchange.types import Credentials

VALID_API_KEY = "12345678-1234-1234-1234-123456789abc"
VALID_SECRET_KEY = "abcdefghijklmnopqrstuvwxyz1234567890ABCDEFGHIJ"
VALID_PASSPHRASE = "testPassphrase123"


@dataclass
class RecordedRequest:
    method: str
    path_qs: str
    headers: CIMultiDict
    body: str


class FakeOkxVenue:
    """Programmable stand-in for the OKX REST API.

    Unprogrammed routes answer HTTP 404 with a venue-style envelope.
    """

    def __init__(self) -> None:
        self.base_url = ""
        self.requests: list[RecordedRequest] = []
        self._responses: dict[tuple[str, str], tuple[int, Any]] = {}
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._handle)

    def respond(self, method: str, path: str, body: Any, status: int = 200) -> None:
        """Program the reply for ``method path``. ``body`` may be a dict or raw text."""
        self._responses[(method, path)] = (status, body)

    async def _handle(self, request: web.Request) -> web.Response:
        raw = await request.text()
        self.requests.append(
            RecordedRequest(
                method=request.method,
                path_qs=request.raw_path,
                headers=request.headers.copy(),
                body=raw,
            )
        )
        status, body = self._responses.get(
            (request.method, request.path),
            (404, {"code": "404", "msg": "Not found", "data": []}),
        )
        if isinstance(body, str):
            return web.Response(status=status, text=body)
        return web.json_response(body, status=status)


@pytest.fixture
def valid_credentials() -> Credentials:
    return Credentials(
        api_key=VALID_API_KEY,
        secret_key=VALID_SECRET_KEY,
        passphrase=VALID_PASSPHRASE,
        sandbox=False,
    )


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with test defaults (no keys, poller disabled)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(request_timeout=10),
        model=ModelSettings(lookback=100),
        poller=PollerSettings(enabled=False),
    )


@pytest_asyncio.fixture
async def venue() -> AsyncIterator[FakeOkxVenue]:
    fake = FakeOkxVenue()
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def okx_client(venue: FakeOkxVenue) -> AsyncIterator[OkxClient]:
    client = OkxClient(ExchangeSettings(base_url=venue.base_url, request_timeout=10))
    yield client
    await client.close()
