"""
Global test configuration and fixtures.
"""

import random
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from cnft_minter.config import AppConfig, GatewayConfig, LoggingConfig, MintConfig
from cnft_minter.core.image_resolver import MetadataImageResolver
from cnft_minter.core.mint_orchestrator import MintOrchestrator
from cnft_minter.integrations.wallet import InMemoryIdentityProvider

OWNER = "So11111111111111111111111111111111111111112"

ACCESS_POINTS = (
    "https://gw0.test/ipfs/",
    "https://gw1.test/ipfs/",
    "https://gw2.test/ipfs/",
)


class FakeGateway:
    """In-process stand-in for a set of IPFS gateways, served via httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, Any]] = {}
        self.head_status: Dict[str, int] = {}
        self.requests: List[Tuple[str, str]] = []

    def serve_json(self, url: str, document: Any, status: int = 200):
        self.routes[url] = (status, document)

    def serve_file(self, url: str, status: int = 200, content: bytes = b"\x89PNG"):
        self.routes[url] = (status, content)

    def fail(self, url: str, error: Optional[Exception] = None):
        self.routes[url] = (0, error or httpx.ConnectError("connection refused"))

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        status, body = self.routes.get(url, (404, b"not found"))
        if isinstance(body, Exception):
            raise body
        if request.method == "HEAD":
            return httpx.Response(self.head_status.get(url, status))
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def urls_requested(self, method: Optional[str] = None) -> List[str]:
        return [url for m, url in self.requests if method is None or m == method]


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float):
        self.now += ms / 1000


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(access_points=ACCESS_POINTS, probe_timeout=1.0, fetch_timeout=1.0)


@pytest.fixture
def mint_config() -> MintConfig:
    return MintConfig(mint_service_url="http://relay.test")


@pytest.fixture
def app_config(gateway_config, mint_config) -> AppConfig:
    return AppConfig(gateway=gateway_config, mint=mint_config, logging=LoggingConfig())


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture
async def image_resolver(gateway_config, fake_gateway):
    """MetadataImageResolver talking to the fake gateways."""
    client = fake_gateway.client()
    resolver = MetadataImageResolver(gateway_config, client=client)
    try:
        yield resolver
    finally:
        await client.aclose()


@pytest.fixture
def wallet() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider(OWNER, connected=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def submitter() -> AsyncMock:
    """Transaction submitter that succeeds with a plain signature by default."""
    fake = AsyncMock()
    fake.submit.return_value = "5sigDefault"
    return fake


@pytest.fixture
def orchestrator(mint_config, wallet, submitter, clock) -> MintOrchestrator:
    return MintOrchestrator(mint_config, wallet, submitter, rng=random.Random(7), clock=clock)
