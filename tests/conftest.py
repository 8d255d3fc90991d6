"""Shared fixtures for docker-datasource tests.

Registries are faked with httpx.MockTransport: no test touches the network.

Key Fixtures:
- fake_registry: Route table answering registry requests
- clock: Controllable time source for cache TTL tests
- datasource: DockerDatasource wired to fake_registry and an in-memory cache
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from docker_datasource.datasource import DockerDatasource
from docker_datasource.log import configure_logging
from docker_datasource.modules.http import RegistryHttp
from docker_datasource.modules.keepers import HostRules, MemoryCache

DOCKER_HUB = "https://index.docker.io"
DOCKER_HUB_CHALLENGE = 'Bearer realm="https://auth.docker.io/token",service="registry.docker.io"'

MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"


class FakeRegistry:
    """Answers requests by URL (query string ignored) and records them."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if json_body is not None:
            content = json.dumps(json_body).encode("utf-8")

        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, content=content or b"", headers=headers)

        self.routes[url] = respond

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, json={"errors": [{"code": "NOT_FOUND"}]})
        return route(request)

    def urls(self) -> list[str]:
        return [str(r.url).split("?", 1)[0] for r in self.requests]

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?", 1)[0] == url]


class Clock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


def anonymous_registry(fake: FakeRegistry, registry: str) -> None:
    """Registry whose /v2/ probe needs no auth."""
    fake.add(f"{registry}/v2/", json_body={})


def docker_hub_token(fake: FakeRegistry, token: str = "hub-token") -> None:
    """Docker Hub style bearer challenge plus a working token endpoint."""
    fake.add(
        f"{DOCKER_HUB}/v2/",
        status_code=401,
        json_body={"errors": [{"code": "UNAUTHORIZED"}]},
        headers={"www-authenticate": DOCKER_HUB_CHALLENGE},
    )
    fake.add("https://auth.docker.io/token", json_body={"token": token})


@pytest.fixture(scope="session", autouse=True)
def _logging() -> None:
    # structlog defaults to printing everything on stdout
    configure_logging("WARNING")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def host_rules() -> HostRules:
    return HostRules()


@pytest.fixture
def token_issuer() -> Callable:
    """Fake ECR token service; records calls and returns a fixed token."""

    calls: list[tuple] = []

    async def issue(region, credentials):
        calls.append((region, credentials))
        return "QVdTOmVjci1wYXNzd29yZA=="

    issue.calls = calls
    return issue


@pytest.fixture
def http(fake_registry: FakeRegistry, host_rules: HostRules) -> RegistryHttp:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_registry.handler))
    return RegistryHttp(client=client, host_rules=host_rules)


@pytest.fixture
def datasource(
    http: RegistryHttp,
    host_rules: HostRules,
    clock: Clock,
    token_issuer: Callable,
) -> DockerDatasource:
    return DockerDatasource(
        http=http,
        host_rules=host_rules,
        cache=MemoryCache(clock=clock),
        token_issuer=token_issuer,
    )
