"""
Registry HTTP client.

Thin async wrapper over httpx that turns every failure into an HttpError
(or HostDisabledError) right at the call boundary, so the finders only ever
classify one error shape.
"""

from __future__ import annotations

import json
import ssl
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from docker_datasource.config import HOST_TYPE, HTTP_TIMEOUT
from docker_datasource.modules.errors import HostDisabledError, HttpError, TransportErrorCode
from docker_datasource.modules.keepers.host_rules import HostRules

logger = structlog.get_logger(__name__)


@dataclass
class HttpResponse:
    """Response as seen by the finders."""
    status_code: int
    headers: httpx.Headers
    content: bytes

    def json(self) -> Any:
        """Parse the body as JSON; raises ValueError when it isn't."""
        return json.loads(self.content)


def _is_tls_error(exc: httpx.RequestError) -> bool:
    cause = exc.__cause__ or exc.__context__
    if isinstance(cause, ssl.SSLError):
        return True
    message = str(exc).lower()
    return "certificate" in message or "ssl" in message


class RegistryHttp:
    """
    GET-only HTTP client for registry calls.

    Usage:
        async with RegistryHttp(host_rules=rules) as http:
            resp = await http.get("https://index.docker.io/v2/", throw_http_errors=False)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        host_rules: Optional[HostRules] = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        self._owns_client = client is None
        # Docker Hub redirects blob downloads to object storage
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._host_rules = host_rules

    async def get(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        throw_http_errors: bool = True,
    ) -> HttpResponse:
        """
        Issue a GET request.

        Args:
            url: Absolute URL
            headers: Extra request headers
            throw_http_errors: Raise HttpError for 4xx/5xx responses

        Returns:
            HttpResponse

        Raises:
            HostDisabledError: If host rules disable the target host
            HttpError: On an unparsable URL, a transport failure, or an error
                status when throw_http_errors
        """
        # token realms come from the registry and may not parse
        try:
            httpx.URL(url)
        except httpx.InvalidURL as e:
            raise HttpError(url, code=TransportErrorCode.INVALID_URL, message=str(e)) from e

        if self._host_rules is not None and self._host_rules.is_disabled(HOST_TYPE, url):
            raise HostDisabledError(url)

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise HttpError(url, code=TransportErrorCode.TIMEOUT, message=str(e) or "timeout") from e
        except httpx.RequestError as e:
            code = TransportErrorCode.TLS if _is_tls_error(e) else TransportErrorCode.REQUEST
            raise HttpError(url, code=code, message=str(e) or type(e).__name__) from e

        result = HttpResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
        )
        if throw_http_errors and response.status_code >= 400:
            raise HttpError(url, status_code=response.status_code)
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RegistryHttp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
