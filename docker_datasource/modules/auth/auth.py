"""
Docker registry authentication.

Provides RegistryAuth, which probes a registry and works out the headers
needed for the next authenticated call:
- Anonymous registries (no challenge on /v2/)
- Basic auth, including Amazon ECR tokens
- Bearer token exchange against the advertised realm

Headers are built per call and never cached; bearer tokens are scoped to a
single repository and pull action.
"""

from __future__ import annotations

import base64
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Optional

import structlog
import www_authenticate

from docker_datasource.config import HOST_TYPE
from docker_datasource.modules.auth.ecr import ecr_region, get_ecr_auth_token
from docker_datasource.modules.errors import HostDisabledError, HttpError, RegistryError, raise_for_host
from docker_datasource.modules.http import RegistryHttp
from docker_datasource.modules.keepers.host_rules import HostCredentials, HostRules

logger = structlog.get_logger(__name__)

TokenIssuer = Callable[[str, HostCredentials], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class Challenge:
    """Parsed WWW-Authenticate challenge."""
    scheme: str
    params: Mapping[str, str] = field(default_factory=dict)

    @property
    def realm(self) -> Optional[str]:
        return self.params.get("realm")

    @property
    def service(self) -> Optional[str]:
        return self.params.get("service")


def parse_challenge(header: str) -> Challenge:
    """
    Parse the first challenge of a WWW-Authenticate header.

    Raises:
        ValueError: If the header holds no challenge
    """
    parsed = www_authenticate.parse(header)
    if not parsed:
        raise ValueError(f"Unparsable WWW-Authenticate header: {header!r}")
    scheme, params = next(iter(parsed.items()))
    if not isinstance(params, Mapping):
        params = {}
    return Challenge(scheme=scheme, params=dict(params))


def basic_auth_header(username: str, password: str) -> str:
    auth = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {auth}"


class RegistryAuth:
    """
    Registry authentication resolver.

    Usage:
        auth = RegistryAuth(http, host_rules)
        headers = await auth.get_auth_headers("https://index.docker.io", "library/nginx")
        if headers is None:
            ...  # no usable auth, give up on this lookup
    """

    def __init__(
        self,
        http: RegistryHttp,
        host_rules: HostRules,
        token_issuer: TokenIssuer = get_ecr_auth_token,
    ):
        """
        Args:
            http: Client used for the probe and token exchange
            host_rules: Credential lookup
            token_issuer: Vendor token service for Amazon ECR registries
        """
        self.http = http
        self.host_rules = host_rules
        self.token_issuer = token_issuer

    async def _credential_headers(self, registry: str, credentials: HostCredentials) -> Optional[dict]:
        """Headers derived from credentials alone, before looking at the challenge."""
        region = ecr_region(registry)
        if region is not None:
            token = await self.token_issuer(region, credentials)
            if token:
                return {"authorization": f"Basic {token}"}
            return None
        if credentials.has_basic_auth:
            return {"authorization": basic_auth_header(credentials.username, credentials.password)}
        return None

    async def get_auth_headers(self, registry: str, repository: str) -> Optional[dict]:
        """
        Work out the headers for an authenticated call to ``repository``.

        Args:
            registry: Registry base URL (e.g., "https://index.docker.io")
            repository: Repository path (e.g., "library/nginx")

        Returns:
            {} when the registry needs no auth, a header dict, or None when
            no usable auth could be obtained

        Raises:
            ExternalHostError: If the registry is unhealthy or rate limiting
        """
        api_check_url = f"{registry}/v2/"
        try:
            api_check_response = await self.http.get(api_check_url, throw_http_errors=False)
            challenge_header = api_check_response.headers.get("www-authenticate")
            if challenge_header is None:
                return {}
            challenge = parse_challenge(challenge_header)

            credentials = self.host_rules.find(HOST_TYPE, api_check_url)
            headers = await self._credential_headers(registry, credentials)
            # only headers travel past this point, never the username/password
            del credentials

            if challenge.scheme.upper() == "BASIC":
                logger.debug("docker_basic_auth", registry=registry, repository=repository)
                await self.http.get(api_check_url, headers=headers)
                return headers

            if not challenge.realm:
                logger.warning("docker_token_realm_missing", registry=registry, repository=repository)
                return None

            auth_url = f"{challenge.realm}?"
            if challenge.service:
                auth_url += f"service={challenge.service}&"
            auth_url += f"scope=repository:{repository}:pull"
            logger.debug("docker_token_request", repository=repository, auth_url=auth_url)

            auth_response = await self.http.get(auth_url, headers=headers)
            body = auth_response.json()
            token = (body.get("token") or body.get("access_token")) if isinstance(body, dict) else None
            if not token:
                logger.warning("docker_token_missing", registry=registry, repository=repository)
                return None
            return {"authorization": f"Bearer {token}"}

        except (RegistryError, ValueError) as err:
            raise_for_host(err, registry)
            self._log_failure(err, registry, repository)
            return None

    @staticmethod
    def _log_failure(err: Exception, registry: str, repository: str) -> None:
        status_code = getattr(err, "status_code", None)
        if status_code == 401:
            logger.debug("docker_lookup_unauthorized", registry=registry, repository=repository, error=str(err))
        elif status_code == 403:
            logger.debug("docker_lookup_forbidden", registry=registry, repository=repository, error=str(err))
        elif isinstance(err, HostDisabledError):
            logger.debug("docker_host_disabled", registry=registry, repository=repository)
        elif isinstance(err, HttpError) and err.code is not None:
            logger.debug("docker_registry_unreachable", registry=registry, code=err.code.value, error=str(err))
        else:
            logger.warning("docker_token_error", registry=registry, repository=repository, error=str(err))
