"""
Docker datasource facade.

Wires the HTTP client, host rules, cache and finders together and exposes
the lookups callers need: repository resolution, auth headers, manifests,
digests and labels.

Usage:
    async with DockerDatasource.from_config() as docker:
        digest = await docker.get_digest("nginx", "1.25")
        labels = await docker.get_image_labels("ghcr.io/owner/app", "v1")
"""

from __future__ import annotations

from typing import Optional

from docker_datasource import config
from docker_datasource.modules.auth import RegistryAuth, get_ecr_auth_token
from docker_datasource.modules.auth.auth import TokenIssuer
from docker_datasource.modules.finders import LabelFinder, ManifestResolver, extract_digest_from_response
from docker_datasource.modules.formatters import RegistryRepository, get_registry_repository
from docker_datasource.modules.http import HttpResponse, RegistryHttp
from docker_datasource.modules.keepers import HostRules, MemoryCache, PackageCache, SqliteCache, load_host_rules


class DockerDatasource:
    """Entry point for docker registry lookups."""

    def __init__(
        self,
        http: Optional[RegistryHttp] = None,
        host_rules: Optional[HostRules] = None,
        cache: Optional[PackageCache] = None,
        token_issuer: TokenIssuer = get_ecr_auth_token,
    ):
        self.host_rules = host_rules if host_rules is not None else HostRules()
        self.http = http if http is not None else RegistryHttp(host_rules=self.host_rules)
        self.cache = cache if cache is not None else MemoryCache()
        self.auth = RegistryAuth(self.http, self.host_rules, token_issuer)
        self.manifests = ManifestResolver(self.http, self.auth)
        self.labels = LabelFinder(self.http, self.auth, self.manifests, self.cache)

    @classmethod
    def from_config(cls) -> "DockerDatasource":
        """Build a datasource from the environment-driven settings in config.py."""
        host_rules = load_host_rules(
            config.HOST_RULES_FILE,
            dockerhub_identifier=config.DOCKERHUB_IDENTIFIER,
            dockerhub_secret=config.DOCKERHUB_SECRET,
        )
        return cls(
            http=RegistryHttp(host_rules=host_rules, timeout=config.HTTP_TIMEOUT),
            host_rules=host_rules,
            cache=SqliteCache(config.CACHE_DB_PATH),
        )

    # =========================================================================
    # Component operations
    # =========================================================================

    def get_registry_repository(
        self,
        lookup_name: str,
        registry_url: str = config.DEFAULT_REGISTRY_URL,
    ) -> RegistryRepository:
        return get_registry_repository(lookup_name, registry_url, self.host_rules)

    async def get_auth_headers(self, registry: str, repository: str) -> Optional[dict]:
        return await self.auth.get_auth_headers(registry, repository)

    async def get_manifest_response(self, registry: str, repository: str, tag: str) -> Optional[HttpResponse]:
        return await self.manifests.get_manifest_response(registry, repository, tag)

    async def get_config_digest(self, registry: str, repository: str, tag: str) -> Optional[str]:
        return await self.manifests.get_config_digest(registry, repository, tag)

    async def get_labels(self, registry: str, repository: str, tag: str) -> dict[str, str]:
        return await self.labels.get_labels(registry, repository, tag)

    # =========================================================================
    # Lookups by package name
    # =========================================================================

    async def get_digest(
        self,
        lookup_name: str,
        tag: str = "latest",
        registry_url: str = config.DEFAULT_REGISTRY_URL,
    ) -> Optional[str]:
        """
        Return the manifest digest a tag currently points at.

        Returns:
            "sha256:..." digest, or None when the manifest can't be fetched

        Raises:
            ExternalHostError: If the registry is unhealthy or rate limiting
        """
        location = self.get_registry_repository(lookup_name, registry_url)
        manifest_response = await self.get_manifest_response(location.registry, location.repository, tag)
        if manifest_response is None:
            return None
        return extract_digest_from_response(manifest_response)

    async def get_image_labels(
        self,
        lookup_name: str,
        tag: str = "latest",
        registry_url: str = config.DEFAULT_REGISTRY_URL,
    ) -> dict[str, str]:
        location = self.get_registry_repository(lookup_name, registry_url)
        return await self.get_labels(location.registry, location.repository, tag)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "DockerDatasource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
