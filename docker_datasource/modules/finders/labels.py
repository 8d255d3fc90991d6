"""
Image label lookup.

Retrieves the configuration blob for an image and returns its
config.Labels mapping. Results are cached per registry/repository/tag so
repeated lookups within the TTL never touch the registry.
"""

from __future__ import annotations

import asyncio

import structlog

from docker_datasource.config import LABELS_CACHE_MINUTES, LABELS_CACHE_NAMESPACE
from docker_datasource.modules.auth import RegistryAuth
from docker_datasource.modules.errors import ErrorKind, RegistryError, raise_for_host
from docker_datasource.modules.finders.manifests import ManifestResolver
from docker_datasource.modules.http import RegistryHttp
from docker_datasource.modules.keepers.storage import PackageCache

logger = structlog.get_logger(__name__)


class LabelFinder:
    """Looks up image labels through the package cache."""

    def __init__(
        self,
        http: RegistryHttp,
        auth: RegistryAuth,
        manifests: ManifestResolver,
        cache: PackageCache,
    ):
        self.http = http
        self.auth = auth
        self.manifests = manifests
        self.cache = cache

    async def get_labels(self, registry: str, repository: str, tag: str) -> dict[str, str]:
        """
        Return the labels of an image.

        Args:
            registry: Registry base URL
            repository: Repository path (e.g., "library/nginx")
            tag: Tag or digest

        Returns:
            Label mapping; {} when the image or its config can't be read

        Raises:
            ExternalHostError: If the registry is unhealthy or rate limiting
        """
        logger.debug("docker_get_labels", registry=registry, repository=repository, tag=tag)
        cache_key = f"{registry}:{repository}:{tag}"
        # SqliteCache blocks
        cached_result = await asyncio.to_thread(self.cache.get, LABELS_CACHE_NAMESPACE, cache_key)
        if cached_result is not None:
            return cached_result

        try:
            # Failures below return uncached so a transient miss can't stick for the TTL
            config_digest = await self.manifests.get_config_digest(registry, repository, tag)
            if not config_digest:
                return {}

            headers = await self.auth.get_auth_headers(registry, repository)
            if headers is None:
                logger.debug("docker_auth_missing", registry=registry, repository=repository)
                return {}

            url = f"{registry}/v2/{repository}/blobs/{config_digest}"
            config_response = await self.http.get(url, headers=headers)
            image_config = config_response.json()

            config = image_config.get("config") if isinstance(image_config, dict) else None
            labels = config.get("Labels") if isinstance(config, dict) else None
            if not isinstance(labels, dict):
                labels = {}
            if labels:
                logger.debug("docker_labels_found", registry=registry, repository=repository, labels=labels)

            await asyncio.to_thread(
                self.cache.set, LABELS_CACHE_NAMESPACE, cache_key, labels, LABELS_CACHE_MINUTES
            )
            return labels

        except (RegistryError, ValueError) as err:
            kind = raise_for_host(err, registry)
            self._log_failure(err, kind, registry, repository, tag)
            return {}

    @staticmethod
    def _log_failure(err: Exception, kind: ErrorKind, registry: str, repository: str, tag: str) -> None:
        status_code = getattr(err, "status_code", None)
        if status_code in (400, 401):
            logger.debug("docker_lookup_unauthorized", registry=registry, repository=repository, error=str(err))
        elif status_code == 404:
            logger.warning("docker_config_unknown", registry=registry, repository=repository, tag=tag)
        elif kind is ErrorKind.TRANSIENT:
            logger.debug("docker_registry_connection_error", registry=registry, error=str(err))
        elif registry == "https://quay.io":
            logger.debug("docker_quay_error_ignored", registry=registry)
        else:
            logger.info(
                "docker_labels_unknown_error",
                registry=registry,
                repository=repository,
                tag=tag,
                error=str(err),
            )
