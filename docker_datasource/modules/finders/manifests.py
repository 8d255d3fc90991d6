"""
Image manifest fetching.

Fetches manifests by tag or digest and resolves an image to the digest of
its configuration blob, walking through a multi-arch manifest list when the
tag points at one.
"""

from __future__ import annotations

from typing import Optional

import structlog

from docker_datasource.modules.auth import RegistryAuth
from docker_datasource.modules.errors import ErrorKind, HttpError, RegistryError, raise_for_host
from docker_datasource.modules.http import HttpResponse, RegistryHttp

logger = structlog.get_logger(__name__)

# A list pointing at another list is already unusual; deeper nesting is malformed
MAX_MANIFEST_LIST_DEPTH = 2


class MediaType:
    MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
    MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"


MANIFEST_ACCEPT = f"{MediaType.MANIFEST_LIST_V2}, {MediaType.MANIFEST_V2}"


def _select_platform(manifests: list) -> Optional[dict]:
    """
    Select a platform manifest from a manifest list.

    Always the first entry: labels and digests are looked up as metadata and
    treated as identical across architectures.
    """
    if not manifests:
        return None
    return manifests[0]


class ManifestResolver:
    """Fetches manifests and resolves config digests for a registry."""

    def __init__(self, http: RegistryHttp, auth: RegistryAuth):
        self.http = http
        self.auth = auth

    async def get_manifest_response(
        self,
        registry: str,
        repository: str,
        tag: str,
    ) -> Optional[HttpResponse]:
        """
        Fetch the raw manifest for a tag or digest.

        Args:
            registry: Registry base URL
            repository: Repository path (e.g., "library/nginx")
            tag: Tag (e.g., "latest") or digest (e.g., "sha256:...")

        Returns:
            The HttpResponse, or None when no manifest could be obtained

        Raises:
            ExternalHostError: If the registry is unhealthy or rate limiting
        """
        logger.debug("docker_get_manifest", registry=registry, repository=repository, tag=tag)
        try:
            headers = await self.auth.get_auth_headers(registry, repository)
            if headers is None:
                logger.debug("docker_auth_missing", registry=registry, repository=repository)
                return None
            headers = {**headers, "accept": MANIFEST_ACCEPT}
            url = f"{registry}/v2/{repository}/manifests/{tag}"
            return await self.http.get(url, headers=headers)
        except RegistryError as err:
            kind = raise_for_host(err, registry)
            status_code = getattr(err, "status_code", None)
            if status_code == 401:
                logger.debug("docker_lookup_unauthorized", registry=registry, repository=repository)
            elif status_code == 404:
                logger.debug("docker_manifest_unknown", registry=registry, repository=repository, tag=tag)
            elif kind is ErrorKind.TRANSIENT and isinstance(err, HttpError):
                logger.debug("docker_registry_timeout", registry=registry, code=err.code.value)
            else:
                logger.debug(
                    "docker_manifest_unknown_error",
                    registry=registry,
                    repository=repository,
                    tag=tag,
                    error=str(err),
                )
            return None

    async def get_config_digest(self, registry: str, repository: str, tag: str) -> Optional[str]:
        """
        Resolve a tag to the digest of its image config blob.

        Manifest lists are followed through their first entry, at most
        MAX_MANIFEST_LIST_DEPTH times.

        Returns:
            Config digest (e.g., "sha256:..."), or None

        Raises:
            ExternalHostError: If the registry is unhealthy or rate limiting
        """
        reference = tag
        for _ in range(MAX_MANIFEST_LIST_DEPTH + 1):
            manifest_response = await self.get_manifest_response(registry, repository, reference)
            # The tag has no manifest we can read
            if manifest_response is None:
                return None

            try:
                manifest = manifest_response.json()
            except ValueError:
                logger.debug("docker_manifest_unparsable", registry=registry, repository=repository, tag=reference)
                return None

            if not isinstance(manifest, dict) or manifest.get("schemaVersion") != 2:
                logger.debug("docker_manifest_schema_not_v2", registry=registry, repository=repository, tag=reference)
                return None

            media_type = manifest.get("mediaType")
            if media_type == MediaType.MANIFEST_LIST_V2 and manifest.get("manifests"):
                platform_manifest = _select_platform(manifest["manifests"])
                reference = platform_manifest.get("digest") if isinstance(platform_manifest, dict) else None
                if not reference:
                    logger.debug("docker_manifest_list_entry_invalid", registry=registry, repository=repository)
                    return None
                logger.debug("docker_manifest_list_found", registry=registry, repository=repository, digest=reference)
                continue

            if media_type == MediaType.MANIFEST_V2:
                config = manifest.get("config")
                return (config.get("digest") if isinstance(config, dict) else None) or None

            logger.debug("docker_manifest_invalid", registry=registry, repository=repository, media_type=media_type)
            return None

        logger.debug("docker_manifest_list_too_deep", registry=registry, repository=repository, tag=tag)
        return None
