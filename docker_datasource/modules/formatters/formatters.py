import re
from dataclasses import dataclass
from typing import Optional

from docker_datasource.config import DEFAULT_REGISTRY_URL, HOST_TYPE
from docker_datasource.modules.keepers.host_rules import HostRules

SCHEME_RE = re.compile(r"^https?://")


@dataclass(frozen=True)
class RegistryRepository:
    """Canonical (registry, repository) pair for a lookup."""
    registry: str
    repository: str


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def trim_trailing_slash(url: str) -> str:
    return url.rstrip("/")


## Handle use cases involving library containers and private registries

def get_registry_repository(
    lookup_name: str,
    registry_url: str = DEFAULT_REGISTRY_URL,
    host_rules: Optional[HostRules] = None,
) -> RegistryRepository:
    """
    Split a lookup name into the registry to call and the repository path.

    Args:
        lookup_name: Package name, optionally prefixed with a registry host
                     (e.g., "nginx", "ghcr.io/owner/app")
        registry_url: Configured default/override registry
        host_rules: Used to downgrade insecure registries to http

    Returns:
        RegistryRepository with a scheme-qualified registry URL
    """
    if registry_url != DEFAULT_REGISTRY_URL:
        registry_ending_with_slash = ensure_trailing_slash(SCHEME_RE.sub("", registry_url))
        if lookup_name.startswith(registry_ending_with_slash):
            registry = trim_trailing_slash(registry_url)
            if not SCHEME_RE.match(registry):
                registry = f"https://{registry}"
            return RegistryRepository(
                registry=registry,
                repository=lookup_name[len(registry_ending_with_slash):],
            )

    registry = None
    split = lookup_name.split("/")
    if len(split) > 1 and ("." in split[0] or ":" in split[0]):
        registry = split.pop(0)
    repository = "/".join(split)

    if not registry:
        registry = registry_url
    if registry == "docker.io":
        registry = "index.docker.io"
    if not SCHEME_RE.match(registry):
        registry = f"https://{registry}"

    if host_rules is not None and host_rules.find(HOST_TYPE, registry).insecure_registry:
        registry = registry.replace("https", "http", 1)

    # Official images live under the implicit "library/" namespace
    if registry.endswith(".docker.io") and "/" not in repository:
        repository = "library/" + repository

    return RegistryRepository(registry=registry, repository=repository)


def split_image_ref(image_ref: str) -> tuple[str, str]:
    """
    Split an image reference into (name, tag-or-digest).

    "nginx" -> ("nginx", "latest")
    "localhost:5000/app:1.2" -> ("localhost:5000/app", "1.2")
    "alpine@sha256:abc..." -> ("alpine", "sha256:abc...")
    """
    if "@" in image_ref:
        name, digest = image_ref.split("@", 1)
        return name, digest

    last_slash = image_ref.rfind("/")
    last_colon = image_ref.rfind(":")
    # a colon before the last slash is a host:port, not a tag
    if last_colon > last_slash:
        return image_ref[:last_colon], image_ref[last_colon + 1:]
    return image_ref, "latest"
