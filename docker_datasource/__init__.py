"""
docker-datasource: Docker Registry V2 lookups.

Resolves registry authentication, fetches manifests (following manifest
lists), extracts content digests and reads image labels.
"""

from .datasource import DockerDatasource
from .modules.errors import ErrorKind, ExternalHostError, HostDisabledError, HttpError, RegistryError
from .modules.formatters import RegistryRepository, get_registry_repository

__version__ = "1.0.0"

__all__ = [
    "DockerDatasource",
    "ErrorKind",
    "ExternalHostError",
    "HostDisabledError",
    "HttpError",
    "RegistryError",
    "RegistryRepository",
    "get_registry_repository",
]
