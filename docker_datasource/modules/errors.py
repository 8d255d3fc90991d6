"""Registry error hierarchy and failure classification.

Exception Hierarchy:
    RegistryError (base)
    ├── HttpError           # Transport or HTTP status failure at the call boundary
    ├── HostDisabledError   # Host switched off by a host rule
    └── ExternalHostError   # Registry is unhealthy or rate limiting us

Every failure seen by the auth, manifest and label finders is passed through
classify_error(), which maps it onto one of three kinds:

    IGNORABLE   - this artifact/tag is absent or inaccessible; return nothing
    TRANSIENT   - connectivity hiccup (timeout, TLS); return nothing
    HOST_FATAL  - raise ExternalHostError so the caller can suspend the host
"""

from __future__ import annotations

from enum import Enum

import httpx

from docker_datasource.config import HOST_TYPE

QUAY_HOST = "quay.io"


class TransportErrorCode(str, Enum):
    """Transport failures that never produced an HTTP status."""

    TIMEOUT = "ETIMEDOUT"
    TLS = "ERR_TLS_CERT_ALTNAME_INVALID"
    REQUEST = "REQUEST_ERROR"
    INVALID_URL = "ERR_INVALID_URL"


class ErrorKind(Enum):
    """Outcome of classifying a registry failure."""

    IGNORABLE = "ignorable"
    TRANSIENT = "transient"
    HOST_FATAL = "host-fatal"


def host_of(url: str) -> str | None:
    """Hostname of ``url``, or None when it does not parse."""
    try:
        return httpx.URL(url).host
    except httpx.InvalidURL:
        return None


class RegistryError(Exception):
    """Base exception for all registry lookup errors."""


class HttpError(RegistryError):
    """Raised by the HTTP layer for a failed request.

    Attributes:
        url: The requested URL.
        host: Hostname the request was sent to.
        status_code: HTTP status, or None when no response was received.
        code: TransportErrorCode when no response was received.
    """

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        code: TransportErrorCode | None = None,
        message: str | None = None,
    ) -> None:
        self.url = url
        self.host = host_of(url)
        self.status_code = status_code
        self.code = code
        if message is None:
            message = f"status {status_code}" if status_code is not None else str(code)
        super().__init__(f"GET {url} failed: {message}")


class HostDisabledError(RegistryError):
    """Raised when host rules disable every request to a host."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.host = host_of(url)
        super().__init__(f"Host disabled: {self.host}")


class ExternalHostError(RegistryError):
    """The registry itself failed; orchestration should stop calling it.

    Attributes:
        err: The underlying error.
        host_type: Always "docker" for this datasource.
        host: Hostname of the failing registry, when known.
    """

    def __init__(self, err: Exception, host: str | None = None) -> None:
        self.err = err
        self.host_type = HOST_TYPE
        self.host = host or getattr(err, "host", None)
        super().__init__(f"External host error ({self.host}): {err}")


def is_default_registry(registry: str) -> bool:
    """Docker Hub gets stricter treatment of rate limits and request errors."""
    return registry.rstrip("/").endswith("docker.io")


def _is_quay(err: Exception, registry: str) -> bool:
    if getattr(err, "host", None) == QUAY_HOST:
        return True
    return registry.rstrip("/") in (QUAY_HOST, f"https://{QUAY_HOST}", f"http://{QUAY_HOST}")


def classify_error(err: Exception, registry: str) -> ErrorKind:
    """Map a failure against ``registry`` onto an ErrorKind.

    Args:
        err: Error raised while talking to the registry.
        registry: Registry base URL the lookup was made against.

    Returns:
        The ErrorKind for this failure.
    """
    if isinstance(err, ExternalHostError):
        return ErrorKind.HOST_FATAL
    if isinstance(err, HostDisabledError):
        return ErrorKind.IGNORABLE
    # quay.io is not fully v2 conformant yet
    if _is_quay(err, registry):
        return ErrorKind.IGNORABLE

    if isinstance(err, HttpError):
        if err.status_code is not None:
            if 500 <= err.status_code < 600:
                return ErrorKind.HOST_FATAL
            if err.status_code == 429 and is_default_registry(registry):
                return ErrorKind.HOST_FATAL
            return ErrorKind.IGNORABLE
        if err.code in (TransportErrorCode.TIMEOUT, TransportErrorCode.TLS):
            return ErrorKind.TRANSIENT
        if err.code is TransportErrorCode.REQUEST:
            if is_default_registry(registry):
                return ErrorKind.HOST_FATAL
            return ErrorKind.TRANSIENT

    return ErrorKind.IGNORABLE


def raise_for_host(err: Exception, registry: str) -> ErrorKind:
    """Raise host-fatal failures, return the kind of everything else.

    An ExternalHostError coming up from a deeper call is re-raised as is.

    Raises:
        ExternalHostError: If the failure is host-fatal.
    """
    if isinstance(err, ExternalHostError):
        raise err
    kind = classify_error(err, registry)
    if kind is ErrorKind.HOST_FATAL:
        raise ExternalHostError(err, host=getattr(err, "host", None)) from err
    return kind


__all__ = [
    "ErrorKind",
    "ExternalHostError",
    "HostDisabledError",
    "HttpError",
    "RegistryError",
    "TransportErrorCode",
    "classify_error",
    "is_default_registry",
    "raise_for_host",
]
