"""Tests for the registry error taxonomy and classifier."""

from __future__ import annotations

import pytest

from docker_datasource.modules.errors import (
    ErrorKind,
    ExternalHostError,
    HostDisabledError,
    HttpError,
    RegistryError,
    TransportErrorCode,
    classify_error,
    is_default_registry,
    raise_for_host,
)

DOCKER_HUB = "https://index.docker.io"
PRIVATE = "https://registry.example.com"


def status_error(registry: str, status_code: int) -> HttpError:
    return HttpError(f"{registry}/v2/app/manifests/latest", status_code=status_code)


def transport_error(registry: str, code: TransportErrorCode) -> HttpError:
    return HttpError(f"{registry}/v2/", code=code)


class TestHttpError:
    def test_carries_host_and_status(self) -> None:
        err = status_error(PRIVATE, 404)

        assert err.host == "registry.example.com"
        assert err.status_code == 404
        assert err.code is None
        assert isinstance(err, RegistryError)

    def test_message_mentions_url(self) -> None:
        err = transport_error(PRIVATE, TransportErrorCode.TIMEOUT)

        assert "registry.example.com/v2/" in str(err)


class TestClassifyError:
    @pytest.mark.parametrize("status_code", [500, 502, 503, 599])
    def test_server_errors_are_host_fatal_everywhere(self, status_code: int) -> None:
        assert classify_error(status_error(PRIVATE, status_code), PRIVATE) is ErrorKind.HOST_FATAL
        assert classify_error(status_error(DOCKER_HUB, status_code), DOCKER_HUB) is ErrorKind.HOST_FATAL

    def test_rate_limit_fatal_only_on_docker_hub(self) -> None:
        assert classify_error(status_error(DOCKER_HUB, 429), DOCKER_HUB) is ErrorKind.HOST_FATAL
        assert classify_error(status_error(PRIVATE, 429), PRIVATE) is ErrorKind.IGNORABLE

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404])
    def test_client_errors_are_ignorable(self, status_code: int) -> None:
        assert classify_error(status_error(DOCKER_HUB, status_code), DOCKER_HUB) is ErrorKind.IGNORABLE

    @pytest.mark.parametrize("code", [TransportErrorCode.TIMEOUT, TransportErrorCode.TLS])
    def test_timeouts_and_tls_are_transient(self, code: TransportErrorCode) -> None:
        assert classify_error(transport_error(DOCKER_HUB, code), DOCKER_HUB) is ErrorKind.TRANSIENT

    def test_request_error_fatal_only_on_docker_hub(self) -> None:
        assert (
            classify_error(transport_error(DOCKER_HUB, TransportErrorCode.REQUEST), DOCKER_HUB)
            is ErrorKind.HOST_FATAL
        )
        assert (
            classify_error(transport_error(PRIVATE, TransportErrorCode.REQUEST), PRIVATE)
            is ErrorKind.TRANSIENT
        )

    def test_quay_errors_are_always_ignorable(self) -> None:
        registry = "https://quay.io"

        assert classify_error(status_error(registry, 500), registry) is ErrorKind.IGNORABLE
        assert classify_error(transport_error(registry, TransportErrorCode.REQUEST), registry) is ErrorKind.IGNORABLE

    def test_disabled_host_is_ignorable(self) -> None:
        err = HostDisabledError(f"{DOCKER_HUB}/v2/")

        assert classify_error(err, DOCKER_HUB) is ErrorKind.IGNORABLE

    def test_external_host_error_stays_fatal(self) -> None:
        err = ExternalHostError(status_error(PRIVATE, 503))

        assert classify_error(err, PRIVATE) is ErrorKind.HOST_FATAL

    def test_invalid_url_is_ignorable_on_docker_hub(self) -> None:
        err = HttpError("https://[::1/token", code=TransportErrorCode.INVALID_URL)

        assert err.host is None
        assert classify_error(err, DOCKER_HUB) is ErrorKind.IGNORABLE

    def test_unknown_errors_are_ignorable(self) -> None:
        assert classify_error(ValueError("bad json"), PRIVATE) is ErrorKind.IGNORABLE


class TestRaiseForHost:
    def test_wraps_host_fatal_error(self) -> None:
        err = status_error(PRIVATE, 500)

        with pytest.raises(ExternalHostError) as exc_info:
            raise_for_host(err, PRIVATE)

        assert exc_info.value.err is err
        assert exc_info.value.host == "registry.example.com"
        assert exc_info.value.host_type == "docker"

    def test_reraises_existing_external_host_error_unchanged(self) -> None:
        original = ExternalHostError(status_error(DOCKER_HUB, 429))

        with pytest.raises(ExternalHostError) as exc_info:
            raise_for_host(original, DOCKER_HUB)

        assert exc_info.value is original

    def test_returns_kind_for_non_fatal(self) -> None:
        assert raise_for_host(status_error(PRIVATE, 404), PRIVATE) is ErrorKind.IGNORABLE
        assert raise_for_host(transport_error(PRIVATE, TransportErrorCode.TIMEOUT), PRIVATE) is ErrorKind.TRANSIENT


def test_is_default_registry() -> None:
    assert is_default_registry("https://index.docker.io")
    assert is_default_registry("https://index.docker.io/")
    assert not is_default_registry("https://ghcr.io")
