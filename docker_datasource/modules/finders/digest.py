"""Manifest digest extraction."""

import hashlib
from typing import Union

from docker_datasource.modules.http import HttpResponse


def digest_from_manifest_str(manifest: Union[str, bytes]) -> str:
    """sha256 digest of a manifest exactly as the registry served it."""
    if isinstance(manifest, str):
        manifest = manifest.encode("utf-8")
    return "sha256:" + hashlib.sha256(manifest).hexdigest()


def extract_digest_from_response(manifest_response: HttpResponse) -> str:
    """
    Return the content digest of a manifest response.

    Prefers the registry's Docker-Content-Digest header; otherwise hashes the
    raw body bytes. The body is not re-serialised first, any normalisation
    would change the digest.
    """
    digest = manifest_response.headers.get("docker-content-digest")
    if digest is None:
        return digest_from_manifest_str(manifest_response.content)
    return digest
