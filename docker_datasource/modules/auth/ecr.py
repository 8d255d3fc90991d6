"""
Amazon ECR token issuance.

ECR answers the /v2/ probe with a Basic challenge but won't accept IAM
credentials directly; a short-lived token from GetAuthorizationToken has to
be exchanged first. The token is already base64("AWS:<password>") and goes
into the Authorization header untouched.
"""

from __future__ import annotations

import asyncio
import re
from typing import Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from docker_datasource.modules.keepers.host_rules import HostCredentials

logger = structlog.get_logger(__name__)

ECR_REGEX = re.compile(r"\d+\.dkr\.ecr\.([-a-z0-9]+)\.amazonaws\.com")


def ecr_region(registry: str) -> Optional[str]:
    """Return the AWS region of an ECR registry URL, or None for other hosts."""
    match = ECR_REGEX.search(registry)
    return match.group(1) if match else None


def _fetch_ecr_token(region: str, credentials: HostCredentials) -> Optional[str]:
    client_kwargs = {"region_name": region}
    if credentials.has_basic_auth:
        # host rule username/password are an access key pair for ECR
        client_kwargs["aws_access_key_id"] = credentials.username
        client_kwargs["aws_secret_access_key"] = credentials.password

    try:
        ecr_client = boto3.client("ecr", **client_kwargs)
        response = ecr_client.get_authorization_token()
    except (BotoCoreError, ClientError) as e:
        logger.debug("ecr_get_authorization_token_error", region=region, error=str(e))
        return None

    auth_data = response.get("authorizationData") or [{}]
    token = auth_data[0].get("authorizationToken")
    if token:
        return token
    logger.warning("ecr_authorization_token_missing", region=region)
    return None


async def get_ecr_auth_token(region: str, credentials: HostCredentials) -> Optional[str]:
    """
    Obtain an ECR authorization token.

    Args:
        region: AWS region of the registry
        credentials: Host credentials; username/password used as access key id/secret

    Returns:
        Base64 token for a Basic Authorization header, or None on failure
    """
    # boto3 is blocking
    return await asyncio.to_thread(_fetch_ecr_token, region, credentials)
