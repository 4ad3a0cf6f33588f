"""boto3 client creation.

Retry and backoff for remote calls live here, in the botocore client
configuration; the sweep engine itself never retries list calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

DEFAULT_RETRY_CONFIG = BotoConfig(retries={"max_attempts": 10, "mode": "standard"})


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client for a service.

    Args:
        service_name: AWS service name (e.g., "ec2")
        region_name: AWS region (optional, falls back to profile/env settings)
        profile_name: AWS profile name (optional)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    return session.client(service_name, config=DEFAULT_RETRY_CONFIG)


class BotoClientFactory:
    """Creates and caches one boto3 client per service.

    This is the remote-provider collaborator injected into the invoker and the
    destroyer; tests substitute a callable returning fake clients.

    Attributes:
        aws_profile: AWS profile name (optional)
        region: AWS region (optional)
    """

    def __init__(self, aws_profile: Optional[str] = None, region: Optional[str] = None) -> None:
        self.aws_profile = aws_profile
        self.region = region
        self._clients: Dict[str, Any] = {}

    def __call__(self, service_name: str) -> Any:
        if service_name not in self._clients:
            logger.debug(f"Creating {service_name} client (profile={self.aws_profile}, region={self.region})")
            self._clients[service_name] = create_boto_client(
                service_name=service_name,
                region_name=self.region,
                profile_name=self.aws_profile,
            )
        return self._clients[service_name]
