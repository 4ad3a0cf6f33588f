"""AWS credential validation."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound

from .client import create_boto_client

logger = logging.getLogger(__name__)


class CredentialValidationError(Exception):
    """Credentials are missing, invalid or expired."""


def validate_credentials(aws_profile: Optional[str] = None, region: Optional[str] = None) -> Dict[str, str]:
    """Validate credentials by calling STS GetCallerIdentity.

    Args:
        aws_profile: AWS profile name (optional)
        region: AWS region (optional)

    Returns:
        Dictionary with account_id, arn and user_id

    Raises:
        CredentialValidationError: If the identity cannot be retrieved
    """
    try:
        sts = create_boto_client("sts", region_name=region, profile_name=aws_profile)
        identity = sts.get_caller_identity()
    except ProfileNotFound as e:
        raise CredentialValidationError(f"AWS profile not found: {e}") from e
    except NoCredentialsError as e:
        raise CredentialValidationError("No AWS credentials found") from e
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        raise CredentialValidationError(f"Credential check failed: {error_code}") from e
    except BotoCoreError as e:
        raise CredentialValidationError(f"Credential check failed: {e}") from e

    logger.debug(f"Authenticated as {identity.get('Arn')}")
    return {
        "account_id": identity["Account"],
        "arn": identity["Arn"],
        "user_id": identity["UserId"],
    }
