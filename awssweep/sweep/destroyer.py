"""Resource destroy strategies.

Maps resource types to their boto3 deletion calls with per-id error handling
and retry of transient dependency conflicts.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..models.resource_set import ResourceSet

logger = logging.getLogger(__name__)

# Error codes meaning the resource is already gone
NOT_FOUND_CODES = {
    "NoSuchEntity",
    "NoSuchHostedZone",
    "ResourceNotFoundException",
    "NotFoundException",
    "FileSystemNotFound",
    "MountTargetNotFound",
    "NatGatewayNotFound",
    "InvalidAMIID.Unavailable",
    "InvalidVpcEndpointId.NotFound",
}

# Error codes worth retrying after a short wait (dependents still draining)
RETRYABLE_CODES = {
    "DependencyViolation",
    "DeleteConflict",
    "FileSystemInUse",
    "ResourceInUse",
    "HostedZoneNotEmpty",
}


@dataclass
class DestroyResult:
    """Outcome of destroying one resource.

    Attributes:
        resource_id: Resource identifier
        success: True if the resource was deleted or was already absent
        error_code: AWS error code if failed (optional)
        error_message: Human-readable error if failed (optional)
    """

    resource_id: str
    success: bool
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class Destroyer(ABC):
    """Destroy capability for resource sets.

    Implementations must report one result per id, in set order, and must not
    let one failed id stop the remaining ids.
    """

    @abstractmethod
    def destroy(self, resource_set: ResourceSet) -> List[DestroyResult]:
        """Delete every resource in the set.

        Args:
            resource_set: Resources of a single type

        Returns:
            One DestroyResult per id, aligned with ``resource_set.ids``
        """


class BotoDestroyer(Destroyer):
    """Destroys resources through boto3 API calls.

    Attributes:
        client_factory: Returns the client for a service name
        max_retries: Maximum number of attempts per resource (default: 3)
    """

    # Deletion method mapping: resource_type -> (service, method, id_field)
    DELETION_METHODS = {
        # Compute
        "aws_autoscaling_group": ("autoscaling", "delete_auto_scaling_group", "AutoScalingGroupName"),
        "aws_launch_configuration": ("autoscaling", "delete_launch_configuration", "LaunchConfigurationName"),
        "aws_instance": ("ec2", "terminate_instances", "InstanceIds"),
        "aws_elb": ("elb", "delete_load_balancer", "LoadBalancerName"),
        "aws_vpc_endpoint": ("ec2", "delete_vpc_endpoints", "VpcEndpointIds"),
        "aws_nat_gateway": ("ec2", "delete_nat_gateway", "NatGatewayId"),
        "aws_cloudformation_stack": ("cloudformation", "delete_stack", "StackName"),
        # Route53
        "aws_route53_zone": ("route53", "delete_hosted_zone", "Id"),
        "aws_route53_record": ("route53", "change_resource_record_sets", "HostedZoneId"),
        # EFS
        "aws_efs_file_system": ("efs", "delete_file_system", "FileSystemId"),
        "aws_efs_mount_target": ("efs", "delete_mount_target", "MountTargetId"),
        # IAM
        "aws_iam_user": ("iam", "delete_user", "UserName"),
        "aws_iam_user_policy_attachment": ("iam", "detach_user_policy", "PolicyArn"),
        "aws_iam_user_policy": ("iam", "delete_user_policy", "PolicyName"),
        "aws_iam_access_key": ("iam", "delete_access_key", "AccessKeyId"),
        "aws_iam_policy": ("iam", "delete_policy", "PolicyArn"),
        "aws_iam_policy_attachment": ("iam", "detach_user_policy", "PolicyArn"),
        "aws_iam_policy_version": ("iam", "delete_policy_version", "VersionId"),
        "aws_iam_role": ("iam", "delete_role", "RoleName"),
        "aws_iam_role_policy_attachment": ("iam", "detach_role_policy", "PolicyArn"),
        "aws_iam_role_policy": ("iam", "delete_role_policy", "PolicyName"),
        "aws_iam_role_instance_profile": ("iam", "remove_role_from_instance_profile", "InstanceProfileName"),
        "aws_iam_instance_profile": ("iam", "delete_instance_profile", "InstanceProfileName"),
        # KMS
        "aws_kms_alias": ("kms", "delete_alias", "AliasName"),
        "aws_kms_key": ("kms", "schedule_key_deletion", "KeyId"),
        # Images and volumes
        "aws_ami": ("ec2", "deregister_image", "ImageId"),
        "aws_ebs_volume": ("ec2", "delete_volume", "VolumeId"),
        # Network
        "aws_internet_gateway": ("ec2", "delete_internet_gateway", "InternetGatewayId"),
        "aws_eip": ("ec2", "release_address", "AllocationId"),
        "aws_route_table": ("ec2", "delete_route_table", "RouteTableId"),
        "aws_security_group": ("ec2", "delete_security_group", "GroupId"),
        "aws_network_acl": ("ec2", "delete_network_acl", "NetworkAclId"),
        "aws_subnet": ("ec2", "delete_subnet", "SubnetId"),
        "aws_vpc": ("ec2", "delete_vpc", "VpcId"),
    }

    def __init__(self, client_factory: Callable[[str], Any], max_retries: int = 3) -> None:
        """Initialize resource destroyer.

        Args:
            client_factory: Returns the client for a service name
            max_retries: Maximum number of retry attempts (default: 3)
        """
        self.client_factory = client_factory
        self.max_retries = max_retries

    def destroy(self, resource_set: ResourceSet) -> List[DestroyResult]:
        results = []
        for resource_id, attrs in zip(resource_set.ids, resource_set.attrs):
            success, error_code, error_message = self.delete_resource(resource_set.type, resource_id, attrs)
            results.append(
                DestroyResult(
                    resource_id=resource_id,
                    success=success,
                    error_code=error_code,
                    error_message=error_message,
                )
            )
        return results

    def delete_resource(
        self,
        resource_type: str,
        resource_id: str,
        attrs: Optional[Dict[str, str]] = None,
    ) -> Tuple[bool, Optional[str], Optional[str]]:
        """Delete one resource.

        Args:
            resource_type: Resource type name (e.g., "aws_instance")
            resource_id: Resource identifier
            attrs: Resource attributes from discovery

        Returns:
            Tuple of (success, error_code, error_message)
        """
        attrs = attrs or {}

        if resource_type not in self.DELETION_METHODS:
            error_msg = f"Unsupported resource type: {resource_type}"
            logger.warning(error_msg)
            return (False, "UnsupportedResourceType", error_msg)

        error_code: Optional[str] = None
        error_message: Optional[str] = None

        for attempt in range(self.max_retries):
            success, error_code, error_message = self._attempt_deletion(resource_type, resource_id, attrs)

            if success:
                logger.info(f"Deleted {resource_type}: {resource_id}")
                return (True, None, None)

            if error_code not in RETRYABLE_CODES:
                return (False, error_code, error_message)

            if attempt < self.max_retries - 1:
                wait_time = 2**attempt
                logger.debug(
                    f"{error_code} for {resource_id}, "
                    f"retrying in {wait_time}s (attempt {attempt + 1}/{self.max_retries})"
                )
                time.sleep(wait_time)

        logger.error(f"Failed to delete {resource_type} {resource_id} after {self.max_retries} attempts")
        return (False, error_code, error_message)

    def _attempt_deletion(
        self,
        resource_type: str,
        resource_id: str,
        attrs: Dict[str, str],
    ) -> Tuple[bool, Optional[str], Optional[str]]:
        """Attempt a single deletion.

        Returns:
            Tuple of (success, error_code, error_message)
        """
        service, method, id_field = self.DELETION_METHODS[resource_type]

        try:
            client = self.client_factory(service)

            handler = self._HANDLERS.get(resource_type)
            if handler is not None:
                getattr(self, handler)(client, resource_id, attrs)
            else:
                params = self._build_deletion_params(resource_type, id_field, resource_id, attrs)
                getattr(client, method)(**params)

            return (True, None, None)

        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))

            if _is_not_found(error_code):
                logger.info(f"{resource_type} {resource_id} already deleted")
                return (True, None, None)

            if error_code in RETRYABLE_CODES:
                logger.debug(f"{error_code} for {resource_id}: {error_message}")
            else:
                logger.error(f"Failed to delete {resource_id}: {error_code} - {error_message}")
            return (False, error_code, error_message)

        except (BotoCoreError, KeyError, TypeError) as e:
            error_msg = f"Unexpected error: {e}"
            logger.error(f"Failed to delete {resource_id}: {error_msg}")
            return (False, type(e).__name__, error_msg)

    def _build_deletion_params(
        self,
        resource_type: str,
        id_field: str,
        resource_id: str,
        attrs: Dict[str, str],
    ) -> Dict[str, Any]:
        """Build deletion parameters for a boto3 call.

        Args:
            resource_type: Resource type name
            id_field: Parameter name for the resource ID
            resource_id: Resource identifier
            attrs: Resource attributes from discovery

        Returns:
            Dictionary of parameters for the boto3 method call

        Raises:
            KeyError: If a required attribute is missing
        """
        # Plural form indicates list
        if id_field.endswith("Ids"):
            return {id_field: [resource_id]}

        if resource_type == "aws_autoscaling_group":
            return {id_field: resource_id, "ForceDelete": True}
        elif resource_type == "aws_kms_key":
            # Minimum waiting period
            return {id_field: attrs.get("key_id", resource_id), "PendingWindowInDays": 7}
        elif resource_type == "aws_iam_user_policy_attachment":
            return {"UserName": attrs["user"], "PolicyArn": attrs["policy_arn"]}
        elif resource_type == "aws_iam_user_policy":
            return {"UserName": attrs["user"], "PolicyName": attrs["name"]}
        elif resource_type == "aws_iam_access_key":
            return {"UserName": attrs["user"], id_field: resource_id}
        elif resource_type == "aws_iam_policy_version":
            return {"PolicyArn": attrs["policy_arn"], "VersionId": attrs["version_id"]}
        elif resource_type == "aws_iam_role_policy_attachment":
            return {"RoleName": attrs["role"], "PolicyArn": attrs["policy_arn"]}
        elif resource_type == "aws_iam_role_policy":
            return {"RoleName": attrs["role"], "PolicyName": attrs["name"]}
        elif resource_type == "aws_iam_role_instance_profile":
            return {"RoleName": attrs["role"], "InstanceProfileName": attrs["instance_profile"]}

        return {id_field: resource_id}

    # Types that need more than one call: resource_type -> handler method name
    _HANDLERS = {
        "aws_route53_record": "_delete_route53_record",
        "aws_iam_policy_attachment": "_detach_policy_entities",
        "aws_iam_instance_profile": "_delete_instance_profile",
        "aws_internet_gateway": "_delete_internet_gateway",
        "aws_eip": "_release_address",
        "aws_route_table": "_delete_route_table",
    }

    def _delete_route53_record(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        record: Dict[str, Any] = {"Name": attrs["name"], "Type": attrs["type"]}

        if attrs.get("alias_dns_name"):
            record["AliasTarget"] = {
                "DNSName": attrs["alias_dns_name"],
                "HostedZoneId": attrs["alias_zone_id"],
                "EvaluateTargetHealth": attrs.get("alias_evaluate_health") == "true",
            }
        else:
            record["TTL"] = int(attrs.get("ttl", "300"))
            record["ResourceRecords"] = [{"Value": v} for v in attrs.get("values", "").split("\n") if v]

        # Routing policy fields must match the stored record exactly
        if attrs.get("set_identifier"):
            record["SetIdentifier"] = attrs["set_identifier"]
        if attrs.get("weight"):
            record["Weight"] = int(attrs["weight"])
        if attrs.get("region"):
            record["Region"] = attrs["region"]
        if attrs.get("failover"):
            record["Failover"] = attrs["failover"]
        location = {
            key: attrs[name]
            for name, key in (
                ("geo_continent", "ContinentCode"),
                ("geo_country", "CountryCode"),
                ("geo_subdivision", "SubdivisionCode"),
            )
            if attrs.get(name)
        }
        if location:
            record["GeoLocation"] = location
        if attrs.get("multi_value"):
            record["MultiValueAnswer"] = attrs["multi_value"] == "true"
        if attrs.get("health_check_id"):
            record["HealthCheckId"] = attrs["health_check_id"]

        client.change_resource_record_sets(
            HostedZoneId=attrs["zone_id"],
            ChangeBatch={"Changes": [{"Action": "DELETE", "ResourceRecordSet": record}]},
        )

    def _detach_policy_entities(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        policy_arn = attrs["policy_arn"]
        for user in _split(attrs.get("users")):
            self._unlink(client.detach_user_policy, UserName=user, PolicyArn=policy_arn)
        for role in _split(attrs.get("roles")):
            self._unlink(client.detach_role_policy, RoleName=role, PolicyArn=policy_arn)
        for group in _split(attrs.get("groups")):
            self._unlink(client.detach_group_policy, GroupName=group, PolicyArn=policy_arn)

    def _delete_instance_profile(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        for role in _split(attrs.get("roles")):
            self._unlink(client.remove_role_from_instance_profile, InstanceProfileName=resource_id, RoleName=role)
        client.delete_instance_profile(InstanceProfileName=resource_id)

    def _delete_internet_gateway(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        for vpc_id in _split(attrs.get("vpc_ids")):
            self._unlink(client.detach_internet_gateway, InternetGatewayId=resource_id, VpcId=vpc_id)
        client.delete_internet_gateway(InternetGatewayId=resource_id)

    def _release_address(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        if attrs.get("association_id"):
            self._unlink(client.disassociate_address, AssociationId=attrs["association_id"])
        client.release_address(AllocationId=resource_id)

    def _delete_route_table(self, client: Any, resource_id: str, attrs: Dict[str, str]) -> None:
        for association_id in _split(attrs.get("association_ids")):
            self._unlink(client.disassociate_route_table, AssociationId=association_id)
        client.delete_route_table(RouteTableId=resource_id)

    def _unlink(self, call: Callable[..., Any], **params: Any) -> None:
        """Run a detach or disassociate call; a link that is already gone is fine.

        Raises:
            ClientError: For any error other than a not-found code
        """
        try:
            call(**params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if not _is_not_found(error_code):
                raise
            logger.debug(f"{error_code} for {params}, already detached")


def _is_not_found(error_code: str) -> bool:
    return error_code in NOT_FOUND_CODES or error_code.endswith(".NotFound")


def _split(value: Optional[str]) -> List[str]:
    return [v for v in (value or "").split(",") if v]
