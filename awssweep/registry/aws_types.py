"""Built-in AWS resource types.

Registration order is the order top-level types are swept: compute and load
balancing first, then stacks, DNS, storage, IAM, KMS, images, and finally the
network layer from gateways down to VPCs.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ..models.candidate import Candidate
from .descriptor import DependentDescriptor, DetailLookup, ListOperation, ResourceDescriptor, ResourceRegistry


def _state_in(path: str, *states: str) -> Callable[[Any], bool]:
    """Exclude items whose (possibly nested) state field is one of ``states``."""
    keys = path.split(".")

    def check(item: Any) -> bool:
        value = item
        for key in keys:
            if not isinstance(value, dict):
                return False
            value = value.get(key)
        return value in states

    return check


def _prefixed(separator: str) -> Callable[[Candidate, Optional[str]], Optional[str]]:
    """Dependent id of the form ``<parent id><separator><raw id>``."""

    def child_id(parent: Candidate, raw_id: Optional[str]) -> Optional[str]:
        if not raw_id:
            return None
        return f"{parent.id}{separator}{raw_id}"

    return child_id


def _zone_record_id(parent: Candidate, raw_id: Optional[str]) -> Optional[str]:
    if not raw_id:
        return None
    return f"{parent.id.split('/')[-1]}_{raw_id}"


def _is_default_route_table(item: Dict[str, Any]) -> bool:
    return any(a.get("Main") for a in item.get("Associations") or [])


def _has_no_policy_entities(item: Dict[str, Any]) -> bool:
    return not (item.get("PolicyUsers") or item.get("PolicyRoles") or item.get("PolicyGroups"))


def _is_unmanaged_key_state(item: Dict[str, Any]) -> bool:
    metadata = item.get("KeyMetadata") or {}
    if metadata.get("KeyManager") == "AWS":
        return True
    return metadata.get("KeyState") in ("PendingDeletion", "PendingReplicaDeletion")


RESOURCE_DESCRIPTORS = (
    # Compute
    ResourceDescriptor(
        type_name="aws_autoscaling_group",
        list_operation=ListOperation("autoscaling", "describe_auto_scaling_groups"),
        list_path="AutoScalingGroups[]",
        id_field="AutoScalingGroupName",
        exclude=lambda item: item.get("Status") == "Delete in progress",
        description="Auto Scaling groups",
    ),
    ResourceDescriptor(
        type_name="aws_launch_configuration",
        list_operation=ListOperation("autoscaling", "describe_launch_configurations"),
        list_path="LaunchConfigurations[]",
        id_field="LaunchConfigurationName",
        tag_path=None,
        description="Launch configurations",
    ),
    ResourceDescriptor(
        type_name="aws_instance",
        list_operation=ListOperation("ec2", "describe_instances"),
        list_path="Reservations[].Instances[]",
        id_field="InstanceId",
        attr_fields={"state": "State.Name", "vpc_id": "VpcId"},
        exclude=_state_in("State.Name", "terminated", "shutting-down"),
        description="EC2 instances",
    ),
    ResourceDescriptor(
        type_name="aws_elb",
        list_operation=ListOperation("elb", "describe_load_balancers"),
        list_path="LoadBalancerDescriptions[]",
        id_field="LoadBalancerName",
        tag_path=None,
        attr_fields={"dns_name": "DNSName"},
        description="Classic load balancers",
    ),
    ResourceDescriptor(
        type_name="aws_vpc_endpoint",
        list_operation=ListOperation("ec2", "describe_vpc_endpoints"),
        list_path="VpcEndpoints[]",
        id_field="VpcEndpointId",
        attr_fields={"vpc_id": "VpcId", "service_name": "ServiceName"},
        exclude=_state_in("State", "deleted", "deleting"),
        description="VPC endpoints",
    ),
    ResourceDescriptor(
        type_name="aws_nat_gateway",
        list_operation=ListOperation("ec2", "describe_nat_gateways"),
        list_path="NatGateways[]",
        id_field="NatGatewayId",
        attr_fields={"vpc_id": "VpcId", "subnet_id": "SubnetId"},
        exclude=_state_in("State", "deleted", "deleting"),
        description="NAT gateways",
    ),
    ResourceDescriptor(
        type_name="aws_cloudformation_stack",
        list_operation=ListOperation("cloudformation", "describe_stacks"),
        list_path="Stacks[]",
        id_field="StackId",
        attr_fields={"name": "StackName", "status": "StackStatus"},
        exclude=_state_in("StackStatus", "DELETE_COMPLETE", "DELETE_IN_PROGRESS"),
        description="CloudFormation stacks",
    ),
    # DNS
    ResourceDescriptor(
        type_name="aws_route53_zone",
        list_operation=ListOperation("route53", "list_hosted_zones"),
        list_path="HostedZones[]",
        id_field="Id",
        tag_path=None,
        attr_fields={"name": "Name"},
        dependents=(
            DependentDescriptor(
                type_name="aws_route53_record",
                scope=lambda zone: {"HostedZoneId": zone.id},
                attrs=lambda zone: {"zone_id": zone.id},
                child_id=_zone_record_id,
            ),
        ),
        description="Route53 hosted zones",
    ),
    ResourceDescriptor(
        type_name="aws_route53_record",
        list_operation=ListOperation("route53", "list_resource_record_sets"),
        list_path="ResourceRecordSets[]",
        id_field=("Name", "Type"),
        tag_path=None,
        attr_fields={
            "name": "Name",
            "type": "Type",
            "ttl": "TTL",
            "values": "ResourceRecords[].Value",
            "set_identifier": "SetIdentifier",
            "weight": "Weight",
            "region": "Region",
            "alias_dns_name": "AliasTarget.DNSName",
            "alias_zone_id": "AliasTarget.HostedZoneId",
            "alias_evaluate_health": "AliasTarget.EvaluateTargetHealth",
            "failover": "Failover",
            "geo_continent": "GeoLocation.ContinentCode",
            "geo_country": "GeoLocation.CountryCode",
            "geo_subdivision": "GeoLocation.SubdivisionCode",
            "multi_value": "MultiValueAnswer",
            "health_check_id": "HealthCheckId",
        },
        exclude=lambda item: item.get("Type") in ("NS", "SOA"),
        requires_scope=True,
        list_separator="\n",
        description="Route53 records (deleted with their zone)",
    ),
    # Storage
    ResourceDescriptor(
        type_name="aws_efs_file_system",
        list_operation=ListOperation("efs", "describe_file_systems"),
        list_path="FileSystems[]",
        id_field="FileSystemId",
        attr_fields={"name": "Name"},
        exclude=_state_in("LifeCycleState", "deleting", "deleted"),
        dependents=(
            DependentDescriptor(
                type_name="aws_efs_mount_target",
                scope=lambda fs: {"FileSystemId": fs.id},
            ),
        ),
        description="EFS file systems",
    ),
    ResourceDescriptor(
        type_name="aws_efs_mount_target",
        list_operation=ListOperation("efs", "describe_mount_targets"),
        list_path="MountTargets[]",
        id_field="MountTargetId",
        tag_path=None,
        attr_fields={"file_system_id": "FileSystemId", "subnet_id": "SubnetId"},
        exclude=_state_in("LifeCycleState", "deleting", "deleted"),
        requires_scope=True,
        description="EFS mount targets (deleted with their file system)",
    ),
    # IAM
    ResourceDescriptor(
        type_name="aws_iam_user",
        list_operation=ListOperation("iam", "list_users"),
        list_path="Users[]",
        id_field="UserName",
        attr_fields={"arn": "Arn"},
        dependents=(
            DependentDescriptor(
                type_name="aws_iam_user_policy_attachment",
                scope=lambda user: {"UserName": user.id},
                attrs=lambda user: {"user": user.id},
                child_id=_prefixed("/"),
            ),
            DependentDescriptor(
                type_name="aws_iam_user_policy",
                scope=lambda user: {"UserName": user.id},
                attrs=lambda user: {"user": user.id},
                child_id=_prefixed(":"),
            ),
            DependentDescriptor(
                type_name="aws_iam_access_key",
                scope=lambda user: {"UserName": user.id},
                attrs=lambda user: {"user": user.id},
            ),
        ),
        description="IAM users",
    ),
    ResourceDescriptor(
        type_name="aws_iam_user_policy_attachment",
        list_operation=ListOperation("iam", "list_attached_user_policies"),
        list_path="AttachedPolicies[]",
        id_field="PolicyArn",
        tag_path=None,
        attr_fields={"policy_arn": "PolicyArn"},
        requires_scope=True,
        description="Managed policies attached to IAM users",
    ),
    ResourceDescriptor(
        type_name="aws_iam_user_policy",
        list_operation=ListOperation("iam", "list_user_policies"),
        list_path="PolicyNames[]",
        id_field=None,
        tag_path=None,
        attr_fields={"name": ""},
        requires_scope=True,
        description="Inline IAM user policies",
    ),
    ResourceDescriptor(
        type_name="aws_iam_access_key",
        list_operation=ListOperation("iam", "list_access_keys"),
        list_path="AccessKeyMetadata[]",
        id_field="AccessKeyId",
        tag_path=None,
        attr_fields={"status": "Status"},
        requires_scope=True,
        description="IAM user access keys",
    ),
    ResourceDescriptor(
        type_name="aws_iam_policy",
        list_operation=ListOperation("iam", "list_policies", {"Scope": "Local"}),
        list_path="Policies[]",
        id_field="Arn",
        attr_fields={"name": "PolicyName"},
        dependents=(
            DependentDescriptor(
                type_name="aws_iam_policy_attachment",
                scope=lambda policy: {"PolicyArn": policy.id},
                attrs=lambda policy: {"policy_arn": policy.id},
                child_id=lambda policy, _raw: policy.id,
            ),
            DependentDescriptor(
                type_name="aws_iam_policy_version",
                scope=lambda policy: {"PolicyArn": policy.id},
                attrs=lambda policy: {"policy_arn": policy.id},
                child_id=_prefixed(":"),
            ),
        ),
        description="Customer-managed IAM policies",
    ),
    ResourceDescriptor(
        type_name="aws_iam_policy_attachment",
        list_operation=ListOperation("iam", "list_entities_for_policy"),
        list_path="",
        id_field=None,
        tag_path=None,
        attr_fields={
            "users": "PolicyUsers[].UserName",
            "roles": "PolicyRoles[].RoleName",
            "groups": "PolicyGroups[].GroupName",
        },
        exclude=_has_no_policy_entities,
        requires_scope=True,
        description="Users, roles and groups an IAM policy is attached to",
    ),
    ResourceDescriptor(
        type_name="aws_iam_policy_version",
        list_operation=ListOperation("iam", "list_policy_versions"),
        list_path="Versions[]",
        id_field="VersionId",
        tag_path=None,
        attr_fields={"version_id": "VersionId"},
        exclude=lambda item: bool(item.get("IsDefaultVersion")),
        requires_scope=True,
        description="Non-default IAM policy versions",
    ),
    ResourceDescriptor(
        type_name="aws_iam_role",
        list_operation=ListOperation("iam", "list_roles"),
        list_path="Roles[]",
        id_field="RoleName",
        attr_fields={"arn": "Arn", "path": "Path"},
        exclude=lambda item: str(item.get("Path", "")).startswith("/aws-service-role/"),
        dependents=(
            DependentDescriptor(
                type_name="aws_iam_role_policy_attachment",
                scope=lambda role: {"RoleName": role.id},
                attrs=lambda role: {"role": role.id},
                child_id=_prefixed("/"),
            ),
            DependentDescriptor(
                type_name="aws_iam_role_policy",
                scope=lambda role: {"RoleName": role.id},
                attrs=lambda role: {"role": role.id},
                child_id=_prefixed(":"),
            ),
            DependentDescriptor(
                type_name="aws_iam_role_instance_profile",
                scope=lambda role: {"RoleName": role.id},
                attrs=lambda role: {"role": role.id},
                child_id=_prefixed(":"),
            ),
        ),
        description="IAM roles",
    ),
    ResourceDescriptor(
        type_name="aws_iam_role_policy_attachment",
        list_operation=ListOperation("iam", "list_attached_role_policies"),
        list_path="AttachedPolicies[]",
        id_field="PolicyArn",
        tag_path=None,
        attr_fields={"policy_arn": "PolicyArn"},
        requires_scope=True,
        description="Managed policies attached to IAM roles",
    ),
    ResourceDescriptor(
        type_name="aws_iam_role_policy",
        list_operation=ListOperation("iam", "list_role_policies"),
        list_path="PolicyNames[]",
        id_field=None,
        tag_path=None,
        attr_fields={"name": ""},
        requires_scope=True,
        description="Inline IAM role policies",
    ),
    ResourceDescriptor(
        type_name="aws_iam_role_instance_profile",
        list_operation=ListOperation("iam", "list_instance_profiles_for_role"),
        list_path="InstanceProfiles[]",
        id_field="InstanceProfileName",
        tag_path=None,
        attr_fields={"instance_profile": "InstanceProfileName"},
        requires_scope=True,
        description="Instance profile memberships of IAM roles",
    ),
    ResourceDescriptor(
        type_name="aws_iam_instance_profile",
        list_operation=ListOperation("iam", "list_instance_profiles"),
        list_path="InstanceProfiles[]",
        id_field="InstanceProfileName",
        attr_fields={"roles": "Roles[].RoleName"},
        description="IAM instance profiles",
    ),
    # KMS
    ResourceDescriptor(
        type_name="aws_kms_alias",
        list_operation=ListOperation("kms", "list_aliases"),
        list_path="Aliases[]",
        id_field="AliasName",
        tag_path=None,
        attr_fields={"target_key_id": "TargetKeyId"},
        exclude=lambda item: str(item.get("AliasName", "")).startswith("alias/aws/"),
        description="KMS aliases",
    ),
    ResourceDescriptor(
        type_name="aws_kms_key",
        list_operation=ListOperation("kms", "list_keys"),
        list_path="Keys[]",
        id_field="KeyArn",
        tag_path=None,
        attr_fields={"key_id": "KeyId", "state": "KeyMetadata.KeyState"},
        detail=DetailLookup(
            operation=ListOperation("kms", "describe_key"),
            scope=lambda item: {"KeyId": item["KeyId"]},
            path="KeyMetadata",
            key="KeyMetadata",
        ),
        exclude=_is_unmanaged_key_state,
        description="Customer-managed KMS keys",
    ),
    # Images and volumes
    ResourceDescriptor(
        type_name="aws_ami",
        list_operation=ListOperation("ec2", "describe_images", {"Owners": ["self"]}),
        list_path="Images[]",
        id_field="ImageId",
        attr_fields={"name": "Name"},
        description="AMIs owned by the account",
    ),
    ResourceDescriptor(
        type_name="aws_ebs_volume",
        list_operation=ListOperation("ec2", "describe_volumes"),
        list_path="Volumes[]",
        id_field="VolumeId",
        attr_fields={"state": "State"},
        exclude=_state_in("State", "deleting", "deleted", "in-use"),
        description="Unattached EBS volumes",
    ),
    # Network
    ResourceDescriptor(
        type_name="aws_internet_gateway",
        list_operation=ListOperation("ec2", "describe_internet_gateways"),
        list_path="InternetGateways[]",
        id_field="InternetGatewayId",
        attr_fields={"vpc_ids": "Attachments[].VpcId"},
        description="Internet gateways",
    ),
    ResourceDescriptor(
        type_name="aws_eip",
        list_operation=ListOperation("ec2", "describe_addresses"),
        list_path="Addresses[]",
        id_field="AllocationId",
        attr_fields={"public_ip": "PublicIp", "association_id": "AssociationId"},
        description="Elastic IPs",
    ),
    ResourceDescriptor(
        type_name="aws_route_table",
        list_operation=ListOperation("ec2", "describe_route_tables"),
        list_path="RouteTables[]",
        id_field="RouteTableId",
        attr_fields={"vpc_id": "VpcId", "association_ids": "Associations[].RouteTableAssociationId"},
        exclude=_is_default_route_table,
        description="Non-main route tables",
    ),
    ResourceDescriptor(
        type_name="aws_security_group",
        list_operation=ListOperation("ec2", "describe_security_groups"),
        list_path="SecurityGroups[]",
        id_field="GroupId",
        attr_fields={"name": "GroupName", "vpc_id": "VpcId"},
        exclude=lambda item: item.get("GroupName") == "default",
        description="Non-default security groups",
    ),
    ResourceDescriptor(
        type_name="aws_network_acl",
        list_operation=ListOperation("ec2", "describe_network_acls"),
        list_path="NetworkAcls[]",
        id_field="NetworkAclId",
        attr_fields={"vpc_id": "VpcId"},
        exclude=lambda item: bool(item.get("IsDefault")),
        description="Non-default network ACLs",
    ),
    ResourceDescriptor(
        type_name="aws_subnet",
        list_operation=ListOperation("ec2", "describe_subnets"),
        list_path="Subnets[]",
        id_field="SubnetId",
        attr_fields={"vpc_id": "VpcId", "cidr_block": "CidrBlock"},
        description="Subnets",
    ),
    ResourceDescriptor(
        type_name="aws_vpc",
        list_operation=ListOperation("ec2", "describe_vpcs"),
        list_path="Vpcs[]",
        id_field="VpcId",
        attr_fields={"cidr_block": "CidrBlock"},
        exclude=lambda item: bool(item.get("IsDefault")),
        description="Non-default VPCs",
    ),
)


def build_default_registry() -> ResourceRegistry:
    """Create a registry holding every built-in AWS resource type.

    Returns:
        Validated ResourceRegistry
    """
    registry = ResourceRegistry(RESOURCE_DESCRIPTORS)
    registry.validate()
    return registry
