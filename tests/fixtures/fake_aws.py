"""In-memory fake AWS clients for sweep tests.

The fakes keep just enough state for EC2 instances, IAM roles and EFS file
systems to be listed, scoped and deleted, and record every call made.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from botocore.exceptions import ClientError


def client_error(code: str, operation: str, message: str = "error") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeAwsState:
    """Remote state shared by all fake clients.

    Attributes:
        instances: EC2 instance dicts as returned by describe_instances
        roles: Role name -> {"attached": [policy arns], "inline": [names], "profiles": [names]}
        file_systems: File system id -> {"tags": {...}, "mount_targets": [ids]}
        fail_calls: (service, method) pairs that raise AccessDenied
        fail_ids: Resource ids whose deletion raises AccessDenied
        calls: Every (service, method, kwargs) made, in order
    """

    def __init__(self) -> None:
        self.instances: List[Dict[str, Any]] = []
        self.roles: Dict[str, Dict[str, List[str]]] = {}
        self.file_systems: Dict[str, Dict[str, Any]] = {}
        self.fail_calls: Set[Tuple[str, str]] = set()
        self.fail_ids: Set[str] = set()
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def add_instance(self, instance_id: str, tags: Optional[Dict[str, str]] = None, state: str = "running") -> None:
        self.instances.append(
            {
                "InstanceId": instance_id,
                "State": {"Name": state},
                "Tags": [{"Key": k, "Value": v} for k, v in (tags or {}).items()],
            }
        )

    def add_role(
        self,
        name: str,
        attached: Optional[List[str]] = None,
        inline: Optional[List[str]] = None,
        profiles: Optional[List[str]] = None,
    ) -> None:
        self.roles[name] = {"attached": list(attached or []), "inline": list(inline or []), "profiles": list(profiles or [])}

    def add_file_system(self, fs_id: str, mount_targets: Optional[List[str]] = None, tags: Optional[Dict[str, str]] = None) -> None:
        self.file_systems[fs_id] = {"tags": dict(tags or {}), "mount_targets": list(mount_targets or [])}

    def mutating_calls(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        prefixes = ("delete_", "detach_", "remove_", "terminate_")
        return [c for c in self.calls if c[1].startswith(prefixes)]


class _FakeClient:
    service = ""

    def __init__(self, state: FakeAwsState) -> None:
        self.state = state

    def _call(self, method: str, resource_id: Optional[str] = None, **kwargs: Any) -> None:
        self.state.calls.append((self.service, method, kwargs))
        if (self.service, method) in self.state.fail_calls:
            raise client_error("AccessDenied", method)
        if resource_id is not None and resource_id in self.state.fail_ids:
            raise client_error("AccessDenied", method, f"not allowed to delete {resource_id}")


class FakeEc2(_FakeClient):
    service = "ec2"

    def describe_instances(self, **kwargs: Any) -> Dict[str, Any]:
        self._call("describe_instances", **kwargs)
        return {"Reservations": [{"Instances": [dict(i) for i in self.state.instances]}]}

    def terminate_instances(self, InstanceIds: List[str]) -> Dict[str, Any]:
        self._call("terminate_instances", InstanceIds[0], InstanceIds=InstanceIds)
        for instance in self.state.instances:
            if instance["InstanceId"] in InstanceIds:
                instance["State"] = {"Name": "terminated"}
        return {}


class FakeIam(_FakeClient):
    service = "iam"

    def _role(self, name: str) -> Dict[str, List[str]]:
        if name not in self.state.roles:
            raise client_error("NoSuchEntity", "GetRole", f"role {name} not found")
        return self.state.roles[name]

    def list_roles(self, **kwargs: Any) -> Dict[str, Any]:
        self._call("list_roles", **kwargs)
        return {"Roles": [{"RoleName": n, "Path": "/", "Arn": f"arn:aws:iam::123456789012:role/{n}"} for n in self.state.roles]}

    def list_attached_role_policies(self, RoleName: str) -> Dict[str, Any]:
        self._call("list_attached_role_policies", RoleName=RoleName)
        return {
            "AttachedPolicies": [
                {"PolicyArn": arn, "PolicyName": arn.split("/")[-1]} for arn in self._role(RoleName)["attached"]
            ]
        }

    def list_role_policies(self, RoleName: str) -> Dict[str, Any]:
        self._call("list_role_policies", RoleName=RoleName)
        return {"PolicyNames": list(self._role(RoleName)["inline"])}

    def list_instance_profiles_for_role(self, RoleName: str) -> Dict[str, Any]:
        self._call("list_instance_profiles_for_role", RoleName=RoleName)
        return {"InstanceProfiles": [{"InstanceProfileName": p} for p in self._role(RoleName)["profiles"]]}

    def detach_role_policy(self, RoleName: str, PolicyArn: str) -> Dict[str, Any]:
        self._call("detach_role_policy", PolicyArn, RoleName=RoleName, PolicyArn=PolicyArn)
        self._role(RoleName)["attached"].remove(PolicyArn)
        return {}

    def delete_role_policy(self, RoleName: str, PolicyName: str) -> Dict[str, Any]:
        self._call("delete_role_policy", PolicyName, RoleName=RoleName, PolicyName=PolicyName)
        self._role(RoleName)["inline"].remove(PolicyName)
        return {}

    def remove_role_from_instance_profile(self, InstanceProfileName: str, RoleName: str) -> Dict[str, Any]:
        self._call(
            "remove_role_from_instance_profile",
            InstanceProfileName,
            InstanceProfileName=InstanceProfileName,
            RoleName=RoleName,
        )
        self._role(RoleName)["profiles"].remove(InstanceProfileName)
        return {}

    def delete_role(self, RoleName: str) -> Dict[str, Any]:
        self._call("delete_role", RoleName, RoleName=RoleName)
        role = self._role(RoleName)
        if role["attached"] or role["inline"] or role["profiles"]:
            raise client_error("DeleteConflict", "DeleteRole", f"role {RoleName} still has dependents")
        del self.state.roles[RoleName]
        return {}


class FakeEfs(_FakeClient):
    service = "efs"

    def describe_file_systems(self, **kwargs: Any) -> Dict[str, Any]:
        self._call("describe_file_systems", **kwargs)
        return {
            "FileSystems": [
                {
                    "FileSystemId": fs_id,
                    "LifeCycleState": "available",
                    "Tags": [{"Key": k, "Value": v} for k, v in fs["tags"].items()],
                }
                for fs_id, fs in self.state.file_systems.items()
            ]
        }

    def describe_mount_targets(self, FileSystemId: str) -> Dict[str, Any]:
        self._call("describe_mount_targets", FileSystemId=FileSystemId)
        fs = self.state.file_systems.get(FileSystemId)
        if fs is None:
            raise client_error("FileSystemNotFound", "DescribeMountTargets")
        return {
            "MountTargets": [
                {"MountTargetId": mt, "FileSystemId": FileSystemId, "LifeCycleState": "available"}
                for mt in fs["mount_targets"]
            ]
        }

    def delete_mount_target(self, MountTargetId: str) -> Dict[str, Any]:
        self._call("delete_mount_target", MountTargetId, MountTargetId=MountTargetId)
        for fs in self.state.file_systems.values():
            if MountTargetId in fs["mount_targets"]:
                fs["mount_targets"].remove(MountTargetId)
                return {}
        raise client_error("MountTargetNotFound", "DeleteMountTarget")

    def delete_file_system(self, FileSystemId: str) -> Dict[str, Any]:
        self._call("delete_file_system", FileSystemId, FileSystemId=FileSystemId)
        fs = self.state.file_systems.get(FileSystemId)
        if fs is None:
            raise client_error("FileSystemNotFound", "DeleteFileSystem")
        if fs["mount_targets"]:
            raise client_error("FileSystemInUse", "DeleteFileSystem")
        del self.state.file_systems[FileSystemId]
        return {}


class FakeClientFactory:
    """Client factory returning fake clients over one shared state."""

    CLIENTS = {"ec2": FakeEc2, "iam": FakeIam, "efs": FakeEfs}

    def __init__(self, state: FakeAwsState) -> None:
        self.state = state

    def __call__(self, service_name: str) -> Any:
        return self.CLIENTS[service_name](self.state)
