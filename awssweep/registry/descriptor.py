"""Resource descriptors and the registry that holds them.

A descriptor turns a resource type into data: which remote operation lists it,
where the items sit in the response, which fields hold the identifier and tags,
and which dependent types must be deleted before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..models.candidate import Candidate
from ..sweep.errors import RegistryError, UnknownResourceType

logger = logging.getLogger(__name__)

ScopeFn = Callable[[Candidate], Dict[str, Any]]
AttrsFn = Callable[[Candidate], Dict[str, str]]
ChildIdFn = Callable[[Candidate, Optional[str]], Optional[str]]


@dataclass(frozen=True)
class ListOperation:
    """Remote list/describe call.

    Attributes:
        service: boto3 service name (e.g., "ec2")
        method: Client method name (e.g., "describe_instances")
        params: Static keyword arguments sent on every call
    """

    service: str
    method: str
    params: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __str__(self) -> str:
        return f"{self.service}.{self.method}"


@dataclass(frozen=True)
class DetailLookup:
    """Per-item describe call whose result is merged into the listed item.

    Attributes:
        operation: Describe operation to call once per item
        scope: Builds the describe arguments from the raw item
        path: Path of the value to take from the describe response
        key: Key under which that value is stored on the item
    """

    operation: ListOperation
    scope: Callable[[Dict[str, Any]], Dict[str, Any]]
    path: str
    key: str


@dataclass(frozen=True)
class DependentDescriptor:
    """Edge from a parent type to a type that must be deleted before it.

    Attributes:
        type_name: Dependent resource type name
        scope: Builds the dependent's list arguments from a matched parent
        attrs: Attributes every dependent inherits from its parent (optional)
        child_id: Derives the dependent's id from the parent and the raw id (optional)
    """

    type_name: str
    scope: ScopeFn
    attrs: Optional[AttrsFn] = None
    child_id: Optional[ChildIdFn] = None


@dataclass(frozen=True)
class ResourceDescriptor:
    """Declarative description of one resource type.

    Paths use dotted segments; a trailing ``[]`` flattens a sequence
    (``Reservations[].Instances[]``). An empty path addresses the value itself.

    Attributes:
        type_name: Globally unique resource type name
        list_operation: Operation that lists instances of this type
        list_path: Path to the items inside the list response
        id_field: Path (or paths, joined with "_") of the identifier; None for scalar items
        tag_path: Path to the tags ([{Key, Value}] list or mapping); None if untagged
        attr_fields: Attribute name -> path of extra attributes to keep
        exclude: Predicate over the raw item; True drops the item before matching
        detail: Optional per-item describe call
        dependents: Types deleted before this one, in order
        requires_scope: True if the type can only be listed through a parent
        list_separator: Separator for attributes whose path yields a sequence
        description: Human-readable description
    """

    type_name: str
    list_operation: ListOperation
    list_path: str
    id_field: Union[str, Tuple[str, ...], None]
    tag_path: Optional[str] = "Tags"
    attr_fields: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    exclude: Optional[Callable[[Any], bool]] = None
    detail: Optional[DetailLookup] = None
    dependents: Tuple[DependentDescriptor, ...] = ()
    requires_scope: bool = False
    list_separator: str = ","
    description: str = ""


class ResourceRegistry:
    """Registry of resource descriptors.

    Registration order is preserved and doubles as the top-level sweep order.
    """

    def __init__(self, descriptors: Iterable[ResourceDescriptor] = ()) -> None:
        self._descriptors: Dict[str, ResourceDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: ResourceDescriptor) -> None:
        """Add a descriptor.

        Raises:
            RegistryError: If the type name is already registered
        """
        if descriptor.type_name in self._descriptors:
            raise RegistryError(f"Resource type already registered: {descriptor.type_name}")
        self._descriptors[descriptor.type_name] = descriptor

    def lookup(self, type_name: str) -> ResourceDescriptor:
        """Get the descriptor for a type.

        Raises:
            UnknownResourceType: If the type is not registered
        """
        try:
            return self._descriptors[type_name]
        except KeyError:
            raise UnknownResourceType(type_name) from None

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def types(self) -> List[str]:
        """All registered type names in registration order."""
        return list(self._descriptors)

    def top_level_types(self) -> List[str]:
        """Type names that can be swept directly (not only as dependents)."""
        return [name for name, d in self._descriptors.items() if not d.requires_scope]

    def validate(self) -> bool:
        """Check that every dependent is registered and dependencies form a DAG.

        Returns:
            True if validation passes

        Raises:
            RegistryError: On an unknown dependent or a dependency cycle
        """
        for descriptor in self._descriptors.values():
            for edge in descriptor.dependents:
                if edge.type_name not in self._descriptors:
                    raise RegistryError(
                        f"{descriptor.type_name} depends on unregistered type {edge.type_name}"
                    )

        # 0 = unvisited, 1 = on stack, 2 = done
        state: Dict[str, int] = {}

        def visit(name: str, path: List[str]) -> None:
            if state.get(name) == 2:
                return
            if state.get(name) == 1:
                cycle = " -> ".join(path[path.index(name):] + [name])
                raise RegistryError(f"Dependency cycle: {cycle}")
            state[name] = 1
            for edge in self._descriptors[name].dependents:
                visit(edge.type_name, path + [name])
            state[name] = 2

        for name in self._descriptors:
            visit(name, [])

        return True

    def deletion_order(self, type_name: str) -> List[str]:
        """Type names in the order a sweep of ``type_name`` destroys them.

        Depth-first post-order over the dependency DAG: dependents of dependents
        first, the root type last.
        """
        order: List[str] = []

        def walk(name: str) -> None:
            for edge in self.lookup(name).dependents:
                walk(edge.type_name)
            order.append(name)

        walk(type_name)
        return order
