"""Resource set model.

Matched candidates of one resource type, grouped for a single destroy call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List

from .candidate import Candidate


@dataclass
class ResourceSet:
    """Resources of one type to be destroyed together.

    ``ids``, ``tags`` and ``attrs`` are index-aligned. Order is discovery order.

    Attributes:
        type: Resource type name
        ids: Resource identifiers
        tags: Tag map per resource
        attrs: Attribute map per resource
    """

    type: str
    ids: List[str] = field(default_factory=list)
    tags: List[Dict[str, str]] = field(default_factory=list)
    attrs: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def build(cls, resource_type: str, candidates: Iterable[Candidate]) -> "ResourceSet":
        """Aggregate candidates into a set without any filtering of its own."""
        resource_set = cls(type=resource_type)
        for candidate in candidates:
            resource_set.add(candidate)
        return resource_set

    def add(self, candidate: Candidate) -> None:
        self.ids.append(candidate.id)
        self.tags.append(dict(candidate.tags))
        self.attrs.append(dict(candidate.attrs))

    def candidates(self) -> Iterator[Candidate]:
        for resource_id, tags, attrs in zip(self.ids, self.tags, self.attrs):
            yield Candidate(id=resource_id, tags=tags, attrs=attrs)

    def validate(self) -> bool:
        """Validate set invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If ids, tags and attrs are not index-aligned
        """
        if not (len(self.ids) == len(self.tags) == len(self.attrs)):
            raise ValueError("ids, tags and attrs must have equal length")
        return True

    def __len__(self) -> int:
        return len(self.ids)

    def __bool__(self) -> bool:
        return bool(self.ids)
