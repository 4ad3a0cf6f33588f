"""Match rule model.

Declarative keep/drop criteria for one resource type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class MatchRule:
    """Match rule for a single resource type.

    A rule with no id patterns and no tag patterns matches every candidate of
    its type (explicit "sweep all" marker). Types without a rule are never swept.

    Attributes:
        resource_type: Resource type name the rule applies to
        id_patterns: Regular expressions searched (unanchored) in the candidate id
        tag_patterns: Tag key -> regular expression searched in that tag's value
    """

    resource_type: str
    id_patterns: List[str] = field(default_factory=list)
    tag_patterns: Dict[str, str] = field(default_factory=dict)

    @property
    def sweeps_all(self) -> bool:
        """True when the rule carries no criteria at all."""
        return not self.id_patterns and not self.tag_patterns

    @classmethod
    def from_dict(cls, resource_type: str, data: Optional[Dict[str, Any]]) -> "MatchRule":
        """Build a rule from its configuration mapping.

        Args:
            resource_type: Resource type name
            data: Mapping with optional ``ids`` list and ``tags`` mapping, or None

        Returns:
            MatchRule instance

        Raises:
            ValueError: If the mapping has the wrong shape
        """
        if data is None:
            return cls(resource_type=resource_type)

        if not isinstance(data, dict):
            raise ValueError(f"Rule for {resource_type} must be a mapping, got {type(data).__name__}")

        unknown = set(data) - {"ids", "tags"}
        if unknown:
            raise ValueError(f"Rule for {resource_type} has unknown keys: {', '.join(sorted(unknown))}")

        ids = data.get("ids") or []
        tags = data.get("tags") or {}

        if not isinstance(ids, list):
            raise ValueError(f"'ids' for {resource_type} must be a list")
        if not isinstance(tags, dict):
            raise ValueError(f"'tags' for {resource_type} must be a mapping")

        return cls(
            resource_type=resource_type,
            id_patterns=[str(p) for p in ids],
            tag_patterns={str(k): str(v) for k, v in tags.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to its configuration mapping."""
        return {"ids": list(self.id_patterns), "tags": dict(self.tag_patterns)}
