"""Candidate model.

One discovered instance of a resource type, normalized to id, tags and attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Candidate:
    """Normalized resource discovered by a list operation.

    Candidates are produced per sweep and never persisted.

    Attributes:
        id: Resource identifier (never empty)
        tags: Free-form tag map (empty when the resource carries no tags)
        attrs: Extra attributes needed to scope dependents or to destroy the resource
    """

    id: str
    tags: Dict[str, str] = field(default_factory=dict)
    attrs: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("Candidate id must be a non-empty string")
