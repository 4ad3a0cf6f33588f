"""Audit record model.

Outcome of one swept resource with the data it had when it was handled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Outcome(Enum):
    """Per-resource sweep outcome."""

    DELETED = "deleted"
    WOULD_DELETE = "would-delete"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class AuditRecord:
    """Audit record entity.

    Records what happened to a single matched resource during a sweep.

    Validation rules:
        - outcome=failed: requires error_message
        - outcome=skipped: requires reason
        - outcome=deleted/would-delete: no error_message

    Attributes:
        type: Resource type name
        id: Resource identifier
        outcome: What happened to the resource
        tags: Resource tags when it was matched
        attrs: Resource attributes when it was matched
        parent_type: Type of the resource this one was deleted for (dependents only)
        error_code: AWS error code if failed (optional)
        error_message: Human-readable error if failed (optional)
        reason: Why the resource was skipped (optional)
        timestamp: When the outcome was recorded (UTC)
    """

    type: str
    id: str
    outcome: Outcome
    tags: Dict[str, str] = field(default_factory=dict)
    attrs: Dict[str, str] = field(default_factory=dict)
    parent_type: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.outcome == Outcome.FAILED:
            if not self.error_message:
                raise ValueError("Failed outcome requires error_message")
        elif self.outcome == Outcome.SKIPPED:
            if not self.reason:
                raise ValueError("Skipped outcome requires reason")
        elif self.error_message:
            raise ValueError(f"{self.outcome.value} outcome cannot have an error")

        if not self.id:
            raise ValueError("Record id cannot be empty")

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for serialization."""
        return {
            "type": self.type,
            "id": self.id,
            "outcome": self.outcome.value,
            "tags": self.tags,
            "attrs": self.attrs,
            "parent_type": self.parent_type,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat() + "Z",
        }
