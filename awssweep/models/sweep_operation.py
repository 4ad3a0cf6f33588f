"""Sweep operation model.

Represents one complete sweep run with its mode, outcome counts and timing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class OperationMode(Enum):
    """Operation execution mode."""

    DRY_RUN = "dry-run"
    EXECUTE = "execute"


class OperationStatus(Enum):
    """Operation execution status."""

    PLANNED = "planned"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class TypeSummary:
    """Outcome counts for one resource type."""

    matched: int = 0
    deleted: int = 0
    would_delete: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "matched": self.matched,
            "deleted": self.deleted,
            "would_delete": self.would_delete,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class SweepOperation:
    """Sweep operation entity.

    State transitions:
        planned (dry-run, final)
        planned → executing → completed (nothing failed)
        planned → executing → partial (some resources or types failed)
        planned → executing → failed (nothing deleted, something failed)

    Attributes:
        operation_id: Unique identifier for the run
        timestamp: When the run was initiated (UTC)
        mode: dry-run or execute
        status: Current status
        resource_types: Configured resource types, in sweep order
        aws_profile: AWS profile used for credentials (optional)
        region: AWS region swept (optional)
        account_id: AWS account swept (optional)
        summaries: Per-type outcome counts
        started_at: When sweeping started (optional)
        completed_at: When sweeping finished (optional)
        duration_seconds: Total duration (optional)
        stopped: True if the run was cancelled before all types were swept
    """

    operation_id: str
    timestamp: datetime
    mode: OperationMode
    status: OperationStatus
    resource_types: List[str] = field(default_factory=list)
    aws_profile: Optional[str] = None
    region: Optional[str] = None
    account_id: Optional[str] = None
    summaries: Dict[str, TypeSummary] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    stopped: bool = False

    @property
    def deleted_count(self) -> int:
        return sum(s.deleted for s in self.summaries.values())

    @property
    def would_delete_count(self) -> int:
        return sum(s.would_delete for s in self.summaries.values())

    @property
    def failed_count(self) -> int:
        return sum(s.failed for s in self.summaries.values())

    @property
    def skipped_count(self) -> int:
        return sum(s.skipped for s in self.summaries.values())

    @property
    def type_error_count(self) -> int:
        return sum(len(s.errors) for s in self.summaries.values())

    def finish(self, completed_at: datetime) -> None:
        """Close the operation and derive its final status."""
        self.completed_at = completed_at
        if self.started_at:
            self.duration_seconds = (completed_at - self.started_at).total_seconds()

        if self.mode == OperationMode.DRY_RUN:
            self.status = OperationStatus.PLANNED
            return

        problems = self.failed_count + self.skipped_count + self.type_error_count
        if problems == 0:
            self.status = OperationStatus.COMPLETED
        elif self.deleted_count > 0:
            self.status = OperationStatus.PARTIAL
        else:
            self.status = OperationStatus.FAILED

    def validate(self) -> bool:
        """Validate operation invariants.

        Validation rules:
            - completed_at must be after started_at
            - dry-run mode must have planned status and no deletions

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.completed_at and self.started_at:
            if self.completed_at < self.started_at:
                raise ValueError("Completion time before start time")

        if self.mode == OperationMode.DRY_RUN:
            if self.status != OperationStatus.PLANNED:
                raise ValueError("Dry-run mode must have planned status")
            if self.deleted_count:
                raise ValueError("Dry-run mode cannot delete resources")

        return True
