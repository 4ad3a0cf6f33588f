"""Audit accumulation and storage for sweep runs.

The sink collects every per-resource outcome during a run; the storage writes
the collected records once, at the end of the run, as YAML.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..models.audit_record import AuditRecord, Outcome
from ..models.sweep_operation import SweepOperation, TypeSummary

logger = logging.getLogger(__name__)


class AuditSink:
    """In-memory record of a sweep run.

    Attributes:
        records: Per-resource audit records in the order they were produced
        type_errors: Resource type -> errors that abandoned a branch of that type
    """

    def __init__(self) -> None:
        self.records: List[AuditRecord] = []
        self.type_errors: Dict[str, List[str]] = {}

    def add(self, record: AuditRecord) -> None:
        self.records.append(record)

    def record_type_error(self, resource_type: str, message: str) -> None:
        """Record that discovery for a resource type was abandoned."""
        self.type_errors.setdefault(resource_type, []).append(message)

    def records_for(self, resource_type: str) -> List[AuditRecord]:
        return [r for r in self.records if r.type == resource_type]

    def summary(self) -> Dict[str, TypeSummary]:
        """Outcome counts per resource type.

        Returns:
            Dictionary of resource type -> TypeSummary, in first-seen order
        """
        summaries: Dict[str, TypeSummary] = {}

        for record in self.records:
            summary = summaries.setdefault(record.type, TypeSummary())
            summary.matched += 1
            if record.outcome == Outcome.DELETED:
                summary.deleted += 1
            elif record.outcome == Outcome.WOULD_DELETE:
                summary.would_delete += 1
            elif record.outcome == Outcome.FAILED:
                summary.failed += 1
            elif record.outcome == Outcome.SKIPPED:
                summary.skipped += 1

        for resource_type, errors in self.type_errors.items():
            summaries.setdefault(resource_type, TypeSummary()).errors.extend(errors)

        return summaries

    def clear(self) -> None:
        self.records = []
        self.type_errors = {}


class AuditStorage:
    """Audit report storage and retrieval.

    Reports are YAML documents. ``write`` places one at an explicit path;
    ``log_operation`` keeps a history organized by year/month.

    Storage structure:
        ~/.awssweep/audit-logs/
            2025/
                11/
                    operation-op_123.yaml

    Attributes:
        storage_dir: Base directory for the run history
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for the run history (default: ~/.awssweep/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".awssweep" / "audit-logs")

        self.storage_dir = Path(storage_dir)

    def build_report(self, operation: SweepOperation, records: List[AuditRecord]) -> Dict[str, Any]:
        """Build the serializable report for a run."""
        return {
            "metadata": {
                "version": "1.0",
                "log_type": "resource_sweep",
                "created_at": datetime.utcnow().isoformat() + "Z",
            },
            "operation": {
                "operation_id": operation.operation_id,
                "timestamp": operation.timestamp.isoformat() + "Z",
                "mode": operation.mode.value,
                "status": operation.status.value,
                "aws_profile": operation.aws_profile,
                "region": operation.region,
                "account_id": operation.account_id,
                "resource_types": operation.resource_types,
                "deleted_count": operation.deleted_count,
                "would_delete_count": operation.would_delete_count,
                "failed_count": operation.failed_count,
                "skipped_count": operation.skipped_count,
                "stopped": operation.stopped,
                "started_at": operation.started_at.isoformat() + "Z" if operation.started_at else None,
                "completed_at": operation.completed_at.isoformat() + "Z" if operation.completed_at else None,
                "duration_seconds": operation.duration_seconds,
                "summary": {name: s.to_dict() for name, s in operation.summaries.items()},
            },
            "records": [record.to_dict() for record in records],
        }

    def write(self, operation: SweepOperation, records: List[AuditRecord], path: Union[str, Path]) -> Path:
        """Write the run report to a file, overwriting it if it exists.

        Args:
            operation: Finished sweep operation
            records: Audit records of the run
            path: Destination file

        Returns:
            Path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.build_report(operation, records), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Wrote audit report for {operation.operation_id} to {path}")
        return path

    def log_operation(self, operation: SweepOperation, records: List[AuditRecord]) -> Path:
        """Store the run report in the year/month history."""
        year_month_dir = self.storage_dir / str(operation.timestamp.year) / f"{operation.timestamp.month:02d}"
        return self.write(operation, records, year_month_dir / f"operation-{operation.operation_id}.yaml")

    def load(self, path: Union[str, Path]) -> Dict[str, Any]:
        with open(path, "r") as f:
            return yaml.safe_load(f)

    def get_operation(self, operation_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a stored run report by operation ID.

        Args:
            operation_id: Operation ID to retrieve

        Returns:
            Report dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/operation-{operation_id}.yaml"):
            return self.load(audit_file)
        return None

    def query_operations(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Stored run reports within a date range, oldest first.

        Args:
            since: Start date (inclusive), None for all
            until: End date (inclusive), None for all

        Returns:
            List of report dictionaries
        """
        results = []

        if not self.storage_dir.exists():
            return results

        for audit_file in sorted(self.storage_dir.glob("*/*/operation-*.yaml")):
            report = self.load(audit_file)

            timestamp = datetime.fromisoformat(report["operation"]["timestamp"].rstrip("Z"))
            if since and timestamp < since:
                continue
            if until and timestamp > until:
                continue

            results.append(report)

        return sorted(results, key=lambda r: r["operation"]["timestamp"])
