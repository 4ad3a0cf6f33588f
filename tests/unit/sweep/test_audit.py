"""Tests for AuditSink and AuditStorage."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from awssweep.models.audit_record import AuditRecord, Outcome
from awssweep.models.sweep_operation import OperationMode, OperationStatus, SweepOperation
from awssweep.sweep.audit import AuditSink, AuditStorage


def make_operation(operation_id: str, timestamp: datetime) -> SweepOperation:
    operation = SweepOperation(
        operation_id=operation_id,
        timestamp=timestamp,
        mode=OperationMode.EXECUTE,
        status=OperationStatus.EXECUTING,
        resource_types=["aws_instance"],
        aws_profile="sandbox",
        region="us-east-1",
        started_at=timestamp,
    )
    return operation


@pytest.fixture
def sink() -> AuditSink:
    sink = AuditSink()
    sink.add(AuditRecord(type="aws_instance", id="i-1", outcome=Outcome.DELETED))
    sink.add(
        AuditRecord(
            type="aws_instance",
            id="i-2",
            outcome=Outcome.FAILED,
            error_code="AccessDenied",
            error_message="not allowed",
        )
    )
    sink.add(AuditRecord(type="aws_iam_role", id="temp", outcome=Outcome.SKIPPED, reason="dependent withheld"))
    sink.record_type_error("aws_vpc", "ec2.describe_vpcs failed: AccessDenied")
    return sink


class TestAuditSink:
    """Test suite for AuditSink class."""

    def test_summary_counts_outcomes(self, sink: AuditSink) -> None:
        summary = sink.summary()

        assert list(summary) == ["aws_instance", "aws_iam_role", "aws_vpc"]
        assert summary["aws_instance"].matched == 2
        assert summary["aws_instance"].deleted == 1
        assert summary["aws_instance"].failed == 1
        assert summary["aws_iam_role"].skipped == 1
        assert summary["aws_vpc"].matched == 0
        assert summary["aws_vpc"].errors == ["ec2.describe_vpcs failed: AccessDenied"]

    def test_records_for(self, sink: AuditSink) -> None:
        assert [r.id for r in sink.records_for("aws_instance")] == ["i-1", "i-2"]

    def test_clear(self, sink: AuditSink) -> None:
        sink.clear()

        assert sink.records == []
        assert sink.summary() == {}


class TestAuditStorage:
    """Test suite for AuditStorage class."""

    def test_default_storage_dir(self) -> None:
        storage = AuditStorage()

        assert storage.storage_dir == Path.home() / ".awssweep" / "audit-logs"

    def test_write_report(self, tmp_path: Path, sink: AuditSink) -> None:
        operation = make_operation("op_1", datetime(2025, 11, 11, 10, 0, 0))
        operation.summaries = sink.summary()
        operation.finish(datetime(2025, 11, 11, 10, 0, 5))

        path = AuditStorage(str(tmp_path / "logs")).write(operation, sink.records, tmp_path / "out" / "report.yaml")

        report = yaml.safe_load(path.read_text())
        assert report["metadata"]["log_type"] == "resource_sweep"
        assert report["operation"]["status"] == "partial"
        assert report["operation"]["deleted_count"] == 1
        assert report["operation"]["summary"]["aws_vpc"]["errors"] == ["ec2.describe_vpcs failed: AccessDenied"]
        assert [r["id"] for r in report["records"]] == ["i-1", "i-2", "temp"]
        assert report["records"][1]["error_code"] == "AccessDenied"

    def test_log_operation_uses_year_month_layout(self, tmp_path: Path) -> None:
        operation = make_operation("op_abc", datetime(2025, 3, 7, 12, 0, 0))
        operation.finish(datetime(2025, 3, 7, 12, 0, 1))
        storage = AuditStorage(str(tmp_path))

        path = storage.log_operation(operation, [])

        assert path == tmp_path / "2025" / "03" / "operation-op_abc.yaml"
        assert storage.get_operation("op_abc")["operation"]["operation_id"] == "op_abc"
        assert storage.get_operation("op_missing") is None

    def test_query_operations_by_date(self, tmp_path: Path) -> None:
        storage = AuditStorage(str(tmp_path))
        for operation_id, timestamp in [
            ("op_old", datetime(2025, 1, 1)),
            ("op_mid", datetime(2025, 6, 1)),
            ("op_new", datetime(2025, 11, 1)),
        ]:
            storage.log_operation(make_operation(operation_id, timestamp), [])

        results = storage.query_operations(since=datetime(2025, 5, 1), until=datetime(2025, 10, 1))

        assert [r["operation"]["operation_id"] for r in results] == ["op_mid"]
        assert len(storage.query_operations()) == 3

    def test_query_without_storage(self, tmp_path: Path) -> None:
        assert AuditStorage(str(tmp_path / "none")).query_operations() == []
