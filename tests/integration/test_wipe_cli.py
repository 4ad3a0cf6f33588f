"""Integration tests for the wipe, types and history CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import yaml
from typer.testing import CliRunner

from awssweep.aws.credentials import CredentialValidationError
from awssweep.cli.main import app
from tests.fixtures.fake_aws import FakeAwsState, FakeClientFactory

IDENTITY = {"account_id": "123456789012", "arn": "arn:aws:iam::123456789012:user/ci", "user_id": "AIDA"}


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def state() -> FakeAwsState:
    """Account with one dev instance, one prod instance and two roles."""
    state = FakeAwsState()
    state.add_instance("i-dev", tags={"env": "dev"})
    state.add_instance("i-prod", tags={"env": "prod"})
    state.add_role("temp-build", attached=["arn:aws:iam::aws:policy/ReadOnlyAccess"], inline=["inline-1"])
    state.add_role("prod-api")
    return state


@pytest.fixture
def sweep_file(tmp_path: Path) -> Path:
    path = tmp_path / "sweep.yaml"
    path.write_text("aws_instance:\n  tags:\n    env: ^dev$\naws_iam_role:\n  ids:\n    - ^temp-\n")
    return path


@pytest.fixture
def fake_aws(state: FakeAwsState):
    """Patch credential validation and client creation with the fakes."""
    with patch("awssweep.cli.main.validate_credentials", return_value=IDENTITY) as mock_validate, patch(
        "awssweep.cli.main.BotoClientFactory", return_value=FakeClientFactory(state)
    ):
        yield mock_validate


def test_wipe_dry_run_deletes_nothing(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test dry run lists matched resources without deleting them."""
    result = runner.invoke(app, ["--audit-dir", str(tmp_path / "audit"), "wipe", str(sweep_file), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "i-dev" in result.output
    assert "temp-build" in result.output
    assert "i-prod" not in result.output
    assert "Dry run: 4 resource(s) would be deleted" in result.output
    assert state.mutating_calls() == []
    assert not (tmp_path / "audit").exists()


def test_wipe_force_deletes_and_writes_report(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test forced wipe deletes matches and writes both reports."""
    report_path = tmp_path / "swept.yaml"

    result = runner.invoke(
        app,
        ["--audit-dir", str(tmp_path / "audit"), "wipe", str(sweep_file), "--force", "--output", str(report_path)],
    )

    assert result.exit_code == 0, result.output
    assert set(state.roles) == {"prod-api"}
    assert [i["State"]["Name"] for i in state.instances] == ["terminated", "running"]

    report = yaml.safe_load(report_path.read_text())
    assert report["operation"]["status"] == "completed"
    assert report["operation"]["account_id"] == "123456789012"
    assert [(r["type"], r["id"]) for r in report["records"]] == [
        ("aws_instance", "i-dev"),
        ("aws_iam_role_policy_attachment", "temp-build/arn:aws:iam::aws:policy/ReadOnlyAccess"),
        ("aws_iam_role_policy", "temp-build:inline-1"),
        ("aws_iam_role", "temp-build"),
    ]
    assert len(list((tmp_path / "audit").glob("*/*/operation-*.yaml"))) == 1


def test_wipe_asks_for_confirmation(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test declining the confirmation deletes nothing."""
    result = runner.invoke(app, ["--audit-dir", str(tmp_path), "wipe", str(sweep_file)], input="n\n")

    assert result.exit_code == 1
    assert "Resources to delete" in result.output
    assert "Aborted" in result.output
    assert state.mutating_calls() == []


def test_wipe_confirmed(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test accepting the confirmation runs the sweep once."""
    result = runner.invoke(app, ["--audit-dir", str(tmp_path), "wipe", str(sweep_file)], input="y\n")

    assert result.exit_code == 0, result.output
    assert "4 deleted, 0 failed, 0 skipped (completed)" in result.output
    assert set(state.roles) == {"prod-api"}


def test_wipe_deletes_only_confirmed_resources(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test a resource created while the prompt waits is left alone."""

    def confirm_after_launch(*args, **kwargs) -> bool:
        state.add_instance("i-late", tags={"env": "dev"})
        return True

    with patch("awssweep.cli.main.typer.confirm", side_effect=confirm_after_launch):
        result = runner.invoke(app, ["--audit-dir", str(tmp_path), "wipe", str(sweep_file)])

    assert result.exit_code == 0, result.output
    assert "4 deleted, 0 failed, 0 skipped (completed)" in result.output
    assert [(i["InstanceId"], i["State"]["Name"]) for i in state.instances] == [
        ("i-dev", "terminated"),
        ("i-prod", "running"),
        ("i-late", "running"),
    ]
    assert [c[1] for c in state.calls].count("describe_instances") == 1


def test_wipe_invalid_config_makes_no_calls(runner: CliRunner, tmp_path: Path, fake_aws: Mock) -> None:
    """Test a malformed configuration fails before authentication."""
    path = tmp_path / "bad.yaml"
    path.write_text("aws_instance:\n  names: [x]\n")

    result = runner.invoke(app, ["wipe", str(path), "--force"])

    assert result.exit_code == 1
    assert "unknown keys" in result.output
    fake_aws.assert_not_called()


def test_wipe_empty_config(runner: CliRunner, tmp_path: Path, fake_aws: Mock) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    result = runner.invoke(app, ["wipe", str(path), "--force"])

    assert result.exit_code == 0
    assert "Nothing configured to sweep" in result.output
    fake_aws.assert_not_called()


def test_wipe_credential_error(runner: CliRunner, sweep_file: Path) -> None:
    """Test credential failures exit with code 2."""
    with patch(
        "awssweep.cli.main.validate_credentials",
        side_effect=CredentialValidationError("No AWS credentials found"),
    ):
        result = runner.invoke(app, ["wipe", str(sweep_file), "--force"])

    assert result.exit_code == 2
    assert "No AWS credentials found" in result.output


def test_types_lists_dependents(runner: CliRunner) -> None:
    """Test types command shows what is deleted first."""
    result = runner.invoke(app, ["types"])

    assert result.exit_code == 0
    assert "aws_iam_role" in result.output
    assert "aws_vpc" in result.output


def test_history_shows_logged_runs(
    runner: CliRunner, state: FakeAwsState, sweep_file: Path, tmp_path: Path, fake_aws: Mock
) -> None:
    """Test history lists runs written by wipe."""
    audit_dir = str(tmp_path / "audit")
    runner.invoke(app, ["--audit-dir", audit_dir, "wipe", str(sweep_file), "--force"])

    result = runner.invoke(app, ["--audit-dir", audit_dir, "history"])

    assert result.exit_code == 0, result.output
    assert "completed" in result.output

    operation_file = next((tmp_path / "audit").glob("*/*/operation-*.yaml"))
    operation_id = operation_file.stem[len("operation-"):]
    result = runner.invoke(app, ["--audit-dir", audit_dir, "history", "--operation", operation_id])

    assert result.exit_code == 0, result.output
    assert "temp-build" in result.output


def test_history_unknown_operation(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(app, ["--audit-dir", str(tmp_path), "history", "--operation", "op_missing"])

    assert result.exit_code == 1
    assert "Run not found" in result.output
