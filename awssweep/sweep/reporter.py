"""Sweep reporting for the terminal."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..models.audit_record import AuditRecord, Outcome
from ..models.sweep_operation import SweepOperation

OUTCOME_STYLES = {
    Outcome.DELETED: "green",
    Outcome.WOULD_DELETE: "yellow",
    Outcome.FAILED: "red",
    Outcome.SKIPPED: "cyan",
}


class SweepReporter:
    """Renders sweep results as Rich tables.

    Attributes:
        width: Render width (default: width of the current terminal)
    """

    def __init__(self, width: Optional[int] = None) -> None:
        self.width = width

    def format_records(self, records: List[AuditRecord], title: str = "Resources") -> str:
        """Format per-resource outcomes for terminal output.

        Args:
            records: Audit records in sweep order
            title: Table title

        Returns:
            Formatted string for terminal display
        """
        if not records:
            return "No matching resources."

        table = Table(title=title)
        table.add_column("Type", style="bold")
        table.add_column("ID")
        table.add_column("Tags")
        table.add_column("Outcome")

        for record in records:
            tags = ", ".join(f"{k}={v}" for k, v in record.tags.items())
            if len(tags) > 50:
                tags = tags[:47] + "..."

            style = OUTCOME_STYLES[record.outcome]
            outcome = f"[{style}]{record.outcome.value}[/{style}]"
            if record.outcome == Outcome.FAILED and record.error_code:
                outcome += f" ({record.error_code})"

            table.add_row(record.type, record.id, tags, outcome)

        return self._render(table)

    def format_summary(self, operation: SweepOperation) -> str:
        """Format the per-type accounting of a run.

        Args:
            operation: Finished sweep operation

        Returns:
            Formatted string for terminal display
        """
        table = Table(title=f"Sweep summary ({operation.mode.value})")
        table.add_column("Resource type", style="bold")
        table.add_column("Matched", justify="right")
        table.add_column("Deleted", justify="right", style="green")
        table.add_column("Would delete", justify="right", style="yellow")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right", style="cyan")
        table.add_column("Errors")

        for resource_type, summary in operation.summaries.items():
            table.add_row(
                resource_type,
                str(summary.matched),
                str(summary.deleted),
                str(summary.would_delete),
                str(summary.failed),
                str(summary.skipped),
                "; ".join(summary.errors),
            )

        return self._render(table)

    def _render(self, table: Table) -> str:
        console = Console(width=self.width)
        with console.capture() as capture:
            console.print(table)
        return capture.get()
