"""Resource sweep engine.

This module discovers, matches and deletes AWS resources according to a declarative
match configuration, deleting dependents before the resources that own them.

Classes:
    SweepOrchestrator: Drives discovery, matching and dependents-first deletion
    OperationInvoker: Calls registered list operations on injected clients
    Normalizer: Turns list responses into uniform candidates
    MatchEngine: Evaluates match rules against candidates
    AuditSink: Accumulates per-resource outcomes for the run
    AuditStorage: Writes and reads YAML audit reports
"""

from __future__ import annotations

__all__ = [
    "SweepOrchestrator",
    "OperationInvoker",
    "Normalizer",
    "MatchEngine",
    "AuditSink",
    "AuditStorage",
]
