"""Dependency-aware sweep orchestration.

For one top-level resource type the orchestrator discovers and matches the
parents, expands every dependent type scoped by those parents (recursively),
and destroys dependents before the resources that own them:

    DISCOVER_PARENT -> for each dependent: DISCOVER -> MATCH -> BUILD -> DESTROY
                    -> DESTROY_PARENT -> DONE
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..models.audit_record import AuditRecord, Outcome
from ..models.candidate import Candidate
from ..models.match_rule import MatchRule
from ..models.resource_set import ResourceSet
from ..models.sweep_operation import OperationMode, OperationStatus, SweepOperation
from ..registry.descriptor import DependentDescriptor, DetailLookup, ResourceDescriptor, ResourceRegistry
from .audit import AuditSink
from .destroyer import Destroyer, DestroyResult
from .errors import DestroyError, InvocationError, UnknownResourceType
from .invoker import OperationInvoker
from .matcher import MatchEngine
from .normalizer import Enricher, Normalizer, resolve

logger = logging.getLogger(__name__)


@dataclass
class PlanStep:
    """One destroy step of a deletion plan.

    Attributes:
        resource_set: Resources to destroy in this step
        parent_type: Type that spawned this step (None for the root type)
        withheld: Matched resources kept back, with the reason
        members: Planned candidates, aligned with ``resource_set``
        owners: Parent candidate of each member (None for the root type)
    """

    resource_set: ResourceSet
    parent_type: Optional[str] = None
    withheld: List[Tuple[Candidate, str]] = field(default_factory=list)
    members: List[Candidate] = field(default_factory=list)
    owners: List[Optional[Candidate]] = field(default_factory=list)


@dataclass
class DeletionPlan:
    """Ordered destroy steps for one top-level type, dependents first.

    Attributes:
        root_type: Top-level resource type
        steps: Steps in destroy order; the root type's step is last
        errors: (resource type, message) for listings that failed or types
            that cannot be swept
    """

    root_type: str
    steps: List[PlanStep] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)

    def resource_sets(self) -> List[ResourceSet]:
        return [step.resource_set for step in self.steps]


class SweepOrchestrator:
    """Drives discovery, matching and dependents-first deletion.

    Top-level types are swept one after another, each to completion, in
    registry order. ``request_stop`` lets the type in progress finish and
    prevents any further type from starting.

    Attributes:
        registry: Resource descriptor registry
        invoker: Invoker for list operations
        destroyer: Destroy capability
        audit_sink: Receives every audit record
        match_engine: Rule evaluator
        normalizer: Response normalizer
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        invoker: OperationInvoker,
        destroyer: Destroyer,
        audit_sink: Optional[AuditSink] = None,
        match_engine: Optional[MatchEngine] = None,
        normalizer: Optional[Normalizer] = None,
    ) -> None:
        self.registry = registry
        self.invoker = invoker
        self.destroyer = destroyer
        self.audit_sink = audit_sink if audit_sink is not None else AuditSink()
        self.match_engine = match_engine or MatchEngine()
        self.normalizer = normalizer or Normalizer()
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Finish the type in progress, then start no new types."""
        logger.warning("Stop requested, no further resource types will be started")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def ordered_types(self, rules: Mapping[str, MatchRule]) -> List[str]:
        """Configured types in sweep order: registry order, unknown names last."""
        known = [name for name in self.registry.types() if name in rules]
        unknown = [name for name in rules if name not in self.registry]
        return known + unknown

    def run(
        self,
        rules: Mapping[str, MatchRule],
        dry_run: bool = False,
        aws_profile: Optional[str] = None,
        region: Optional[str] = None,
        account_id: Optional[str] = None,
        plans: Optional[Sequence[DeletionPlan]] = None,
    ) -> SweepOperation:
        """Sweep every configured resource type.

        Args:
            rules: Resource type -> MatchRule; types without a rule are never touched
            dry_run: Compute everything but skip destroy calls
            aws_profile: AWS profile, recorded on the operation (optional)
            region: AWS region, recorded on the operation (optional)
            account_id: AWS account, recorded on the operation (optional)
            plans: Plans from ``plan_all`` to execute as they are, without
                listing anything again (optional)

        Returns:
            Finished SweepOperation with per-type summaries
        """
        ordered = self.ordered_types(rules)

        operation = SweepOperation(
            operation_id=f"op_{uuid.uuid4()}",
            timestamp=datetime.utcnow(),
            mode=OperationMode.DRY_RUN if dry_run else OperationMode.EXECUTE,
            status=OperationStatus.PLANNED if dry_run else OperationStatus.EXECUTING,
            resource_types=ordered,
            aws_profile=aws_profile,
            region=region,
            account_id=account_id,
            started_at=datetime.utcnow(),
        )

        if plans is None:
            work: List[Tuple[str, Optional[DeletionPlan]]] = [(name, None) for name in ordered]
        else:
            work = [(plan.root_type, plan) for plan in plans]

        for type_name, prepared in work:
            if self._stop.is_set():
                logger.warning(f"Sweep stopped before {type_name}")
                operation.stopped = True
                break

            if prepared is None:
                self.sweep(type_name, rules, dry_run=dry_run)
            else:
                self.execute(prepared, dry_run=dry_run)

        operation.summaries = self.audit_sink.summary()
        operation.finish(datetime.utcnow())
        operation.validate()

        logger.info(
            f"Sweep {operation.operation_id} {operation.status.value}: "
            f"{operation.deleted_count} deleted, {operation.would_delete_count} would delete, "
            f"{operation.failed_count} failed, {operation.skipped_count} skipped"
        )
        return operation

    def sweep(self, type_name: str, rules: Mapping[str, MatchRule], dry_run: bool = False) -> List[AuditRecord]:
        """Sweep one top-level resource type and its dependents.

        Args:
            type_name: Top-level resource type
            rules: Resource type -> MatchRule
            dry_run: Record "would delete" instead of destroying

        Returns:
            Audit records of this sweep, dependents before their parents
        """
        plan = self.prepare(type_name, rules)
        if plan is None:
            return []
        return self.execute(plan, dry_run=dry_run)

    def plan_all(self, rules: Mapping[str, MatchRule]) -> List[DeletionPlan]:
        """Plan every configured type in sweep order without destroying anything.

        The returned plans can be shown to an operator and then handed to
        ``run(..., plans=...)`` so that exactly the reviewed resources are deleted.
        """
        plans: List[DeletionPlan] = []
        for type_name in self.ordered_types(rules):
            plan = self.prepare(type_name, rules)
            if plan is not None:
                plans.append(plan)
        return plans

    def prepare(self, type_name: str, rules: Mapping[str, MatchRule]) -> Optional[DeletionPlan]:
        """Plan one configured top-level type, turning failures into plan errors.

        Returns:
            DeletionPlan, or None when the type has no rule. An unknown type, a
            dependent-only type or a failed top-level listing yields a plan with
            no steps and the reason in ``errors``.
        """
        rule = rules.get(type_name)
        if rule is None:
            logger.debug(f"No rule for {type_name}, not sweeping")
            return None

        failed = DeletionPlan(root_type=type_name)

        try:
            descriptor = self.registry.lookup(type_name)
        except UnknownResourceType as e:
            logger.warning(f"Skipping {type_name}: {e}")
            failed.errors.append((type_name, str(e)))
            return failed

        if descriptor.requires_scope:
            message = f"{type_name} is only swept together with its parent resource"
            logger.warning(message)
            failed.errors.append((type_name, message))
            return failed

        try:
            return self.plan(type_name, rule)
        except InvocationError as e:
            logger.error(f"Cannot list {type_name}, skipping: {e}")
            failed.errors.append((type_name, str(e)))
            return failed

    def plan(self, type_name: str, rule: MatchRule) -> DeletionPlan:
        """Discover, match and expand one top-level type into a deletion plan.

        Args:
            type_name: Top-level resource type
            rule: Rule for that type

        Returns:
            DeletionPlan with dependents-first steps

        Raises:
            UnknownResourceType: If the type is not registered
            InvocationError: If the top-level list call fails
        """
        descriptor = self.registry.lookup(type_name)
        plan = DeletionPlan(root_type=type_name)

        found = self.discover(descriptor)
        matched = self.match_engine.filter(found, rule)
        logger.info(f"{type_name}: {len(matched)} of {len(found)} matched")

        self._expand(descriptor, matched, [None] * len(matched), plan, parent_type=None)
        return plan

    def discover(
        self,
        descriptor: ResourceDescriptor,
        parent: Optional[Candidate] = None,
        edge: Optional[DependentDescriptor] = None,
    ) -> List[Candidate]:
        """List and normalize instances of a type, scoped by a parent if given.

        Raises:
            InvocationError: If the list call fails
        """
        args: Dict[str, Any] = edge.scope(parent) if (edge is not None and parent is not None) else {}
        response = self.invoker.invoke(descriptor.list_operation, **args)
        enrich = self._detail_enricher(descriptor.detail) if descriptor.detail is not None else None
        return self.normalizer.normalize(response, descriptor, parent=parent, edge=edge, enrich=enrich)

    def execute(self, plan: DeletionPlan, dry_run: bool = False) -> List[AuditRecord]:
        """Destroy (or pretend to destroy) every step of a plan, in order.

        When a dependent fails to delete, its parent is skipped rather than
        destroyed, and so is every resource above that parent.

        Args:
            plan: Plan from ``plan`` or ``prepare``
            dry_run: Record "would delete" instead of destroying

        Returns:
            Audit records in step order
        """
        for error_type, message in plan.errors:
            self.audit_sink.record_type_error(error_type, message)

        records: List[AuditRecord] = []
        blocked: Dict[int, str] = {}

        for step in plan.steps:
            type_name = step.resource_set.type

            for candidate, reason in step.withheld:
                records.append(self._record(step, candidate, Outcome.SKIPPED, reason=reason))

            ready: List[Tuple[Candidate, Optional[Candidate]]] = []
            for candidate, owner in zip(step.members, step.owners):
                reason = blocked.get(id(candidate))
                if reason is None:
                    ready.append((candidate, owner))
                    continue
                logger.warning(f"Not deleting {type_name} {candidate.id}: {reason}")
                records.append(self._record(step, candidate, Outcome.SKIPPED, reason=reason))
                if owner is not None:
                    blocked.setdefault(id(owner), f"dependent {type_name} {candidate.id} was withheld")

            if not ready:
                continue

            if dry_run:
                for candidate, _ in ready:
                    records.append(self._record(step, candidate, Outcome.WOULD_DELETE))
                continue

            resource_set = ResourceSet.build(type_name, [candidate for candidate, _ in ready])
            resource_set.validate()

            results = self._destroy(resource_set)
            for (candidate, owner), result in zip(ready, results):
                if result.success:
                    records.append(self._record(step, candidate, Outcome.DELETED))
                    continue
                records.append(
                    self._record(
                        step,
                        candidate,
                        Outcome.FAILED,
                        error_code=result.error_code,
                        error_message=result.error_message or "Resource deletion failed",
                    )
                )
                if owner is not None:
                    blocked.setdefault(id(owner), f"dependent {type_name} {candidate.id} failed to delete")

        for record in records:
            record.validate()
        for record in records:
            self.audit_sink.add(record)

        return records

    def _expand(
        self,
        descriptor: ResourceDescriptor,
        parents: List[Candidate],
        parent_owners: List[Optional[Candidate]],
        plan: DeletionPlan,
        parent_type: Optional[str],
    ) -> List[Candidate]:
        """Add steps for the dependents of ``parents`` and then for ``parents``.

        A parent is withheld when listing one of its dependents failed or when
        one of its dependents was itself withheld.

        Returns:
            Parents that were planned for deletion
        """
        blocked: Dict[int, str] = {}

        for edge in descriptor.dependents:
            child_descriptor = self.registry.lookup(edge.type_name)
            children: List[Candidate] = []
            owners: List[int] = []

            for index, parent in enumerate(parents):
                if index in blocked:
                    continue
                try:
                    found = self.discover(child_descriptor, parent=parent, edge=edge)
                except InvocationError as e:
                    logger.error(f"Cannot list {edge.type_name} of {descriptor.type_name} {parent.id}: {e}")
                    plan.errors.append((edge.type_name, str(e)))
                    blocked[index] = f"could not list {edge.type_name}: {e}"
                    continue
                children.extend(found)
                owners.extend([index] * len(found))

            planned = self._expand(
                child_descriptor,
                children,
                [parents[owner] for owner in owners],
                plan,
                parent_type=descriptor.type_name,
            )
            planned_ids = {id(c) for c in planned}

            for child, owner in zip(children, owners):
                if id(child) not in planned_ids and owner not in blocked:
                    blocked[owner] = f"dependent {edge.type_name} {child.id} was withheld"

        kept = [index for index in range(len(parents)) if index not in blocked]
        planned_parents = [parents[index] for index in kept]
        withheld = [(parents[index], reason) for index, reason in sorted(blocked.items())]

        if planned_parents or withheld:
            plan.steps.append(
                PlanStep(
                    resource_set=ResourceSet.build(descriptor.type_name, planned_parents),
                    parent_type=parent_type,
                    withheld=withheld,
                    members=planned_parents,
                    owners=[parent_owners[index] for index in kept],
                )
            )

        return planned_parents

    def _destroy(self, resource_set: ResourceSet) -> List[DestroyResult]:
        """Destroy a set; a failure of the whole call fails every id."""
        try:
            results = self.destroyer.destroy(resource_set)
        except (DestroyError, BotoCoreError, ClientError) as e:
            logger.error(f"Destroy of {len(resource_set)} {resource_set.type} failed: {e}")
            error_code = getattr(e, "error_code", None)
            return [
                DestroyResult(resource_id=rid, success=False, error_code=error_code, error_message=str(e))
                for rid in resource_set.ids
            ]

        if len(results) < len(resource_set):
            reported = len(results)
            logger.error(f"Destroyer reported {reported} results for {len(resource_set)} {resource_set.type}")
            results = list(results) + [
                DestroyResult(resource_id=rid, success=False, error_message="No result reported")
                for rid in resource_set.ids[reported:]
            ]

        return results

    def _detail_enricher(self, detail: DetailLookup) -> Enricher:
        def enrich(item: Dict[str, Any]) -> Dict[str, Any]:
            response = self.invoker.invoke(detail.operation, **detail.scope(item))
            return {**item, detail.key: resolve(response, detail.path)}

        return enrich

    def _record(
        self,
        step: PlanStep,
        candidate: Candidate,
        outcome: Outcome,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AuditRecord:
        return AuditRecord(
            type=step.resource_set.type,
            id=candidate.id,
            outcome=outcome,
            tags=candidate.tags,
            attrs=candidate.attrs,
            parent_type=step.parent_type,
            error_code=error_code,
            error_message=error_message,
            reason=reason,
        )
