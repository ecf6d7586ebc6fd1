from __future__ import annotations

import logging
from dataclasses import dataclass

from fundingsync.db.document_store import (
    DocumentNotFound,
    DocumentStore,
    DocumentStoreError,
    server_timestamp,
)
from fundingsync.models.collections import INVESTMENTS, PROJECTS, USERS
from fundingsync.models.enums import InvestmentStatus
from fundingsync.services import write_guard
from fundingsync.services.aggregates import (
    InvestorAggregates,
    ProjectAggregates,
    compute_investor_aggregates,
    compute_project_aggregates,
)
from fundingsync.services.errors import (
    InvalidArgument,
    InvestorNotFound,
    ProjectNotFound,
    TransientWriteError,
)
from fundingsync.services.status import canonicalize_investment


logger = logging.getLogger("fundingsync.reconciler")


@dataclass(frozen=True)
class StatusRewrite:
    investment_id: str
    raw_status: str
    status: InvestmentStatus


@dataclass(frozen=True)
class ProjectReconciliationPlan:
    project_id: str
    previous: ProjectAggregates
    aggregates: ProjectAggregates
    rewrites: tuple[StatusRewrite, ...]

    @property
    def is_noop(self) -> bool:
        return not self.rewrites and self.aggregates == self.previous


@dataclass(frozen=True)
class ProjectReconciliation:
    project_id: str
    aggregates: ProjectAggregates
    previous: ProjectAggregates
    normalized_investment_ids: tuple[str, ...]
    project_written: bool


@dataclass(frozen=True)
class InvestorReconciliation:
    investor_uid: str
    aggregates: InvestorAggregates
    previous: InvestorAggregates
    user_written: bool


@dataclass(frozen=True)
class BackfillResult:
    reconciled_count: int
    failed_project_ids: tuple[str, ...]


def _require_id(value: object, name: str) -> str:
    cleaned = str(value if value is not None else "").strip()
    if not cleaned:
        raise InvalidArgument(f"{name} is required.")
    return cleaned


def plan_project_reconciliation(store: DocumentStore, project_id: str) -> ProjectReconciliationPlan:
    """Read the project and its complete investment set and derive the writes needed.

    Pure with respect to the store: nothing is written here.
    """
    pid = _require_id(project_id, "projectId")
    project = store.get(PROJECTS, pid)
    if not project.exists:
        raise ProjectNotFound(pid)

    investments = store.query(INVESTMENTS, "projectId", pid)
    rewrites: list[StatusRewrite] = []
    for snapshot in investments:
        canonical = canonicalize_investment(snapshot.data)
        if canonical.was_rewritten:
            rewrites.append(
                StatusRewrite(
                    investment_id=snapshot.id,
                    raw_status=str(snapshot.get("status")),
                    status=canonical.status,
                )
            )

    return ProjectReconciliationPlan(
        project_id=pid,
        previous=ProjectAggregates.from_project(project.data),
        aggregates=compute_project_aggregates(pid, [snapshot.data for snapshot in investments]),
        rewrites=tuple(rewrites),
    )


def apply_project_reconciliation(
    store: DocumentStore,
    plan: ProjectReconciliationPlan,
) -> ProjectReconciliation:
    if plan.rewrites:
        stamped_at = server_timestamp()
        batch = store.batch()
        for rewrite in plan.rewrites:
            batch.update(
                INVESTMENTS,
                rewrite.investment_id,
                write_guard.stamp({"status": rewrite.status.value, "updatedAt": stamped_at}),
            )
        try:
            batch.commit()
        except DocumentStoreError as exc:
            logger.warning(
                "Status normalization batch for project %s failed; aggregate not written.",
                plan.project_id,
                exc_info=True,
            )
            raise TransientWriteError("project", plan.project_id) from exc
        logger.info(
            "Normalized %d legacy investment status(es) for project %s.",
            len(plan.rewrites),
            plan.project_id,
        )

    written = False
    if plan.aggregates != plan.previous:
        try:
            store.update(
                PROJECTS,
                plan.project_id,
                {**plan.aggregates.as_fields(), "updatedAt": server_timestamp()},
            )
        except DocumentNotFound as exc:
            raise ProjectNotFound(plan.project_id) from exc
        except DocumentStoreError as exc:
            raise TransientWriteError("project", plan.project_id) from exc
        written = True

    return ProjectReconciliation(
        project_id=plan.project_id,
        aggregates=plan.aggregates,
        previous=plan.previous,
        normalized_investment_ids=tuple(rewrite.investment_id for rewrite in plan.rewrites),
        project_written=written,
    )


def reconcile_project(store: DocumentStore, project_id: str | None) -> ProjectReconciliation:
    plan = plan_project_reconciliation(store, project_id)
    if plan.is_noop:
        logger.debug("Project %s aggregates already current.", plan.project_id)
        return ProjectReconciliation(
            project_id=plan.project_id,
            aggregates=plan.aggregates,
            previous=plan.previous,
            normalized_investment_ids=(),
            project_written=False,
        )
    result = apply_project_reconciliation(store, plan)
    if result.project_written:
        logger.info(
            "Project %s reconciled: current=%s pending=%s investors=%d.",
            result.project_id,
            result.aggregates.current_amount,
            result.aggregates.pending_amount,
            result.aggregates.investors_count,
        )
    return result


def reconcile_all_projects(store: DocumentStore) -> BackfillResult:
    """Reconcile every project in turn; one failure never stops the rest."""
    reconciled = 0
    failed: list[str] = []
    for project in store.list_documents(PROJECTS):
        try:
            reconcile_project(store, project.id)
        except Exception:
            logger.exception("Backfill failed for project %s.", project.id)
            failed.append(project.id)
            continue
        reconciled += 1
    logger.info("Backfill finished: %d reconciled, %d failed.", reconciled, len(failed))
    return BackfillResult(reconciled_count=reconciled, failed_project_ids=tuple(failed))


def reconcile_investor(store: DocumentStore, investor_uid: str | None) -> InvestorReconciliation:
    uid = _require_id(investor_uid, "investorUid")
    user = store.get(USERS, uid)
    if not user.exists:
        raise InvestorNotFound(uid)

    investments = store.query(INVESTMENTS, "investorUid", uid)
    aggregates = compute_investor_aggregates(uid, [snapshot.data for snapshot in investments])
    previous = InvestorAggregates.from_user(user.data)

    written = False
    if aggregates != previous:
        try:
            store.update(
                USERS,
                uid,
                {"investorMeta": aggregates.as_fields(), "aggregatesUpdatedAt": server_timestamp()},
            )
        except DocumentNotFound as exc:
            raise InvestorNotFound(uid) from exc
        except DocumentStoreError as exc:
            raise TransientWriteError("investor", uid) from exc
        written = True
        logger.info(
            "Investor %s reconciled: invested=%s running=%d.",
            uid,
            aggregates.total_invested,
            aggregates.active_investments_count,
        )

    return InvestorReconciliation(
        investor_uid=uid,
        aggregates=aggregates,
        previous=previous,
        user_written=written,
    )
