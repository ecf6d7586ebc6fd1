import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fundingsync.api.deps import get_admin_uid, get_db, get_store
from fundingsync.db.document_store import DocumentStore, DocumentStoreError
from fundingsync.models.audit import AuditLog
from fundingsync.schemas.aggregates import (
    InvestorAggregatesOut,
    ProjectAggregatesOut,
    ReconcileAllResponse,
    ReconcileInvestorRequest,
    ReconcileInvestorResponse,
    ReconcileProjectRequest,
    ReconcileProjectResponse,
)
from fundingsync.schemas.audit import AuditLogOut
from fundingsync.services import reconciler
from fundingsync.services.audit import log_audit
from fundingsync.services.errors import (
    InvalidArgument,
    InvestorNotFound,
    ProjectNotFound,
    ReconciliationError,
    TransientWriteError,
)


router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger("fundingsync.api")


def _raise_http(exc: ReconciliationError | DocumentStoreError) -> NoReturn:
    if isinstance(exc, InvalidArgument):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (ProjectNotFound, InvestorNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (TransientWriteError, DocumentStoreError)):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail=str(exc)) from exc


@router.post("/aggregates/reconcile-project", response_model=ReconcileProjectResponse)
def reconcile_project(
    payload: ReconcileProjectRequest | None = None,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
    admin_uid: str = Depends(get_admin_uid),
) -> ReconcileProjectResponse:
    try:
        result = reconciler.reconcile_project(store, payload.project_id if payload else None)
    except (ReconciliationError, DocumentStoreError) as exc:
        _raise_http(exc)

    log_audit(
        db,
        actor_uid=admin_uid,
        action="aggregates.reconcile_project",
        entity_type="project",
        entity_id=result.project_id,
        before_state=result.previous.as_fields(),
        after_state=result.aggregates.as_fields(),
    )
    db.commit()
    return ReconcileProjectResponse(
        result=ProjectAggregatesOut(
            project_id=result.project_id,
            current_amount=float(result.aggregates.current_amount),
            pending_amount=float(result.aggregates.pending_amount),
            investors_count=result.aggregates.investors_count,
            normalized_investment_ids=list(result.normalized_investment_ids),
            project_written=result.project_written,
        )
    )


@router.post("/aggregates/reconcile-all", response_model=ReconcileAllResponse)
def reconcile_all_projects(
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
    admin_uid: str = Depends(get_admin_uid),
) -> ReconcileAllResponse:
    logger.info("Backfill of project aggregates requested by %s.", admin_uid)
    try:
        result = reconciler.reconcile_all_projects(store)
    except DocumentStoreError as exc:
        _raise_http(exc)

    log_audit(
        db,
        actor_uid=admin_uid,
        action="aggregates.reconcile_all",
        entity_type="project",
        entity_id="*",
        after_state={
            "reconciledCount": result.reconciled_count,
            "failedProjectIds": list(result.failed_project_ids),
        },
    )
    db.commit()
    return ReconcileAllResponse(
        reconciled_count=result.reconciled_count,
        failed_project_ids=list(result.failed_project_ids),
    )


@router.post("/aggregates/reconcile-investor", response_model=ReconcileInvestorResponse)
def reconcile_investor(
    payload: ReconcileInvestorRequest | None = None,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_store),
    admin_uid: str = Depends(get_admin_uid),
) -> ReconcileInvestorResponse:
    try:
        result = reconciler.reconcile_investor(store, payload.investor_uid if payload else None)
    except (ReconciliationError, DocumentStoreError) as exc:
        _raise_http(exc)

    log_audit(
        db,
        actor_uid=admin_uid,
        action="aggregates.reconcile_investor",
        entity_type="investor",
        entity_id=result.investor_uid,
        before_state=result.previous.as_fields(),
        after_state=result.aggregates.as_fields(),
    )
    db.commit()
    return ReconcileInvestorResponse(
        result=InvestorAggregatesOut(
            investor_uid=result.investor_uid,
            total_invested=float(result.aggregates.total_invested),
            active_investments_count=result.aggregates.active_investments_count,
            user_written=result.user_written,
        )
    )


@router.get("/audit", response_model=list[AuditLogOut])
def list_audit_log(
    limit: int = 200,
    db: Session = Depends(get_db),
    admin_uid: str = Depends(get_admin_uid),
) -> list[AuditLogOut]:
    rows = list(
        db.scalars(
            select(AuditLog).order_by(AuditLog.id.desc()).limit(max(1, min(limit, 500)))
        ).all()
    )
    return [
        AuditLogOut(
            id=row.id,
            actor_uid=row.actor_uid,
            action=row.action,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            before_state=row.before_state,
            after_state=row.after_state,
            created_at=row.created_at,
        )
        for row in rows
    ]
