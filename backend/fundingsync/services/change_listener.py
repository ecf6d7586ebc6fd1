from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fundingsync.db.document_store import ChangeEvent, DocumentStore
from fundingsync.models.collections import INVESTMENTS
from fundingsync.services import reconciler, write_guard
from fundingsync.services.errors import InvestorNotFound, ProjectNotFound, TransientWriteError
from fundingsync.utils.decimal_math import to_amount


logger = logging.getLogger("fundingsync.listener")

TEXT_FIELDS = ("projectId", "status", "investorUid", "finalizedAt")


def _text(value: Any) -> str:
    if value is None or value is False or value == "":
        return ""
    return str(value)


def has_relevant_change(before: dict[str, Any] | None, after: dict[str, Any] | None) -> bool:
    if before is None or after is None:
        return before is not after
    if any(_text(before.get(name)) != _text(after.get(name)) for name in TEXT_FIELDS):
        return True
    return to_amount(before.get("amount")) != to_amount(after.get("amount"))


def _distinct_ids(field_name: str, *states: dict[str, Any] | None) -> list[str]:
    ids: list[str] = []
    for state in states:
        value = _text((state or {}).get(field_name)).strip()
        if value and value not in ids:
            ids.append(value)
    return ids


def affected_project_ids(before: dict[str, Any] | None, after: dict[str, Any] | None) -> list[str]:
    return _distinct_ids("projectId", before, after)


def affected_investor_uids(before: dict[str, Any] | None, after: dict[str, Any] | None) -> list[str]:
    return _distinct_ids("investorUid", before, after)


def handle_investment_change(
    store: DocumentStore,
    event: ChangeEvent,
    *,
    reconcile_investors: bool = True,
) -> list[str]:
    """React to one investment write; returns the project ids that were reconciled.

    Each affected project (and investor) is handled independently. Missing
    records are logged and skipped. Transient write failures are re-raised once
    every id has been attempted so the event is redelivered.
    """
    before, after = event.before, event.after
    if write_guard.is_self_caused(before, after):
        logger.debug("Ignoring self-caused write on investment %s.", event.document_id)
        return []
    if not has_relevant_change(before, after):
        return []

    reconciled: list[str] = []
    transient: list[TransientWriteError] = []

    for project_id in affected_project_ids(before, after):
        try:
            reconciler.reconcile_project(store, project_id)
        except ProjectNotFound:
            logger.warning(
                "Investment %s references missing project %s; nothing to reconcile.",
                event.document_id,
                project_id,
            )
            continue
        except TransientWriteError as exc:
            transient.append(exc)
            continue
        reconciled.append(project_id)

    if reconcile_investors:
        for investor_uid in affected_investor_uids(before, after):
            try:
                reconciler.reconcile_investor(store, investor_uid)
            except InvestorNotFound:
                logger.info("No user record for investor %s; investor totals skipped.", investor_uid)
            except TransientWriteError as exc:
                transient.append(exc)

    if transient:
        raise transient[0]
    return reconciled


def register_change_listener(
    store: DocumentStore,
    *,
    reconcile_investors: bool = True,
) -> Callable[[], None]:
    def on_investment_write(event: ChangeEvent) -> None:
        handle_investment_change(store, event, reconcile_investors=reconcile_investors)

    logger.info("Aggregate change listener subscribed to %s.", INVESTMENTS)
    return store.subscribe(INVESTMENTS, on_investment_write)
