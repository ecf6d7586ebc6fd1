from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fundingsync.models.enums import (
    COUNTED_INVESTMENT_STATUSES,
    PENDING_INVESTMENT_STATUSES,
    RUNNING_INVESTMENT_STATUSES,
)
from fundingsync.services.status import canonicalize_investment
from fundingsync.utils.decimal_math import ZERO, to_amount, to_json_number


@dataclass(frozen=True)
class ProjectAggregates:
    current_amount: Decimal
    pending_amount: Decimal
    investors_count: int | None

    @classmethod
    def from_project(cls, data: Mapping[str, Any] | None) -> ProjectAggregates:
        data = data or {}
        count = data.get("investorsCount")
        return cls(
            current_amount=to_amount(data.get("currentAmount")),
            pending_amount=to_amount(data.get("pendingAmount")),
            investors_count=count if isinstance(count, int) and not isinstance(count, bool) else None,
        )

    def as_fields(self) -> dict[str, Any]:
        return {
            "currentAmount": to_json_number(self.current_amount),
            "pendingAmount": to_json_number(self.pending_amount),
            "investorsCount": self.investors_count,
        }


@dataclass(frozen=True)
class InvestorAggregates:
    total_invested: Decimal
    active_investments_count: int | None

    @classmethod
    def from_user(cls, data: Mapping[str, Any] | None) -> InvestorAggregates:
        meta = (data or {}).get("investorMeta")
        if not isinstance(meta, Mapping):
            meta = {}
        count = meta.get("activeInvestmentsCount")
        return cls(
            total_invested=to_amount(meta.get("totalInvested")),
            active_investments_count=count if isinstance(count, int) and not isinstance(count, bool) else None,
        )

    def as_fields(self) -> dict[str, Any]:
        return {
            "totalInvested": to_json_number(self.total_invested),
            "activeInvestmentsCount": self.active_investments_count,
        }


def _investor_key(value: Any) -> str | None:
    if value is None or value == "" or value is False:
        return None
    return str(value)


def compute_project_aggregates(
    project_id: str,
    investments: Iterable[Mapping[str, Any]],
) -> ProjectAggregates:
    """Derive a project's funding totals from the full set of its investments.

    Records that belong to another project are ignored. Unresolvable statuses
    feed neither total; bad amounts count as zero.
    """
    current = ZERO
    pending = ZERO
    investors: set[str] = set()

    for investment in investments:
        if str(investment.get("projectId") or "").strip() != project_id:
            continue
        canonical = canonicalize_investment(dict(investment))
        amount = to_amount(investment.get("amount"))
        if canonical.status in COUNTED_INVESTMENT_STATUSES:
            current += amount
            uid = _investor_key(investment.get("investorUid"))
            if uid is not None:
                investors.add(uid)
        elif canonical.status in PENDING_INVESTMENT_STATUSES:
            pending += amount

    return ProjectAggregates(
        current_amount=current,
        pending_amount=pending,
        investors_count=len(investors),
    )


def compute_investor_aggregates(
    investor_uid: str,
    investments: Iterable[Mapping[str, Any]],
) -> InvestorAggregates:
    total = ZERO
    running = 0
    for investment in investments:
        if _investor_key(investment.get("investorUid")) != investor_uid:
            continue
        canonical = canonicalize_investment(dict(investment))
        if canonical.status in COUNTED_INVESTMENT_STATUSES:
            total += to_amount(investment.get("amount"))
        if canonical.status in RUNNING_INVESTMENT_STATUSES:
            running += 1
    return InvestorAggregates(total_invested=total, active_investments_count=running)
