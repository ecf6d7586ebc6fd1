from __future__ import annotations

from typing import Any, NamedTuple

from fundingsync.models.enums import OFFICIAL_INVESTMENT_STATUSES, InvestmentStatus


class CanonicalStatus(NamedTuple):
    status: InvestmentStatus
    was_rewritten: bool

    @property
    def resolvable(self) -> bool:
        return self.status is not InvestmentStatus.unresolvable


_OFFICIAL_VALUES = {status.value: status for status in OFFICIAL_INVESTMENT_STATUSES}


def canonicalize(raw: Any, finalized_at: Any = None) -> CanonicalStatus:
    """Map a raw (possibly legacy) status to the canonical enumeration.

    ``approved`` resolves to ``active`` once the investment was finalized and to
    ``signed`` otherwise; ``pending_review`` resolves to ``pending``. Anything
    else that is not already canonical is reported as ``unresolvable`` and is
    never guessed.
    """
    value = str(raw if raw is not None else "").strip().lower()

    official = _OFFICIAL_VALUES.get(value)
    if official is not None:
        return CanonicalStatus(official, False)
    if value == "approved":
        return CanonicalStatus(
            InvestmentStatus.active if finalized_at else InvestmentStatus.signed,
            True,
        )
    if value == "pending_review":
        return CanonicalStatus(InvestmentStatus.pending, True)
    return CanonicalStatus(InvestmentStatus.unresolvable, False)


def canonicalize_investment(data: dict[str, Any]) -> CanonicalStatus:
    return canonicalize(data.get("status"), data.get("finalizedAt"))
