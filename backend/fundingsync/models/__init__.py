from fundingsync.models.audit import AuditLog
from fundingsync.models.document import Document
from fundingsync.models.enums import (
    COUNTED_INVESTMENT_STATUSES,
    OFFICIAL_INVESTMENT_STATUSES,
    PENDING_INVESTMENT_STATUSES,
    RUNNING_INVESTMENT_STATUSES,
    AppRole,
    InvestmentStatus,
)

__all__ = [
    "AuditLog",
    "Document",
    "AppRole",
    "InvestmentStatus",
    "OFFICIAL_INVESTMENT_STATUSES",
    "COUNTED_INVESTMENT_STATUSES",
    "PENDING_INVESTMENT_STATUSES",
    "RUNNING_INVESTMENT_STATUSES",
]
