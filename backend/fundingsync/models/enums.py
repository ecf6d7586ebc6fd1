import enum


class InvestmentStatus(str, enum.Enum):
    pending = "pending"
    pending_contract = "pending_contract"
    signing = "signing"
    signed = "signed"
    active = "active"
    completed = "completed"
    rejected = "rejected"
    cancelled = "cancelled"
    # never persisted; marks raw values that cannot be mapped safely
    unresolvable = "unresolvable"


class AppRole(str, enum.Enum):
    admin = "admin"
    owner = "owner"
    accountant = "accountant"
    staff = "staff"
    client = "client"
    guest = "guest"
    user = "user"


OFFICIAL_INVESTMENT_STATUSES = frozenset(
    status for status in InvestmentStatus if status is not InvestmentStatus.unresolvable
)

COUNTED_INVESTMENT_STATUSES = frozenset(
    {InvestmentStatus.signed, InvestmentStatus.active, InvestmentStatus.completed}
)

PENDING_INVESTMENT_STATUSES = frozenset(
    {InvestmentStatus.pending, InvestmentStatus.pending_contract, InvestmentStatus.signing}
)

RUNNING_INVESTMENT_STATUSES = frozenset({InvestmentStatus.signed, InvestmentStatus.active})
