from pydantic import Field, field_validator

from fundingsync.schemas.common import CamelModel


class ReconcileProjectRequest(CamelModel):
    project_id: str | None = None

    @field_validator("project_id", mode="before")
    @classmethod
    def _coerce_project_id(cls, value: object) -> str | None:
        return None if value is None else str(value)


class ReconcileInvestorRequest(CamelModel):
    investor_uid: str | None = None

    @field_validator("investor_uid", mode="before")
    @classmethod
    def _coerce_investor_uid(cls, value: object) -> str | None:
        return None if value is None else str(value)


class ProjectAggregatesOut(CamelModel):
    project_id: str
    current_amount: float
    pending_amount: float
    investors_count: int
    normalized_investment_ids: list[str] = Field(default_factory=list)
    project_written: bool


class InvestorAggregatesOut(CamelModel):
    investor_uid: str
    total_invested: float
    active_investments_count: int
    user_written: bool


class ReconcileProjectResponse(CamelModel):
    ok: bool = True
    result: ProjectAggregatesOut


class ReconcileInvestorResponse(CamelModel):
    ok: bool = True
    result: InvestorAggregatesOut


class ReconcileAllResponse(CamelModel):
    ok: bool = True
    reconciled_count: int
    failed_project_ids: list[str] = Field(default_factory=list)
