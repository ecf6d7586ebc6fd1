from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for failures raised by the aggregate reconciliation engine."""


class InvalidArgument(ReconciliationError):
    pass


class ProjectNotFound(ReconciliationError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"Project {project_id} not found.")
        self.project_id = project_id


class InvestorNotFound(ReconciliationError):
    def __init__(self, investor_uid: str) -> None:
        super().__init__(f"Investor {investor_uid} not found.")
        self.investor_uid = investor_uid


class TransientWriteError(ReconciliationError):
    """A write failed during reconciliation; the aggregate was not persisted.

    Retrying is safe: the next attempt re-derives everything from current state.
    """

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(f"Writing aggregates for {entity_type} {entity_id} failed; retry later.")
        self.entity_type = entity_type
        self.entity_id = entity_id
