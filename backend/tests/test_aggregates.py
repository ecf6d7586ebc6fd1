import random
from decimal import Decimal

from fundingsync.services.aggregates import (
    InvestorAggregates,
    ProjectAggregates,
    compute_investor_aggregates,
    compute_project_aggregates,
)
from fundingsync.utils.decimal_math import to_amount


SCENARIO = [
    {"projectId": "P", "investorUid": "u3", "amount": 100000, "status": "pending"},
    {"projectId": "P", "investorUid": "u1", "amount": 50000, "status": "signed"},
    {"projectId": "P", "investorUid": "u2", "amount": 20000, "status": "approved", "finalizedAt": None},
]


def test_scenario_totals() -> None:
    totals = compute_project_aggregates("P", SCENARIO)
    assert totals.current_amount == Decimal("70000")
    assert totals.pending_amount == Decimal("100000")
    assert totals.investors_count == 2


def test_result_is_independent_of_order() -> None:
    shuffled = list(SCENARIO)
    random.Random(7).shuffle(shuffled)
    assert compute_project_aggregates("P", shuffled) == compute_project_aggregates("P", SCENARIO)


def test_malformed_amounts_count_as_zero() -> None:
    totals = compute_project_aggregates(
        "P",
        [
            {"projectId": "P", "investorUid": "u1", "amount": "abc", "status": "active"},
            {"projectId": "P", "investorUid": "u2", "status": "completed"},
            {"projectId": "P", "investorUid": "u3", "amount": float("nan"), "status": "signed"},
            {"projectId": "P", "investorUid": "u4", "amount": "1250.50", "status": "signing"},
        ],
    )
    assert totals.current_amount == Decimal("0")
    assert totals.pending_amount == Decimal("1250.50")
    assert totals.investors_count == 3


def test_amounts_beyond_double_range_count_as_zero() -> None:
    totals = compute_project_aggregates(
        "P",
        [
            {"projectId": "P", "investorUid": "u1", "amount": 10, "status": "active"},
            {"projectId": "P", "investorUid": "u2", "amount": "1e9999999", "status": "active"},
            {"projectId": "P", "investorUid": "u3", "amount": "1e400", "status": "signed"},
            {"projectId": "P", "investorUid": "u4", "amount": "-1e400", "status": "pending"},
        ],
    )
    assert totals.current_amount == Decimal("10")
    assert totals.pending_amount == Decimal("0")
    assert totals.investors_count == 3


def test_investors_are_distinct_and_missing_uids_ignored() -> None:
    totals = compute_project_aggregates(
        "P",
        [
            {"projectId": "P", "investorUid": "u1", "amount": 10, "status": "active"},
            {"projectId": "P", "investorUid": "u1", "amount": 15, "status": "completed"},
            {"projectId": "P", "amount": 5, "status": "signed"},
            {"projectId": "P", "investorUid": "", "amount": 5, "status": "signed"},
            {"projectId": "P", "investorUid": "u9", "amount": 99, "status": "pending"},
        ],
    )
    assert totals.current_amount == Decimal("35")
    assert totals.investors_count == 1


def test_terminal_and_unresolvable_statuses_feed_neither_total() -> None:
    totals = compute_project_aggregates(
        "P",
        [
            {"projectId": "P", "investorUid": "u1", "amount": 10, "status": "rejected"},
            {"projectId": "P", "investorUid": "u2", "amount": 20, "status": "cancelled"},
            {"projectId": "P", "investorUid": "u3", "amount": 30, "status": "on_hold"},
        ],
    )
    assert totals == ProjectAggregates(Decimal("0"), Decimal("0"), 0)


def test_records_of_other_projects_are_ignored() -> None:
    totals = compute_project_aggregates(
        "P",
        SCENARIO + [{"projectId": "Q", "investorUid": "u5", "amount": 1, "status": "active"}],
    )
    assert totals.current_amount == Decimal("70000")
    assert totals.investors_count == 2


def test_as_fields_writes_json_numbers() -> None:
    fields = ProjectAggregates(Decimal("70000"), Decimal("10.25"), 2).as_fields()
    assert fields == {"currentAmount": 70000, "pendingAmount": 10.25, "investorsCount": 2}
    assert isinstance(fields["currentAmount"], int)


def test_stored_aggregates_round_trip_to_equal_values() -> None:
    computed = compute_project_aggregates("P", SCENARIO)
    assert ProjectAggregates.from_project(computed.as_fields()) == computed
    assert ProjectAggregates.from_project({}).investors_count is None


def test_to_amount_coercion() -> None:
    assert to_amount(None) == 0
    assert to_amount(True) == 0
    assert to_amount("  ") == 0
    assert to_amount("Infinity") == 0
    assert to_amount({"value": 3}) == 0
    assert to_amount("1e400") == 0
    assert to_amount(Decimal("1e9999999")) == 0
    assert to_amount(10**400) == 0
    assert to_amount("12.5") == Decimal("12.5")
    assert to_amount(7) == Decimal("7")


def test_investor_totals_cover_counted_and_running_investments() -> None:
    investments = [
        {"projectId": "P", "investorUid": "u1", "amount": 1000, "status": "signed"},
        {"projectId": "Q", "investorUid": "u1", "amount": 2000, "status": "completed"},
        {"projectId": "R", "investorUid": "u1", "amount": 500, "status": "approved", "finalizedAt": "2026-02-01"},
        {"projectId": "S", "investorUid": "u1", "amount": 700, "status": "pending"},
        {"projectId": "S", "investorUid": "u2", "amount": 900, "status": "active"},
    ]
    totals = compute_investor_aggregates("u1", investments)
    assert totals == InvestorAggregates(total_invested=Decimal("3500"), active_investments_count=2)
