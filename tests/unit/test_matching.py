from __future__ import annotations

from dataclasses import replace

from finops_import.models import AssignmentStatus, TimesheetRow
from finops_import.services.matching import match_timesheets, pair_key


def _row(n: int, contractor: str = "Jane Doe", customer: str = "Acme Corp") -> TimesheetRow:
    return TimesheetRow(user_id="u1", row_number=n, contractor_name=contractor, customer_name=customer, month="2024-01")


def test_pair_key_is_trimmed_and_case_insensitive():
    assert pair_key(" Jane DOE ", "acme corp") == pair_key("jane doe", "ACME CORP ")


def test_active_assignment_matches(acme_assignment):
    result = match_timesheets([_row(2, " jane doe", "ACME CORP")], [acme_assignment])
    assert len(result.matched) == 1
    assert result.matched[0].assignment is acme_assignment
    assert result.unmatched == []


def test_no_assignment_reason(acme_assignment):
    result = match_timesheets([_row(2, "Raj Patel", "Globex Ltd")], [acme_assignment])
    assert result.matched == []
    assert result.unmatched[0].reason == "No assignment found for Raj Patel → Globex Ltd"


def test_inactive_assignment_reason(acme_assignment):
    done = replace(acme_assignment, status=AssignmentStatus.COMPLETED)
    result = match_timesheets([_row(3)], [done])
    assert result.unmatched[0].reason == (
        "Assignment exists but is not active (status: completed) for Jane Doe → Acme Corp"
    )


def test_active_wins_over_inactive_for_same_pair(acme_assignment):
    done = replace(acme_assignment, id="old", status=AssignmentStatus.CANCELLED)
    result = match_timesheets([_row(2)], [done, acme_assignment])
    assert result.matched[0].assignment.id == "asg-1"


def test_partition_preserves_input_order(acme_assignment):
    rows = [_row(2), _row(3, "Nobody"), _row(4), _row(5, "Nobody Else")]
    result = match_timesheets(rows, [acme_assignment])
    assert [m.row.row_number for m in result.matched] == [2, 4]
    assert [u.row.row_number for u in result.unmatched] == [3, 5]
    assert len(result.matched) + len(result.unmatched) == len(rows)


def test_duplicate_active_assignments_first_wins_and_warns(acme_assignment, caplog):
    second = replace(acme_assignment, id="asg-2")
    result = match_timesheets([_row(2)], [acme_assignment, second])
    assert result.matched[0].assignment.id == "asg-1"
    assert any("2 active assignments" in r.getMessage() for r in caplog.records)


def test_duplicate_active_assignments_strict(acme_assignment):
    second = replace(acme_assignment, id="asg-2")
    result = match_timesheets([_row(2)], [acme_assignment, second], strict_duplicates=True)
    assert result.matched == []
    assert result.unmatched[0].reason == "Multiple active assignments found for Jane Doe → Acme Corp"


def test_matching_is_deterministic(acme_assignment):
    rows = [_row(2), _row(3, "X")]
    first = match_timesheets(rows, [acme_assignment])
    second = match_timesheets(rows, [acme_assignment])
    assert first == second
