from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..models.assignment import Assignment, MatchedTimesheet, MatchResult, UnmatchedTimesheet
from ..models.records import TimesheetRow

"""Assignment matcher.

Pairs parsed timesheet rows with contractor assignments by
``(contractor name, customer name)``, trimmed and compared case-insensitively.
Only an ``active`` assignment can match. The function is pure: same rows and
assignments in the same order always give the same partition.

Per row, in order:

1. first active assignment with equal names -> matched;
2. else any assignment with equal names -> unmatched, naming its status;
3. else -> unmatched, no assignment for the pair.
"""

__all__ = [
    "pair_key",
    "match_timesheets",
]

logger = logging.getLogger(__name__)


def pair_key(contractor_name: str, customer_name: str) -> tuple[str, str]:
    return (contractor_name.strip().casefold(), customer_name.strip().casefold())


def _pair_label(row: TimesheetRow) -> str:
    return f"{row.contractor_name} → {row.customer_name}"


def match_timesheets(
    rows: Iterable[TimesheetRow],
    assignments: Sequence[Assignment],
    *,
    strict_duplicates: bool = False,
) -> MatchResult:
    """Partition ``rows`` into matched and unmatched timesheets.

    When several active assignments share a pair, the first one in
    ``assignments`` order wins and a warning is logged. With
    ``strict_duplicates`` such rows are reported as unmatched instead.
    """
    by_pair: dict[tuple[str, str], list[Assignment]] = {}
    for assignment in assignments:
        key = pair_key(assignment.contractor_name, assignment.customer_name)
        by_pair.setdefault(key, []).append(assignment)

    result = MatchResult()
    for row in rows:
        candidates = by_pair.get(pair_key(row.contractor_name, row.customer_name), [])
        active = [a for a in candidates if a.is_active]

        if len(active) > 1:
            ids = [a.id for a in active]
            if strict_duplicates:
                result.unmatched.append(
                    UnmatchedTimesheet(row, f"Multiple active assignments found for {_pair_label(row)}")
                )
                continue
            logger.warning(
                "row %d: %d active assignments for %s, using %s (candidates=%s)",
                row.row_number, len(active), _pair_label(row), ids[0], ids,
            )

        if active:
            result.matched.append(MatchedTimesheet(row, active[0]))
        elif candidates:
            status = candidates[0].status.value
            result.unmatched.append(
                UnmatchedTimesheet(
                    row,
                    f"Assignment exists but is not active (status: {status}) for {_pair_label(row)}",
                )
            )
        else:
            result.unmatched.append(UnmatchedTimesheet(row, f"No assignment found for {_pair_label(row)}"))

    logger.debug("matched=%d unmatched=%d", len(result.matched), len(result.unmatched))
    return result
