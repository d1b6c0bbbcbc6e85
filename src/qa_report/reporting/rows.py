"""
Report Rows

Collects closed work items across iterations into sorted, de-duplicated report rows.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from qa_report.devops.iterations import IterationWindow
from qa_report.devops.work_items import extract_assigned_to

logger = logging.getLogger(__name__)


@dataclass
class ReportRow:
    """One line of the QA report."""
    id: int
    assigned_to: str
    test_suite_link: Optional[str] = None


def gather_report_rows(
    iterations: Sequence[IterationWindow],
    fetch_items: Callable[[IterationWindow], List[Dict[str, Any]]],
    suite_finder
) -> List[ReportRow]:
    """Build report rows for the closed work items of each iteration.

    Items without an integer id are skipped. An item closed in overlapping
    iterations is reported once. Rows are sorted by assignee, then id.

    Args:
        iterations: Iteration windows to report on
        fetch_items: Returns the closed work items for a window
        suite_finder: TestSuiteFinder used to link each item to its test suite

    Returns:
        Sorted report rows
    """
    seen_ids: Set[int] = set()
    rows: List[ReportRow] = []

    for window in iterations:
        for item in fetch_items(window):
            item_id = item.get("id")
            if not isinstance(item_id, int) or isinstance(item_id, bool) or item_id in seen_ids:
                continue
            seen_ids.add(item_id)
            rows.append(ReportRow(
                id=item_id,
                assigned_to=extract_assigned_to(item),
                test_suite_link=suite_finder.find_suite_link_by_title(str(item_id)),
            ))

    rows.sort(key=lambda row: (row.assigned_to, row.id))
    logger.debug(f"Collected {len(rows)} report rows from {len(iterations)} iterations")
    return rows
