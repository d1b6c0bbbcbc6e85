"""
Work Item Queries

Fetches Bugs and Product Backlog Items closed inside an iteration window.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from qa_report.config import DEFAULT_WORK_ITEM_TYPES
from qa_report.devops.iterations import IterationWindow

logger = logging.getLogger(__name__)

DEFAULT_WORK_ITEM_FIELDS: Dict[str, str] = {
    "id": "System.Id",
    "assigned_to": "System.AssignedTo",
}

WORK_ITEM_BATCH_SIZE = 200
UNASSIGNED = "Unassigned"


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _wiql_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_closed_items_query(
    window: IterationWindow,
    work_item_types: Sequence[str] = DEFAULT_WORK_ITEM_TYPES
) -> str:
    """Build the WIQL query for items closed within the window (inclusive)."""
    types = ", ".join(_wiql_string(t) for t in work_item_types)
    return (
        "SELECT [System.Id] "
        "FROM WorkItems "
        "WHERE [System.TeamProject] = @project "
        f"AND [System.WorkItemType] IN ({types}) "
        f"AND [Microsoft.VSTS.Common.ClosedDate] >= '{_iso(window.start)}' "
        f"AND [Microsoft.VSTS.Common.ClosedDate] <= '{_iso(window.finish)}'"
    )


def fetch_work_items_for_range(
    client,
    window: IterationWindow,
    field_map: Dict[str, str] = DEFAULT_WORK_ITEM_FIELDS,
    work_item_types: Sequence[str] = DEFAULT_WORK_ITEM_TYPES
) -> List[Dict[str, Any]]:
    """Fetch work items closed within an iteration window.

    Args:
        client: AzureDevOpsClient
        window: Iteration window to query
        field_map: Report column to work item field reference
        work_item_types: Work item types to include

    Returns:
        Work item payloads (each with 'id' and 'fields')
    """
    refs = client.query_by_wiql(build_closed_items_query(window, work_item_types))
    ids = [ref.get("id") for ref in refs if isinstance(ref.get("id"), int)]
    if not ids:
        return []

    fields = list(dict.fromkeys([*field_map.values(), "System.Id"]))

    items: List[Dict[str, Any]] = []
    for i in range(0, len(ids), WORK_ITEM_BATCH_SIZE):
        chunk = ids[i:i + WORK_ITEM_BATCH_SIZE]
        items.extend(client.get_work_items(chunk, fields))

    logger.debug(f"{window.name}: {len(items)} closed work items")
    return items


def extract_assigned_to(work_item: Dict[str, Any]) -> str:
    """Get a display name for the work item's assignee."""
    raw = (work_item.get("fields") or {}).get("System.AssignedTo")
    if not raw:
        return UNASSIGNED
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        return raw.get("displayName") or raw.get("uniqueName") or UNASSIGNED
    return UNASSIGNED
