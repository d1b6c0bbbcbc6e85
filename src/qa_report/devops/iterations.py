"""
Sprint Selection

Loads the team's iteration windows and picks the sprint to report on.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from qa_report.exceptions import SprintNotFoundError, UpstreamRequestError

logger = logging.getLogger(__name__)

TIMEFRAMES = ("past", "current", "future")


@dataclass(frozen=True)
class IterationWindow:
    """A sprint's date range plus its identifying metadata."""
    start: datetime
    finish: datetime
    name: str
    path: Optional[str] = None
    id: Optional[str] = None


@dataclass
class IterationSelection:
    """Iterations chosen for a report and the label to show for them."""
    iterations: List[IterationWindow] = field(default_factory=list)
    sprint_label: str = ""


def _normalize_key(value: Optional[str]) -> str:
    return value.strip().casefold() if value else ""


def _candidate_keys(iteration: IterationWindow) -> List[str]:
    keys = [_normalize_key(iteration.name)]
    if iteration.path:
        keys.append(_normalize_key(iteration.path))
        keys.extend(_normalize_key(segment) for segment in iteration.path.split("\\"))
    if iteration.id:
        keys.append(_normalize_key(iteration.id))
    return [key for key in dict.fromkeys(keys) if key]


def select_iterations(
    all_iterations: List[IterationWindow],
    sprint_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> IterationSelection:
    """Pick the iteration to report on.

    Without a sprint name the iteration containing ``now`` wins, falling back to
    the latest one by start date. With a sprint name, an exact match on name,
    path, path segment or id wins over a substring match.

    Args:
        all_iterations: Candidate iteration windows
        sprint_name: Optional sprint query from the user
        now: Reference time (defaults to the current UTC time)

    Returns:
        IterationSelection holding zero or one iteration

    Raises:
        SprintNotFoundError: If a sprint name was given and nothing matches
    """
    if not all_iterations:
        return IterationSelection(iterations=[], sprint_label=sprint_name or "")

    if not sprint_name:
        now = now or datetime.now(timezone.utc)
        for iteration in all_iterations:
            if iteration.start <= now <= iteration.finish:
                return IterationSelection(iterations=[iteration], sprint_label=iteration.name)
        latest = max(all_iterations, key=lambda iteration: iteration.start)
        return IterationSelection(iterations=[latest], sprint_label=latest.name)

    query = _normalize_key(sprint_name)

    for iteration in all_iterations:
        if query in _candidate_keys(iteration):
            return IterationSelection(iterations=[iteration], sprint_label=iteration.name)

    for iteration in all_iterations:
        if any(query in key for key in _candidate_keys(iteration)):
            return IterationSelection(iterations=[iteration], sprint_label=iteration.name)

    raise SprintNotFoundError(sprint_name)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat only accepts 3 or 6 fractional digits before Python 3.11
    text = re.sub(r"\.(\d+)", lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _is_unsupported_timeframe_error(error: Exception) -> bool:
    return "timeframe" in str(error).lower()


class _IterationCollector:
    """Accumulates iteration windows, skipping duplicates and undated entries."""

    def __init__(self):
        self.seen: Set[str] = set()
        self.windows: List[IterationWindow] = []

    def add(self, iterations: List[Dict[str, Any]], timeframe: Optional[str] = None) -> None:
        for iteration in iterations or []:
            iteration_id = iteration.get("id") or f"{iteration.get('name')}-{timeframe or 'all'}"
            if iteration_id in self.seen:
                continue
            self.seen.add(iteration_id)

            attributes = iteration.get("attributes") or {}
            start = parse_timestamp(attributes.get("startDate"))
            finish = parse_timestamp(attributes.get("finishDate"))
            name = (iteration.get("name") or "").strip()
            if not name or start is None or finish is None:
                continue

            self.windows.append(IterationWindow(
                start=start,
                finish=finish,
                name=name,
                path=iteration.get("path") or None,
                id=iteration.get("id") or None,
            ))


def fetch_iterations(client) -> List[IterationWindow]:
    """Fetch the team's dated iterations, sorted by start date.

    Queries past, current and future timeframes. If the service rejects timeframe
    scoping, the unscoped list is used instead.

    Args:
        client: AzureDevOpsClient (anything with get_team_iterations)

    Returns:
        Iteration windows sorted ascending by start
    """
    collector = _IterationCollector()

    for timeframe in TIMEFRAMES:
        try:
            iterations = client.get_team_iterations(timeframe)
        except UpstreamRequestError as e:
            if not _is_unsupported_timeframe_error(e):
                raise
            logger.debug(f"Timeframe scoping rejected, falling back to all iterations: {e.message}")
            collector.add(client.get_team_iterations())
            break
        collector.add(iterations, timeframe)

    if not collector.windows:
        collector.add(client.get_team_iterations())

    windows = sorted(collector.windows, key=lambda window: window.start)
    logger.debug(f"Found {len(windows)} dated iterations")
    return windows
