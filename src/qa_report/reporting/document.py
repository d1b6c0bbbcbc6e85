"""
Report Document Rendering

Expands the template row of a Confluence page once per report row.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from qa_report.reporting.elements import (
    PLACEHOLDER_PATTERN,
    TableSection,
    escape_html,
    extract_placeholders,
    find_first_table,
    find_table_after_heading,
    find_template_row,
)
from qa_report.utils import slugify

MISSING_VALUE_TEXT = "N/A"
NO_WORK_ITEMS_MESSAGE = "No work items found"

HREF_PLACEHOLDER_PATTERN = re.compile(r'href\s*=\s*"\{([^}]+)\}"', re.IGNORECASE)


def format_template_value(value: Any) -> str:
    """Display text for a template value.

    Missing, blank, non-finite and unsupported values become "N/A". Datetimes are
    rendered as ISO-8601 UTC, dates as ISO dates, strings are trimmed.
    """
    if value is None or isinstance(value, bool):
        return MISSING_VALUE_TEXT

    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if not math.isfinite(value):
                return MISSING_VALUE_TEXT
            if value.is_integer():
                return str(int(value))
        return str(value)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, str):
        return value.strip() or MISSING_VALUE_TEXT

    return MISSING_VALUE_TEXT


def _substitute(template_row: str, values: Dict[str, str]) -> str:
    """Fill placeholders in one pass; href attributes holding a sentinel are dropped."""

    def replace_href(match: "re.Match") -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        if value in (MISSING_VALUE_TEXT, NO_WORK_ITEMS_MESSAGE):
            return ""
        return f'href="{value}"'

    rendered = HREF_PLACEHOLDER_PATTERN.sub(replace_href, template_row)
    return PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), rendered)


def render_row(template_row: str, placeholders: Sequence[str], row: Mapping[str, Any]) -> str:
    """Render one data row from the template row."""
    values = {key: escape_html(format_template_value(row.get(key))) for key in placeholders}
    return _substitute(template_row, values)


def render_empty_row(template_row: str, placeholders: Sequence[str]) -> str:
    """Render the single row shown when there is no data."""
    message = escape_html(NO_WORK_ITEMS_MESSAGE)
    return _substitute(template_row, {key: message for key in placeholders})


def _table_section(html: str, table_title: str) -> Tuple[TableSection, bool]:
    section = find_table_after_heading(html, table_title)
    if section is not None:
        return section, True
    return find_first_table(html), False


def build_report_document(
    template_html: str,
    sprint_label: str,
    rows: Sequence[Mapping[str, Any]],
    table_title: Optional[str] = None
) -> str:
    """Render the report document from a template.

    Every {sprint} is replaced with the escaped sprint label. The template row (the
    first <tr> holding placeholders) is replaced by one rendered row per data row,
    or by a single "No work items found" row when there is no data.

    When table_title is given, the template row is taken from the table that follows
    the heading with that text. If no such heading exists, the first table is used
    and a heading is inserted before it.

    Args:
        template_html: Confluence storage HTML
        sprint_label: Sprint name shown in the report
        rows: Placeholder name to value mappings
        table_title: Optional heading text identifying the report table

    Returns:
        The rendered document

    Raises:
        TemplateError: If the template has no usable table or row
    """
    html = template_html.replace("{sprint}", escape_html(sprint_label))
    title = (table_title or "").strip()

    if title:
        section, heading_exists = _table_section(html, title)
    else:
        section, heading_exists = TableSection(start=0, end=len(html), html=html), True

    template_row = find_template_row(section.html)
    placeholders = extract_placeholders(template_row)

    if rows:
        table_rows = "".join(render_row(template_row, placeholders, row) for row in rows)
    else:
        table_rows = render_empty_row(template_row, placeholders)

    updated = section.html.replace(template_row, table_rows, 1)
    html = html[:section.start] + updated + html[section.end:]

    if not heading_exists:
        heading = f'<h3 data-table-slug="{escape_html(slugify(title))}">{escape_html(title)}</h3>'
        html = html[:section.start] + heading + html[section.start:]

    return html


def to_template_rows(report_rows: Sequence) -> List[Dict[str, Any]]:
    """Convert ReportRows into the placeholder mappings used by the template."""
    return [
        {
            "id": row.id,
            "assigned_to": row.assigned_to,
            "test_plan_link": row.test_suite_link,
        }
        for row in report_rows
    ]
