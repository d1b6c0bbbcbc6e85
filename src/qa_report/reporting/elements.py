"""
Template Element Lookup

Locates tables, template rows and placeholders inside Confluence storage HTML.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from qa_report.exceptions import TemplateError

HTML_ESCAPE_MAP = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}

_ESCAPE_PATTERN = re.compile(r"""[&<>"']""")
ROW_PATTERN = re.compile(r"<tr\b[\s\S]*?</tr>", re.IGNORECASE)
PLACEHOLDER_PATTERN = re.compile(r"\{([^}]+)\}")
TABLE_START_PATTERN = re.compile(r"<table\b", re.IGNORECASE)
TABLE_TAG_PATTERN = re.compile(r"</?table\b[^>]*>", re.IGNORECASE)
HEADING_PATTERN = re.compile(r"<h[1-6][^>]*>[\s\S]*?</h[1-6]>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class TableSection:
    """A <table>...</table> slice of a document."""
    start: int
    end: int
    html: str


def escape_html(value: str) -> str:
    """Escape the five reserved HTML characters."""
    return _ESCAPE_PATTERN.sub(lambda m: HTML_ESCAPE_MAP[m.group(0)], str(value))


def find_template_row(html: str) -> str:
    """Return the first table row that contains a {placeholder}.

    Raises:
        TemplateError: If there are no rows, or none holds a placeholder
    """
    rows = ROW_PATTERN.findall(html)
    if not rows:
        raise TemplateError("Template does not contain any table rows.")

    for row in rows:
        if PLACEHOLDER_PATTERN.search(row):
            return row

    raise TemplateError(
        "Unable to find template table row containing placeholders.",
        remediation="Add a row such as <tr><td>{id}</td><td>{assigned_to}</td></tr> to the template table"
    )


def extract_placeholders(template_row: str) -> List[str]:
    """Distinct placeholder names in order of first appearance."""
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(template_row)))


def _find_table_bounds(html: str, table_start: int) -> TableSection:
    depth = 0
    for match in TABLE_TAG_PATTERN.finditer(html, table_start):
        if match.group(0)[1] != "/":
            depth += 1
            continue
        depth -= 1
        if depth == 0:
            end = match.end()
            return TableSection(start=table_start, end=end, html=html[table_start:end])
    raise TemplateError("Failed to locate closing </table> tag.")


def find_table_after_heading(html: str, heading: str) -> Optional[TableSection]:
    """Find the first table following a heading whose text matches (case-insensitive)."""
    normalized = heading.strip().lower()
    if not normalized:
        return None

    for match in HEADING_PATTERN.finditer(html):
        text = TAG_PATTERN.sub("", match.group(0)).strip().lower()
        if text != normalized:
            continue
        table = TABLE_START_PATTERN.search(html, match.end())
        if table is None:
            return None
        return _find_table_bounds(html, table.start())

    return None


def find_first_table(html: str) -> TableSection:
    """Find the first table in the document.

    Raises:
        TemplateError: If the document has no <table>
    """
    table = TABLE_START_PATTERN.search(html)
    if table is None:
        raise TemplateError("Template does not contain any <table> elements.")
    return _find_table_bounds(html, table.start())
