"""
QA Report Console Output

Rich console helpers and secret masking for anything printed or logged.
"""

import re
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table


# Patterns that indicate a secret value
SECRET_PATTERNS = [
    "token", "password", "secret", "credential",
    "api_key", "apikey", "azdo_pat",
]

# Regex patterns for common secret formats
SECRET_REGEXES = [
    r'(?<=Basic )[A-Za-z0-9+/=]{8,}',  # HTTP basic auth header values
    r'(?<=Bearer )[A-Za-z0-9\-._~+/=]{8,}',  # Bearer tokens
    r'ATATT[A-Za-z0-9_\-=]{20,}',  # Atlassian API tokens
    r'\b[a-z2-7]{52}\b',  # Azure DevOps personal access tokens
]

NO_ROWS_MESSAGE = "No completed Bugs or PBIs found for the configured sprints."


def mask_secrets(text: str, mask: str = "********") -> str:
    """Mask secrets in a string.

    Keys match as ``key=value``, or as ``key: value`` when the key is an
    identifier such as ``api_token`` or a quoted JSON key, so prose like
    "Token: rotation audit" is left alone.

    Args:
        text: The text that may contain secrets
        mask: The string to replace secrets with

    Returns:
        Text with secrets masked
    """
    if not text:
        return text

    result = text

    for pattern in SECRET_PATTERNS:
        assignment = rf'(\b\w*{pattern}\w*["\']?\s*=\s*["\']?)([^"\'\s]+)(["\']?)'
        mapping = (
            rf'((?:\b(?=\w*_)\w*{pattern}\w*|["\']\w*{pattern}\w*["\'])\s*:\s*["\']?)'
            rf'([^"\'\s]+)(["\']?)'
        )
        for regex in (assignment, mapping):
            result = re.sub(regex, rf'\1{mask}\3', result, flags=re.IGNORECASE)

    for regex in SECRET_REGEXES:
        result = re.sub(regex, mask, result)

    return result


def build_rows_table(rows: Sequence) -> Table:
    """Build the console table for report rows."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Assigned To")
    table.add_column("Test Suite Link", overflow="fold")

    for row in rows:
        table.add_row(str(row.id), row.assigned_to, row.test_suite_link or "N/A")

    return table


def render_rows_table(rows: Sequence, console: Optional[Console] = None) -> None:
    """Print report rows as a table, or a notice when there are none."""
    console = console or Console()
    if not rows:
        console.print(NO_ROWS_MESSAGE)
        return
    console.print(build_rows_table(rows))
