"""
Report Output

Writes the rendered report to reports/qa-report-<sprint>.html.
"""

from pathlib import Path
from typing import Optional, Tuple

from qa_report.utils import slugify, write_file_if_changed

REPORTS_DIR = "reports"
REPORT_FILE_PREFIX = "qa-report"


def compute_report_file_path(sprint_label: str, output_dir: Optional[Path] = None) -> Path:
    """Get the report file path for a sprint."""
    base = Path(output_dir) if output_dir else Path.cwd()
    return base / REPORTS_DIR / f"{REPORT_FILE_PREFIX}-{slugify(sprint_label)}.html"


def write_report_document(
    sprint_label: str,
    html: str,
    output_dir: Optional[Path] = None
) -> Tuple[Path, bool]:
    """Write the report unless it is unchanged.

    Returns:
        Tuple of (report path, whether the file was written)
    """
    path = compute_report_file_path(sprint_label, output_dir)
    written = write_file_if_changed(path, html)
    return path, written
