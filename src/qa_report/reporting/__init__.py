"""
QA Report Rendering

Report rows, template rendering and local output.
"""

from qa_report.reporting.document import (
    MISSING_VALUE_TEXT,
    NO_WORK_ITEMS_MESSAGE,
    build_report_document,
    format_template_value,
    to_template_rows,
)
from qa_report.reporting.output import compute_report_file_path, write_report_document
from qa_report.reporting.rows import ReportRow, gather_report_rows

__all__ = [
    'MISSING_VALUE_TEXT',
    'NO_WORK_ITEMS_MESSAGE',
    'build_report_document',
    'format_template_value',
    'to_template_rows',
    'compute_report_file_path',
    'write_report_document',
    'ReportRow',
    'gather_report_rows',
]
