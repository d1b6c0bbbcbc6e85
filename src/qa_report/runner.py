"""
QA Report Runner

Runs one report: select the sprint, gather rows, render, write and publish.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from qa_report.config import Settings
from qa_report.confluence import (
    ConfluenceClient,
    ConfluencePageResult,
    fetch_and_cache_template,
    sync_report_to_confluence,
)
from qa_report.devops.client import AzureDevOpsClient
from qa_report.devops.iterations import IterationSelection, fetch_iterations, select_iterations
from qa_report.devops.suite_finder import TestSuiteFinder
from qa_report.devops.work_items import fetch_work_items_for_range
from qa_report.reporting.document import build_report_document, to_template_rows
from qa_report.reporting.output import write_report_document
from qa_report.reporting.rows import ReportRow, gather_report_rows

logger = logging.getLogger(__name__)

NO_ITERATIONS_MESSAGE = "No iterations with start and finish dates found for the configured team."
NO_SPRINT_MESSAGE = "Unable to determine a sprint to report on."


@dataclass
class ReportResult:
    """Outcome of a report run.

    When there was nothing to report, ``message`` explains why and the other
    fields are empty.
    """
    selection: IterationSelection = field(default_factory=IterationSelection)
    rows: List[ReportRow] = field(default_factory=list)
    report_path: Optional[Path] = None
    report_written: bool = False
    page: Optional[ConfluencePageResult] = None
    message: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.message is None


def run_report(
    settings: Settings,
    sprint: Optional[str] = None,
    dry_run: bool = False,
    devops_client: Optional[AzureDevOpsClient] = None,
    confluence_client: Optional[ConfluenceClient] = None,
    now: Optional[datetime] = None
) -> ReportResult:
    """Generate the QA report for a sprint.

    Args:
        settings: Run settings
        sprint: Optional sprint name, path or id (defaults to the current sprint)
        dry_run: Render and write locally but do not publish to Confluence
        devops_client: Optional pre-built Azure DevOps client
        confluence_client: Optional pre-built Confluence client
        now: Reference time for current-sprint selection

    Returns:
        ReportResult

    Raises:
        QAReportError: On any configuration, upstream or template failure
    """
    devops = devops_client or AzureDevOpsClient(
        settings.org_url,
        settings.project,
        settings.team,
        settings.pat,
        timeout=settings.request_timeout,
    )
    confluence = confluence_client or ConfluenceClient(
        settings.confluence_base_url,
        settings.confluence_email,
        settings.confluence_api_token,
        timeout=settings.request_timeout,
    )

    all_iterations = fetch_iterations(devops)
    if not all_iterations:
        return ReportResult(message=NO_ITERATIONS_MESSAGE)

    selection = select_iterations(all_iterations, sprint, now=now)
    if not selection.iterations:
        return ReportResult(selection=selection, message=NO_SPRINT_MESSAGE)

    sprint_label = selection.sprint_label
    logger.info(f"Generating QA report for sprint: {sprint_label}")

    template = fetch_and_cache_template(confluence, settings)

    suite_finder = TestSuiteFinder(devops, settings.project, settings.org_url)
    rows = gather_report_rows(
        selection.iterations,
        lambda window: fetch_work_items_for_range(
            devops, window, work_item_types=settings.work_item_types
        ),
        suite_finder,
    )

    html = build_report_document(
        template.content,
        sprint_label,
        to_template_rows(rows),
        table_title=settings.table_title,
    )
    report_path, written = write_report_document(sprint_label, html, settings.output_dir)
    if not written:
        logger.debug(f"Report unchanged at {report_path}")

    page = None
    if dry_run:
        logger.info("Dry run: skipping Confluence publish.")
    else:
        page = sync_report_to_confluence(confluence, settings, sprint_label, html, template)

    return ReportResult(
        selection=selection,
        rows=rows,
        report_path=report_path,
        report_written=written,
        page=page,
    )
