"""
Azure DevOps Integration

Iterations, closed work items and test suite links.
"""

from qa_report.devops.client import AzureDevOpsClient
from qa_report.devops.iterations import (
    IterationSelection,
    IterationWindow,
    fetch_iterations,
    select_iterations,
)
from qa_report.devops.suite_finder import TestSuiteFinder
from qa_report.devops.work_items import (
    DEFAULT_WORK_ITEM_FIELDS,
    extract_assigned_to,
    fetch_work_items_for_range,
)

__all__ = [
    'AzureDevOpsClient',
    'IterationSelection',
    'IterationWindow',
    'fetch_iterations',
    'select_iterations',
    'TestSuiteFinder',
    'DEFAULT_WORK_ITEM_FIELDS',
    'extract_assigned_to',
    'fetch_work_items_for_range',
]
