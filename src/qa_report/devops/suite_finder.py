"""
Test Suite Finder

Maps test suite titles to their Azure Test Plans execute links.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class TestSuiteFinder:
    """Looks up test suites by title across every test plan of a project.

    The title index is built on the first lookup and reused afterwards. When two
    suites share a title the first one visited is kept.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, client, project: str, org_url: str):
        """Initialize the finder.

        Args:
            client: AzureDevOpsClient (anything with get_test_plans and get_test_suites_for_plan)
            project: Project name, used in the generated links
            org_url: Organization URL
        """
        self.client = client
        self.org_base_url = org_url.rstrip("/")
        self.project_segment = quote(project, safe="!~*'()")
        self._suite_links: Dict[str, str] = {}
        self._suites_loaded = False

    def find_suite_link_by_title(self, title: str) -> Optional[str]:
        """Return the execute link for the suite with this title, or None."""
        if not title:
            return None

        if not self._suites_loaded:
            self._load_all_suites()
            self._suites_loaded = True

        return self._suite_links.get(title.strip())

    def _load_all_suites(self) -> None:
        continuation_token = None
        while True:
            plans, continuation_token = self.client.get_test_plans(continuation_token)
            for plan in plans:
                self._index_suites_for_plan(plan)
            if not continuation_token:
                break
        logger.debug(f"Indexed {len(self._suite_links)} test suites")

    def _index_suites_for_plan(self, plan: Dict[str, Any]) -> None:
        continuation_token = None
        while True:
            suites, continuation_token = self.client.get_test_suites_for_plan(
                plan["id"], continuation_token
            )
            for suite in suites:
                self._walk_suite_tree(plan, suite)
            if not continuation_token:
                break

    def _walk_suite_tree(self, plan: Dict[str, Any], suite: Dict[str, Any]) -> None:
        self._add_suite(plan, suite)
        for child in suite.get("children") or []:
            self._walk_suite_tree(plan, child)

    def _add_suite(self, plan: Dict[str, Any], suite: Dict[str, Any]) -> None:
        key = (suite.get("name") or "").strip()
        if not key or key in self._suite_links:
            return

        self._suite_links[key] = (
            f"{self.org_base_url}/{self.project_segment}/_testPlans/execute"
            f"?planId={plan['id']}&suiteId={suite['id']}"
        )
