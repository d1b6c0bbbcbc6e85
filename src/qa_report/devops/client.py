"""
Azure DevOps REST Client

Thin wrapper over the Work, Work Item Tracking and Test Plan REST APIs.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests

from qa_report.exceptions import ResponseFormatError
from qa_report.rest import DEFAULT_TIMEOUT, RestClient

API_VERSION = "7.0"
CONTINUATION_HEADER = "x-ms-continuationtoken"


class AzureDevOpsClient(RestClient):
    """Client for one Azure DevOps project and team."""

    service = "Azure DevOps"

    def __init__(
        self,
        org_url: str,
        project: str,
        team: str,
        pat: str,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """Initialize Azure DevOps client.

        Args:
            org_url: Organization URL, e.g. https://dev.azure.com/your-org
            project: Project name
            team: Team name used for iteration settings
            pat: Personal access token
            timeout: Per-request timeout in seconds
        """
        super().__init__("", pat, timeout)
        self.org_url = org_url.rstrip("/")
        self.project = project
        self.team = team

    def _project_url(self, path: str) -> str:
        return f"{self.org_url}/{quote(self.project, safe='')}/_apis/{path}"

    def _team_url(self, path: str) -> str:
        return (
            f"{self.org_url}/{quote(self.project, safe='')}/"
            f"{quote(self.team, safe='')}/_apis/{path}"
        )

    def _call(
        self,
        method: str,
        url: str,
        what: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None
    ) -> Tuple[Any, requests.Response]:
        query = dict(params or {})
        query["api-version"] = API_VERSION
        response = self._request(method, url, params=query, json=body)
        return self._parse_json(response, what), response

    def _value_list(self, data: Any, what: str) -> List[Dict[str, Any]]:
        """Extract the 'value' array of a list response."""
        if not isinstance(data, dict):
            raise ResponseFormatError(f"Unexpected {what} response shape.", service=self.service)
        value = data.get("value", [])
        if not isinstance(value, list):
            raise ResponseFormatError(f"Unexpected {what} response shape.", service=self.service)
        return value

    @staticmethod
    def _continuation_token(response: requests.Response) -> Optional[str]:
        return response.headers.get(CONTINUATION_HEADER) or None

    def get_team_iterations(self, timeframe: Optional[str] = None) -> List[Dict[str, Any]]:
        """List the team's iterations, optionally scoped to past/current/future."""
        params = {"$timeframe": timeframe} if timeframe else None
        data, _ = self._call(
            "GET",
            self._team_url("work/teamsettings/iterations"),
            "team iterations",
            params=params
        )
        return self._value_list(data, "team iterations")

    def query_by_wiql(self, query: str) -> List[Dict[str, Any]]:
        """Run a WIQL query and return its work item references."""
        data, _ = self._call(
            "POST",
            self._project_url("wit/wiql"),
            "WIQL query",
            params={"timePrecision": "true"},
            body={"query": query}
        )
        if not isinstance(data, dict):
            raise ResponseFormatError("Unexpected WIQL query response shape.", service=self.service)
        return data.get("workItems") or []

    def get_work_items(self, ids: Sequence[int], fields: Sequence[str]) -> List[Dict[str, Any]]:
        """Fetch work item details, omitting items that no longer exist."""
        data, _ = self._call(
            "POST",
            self._project_url("wit/workitemsbatch"),
            "work items batch",
            body={"ids": list(ids), "fields": list(fields), "errorPolicy": "omit"}
        )
        return [item for item in self._value_list(data, "work items batch") if item]

    def get_test_plans(
        self,
        continuation_token: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Get one page of test plans.

        Returns:
            Tuple of (plans, next continuation token or None)
        """
        params = {"continuationToken": continuation_token} if continuation_token else None
        data, response = self._call(
            "GET",
            self._project_url("testplan/plans"),
            "test plans",
            params=params
        )
        return self._value_list(data, "test plans"), self._continuation_token(response)

    def get_test_suites_for_plan(
        self,
        plan_id: int,
        continuation_token: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Get one page of a plan's suite tree, with children expanded.

        Returns:
            Tuple of (root suites, next continuation token or None)
        """
        params = {"expand": "children", "asTreeView": "true"}
        if continuation_token:
            params["continuationToken"] = continuation_token
        data, response = self._call(
            "GET",
            self._project_url(f"testplan/Plans/{plan_id}/suites"),
            "test suites",
            params=params
        )
        return self._value_list(data, "test suites"), self._continuation_token(response)
