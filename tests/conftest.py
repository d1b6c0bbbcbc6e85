"""Shared fixtures for QA report tests."""

import json
import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from qa_report.config import CONFIG_PATH_ENV, OPTIONAL_SETTINGS, REQUIRED_SETTINGS, Settings
from qa_report.devops.iterations import IterationWindow

CONFIG_ENV_VARS = (
    [env for _, env, _, _ in REQUIRED_SETTINGS]
    + [env for _, env, _ in OPTIONAL_SETTINGS]
    + [CONFIG_PATH_ENV, "QA_REPORT_OUTPUT_DIR", "QA_REPORT_WORK_ITEM_TYPES", "QA_REPORT_TIMEOUT"]
)

REQUIRED_ENV = {
    "AZDO_ORG_URL": "https://dev.azure.com/contoso",
    "AZDO_PROJECT": "Web Shop",
    "AZDO_TEAM": "QA Team",
    "AZDO_PAT": "pat-value",
    "CONFLUENCE_BASE_URL": "https://contoso.atlassian.net/wiki",
    "CONFLUENCE_PAGE_ID": "1001",
    "CONFLUENCE_EMAIL": "qa@contoso.com",
    "CONFLUENCE_API_TOKEN": "token-value",
}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Clear configuration variables and run each test in an empty directory."""
    for key in CONFIG_ENV_VARS:
        # setenv first so monkeypatch also undoes anything load_dotenv sets
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers added by setup_logging so they do not outlive the test."""
    yield
    logger = logging.getLogger("qa_report")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


@pytest.fixture
def required_env(monkeypatch):
    """Set every required configuration variable."""
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    return dict(REQUIRED_ENV)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at the test's temporary directory."""
    return Settings(
        org_url="https://dev.azure.com/contoso",
        project="Web Shop",
        team="QA Team",
        pat="pat-value",
        confluence_base_url="https://contoso.atlassian.net/wiki",
        confluence_page_id="1001",
        confluence_email="qa@contoso.com",
        confluence_api_token="token-value",
        output_dir=tmp_path,
    )


@pytest.fixture
def sprint_windows():
    """Three consecutive two-week sprints in January/February 2024."""

    def utc(*args) -> datetime:
        return datetime(*args, tzinfo=timezone.utc)

    return [
        IterationWindow(start=utc(2024, 1, 1), finish=utc(2024, 1, 14), name="Sprint 1",
                        path="Web Shop\\Release 1\\Sprint 1", id="it-1"),
        IterationWindow(start=utc(2024, 1, 15), finish=utc(2024, 1, 28), name="Sprint 2",
                        path="Web Shop\\Release 1\\Sprint 2", id="it-2"),
        IterationWindow(start=utc(2024, 1, 29), finish=utc(2024, 2, 11), name="Sprint 3",
                        path="Web Shop\\Release 2\\Sprint 3", id="it-3"),
    ]


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""

    def _make(status_code=200, json_data=None, text=None, headers=None, reason="OK"):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.reason = reason
        response.headers = CaseInsensitiveDict(headers or {})
        if json_data is not None:
            response.json.return_value = json_data
            response.text = text if text is not None else json.dumps(json_data)
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
            response.text = text or ""
        return response

    return _make
