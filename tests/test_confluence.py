"""Tests for Confluence template fetching and report publishing."""

import dataclasses
from unittest.mock import MagicMock

import pytest

from qa_report.confluence import (
    ConfluenceClient,
    ConfluencePageSummary,
    ConfluenceTemplate,
    compute_report_title,
    create_report_page,
    fetch_and_cache_template,
    find_existing_report_page,
    sync_report_to_confluence,
)
from qa_report.exceptions import ConfigError, ResponseFormatError


def _template_page(**overrides):
    page = {
        "id": "1001",
        "title": "QA Report {sprint}",
        "body": {"storage": {"value": "<table><tr><td>{id}</td></tr></table>"}},
        "version": {"number": 4},
        "space": {"key": "QA"},
        "ancestors": [{"id": "10"}, {"id": "20"}],
    }
    page.update(overrides)
    return page


@pytest.fixture
def client():
    mock = MagicMock(spec=ConfluenceClient)
    mock.page_url.side_effect = lambda space, page_id: f"https://wiki/spaces/{space}/pages/{page_id}"
    return mock


@pytest.fixture
def template(tmp_path):
    return ConfluenceTemplate(
        content="<table></table>",
        version=4,
        title="QA Report",
        cached_file_path=tmp_path / "templates" / "confluence-template.html",
        space_key="QA",
        parent_page_id="20",
    )


class TestFetchTemplate:
    """Test template fetching and caching."""

    def test_fetch_and_cache(self, client, settings, tmp_path):
        """Test template fields are read and the HTML is cached locally."""
        client.get_page.return_value = _template_page()

        template = fetch_and_cache_template(client, settings)

        client.get_page.assert_called_once_with("1001")
        assert template.title == "QA Report {sprint}"
        assert template.version == 4
        assert template.space_key == "QA"
        assert template.parent_page_id == "20"
        assert template.cached_file_path == tmp_path / "templates" / "confluence-template.html"
        assert template.cached_file_path.read_text(encoding="utf-8") == template.content

    def test_defaults(self, client, settings):
        """Test missing title, version and ancestors fall back to defaults."""
        client.get_page.return_value = _template_page(title=None, version=None, ancestors=[])

        template = fetch_and_cache_template(client, settings)

        assert template.title == "Confluence Template"
        assert template.version == 0
        assert template.parent_page_id is None

    def test_space_key_from_settings(self, client, settings):
        """Test the configured space key is used when the page has none."""
        client.get_page.return_value = _template_page(space=None)
        settings = dataclasses.replace(settings, confluence_space_key="OVERRIDE")

        assert fetch_and_cache_template(client, settings).space_key == "OVERRIDE"

    def test_missing_space_key(self, client, settings):
        """Test a template without any space key is a configuration error."""
        client.get_page.return_value = _template_page(space={})

        with pytest.raises(ConfigError) as exc_info:
            fetch_and_cache_template(client, settings)

        assert exc_info.value.config_key == "CONFLUENCE_SPACE_KEY"

    def test_missing_storage_body(self, client, settings):
        """Test a page without storage HTML is rejected."""
        client.get_page.return_value = _template_page(body={"view": {"value": "<p/>"}})

        with pytest.raises(ResponseFormatError, match="storage HTML"):
            fetch_and_cache_template(client, settings)


class TestComputeReportTitle:
    """Test report page titles."""

    @pytest.mark.parametrize("template_title, sprint, expected", [
        ("QA Report {sprint}", " Sprint 5 ", "QA Report Sprint 5"),
        ("QA Status", "Sprint 5", "QA Status - Sprint 5"),
        ("", "Sprint 5", "QA Report - Sprint 5"),
        (None, "Sprint 5", "QA Report - Sprint 5"),
        ("  QA Status  ", "", "QA Status"),
        ("{sprint} / {sprint}", "S1", "S1 / S1"),
    ])
    def test_titles(self, template_title, sprint, expected):
        """Test placeholder substitution and suffixing."""
        assert compute_report_title(template_title, sprint) == expected


class TestFindExistingPage:
    """Test report page lookup."""

    def test_case_insensitive_trimmed_match(self, client):
        """Test titles match after trimming and case folding."""
        client.search_pages.return_value = {"results": [
            {"id": "1", "title": "Something else"},
            {"id": "2", "title": "  qa report - sprint 5 ", "version": {"number": 3}},
        ]}

        page = find_existing_report_page(client, "QA", "QA Report - Sprint 5")

        assert page == ConfluencePageSummary(id="2", title="  qa report - sprint 5 ", version_number=3)

    def test_version_defaults_to_one(self, client):
        """Test a result without version info counts as version 1."""
        client.search_pages.return_value = {"results": [{"id": 5, "title": "T"}]}

        assert find_existing_report_page(client, "QA", "T").version_number == 1

    def test_no_match(self, client):
        """Test None when no result has the title."""
        client.search_pages.return_value = {"results": [None, {"title": "T"}]}

        assert find_existing_report_page(client, "QA", "T") is None


class TestCreateReportPage:
    """Test page creation."""

    def test_missing_id(self, client):
        """Test a create response without id is rejected."""
        client.create_page.return_value = {"title": "T"}

        with pytest.raises(ResponseFormatError, match="did not return an ID"):
            create_report_page(client, "QA", "T", "<p/>")

    def test_payload_without_parent(self, client):
        """Test no ancestors are sent without a parent page."""
        client.create_page.return_value = {"id": "77"}

        page = create_report_page(client, "QA", "T", "<p/>")

        payload = client.create_page.call_args.args[0]
        assert "ancestors" not in payload
        assert payload["body"]["storage"] == {"value": "<p/>", "representation": "storage"}
        assert page.version_number == 1


class TestSyncReport:
    """Test create-or-update publishing."""

    def test_creates_when_missing(self, client, settings, template):
        """Test a new page is created under the template's parent."""
        client.search_pages.return_value = {"results": []}
        client.create_page.return_value = {"id": "500", "title": "QA Report - Sprint 5"}

        result = sync_report_to_confluence(client, settings, "Sprint 5", "<p>r</p>", template)

        payload = client.create_page.call_args.args[0]
        assert payload["title"] == "QA Report - Sprint 5"
        assert payload["space"] == {"key": "QA"}
        assert payload["ancestors"] == [{"id": "20"}]
        assert result.id == "500"
        assert result.version_number == 1
        assert result.url == "https://wiki/spaces/QA/pages/500"
        assert result.parent_page_id == "20"
        client.update_page.assert_not_called()

    def test_updates_existing_as_next_version(self, client, settings, template):
        """Test an existing page is updated to version N+1."""
        client.search_pages.return_value = {"results": [
            {"id": "42", "title": "QA Report - Sprint 5", "version": {"number": 7}},
        ]}
        client.update_page.return_value = {"id": "42", "version": {"number": 8}}

        result = sync_report_to_confluence(client, settings, "Sprint 5", "<p>r</p>", template)

        page_id, payload = client.update_page.call_args.args
        assert page_id == "42"
        assert payload["version"] == {"number": 8}
        assert payload["id"] == "42"
        assert payload["body"]["storage"]["value"] == "<p>r</p>"
        assert result.version_number == 8
        client.create_page.assert_not_called()

    def test_parent_override(self, client, settings, template):
        """Test the configured parent page wins over the template's."""
        settings = dataclasses.replace(settings, confluence_parent_page_id="999")
        client.search_pages.return_value = {"results": []}
        client.create_page.return_value = {"id": "1"}

        result = sync_report_to_confluence(client, settings, "Sprint 5", "<p/>", template)

        assert client.create_page.call_args.args[0]["ancestors"] == [{"id": "999"}]
        assert result.parent_page_id == "999"
