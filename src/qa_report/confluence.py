"""
Confluence Publishing

Fetches the report template page and creates or updates the sprint's report page.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, urljoin

from qa_report.config import Settings
from qa_report.exceptions import ConfigError, ResponseFormatError
from qa_report.rest import DEFAULT_TIMEOUT, RestClient
from qa_report.utils import write_file_if_changed

logger = logging.getLogger(__name__)

TEMPLATE_CACHE_RELATIVE = Path("templates") / "confluence-template.html"
DEFAULT_TEMPLATE_TITLE = "Confluence Template"
DEFAULT_REPORT_TITLE = "QA Report"


@dataclass
class ConfluenceTemplate:
    """The template page the report is rendered from."""
    content: str
    version: int
    title: str
    cached_file_path: Path
    space_key: str
    parent_page_id: Optional[str] = None


@dataclass
class ConfluencePageSummary:
    """Identity and version of a Confluence page."""
    id: str
    title: str
    version_number: int


@dataclass
class ConfluencePageResult:
    """The published report page."""
    id: str
    title: str
    version_number: int
    url: str
    space_key: str
    parent_page_id: Optional[str] = None


class ConfluenceClient(RestClient):
    """Client for the Confluence content REST API."""

    service = "Confluence"

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """Initialize Confluence client.

        Args:
            base_url: Confluence base URL, e.g. https://your-company.atlassian.net/wiki
            email: Account email for auth
            api_token: API token
            timeout: Per-request timeout in seconds
        """
        super().__init__(email, api_token, timeout)
        self.base_url = base_url.rstrip("/")

    def _url(self, relative_path: str) -> str:
        return urljoin(f"{self.base_url}/", relative_path)

    def _json_call(
        self,
        method: str,
        relative_path: str,
        what: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"params": params}
        if body is not None:
            kwargs["data"] = json.dumps(body).encode("utf-8")
            kwargs["headers"] = {"Content-Type": "application/json; charset=utf-8"}

        response = self._request(method, self._url(relative_path), **kwargs)
        payload = self._parse_json(response, what)
        if not isinstance(payload, dict):
            raise ResponseFormatError(f"Unexpected Confluence {what} shape.", service=self.service)
        return payload

    def get_page(self, page_id: str) -> Dict[str, Any]:
        """Fetch a page with body, version, space and ancestors expanded."""
        return self._json_call(
            "GET",
            f"rest/api/content/{quote(str(page_id), safe='')}",
            "response",
            params={"expand": "body.storage,version,space,ancestors"}
        )

    def search_pages(self, space_key: str, title: str) -> Dict[str, Any]:
        """Search a space for pages with the given title."""
        return self._json_call(
            "GET",
            "rest/api/content",
            "search response",
            params={"spaceKey": space_key, "title": title, "expand": "version"}
        )

    def create_page(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a page."""
        return self._json_call("POST", "rest/api/content", "create response", body=payload)

    def update_page(self, page_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a page's content."""
        return self._json_call(
            "PUT",
            f"rest/api/content/{quote(str(page_id), safe='')}",
            "update response",
            body=payload
        )

    def page_url(self, space_key: str, page_id: str) -> str:
        """Browser URL for a page."""
        return f"{self.base_url}/spaces/{quote(space_key, safe='')}/pages/{quote(str(page_id), safe='')}"


def fetch_and_cache_template(
    client: ConfluenceClient,
    settings: Settings
) -> ConfluenceTemplate:
    """Fetch the template page and cache its storage HTML locally.

    Raises:
        ResponseFormatError: If the page has no storage content
        ConfigError: If no space key can be determined
    """
    payload = client.get_page(settings.confluence_page_id)

    content = ((payload.get("body") or {}).get("storage") or {}).get("value")
    if not isinstance(content, str):
        raise ResponseFormatError(
            "Confluence template response did not include storage HTML content.",
            service="Confluence"
        )

    version = (payload.get("version") or {}).get("number") or 0
    title = payload.get("title") or DEFAULT_TEMPLATE_TITLE
    space_key = (payload.get("space") or {}).get("key") or settings.confluence_space_key
    if not space_key:
        raise ConfigError(
            "Unable to determine Confluence space key from template.",
            config_key="CONFLUENCE_SPACE_KEY"
        )

    ancestors = payload.get("ancestors") or []
    parent_page_id = (ancestors[-1] or {}).get("id") if ancestors else None

    cache_path = Path(settings.output_dir) / TEMPLATE_CACHE_RELATIVE
    write_file_if_changed(cache_path, content)

    try:
        shown_path = os.path.relpath(cache_path)
    except ValueError:
        shown_path = str(cache_path)
    logger.info(f'Fetched Confluence template "{title}" (version {version}). Cached at {shown_path}.')

    return ConfluenceTemplate(
        content=content,
        version=int(version),
        title=title,
        cached_file_path=cache_path,
        space_key=space_key,
        parent_page_id=str(parent_page_id) if parent_page_id else None,
    )


def compute_report_title(template_title: Optional[str], sprint_label: str) -> str:
    """Title of the report page for a sprint.

    The sprint replaces a {sprint} placeholder in the template title, or is
    appended as " - <sprint>" when there is none.
    """
    base_title = (template_title or "").strip() or DEFAULT_REPORT_TITLE
    sprint = (sprint_label or "").strip()
    if not sprint:
        return base_title
    if "{sprint}" in base_title:
        return base_title.replace("{sprint}", sprint)
    return f"{base_title} - {sprint}"


def find_existing_report_page(
    client: ConfluenceClient,
    space_key: str,
    title: str
) -> Optional[ConfluencePageSummary]:
    """Find a page in the space whose title matches (trimmed, case-insensitive)."""
    payload = client.search_pages(space_key, title)
    wanted = title.strip().casefold()

    for result in payload.get("results") or []:
        if not result or not result.get("id") or not result.get("title"):
            continue
        if result["title"].strip().casefold() == wanted:
            return ConfluencePageSummary(
                id=str(result["id"]),
                title=result["title"],
                version_number=int((result.get("version") or {}).get("number") or 1),
            )

    return None


def _page_payload(
    space_key: str,
    title: str,
    html: str,
    parent_page_id: Optional[str]
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "type": "page",
        "title": title,
        "space": {"key": space_key},
        "body": {
            "storage": {
                "value": html,
                "representation": "storage",
            },
        },
    }
    if parent_page_id:
        payload["ancestors"] = [{"id": parent_page_id}]
    return payload


def create_report_page(
    client: ConfluenceClient,
    space_key: str,
    title: str,
    html: str,
    parent_page_id: Optional[str] = None
) -> ConfluencePageSummary:
    """Create the report page.

    Raises:
        ResponseFormatError: If Confluence does not return the new page id
    """
    response = client.create_page(_page_payload(space_key, title, html, parent_page_id))

    if not response.get("id"):
        raise ResponseFormatError(
            "Confluence did not return an ID for the created page.",
            service="Confluence"
        )

    return ConfluencePageSummary(
        id=str(response["id"]),
        title=response.get("title") or title,
        version_number=int((response.get("version") or {}).get("number") or 1),
    )


def update_report_page(
    client: ConfluenceClient,
    existing: ConfluencePageSummary,
    space_key: str,
    title: str,
    html: str,
    parent_page_id: Optional[str] = None
) -> ConfluencePageSummary:
    """Update the report page in place as version N+1."""
    next_version = existing.version_number + 1
    payload = _page_payload(space_key, title, html, parent_page_id)
    payload["id"] = existing.id
    payload["version"] = {"number": next_version}

    response = client.update_page(existing.id, payload)

    return ConfluencePageSummary(
        id=existing.id,
        title=response.get("title") or title,
        version_number=int((response.get("version") or {}).get("number") or next_version),
    )


def sync_report_to_confluence(
    client: ConfluenceClient,
    settings: Settings,
    sprint_label: str,
    html: str,
    template: ConfluenceTemplate
) -> ConfluencePageResult:
    """Create or update the sprint's report page.

    Args:
        client: Confluence client
        settings: Run settings (parent page override)
        sprint_label: Sprint name
        html: Rendered report
        template: Template the report was rendered from

    Returns:
        ConfluencePageResult for the published page
    """
    space_key = template.space_key
    parent_page_id = settings.confluence_parent_page_id or template.parent_page_id
    title = compute_report_title(template.title, sprint_label)

    existing = find_existing_report_page(client, space_key, title)
    if existing:
        page = update_report_page(client, existing, space_key, title, html, parent_page_id)
        logger.info(f'Updated Confluence page "{page.title}" (ID {page.id}) to version {page.version_number}.')
    else:
        page = create_report_page(client, space_key, title, html, parent_page_id)
        logger.info(f'Created Confluence page "{page.title}" (ID {page.id}).')

    return ConfluencePageResult(
        id=page.id,
        title=page.title,
        version_number=page.version_number,
        url=client.page_url(space_key, page.id),
        space_key=space_key,
        parent_page_id=parent_page_id,
    )
