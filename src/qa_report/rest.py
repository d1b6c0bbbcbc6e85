"""
QA Report REST Client Base

Shared session handling and error mapping for the Azure DevOps and Confluence clients.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import requests
from requests.auth import HTTPBasicAuth

from qa_report.exceptions import (
    CredentialError,
    NetworkError,
    ResponseFormatError,
    UpstreamRequestError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RestClient:
    """Base class for JSON REST clients authenticated with HTTP basic auth."""

    service = "Service"

    def __init__(
        self,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """Initialize the client.

        Args:
            username: Basic auth user (may be empty)
            password: Basic auth password or token
            timeout: Per-request timeout in seconds
        """
        self._auth = HTTPBasicAuth(username, password)
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        """Get or create requests session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.auth = self._auth
            self._session.headers.update({"Accept": "application/json; charset=utf-8"})
        return self._session

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request and map failures to QA report errors.

        Raises:
            NetworkError: On timeouts, connection failures and unsendable requests
            CredentialError: On 401/403
            UpstreamRequestError: On any other non-2xx status
        """
        session = self._get_session()
        logger.debug(f"{method} {url}")

        try:
            response = session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise NetworkError(f"{self.service} request timed out", endpoint=url, details=str(e))
        except requests.ConnectionError as e:
            raise NetworkError(f"Cannot connect to {self.service}", endpoint=url, details=str(e))
        except requests.RequestException as e:
            raise NetworkError(
                f"{self.service} request could not be sent",
                endpoint=url,
                remediation=f"Check the configured {self.service} URL includes the https:// scheme and host",
                details=str(e)
            )

        if response.status_code in (401, 403):
            raise CredentialError(
                f"{self.service} rejected the credentials ({response.status_code} {response.reason})",
                service=self.service,
                details=response.text
            )

        if not response.ok:
            raise UpstreamRequestError(
                f"{self.service} request failed ({response.status_code} {response.reason}) "
                f"for {urlparse(url).path}: {response.text}",
                service=self.service,
                status_code=response.status_code,
                body=response.text
            )

        return response

    def _parse_json(self, response: requests.Response, what: str) -> Any:
        """Decode a JSON body.

        Raises:
            ResponseFormatError: If the body is not valid JSON
        """
        try:
            return response.json()
        except ValueError:
            raise ResponseFormatError(
                f"Failed to parse {self.service} {what} as JSON.",
                service=self.service
            )
