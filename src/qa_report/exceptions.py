"""
QA Report Exceptions

Custom exception types carrying remediation hints and CLI exit codes.
"""

from typing import Optional


class QAReportError(Exception):
    """Base exception for all QA report errors."""

    def __init__(
        self,
        message: str,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            remediation: Suggested fix for the user
            details: Technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.remediation = remediation
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.remediation:
            parts.append(f"To fix: {self.remediation}")
        return "\n".join(parts)


class ConfigError(QAReportError):
    """Missing or invalid configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.config_key = config_key
        if not remediation and config_key:
            remediation = f"Set {config_key} in your environment, .env file or config YAML"
        super().__init__(message, remediation, details)


class CredentialError(QAReportError):
    """Authentication or authorization failures (401/403)."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.service = service
        if not remediation and service:
            remediation = f"Verify your {service} credentials are correct and have the required permissions"
        super().__init__(message, remediation, details)


class UpstreamRequestError(QAReportError):
    """A service answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        remediation: Optional[str] = None
    ):
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(message, remediation, details=None)


class NetworkError(QAReportError):
    """Connection failures and timeouts."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.endpoint = endpoint
        if not remediation:
            remediation = "Check your network connection and the configured service URL, then try again."
        super().__init__(message, remediation, details)


class ResponseFormatError(QAReportError):
    """A response could not be parsed or lacked expected fields."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.service = service
        super().__init__(message, remediation, details)


class SprintNotFoundError(QAReportError):
    """No iteration matches the requested sprint name."""

    def __init__(
        self,
        query: str,
        remediation: Optional[str] = None
    ):
        self.query = query
        if not remediation:
            remediation = "Check the sprint name, path or id configured for the team in Azure DevOps"
        super().__init__(
            f'Unable to find an iteration matching sprint "{query}".',
            remediation
        )


class TemplateError(QAReportError):
    """The report template does not have the expected structure."""
    pass


# Error code mapping for CLI exit codes
ERROR_CODES = {
    ConfigError: 10,
    CredentialError: 11,
    UpstreamRequestError: 12,
    NetworkError: 13,
    ResponseFormatError: 14,
    SprintNotFoundError: 15,
    TemplateError: 16,
    QAReportError: 1,
}


def get_error_code(error: Exception) -> int:
    """Get the exit code for an error type."""
    for error_type, code in ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return 1
