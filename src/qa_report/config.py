"""
QA Report Configuration

Loads settings from the environment (with .env support) and an optional YAML file.

Environment variables win over the YAML file. Secrets (the Azure DevOps PAT and the
Confluence API token) are only ever read from the environment.

Usage:
    from qa_report.config import load_settings

    settings = load_settings()
    settings.org_url
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from qa_report.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "QA_REPORT_CONFIG"
DEFAULT_WORK_ITEM_TYPES: Tuple[str, ...] = ("Bug", "Product Backlog Item")
DEFAULT_TIMEOUT = 30.0

# (attribute, env var, yaml key, example) in the order they are validated
REQUIRED_SETTINGS = [
    ("org_url", "AZDO_ORG_URL", "azure_devops.org_url", "https://dev.azure.com/your-org"),
    ("project", "AZDO_PROJECT", "azure_devops.project", None),
    ("team", "AZDO_TEAM", "azure_devops.team", None),
    ("pat", "AZDO_PAT", None, None),
    ("confluence_base_url", "CONFLUENCE_BASE_URL", "confluence.base_url", "https://your-company.atlassian.net/wiki"),
    ("confluence_page_id", "CONFLUENCE_PAGE_ID", "confluence.page_id", None),
    ("confluence_email", "CONFLUENCE_EMAIL", "confluence.email", None),
    ("confluence_api_token", "CONFLUENCE_API_TOKEN", None, None),
]

OPTIONAL_SETTINGS = [
    ("confluence_space_key", "CONFLUENCE_SPACE_KEY", "confluence.space_key"),
    ("confluence_parent_page_id", "CONFLUENCE_PARENT_PAGE_ID", "confluence.parent_page_id"),
    ("table_title", "QA_REPORT_TABLE_TITLE", "report.table_title"),
]


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one report run."""

    org_url: str
    project: str
    team: str
    pat: str = field(repr=False)
    confluence_base_url: str
    confluence_page_id: str
    confluence_email: str
    confluence_api_token: str = field(repr=False)
    confluence_space_key: Optional[str] = None
    confluence_parent_page_id: Optional[str] = None
    table_title: Optional[str] = None
    work_item_types: Tuple[str, ...] = DEFAULT_WORK_ITEM_TYPES
    output_dir: Path = field(default_factory=Path.cwd)
    request_timeout: float = DEFAULT_TIMEOUT


class SettingsLoader:
    """
    Resolves Settings from the environment and an optional YAML file.

    The .env file and the YAML file are each read at most once per loader.

    Attributes:
        config_path: Optional YAML config file
        env_file: .env file to load (defaults to ./.env)
        config: Parsed YAML content
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_file: Optional[Path] = None
    ):
        self.config_path = Path(config_path) if config_path else None
        self.env_file = Path(env_file) if env_file else None
        self.config: Dict[str, Any] = {}
        self._env_loaded = False
        self._file_loaded = False

    def _ensure_env_loaded(self) -> None:
        """Load the .env file once; a missing file is not an error."""
        if self._env_loaded:
            return

        env_path = self.env_file or Path.cwd() / ".env"
        if env_path.exists():
            try:
                load_dotenv(env_path, override=False)
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigError(f"Failed to load .env file: {e}", details=str(env_path))
            logger.debug(f"Loaded .env from {env_path}")

        self._env_loaded = True

    def _ensure_file_loaded(self) -> None:
        """Load the YAML config file once, if one is configured."""
        if self._file_loaded:
            return
        self._file_loaded = True

        if self.config_path is None and os.getenv(CONFIG_PATH_ENV):
            self.config_path = Path(os.environ[CONFIG_PATH_ENV])

        if self.config_path is None:
            return

        if not self.config_path.exists():
            raise ConfigError(
                f"Config file not found: {self.config_path}",
                config_key=CONFIG_PATH_ENV
            )

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}", details=str(e))
        except IOError as e:
            raise ConfigError(f"Cannot read {self.config_path}", details=str(e))

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")

        self.config = data
        logger.debug(f"Loaded config from {self.config_path}")

    def _get_nested(self, key: str) -> Any:
        """Get a nested YAML value using dot notation."""
        value: Any = self.config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return None
        return value

    def get(self, env_key: str, yaml_key: Optional[str] = None) -> Optional[str]:
        """Get a value from the environment, falling back to the YAML file.

        Args:
            env_key: Environment variable name
            yaml_key: Dot-separated YAML key, or None for environment-only values

        Returns:
            The trimmed value, or None when unset or blank.
        """
        value = os.getenv(env_key, "").strip()
        if value:
            return value

        if yaml_key:
            file_value = self._get_nested(yaml_key)
            if file_value is not None and str(file_value).strip():
                return str(file_value).strip()

        return None

    def _work_item_types(self) -> Tuple[str, ...]:
        raw_env = os.getenv("QA_REPORT_WORK_ITEM_TYPES", "").strip()
        if raw_env:
            types = [t.strip() for t in raw_env.split(",")]
        else:
            raw_file = self._get_nested("report.work_item_types")
            if raw_file is None:
                return DEFAULT_WORK_ITEM_TYPES
            if isinstance(raw_file, str):
                raw_file = raw_file.split(",")
            types = [str(t).strip() for t in raw_file]

        types = [t for t in types if t]
        return tuple(types) or DEFAULT_WORK_ITEM_TYPES

    def _timeout(self) -> float:
        raw = self.get("QA_REPORT_TIMEOUT", "report.request_timeout")
        if raw is None:
            return DEFAULT_TIMEOUT
        try:
            timeout = float(raw)
        except ValueError:
            raise ConfigError(
                f"Invalid request timeout: {raw!r}",
                config_key="QA_REPORT_TIMEOUT",
                remediation="Use a number of seconds, e.g. QA_REPORT_TIMEOUT=30"
            )
        if timeout <= 0:
            raise ConfigError(
                f"Request timeout must be positive, got {raw!r}",
                config_key="QA_REPORT_TIMEOUT"
            )
        return timeout

    def load(self) -> Settings:
        """Resolve and validate all settings.

        Raises:
            ConfigError: If a required value is missing or a value is invalid.
        """
        self._ensure_env_loaded()
        self._ensure_file_loaded()

        values: Dict[str, Any] = {}

        for attr, env_key, yaml_key, example in REQUIRED_SETTINGS:
            value = self.get(env_key, yaml_key)
            if not value:
                message = f"Missing env var {env_key}"
                if example:
                    message += f" (e.g. {example})"
                raise ConfigError(message, config_key=env_key)
            values[attr] = value

        for attr, env_key, yaml_key in OPTIONAL_SETTINGS:
            values[attr] = self.get(env_key, yaml_key)

        output_dir = self.get("QA_REPORT_OUTPUT_DIR", "report.output_dir")
        values["output_dir"] = Path(output_dir).expanduser() if output_dir else Path.cwd()
        values["work_item_types"] = self._work_item_types()
        values["request_timeout"] = self._timeout()

        return Settings(**values)


def load_settings(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None
) -> Settings:
    """Load settings for a report run.

    Args:
        config_path: Optional YAML config file (falls back to $QA_REPORT_CONFIG)
        env_file: Optional .env file (defaults to ./.env)

    Returns:
        Validated Settings
    """
    return SettingsLoader(config_path=config_path, env_file=env_file).load()
