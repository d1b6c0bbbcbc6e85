"""Tests for settings loading."""

from pathlib import Path

import pytest
import yaml

from qa_report.config import DEFAULT_TIMEOUT, DEFAULT_WORK_ITEM_TYPES, load_settings
from qa_report.exceptions import ConfigError


class TestRequiredSettings:
    """Test required values and their error messages."""

    def test_loads_from_environment(self, required_env, tmp_path):
        """Test all required values come from the environment."""
        settings = load_settings()

        assert settings.org_url == "https://dev.azure.com/contoso"
        assert settings.project == "Web Shop"
        assert settings.team == "QA Team"
        assert settings.pat == "pat-value"
        assert settings.confluence_page_id == "1001"
        assert settings.work_item_types == DEFAULT_WORK_ITEM_TYPES
        assert settings.request_timeout == DEFAULT_TIMEOUT
        assert settings.output_dir == Path.cwd()
        assert settings.table_title is None

    def test_missing_first_value_reported_with_example(self):
        """Test the first missing key is named, with an example value."""
        with pytest.raises(ConfigError) as exc_info:
            load_settings()

        assert exc_info.value.config_key == "AZDO_ORG_URL"
        assert "Missing env var AZDO_ORG_URL (e.g. https://dev.azure.com/your-org)" in str(exc_info.value)

    def test_blank_value_counts_as_missing(self, required_env, monkeypatch):
        """Test whitespace-only values are treated as unset."""
        monkeypatch.setenv("AZDO_TEAM", "   ")

        with pytest.raises(ConfigError) as exc_info:
            load_settings()

        assert exc_info.value.config_key == "AZDO_TEAM"

    def test_values_are_trimmed(self, required_env, monkeypatch):
        """Test surrounding whitespace is removed."""
        monkeypatch.setenv("AZDO_PROJECT", "  Web Shop  ")

        assert load_settings().project == "Web Shop"

    def test_secrets_hidden_from_repr(self, required_env):
        """Test the PAT and API token do not appear in repr()."""
        text = repr(load_settings())

        assert "pat-value" not in text
        assert "token-value" not in text


class TestEnvFile:
    """Test .env loading."""

    def test_env_file_in_working_directory(self, tmp_path):
        """Test ./.env is read when present."""
        lines = [
            "AZDO_ORG_URL=https://dev.azure.com/fromfile",
            "AZDO_PROJECT=Proj",
            "AZDO_TEAM=Team",
            "AZDO_PAT=secret",
            "CONFLUENCE_BASE_URL=https://wiki.example.com",
            "CONFLUENCE_PAGE_ID=42",
            "CONFLUENCE_EMAIL=me@example.com",
            "CONFLUENCE_API_TOKEN=tok",
        ]
        (tmp_path / ".env").write_text("\n".join(lines) + "\n")

        settings = load_settings()

        assert settings.org_url == "https://dev.azure.com/fromfile"
        assert settings.confluence_page_id == "42"

    def test_environment_wins_over_env_file(self, required_env, tmp_path):
        """Test variables already set are not overridden by .env."""
        (tmp_path / ".env").write_text("AZDO_PROJECT=Other\n")

        assert load_settings().project == "Web Shop"

    def test_explicit_env_file(self, tmp_path, required_env, monkeypatch):
        """Test --env-file style explicit path."""
        monkeypatch.delenv("AZDO_TEAM")
        env_file = tmp_path / "custom.env"
        env_file.write_text("AZDO_TEAM=Custom Team\n")

        assert load_settings(env_file=env_file).team == "Custom Team"


class TestYamlConfig:
    """Test the optional YAML config file."""

    def _write_config(self, tmp_path, data):
        path = tmp_path / "qa-report.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    def test_yaml_fills_non_secret_values(self, tmp_path, monkeypatch):
        """Test YAML supplies values while secrets stay env-only."""
        monkeypatch.setenv("AZDO_PAT", "pat-value")
        monkeypatch.setenv("CONFLUENCE_API_TOKEN", "token-value")
        path = self._write_config(tmp_path, {
            "azure_devops": {
                "org_url": "https://dev.azure.com/yaml",
                "project": "Yaml Project",
                "team": "Yaml Team",
            },
            "confluence": {
                "base_url": "https://wiki.example.com",
                "page_id": 555,
                "email": "yaml@example.com",
                "space_key": "QA",
            },
            "report": {
                "table_title": "Closed Items",
                "work_item_types": ["Bug", "Task"],
                "request_timeout": 12,
                "output_dir": str(tmp_path / "out"),
            },
        })

        settings = load_settings(config_path=path)

        assert settings.project == "Yaml Project"
        assert settings.confluence_page_id == "555"
        assert settings.confluence_space_key == "QA"
        assert settings.table_title == "Closed Items"
        assert settings.work_item_types == ("Bug", "Task")
        assert settings.request_timeout == 12.0
        assert settings.output_dir == tmp_path / "out"

    def test_yaml_cannot_supply_secrets(self, tmp_path, required_env, monkeypatch):
        """Test a PAT in YAML is ignored."""
        monkeypatch.delenv("AZDO_PAT")
        path = self._write_config(tmp_path, {"azure_devops": {"pat": "from-yaml"}})

        with pytest.raises(ConfigError) as exc_info:
            load_settings(config_path=path)

        assert exc_info.value.config_key == "AZDO_PAT"

    def test_environment_wins_over_yaml(self, tmp_path, required_env):
        """Test env vars take precedence over the YAML file."""
        path = self._write_config(tmp_path, {"azure_devops": {"project": "Yaml Project"}})

        assert load_settings(config_path=path).project == "Web Shop"

    def test_config_path_from_environment(self, tmp_path, required_env, monkeypatch):
        """Test QA_REPORT_CONFIG points at the YAML file."""
        path = self._write_config(tmp_path, {"report": {"table_title": "From Env Path"}})
        monkeypatch.setenv("QA_REPORT_CONFIG", str(path))

        assert load_settings().table_title == "From Env Path"

    def test_missing_config_file(self, tmp_path, required_env):
        """Test a configured but absent YAML file is an error."""
        with pytest.raises(ConfigError) as exc_info:
            load_settings(config_path=tmp_path / "nope.yaml")

        assert "Config file not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path, required_env):
        """Test malformed YAML raises ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("report: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config_path=path)

    def test_non_mapping_yaml(self, tmp_path, required_env):
        """Test a YAML list at the top level is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_settings(config_path=path)


class TestReportOptions:
    """Test optional report tuning values."""

    def test_work_item_types_from_env(self, required_env, monkeypatch):
        """Test a comma list overrides the default types."""
        monkeypatch.setenv("QA_REPORT_WORK_ITEM_TYPES", "Bug, User Story ,")

        assert load_settings().work_item_types == ("Bug", "User Story")

    @pytest.mark.parametrize("raw", ["abc", "0", "-5"])
    def test_invalid_timeout(self, required_env, monkeypatch, raw):
        """Test non-numeric and non-positive timeouts are rejected."""
        monkeypatch.setenv("QA_REPORT_TIMEOUT", raw)

        with pytest.raises(ConfigError) as exc_info:
            load_settings()

        assert exc_info.value.config_key == "QA_REPORT_TIMEOUT"

    def test_output_dir_from_env(self, required_env, monkeypatch, tmp_path):
        """Test QA_REPORT_OUTPUT_DIR sets the output directory."""
        monkeypatch.setenv("QA_REPORT_OUTPUT_DIR", str(tmp_path / "reports-root"))

        assert load_settings().output_dir == tmp_path / "reports-root"
