"""
Tests for the command line interface
"""

import pytest
from typer.testing import CliRunner

from pyheaderblock.cli import EXIT_DENIED, app, parse_header_option


runner = CliRunner()


CONFIG = """
headerblock:
  requestHeaders:
    - header: User-Agent
      env: SpamBot
    - header: Cf-Ipcountry
  whitelistRequestHeaders:
    - header: Cf-Ipcountry
      env: "^(VN|DE)$"
  allowedIPs: []
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    return str(path)


def test_parse_header_option():
    assert parse_header_option("User-Agent: curl/8.0") == ("User-Agent", "curl/8.0")
    assert parse_header_option("X-Empty:") == ("X-Empty", "")
    with pytest.raises(ValueError):
        parse_header_option("no separator")


class TestCheck:
    """check command"""

    def test_allowed(self, config_file):
        result = runner.invoke(app, ["check", "-c", config_file, "-H", "User-Agent: curl/8.0"])

        assert result.exit_code == 0
        assert "allow" in result.output

    def test_blocked_header(self, config_file):
        result = runner.invoke(app, ["check", "-c", config_file, "-H", "User-Agent: SpamBot/2"])

        assert result.exit_code == EXIT_DENIED
        assert "deny" in result.output
        assert "User-Agent" in result.output

    def test_whitelisted_header(self, config_file):
        result = runner.invoke(app, ["check", "-c", config_file, "-H", "cf-ipcountry: DE"])

        assert result.exit_code == 0

    def test_not_whitelisted_header(self, config_file):
        result = runner.invoke(app, ["check", "-c", config_file, "-H", "Cf-Ipcountry: US"])

        assert result.exit_code == EXIT_DENIED

    def test_ip_not_allowed(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("headerblock:\n  allowedIPs: ['10.0.0.0/8']\n")

        denied = runner.invoke(app, ["check", "-c", str(path), "--ip", "192.0.2.1:5000"])
        allowed = runner.invoke(app, ["check", "-c", str(path), "--ip", "10.2.3.4"])

        assert denied.exit_code == EXIT_DENIED
        assert allowed.exit_code == 0

    def test_bad_header_option(self, config_file):
        result = runner.invoke(app, ["check", "-c", config_file, "-H", "garbage"])

        assert result.exit_code == 1

    def test_invalid_rule(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("headerblock:\n  requestHeaders:\n    - header: '(unclosed'\n")

        result = runner.invoke(app, ["check", "-c", str(path)])

        assert result.exit_code == 1

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["check", "-c", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestConfigCommands:
    """config validate / config show"""

    def test_validate_ok(self, config_file):
        result = runner.invoke(app, ["config", "validate", "-c", config_file])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_warns_about_skipped_ips(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("headerblock:\n  allowedIPs: ['10.0.0.0/8, nonsense']\n")

        result = runner.invoke(app, ["config", "validate", "-c", str(path)])

        assert result.exit_code == 0
        assert "nonsense" in result.output
        assert "Configuration is valid" in result.output

    def test_validate_reports_bad_regex(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("headerblock:\n  whitelistRequestHeaders:\n    - env: '*bad'\n")

        result = runner.invoke(app, ["config", "validate", "-c", str(path)])

        assert result.exit_code == 1
        assert "validation failed" in result.output

    def test_show_json(self, config_file):
        result = runner.invoke(app, ["config", "show", "-c", config_file, "-f", "json"])

        assert result.exit_code == 0
        assert "requestHeaders" in result.output
        assert "SpamBot" in result.output

    def test_show_yaml(self, config_file):
        result = runner.invoke(app, ["config", "show", "-c", config_file])

        assert result.exit_code == 0
        assert "whitelistRequestHeaders:" in result.output

    def test_show_summary(self, config_file):
        result = runner.invoke(app, ["config", "show", "-c", config_file, "-f", "summary"])

        assert result.exit_code == 0
        assert "block_rules" in result.output

    def test_show_unknown_format(self, config_file):
        result = runner.invoke(app, ["config", "show", "-c", config_file, "-f", "toml"])

        assert result.exit_code == 1
