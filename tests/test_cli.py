"""Tests for the wsldoctor CLI.

Commands run through typer's CliRunner against fake host capabilities
and a config file whose paths all live under tmp_path.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from wsldoctor import __version__
from wsldoctor.cli import app
from wsldoctor.core.errors import ExternalCallFailedError

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, config) -> Path:
    path = tmp_path / "doctor.yaml"
    path.write_text(yaml.safe_dump(config.model_dump(mode="json")))
    return path


@pytest.fixture
def invoke(config_file, caps):
    """Invoke the app with --config set and host capabilities faked."""

    def _invoke(*args: str, input: str | None = None):
        argv = ["--log-level", "ERROR", "--config", str(config_file), *args]
        with patch("wsldoctor.cli.helpers.host_capabilities", return_value=caps):
            return runner.invoke(app, argv, input=input)

    return _invoke


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("diagnose", "fix", "list", "recommend", "config"):
            assert command in result.stdout

    def test_missing_config_file_is_startup_error(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "diagnose"])
        assert result.exit_code == 4

    def test_invalid_config_is_startup_error(self, tmp_path, caps):
        bad = tmp_path / "bad.yaml"
        bad.write_text("thresholds:\n  disk_used_percent: 250\n")
        with patch("wsldoctor.cli.helpers.host_capabilities", return_value=caps):
            result = runner.invoke(app, ["--config", str(bad), "diagnose"])
        assert result.exit_code == 4


class TestDiagnose:
    def test_healthy_host_exits_0(self, invoke):
        result = invoke("diagnose")
        assert result.exit_code == 0
        assert "No problems detected" in result.stdout

    def test_warning_exits_1(self, invoke, caps):
        caps.host.environ["HTTP_PROXY"] = "http://proxy:3128"
        assert invoke("diagnose").exit_code == 1

    def test_failure_exits_2(self, invoke, caps):
        caps.network.resolve_error = ExternalCallFailedError("NXDOMAIN")
        result = invoke("diagnose")
        assert result.exit_code == 2
        assert "net.dns" in result.stdout

    def test_json_report(self, invoke, caps):
        caps.network.resolve_error = ExternalCallFailedError("NXDOMAIN")

        result = invoke("diagnose", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 2
        assert data["status"] == "failed"
        assert data["exit_code"] == 2
        probes = {p["id"]: p for p in data["probes"]}
        assert probes["net.dns"]["status"] == "failed"
        assert probes["system.memory"]["metric_unit"] == "MB"
        assert data["counts"]["failed"] == 1

    def test_quiet_prints_nothing(self, config_file, caps):
        with patch("wsldoctor.cli.helpers.host_capabilities", return_value=caps):
            result = runner.invoke(app, ["-q", "--config", str(config_file), "diagnose"])
        assert result.exit_code == 0
        assert result.stdout.strip() == ""


class TestFix:
    def test_requires_selection(self, invoke):
        assert invoke("fix").exit_code == 2

    def test_ids_and_all_are_exclusive(self, invoke):
        assert invoke("fix", "cache.npm", "--all").exit_code == 2

    def test_unknown_id(self, invoke, caps):
        result = invoke("fix", "shell.env", "no.such.fix", "--json")

        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["error_code"] == "unknown_remediation"
        assert data["unknown"] == "no.such.fix"
        assert caps.commands.calls == []

    def test_success(self, invoke):
        result = invoke("fix", "cache.npm", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 0
        assert data["attempts"][0]["id"] == "cache.npm"
        assert data["attempts"][0]["success"] is True

    def test_external_failure_exits_1(self, invoke, caps):
        del caps.commands.binaries["npm"]
        result = invoke("fix", "cache.npm")
        assert result.exit_code == 1
        assert "npm is not installed" in result.stdout

    def test_needs_root_exits_3_and_changes_nothing(self, invoke, config):
        resolv = config.network.resolv_conf
        before = resolv.read_text()

        result = invoke("fix", "dns.rewrite", "--yes", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 3
        assert data["attempts"][0]["error_kind"] == "insufficient_privilege"
        assert resolv.read_text() == before

    def test_privilege_beats_other_failures(self, invoke, caps):
        del caps.commands.binaries["npm"]
        assert invoke("fix", "cache.npm", "cache.drop").exit_code == 3

    def test_as_root(self, invoke, caps, config):
        caps.privilege.elevated = True

        result = invoke("fix", "dns.rewrite", "--yes", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 0
        assert "nameserver 8.8.8.8" in config.network.resolv_conf.read_text()
        assert data["comparisons"][0]["probe"] == "net.dns"
        assert len(data["attempts"][0]["backup_paths"]) == 1

    def test_prompt_declined(self, invoke, config):
        cache = config.cli.cache_dirs[0]
        cache.mkdir(parents=True)

        result = invoke("fix", "cli.cache.clear", input="n\n")

        assert result.exit_code == 0
        assert cache.exists()
        assert "Declined" in result.stdout

    def test_prompt_confirmed(self, invoke, config):
        cache = config.cli.cache_dirs[0]
        cache.mkdir(parents=True)

        result = invoke("fix", "cli.cache.clear", input="y\n")

        assert result.exit_code == 0
        assert not cache.exists()

    def test_json_without_yes_declines_destructive(self, invoke, config):
        cache = config.cli.cache_dirs[0]
        cache.mkdir(parents=True)

        result = invoke("fix", "cli.cache.clear", "shell.env", "--json")

        data = json.loads(result.stdout)
        assert data["declined"] == ["cli.cache.clear"]
        assert [a["id"] for a in data["attempts"]] == ["shell.env"]
        assert cache.exists()

    def test_dry_run_all(self, invoke, caps, config):
        before = config.network.resolv_conf.read_text()

        result = invoke("fix", "--all", "--dry-run", "--yes", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 0
        assert data["dry_run"] is True
        assert data["attempts"] == []
        assert [p["id"] for p in data["previews"]][:2] == ["dns.rewrite", "cli.kill"]
        assert ("npm", "cache", "clean", "--force") not in caps.commands.calls
        assert config.network.resolv_conf.read_text() == before


class TestList:
    def test_json(self, invoke):
        result = invoke("list", "--json")

        data = json.loads(result.stdout)
        assert result.exit_code == 0
        assert data["probes"][0]["id"] == "wsl.kernel"
        remediations = {r["id"]: r for r in data["remediations"]}
        assert remediations["dns.rewrite"]["requires_elevated_privilege"] is True
        assert remediations["dns.rewrite"]["related_probes"] == ["net.dns"]

    def test_table(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "Available remediations" in result.stdout


class TestRecommend:
    def test_json(self, invoke):
        result = invoke("recommend", "--json")

        data = json.loads(result.stdout)
        assert data["wsl2"]["memory"] == "8GB"
        assert data["wsl2"]["networkingMode"] == "mirrored"

    def test_ini_output(self, invoke):
        result = invoke("recommend")
        assert result.exit_code == 0
        assert "[wsl2]" in result.stdout
        assert "memory=8GB" in result.stdout


class TestConfigCommands:
    def test_init_creates_file(self, tmp_path):
        target = tmp_path / "new" / "config.yaml"

        result = runner.invoke(
            app, ["--config", str(target), "config", "init", "--wslconfig", "/mnt/c/Users/me/.wslconfig"]
        )

        assert result.exit_code == 0
        data = yaml.safe_load(target.read_text())
        assert data["wslconfig"]["path"] == "/mnt/c/Users/me/.wslconfig"
        assert data["thresholds"]["low_memory_mb"] == 500

    def test_init_refuses_to_overwrite(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "config", "init"])
        assert result.exit_code == 1

    def test_init_force(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "config", "init", "--force"])
        assert result.exit_code == 0
        assert yaml.safe_load(config_file.read_text())["wslconfig"]["path"] is None

    def test_path(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "config", "path"])
        assert result.exit_code == 0
        assert "exists" in result.stdout

    def test_check_valid(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "config", "check"])
        assert result.exit_code == 0

    def test_check_invalid(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("timeouts:\n  probe_seconds: -1\n")
        result = runner.invoke(app, ["--config", str(bad), "config", "check"])
        assert result.exit_code == 1

    def test_show(self, config_file):
        result = runner.invoke(app, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == 0
        assert "thresholds.low_memory_mb" in result.stdout
