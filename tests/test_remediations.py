"""Tests for the built-in remediations.

Commands, processes and services are fakes; file rewrites run against
tmp_path through the real LocalFileStore, so backups are checked on disk.
"""

import os
from pathlib import Path

import pytest

from wsldoctor.capabilities import CommandResult, ProcessInfo
from wsldoctor.capabilities.files import BACKUP_MARKER, parse_sections
from wsldoctor.core.errors import (
    ConfigWriteFailedError,
    ErrorKind,
    ExternalCallFailedError,
    InsufficientPrivilegeError,
)
from wsldoctor.remediations.cache import (
    CleanNpmCacheRemediation,
    CleanStaleTempRemediation,
    ClearCliCacheRemediation,
    DropPageCacheRemediation,
)
from wsldoctor.remediations.config_files import (
    AppendShellEnvRemediation,
    ResetCliConfigRemediation,
    WriteWslConfigRemediation,
    recommended_wslconfig,
    render_env_block,
)
from wsldoctor.remediations.install import ReinstallCliRemediation
from wsldoctor.remediations.network import (
    RESOLV_CONF_HEADER,
    RewriteResolvConfRemediation,
    render_resolv_conf,
)
from wsldoctor.remediations.processes import (
    TerminateCliProcessesRemediation,
    TerminateOrphanNodeRemediation,
)
from wsldoctor.remediations.services import RestartServiceRemediation


def backups_of(path: Path) -> list[Path]:
    return sorted(path.parent.glob(f"{path.name}{BACKUP_MARKER}*"))


def make_stale(path: Path, days: int) -> None:
    path.write_text("x")
    old = path.stat().st_mtime - days * 86400
    os.utime(path, (old, old))


# =============================================================================
# dns.rewrite
# =============================================================================


class TestRewriteResolvConf:
    def test_requires_root_and_changes_nothing(self, caps, config):
        resolv = config.network.resolv_conf
        original = resolv.read_text()

        with pytest.raises(InsufficientPrivilegeError):
            RewriteResolvConfRemediation(caps, config).apply()

        assert resolv.read_text() == original
        assert caps.commands.calls == []
        assert backups_of(resolv) == []

    def test_writes_nameservers_and_keeps_backup(self, root_caps, config):
        resolv = config.network.resolv_conf

        result = RewriteResolvConfRemediation(root_caps, config).apply()

        assert result.success is True
        assert resolv.read_text() == render_resolv_conf(["8.8.8.8", "8.8.4.4", "1.1.1.1"])
        assert result.modified_files == [resolv]
        assert len(result.backup_paths) == 1
        assert result.backup_paths[0].read_text() == "nameserver 172.20.0.1\n"

    def test_unlocks_then_locks(self, root_caps, config):
        path = str(config.network.resolv_conf)

        RewriteResolvConfRemediation(root_caps, config).apply()

        assert root_caps.commands.calls == [
            ("chattr", "-i", path),
            ("chattr", "+i", path),
        ]

    def test_lock_failure_is_reported_but_not_fatal(self, root_caps, config):
        path = str(config.network.resolv_conf)
        root_caps.commands.responses[("chattr", "+i", path)] = CommandResult(
            ("chattr", "+i", path), 1, stderr="Operation not supported"
        )

        result = RewriteResolvConfRemediation(root_caps, config).apply()

        assert result.success is True
        assert "could not lock" in result.message

    def test_without_lock(self, root_caps, config):
        config.network.lock_resolv_conf = False

        RewriteResolvConfRemediation(root_caps, config).apply()

        assert root_caps.commands.calls == []

    def test_render(self):
        assert render_resolv_conf(["1.1.1.1"]) == RESOLV_CONF_HEADER + "nameserver 1.1.1.1\n"


# =============================================================================
# cli.kill / node.kill
# =============================================================================


class TestTerminateProcesses:
    def test_cli_kill_matches_exact_name_only(self, caps, config):
        caps.processes.processes = [
            ProcessInfo(100, 1, "claude"),
            ProcessInfo(101, 50, "claude"),
            ProcessInfo(102, 1, "claude-helper"),
            ProcessInfo(103, 1, "vim", cmdline=("vim", "claude.md")),
        ]

        result = TerminateCliProcessesRemediation(caps, config).apply()

        assert caps.processes.terminated == [100, 101]
        assert result.terminated_pids == [100, 101]
        assert [p.pid for p in caps.processes.list_processes()] == [102, 103]

    def test_never_terminates_itself(self, caps, config):
        caps.processes.processes = [ProcessInfo(os.getpid(), 1, "claude")]

        result = TerminateCliProcessesRemediation(caps, config).apply()

        assert caps.processes.terminated == []
        assert result.message == "No CLI processes found"

    def test_node_kill_targets_orphans_only(self, caps, config):
        caps.processes.processes = [
            ProcessInfo(200, 1, "node"),
            ProcessInfo(201, 4321, "node"),
            ProcessInfo(202, 1, "nodejs-helper"),
        ]

        result = TerminateOrphanNodeRemediation(caps, config).apply()

        assert caps.processes.terminated == [200]
        assert result.success is True

    def test_partial_termination_reports_both_sides(self, caps, config):
        caps.processes.processes = [
            ProcessInfo(100, 1, "claude"),
            ProcessInfo(101, 1, "claude"),
        ]
        caps.processes.denied = {101}

        result = TerminateCliProcessesRemediation(caps, config).apply()

        assert result.success is False
        assert result.error_kind == ErrorKind.EXTERNAL_CALL_FAILED
        assert result.terminated_pids == [100]
        assert "101" in result.error_detail
        assert result.message == "Terminated 1 CLI processes, could not terminate 1"

    def test_nothing_to_terminate(self, caps, config):
        result = TerminateOrphanNodeRemediation(caps, config).apply()

        assert result.success is True
        assert result.terminated_pids == []

    def test_preview_lists_pids(self, caps, config):
        caps.processes.processes = [ProcessInfo(100, 1, "claude")]
        assert "100" in TerminateCliProcessesRemediation(caps, config).preview()


# =============================================================================
# cache.drop / cache.npm / tmp.clean / cli.cache.clear
# =============================================================================


class TestCaches:
    def test_drop_page_cache(self, root_caps, config):
        result = DropPageCacheRemediation(root_caps, config).apply()

        assert result.success is True
        assert root_caps.commands.calls == [("sync",), ("sysctl", "-w", "vm.drop_caches=1")]

    def test_drop_page_cache_failure_propagates(self, root_caps, config):
        argv = ("sysctl", "-w", "vm.drop_caches=1")
        root_caps.commands.responses[argv] = CommandResult(argv, 255, stderr="permission denied")

        with pytest.raises(ExternalCallFailedError) as exc_info:
            DropPageCacheRemediation(root_caps, config).apply()
        assert exc_info.value.detail == "permission denied"

    def test_npm_cache(self, caps, config):
        CleanNpmCacheRemediation(caps, config).apply()
        assert caps.commands.calls == [("npm", "cache", "clean", "--force")]

    def test_npm_missing(self, caps, config):
        del caps.commands.binaries["npm"]
        with pytest.raises(ExternalCallFailedError):
            CleanNpmCacheRemediation(caps, config).apply()
        assert caps.commands.calls == []

    def test_tmp_clean_removes_only_stale_files(self, root_caps, config):
        stale = config.temp_dir / "old.log"
        fresh = config.temp_dir / "new.log"
        make_stale(stale, 30)
        fresh.write_text("y")

        result = CleanStaleTempRemediation(root_caps, config).apply()

        assert result.success is True
        assert not stale.exists()
        assert fresh.exists()
        assert result.modified_files == [stale]

    def test_tmp_clean_reports_partial_failure(self, root_caps, config, monkeypatch):
        make_stale(config.temp_dir / "a", 30)
        make_stale(config.temp_dir / "b", 30)
        store = root_caps.files
        original = store.remove_file

        def flaky(path):
            if path.name == "b":
                raise ExternalCallFailedError(f"Cannot remove {path}")
            original(path)

        monkeypatch.setattr(store, "remove_file", flaky)

        result = CleanStaleTempRemediation(root_caps, config).apply()

        assert result.success is False
        assert result.error_kind == ErrorKind.EXTERNAL_CALL_FAILED
        assert result.message == "Removed 1 file(s), 1 could not be removed"

    def test_clear_cli_cache(self, caps, config):
        cache = config.cli.cache_dirs[0]
        (cache / "sub").mkdir(parents=True)
        (cache / "sub" / "blob").write_text("data")

        result = ClearCliCacheRemediation(caps, config).apply()

        assert not cache.exists()
        assert result.modified_files == [cache]
        assert result.message == "Cleared 1 cache directory"

    def test_clear_cli_cache_nothing_there(self, caps, config):
        result = ClearCliCacheRemediation(caps, config).apply()
        assert result.message == "No cache directories found"


# =============================================================================
# Config files
# =============================================================================


class TestWslConfig:
    def test_recommended_halves_memory(self, config):
        rec = recommended_wslconfig(32768, config.wslconfig)
        assert rec.get("wsl2", "memory") == "16GB"
        assert rec.get("experimental", "sparseVhd") == "true"

    def test_recommended_memory_floor(self, config):
        rec = recommended_wslconfig(4096, config.wslconfig)
        assert rec.get("wsl2", "memory") == "4GB"

    def test_write_merges_and_backs_up(self, caps, config):
        path = config.wslconfig.path
        path.write_text("[wsl2]\nmemory=2GB\nkernelCommandLine=quiet\n\n[user]\ndefault=dev\n")

        result = WriteWslConfigRemediation(caps, config).apply()

        written = parse_sections(path.read_text())
        assert written.get("wsl2", "memory") == "8GB"
        assert written.get("wsl2", "kernelCommandLine") == "quiet"
        assert written.get("user", "default") == "dev"
        assert written.get("experimental", "autoMemoryReclaim") == "gradual"
        assert result.backup_paths[0].read_text().startswith("[wsl2]\nmemory=2GB")
        assert "wsl --shutdown" in result.message

    def test_write_creates_missing_file(self, caps, config):
        path = config.wslconfig.path
        path.unlink()

        result = WriteWslConfigRemediation(caps, config).apply()

        assert path.exists()
        assert result.backup_paths == []

    def test_write_without_path(self, caps, config):
        config.wslconfig.path = None
        with pytest.raises(ConfigWriteFailedError):
            WriteWslConfigRemediation(caps, config).apply()


class TestCliConfigAndEnv:
    def test_reset_moves_config_aside(self, caps, config):
        path = config.cli.config_file
        path.parent.mkdir(parents=True)
        path.write_text('{"theme": "dark"}')

        result = ResetCliConfigRemediation(caps, config).apply()

        assert not path.exists()
        assert result.backup_paths[0].read_text() == '{"theme": "dark"}'

    def test_reset_without_config(self, caps, config):
        result = ResetCliConfigRemediation(caps, config).apply()
        assert result.message == "No config file found"
        assert result.backup_paths == []

    def test_env_block_already_present(self, caps, config):
        before = config.cli.shell_rc.read_text()

        result = AppendShellEnvRemediation(caps, config).apply()

        assert "already" in result.message
        assert config.cli.shell_rc.read_text() == before

    def test_env_block_appended(self, caps, config):
        rc = config.cli.shell_rc
        rc.write_text("alias ll='ls -l'")

        result = AppendShellEnvRemediation(caps, config).apply()

        content = rc.read_text()
        assert content.startswith("alias ll='ls -l'\n")
        assert config.cli.env_marker in content
        assert "export NODE_OPTIONS=--max-old-space-size=4096" in content
        assert result.backup_paths[0].read_text() == "alias ll='ls -l'"

    def test_symlinked_rc_file_keeps_its_link(self, caps, config, tmp_path):
        rc = config.cli.shell_rc
        real = tmp_path / "dotfiles" / "bashrc"
        real.parent.mkdir()
        real.write_text("alias ll='ls -l'\n")
        rc.unlink()
        rc.symlink_to(real)

        result = AppendShellEnvRemediation(caps, config).apply()

        assert result.success is True
        assert rc.is_symlink()
        assert config.cli.env_marker in real.read_text()

    def test_env_values_are_quoted(self):
        block = render_env_block("# marker", {"X": "a b"})
        assert "export X='a b'" in block


# =============================================================================
# cli.reinstall
# =============================================================================


class TestReinstall:
    def test_reinstall_sequence(self, caps, config):
        config.cli.version = "1.0.40"

        result = ReinstallCliRemediation(caps, config).apply()

        assert caps.commands.calls == [
            ("npm", "uninstall", "-g", "@anthropic-ai/claude-code"),
            ("npm", "cache", "clean", "--force"),
            ("npm", "install", "-g", "@anthropic-ai/claude-code@1.0.40"),
            ("claude", "--version"),
        ]
        assert result.message == "Installed claude 1.0.51"

    def test_failed_uninstall_is_tolerated(self, caps, config):
        argv = ("npm", "uninstall", "-g", "@anthropic-ai/claude-code")
        caps.commands.responses[argv] = CommandResult(argv, 1)

        assert ReinstallCliRemediation(caps, config).apply().success is True

    def test_failed_install_raises(self, caps, config):
        argv = ("npm", "install", "-g", "@anthropic-ai/claude-code@latest")
        caps.commands.responses[argv] = CommandResult(argv, 1, stderr="EACCES")

        with pytest.raises(ExternalCallFailedError):
            ReinstallCliRemediation(caps, config).apply()

    def test_preview(self, caps, config):
        assert ReinstallCliRemediation(caps, config).preview() == (
            "npm install -g @anthropic-ai/claude-code@latest"
        )


# =============================================================================
# service.restart.<name>
# =============================================================================


class TestRestartService:
    def test_restart(self, root_caps, config):
        root_caps.services.states["docker"] = "failed"

        result = RestartServiceRemediation(root_caps, config, "docker").apply()

        assert root_caps.services.restarted == ["docker"]
        assert result.success is True

    def test_restart_requires_root(self, caps, config):
        with pytest.raises(InsufficientPrivilegeError):
            RestartServiceRemediation(caps, config, "docker").apply()
        assert caps.services.restarted == []

    def test_restart_failure_propagates(self, root_caps, config):
        root_caps.services.broken.add("docker")
        with pytest.raises(ExternalCallFailedError):
            RestartServiceRemediation(root_caps, config, "docker").apply()

    def test_inactive_after_restart_carries_detail(self, root_caps, config, monkeypatch):
        monkeypatch.setattr(root_caps.services, "restart", lambda name, timeout: None)
        root_caps.services.states["docker"] = "failed"

        result = RestartServiceRemediation(root_caps, config, "docker").apply()

        assert result.success is False
        assert result.error_kind == ErrorKind.EXTERNAL_CALL_FAILED
        assert result.error_detail == "systemctl reports docker as failed after restart"
