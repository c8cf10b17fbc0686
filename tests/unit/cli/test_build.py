"""Tests for the tasmocompiler CLI commands."""

import io
import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from tasmocompiler.build.orchestrator import BuildOutcome
from tasmocompiler.cli import main
from tasmocompiler.events import SessionState

REQUEST = {
    "network": {"STA_SSID1": "home"},
    "features": {"USE_DISCOVERY": True, "board": {"name": "esp8266"}},
    "version": {"tasmotaVersion": "development"},
    "customParams": "",
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment and logging setup out of the tests."""
    for name in ("TASMOCOMPILER_REPO", "TASMOCOMPILER_BUILD_COMMAND", "TASMOCOMPILER_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    with patch("tasmocompiler.cli.setup_logging"):
        yield


@pytest.fixture
def repo_dir(tmp_path):
    repo = tmp_path / "Tasmota"
    (repo / "tasmota").mkdir(parents=True)
    return repo


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(REQUEST))
    return path


def run_cli(*args):
    """Run main() with the given arguments and return the exit code."""
    with patch.object(sys, "argv", ["tasmocompiler", *args]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    return exc_info.value.code


class TestCLIBuild:
    """Tests for the 'tasmocompiler build' command."""

    @pytest.fixture
    def mock_orchestrator(self):
        with patch("tasmocompiler.cli.BuildOrchestrator") as mock_orch_class:
            mock_instance = MagicMock()
            mock_orch_class.return_value = mock_instance
            yield mock_instance

    def test_build_success(self, mock_orchestrator, repo_dir, config_file, capsys):
        mock_orchestrator.compile.return_value = BuildOutcome(ok=True, state=SessionState.EXITED, exit_code=0)

        exit_code = run_cli("build", str(config_file), "--repo", str(repo_dir))

        assert exit_code == 0
        captured = capsys.readouterr()
        assert "Build successful!" in captured.out
        assert f"Repository: {repo_dir}" in captured.out
        assert "Version: development" in captured.out

        request = mock_orchestrator.compile.call_args.args[0]
        assert request.network == {"STA_SSID1": "home"}

    def test_build_failure(self, mock_orchestrator, repo_dir, config_file, capsys):
        mock_orchestrator.compile.return_value = BuildOutcome(
            ok=False, state=SessionState.PREPARE_FAILED, message="Cannot switch to version development: offline"
        )

        exit_code = run_cli("build", str(config_file), "--repo", str(repo_dir))

        assert exit_code == 1
        assert "Build failed!" in capsys.readouterr().err

    def test_failure_text_printed_once(self, tmp_path, config_file, capsys):
        """Test that the sink's failure message is not repeated by the summary."""
        repo = tmp_path / "no-sources"
        repo.mkdir()
        with patch("tasmocompiler.build.orchestrator.GitBranchSwitcher"):
            exit_code = run_cli("build", str(config_file), "--repo", str(repo))

        assert exit_code == 1
        captured = capsys.readouterr()
        assert "Build failed!" in captured.err
        assert (captured.out + captured.err).count("Cannot write to") == 1

    def test_build_json_events(self, mock_orchestrator, repo_dir, config_file, capsys):
        mock_orchestrator.compile.return_value = BuildOutcome(ok=False, state=SessionState.EXITED, exit_code=1)

        exit_code = run_cli("build", str(config_file), "--repo", str(repo_dir), "--json")

        assert exit_code == 1
        assert "tasmocompiler v" not in capsys.readouterr().out

    def test_build_copies_artifacts(self, mock_orchestrator, repo_dir, config_file, tmp_path, capsys):
        mock_orchestrator.compile.return_value = BuildOutcome(ok=True, state=SessionState.EXITED, exit_code=0)
        firmware_dir = repo_dir / ".pio" / "build" / "firmware"
        firmware_dir.mkdir(parents=True)
        (firmware_dir / "firmware.bin").write_bytes(b"bin")
        out = tmp_path / "out"

        exit_code = run_cli("build", str(config_file), "--repo", str(repo_dir), "-o", str(out))

        assert exit_code == 0
        assert (out / "firmware.bin").read_bytes() == b"bin"

    def test_missing_config(self, mock_orchestrator, repo_dir, tmp_path, capsys):
        exit_code = run_cli("build", str(tmp_path / "missing.json"), "--repo", str(repo_dir))

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().err
        mock_orchestrator.compile.assert_not_called()

    def test_invalid_config(self, mock_orchestrator, repo_dir, tmp_path, capsys):
        config = tmp_path / "bad.json"
        config.write_text("{not json")

        exit_code = run_cli("build", str(config), "--repo", str(repo_dir))

        assert exit_code == 1
        assert "RequestError" in capsys.readouterr().err

    def test_real_build(self, repo_dir, config_file, monkeypatch, capsys):
        """Test a complete build with a stand-in build tool."""
        monkeypatch.setenv("TASMOCOMPILER_BUILD_COMMAND", f'"{sys.executable}" -c "print(12345)"')
        with patch("tasmocompiler.build.orchestrator.GitBranchSwitcher") as mock_switcher_class:
            exit_code = run_cli("build", str(config_file), "--repo", str(repo_dir))

        assert exit_code == 0
        mock_switcher_class.return_value.switch_to_branch.assert_called_once_with("development")
        captured = capsys.readouterr()
        assert "12345" in captured.out
        assert "Finished. Exit code: 0." in captured.out
        assert (repo_dir / "platformio_override.ini").exists()


class TestCLIRender:
    """Tests for the 'tasmocompiler render' command."""

    def test_render(self, repo_dir, config_file, capsys):
        exit_code = run_cli("render", str(config_file), "--repo", str(repo_dir))

        assert exit_code == 0
        header = (repo_dir / "tasmota" / "user_config_override.h").read_text()
        assert '#define STA_SSID1\t"home"' in header
        assert (repo_dir / "platformio_override.ini").read_text().startswith("[platformio]")

    def test_render_missing_repo(self, tmp_path, config_file, capsys):
        exit_code = run_cli("render", str(config_file), "--repo", str(tmp_path / "missing"))

        assert exit_code == 2
        assert "Repository does not exist" in capsys.readouterr().err

    def test_render_from_stdin(self, repo_dir, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO(json.dumps(REQUEST)))

        exit_code = run_cli("render", "-", "--repo", str(repo_dir))

        assert exit_code == 0
        assert (repo_dir / "tasmota" / "user_config_override.h").exists()


class TestCLIVersion:
    """Tests for the 'tasmocompiler version' and 'versions' commands."""

    def test_version(self, repo_dir, capsys):
        (repo_dir / "tasmota" / "tasmota_version.h").write_text("const uint32_t VERSION = 0x0D010000;\n")

        exit_code = run_cli("version", "--repo", str(repo_dir))

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "13.1.0 (0x0D010000)"

    def test_version_missing_file(self, repo_dir, capsys):
        exit_code = run_cli("version", "--repo", str(repo_dir))

        assert exit_code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_versions(self, capsys):
        with patch("tasmocompiler.cli.fetch_release_versions", return_value=["development", "v13.1.0"]):
            exit_code = run_cli("versions")

        assert exit_code == 0
        assert capsys.readouterr().out.splitlines() == ["development", "v13.1.0"]

    def test_no_command_prints_help(self, capsys):
        exit_code = run_cli()

        assert exit_code == 0
        assert "usage: tasmocompiler" in capsys.readouterr().out
