"""Tests for external command execution."""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from snippyops.utils.errors import CommandError
from snippyops.utils.shell import CommandResult, CommandRunner, format_command


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestFormatCommand:
    def test_quotes_arguments_with_spaces(self):
        assert format_command(["docker", "volume", "inspect", "--format", "{{ .Mountpoint }}"]) == (
            "docker volume inspect --format '{{ .Mountpoint }}'"
        )

    def test_plain_arguments(self):
        assert format_command(["systemctl", "restart", "snippy-api"]) == "systemctl restart snippy-api"


class TestCommandRunner:
    """Test command runner behaviour."""

    @patch("subprocess.run")
    def test_run_success(self, mock_run):
        mock_run.return_value = _completed(stdout="active\n")

        result = CommandRunner().run(["systemctl", "is-active", "snippy-api"])

        assert isinstance(result, CommandResult)
        assert result.ok
        assert result.stdout == "active\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["systemctl", "is-active", "snippy-api"]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["env"] is None

    @patch("subprocess.run")
    def test_run_failure_raises_when_checked(self, mock_run):
        mock_run.return_value = _completed(returncode=3, stderr="unit not found\n")

        with pytest.raises(CommandError) as excinfo:
            CommandRunner().run(["systemctl", "restart", "snippy-api"])

        assert excinfo.value.returncode == 3
        assert excinfo.value.details == "unit not found"
        assert "exit code 3" in excinfo.value.message

    @patch("subprocess.run")
    def test_run_failure_tolerated_when_unchecked(self, mock_run):
        mock_run.return_value = _completed(returncode=1)

        result = CommandRunner().run(["pkill", "-f", "snippy-api"], check=False)

        assert result.returncode == 1
        assert not result.ok

    @patch("subprocess.run", side_effect=FileNotFoundError())
    def test_missing_executable(self, mock_run):
        with pytest.raises(CommandError, match="Command not found: certbot") as excinfo:
            CommandRunner().run(["certbot", "renew"])

        assert excinfo.value.returncode == 127

    @patch("subprocess.run", side_effect=FileNotFoundError())
    def test_missing_executable_unchecked(self, mock_run):
        result = CommandRunner().run(["crontab", "-l"], check=False)

        assert result.returncode == 127

    @patch("subprocess.run")
    def test_dry_run_does_not_execute(self, mock_run, capsys):
        result = CommandRunner(dry_run=True).run(["systemctl", "daemon-reload"])

        assert result.ok
        mock_run.assert_not_called()
        assert "DRY RUN: systemctl daemon-reload" in capsys.readouterr().out

    @patch("subprocess.run")
    def test_env_is_merged(self, mock_run, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        mock_run.return_value = _completed()
        runner = CommandRunner(env={"POSTGRES_USER": "app"})
        runner.update_env({"DOMAIN": "api.example.com", "UNSET": None})

        runner.run(["docker", "compose", "up", "-d"], env={"EXTRA": "1"})

        env = mock_run.call_args[1]["env"]
        assert env["POSTGRES_USER"] == "app"
        assert env["DOMAIN"] == "api.example.com"
        assert env["EXTRA"] == "1"
        assert env["PATH"] == "/usr/bin"
        assert "UNSET" not in env

    @patch("subprocess.run")
    def test_input_and_cwd_passed(self, mock_run, temp_directory):
        mock_run.return_value = _completed()

        CommandRunner().run(["crontab", "-"], input="0 3 * * * job\n", cwd=temp_directory)

        kwargs = mock_run.call_args[1]
        assert kwargs["input"] == "0 3 * * * job\n"
        assert kwargs["cwd"] == temp_directory

    @patch("subprocess.Popen")
    def test_spawn_detached(self, mock_popen, temp_directory):
        mock_popen.return_value = MagicMock(pid=1234)
        log_path = os.path.join(temp_directory, "api.log")

        pid = CommandRunner().spawn_detached(["./snippy-api"], log_path, cwd=temp_directory)

        assert pid == 1234
        assert os.path.exists(log_path)
        kwargs = mock_popen.call_args[1]
        assert kwargs["start_new_session"] is True
        assert kwargs["stderr"] == subprocess.STDOUT

    @patch("subprocess.Popen")
    def test_spawn_detached_truncates_log(self, mock_popen, temp_directory):
        mock_popen.return_value = MagicMock(pid=1234)
        log_path = os.path.join(temp_directory, "api.log")
        with open(log_path, "w") as f:
            f.write("output from the previous run\n")

        CommandRunner().spawn_detached(["./snippy-api"], log_path, cwd=temp_directory)

        assert os.path.getsize(log_path) == 0

    @patch("subprocess.Popen")
    def test_spawn_detached_dry_run(self, mock_popen, temp_directory, capsys):
        pid = CommandRunner(dry_run=True).spawn_detached(["./snippy-api"], "api.log")

        assert pid is None
        mock_popen.assert_not_called()
        assert "nohup ./snippy-api > api.log 2>&1 &" in capsys.readouterr().out

    @patch("shutil.which", return_value=None)
    def test_which_missing(self, mock_which):
        assert CommandRunner.which("certbot") is False
