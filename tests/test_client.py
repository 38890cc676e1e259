"""
Unit tests for aem_remote.domain.client.client module.

Tests shell composition, sudo scoping, file operations and connect retry
against a recording connection.
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from aem_remote.core.exceptions import (
    CommandError,
    ConnError,
    ConnErrorKind,
    CopyError,
)
from aem_remote.core.utils import env_to_script
from aem_remote.domain.client import Client, with_sudo


class TestShellComposition:
    """Tests for run_shell_command and run_shell_purely."""

    def test_purely_without_sudo(self, recording_client, recording):
        recording_client.run_shell_purely("whoami")
        assert recording.commands[-1] == ["sh", "-c", "whoami"]

    def test_purely_with_sudo(self, recording_client, recording):
        recording_client.sudo = True
        recording_client.run_shell_purely("whoami")
        assert recording.commands[-1] == ["sudo", "sh", "-c", "whoami"]

    def test_command_sources_env(self, recording_client, recording):
        recording_client.run_shell_command("ls", "")
        assert recording.commands[-1] == ["sh", "-c", ". /tmp/work/env.sh && ls"]

    def test_command_dot_dir_skips_cd(self, recording_client, recording):
        recording_client.run_shell_command("ls", ".")
        assert recording.scripts()[-1] == ". /tmp/work/env.sh && ls"

    def test_command_in_dir(self, recording_client, recording):
        recording_client.run_shell_command("ls", "/opt/aem")
        assert recording.scripts()[-1] == ". /tmp/work/env.sh && cd /opt/aem && ls"

    def test_returns_output(self, recording_client, recording):
        recording.outputs["whoami"] = "aem\n"
        assert recording_client.run_shell_purely("whoami") == "aem\n"

    def test_error_wrapped_with_command(self, recording_client, recording):
        recording.failing["false"] = "diagnostics"
        with pytest.raises(CommandError) as exc_info:
            recording_client.run_shell_purely("false")
        assert "cannot run command 'false'" in str(exc_info.value)
        assert exc_info.value.output == "diagnostics"
        assert str(exc_info.value).endswith("diagnostics")


class TestWithSudo:
    """Tests for with_sudo scoping."""

    def test_elevates_inside_block(self, recording_client, recording):
        with with_sudo(recording_client):
            recording_client.run_shell_purely("id")
        recording_client.run_shell_purely("id")
        assert recording.commands[0][0] == "sudo"
        assert recording.commands[1][0] == "sh"

    def test_restored_on_error(self, recording_client):
        with pytest.raises(RuntimeError):
            with with_sudo(recording_client):
                assert recording_client.sudo is True
                raise RuntimeError("boom")
        assert recording_client.sudo is False

    def test_restores_previous_value(self, recording_client):
        recording_client.sudo = True
        with with_sudo(recording_client):
            pass
        assert recording_client.sudo is True


class TestExistenceChecks:
    """Tests for file_exists and dir_exists."""

    def test_missing_file_is_false(self, recording_client, recording):
        recording.outputs["test -f"] = "1\n"
        assert recording_client.file_exists("/tmp/missing") is False
        assert recording.scripts()[-1] == "test -f /tmp/missing && echo '0' || echo '1'"

    def test_existing_file_is_true(self, recording_client, recording):
        recording.outputs["test -f"] = "0\n"
        assert recording_client.file_exists("/tmp/present") is True

    def test_dir_exists(self, recording_client, recording):
        recording.outputs["test -d"] = " 0 \n"
        assert recording_client.dir_exists("/opt") is True
        assert recording.scripts()[-1] == "test -d /opt && echo '0' || echo '1'"

    def test_path_quoted(self, recording_client, recording):
        recording_client.file_exists("/tmp/with space")
        assert recording.scripts()[-1] == "test -f '/tmp/with space' && echo '0' || echo '1'"


class TestFileCopy:
    """Tests for file_copy through a temporary sibling."""

    def test_sequence(self, recording_client, recording, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("content")

        recording_client.file_copy(str(local), "/opt/app/a.txt", True)

        assert recording.scripts() == [
            "mkdir -p /opt/app",
            "rm -rf /opt/app/a.txt.tmp",
            "mkdir -p /opt/app",
            "mv /opt/app/a.txt.tmp /opt/app/a.txt",
            "rm -rf /opt/app/a.txt.tmp",
        ]
        assert recording.copies == [(str(local), "/opt/app/a.txt.tmp", "content")]

    def test_skips_existing_without_override(self, recording_client, recording, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("content")
        recording.outputs["test -f"] = "0"

        recording_client.file_copy(str(local), "/opt/app/a.txt", False)

        assert recording.copies == []
        assert recording.scripts() == ["test -f /opt/app/a.txt && echo '0' || echo '1'"]

    def test_copies_missing_without_override(self, recording_client, recording, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("content")
        recording.outputs["test -f"] = "1"

        recording_client.file_copy(str(local), "/opt/app/a.txt", False)

        assert len(recording.copies) == 1

    def test_sudo_stages_in_work_dir(self, recording_client, recording, tmp_path):
        local = tmp_path / "aem.service"
        local.write_text("[Unit]")

        with with_sudo(recording_client):
            recording_client.file_copy(str(local), "/etc/systemd/system/aem.service", True)

        assert recording.copies[0][1] == "/tmp/work/aem.service.tmp"
        assert "mv /tmp/work/aem.service.tmp /etc/systemd/system/aem.service" in recording.scripts()
        assert all(cmd[0] == "sudo" for cmd in recording.commands)

    def test_failed_upload_cleans_up_and_skips_move(self, recording_client, recording, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("content")
        recording.copy_file = MagicMock(side_effect=CopyError("connection reset"))

        with pytest.raises(CopyError) as exc_info:
            recording_client.file_copy(str(local), "/opt/app/a.txt", True)

        assert "connection reset" in str(exc_info.value)
        assert not any(s.startswith("mv ") for s in recording.scripts())
        assert recording.scripts()[-1] == "rm -rf /opt/app/a.txt.tmp"

    def test_failed_move_keeps_move_error(self, recording_client, recording, tmp_path):
        local = tmp_path / "a.txt"
        local.write_text("content")
        recording.failing["mv /opt/app/a.txt.tmp /opt/app/a.txt"] = "disk full"

        with pytest.raises(CommandError) as exc_info:
            recording_client.file_copy(str(local), "/opt/app/a.txt", True)

        assert "cannot move file" in str(exc_info.value)
        assert exc_info.value.output == "disk full"


class TestFileWrite:
    """Tests for file_write."""

    def test_uploads_text_and_removes_local_temp(self, recording_client, recording):
        recording_client.file_write("/opt/app/conf.yml", "key: value\n")

        local_path, remote_path, content = recording.copies[0]
        assert remote_path == "/opt/app/conf.yml.tmp"
        assert content == "key: value\n"
        assert not os.path.exists(local_path)

    def test_setup_env(self, recording_client, recording):
        recording_client.env = {"AEM_OUTPUT_LOG_MODE": "both"}
        recording_client.setup_env()

        _, remote_path, content = recording.copies[0]
        assert remote_path == "/tmp/work/env.sh.tmp"
        assert content == env_to_script({"AEM_OUTPUT_LOG_MODE": "both"})
        assert "mv /tmp/work/env.sh.tmp /tmp/work/env.sh" in recording.scripts()

    def test_setup_env_failure_wrapped(self, recording_client, recording):
        recording.failing["mkdir -p /tmp/work"] = ""
        with pytest.raises(CommandError) as exc_info:
            recording_client.setup_env()
        assert str(exc_info.value).startswith("cannot setup environment script")


class TestRunShellScript:
    """Tests for run_shell_script."""

    def test_writes_runs_and_deletes(self, recording_client, recording):
        recording.outputs["&& sh /tmp/work/create.sh"] = "created"

        out = recording_client.run_shell_script("create", "echo created", "/data")

        assert out == "created"
        assert recording.copies[0][1:] == ("/tmp/work/create.sh.tmp", "echo created")
        scripts = recording.scripts()
        assert ". /tmp/work/env.sh && cd /data && sh /tmp/work/create.sh" in scripts
        assert scripts[-1] == "rm -rf /tmp/work/create.sh"

    def test_deletes_after_failure(self, recording_client, recording):
        recording.failing[". /tmp/work/env.sh && sh /tmp/work/launch.sh"] = "launch failed"

        with pytest.raises(CommandError) as exc_info:
            recording_client.run_shell_script("launch", "exit 1", "")

        assert exc_info.value.output == "launch failed"
        assert recording.scripts()[-1] == "rm -rf /tmp/work/launch.sh"

    def test_cleanup_failure_swallowed(self, recording_client, recording):
        recording.outputs["&& sh /tmp/work/create.sh"] = "created"
        recording.failing["rm -rf /tmp/work/create.sh"] = "permission denied"

        assert recording_client.run_shell_script("create", "echo created", "") == "created"


class TestConnectWithRetry:
    """Tests for connect_with_retry."""

    def _client(self, connection):
        client = Client(connection)
        client.retry_interval = 3.0
        return client

    def test_connects_first_time(self, clock):
        connection = MagicMock()
        callback = MagicMock()
        with patch("aem_remote.domain.client.client.time", clock):
            self._client(connection).connect_with_retry(60, callback)
        connection.connect.assert_called_once_with()
        callback.assert_not_called()
        assert clock.sleeps == []

    def test_retries_until_success(self, clock):
        connection = MagicMock()
        connection.connect.side_effect = [
            ConnError("refused", kind=ConnErrorKind.NETWORK_FAILURE),
            ConnError("no key yet", kind=ConnErrorKind.AUTH_FAILURE),
            None,
        ]
        callback = MagicMock()
        with patch("aem_remote.domain.client.client.time", clock):
            self._client(connection).connect_with_retry(60, callback)
        assert connection.connect.call_count == 3
        assert callback.call_count == 2
        assert clock.sleeps == [3.0, 3.0]

    def test_timeout_bound(self, clock):
        connection = MagicMock()
        last = ConnError("refused", kind=ConnErrorKind.NETWORK_FAILURE)
        connection.connect.side_effect = last
        callback = MagicMock()

        with patch("aem_remote.domain.client.client.time", clock):
            with pytest.raises(ConnError) as exc_info:
                self._client(connection).connect_with_retry(10, callback)

        assert exc_info.value.kind == ConnErrorKind.TIMEOUT
        assert exc_info.value.__cause__ is last
        assert "refused" in str(exc_info.value)
        assert 10 <= clock.now <= 10 + 3.0

    def test_invalid_config_not_retried(self, clock):
        connection = MagicMock()
        connection.connect.side_effect = ConnError("ssh: host is required", kind=ConnErrorKind.CONFIG_INVALID)
        with patch("aem_remote.domain.client.client.time", clock):
            with pytest.raises(ConnError) as exc_info:
                self._client(connection).connect_with_retry(60, MagicMock())
        assert exc_info.value.kind == ConnErrorKind.CONFIG_INVALID
        assert connection.connect.call_count == 1


class TestLifecycle:
    """Tests for use and context manager support."""

    def test_use_connects_and_disconnects(self, recording):
        client = Client(recording)
        seen = []
        client.use(lambda c: seen.append(c.connection.is_connected))
        assert seen == [True]
        assert recording.connected is False

    def test_context_manager_disconnects_on_error(self, recording):
        client = Client(recording)
        with pytest.raises(RuntimeError):
            with client:
                raise RuntimeError("boom")
        assert recording.connected is False
