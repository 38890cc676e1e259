"""
Transport-agnostic remote client

Wraps one Connection and adds environment sourcing, sudo elevation,
connect-with-retry and idempotent file operations built from shell commands.
"""
from __future__ import annotations

import os
import posixpath
import shlex
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

from ...core.constants import (
    CONNECT_RETRY_INTERVAL,
    ENV_SCRIPT_NAME,
    LOCAL_TMP_PREFIX,
    SCRIPT_SUFFIX,
    TMP_SUFFIX,
)
from ...core.exceptions import ConnError, ConnErrorKind, CopyError, RemoteError
from ...core.interfaces import Connection
from ...core.logging import get_logger
from ...core.utils import env_to_script

logger = get_logger(__name__)


@contextmanager
def with_sudo(client: "Client") -> Iterator["Client"]:
    """Elevate commands issued inside the block, restoring the flag on exit"""
    previous = client.sudo
    client.sudo = True
    try:
        yield client
    finally:
        client.sudo = previous


class Client:
    """
    Remote client over a single connection.

    Attributes:
        env: Environment variables exported to every shell command
        work_dir: Remote directory for the env script and transient scripts
        sudo: Read when each command is built; toggle with ``with_sudo``
    """

    def __init__(
        self,
        connection: Connection,
        type_name: str = "",
        settings: Optional[Dict[str, str]] = None,
    ) -> None:
        self._connection = connection
        self.type_name = type_name
        self.settings = settings or {}

        self.env: Dict[str, str] = {}
        self.work_dir = ""
        self.sudo = False
        self.retry_interval = CONNECT_RETRY_INTERVAL

    # --------------------
    # Connection management
    # --------------------
    @property
    def connection(self) -> Connection:
        return self._connection

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()

    def connect_with_retry(self, timeout: float, on_retry: Callable[[], None]) -> None:
        """
        Connect, retrying every ``retry_interval`` seconds until ``timeout``.

        Invalid configuration is not retried.

        Raises:
            ConnError: With kind TIMEOUT wrapping the last connect error
        """
        deadline = time.monotonic() + timeout
        while True:
            try:
                self.connect()
                return
            except ConnError as e:
                if e.kind == ConnErrorKind.CONFIG_INVALID:
                    raise
                if time.monotonic() >= deadline:
                    raise ConnError(
                        f"cannot connect - awaiting timeout reached '{timeout}s': {e}",
                        kind=ConnErrorKind.TIMEOUT,
                    ) from e
                logger.debug(f"[connect] attempt failed, retrying in {self.retry_interval}s: {e}")
            time.sleep(self.retry_interval)
            on_retry()

    def use(self, callback: Callable[["Client"], None]) -> None:
        """Connect, run callback, then disconnect"""
        with self:
            callback(self)

    def __enter__(self) -> "Client":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            self.disconnect()
        except RemoteError as e:
            if exc_type is None:
                raise
            logger.warning(f"[disconnect] {e}")

    # --------------------
    # Shell execution
    # --------------------
    def env_script_path(self) -> str:
        return f"{self.work_dir}/{ENV_SCRIPT_NAME}"

    def setup_env(self) -> None:
        """Write ``env`` as a POSIX script to WorkDir/env.sh"""
        try:
            self.file_write(self.env_script_path(), env_to_script(self.env))
        except RemoteError as e:
            raise e.with_context("cannot setup environment script") from e

    def run_shell_command(self, cmd: str, dir: str = "") -> str:
        """Run command after sourcing the env script, optionally inside ``dir``"""
        env_script = shlex.quote(self.env_script_path())
        if not dir or dir == ".":
            return self.run_shell_purely(f". {env_script} && {cmd}")
        return self.run_shell_purely(f". {env_script} && cd {shlex.quote(dir)} && {cmd}")

    def run_shell_script(self, name: str, script: str, dir: str = "") -> str:
        """Write script under WorkDir, run it with ``sh`` and delete it afterwards"""
        remote_path = f"{self.work_dir}/{name}{SCRIPT_SUFFIX}"
        try:
            self.file_write(remote_path, script)
        except RemoteError as e:
            raise e.with_context(f"cannot write temporary script at remote path '{remote_path}'") from e
        try:
            return self.run_shell_command(f"sh {shlex.quote(remote_path)}", dir)
        finally:
            self._cleanup(remote_path)

    def run_shell_purely(self, cmd: str) -> str:
        """Run command via ``sh -c`` without sourcing the env script"""
        cmd_line = ["sudo", "sh", "-c", cmd] if self.sudo else ["sh", "-c", cmd]
        logger.debug(f"[run] {' '.join(cmd_line)}")
        try:
            return self._connection.command(cmd_line)
        except RemoteError as e:
            raise e.with_context(f"cannot run command '{cmd}'") from e

    # --------------------
    # Remote filesystem
    # --------------------
    def dir_ensure(self, path: str) -> None:
        try:
            self.run_shell_purely(f"mkdir -p {shlex.quote(path)}")
        except RemoteError as e:
            raise e.with_context(f"cannot ensure directory '{path}'") from e

    def dir_exists(self, path: str) -> bool:
        return self._test_path("-d", path, "directory")

    def file_exists(self, path: str) -> bool:
        return self._test_path("-f", path, "file")

    def _test_path(self, flag: str, path: str, what: str) -> bool:
        try:
            out = self.run_shell_purely(f"test {flag} {shlex.quote(path)} && echo '0' || echo '1'")
        except RemoteError as e:
            raise e.with_context(f"cannot check if {what} exists '{path}'") from e
        return out.strip() == "0"

    def file_move(self, old_path: str, new_path: str) -> None:
        self.dir_ensure(posixpath.dirname(new_path))
        try:
            self.run_shell_purely(f"mv {shlex.quote(old_path)} {shlex.quote(new_path)}")
        except RemoteError as e:
            raise e.with_context(f"cannot move file '{old_path}' to '{new_path}'") from e

    def file_make_executable(self, path: str) -> None:
        try:
            self.run_shell_purely(f"chmod +x {shlex.quote(path)}")
        except RemoteError as e:
            raise e.with_context(f"cannot make file executable '{path}'") from e

    def file_delete(self, path: str) -> None:
        try:
            self.run_shell_purely(f"rm -rf {shlex.quote(path)}")
        except RemoteError as e:
            raise e.with_context(f"cannot delete file '{path}'") from e

    path_delete = file_delete

    def _cleanup(self, path: str) -> None:
        """Best-effort delete, never masking the primary result"""
        try:
            self.file_delete(path)
        except RemoteError as e:
            logger.warning(f"[cleanup] {e}")

    def _tmp_path(self, remote_path: str) -> str:
        if self.sudo:
            # work dir is expected to be writable without sudo during upload
            return f"{self.work_dir}/{posixpath.basename(remote_path)}{TMP_SUFFIX}"
        return f"{remote_path}{TMP_SUFFIX}"

    def file_copy(self, local_path: str, remote_path: str, override: bool) -> None:
        """
        Copy local file to remote path through a temporary sibling.

        The final path only ever receives a complete file: the upload goes to
        the temp path which is then moved into place.
        """
        if not override and self.file_exists(remote_path):
            logger.debug(f"[skip] {remote_path} already exists")
            return
        self.dir_ensure(posixpath.dirname(remote_path))
        tmp_path = self._tmp_path(remote_path)
        self.file_delete(tmp_path)
        try:
            try:
                self._connection.copy_file(local_path, tmp_path)
            except RemoteError as e:
                raise CopyError(f"cannot copy file '{local_path}' to '{remote_path}': {e}") from e
            self.file_move(tmp_path, remote_path)
        finally:
            self._cleanup(tmp_path)

    def dir_copy(self, local_path: str, remote_path: str, override: bool) -> None:
        """Mirror local directory tree to remote path"""
        self.dir_ensure(remote_path)
        try:
            entries = sorted(os.scandir(local_path), key=lambda entry: entry.name)
        except OSError as e:
            raise CopyError(f"cannot list files to copy in directory '{local_path}': {e}") from e
        for entry in entries:
            local_sub_path = os.path.join(local_path, entry.name)
            remote_sub_path = posixpath.join(remote_path, entry.name)
            if entry.is_dir():
                self.dir_copy(local_sub_path, remote_sub_path, override)
            else:
                self.file_copy(local_sub_path, remote_sub_path, override)

    def path_copy(self, local_path: str, remote_path: str, override: bool) -> None:
        path = Path(local_path)
        if not path.exists():
            raise CopyError(f"cannot stat path '{local_path}': no such file or directory")
        if path.is_dir():
            self.dir_copy(local_path, remote_path, override)
        else:
            self.file_copy(local_path, remote_path, override)

    def file_write(self, remote_path: str, text: str) -> None:
        """Write text to remote path atomically"""
        fd, local_path = tempfile.mkstemp(prefix=LOCAL_TMP_PREFIX, suffix=TMP_SUFFIX)
        try:
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(text)
            except OSError as e:
                raise CopyError(
                    f"cannot write text to local temporary file to be copied to remote path '{remote_path}': {e}"
                ) from e
            self.file_copy(local_path, remote_path, True)
        finally:
            os.remove(local_path)
