"""
Local connection running commands as subprocesses, for development and tests
"""
import getpass
import shutil
import subprocess
from typing import List, Optional

from ...core.exceptions import CommandError, CommandErrorKind, CopyError, NotConnectedError
from ...core.interfaces import Connection
from ...core.logging import get_logger

logger = get_logger(__name__)


class LocalConnection(Connection):
    """Treat the local machine as the remote one"""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def _require_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError("local: not connected")

    def info(self) -> str:
        return "local environment"

    def user(self) -> str:
        return getpass.getuser()

    def command(self, cmd_line: List[str]) -> str:
        self._require_connected()
        cmd = " ".join(cmd_line)
        try:
            result = subprocess.run(
                cmd_line,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"local: command '{cmd}' timed out after {self.timeout}s",
                kind=CommandErrorKind.TIMEOUT,
            ) from e
        except OSError as e:
            raise CommandError(f"local: error executing command '{cmd}': {e}") from e

        output = result.stdout.decode("utf-8", errors="replace")
        if result.returncode != 0:
            raise CommandError(
                f"local: error executing command '{cmd}': exit status {result.returncode}",
                output=output,
            )
        return output

    def copy_file(self, local_path: str, remote_path: str) -> None:
        self._require_connected()
        try:
            shutil.copyfile(local_path, remote_path)
        except OSError as e:
            raise CopyError(f"local: cannot copy '{local_path}' to '{remote_path}': {e}") from e
        logger.debug(f"[push] {local_path} → {remote_path}")
