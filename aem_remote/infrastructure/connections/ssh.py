"""
SSH connection built on Paramiko
"""
from __future__ import annotations

import io
import shlex
import socket
from typing import List, Optional

import paramiko

from ...core.constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT
from ...core.exceptions import (
    CommandError,
    CommandErrorKind,
    ConnError,
    ConnErrorKind,
    CopyError,
    NotConnectedError,
)
from ...core.interfaces import Connection
from ...core.logging import get_logger

logger = get_logger(__name__)

_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


class PinnedHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Accept only a host key equal to the given public key"""

    def __init__(self, key: paramiko.PKey) -> None:
        self.key = key

    def missing_host_key(self, client, hostname, key) -> None:
        if key.get_name() != self.key.get_name() or key.get_base64() != self.key.get_base64():
            raise paramiko.SSHException(
                f"host key for '{hostname}' does not match pinned key ({key.get_name()})"
            )


def parse_private_key(text: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """
    Parse private key content, probing Ed25519, ECDSA and RSA.

    Raises:
        ConnError: If no key type accepts the content
    """
    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text), password=passphrase or None)
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
    suffix = " with passphrase" if passphrase else ""
    raise ConnError(
        f"ssh: cannot parse private key{suffix}: {last_error}",
        kind=ConnErrorKind.AUTH_FAILURE,
    )


class SSHConnection(Connection):
    """
    Key-authenticated SSH session.

    - ``secure=False`` accepts any host key
    - ``secure=True`` pins the host key to the public part of the private key
    - files are uploaded over SFTP
    """

    def __init__(
        self,
        host: str = "",
        user: str = "",
        port: int = 0,
        private_key: str = "",
        private_key_passphrase: str = "",
        secure: bool = False,
        timeout: float = DEFAULT_SSH_TIMEOUT,
    ) -> None:
        self.host = host
        self.user_name = user
        self.port = port
        self.private_key = private_key
        self.private_key_passphrase = private_key_passphrase
        self.secure = secure
        self.timeout = timeout

        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    # --------------------
    # Connection management
    # --------------------
    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if not self.host:
            raise ConnError("ssh: host is required", kind=ConnErrorKind.CONFIG_INVALID)
        if not self.user_name:
            raise ConnError("ssh: user is required", kind=ConnErrorKind.CONFIG_INVALID)
        if not self.private_key:
            raise ConnError("ssh: private key is required", kind=ConnErrorKind.CONFIG_INVALID)
        if self.port == 0:
            self.port = DEFAULT_SSH_PORT

        key = parse_private_key(self.private_key, self.private_key_passphrase)

        client = paramiko.SSHClient()
        if self.secure:
            client.set_missing_host_key_policy(PinnedHostKeyPolicy(key))
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.user_name,
                pkey=key,
                timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise ConnError(
                f"ssh: cannot authenticate to host '{self.host}': {e}",
                kind=ConnErrorKind.AUTH_FAILURE,
            ) from e
        except (paramiko.SSHException, socket.error) as e:
            client.close()
            raise ConnError(
                f"ssh: cannot connect to host '{self.host}': {e}",
                kind=ConnErrorKind.NETWORK_FAILURE,
            ) from e

        self._client = client
        logger.debug(f"[ssh] connected {self.info()}")

    def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            if self._sftp is not None:
                self._sftp.close()
            self._client.close()
        except (paramiko.SSHException, socket.error) as e:
            raise ConnError(
                f"ssh: cannot disconnect from host '{self.host}': {e}",
                kind=ConnErrorKind.NETWORK_FAILURE,
            ) from e
        finally:
            self._sftp = None
            self._client = None

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None:
            raise NotConnectedError(f"ssh: not connected to host '{self.host}'")
        return self._client

    # --------------------
    # Helpers
    # --------------------
    def info(self) -> str:
        return f"ssh: host='{self.host}', user='{self.user_name}', port='{self.port}'"

    def user(self) -> str:
        return self.user_name

    def command(self, cmd_line: List[str]) -> str:
        """Execute command and return stdout and stderr combined"""
        client = self._require_client()
        cmd = shlex.join(cmd_line)
        try:
            chan = client.get_transport().open_session()
        except (paramiko.SSHException, socket.error) as e:
            raise CommandError(
                f"ssh: cannot create command '{cmd}' for host '{self.host}': {e}"
            ) from e

        try:
            chan.set_combine_stderr(True)
            chan.exec_command(cmd)
            output = chan.makefile("rb").read().decode("utf-8", errors="replace")
            exit_code = chan.recv_exit_status()
        except socket.timeout as e:
            raise CommandError(f"ssh: command '{cmd}' timed out", kind=CommandErrorKind.TIMEOUT) from e
        except (paramiko.SSHException, socket.error) as e:
            raise CommandError(f"ssh: cannot run command '{cmd}': {e}") from e
        finally:
            chan.close()

        if exit_code != 0:
            raise CommandError(
                f"ssh: cannot run command '{cmd}': exit status {exit_code}",
                output=output,
            )
        return output

    def open_sftp(self) -> paramiko.SFTPClient:
        """Return SFTP client, reusing the existing channel"""
        client = self._require_client()
        if self._sftp is None or self._sftp.get_channel() is None or self._sftp.get_channel().closed:
            self._sftp = client.open_sftp()
        return self._sftp

    def copy_file(self, local_path: str, remote_path: str) -> None:
        self._require_client()
        try:
            self.open_sftp().put(local_path, remote_path)
        except (IOError, paramiko.SSHException) as e:
            raise CopyError(
                f"ssh: cannot copy local file '{local_path}' to remote path '{remote_path}' on host '{self.host}': {e}"
            ) from e
        logger.debug(f"[push] {local_path} → {remote_path}")
