"""
AWS Systems Manager connection built on boto3

Commands are dispatched asynchronously with ``SendCommand`` and awaited by
polling ``GetCommandInvocation`` with a doubling delay bounded by
``wait_min``/``wait_max`` and an overall ``output_timeout``.
"""
from __future__ import annotations

import base64
import shlex
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)

from ...core.constants import (
    DEFAULT_SSM_OUTPUT_TIMEOUT,
    DEFAULT_SSM_USER,
    DEFAULT_SSM_WAIT_MAX,
    DEFAULT_SSM_WAIT_MIN,
    SSM_DOCUMENT_NAME,
)
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

TERMINAL_STATUSES = {"Success", "Failed", "TimedOut", "Cancelled"}
_AUTH_ERROR_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredTokenException",
}


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


class AWSSSMConnection(Connection):
    """Session against one managed EC2 instance"""

    def __init__(
        self,
        instance_id: str = "",
        region: str = "",
        output_timeout: float = 0.0,
        wait_min: float = 0.0,
        wait_max: float = 0.0,
    ) -> None:
        self.instance_id = instance_id
        self.region = region
        self.output_timeout = output_timeout or DEFAULT_SSM_OUTPUT_TIMEOUT
        self.wait_min = wait_min or DEFAULT_SSM_WAIT_MIN
        self.wait_max = max(wait_max or DEFAULT_SSM_WAIT_MAX, self.wait_min)

        self._client: Any = None
        self._session_id: Optional[str] = None

    # --------------------
    # Connection management
    # --------------------
    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if not self.instance_id:
            raise ConnError("ssm: instance id is required", kind=ConnErrorKind.CONFIG_INVALID)

        session_kwargs: Dict[str, Any] = {}
        if self.region:
            session_kwargs["region_name"] = self.region

        try:
            client = boto3.Session(**session_kwargs).client("ssm")
            response = client.start_session(Target=self.instance_id)
        except (NoCredentialsError, PartialCredentialsError) as e:
            raise ConnError(
                f"ssm: cannot load AWS credentials: {e}",
                kind=ConnErrorKind.AUTH_FAILURE,
            ) from e
        except NoRegionError as e:
            raise ConnError(
                f"ssm: region is not set and cannot be resolved from the AWS configuration: {e}",
                kind=ConnErrorKind.CONFIG_INVALID,
            ) from e
        except ClientError as e:
            kind = (
                ConnErrorKind.AUTH_FAILURE
                if _error_code(e) in _AUTH_ERROR_CODES
                else ConnErrorKind.NETWORK_FAILURE
            )
            raise ConnError(f"ssm: error starting session: {e}", kind=kind) from e
        except BotoCoreError as e:
            raise ConnError(
                f"ssm: error starting session: {e}",
                kind=ConnErrorKind.NETWORK_FAILURE,
            ) from e

        self._client = client
        self._session_id = response.get("SessionId")
        logger.debug(f"[ssm] started session '{self._session_id}' for {self.info()}")

    def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            if self._session_id:
                self._client.terminate_session(SessionId=self._session_id)
        except (ClientError, BotoCoreError) as e:
            raise ConnError(
                f"ssm: error terminating session '{self._session_id}': {e}",
                kind=ConnErrorKind.NETWORK_FAILURE,
            ) from e
        finally:
            self._client = None
            self._session_id = None

    def _require_client(self) -> Any:
        if self._client is None:
            raise NotConnectedError(f"ssm: not connected to instance '{self.instance_id}'")
        return self._client

    # --------------------
    # Helpers
    # --------------------
    def info(self) -> str:
        return f"ssm: instance_id='{self.instance_id}', region='{self.region}'"

    def user(self) -> str:
        try:
            return self.command(["whoami"]).strip() or DEFAULT_SSM_USER
        except CommandError as e:
            logger.warning(f"[ssm] cannot determine remote user, assuming '{DEFAULT_SSM_USER}': {e}")
            return DEFAULT_SSM_USER

    def command(self, cmd_line: List[str]) -> str:
        return self.run(shlex.join(cmd_line))

    def run(self, command: str) -> str:
        """
        Send one shell command and wait for its invocation to finish.

        Returns:
            Standard output content

        Raises:
            CommandError: On failed/timed out invocation, with standard output
                and standard error attached
        """
        client = self._require_client()
        try:
            response = client.send_command(
                DocumentName=SSM_DOCUMENT_NAME,
                InstanceIds=[self.instance_id],
                Parameters={"commands": [command]},
            )
        except (ClientError, BotoCoreError) as e:
            raise CommandError(f"ssm: error sending command '{command}': {e}") from e

        command_id = response["Command"]["CommandId"]
        logger.debug(f"[ssm] sent command '{command_id}': {command}")
        invocation = self._wait_for_invocation(client, command_id, command)

        status = invocation["Status"]
        stdout = invocation.get("StandardOutputContent", "")
        if status == "Success":
            return stdout

        stderr = invocation.get("StandardErrorContent", "")
        output = "\n".join(part for part in (stdout, stderr) if part)
        kind = CommandErrorKind.TIMEOUT if status == "TimedOut" else CommandErrorKind.EXECUTION_FAILURE
        raise CommandError(
            f"ssm: command '{command}' finished with status '{status}'"
            f" (exit code {invocation.get('ResponseCode')})",
            kind=kind,
            output=output,
        )

    def _wait_for_invocation(self, client: Any, command_id: str, command: str) -> Dict[str, Any]:
        deadline = time.monotonic() + self.output_timeout
        delay = self.wait_min
        while True:
            try:
                invocation = client.get_command_invocation(
                    CommandId=command_id,
                    InstanceId=self.instance_id,
                )
                if invocation["Status"] in TERMINAL_STATUSES:
                    return invocation
            except ClientError as e:
                # invocation is registered with a short delay after sending
                if _error_code(e) != "InvocationDoesNotExist":
                    raise CommandError(f"ssm: error awaiting command '{command}': {e}") from e

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CommandError(
                    f"ssm: command '{command}' output not available after {self.output_timeout}s",
                    kind=CommandErrorKind.TIMEOUT,
                )
            time.sleep(min(delay, remaining))
            delay = min(delay * 2, self.wait_max)

    def copy_file(self, local_path: str, remote_path: str) -> None:
        """
        Deliver file content inline as base64.

        Bounded by the remote command line length; large files are not chunked.
        """
        self._require_client()
        try:
            content = Path(local_path).read_bytes()
        except OSError as e:
            raise CopyError(f"ssm: error reading local file '{local_path}': {e}") from e

        encoded = base64.b64encode(content).decode("ascii")
        try:
            self.run(f"echo -n {encoded} | base64 -d > {shlex.quote(remote_path)}")
        except CommandError as e:
            raise CopyError(
                f"ssm: cannot copy local file '{local_path}' to remote path '{remote_path}': {e}"
            ) from e
        logger.debug(f"[push] {local_path} → {remote_path}")
