"""
Unified exception definitions
"""
import copy
from enum import Enum
from typing import Optional


class RemoteError(Exception):
    """Base exception class"""

    def with_context(self, message: str) -> "RemoteError":
        """Return a copy of this error with ``message`` prepended"""
        err = copy.copy(self)
        err.args = (f"{message}: {self}",)
        return err


class ConfigError(RemoteError):
    """Configuration error"""
    pass


class ConnErrorKind(Enum):
    AUTH_FAILURE = "auth_failure"
    NETWORK_FAILURE = "network_failure"
    CONFIG_INVALID = "config_invalid"
    TIMEOUT = "timeout"


class ConnError(RemoteError):
    """Connection error"""

    def __init__(self, message: str = "", kind: ConnErrorKind = ConnErrorKind.NETWORK_FAILURE):
        super().__init__(message)
        self.kind = kind


class NotConnectedError(RemoteError):
    """Operation issued on a connection that is not connected"""
    pass


class CommandErrorKind(Enum):
    EXECUTION_FAILURE = "execution_failure"
    TIMEOUT = "timeout"


class CommandError(RemoteError):
    """
    Remote command error.

    ``output`` holds whatever the command printed before failing; when present
    it is appended to the message.
    """

    def __init__(
        self,
        message: str = "",
        kind: CommandErrorKind = CommandErrorKind.EXECUTION_FAILURE,
        output: Optional[str] = None,
    ):
        if output:
            message = f"{message}\n\n{output}"
        super().__init__(message)
        self.kind = kind
        self.output = output


class CopyError(RemoteError):
    """File transfer error"""
    pass


class ScriptExecutionError(RemoteError):
    """Script execution error"""
    pass
