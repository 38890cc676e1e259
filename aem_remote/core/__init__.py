"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger
from .interfaces import Connection
from .utils import env_to_script, to_int, to_bool, to_duration

__all__ = [
    "Connection",
    "RemoteError",
    "ConfigError",
    "ConnError",
    "ConnErrorKind",
    "NotConnectedError",
    "CommandError",
    "CommandErrorKind",
    "CopyError",
    "ScriptExecutionError",
    "setup_logging",
    "get_logger",
    "env_to_script",
    "to_int",
    "to_bool",
    "to_duration",
]
