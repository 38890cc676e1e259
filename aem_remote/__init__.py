"""
aem_remote - remote execution layer for provisioning AEM instance machines

Provides a uniform client over pluggable transports:
- SSH (Paramiko, key authentication, SFTP uploads)
- AWS Systems Manager (boto3, asynchronous command dispatch with polling)
- Local subprocesses (development and tests)

On top of the client: environment injection, scoped sudo elevation,
connect-with-retry, atomic file writes and recursive directory copies,
and the script hooks of an AEM instance machine.
"""

__version__ = "0.1.0"

from .core import (
    Connection,
    RemoteError,
    ConfigError,
    ConnError,
    ConnErrorKind,
    NotConnectedError,
    CommandError,
    CommandErrorKind,
    CopyError,
    ScriptExecutionError,
    setup_logging,
    get_logger,
    env_to_script,
)
from .infrastructure.connections import (
    SSHConnection,
    AWSSSMConnection,
    LocalConnection,
)
from .domain.client import Client, ClientManager, with_sudo
from .domain.instance import (
    InstanceConfig,
    InstanceScript,
    InstanceClient,
    InstanceProvisioner,
)
from .adapters.config import ConfigLoader, load_instance_config

__all__ = [
    "__version__",
    # Connections
    "Connection",
    "SSHConnection",
    "AWSSSMConnection",
    "LocalConnection",
    # Client
    "Client",
    "ClientManager",
    "with_sudo",
    # Instance
    "InstanceConfig",
    "InstanceScript",
    "InstanceClient",
    "InstanceProvisioner",
    # Config
    "ConfigLoader",
    "load_instance_config",
    # Errors
    "RemoteError",
    "ConfigError",
    "ConnError",
    "ConnErrorKind",
    "NotConnectedError",
    "CommandError",
    "CommandErrorKind",
    "CopyError",
    "ScriptExecutionError",
    # Utilities
    "setup_logging",
    "get_logger",
    "env_to_script",
]
