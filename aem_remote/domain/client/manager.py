"""
Client factory selecting the transport by type name
"""
from typing import Callable, Dict

from ...core.constants import CLIENT_TYPE_AWS_SSM, CLIENT_TYPE_SSH
from ...core.exceptions import ConfigError
from ...core.interfaces import Connection
from ...core.logging import get_logger
from ...core.utils import to_bool, to_duration, to_int
from ...infrastructure.connections import AWSSSMConnection, SSHConnection
from .client import Client

logger = get_logger(__name__)


def _first(settings: Dict[str, str], *keys: str) -> str:
    for key in keys:
        if settings.get(key):
            return settings[key]
    return ""


def _ssh_connection(settings: Dict[str, str]) -> Connection:
    return SSHConnection(
        host=settings.get("host", ""),
        user=settings.get("user", ""),
        port=to_int(settings.get("port", "")),
        private_key=settings.get("private_key", ""),
        private_key_passphrase=settings.get("private_key_passphrase", ""),
        secure=to_bool(settings.get("secure", "")),
    )


def _aws_ssm_connection(settings: Dict[str, str]) -> Connection:
    return AWSSSMConnection(
        instance_id=settings.get("instance_id", ""),
        region=settings.get("region", ""),
        output_timeout=to_duration(_first(settings, "output_timeout", "command_output_timeout")),
        wait_min=to_duration(_first(settings, "min_wait_delay", "command_wait_min")),
        wait_max=to_duration(_first(settings, "max_wait_delay", "command_wait_max")),
    )


class ClientManager:
    """Builds clients for the supported transport types"""

    connection_factories: Dict[str, Callable[[Dict[str, str]], Connection]] = {
        CLIENT_TYPE_SSH: _ssh_connection,
        CLIENT_TYPE_AWS_SSM: _aws_ssm_connection,
    }

    def make(self, type_name: str, settings: Dict[str, str]) -> Client:
        """
        Create a client for the transport ``type_name``.

        Raises:
            ConfigError: If the type is unknown or a setting cannot be coerced
        """
        factory = self.connection_factories.get(type_name)
        if factory is None:
            raise ConfigError(f"unknown AEM client type: {type_name}")
        try:
            connection = factory(settings)
        except ConfigError as e:
            raise e.with_context(f"invalid settings for client type '{type_name}'") from e
        logger.debug(f"[client] created {type_name} client")
        return Client(connection, type_name=type_name, settings=dict(settings))

    def use(
        self,
        type_name: str,
        settings: Dict[str, str],
        callback: Callable[[Client], None],
    ) -> None:
        """Make a client, connect, run callback and disconnect"""
        self.make(type_name, settings).use(callback)
