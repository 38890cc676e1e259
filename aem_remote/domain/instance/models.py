"""
Instance domain models
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core.constants import (
    DEFAULT_COMPOSE_VERSION,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DATA_DIR,
    DEFAULT_SERVICE_NAME,
    DEFAULT_WORK_DIR,
)
from ...core.exceptions import ConfigError
from ...core.utils import to_bool, to_duration

CREATE_SCRIPT_INLINE = [
    "sh aemw instance init",
    "sh aemw instance create",
]
APPLY_CONFIG_COMMAND = "sh aemw instance launch"
CONFIGURE_SCRIPT_INLINE = [
    "sh aemw osgi config save --pid 'org.apache.sling.jcr.davex.impl.servlets.SlingDavExServlet' --input-string 'alias: /crx/server'",
    "sh aemw repl agent setup -A --location 'author' --name 'publish' --input-string '{enabled: true, transportUri: \"http://localhost:4503/bin/receive?sling:authRequestLogin=1\", transportUser: admin, transportPassword: admin, userId: admin}'",
]
DELETE_SCRIPT_INLINE = [
    "sh aemw instance delete",
]


@dataclass
class InstanceScript:
    """
    Script hook

    Attributes:
        inline: Commands run one by one, each as its own remote script
        script: Multiline script run as a whole before the inline commands
    """
    inline: List[str] = field(default_factory=list)
    script: str = ""

    def is_empty(self) -> bool:
        return not self.script and not self.inline

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], default_inline: Optional[List[str]] = None) -> "InstanceScript":
        """Create from dictionary, falling back to default inline commands"""
        if data is None:
            return cls(inline=list(default_inline or []))
        inline = data.get("inline", [])
        if not isinstance(inline, list):
            raise ConfigError("script 'inline' must be a list of commands")
        return cls(
            inline=[str(cmd) for cmd in inline],
            script=str(data.get("script", "")),
        )


@dataclass
class InstanceConfig:
    """AEM instance machine configuration"""
    client_type: str
    settings: Dict[str, str] = field(default_factory=dict)
    credentials: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, str] = field(default_factory=dict)

    # System
    data_dir: str = DEFAULT_DATA_DIR
    work_dir: str = DEFAULT_WORK_DIR
    env: Dict[str, str] = field(default_factory=dict)
    service_name: str = DEFAULT_SERVICE_NAME
    bootstrap: InstanceScript = field(default_factory=InstanceScript)

    # Compose
    compose_download: bool = True
    compose_version: str = DEFAULT_COMPOSE_VERSION
    compose_config: str = ""  # empty keeps aem.yml of the data dir untouched
    create: InstanceScript = field(default_factory=lambda: InstanceScript(inline=list(CREATE_SCRIPT_INLINE)))
    configure: InstanceScript = field(default_factory=lambda: InstanceScript(inline=list(CONFIGURE_SCRIPT_INLINE)))
    delete: InstanceScript = field(default_factory=lambda: InstanceScript(inline=list(DELETE_SCRIPT_INLINE)))

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def client_settings(self) -> Dict[str, str]:
        """Settings with credentials merged on top"""
        return {**self.settings, **self.credentials}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstanceConfig":
        """Create from dictionary"""
        client = data.get("client", {})
        client_type = client.get("type")
        if not client_type:
            raise ConfigError("client 'type' is required")
        system = data.get("system", {})
        compose = data.get("compose", {})
        return cls(
            client_type=str(client_type),
            settings=_string_map(client.get("settings", {}), "client.settings"),
            credentials=_string_map(client.get("credentials", {}), "client.credentials"),
            files=_string_map(data.get("files", {}), "files"),
            data_dir=str(system.get("data_dir", DEFAULT_DATA_DIR)),
            work_dir=str(system.get("work_dir", DEFAULT_WORK_DIR)),
            env=_string_map(system.get("env", {}), "system.env"),
            service_name=str(system.get("service_name", DEFAULT_SERVICE_NAME)),
            bootstrap=InstanceScript.from_dict(system.get("bootstrap")),
            compose_download=_to_flag(compose.get("download", True)),
            compose_version=str(compose.get("version", DEFAULT_COMPOSE_VERSION)),
            compose_config=str(compose.get("config", "")),
            create=InstanceScript.from_dict(compose.get("create"), CREATE_SCRIPT_INLINE),
            configure=InstanceScript.from_dict(compose.get("configure"), CONFIGURE_SCRIPT_INLINE),
            delete=InstanceScript.from_dict(compose.get("delete"), DELETE_SCRIPT_INLINE),
            connect_timeout=_to_seconds(data.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
        )


def _string_map(value: Any, name: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return {str(k): _to_setting(v) for k, v in value.items()}


def _to_setting(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_seconds(value: Any) -> float:
    if isinstance(value, str):
        return to_duration(value)
    return float(value)


def _to_flag(value: Any) -> bool:
    if isinstance(value, str):
        return to_bool(value)
    return bool(value)
