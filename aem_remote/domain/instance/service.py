"""
Instance provisioning over a remote client

Runs the bootstrap/create/configure/delete hooks of an AEM instance machine
and the file/config steps around them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from ...core.constants import COMPOSE_WRAPPER_URL
from ...core.exceptions import RemoteError, ScriptExecutionError
from ...core.logging import get_logger
from ...core.utils import env_to_script
from ..client import Client, ClientManager, with_sudo
from .models import APPLY_CONFIG_COMMAND, InstanceConfig, InstanceScript

logger = get_logger(__name__)


class InstanceClient:
    """Provisioning steps for one connected instance machine"""

    def __init__(self, client: Client, config: InstanceConfig) -> None:
        self.client = client
        self.config = config

    @classmethod
    def connect(cls, manager: ClientManager, config: InstanceConfig) -> "InstanceClient":
        """
        Make a client, await the connection and prepare its environment.

        Raises:
            ConfigError: If the client type or settings are invalid
            ConnError: If the machine is not reachable within the timeout
        """
        logger.info(f"Connecting to AEM instance machine using {config.client_type}")
        client = manager.make(config.client_type, config.client_settings())
        client.connect_with_retry(
            config.connect_timeout,
            lambda: logger.info("Awaiting connection to AEM instance machine"),
        )

        client.env["AEM_CLI_VERSION"] = config.compose_version
        client.env["AEM_OUTPUT_LOG_MODE"] = "both"
        client.work_dir = config.work_dir
        try:
            client.setup_env()
        except RemoteError:
            client.disconnect()
            raise

        logger.info(f"Connected to AEM instance machine using {client.connection.info()}")
        return cls(client, config)

    def close(self) -> None:
        self.client.disconnect()

    @property
    def data_dir(self) -> str:
        return self.config.data_dir

    # --------------------
    # Directories and files
    # --------------------
    def prepare_work_dir(self) -> None:
        self.client.dir_ensure(self.client.work_dir)

    def prepare_data_dir(self) -> None:
        self.client.dir_ensure(self.data_dir)

    def copy_files(self) -> None:
        for local_path, remote_path in self.config.files.items():
            try:
                self.client.path_copy(local_path, remote_path, True)
            except RemoteError as e:
                raise e.with_context(f"unable to copy path '{local_path}' to '{remote_path}'") from e

    def install_compose_cli(self) -> None:
        if not self.config.compose_download:
            logger.info(
                "Skipping AEM Compose CLI wrapper download. "
                "It is expected to be alternatively installed under the data directory."
            )
            return
        if self.client.file_exists(f"{self.data_dir}/aemw"):
            return
        logger.info("Downloading AEM Compose CLI wrapper")
        try:
            out = self.client.run_shell_command(f"curl -s '{COMPOSE_WRAPPER_URL}' -o 'aemw'", self.data_dir)
        except RemoteError as e:
            raise e.with_context("cannot download AEM Compose CLI wrapper") from e
        logger.info(out)
        logger.info("Downloaded AEM Compose CLI wrapper")

    def write_config_file(self) -> None:
        if not self.config.compose_config:
            logger.info("Skipping AEM configuration file (no config provided)")
            return
        path = f"{self.data_dir}/aem/default/etc/aem.yml"
        try:
            self.client.file_write(path, self.config.compose_config)
        except RemoteError as e:
            raise e.with_context("unable to copy AEM configuration file") from e

    def save_profile_script(self) -> None:
        """Expose client and system env to login shells via /etc/profile.d"""
        env_file = f"/etc/profile.d/{self.config.service_name}.sh"
        env = {**self.client.env, **self.config.env}
        with with_sudo(self.client):
            try:
                self.client.file_write(env_file, env_to_script(env))
            except RemoteError as e:
                raise e.with_context(f"unable to write AEM environment variables file '{env_file}'") from e

    def delete_data_dir(self) -> None:
        try:
            self.client.path_delete(self.data_dir)
        except RemoteError as e:
            raise e.with_context("cannot delete AEM data directory") from e

    # --------------------
    # Lifecycle
    # --------------------
    def bootstrap(self) -> None:
        self.do_action_once(
            "bootstrap",
            self.client.work_dir,
            lambda: self.run_script("bootstrap", self.config.bootstrap, "."),
        )

    def create(self) -> None:
        logger.info("Creating AEM instance(s)")
        self.save_profile_script()
        self.run_script("create", self.config.create, self.data_dir)
        logger.info("Created AEM instance(s)")

    def launch(self) -> None:
        logger.info("Launching AEM instance(s)")
        self.apply_config()
        self.run_script("configure", self.config.configure, self.data_dir)
        logger.info("Launched AEM instance(s)")

    def apply_config(self) -> None:
        logger.info("Applying AEM instance configuration")
        try:
            out = self.client.run_shell_command(APPLY_CONFIG_COMMAND, self.data_dir)
        except RemoteError as e:
            raise e.with_context("unable to apply AEM instance configuration") from e
        logger.info(out)
        logger.info("Applied AEM instance configuration")

    def terminate(self) -> None:
        logger.info("Terminating AEM instance(s)")
        self.run_script("delete", self.config.delete, self.data_dir)
        logger.info("Terminated AEM instance(s)")

    def do_action_once(self, name: str, lock_dir: str, action: Callable[[], None]) -> None:
        """Run action unless its lock file exists, then write the lock file"""
        lock = f"{lock_dir}/provider/{name}.lock"
        try:
            exists = self.client.file_exists(lock)
        except RemoteError as e:
            raise e.with_context(f"cannot read lock file '{lock}'") from e
        if exists:
            logger.info(f"Skipping AEM instance action '{name}' (lock file already exists '{lock}')")
            return
        action()
        try:
            self.client.file_write(lock, datetime.now().isoformat())
        except RemoteError as e:
            raise e.with_context(f"cannot save lock file '{lock}'") from e

    # --------------------
    # Script hooks
    # --------------------
    def run_script(self, name: str, script: InstanceScript, dir: str) -> None:
        if script.script:
            self.run_script_multiline(name, script.script, dir)
        if script.inline:
            self.run_script_inline(name, script.inline, dir)

    def run_script_inline(self, name: str, commands: List[str], dir: str) -> None:
        total = len(commands)
        for i, cmd in enumerate(commands, start=1):
            logger.info(f"Executing command '{cmd}' of script '{name}' ({i}/{total})")
            try:
                out = self.client.run_shell_script(name, cmd, dir)
            except RemoteError as e:
                raise ScriptExecutionError(
                    f"unable to execute command '{cmd}' of script '{name}' properly: {e}"
                ) from e
            logger.info(f"Executed command '{cmd}' of script '{name}' ({i}/{total})")
            logger.info(out)

    def run_script_multiline(self, name: str, script: str, dir: str) -> None:
        logger.info(f"Executing instance script '{name}'")
        try:
            out = self.client.run_shell_script(name, script, dir)
        except RemoteError as e:
            raise ScriptExecutionError(f"unable to execute script '{name}' properly: {e}") from e
        logger.info(f"Executed instance script '{name}'")
        logger.info(out)


class InstanceProvisioner:
    """Create/update and delete sequences for an instance machine"""

    def __init__(self, manager: Optional[ClientManager] = None) -> None:
        self.manager = manager or ClientManager()

    def apply(self, config: InstanceConfig, create: bool) -> None:
        logger.info("Started setting up AEM instance resource")
        ic = InstanceClient.connect(self.manager, config)
        try:
            ic.copy_files()
            if create:
                ic.bootstrap()
            ic.prepare_work_dir()
            ic.prepare_data_dir()
            ic.install_compose_cli()
            ic.write_config_file()
            if create:
                ic.create()
            ic.launch()
        finally:
            self._close(ic)
        logger.info("Finished setting up AEM instance resource")

    def destroy(self, config: InstanceConfig) -> None:
        logger.info("Started deleting AEM instance resource")
        ic = InstanceClient.connect(self.manager, config)
        try:
            ic.terminate()
            ic.delete_data_dir()
        finally:
            self._close(ic)
        logger.info("Finished deleting AEM instance resource")

    @staticmethod
    def _close(ic: InstanceClient) -> None:
        try:
            ic.close()
        except RemoteError as e:
            logger.warning(f"Unable to disconnect from AEM instance: {e}")
