"""
Configuration loader with priority: overrides > env > TOML
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional, Mapping

from ...core.exceptions import ConfigError
from ...domain.instance.models import InstanceConfig

ENV_PREFIX = "AEM_REMOTE_"


class ConfigLoader:
    """Configuration loader with priority support"""
    
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._env_prefix = ENV_PREFIX
        self._environ = os.environ if environ is None else environ
    
    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        
        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration '{path}': {e}") from e
    
    def load_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config: Dict[str, Any] = {}
        
        # Map plain environment variables to config keys
        env_mappings = {
            "CLIENT_TYPE": ("client", "type"),
            "WORK_DIR": ("system", "work_dir"),
            "DATA_DIR": ("system", "data_dir"),
            "CONNECT_TIMEOUT": ("connect_timeout",),
        }
        # Map prefixed families to nested string maps
        family_mappings = {
            "SETTING_": ("client", "settings"),
            "CREDENTIAL_": ("client", "credentials"),
        }
        
        for env_key, value in self._environ.items():
            if not env_key.startswith(self._env_prefix) or not value:
                continue
            name = env_key[len(self._env_prefix):]
            
            if name in env_mappings:
                self._set(config, env_mappings[name], value)
                continue
            
            for family, path in family_mappings.items():
                if name.startswith(family) and len(name) > len(family):
                    self._set(config, path + (name[len(family):].lower(),), value)
                    break
        
        return config
    
    def _set(self, config: Dict[str, Any], path: tuple, value: Any) -> None:
        """Set value under nested key path"""
        node = config
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    
    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}
        
        for config in configs:
            result = self._deep_merge(result, config)
        
        return result
    
    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()
        
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        
        return result
    
    def load(
        self,
        toml_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: overrides > env > TOML
        
        Args:
            toml_path: Path to TOML configuration file
            overrides: Explicit overrides
            use_env: Whether to load from environment variables
        
        Returns:
            Merged configuration dictionary
        """
        configs = []
        
        # 1. Load TOML if provided
        if toml_path:
            configs.append(self.load_toml(toml_path))
        
        # 2. Load environment variables
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)
        
        # 3. Apply overrides (highest priority)
        if overrides:
            configs.append(overrides)
        
        return self.merge_configs(*configs)


def load_instance_config(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstanceConfig:
    """Load and validate instance configuration"""
    data = ConfigLoader(environ).load(toml_path=path, overrides=overrides)
    try:
        return InstanceConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid instance configuration: {e}") from e
