"""
Configuration adapters
"""
from .loader import ConfigLoader, load_instance_config

__all__ = [
    "ConfigLoader",
    "load_instance_config",
]
