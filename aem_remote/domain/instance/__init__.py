"""
Instance domain module
"""
from .models import InstanceConfig, InstanceScript
from .service import InstanceClient, InstanceProvisioner

__all__ = [
    "InstanceConfig",
    "InstanceScript",
    "InstanceClient",
    "InstanceProvisioner",
]
