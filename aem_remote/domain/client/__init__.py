"""
Client domain module
"""
from .client import Client, with_sudo
from .manager import ClientManager

__all__ = [
    "Client",
    "ClientManager",
    "with_sudo",
]
