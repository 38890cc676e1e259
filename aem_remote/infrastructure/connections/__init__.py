"""
Transport connections
"""
from .ssh import SSHConnection, PinnedHostKeyPolicy, parse_private_key
from .aws_ssm import AWSSSMConnection
from .local import LocalConnection

__all__ = [
    "SSHConnection",
    "PinnedHostKeyPolicy",
    "parse_private_key",
    "AWSSSMConnection",
    "LocalConnection",
]
