"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import List


class Connection(ABC):
    """
    Transport primitive used by the client.

    Lifecycle is ``connect()`` -> ``command()``/``copy_file()`` ->
    ``disconnect()``. A connection serves one logical session and is not
    safe for concurrent use.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the live transport handle is allocated"""
        pass

    @abstractmethod
    def connect(self) -> None:
        """Establish the transport session, raising ConnError on failure"""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Release the session; no-op when never connected"""
        pass

    @abstractmethod
    def command(self, cmd_line: List[str]) -> str:
        """Run one command line and return combined output"""
        pass

    @abstractmethod
    def copy_file(self, local_path: str, remote_path: str) -> None:
        """Upload a local file to the remote path"""
        pass

    @abstractmethod
    def info(self) -> str:
        """Human-readable description of the endpoint"""
        pass

    @abstractmethod
    def user(self) -> str:
        """Effective remote user"""
        pass
