"""WebSocket host: drives parlor sessions for remote players."""

from .server import HostServer

__all__ = ["HostServer"]
