"""Various enums used throughout the package."""

from enum import Enum


class ConnectionState(str, Enum):
    """Define the VPN connection states as they are persisted."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class Decision(str, Enum):
    """Define the outcomes of a reconciliation cycle."""

    TRANSITION = "transition"
    REFRESH = "refresh"
    NOOP = "noop"


class StoreBackend(str, Enum):
    """Define the backends the state can be persisted with."""

    FILE = "file"
    DEFAULTS = "defaults"
