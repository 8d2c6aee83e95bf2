"""Data models used by the reconciler."""

from .enums import ConnectionState, Decision, StoreBackend
from .record import ReconcilerRecord

__all__ = ["ConnectionState", "Decision", "ReconcilerRecord", "StoreBackend"]
