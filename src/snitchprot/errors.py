"""Errors that end a reconciliation cycle."""

from __future__ import annotations


class SnitchprotError(Exception):
    """Base class for all fatal errors of a cycle."""


class ConfigurationError(SnitchprotError):
    """The configuration file is unreadable or doesn't adhere to the schema."""


class ProbeUnavailable(SnitchprotError):
    """The VPN status command couldn't be run or its output couldn't be decoded."""


class StoreCorrupt(SnitchprotError):
    """A persisted value exists but can't be parsed into its expected type."""


class StoreReadFailed(SnitchprotError):
    """The state store couldn't be read."""


class StoreWriteFailed(SnitchprotError):
    """The state store couldn't be written.

    When raised after a profile switch the switch stands, it is not rolled back.
    """


class ActuatorInvocationFailed(SnitchprotError):
    """The firewall control command couldn't be started."""
