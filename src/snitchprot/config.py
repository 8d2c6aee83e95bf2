"""Store global configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from snitchprot.models import StoreBackend

# Identifier used to namespace the persisted state
APP_ID = "gg.hw.snitchprot"
# Keys of the persisted reconciler record
PREVIOUS_STATE_KEY = "previous_state"
LAST_REFRESH_TIME_KEY = "last_refresh_time"
# Seconds after which the profile is applied again even without a transition
REFRESH_INTERVAL = 60

# Configuration file, optional
CONFIG_PATH = Path(os.environ.get("SNITCHPROT_CONFIG", "/etc/snitchprot/config.yaml"))
# Audit log
LOG_HOME = Path("/var/logs")
LOG_FILE_NAME = "snitchprot.log"
# Directory of the file backed state store
STATE_DIR = Path.home().joinpath(".local", "state")

# External commands
SCUTIL_COMMAND = ["sudo", "/usr/sbin/scutil", "--nc", "list"]
LITTLESNITCH_COMMAND = [
    "sudo",
    "/Applications/Little Snitch.app/Contents/Components/littlesnitch",
]
DEFAULTS_COMMAND = "/usr/bin/defaults"
VPN_PROVIDER_MARKER = "proton"
VPN_CONNECTED_MARKER = "Connected"
VPN_OFF_PROFILE = "VPN Off"


def _log_home() -> Path:
    return Path(os.environ.get("LOG_HOME", str(LOG_HOME)))


class ProbeSettings(BaseModel):
    """Command and markers used to detect the VPN connection."""

    command: list[str] = Field(default_factory=lambda: list(SCUTIL_COMMAND))
    provider_marker: str = VPN_PROVIDER_MARKER
    connected_marker: str = VPN_CONNECTED_MARKER

    @field_validator("command")
    @classmethod
    def _non_empty_command(cls, v: list[str]) -> list[str]:
        if not v:
            msg = "command can't be empty"
            raise ValueError(msg)
        return v

    @field_validator("provider_marker", "connected_marker")
    @classmethod
    def _non_empty_marker(cls, v: str) -> str:
        if not v:
            msg = "marker can't be empty"
            raise ValueError(msg)
        return v


class ActuatorSettings(BaseModel):
    """Firewall control command and the profile enabled without VPN."""

    command: list[str] = Field(default_factory=lambda: list(LITTLESNITCH_COMMAND))
    off_profile: str = VPN_OFF_PROFILE

    @field_validator("command")
    @classmethod
    def _non_empty_command(cls, v: list[str]) -> list[str]:
        if not v:
            msg = "command can't be empty"
            raise ValueError(msg)
        return v


class StoreSettings(BaseModel):
    """Where the reconciler record is persisted."""

    backend: StoreBackend = StoreBackend.FILE
    state_dir: Path = STATE_DIR


class Settings(BaseModel):
    """Complete configuration of the reconciler."""

    app_id: str = APP_ID
    log_home: Path = Field(default_factory=_log_home)
    log_level: str = "INFO"
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
    actuator: ActuatorSettings = Field(default_factory=ActuatorSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"unknown log level '{v}'"
            raise ValueError(msg)
        return level

    @property
    def log_path(self) -> Path:
        """Path of the audit log."""
        return self.log_home.joinpath(LOG_FILE_NAME)
