from __future__ import annotations

import subprocess

import pytest

from snitchprot import config
from snitchprot.errors import ActuatorInvocationFailed
from snitchprot.models import ConnectionState
from snitchprot.services.actuator import ProfileActuator

from conftest import completed

LITTLESNITCH = "/Applications/Little Snitch.app/Contents/Components/littlesnitch"


@pytest.fixture
def profile_actuator() -> ProfileActuator:
    return ProfileActuator(
        command=config.LITTLESNITCH_COMMAND,
        off_profile=config.VPN_OFF_PROFILE,
    )


class TestProfileActuator:
    """Test the Little Snitch profile switch."""

    def test_connected_disables_monitoring(
        self,
        profile_actuator: ProfileActuator,
    ) -> None:
        assert profile_actuator.arguments(ConnectionState.CONNECTED) == [
            "sudo",
            LITTLESNITCH,
            "profile",
            "-d",
        ]

    def test_disconnected_enables_off_profile(
        self,
        profile_actuator: ProfileActuator,
    ) -> None:
        assert profile_actuator.arguments(ConnectionState.DISCONNECTED) == [
            "sudo",
            LITTLESNITCH,
            "profile",
            "-a",
            "VPN Off",
        ]

    def test_mapping_is_stable(
        self,
        monkeypatch: pytest.MonkeyPatch,
        profile_actuator: ProfileActuator,
    ) -> None:
        """The same state always results in the same command."""
        calls: list[list[str]] = []

        def _run(args, **kwargs):
            calls.append(args)
            return completed(args)

        monkeypatch.setattr(subprocess, "run", _run)

        sequence = [
            ConnectionState.DISCONNECTED,
            ConnectionState.CONNECTED,
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTED,
        ]
        for state in sequence:
            profile_actuator.apply(state)

        assert calls[0] == calls[3]
        assert calls[1] == calls[2]
        assert calls[0][-2:] == ["-a", "VPN Off"]
        assert calls[1][-1] == "-d"

    def test_non_zero_exit_isnt_an_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
        profile_actuator: ProfileActuator,
    ) -> None:
        monkeypatch.setattr(
            subprocess,
            "run",
            lambda args, **kwargs: completed(args, stdout=b"denied", returncode=1),
        )

        proc = profile_actuator.apply(ConnectionState.CONNECTED)

        assert proc.returncode == 1

    def test_command_not_found(
        self,
        monkeypatch: pytest.MonkeyPatch,
        profile_actuator: ProfileActuator,
    ) -> None:
        def _run(args, **kwargs):
            raise PermissionError(13, "Permission denied", args[0])

        monkeypatch.setattr(subprocess, "run", _run)

        with pytest.raises(ActuatorInvocationFailed):
            profile_actuator.apply(ConnectionState.DISCONNECTED)
