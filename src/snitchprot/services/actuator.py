"""Switch the Little Snitch profile."""

from __future__ import annotations

import subprocess

from snitchprot.errors import ActuatorInvocationFailed
from snitchprot.models import ConnectionState


class ProfileActuator:
    """Applies the firewall action belonging to a connection state.

    Connected disables monitoring, disconnected enables the off profile. The
    command runs to completion, its exit status and output aren't checked.
    """

    def __init__(self, command: list[str], off_profile: str) -> None:
        self.command = list(command)
        self.off_profile = off_profile

    def arguments(self, state: ConnectionState) -> list[str]:
        """Return the argument vector for the connection state."""
        if state == ConnectionState.CONNECTED:
            return [*self.command, "profile", "-d"]
        return [*self.command, "profile", "-a", self.off_profile]

    def apply(self, state: ConnectionState) -> subprocess.CompletedProcess[bytes]:
        """Run the firewall control command for the connection state."""
        args = self.arguments(state)
        try:
            proc = subprocess.run(  # noqa: S603
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as err:
            msg = f"Couldn't run firewall command '{' '.join(args)}'"
            raise ActuatorInvocationFailed(msg) from err

        return proc
