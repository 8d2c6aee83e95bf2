"""Detect the VPN connection state from the network configuration connections."""

from __future__ import annotations

import logging
import subprocess

from snitchprot.errors import ProbeUnavailable
from snitchprot.models import ConnectionState

logger = logging.getLogger("snitchprot")


class StatusProbe:
    """Runs the status command and scans its output for a connected VPN.

    A line matches if it contains the provider marker (any case) and the
    connected marker (exact case). Without a matching line the VPN is considered
    disconnected. The exit status of the command isn't interpreted.
    """

    def __init__(
        self,
        command: list[str],
        provider_marker: str,
        connected_marker: str,
    ) -> None:
        self.command = list(command)
        self.provider_marker = provider_marker.lower()
        self.connected_marker = connected_marker

    def probe(self) -> ConnectionState:
        """Return the current VPN connection state."""
        try:
            proc = subprocess.run(  # noqa: S603
                self.command,
                capture_output=True,
                check=False,
            )
        except OSError as err:
            msg = f"Couldn't run status command '{' '.join(self.command)}'"
            raise ProbeUnavailable(msg) from err

        try:
            output = proc.stdout.decode("utf-8")
        except UnicodeDecodeError as err:
            msg = "Status command output couldn't be decoded"
            raise ProbeUnavailable(msg) from err

        if proc.returncode != 0:
            logger.debug("Status command exited with %s.", proc.returncode)

        if self.matches(output):
            return ConnectionState.CONNECTED
        return ConnectionState.DISCONNECTED

    def matches(self, output: str) -> bool:
        """Return True if any line reports a connected VPN of the provider."""
        return any(
            self.provider_marker in line.lower() and self.connected_marker in line
            for line in output.splitlines()
        )
