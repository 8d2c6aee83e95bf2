"""Reconcile the Little Snitch profile with the VPN connection state.

One call of ``Reconciler.run_cycle`` is one complete cycle: probe the VPN,
read the persisted record, decide, switch the profile and persist. Exactly one
reconciler is expected to run at a time, there is no locking.
"""

from __future__ import annotations

import logging
from typing import Callable

from pydantic import BaseModel

from snitchprot import config, helpers
from snitchprot.models import ConnectionState, Decision, ReconcilerRecord
from snitchprot.services import actuator, probe, store

logger = logging.getLogger("snitchprot")
audit = logging.getLogger("snitchprot.audit")


class CycleResult(BaseModel):
    """Outcome of a single reconciliation cycle."""

    state: ConnectionState
    previous_state: str
    decision: Decision
    timestamp: int


def decide(
    record: ReconcilerRecord,
    current: ConnectionState,
    now: int,
    interval: int = config.REFRESH_INTERVAL,
) -> Decision:
    """Decide what a cycle has to do."""
    if record.previous_state != current.value:
        return Decision.TRANSITION
    if record.needs_refresh(now, interval):
        return Decision.REFRESH
    return Decision.NOOP


class Reconciler:
    """Drives the profile actuator from the probed VPN state."""

    def __init__(
        self,
        status_probe: probe.StatusProbe,
        state_store: store.StateStore,
        profile_actuator: actuator.ProfileActuator,
        clock: Callable[[], int] = helpers.unix_now,
        refresh_interval: int = config.REFRESH_INTERVAL,
    ) -> None:
        self.probe = status_probe
        self.store = state_store
        self.actuator = profile_actuator
        self.clock = clock
        self.refresh_interval = refresh_interval

    @classmethod
    def from_settings(cls, settings: config.Settings) -> Reconciler:
        """Create a reconciler with the collaborators from the configuration."""
        return cls(
            status_probe=probe.StatusProbe(
                command=settings.probe.command,
                provider_marker=settings.probe.provider_marker,
                connected_marker=settings.probe.connected_marker,
            ),
            state_store=store.build_store(settings),
            profile_actuator=actuator.ProfileActuator(
                command=settings.actuator.command,
                off_profile=settings.actuator.off_profile,
            ),
        )

    def read_record(self) -> ReconcilerRecord:
        """Read the persisted record, absent keys become the defaults."""
        return ReconcilerRecord.from_store(
            self.store.get(config.PREVIOUS_STATE_KEY),
            self.store.get(config.LAST_REFRESH_TIME_KEY),
        )

    def run_cycle(self) -> CycleResult:
        """Run one reconciliation cycle.

        Errors propagate to the caller. A probe or read failure leaves the store
        untouched, a write failure after the profile switch doesn't undo it.
        """
        current = self.probe.probe()
        record = self.read_record()
        now = self.clock()

        decision = decide(record, current, now, self.refresh_interval)
        logger.debug(
            "Observed '%s', recorded '%s' at %s: %s.",
            current.value,
            record.previous_state,
            record.last_refresh_time,
            decision.value,
        )

        if decision == Decision.TRANSITION:
            audit.info(
                "VPN state changed from '%s' to '%s'",
                record.previous_state,
                current.value,
            )
            self._apply_logged(current)
        elif decision == Decision.REFRESH:
            self.actuator.apply(current)

        if decision != Decision.NOOP:
            self.store.set(config.PREVIOUS_STATE_KEY, current.value)
            self.store.set(config.LAST_REFRESH_TIME_KEY, str(now))

        return CycleResult(
            state=current,
            previous_state=record.previous_state,
            decision=decision,
            timestamp=now,
        )

    def _apply_logged(self, state: ConnectionState) -> None:
        if state == ConnectionState.CONNECTED:
            audit.info("Disabling Little Snitch profile...")
            proc = self.actuator.apply(state)
            logger.debug("Firewall command output: %s", proc.stdout)
            audit.info("Little Snitch profile disabled")
        else:
            profile = self.actuator.off_profile
            audit.info("Enabling '%s' profile...", profile)
            proc = self.actuator.apply(state)
            logger.debug("Firewall command output: %s", proc.stdout)
            audit.info("Little Snitch profile '%s' enabled", profile)
