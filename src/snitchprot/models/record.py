"""The record persisted between reconciliation cycles."""

from __future__ import annotations

from pydantic import BaseModel

from snitchprot.errors import StoreCorrupt


class ReconcilerRecord(BaseModel):
    """Last acted upon state and the time it was applied.

    An empty ``previous_state`` means the state was never recorded, a missing
    ``last_refresh_time`` forces a refresh.
    """

    previous_state: str = ""
    last_refresh_time: int | None = None

    @classmethod
    def from_store(
        cls,
        previous_state: str | None,
        last_refresh_time: str | None,
    ) -> ReconcilerRecord:
        """Build the record from the raw values read from the state store."""
        timestamp: int | None = None
        if last_refresh_time is not None:
            if not (last_refresh_time.isascii() and last_refresh_time.isdigit()):
                msg = f"Persisted refresh time '{last_refresh_time}' isn't an integer"
                raise StoreCorrupt(msg)
            timestamp = int(last_refresh_time)

        return cls(previous_state=previous_state or "", last_refresh_time=timestamp)

    def needs_refresh(self, now: int, interval: int) -> bool:
        """Return True if the last refresh is missing or at least interval old."""
        if self.last_refresh_time is None:
            return True
        return now - self.last_refresh_time >= interval
