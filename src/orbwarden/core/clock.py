"""Virtual simulation time.

One clock drives every time-dependent computation. Advancing it is a pure
state transition (:meth:`SimulationClock.tick`) so a render loop, a test or a
batch driver can all step it the same way.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


class SimulationClock:
    """Offset from wall-clock time, advanced cooperatively.

    Attributes:
        offset_minutes: Signed offset; negative is the past, positive the future.
        running: Whether :meth:`tick` advances the offset.
        speed_multiplier: Simulated minutes per real second.
    """

    def __init__(
        self,
        offset_minutes: float = 0.0,
        running: bool = False,
        speed_multiplier: float = 1.0,
    ) -> None:
        self.offset_minutes = offset_minutes
        self.running = running
        self.speed_multiplier = speed_multiplier

    def __repr__(self) -> str:
        return (
            f"SimulationClock(offset_minutes={self.offset_minutes!r}, "
            f"running={self.running!r}, speed_multiplier={self.speed_multiplier!r})"
        )

    @property
    def is_live(self) -> bool:
        """True when the clock shows real time (no offset, not playing)."""
        return self.offset_minutes == 0 and not self.running

    def tick(self, real_elapsed_seconds: float) -> float:
        """Advance by ``real_elapsed_seconds`` of real time if running.

        Negative elapsed times are treated as zero.

        Returns:
            The new offset in minutes.
        """
        if self.running:
            self.offset_minutes += self.speed_multiplier * max(0.0, real_elapsed_seconds)
        return self.offset_minutes

    def current_instant(self, now: datetime | None = None) -> datetime:
        """Wall-clock ``now`` shifted by the offset."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now + timedelta(minutes=self.offset_minutes)

    def play(self) -> None:
        self.running = True
        logger.debug("Playback started, speed=%s", self.speed_multiplier)

    def pause(self) -> None:
        self.running = False
        logger.debug("Playback paused at offset %.2f min", self.offset_minutes)

    def jump_to_now(self) -> None:
        self.offset_minutes = 0.0
        self.running = False
        logger.debug("Jumped to now")

    def set_speed(self, speed_multiplier: float) -> None:
        self.speed_multiplier = speed_multiplier
