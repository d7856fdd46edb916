"""TimerService - named countdowns computed lazily from wall-clock time.

There is no background thread and no scheduled callback. Expiry is found by
asking: either a caller polls and submits a timeout action, or the engine
checks inline while handling the next action.
"""

from typing import Optional

from partyengine.engine.clock import Clock, SystemClock
from partyengine.models.snapshots import TimerEntry, TimerSnapshot


class TimerService:
    """Tracks named countdowns as (duration, start time) pairs."""

    def __init__(self, snapshot: Optional[TimerSnapshot] = None, clock: Optional[Clock] = None):
        self._snapshot = snapshot if snapshot is not None else TimerSnapshot()
        self._clock = clock or SystemClock()

    @classmethod
    def from_snapshot(cls, snapshot: TimerSnapshot, clock: Optional[Clock] = None) -> "TimerService":
        return cls(snapshot.model_copy(deep=True), clock)

    def snapshot(self) -> TimerSnapshot:
        return self._snapshot.model_copy(deep=True)

    def start(self, name: str, duration_seconds: float) -> None:
        """Start a countdown, silently replacing any timer with the same name."""
        self._snapshot.timers[name] = TimerEntry(
            duration_seconds=duration_seconds,
            started_at=self._clock.now(),
        )

    def has(self, name: str) -> bool:
        return name in self._snapshot.timers

    def _get(self, name: str) -> TimerEntry:
        try:
            return self._snapshot.timers[name]
        except KeyError:
            raise KeyError(f"Timer {name!r} not found") from None

    def elapsed(self, name: str) -> float:
        timer = self._get(name)
        if timer.paused_remaining is not None:
            return timer.duration_seconds - timer.paused_remaining
        return max(0.0, self._clock.now() - timer.started_at)

    def remaining(self, name: str) -> float:
        timer = self._get(name)
        if timer.paused_remaining is not None:
            return timer.paused_remaining
        return max(0.0, timer.duration_seconds - (self._clock.now() - timer.started_at))

    def is_expired(self, name: str) -> bool:
        return self.remaining(name) <= 0

    def is_paused(self, name: str) -> bool:
        return self._get(name).paused_remaining is not None

    def restart(self, name: str, duration_seconds: Optional[float] = None) -> None:
        """Start the timer again from now, keeping its duration unless one is given."""
        duration = duration_seconds if duration_seconds is not None else self._get(name).duration_seconds
        self.start(name, duration)

    def pause(self, name: str) -> None:
        timer = self._get(name)
        if timer.paused_remaining is None:
            timer.paused_remaining = self.remaining(name)

    def resume(self, name: str) -> None:
        timer = self._get(name)
        if timer.paused_remaining is None:
            return
        # Shift the start so the remaining time picks up where it paused
        timer.started_at = self._clock.now() - (timer.duration_seconds - timer.paused_remaining)
        timer.paused_remaining = None

    def names(self) -> list[str]:
        return sorted(self._snapshot.timers)

    def pause_all(self) -> None:
        for name in self.names():
            self.pause(name)

    def resume_all(self) -> None:
        for name in self.names():
            self.resume(name)

    def cancel(self, name: str) -> bool:
        return self._snapshot.timers.pop(name, None) is not None

    def cancel_all(self) -> None:
        self._snapshot.timers.clear()

    def info(self) -> dict[str, dict]:
        """Remaining time and status of every timer, for client display."""
        return {
            name: {
                "duration_seconds": timer.duration_seconds,
                "remaining_seconds": self.remaining(name),
                "is_expired": self.is_expired(name),
                "is_paused": timer.paused_remaining is not None,
            }
            for name, timer in self._snapshot.timers.items()
        }
