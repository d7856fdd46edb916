"""PhaseManager - ordered phases inside one turn, each with its own countdown.

A game such as "draw, then reveal" or "answer, then vote" splits every turn
into named steps. Concluding a step moves to the next phase; concluding the
last phase concludes the turn itself. A match without configured phases
behaves as one unnamed phase per turn.

Phase timers live in the shared TimerService under "phase:<name>".
"""

from typing import Optional

from partyengine.engine.timer_service import TimerService
from partyengine.models.snapshots import PhaseDefinition, PhaseSnapshot

TIMER_PREFIX = "phase:"


class PhaseManager:
    """Cursor over PhaseSnapshot.phases."""

    def __init__(self, snapshot: Optional[PhaseSnapshot] = None):
        self._snapshot = snapshot if snapshot is not None else PhaseSnapshot()

    @classmethod
    def from_snapshot(cls, snapshot: PhaseSnapshot) -> "PhaseManager":
        return cls(snapshot.model_copy(deep=True))

    def snapshot(self) -> PhaseSnapshot:
        return self._snapshot.model_copy(deep=True)

    @property
    def has_phases(self) -> bool:
        return bool(self._snapshot.phases)

    @property
    def current_index(self) -> int:
        return self._snapshot.current_index

    @property
    def current(self) -> Optional[PhaseDefinition]:
        if not self._snapshot.phases:
            return None
        return self._snapshot.phases[self._snapshot.current_index]

    @property
    def current_name(self) -> Optional[str]:
        phase = self.current
        return phase.name if phase else None

    def is_last_phase(self) -> bool:
        return self._snapshot.current_index >= len(self._snapshot.phases) - 1

    def next_phase(self) -> bool:
        """Move to the following phase.

        Returns:
            True when the last phase was left, i.e. the turn is over. The
            cursor is then back on the first phase.
        """
        if self.is_last_phase():
            self.reset()
            return True
        self._snapshot.current_index += 1
        return False

    def reset(self) -> None:
        self._snapshot.current_index = 0

    @staticmethod
    def timer_name(phase_name: str) -> str:
        return f"{TIMER_PREFIX}{phase_name}"

    def start_timer(self, timers: TimerService) -> Optional[str]:
        """Cancel every phase countdown and start the current phase's one, if it has a duration."""
        self.cancel_timers(timers)
        phase = self.current
        if phase is None or phase.duration_seconds is None:
            return None
        name = self.timer_name(phase.name)
        timers.start(name, phase.duration_seconds)
        return name

    def cancel_timers(self, timers: TimerService) -> None:
        for phase in self._snapshot.phases:
            timers.cancel(self.timer_name(phase.name))

    def is_expired(self, timers: TimerService) -> bool:
        phase = self.current
        if phase is None:
            return False
        name = self.timer_name(phase.name)
        return timers.has(name) and timers.is_expired(name)

