"""Generation session aggregate and its phase state machine."""

import time
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from ..errors import InvalidTransitionError
from .script import Episode, PhasePlan, StyleParameters


class SessionStatus(str, Enum):
    INIT = "init"
    RUNNING = "running"
    COMMITTED = "committed"
    FAILED = "failed"
    COMPLETE = "complete"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.INIT: {SessionStatus.RUNNING, SessionStatus.CANCELLED},
    SessionStatus.RUNNING: {
        SessionStatus.COMMITTED,
        SessionStatus.COMPLETE,
        SessionStatus.FAILED,
        SessionStatus.CANCELLED,
    },
    SessionStatus.COMMITTED: {SessionStatus.RUNNING, SessionStatus.CANCELLED},
    SessionStatus.FAILED: {SessionStatus.PARTIAL},
    # resumable terminal states
    SessionStatus.PARTIAL: {SessionStatus.RUNNING, SessionStatus.CANCELLED},
    SessionStatus.CANCELLED: {SessionStatus.RUNNING},
    SessionStatus.COMPLETE: set(),
}

TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETE, SessionStatus.PARTIAL, SessionStatus.CANCELLED}
)


class GenerationSession(BaseModel):
    """Everything one run of the episode pipeline accumulates.

    Owned by a single PlanSequencer; only mutated at phase boundaries.
    """

    project_id: str
    phases: list[PhasePlan] = Field(default_factory=list)
    produced_units: list[Episode] = Field(default_factory=list)
    adaptation_history: str = ""
    last_context: str = ""
    status: SessionStatus = SessionStatus.INIT
    current_phase: int | None = None
    completed_phases: int = Field(default=0, ge=0)
    style: StyleParameters = Field(default_factory=StyleParameters)
    error: str | None = None
    updated_at: float = 0.0

    @property
    def total_episodes(self) -> int:
        return sum(p.episode_count for p in self.phases)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def next_unit_number(self) -> int:
        return len(self.produced_units) + 1

    @property
    def remaining_phases(self) -> list[PhasePlan]:
        return self.phases[self.completed_phases:]

    def transition(self, status: SessionStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Session {self.project_id}: {self.status.value} -> {status.value} is not allowed"
            )
        self.status = status
        self.updated_at = time.time()

    def commit_phase(
        self, units: list[Episode], context: str, summary: str
    ) -> None:
        """Fold one successful phase into the session."""
        phase = self.phases[self.completed_phases]
        self.produced_units.extend(units)
        self.last_context = context
        if summary:
            entry = f"[Phase {phase.phase_index}] {summary.strip()}"
            self.adaptation_history = (
                f"{self.adaptation_history}\n{entry}" if self.adaptation_history else entry
            )
        self.completed_phases += 1
        self.error = None

    def snapshot(self) -> "GenerationSession":
        return self.model_copy(deep=True)

    def summary_line(self) -> str:
        return (
            f"{self.project_id}: {self.status.value}, "
            f"{len(self.produced_units)}/{self.total_episodes} episodes, "
            f"{self.completed_phases}/{len(self.phases)} phases"
        )


@dataclass(frozen=True)
class SessionProgressEvent:
    phase_index: int | None
    units_so_far: int
    status: SessionStatus
    message: str = ""
