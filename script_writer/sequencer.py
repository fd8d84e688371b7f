"""Phase-by-phase episode generation with per-phase commits.

Each phase's request depends on the previous phase's committed output (the
next episode number and the continuity excerpt), so phases run strictly one
after another. A failing phase ends the session as PARTIAL; everything
committed before it is kept.
"""

import asyncio
from typing import AsyncIterator, Sequence

from loguru import logger

from .continuity import ContinuityContext
from .errors import PreconditionError, SchemaError, ScriptWriterError
from .generation.client import GenerationClient
from .models.batch import BatchRequest
from .models.script import Episode, PhasePlan, StyleParameters
from .models.session import (
    GenerationSession,
    SessionProgressEvent,
    SessionStatus,
)
from .retry import RetryExecutor
from .store.base import ProjectStore

RESUMABLE = {SessionStatus.PARTIAL, SessionStatus.CANCELLED, SessionStatus.COMMITTED}


def check_phase_plan(phases: Sequence[PhasePlan]) -> None:
    if not phases:
        raise PreconditionError("The phase plan is empty; generate an outline first")
    indices = [p.phase_index for p in phases]
    if any(b <= a for a, b in zip(indices, indices[1:])):
        raise PreconditionError(f"Phases must be ordered by phase index, got {indices}")


def check_preconditions(
    phases: Sequence[PhasePlan], source_document: str, outline_summary: str
) -> None:
    if not source_document or not source_document.strip():
        raise PreconditionError("No source document selected")
    if not outline_summary or not outline_summary.strip():
        raise PreconditionError("No outline available; generate the outline first")
    check_phase_plan(phases)


class PlanSequencer:
    """Drives one GenerationSession through its phase plan."""

    def __init__(
        self,
        client: GenerationClient,
        executor: RetryExecutor,
        store: ProjectStore,
        continuity: ContinuityContext,
        source_document: str,
        outline_summary: str,
        style: StyleParameters | None = None,
        project_id: str = "default",
    ):
        self.client = client
        self.executor = executor
        self.store = store
        self.continuity = continuity
        self.source_document = source_document
        self.outline_summary = outline_summary
        self.style = style or StyleParameters()
        self.project_id = project_id
        self.session: GenerationSession | None = None
        self._cancel_requested = False

    def request_cancel(self) -> None:
        """Stop the attached session before its next phase starts."""
        self._cancel_requested = True

    def new_session(
        self, phases: Sequence[PhasePlan], seed_context: str = ""
    ) -> GenerationSession:
        check_phase_plan(phases)
        return GenerationSession(
            project_id=self.project_id,
            phases=list(phases),
            last_context=seed_context,
            style=self.style,
        )

    async def run(
        self, phases: Sequence[PhasePlan], seed_context: str = ""
    ) -> GenerationSession:
        session = self.new_session(phases, seed_context)
        async for _ in self.attach(session):
            pass
        return session

    async def resume(self, session: GenerationSession) -> GenerationSession:
        async for _ in self.attach(session):
            pass
        return session

    def iterate(
        self, phases: Sequence[PhasePlan], seed_context: str = ""
    ) -> AsyncIterator[SessionProgressEvent]:
        return self.attach(self.new_session(phases, seed_context))

    def attach(self, session: GenerationSession) -> AsyncIterator[SessionProgressEvent]:
        """Take ownership of ``session`` and return its event stream.

        Raises PreconditionError right away if the session cannot run.
        """
        self.check_resumable(session)
        check_phase_plan(session.phases)
        self.session = session
        self._cancel_requested = False
        return self._drive(session)

    def check_resumable(self, session: GenerationSession) -> None:
        if session.status == SessionStatus.INIT:
            return
        if session.status not in RESUMABLE:
            raise PreconditionError(
                f"Session {session.project_id} is {session.status.value}; nothing to resume"
            )
        expected = sum(p.episode_count for p in session.phases[: session.completed_phases])
        if expected != len(session.produced_units):
            raise PreconditionError(
                f"Session {session.project_id} holds {len(session.produced_units)} episodes "
                f"but its {session.completed_phases} completed phases account for {expected}"
            )

    def _event(self, session: GenerationSession, message: str = "") -> SessionProgressEvent:
        return SessionProgressEvent(
            phase_index=session.current_phase,
            units_so_far=len(session.produced_units),
            status=session.status,
            message=message,
        )

    def build_request(self, session: GenerationSession, phase: PhasePlan) -> BatchRequest:
        return BatchRequest(
            phase=phase,
            start_unit_number=session.next_unit_number,
            prior_context=session.last_context,
            adaptation_history=session.adaptation_history,
            style=session.style,
            source_document=self.source_document,
            outline_summary=self.outline_summary,
        )

    async def _drive(self, session: GenerationSession) -> AsyncIterator[SessionProgressEvent]:
        """Run every remaining phase of ``session``, yielding progress events."""
        total = len(session.phases)

        for phase in session.remaining_phases:
            if self._cancel_requested:
                yield await self._finish_cancelled(session)
                return

            session.transition(SessionStatus.RUNNING)
            session.current_phase = phase.phase_index
            logger.info(
                f"Phase {phase.phase_index} ({session.completed_phases + 1}/{total}): "
                f"episodes {session.next_unit_number}-{session.next_unit_number + phase.episode_count - 1}"
            )
            yield self._event(session, f"Generating phase {phase.phase_index}")

            request = self.build_request(session, phase)
            try:
                response = await self.executor.execute(
                    lambda: self.client.generate_batch(request),
                    label=f"phase {phase.phase_index}",
                )
                units = list(response.units)
                self._check_contiguity(session, phase, units)
            except ScriptWriterError as e:
                yield await self._finish_failed(session, phase, e)
                return
            except asyncio.CancelledError:
                await self._finish_cancelled(session)
                raise

            session.commit_phase(
                units, self.continuity.derive(units[-1]), response.adaptation_summary
            )
            target = (
                SessionStatus.COMPLETE
                if session.completed_phases == total
                else SessionStatus.COMMITTED
            )
            snapshot = session.snapshot()
            snapshot.transition(target)
            try:
                await self._save(snapshot)
            except ScriptWriterError as e:
                yield await self._finish_failed(session, phase, e, save=False)
                return
            except asyncio.CancelledError:
                await self._finish_cancelled(session)
                raise
            session.transition(target)

            logger.success(
                f"Phase {phase.phase_index} committed: {len(session.produced_units)}/"
                f"{session.total_episodes} episodes"
            )
            yield self._event(session, f"Phase {phase.phase_index} committed")

        if session.status != SessionStatus.COMPLETE:
            # resuming a session whose last phase was already committed
            session.transition(SessionStatus.RUNNING)
            session.transition(SessionStatus.COMPLETE)
            await self._save(session.snapshot())
            yield self._event(session)

    def _check_contiguity(
        self, session: GenerationSession, phase: PhasePlan, units: list[Episode]
    ) -> None:
        start = session.next_unit_number
        expected = list(range(start, start + phase.episode_count))
        numbers = [u.number for u in units]
        if numbers != expected:
            raise SchemaError(
                f"Phase {phase.phase_index} returned episodes {numbers}, expected {expected}"
            )

    async def _save(self, snapshot: GenerationSession) -> None:
        await self.executor.execute(
            lambda: self.store.save(snapshot), label=f"commit {snapshot.project_id}"
        )

    async def _finish_failed(
        self,
        session: GenerationSession,
        phase: PhasePlan,
        error: ScriptWriterError,
        save: bool = True,
    ) -> SessionProgressEvent:
        logger.error(
            f"Phase {phase.phase_index} failed ({error.kind.value}): {error}. "
            f"Keeping {len(session.produced_units)} committed episodes"
        )
        session.error = f"Phase {phase.phase_index}: {error}"
        session.transition(SessionStatus.FAILED)
        session.transition(SessionStatus.PARTIAL)
        if save:
            await self._save_terminal(session)
        return self._event(session, session.error)

    async def _finish_cancelled(self, session: GenerationSession) -> SessionProgressEvent:
        logger.warning(
            f"Session {session.project_id} cancelled after {session.completed_phases} phases"
        )
        if session.status != SessionStatus.CANCELLED:
            session.transition(SessionStatus.CANCELLED)
        await self._save_terminal(session)
        return self._event(session, "Cancelled")

    async def _save_terminal(self, session: GenerationSession) -> None:
        try:
            await self._save(session.snapshot())
        except ScriptWriterError as e:
            # the session object still carries every unit; the caller gets it back
            logger.error(f"Could not persist terminal state of {session.project_id}: {e}")
            session.error = f"{session.error or 'Cancelled'}; terminal save failed: {e}"
