"""Outline synthesis and the episode-generation session surface."""

import asyncio
from typing import AsyncIterator, Sequence

from loguru import logger

from .config import Config
from .continuity import ContinuityContext
from .errors import PreconditionError
from .generation.client import GenerationClient
from .generation.transport import OpenAITransport, Transport
from .models.script import PhasePlan, ProjectOutline, StyleParameters
from .models.session import GenerationSession, SessionProgressEvent
from .retry import RetryExecutor, Sleep
from .sequencer import PlanSequencer, check_preconditions
from .store import ProjectStore, create_store
from .utils.text import resolve_language


class GenerationRun:
    """Handle on a running session.

    Iterate it for progress events, call ``cancel()`` to stop between phases,
    or ``as_task()`` to run it in the background as a cancellable task.
    """

    def __init__(self, sequencer: PlanSequencer, events: AsyncIterator[SessionProgressEvent]):
        self.sequencer = sequencer
        self._events = events

    def __aiter__(self) -> AsyncIterator[SessionProgressEvent]:
        return self._events

    @property
    def session(self) -> GenerationSession | None:
        return self.sequencer.session

    def cancel(self) -> None:
        self.sequencer.request_cancel()

    async def wait(self) -> GenerationSession:
        async for _ in self._events:
            pass
        return self.sequencer.session

    def as_task(self) -> "asyncio.Task[GenerationSession]":
        return asyncio.create_task(self.wait())


class Pipeline:
    """Wires transport, retry policy and project store from a Config."""

    def __init__(
        self,
        config: Config,
        transport: Transport | None = None,
        store: ProjectStore | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self._owned = []
        if transport is None:
            transport = OpenAITransport(config.service)
            self._owned.append(transport)
        if store is None:
            store = create_store(config.store)
            self._owned.append(store)
        self.client = GenerationClient(
            transport,
            source_char_limit=config.continuity.source_char_limit,
        )
        self.executor = RetryExecutor.from_config(config.retry, sleep=sleep)
        self.store = store

    async def aclose(self) -> None:
        """Close the HTTP clients this pipeline created itself."""
        for resource in self._owned:
            await resource.aclose()
        self._owned = []

    async def generate_outline(
        self, source_document: str, style: StyleParameters | None = None
    ) -> ProjectOutline:
        if not source_document or not source_document.strip():
            raise PreconditionError("No source document selected")
        style = style or self.config.style
        return await self.executor.execute(
            lambda: self.client.generate_outline(source_document, style),
            label="outline",
        )

    def _sequencer(
        self,
        source_document: str,
        outline_summary: str,
        style: StyleParameters,
        project_id: str,
    ) -> PlanSequencer:
        language = resolve_language(style.language, source_document, outline_summary)
        return PlanSequencer(
            client=self.client,
            executor=self.executor,
            store=self.store,
            continuity=ContinuityContext(self.config.continuity.tail_chars, language),
            source_document=source_document,
            outline_summary=outline_summary,
            style=style,
            project_id=project_id,
        )

    def start(
        self,
        phase_plan: Sequence[PhasePlan],
        source_document: str,
        outline_summary: str,
        style: StyleParameters | None = None,
        project_id: str = "default",
        seed_context: str = "",
    ) -> GenerationRun:
        """Validate inputs and return a run streaming SessionProgressEvents.

        Precondition failures raise here, before any generation starts.
        """
        check_preconditions(phase_plan, source_document, outline_summary)
        style = style or self.config.style
        sequencer = self._sequencer(source_document, outline_summary, style, project_id)
        logger.info(
            f"Starting {project_id}: {len(phase_plan)} phases, "
            f"{sum(p.episode_count for p in phase_plan)} episodes"
        )
        return GenerationRun(sequencer, sequencer.iterate(phase_plan, seed_context))

    async def resume(
        self, project_id: str, source_document: str, outline_summary: str
    ) -> GenerationRun:
        session = await self.store.load(project_id)
        if session is None:
            raise PreconditionError(f"No stored session for project {project_id}")
        check_preconditions(session.phases, source_document, outline_summary)
        sequencer = self._sequencer(
            source_document, outline_summary, session.style, project_id
        )
        events = sequencer.attach(session)
        logger.info(f"Resuming {session.summary_line()}")
        return GenerationRun(sequencer, events)
