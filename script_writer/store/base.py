"""Project store contract consumed by the sequencer."""

from typing import Protocol

from ..models.session import GenerationSession


class ProjectStore(Protocol):
    async def save(self, session: GenerationSession) -> None:
        """Persist a full session snapshot (last writer wins)."""
        ...

    async def load(self, project_id: str) -> GenerationSession | None:
        ...

    async def aclose(self) -> None:
        ...


class ClosingStore:
    """``async with`` support; subclasses holding connections override aclose."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        pass
