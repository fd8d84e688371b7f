"""Key-value HTTP project store (``/api/save`` and ``/api/get-shots``)."""

import httpx
from loguru import logger
from pydantic import ValidationError

from ..errors import StoreError, TransportError
from ..models.session import GenerationSession
from .base import ClosingStore


class RemoteProjectStore(ClosingStore):
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"Store unreachable at {url}: {e}") from e
        if response.status_code >= 400:
            raise StoreError(
                f"Store {method} {path} failed with HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )
        return response

    async def save(self, session: GenerationSession) -> None:
        await self._request(
            "POST",
            "/api/save",
            json={"id": session.project_id, "data": session.model_dump(mode="json", by_alias=True)},
        )
        logger.debug(f"Saved {session.summary_line()} to {self.base_url}")

    async def load(self, project_id: str) -> GenerationSession | None:
        response = await self._request("GET", "/api/get-shots", params={"id": project_id})
        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON for {project_id}: {e}") from e
        # the store answers "[]" for unknown keys
        if not data or not isinstance(data, dict):
            return None
        try:
            return GenerationSession.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Stored session {project_id} is invalid: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
