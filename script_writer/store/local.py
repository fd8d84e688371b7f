"""JSON-file project store: one document per project id."""

import json
import os
import re
import tempfile
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from ..errors import StoreError
from ..models.session import GenerationSession
from .base import ClosingStore

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalProjectStore(ClosingStore):
    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, project_id: str) -> Path:
        if not _SAFE_ID.match(project_id) or project_id.startswith("."):
            raise StoreError(f"Invalid project id: {project_id!r}")
        return self.root / f"{project_id}.json"

    async def save(self, session: GenerationSession) -> None:
        path = self.path_for(session.project_id)
        payload = session.model_dump_json(by_alias=True, indent=2)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            # write-then-replace so readers never see a half-written file
            fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{session.project_id}.", suffix=".tmp")
        except OSError as e:
            raise StoreError(f"Could not save {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, path)
        except OSError as e:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise StoreError(f"Could not save {path}: {e}") from e
        logger.debug(f"Saved {session.summary_line()} to {path}")

    async def load(self, project_id: str) -> GenerationSession | None:
        path = self.path_for(project_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return GenerationSession.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"Could not load {path}: {e}") from e

    def list_projects(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))
