import os
from pathlib import Path
from typing import Literal, Optional
from pydantic import BaseModel, Field
import yaml

from .models.script import StyleParameters

class ServiceConfig(BaseModel):
    base_url: str = Field(default="https://openrouter.ai/api/v1")
    api_key: str = Field(default="")
    api_key_env: str = Field(default="OPENROUTER_API_KEY")
    model: str = Field(default="google/gemini-3-pro-preview")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    timeout_seconds: float = Field(default=600.0, gt=0)

    def resolved_api_key(self) -> str:
        return (self.api_key or os.environ.get(self.api_key_env, "")).strip()

class RetryConfig(BaseModel):
    max_attempts: int = Field(default=4, gt=0)
    base_delay_ms: int = Field(default=1000, ge=0)
    jitter_ms: int = Field(default=1000, ge=0)

class ContinuityConfig(BaseModel):
    tail_chars: int = Field(default=500, gt=0)
    source_char_limit: int = Field(default=200_000, gt=0)

class StoreConfig(BaseModel):
    backend: Literal["local", "remote"] = Field(default="local")
    path: Path = Field(default=Path("data/projects"))
    remote_url: str = Field(default="")
    timeout_seconds: float = Field(default=30.0, gt=0)

class Config(BaseModel):
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    continuity: ContinuityConfig = Field(default_factory=ContinuityConfig)
    style: StyleParameters = Field(default_factory=StyleParameters)
    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path):
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, allow_unicode=True)
