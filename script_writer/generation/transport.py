"""Transport to the OpenAI-compatible chat-completions endpoint.

This is the only place that knows about the SDK's exception types; every
failure leaves here as a TransportError, UpstreamError or SchemaError.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI
from loguru import logger

from ..config import ServiceConfig
from ..errors import SchemaError, TransportError, UpstreamError
from ..utils.text import preview


@dataclass(frozen=True)
class ServiceRequest:
    instructions: str
    user_content: str
    output_schema: dict[str, Any] = field(default_factory=dict)
    schema_name: str = "response_data"


@dataclass(frozen=True)
class ServiceReply:
    """What came back: the HTTP content type and the model's output text."""

    content_type: str
    text: str
    status: int = 200


class Transport(Protocol):
    async def send(self, request: ServiceRequest) -> ServiceReply:
        ...


def normalize_base_url(url: str) -> str:
    """Accept either the API root or the full chat/completions URL."""
    url = url.strip().rstrip("/")
    suffix = "/chat/completions"
    if url.endswith(suffix):
        url = url[: -len(suffix)]
    return url


class OpenAITransport:
    def __init__(self, config: ServiceConfig, client: AsyncOpenAI | None = None):
        self.config = config
        # Retries belong to RetryExecutor; the SDK must not retry on its own
        self._client = client or AsyncOpenAI(
            api_key=config.resolved_api_key() or "missing-api-key",
            base_url=normalize_base_url(config.base_url),
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    async def aclose(self) -> None:
        await self._client.close()

    def build_payload(self, request: ServiceRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": request.instructions},
                {"role": "user", "content": request.user_content},
            ],
        }
        if request.output_schema:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.schema_name,
                    "strict": True,
                    "schema": request.output_schema,
                },
            }
        if self.config.temperature is not None:
            payload["temperature"] = self.config.temperature
        return payload

    async def send(self, request: ServiceRequest) -> ServiceReply:
        start = time.time()
        try:
            raw = await self._client.chat.completions.with_raw_response.create(
                **self.build_payload(request)
            )
        except openai.APIStatusError as e:
            raise UpstreamError(e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            raise TransportError(f"{e.__class__.__name__}: {e}") from e
        except openai.APIResponseValidationError as e:
            raise SchemaError(f"Malformed completion envelope: {e}") from e

        content_type = raw.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            body = raw.http_response.text
            logger.error(f"Service returned non-JSON content ({content_type}): {preview(body)}")
            return ServiceReply(content_type=content_type, text=body, status=raw.status_code)

        try:
            completion = raw.parse()
            choices = completion.choices
            if not choices:
                raise SchemaError("Completion contained no choices")
            choice = choices[0]
            content = choice.message.content
        except (ValueError, AttributeError, TypeError, openai.APIResponseValidationError) as e:
            # truncated or non-conforming body behind a JSON content type
            logger.error(f"Unreadable completion body: {preview(raw.http_response.text)}")
            raise SchemaError(f"Malformed completion envelope: {e}") from e
        if not content:
            raise SchemaError(
                f"Completion message was empty (finish_reason={choice.finish_reason})"
            )

        logger.debug(
            f"{self.config.model} answered in {time.time() - start:.2f}s "
            f"(finish_reason={choice.finish_reason}, {len(content)} chars)"
        )
        return ServiceReply(content_type=content_type, text=content, status=raw.status_code)
