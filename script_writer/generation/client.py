"""One structured call per batch, validated before anything trusts it."""

import json
from typing import Any

from loguru import logger
from pydantic import ValidationError

from ..errors import SchemaError
from ..models.batch import BatchRequest, BatchResponse
from ..models.script import ProjectOutline, StyleParameters
from ..utils.text import clip_head, resolve_language
from . import prompts
from .schemas import EPISODE_BATCH_SCHEMA, OUTLINE_SCHEMA
from .transport import ServiceReply, ServiceRequest, Transport


def decode_reply(reply: ServiceReply) -> dict[str, Any]:
    """Parse a reply that must be a JSON object."""
    if "application/json" not in (reply.content_type or "").lower():
        raise SchemaError(
            f"Expected application/json, got {reply.content_type or 'no content type'} "
            f"(HTTP {reply.status}); check the service base URL"
        )
    try:
        data = json.loads(reply.text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SchemaError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def check_numbering(response: BatchResponse, request: BatchRequest) -> None:
    numbers = [u.number for u in response.units]
    expected = request.expected_numbers
    if numbers != expected:
        raise SchemaError(
            f"Phase {request.phase.phase_index}: expected episodes {expected[0]}-{expected[-1]}, "
            f"got {numbers}"
        )


class GenerationClient:
    """Serializes requests for the generation service and validates replies.

    No retries happen here; wrap calls in a RetryExecutor.
    """

    def __init__(self, transport: Transport, source_char_limit: int = 200_000):
        self.transport = transport
        self.source_char_limit = source_char_limit

    def build_batch_request(self, request: BatchRequest) -> ServiceRequest:
        language = resolve_language(
            request.style.language, request.source_document, request.outline_summary
        )
        source = clip_head(request.source_document, self.source_char_limit)
        return ServiceRequest(
            instructions=prompts.batch_instructions(request, language),
            user_content=prompts.batch_user_content(request, language, source),
            output_schema=EPISODE_BATCH_SCHEMA,
            schema_name="episode_batch",
        )

    async def generate_batch(self, request: BatchRequest) -> BatchResponse:
        logger.debug(
            f"Requesting phase {request.phase.phase_index} "
            f"(episodes {request.start_unit_number}-{request.end_unit_number})"
        )
        reply = await self.transport.send(self.build_batch_request(request))
        data = decode_reply(reply)
        try:
            response = BatchResponse.model_validate(data)
        except ValidationError as e:
            raise SchemaError(
                f"Batch response does not match the declared shape: {e.error_count()} error(s): "
                f"{e.errors()[0]['msg']}"
            ) from e
        check_numbering(response, request)
        return response

    async def generate_outline(
        self, source_document: str, style: StyleParameters
    ) -> ProjectOutline:
        language = resolve_language(style.language, source_document)
        reply = await self.transport.send(
            ServiceRequest(
                instructions=prompts.outline_instructions(style, language),
                user_content=prompts.outline_user_content(
                    clip_head(source_document, self.source_char_limit), language
                ),
                output_schema=OUTLINE_SCHEMA,
                schema_name="project_outline",
            )
        )
        data = decode_reply(reply)
        try:
            outline = ProjectOutline.model_validate(data)
        except ValidationError as e:
            raise SchemaError(f"Outline response is invalid: {e}") from e
        if not outline.phase_plans:
            raise SchemaError("Outline response contained no phase plans")
        logger.info(
            f"Outline ready: {len(outline.characters)} characters, "
            f"{len(outline.phase_plans)} phases, {outline.total_episodes} episodes"
        )
        return outline
