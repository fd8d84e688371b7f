"""Request/response pair for one phase of episode generation."""

from dataclasses import dataclass, field

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .script import Episode, PhasePlan, StyleParameters


@dataclass(frozen=True)
class BatchRequest:
    phase: PhasePlan
    start_unit_number: int
    prior_context: str = ""
    adaptation_history: str = ""
    style: StyleParameters = field(default_factory=StyleParameters)
    source_document: str = ""
    outline_summary: str = ""

    @property
    def end_unit_number(self) -> int:
        return self.start_unit_number + self.phase.episode_count - 1

    @property
    def expected_numbers(self) -> list[int]:
        return list(range(self.start_unit_number, self.end_unit_number + 1))

    @property
    def is_first_batch(self) -> bool:
        return self.start_unit_number == 1


class BatchResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    units: list[Episode] = Field(..., min_length=1)
    adaptation_summary: str = Field(
        ...,
        validation_alias=AliasChoices("adaptationSummary", "adaptation_summary"),
        serialization_alias="adaptationSummary",
    )
