"""Script domain models: outline, phase plan, episodes and style."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AudienceMode(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ScriptStyle(str, Enum):
    EMOTIONAL = "emotional"  # high-intensity conflict, face-slapping payoffs
    WITTY = "witty"  # meme-heavy, comedic, still fast-paced


class StyleParameters(BaseModel):
    mode: AudienceMode = Field(default=AudienceMode.MALE)
    script_style: ScriptStyle = Field(default=ScriptStyle.EMOTIONAL)
    layout_reference: str = Field(default="")
    language: str = Field(default="auto", pattern="^(auto|zh|en)$")


class CharacterBio(BaseModel):
    name: str
    gender: str = ""
    age: str = ""
    identity: str = ""
    appearance: str = ""
    growth: str = ""
    motivation: str = ""


class PhasePlan(BaseModel):
    """One contiguous block of episodes produced by a single service call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    phase_index: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("phaseIndex", "phase_index"),
        serialization_alias="phaseIndex",
    )
    episode_count: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("episodeCount", "episodes", "episode_count"),
        serialization_alias="episodeCount",
    )
    description: str = ""
    climax: str = ""


class Episode(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1)
    title: str
    content: str


class ProjectOutline(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    characters: list[CharacterBio] = Field(default_factory=list)
    phase_plans: list[PhasePlan] = Field(
        default_factory=list,
        validation_alias=AliasChoices("phasePlans", "phase_plans"),
        serialization_alias="phasePlans",
    )

    @property
    def total_episodes(self) -> int:
        return sum(p.episode_count for p in self.phase_plans)
