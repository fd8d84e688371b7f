from .script import (
    AudienceMode,
    ScriptStyle,
    StyleParameters,
    CharacterBio,
    PhasePlan,
    Episode,
    ProjectOutline,
)
from .batch import BatchRequest, BatchResponse
from .session import (
    SessionStatus,
    GenerationSession,
    SessionProgressEvent,
    TERMINAL_STATUSES,
)

__all__ = [
    "AudienceMode",
    "ScriptStyle",
    "StyleParameters",
    "CharacterBio",
    "PhasePlan",
    "Episode",
    "ProjectOutline",
    "BatchRequest",
    "BatchResponse",
    "SessionStatus",
    "GenerationSession",
    "SessionProgressEvent",
    "TERMINAL_STATUSES",
]
