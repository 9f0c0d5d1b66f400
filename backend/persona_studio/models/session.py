"""Session state and the actions that transition it."""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from persona_studio.models.image import StoryBatch
from persona_studio.models.persona import Persona


class AppState(str, Enum):
    """Lifecycle states of the single user session."""

    idle = "IDLE"
    analyzing = "ANALYZING"  # deriving a persona
    planning = "PLANNING"  # writing the storyboard
    generating = "GENERATING"  # rendering images
    success = "SUCCESS"
    error = "ERROR"


IN_FLIGHT_STATES = frozenset({AppState.analyzing, AppState.planning, AppState.generating})


class SessionError(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    is_credential_error: bool = False


class SessionState(BaseModel):
    """Immutable snapshot of the session. Only transition() produces new ones."""

    model_config = ConfigDict(frozen=True)

    status: AppState = AppState.idle
    persona: Optional[Persona] = None
    reference_image: Optional[str] = None
    stories: tuple[StoryBatch, ...] = ()  # newest first
    error: Optional[SessionError] = None
    has_credential: bool = False

    @property
    def is_busy(self) -> bool:
        return self.status in IN_FLIGHT_STATES

    @computed_field  # type: ignore[prop-decorator]
    @property
    def can_generate(self) -> bool:
        """Story and studio actions need a persona, a reference image and a key."""
        return (
            self.persona is not None
            and self.reference_image is not None
            and self.has_credential
        )

    def find_batch(self, batch_id: str) -> StoryBatch:
        for batch in self.stories:
            if batch.id == batch_id:
                return batch
        raise KeyError(batch_id)


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class IdentityRequested(_Action):
    kind: Literal["identity_requested"] = "identity_requested"
    source: Literal["photo", "creator"]
    reference_image: Optional[str] = None


class ReferenceGenerated(_Action):
    kind: Literal["reference_generated"] = "reference_generated"
    reference_image: str


class PersonaReady(_Action):
    kind: Literal["persona_ready"] = "persona_ready"
    persona: Persona


class StoryRequested(_Action):
    kind: Literal["story_requested"] = "story_requested"
    scenario: str = ""


class StoryPlanned(_Action):
    kind: Literal["story_planned"] = "story_planned"
    prompt_count: int = Field(..., ge=0)


class StudioRequested(_Action):
    kind: Literal["studio_requested"] = "studio_requested"


class BatchCompleted(_Action):
    kind: Literal["batch_completed"] = "batch_completed"
    batch: StoryBatch


class SuccessElapsed(_Action):
    kind: Literal["success_elapsed"] = "success_elapsed"


class OperationFailed(_Action):
    kind: Literal["operation_failed"] = "operation_failed"
    message: str
    is_credential_error: bool = False


class CredentialsRefreshed(_Action):
    kind: Literal["credentials_refreshed"] = "credentials_refreshed"
    has_credential: bool


class IdentityReset(_Action):
    kind: Literal["identity_reset"] = "identity_reset"


Action = Annotated[
    Union[
        IdentityRequested,
        ReferenceGenerated,
        PersonaReady,
        StoryRequested,
        StoryPlanned,
        StudioRequested,
        BatchCompleted,
        SuccessElapsed,
        OperationFailed,
        CredentialsRefreshed,
        IdentityReset,
    ],
    Field(discriminator="kind"),
]
