"""Application state machine and the session controller that drives it.

transition() is a pure reducer: it validates an action against the current
SessionState and returns the next one, raising TransitionRejected otherwise.
PersonaStudioSession owns the current state, runs the pipeline and the
orchestrators, and feeds their results back through transition().
"""
import asyncio
import uuid
from typing import Optional

from persona_studio.core.config import Settings
from persona_studio.core.credentials import CredentialProvider, CredentialStore
from persona_studio.core.errors import CredentialError, TransitionRejected
from persona_studio.core.logging import setup_logging
from persona_studio.models.image import (
    STUDIO_SESSION_LABEL,
    CameraSettings,
    GeneratedImage,
    StoryBatch,
)
from persona_studio.models.persona import CreatorAttributes, Persona
from persona_studio.models.session import (
    Action,
    AppState,
    BatchCompleted,
    CredentialsRefreshed,
    IdentityRequested,
    IdentityReset,
    OperationFailed,
    PersonaReady,
    ReferenceGenerated,
    SessionError,
    SessionState,
    StoryPlanned,
    StoryRequested,
    StudioRequested,
    SuccessElapsed,
)
from persona_studio.services.generation import GenerationClient
from persona_studio.services.persona import PersonaPipeline
from persona_studio.services.story import StoryOrchestrator
from persona_studio.services.studio import StudioOrchestrator

logger = setup_logging("session")

CREDENTIAL_ERROR_MESSAGE = "Valid API Key is required to generate content."


def _require_status(state: SessionState, action: Action, *allowed: AppState) -> None:
    if state.status not in allowed:
        raise TransitionRejected(f"{action.kind} is not allowed while {state.status.value}")


def _require_idle_enough(state: SessionState, action: Action) -> None:
    if state.is_busy:
        raise TransitionRejected(
            f"{action.kind} rejected: another operation is in progress ({state.status.value})"
        )


def _require_generation_ready(state: SessionState, action: Action) -> None:
    _require_idle_enough(state, action)
    if state.can_generate:
        return
    if state.persona is None or state.reference_image is None:
        raise TransitionRejected(f"{action.kind} requires a persona and a reference image")
    raise TransitionRejected(f"{action.kind} requires an API key")


def transition(state: SessionState, action: Action) -> SessionState:
    """Return the state that follows `state` under `action`.

    User-initiated starts are accepted from IDLE, SUCCESS and ERROR; a start
    clears any previous error.

    Raises:
        TransitionRejected: When the action is not valid in `state`.
    """
    if isinstance(action, IdentityRequested):
        _require_idle_enough(state, action)
        if action.source == "photo" and not action.reference_image:
            raise TransitionRejected("identity_requested from a photo needs the image")
        return state.model_copy(
            update={
                "status": AppState.analyzing,
                "persona": None,
                "reference_image": action.reference_image if action.source == "photo" else None,
                "error": None,
            }
        )

    if isinstance(action, ReferenceGenerated):
        _require_status(state, action, AppState.analyzing)
        return state.model_copy(update={"reference_image": action.reference_image})

    if isinstance(action, PersonaReady):
        _require_status(state, action, AppState.analyzing)
        if state.reference_image is None:
            raise TransitionRejected("persona_ready without a reference image")
        return state.model_copy(update={"status": AppState.idle, "persona": action.persona})

    if isinstance(action, StoryRequested):
        _require_generation_ready(state, action)
        return state.model_copy(update={"status": AppState.planning, "error": None})

    if isinstance(action, StoryPlanned):
        _require_status(state, action, AppState.planning)
        return state.model_copy(update={"status": AppState.generating})

    if isinstance(action, StudioRequested):
        _require_generation_ready(state, action)
        return state.model_copy(update={"status": AppState.generating, "error": None})

    if isinstance(action, BatchCompleted):
        _require_status(state, action, AppState.generating)
        return state.model_copy(
            update={"status": AppState.success, "stories": (action.batch, *state.stories)}
        )

    if isinstance(action, SuccessElapsed):
        # A late timer after the user already moved on is a no-op.
        if state.status is not AppState.success:
            return state
        return state.model_copy(update={"status": AppState.idle})

    if isinstance(action, OperationFailed):
        if not state.is_busy:
            raise TransitionRejected(f"operation_failed while {state.status.value}")
        update: dict = {
            "status": AppState.error,
            "error": SessionError(
                message=action.message,
                is_credential_error=action.is_credential_error,
            ),
        }
        if action.is_credential_error:
            update["has_credential"] = False
        return state.model_copy(update=update)

    if isinstance(action, CredentialsRefreshed):
        update = {"has_credential": action.has_credential}
        if action.has_credential and not state.is_busy:
            update["error"] = None
            if state.status is AppState.error:
                update["status"] = AppState.idle
        return state.model_copy(update=update)

    if isinstance(action, IdentityReset):
        _require_idle_enough(state, action)
        return SessionState(has_credential=state.has_credential)

    raise TransitionRejected(f"Unknown action: {action!r}")


class PersonaStudioSession:
    """Single-user session controller.

    Top-level operations (identity acquisition, story, studio) run one at a
    time: the starting action is dispatched before the first await, so a
    concurrent start is rejected by transition().
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        pipeline: PersonaPipeline,
        story: StoryOrchestrator,
        studio: StudioOrchestrator,
        success_reset_seconds: float = 1.0,
    ) -> None:
        self.credentials = credentials
        self.pipeline = pipeline
        self.story = story
        self.studio = studio
        self.success_reset_seconds = success_reset_seconds
        self.state = SessionState(has_credential=credentials.has_credential())
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PersonaStudioSession":
        credentials = CredentialProvider(
            CredentialStore(settings.credential_store_path, settings.credential_key_name),
            build_time_key=settings.api_key,
        )
        client = GenerationClient.from_settings(settings, credentials)
        return cls(
            credentials=credentials,
            pipeline=PersonaPipeline(client),
            story=StoryOrchestrator(client),
            studio=StudioOrchestrator(client),
            success_reset_seconds=settings.success_reset_seconds,
        )

    def dispatch(self, action: Action) -> SessionState:
        previous = self.state.status
        self.state = transition(self.state, action)
        if self.state.status is not previous:
            logger.info(
                "%s: %s -> %s",
                action.kind,
                previous.value,
                self.state.status.value,
                extra={"state": self.state.status.value},
            )
        return self.state

    # --- credentials -------------------------------------------------------

    def refresh_credentials(self) -> SessionState:
        return self.dispatch(CredentialsRefreshed(has_credential=self.credentials.has_credential()))

    def save_credential(self, key: str) -> SessionState:
        self.credentials.save(key)
        return self.refresh_credentials()

    def clear_credential(self) -> SessionState:
        self.credentials.clear()
        return self.refresh_credentials()

    # --- identity ----------------------------------------------------------

    async def acquire_from_photo(self, image: str) -> Persona:
        self.dispatch(IdentityRequested(source="photo", reference_image=image))
        try:
            persona = await self.pipeline.from_photo(image)
        except BaseException as exc:
            self._fail(exc, "Could not analyze persona.")
            raise
        self.dispatch(PersonaReady(persona=persona))
        return persona

    async def acquire_from_attributes(self, attrs: CreatorAttributes) -> Persona:
        self.dispatch(IdentityRequested(source="creator"))
        try:
            _, persona = await self.pipeline.from_attributes(
                attrs,
                on_reference=lambda image: self.dispatch(ReferenceGenerated(reference_image=image)),
            )
        except BaseException as exc:
            self._fail(exc, "Failed to create persona.")
            raise
        self.dispatch(PersonaReady(persona=persona))
        return persona

    def reset(self) -> SessionState:
        self._cancel_success_timer()
        return self.dispatch(IdentityReset())

    # --- generation --------------------------------------------------------

    async def generate_story(self, scenario: str = "") -> StoryBatch:
        state = self.dispatch(StoryRequested(scenario=scenario))
        try:
            scene_prompts = await self.story.plan(state.persona, scenario)
            self.dispatch(StoryPlanned(prompt_count=len(scene_prompts)))
            batch = await self.story.render(state.reference_image, scene_prompts, scenario.strip())
        except BaseException as exc:
            self._fail(exc, "Failed to generate story.")
            raise
        self._complete(batch)
        return batch

    async def generate_studio(self, settings: CameraSettings) -> StoryBatch:
        state = self.dispatch(StudioRequested())
        try:
            shot = await self.studio.run(state.reference_image, state.persona, settings)
        except BaseException as exc:
            self._fail(exc, "Failed to generate studio shot.")
            raise
        batch_id = uuid.uuid4().hex
        batch = StoryBatch(
            id=batch_id,
            scenario=STUDIO_SESSION_LABEL,
            images=(GeneratedImage(id=f"{batch_id}-0", url=shot.url, prompt=shot.prompt),),
            planned_count=1,
        )
        self._complete(batch)
        return batch

    # --- internals ---------------------------------------------------------

    def _complete(self, batch: StoryBatch) -> None:
        self.dispatch(BatchCompleted(batch=batch))
        self._cancel_success_timer()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.success_reset_seconds, self._on_success_elapsed)

    def _on_success_elapsed(self) -> None:
        self._reset_handle = None
        self.dispatch(SuccessElapsed())

    def _cancel_success_timer(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _fail(self, exc: BaseException, message: str) -> None:
        """Move the session to ERROR with a user-facing message.

        Called for cancellation too, so an abandoned operation never leaves the
        session stuck in an in-flight state.
        """
        is_credential_error = isinstance(exc, CredentialError)
        if is_credential_error:
            user_message = CREDENTIAL_ERROR_MESSAGE
        elif isinstance(exc, asyncio.CancelledError):
            user_message = f"{message} (cancelled)"
        else:
            detail = str(exc)
            user_message = f"{message} ({detail})" if detail else message
        logger.error(
            "%s %s: %s",
            message,
            type(exc).__name__,
            exc,
            extra={"service": "PersonaStudioSession", "error_type": type(exc).__name__},
        )
        self.dispatch(OperationFailed(message=user_message, is_credential_error=is_credential_error))
