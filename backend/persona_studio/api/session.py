"""Session API router: identity, story, studio, credentials and image export."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel, Field

from persona_studio.core.errors import (
    CredentialError,
    GenerationFailed,
    PersonaStudioError,
    TransitionRejected,
)
from persona_studio.core.payload import (
    is_image_mime,
    parse_data_uri,
    reference_filename,
    story_image_filename,
    to_data_uri,
)
from persona_studio.models.image import CameraSettings, StoryBatch
from persona_studio.models.persona import CreatorAttributes, Persona
from persona_studio.models.session import SessionState
from persona_studio.services.session import PersonaStudioSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["session"])


class CredentialUpdate(BaseModel):
    api_key: str = Field(..., max_length=512)


class CredentialStatus(BaseModel):
    has_credential: bool


class StoryRequest(BaseModel):
    scenario: str = Field("", max_length=2000)


def get_session(request: Request) -> PersonaStudioSession:
    """FastAPI dependency: retrieve the PersonaStudioSession from app.state.

    Returns HTTP 503 if the session was not initialized at startup.
    """
    session: PersonaStudioSession | None = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized.")
    return session


def _http_error(exc: PersonaStudioError, session: PersonaStudioSession) -> HTTPException:
    """Translate a domain error into the HTTP error shown to the user."""
    logger.warning(
        "Request failed: %s",
        exc,
        extra={"service": "SessionRouter", "error_type": type(exc).__name__},
    )
    if isinstance(exc, TransitionRejected):
        return HTTPException(status_code=409, detail=exc.reason)
    error = session.state.error
    detail = error.message if error is not None else str(exc)
    if isinstance(exc, CredentialError):
        return HTTPException(status_code=401, detail=detail)
    if isinstance(exc, GenerationFailed):
        return HTTPException(status_code=502, detail=detail)
    return HTTPException(status_code=500, detail=detail)


def _png_attachment(data_uri: str, filename: str) -> Response:
    mime_type, data = parse_data_uri(data_uri)
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@router.get("/session", response_model=SessionState)
async def get_state(session: PersonaStudioSession = Depends(get_session)) -> SessionState:
    return session.state


@router.delete("/session", response_model=SessionState)
async def reset_session(session: PersonaStudioSession = Depends(get_session)) -> SessionState:
    """Drop persona, reference image and every generated batch."""
    try:
        return session.reset()
    except TransitionRejected as exc:
        raise _http_error(exc, session) from exc


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@router.get("/credentials", response_model=CredentialStatus)
async def get_credentials(session: PersonaStudioSession = Depends(get_session)) -> CredentialStatus:
    state = session.refresh_credentials()
    return CredentialStatus(has_credential=state.has_credential)


@router.put("/credentials", response_model=CredentialStatus)
async def save_credentials(
    body: CredentialUpdate,
    session: PersonaStudioSession = Depends(get_session),
) -> CredentialStatus:
    """Store a user-supplied API key. A blank key removes the stored one."""
    state = session.save_credential(body.api_key)
    return CredentialStatus(has_credential=state.has_credential)


@router.delete("/credentials", response_model=CredentialStatus)
async def clear_credentials(session: PersonaStudioSession = Depends(get_session)) -> CredentialStatus:
    state = session.clear_credential()
    return CredentialStatus(has_credential=state.has_credential)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@router.post("/persona/photo", response_model=Persona)
async def upload_photo(
    file: UploadFile = File(...),
    session: PersonaStudioSession = Depends(get_session),
) -> Persona:
    """Use an uploaded photo as the reference image and derive its persona.

    Raises:
        HTTPException 415: The upload is not an image.
        HTTPException 400: The upload is empty.
    """
    if not is_image_mime(file.content_type):
        raise HTTPException(status_code=415, detail="Only image files are accepted.")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    image = to_data_uri(data, file.content_type or "image/jpeg")
    try:
        return await session.acquire_from_photo(image)
    except PersonaStudioError as exc:
        raise _http_error(exc, session) from exc


@router.post("/persona/create", response_model=Persona)
async def create_persona(
    attrs: CreatorAttributes,
    session: PersonaStudioSession = Depends(get_session),
) -> Persona:
    """Synthesize a reference portrait from attributes, then derive its persona."""
    try:
        return await session.acquire_from_attributes(attrs)
    except PersonaStudioError as exc:
        raise _http_error(exc, session) from exc


@router.get("/persona/random-attributes", response_model=CreatorAttributes)
async def random_attributes() -> CreatorAttributes:
    return CreatorAttributes.randomize()


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@router.post("/story", response_model=StoryBatch)
async def generate_story(
    body: StoryRequest,
    session: PersonaStudioSession = Depends(get_session),
) -> StoryBatch:
    """Plan and render an 8-frame story. An empty scenario lets the model invent one."""
    try:
        return await session.generate_story(body.scenario)
    except PersonaStudioError as exc:
        raise _http_error(exc, session) from exc


@router.post("/studio", response_model=StoryBatch)
async def generate_studio(
    settings: CameraSettings,
    session: PersonaStudioSession = Depends(get_session),
) -> StoryBatch:
    try:
        return await session.generate_studio(settings)
    except PersonaStudioError as exc:
        raise _http_error(exc, session) from exc


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@router.get("/stories/{batch_id}/images/{image_id}/download")
async def download_image(
    batch_id: str,
    image_id: str,
    session: PersonaStudioSession = Depends(get_session),
) -> Response:
    try:
        batch = session.state.find_batch(batch_id)
        position, image = batch.find_image(image_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Image not found: {exc.args[0]}") from exc
    return _png_attachment(image.url, story_image_filename(f"story-{batch.id}", position))


@router.get("/reference/download")
async def download_reference(session: PersonaStudioSession = Depends(get_session)) -> Response:
    reference_image = session.state.reference_image
    if reference_image is None:
        raise HTTPException(status_code=404, detail="No reference image.")
    return _png_attachment(reference_image, reference_filename())
