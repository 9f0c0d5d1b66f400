"""Tests for the session API router (controller mocked, injected into app.state)."""
import base64
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from persona_studio.core.errors import (
    CredentialMissing,
    GenerationFailed,
    MalformedResponse,
    TransitionRejected,
)
from persona_studio.models.image import GeneratedImage, StoryBatch
from persona_studio.models.session import AppState, SessionError, SessionState

PNG_BYTES = b"\x89PNG_upload"


def _batch() -> StoryBatch:
    images = tuple(
        GeneratedImage(
            id=f"abc-{i}",
            url="data:image/png;base64," + base64.b64encode(f"frame{i}".encode()).decode(),
            prompt=f"scene {i}",
        )
        for i in (0, 2)
    )
    return StoryBatch(id="abc", images=images, planned_count=3)


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.state = SessionState(has_credential=True)
    session.acquire_from_photo = AsyncMock()
    session.acquire_from_attributes = AsyncMock()
    session.generate_story = AsyncMock()
    session.generate_studio = AsyncMock()
    return session


@pytest.fixture
def client(session: MagicMock) -> Iterator[TestClient]:
    from persona_studio.main import app

    app.state.session = session
    with TestClient(app) as test_client:
        yield test_client
    app.state.session = None


def _fail_with(session: MagicMock, message: str, exc: Exception, credential: bool = False):
    async def fail(*args, **kwargs):
        session.state = session.state.model_copy(
            update={
                "status": AppState.error,
                "error": SessionError(message=message, is_credential_error=credential),
            }
        )
        raise exc

    return fail


class TestSessionState:
    def test_get_state(self, client, session) -> None:
        response = client.get("/api/session")
        assert response.status_code == 200
        assert response.json()["status"] == "IDLE"
        assert response.json()["has_credential"] is True
        assert response.json()["can_generate"] is False

    def test_state_reports_generation_ready(self, client, session, persona, reference_image) -> None:
        session.state = SessionState(persona=persona, reference_image=reference_image, has_credential=True)
        assert client.get("/api/session").json()["can_generate"] is True

    def test_reset(self, client, session) -> None:
        session.reset.return_value = SessionState(has_credential=True)
        assert client.delete("/api/session").status_code == 200
        session.reset.assert_called_once()

    def test_reset_while_busy_is_conflict(self, client, session) -> None:
        session.reset.side_effect = TransitionRejected("identity_reset rejected: another operation is in progress")
        response = client.delete("/api/session")
        assert response.status_code == 409
        assert "in progress" in response.json()["detail"]

    def test_missing_session_is_503(self) -> None:
        from persona_studio.main import app

        app.state.session = None
        response = TestClient(app).get("/api/session")
        assert response.status_code == 503


class TestCredentials:
    def test_get(self, client, session) -> None:
        session.refresh_credentials.return_value = SessionState(has_credential=False)
        assert client.get("/api/credentials").json() == {"has_credential": False}

    def test_put(self, client, session) -> None:
        session.save_credential.return_value = SessionState(has_credential=True)
        response = client.put("/api/credentials", json={"api_key": "my-key"})
        assert response.json() == {"has_credential": True}
        session.save_credential.assert_called_once_with("my-key")

    def test_delete(self, client, session) -> None:
        session.clear_credential.return_value = SessionState(has_credential=False)
        assert client.delete("/api/credentials").json() == {"has_credential": False}


class TestPersona:
    def test_photo_upload(self, client, session, persona) -> None:
        session.acquire_from_photo.return_value = persona
        response = client.post(
            "/api/persona/photo",
            files={"file": ("me.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["nickname"] == persona.nickname
        sent = session.acquire_from_photo.await_args.args[0]
        assert sent == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()

    def test_non_image_upload_rejected(self, client, session) -> None:
        response = client.post(
            "/api/persona/photo",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 415
        session.acquire_from_photo.assert_not_awaited()

    def test_empty_upload_rejected(self, client, session) -> None:
        response = client.post("/api/persona/photo", files={"file": ("me.png", b"", "image/png")})
        assert response.status_code == 400

    def test_analysis_failure_is_502_with_user_message(self, client, session) -> None:
        session.acquire_from_photo.side_effect = _fail_with(
            session, "Could not analyze persona. (Empty persona response)", MalformedResponse("Empty persona response")
        )
        response = client.post("/api/persona/photo", files={"file": ("me.png", PNG_BYTES, "image/png")})
        assert response.status_code == 502
        assert response.json()["detail"] == "Could not analyze persona. (Empty persona response)"

    def test_create(self, client, session, persona) -> None:
        session.acquire_from_attributes.return_value = persona
        response = client.post("/api/persona/create", json={"gender": "Man", "age": 30})
        assert response.status_code == 200
        attrs = session.acquire_from_attributes.await_args.args[0]
        assert attrs.gender.value == "Man"
        assert attrs.age == 30

    def test_create_validates_attributes(self, client, session) -> None:
        response = client.post("/api/persona/create", json={"age": 12})
        assert response.status_code == 422
        session.acquire_from_attributes.assert_not_awaited()

    def test_random_attributes(self, client) -> None:
        data = client.get("/api/persona/random-attributes").json()
        assert data["gender"] in ("Woman", "Man")
        assert 18 <= data["age"] <= 40


class TestGeneration:
    def test_story(self, client, session) -> None:
        session.generate_story.return_value = _batch()
        response = client.post("/api/story", json={"scenario": "rainy day"})
        assert response.status_code == 200
        assert [image["prompt"] for image in response.json()["images"]] == ["scene 0", "scene 2"]
        session.generate_story.assert_awaited_once_with("rainy day")

    def test_story_without_body_scenario(self, client, session) -> None:
        session.generate_story.return_value = _batch()
        client.post("/api/story", json={})
        session.generate_story.assert_awaited_once_with("")

    def test_story_without_persona_is_conflict(self, client, session) -> None:
        session.generate_story.side_effect = TransitionRejected("story_requested requires a persona and a reference image")
        response = client.post("/api/story", json={})
        assert response.status_code == 409

    def test_missing_key_is_401(self, client, session) -> None:
        session.generate_story.side_effect = _fail_with(
            session, "Valid API Key is required to generate content.", CredentialMissing(), credential=True
        )
        response = client.post("/api/story", json={})
        assert response.status_code == 401
        assert response.json()["detail"] == "Valid API Key is required to generate content."

    def test_all_frames_failed_is_502(self, client, session) -> None:
        session.generate_story.side_effect = _fail_with(
            session, "Failed to generate story. (no images)", GenerationFailed("no images")
        )
        assert client.post("/api/story", json={}).status_code == 502

    def test_studio(self, client, session) -> None:
        session.generate_studio.return_value = _batch()
        response = client.post("/api/studio", json={"rotation": 45, "zoom": 5, "vertical": 0.2})
        assert response.status_code == 200
        settings = session.generate_studio.await_args.args[0]
        assert settings.rotation == 45
        assert settings.vertical == 0.2

    def test_studio_rejects_off_grid_rotation(self, client, session) -> None:
        assert client.post("/api/studio", json={"rotation": 7}).status_code == 422


class TestDownloads:
    def test_story_image(self, client, session) -> None:
        session.state = SessionState(stories=(_batch(),))
        response = client.get("/api/stories/abc/images/abc-2/download")
        assert response.status_code == 200
        assert response.content == b"frame2"
        assert response.headers["content-type"] == "image/png"
        assert 'filename="story-abc-2.png"' in response.headers["content-disposition"]

    def test_unknown_image_is_404(self, client, session) -> None:
        session.state = SessionState(stories=(_batch(),))
        assert client.get("/api/stories/abc/images/nope/download").status_code == 404
        assert client.get("/api/stories/zzz/images/abc-0/download").status_code == 404

    def test_reference(self, client, session, reference_image) -> None:
        session.state = SessionState(reference_image=reference_image)
        response = client.get("/api/reference/download")
        assert response.status_code == 200
        assert response.content == base64.b64decode(reference_image.split(",", 1)[1])
        assert "influencer-reference-" in response.headers["content-disposition"]

    def test_reference_missing_is_404(self, client) -> None:
        assert client.get("/api/reference/download").status_code == 404
