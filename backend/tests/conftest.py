"""Shared test fixtures and configuration."""
import base64
from pathlib import Path

import pytest

from persona_studio.models.persona import Persona

PNG_BYTES = b"\x89PNG_fake_reference"
REFERENCE_IMAGE = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests away from real keys and the real credential store."""
    from persona_studio.core.config import get_settings

    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.setenv("CREDENTIAL_STORE_PATH", str(tmp_path / "credentials.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def persona() -> Persona:
    return Persona(
        nickname="서아",
        age="20대 중반",
        occupation="요가 강사",
        personality="차분하고 다정함",
        lifestyle="주말마다 한강에서 러닝",
        vibe="미니멀 시크",
        description="도심 속에서 균형을 찾는 요가 강사",
        hashtags=["#요가", "#데일리룩", "#한강"],
    )


@pytest.fixture
def reference_image() -> str:
    return REFERENCE_IMAGE
