"""Image generation data models."""
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_STORY_LABEL = "AI Lifestyle Series"
STUDIO_SESSION_LABEL = "Studio Session"


class CameraSettings(BaseModel):
    """Virtual camera used by Studio mode."""

    rotation: int = Field(0, ge=-90, le=90, multiple_of=5)  # degrees
    zoom: int = Field(0, ge=0, le=10)
    vertical: float = Field(0.0, ge=-1.0, le=1.0)
    is_wide_angle: bool = False

    @field_validator("vertical")
    @classmethod
    def _on_tenth_grid(cls, value: float) -> float:
        scaled = value * 10
        if abs(scaled - round(scaled)) > 1e-6:
            raise ValueError("vertical must be a multiple of 0.1")
        return round(value, 1)


class GeneratedImage(BaseModel):
    """One generated frame and the prompt that produced it."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str  # data URI
    prompt: str


class DroppedFrame(BaseModel):
    """A planned story frame whose generation failed."""

    model_config = ConfigDict(frozen=True)

    index: int
    prompt: str
    reason: str


class StoryBatch(BaseModel):
    """One completed generation round (story or studio shot)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    scenario: str = DEFAULT_STORY_LABEL
    images: tuple[GeneratedImage, ...] = ()
    planned_count: int = 0
    dropped_frames: tuple[DroppedFrame, ...] = ()

    def find_image(self, image_id: str) -> tuple[int, GeneratedImage]:
        """Return (position, image) for image_id.

        Raises:
            KeyError: When the batch holds no such image.
        """
        for position, image in enumerate(self.images):
            if image.id == image_id:
                return position, image
        raise KeyError(image_id)


class StudioShot(BaseModel):
    """Result of a single studio generation."""

    model_config = ConfigDict(frozen=True)

    url: str
    prompt: str
