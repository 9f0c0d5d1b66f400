"""StudioOrchestrator: one camera-controlled studio shot."""
from typing import TYPE_CHECKING

from persona_studio.core.logging import setup_logging
from persona_studio.models.image import CameraSettings, StudioShot
from persona_studio.models.persona import Persona
from persona_studio.services.prompts import build_studio_prompt, compile_camera_description

if TYPE_CHECKING:
    from persona_studio.services.generation import GenerationClient

logger = setup_logging("studio")


class StudioOrchestrator:
    def __init__(self, client: "GenerationClient") -> None:
        self.client = client

    def build_prompt(self, persona: Persona, settings: CameraSettings) -> str:
        return build_studio_prompt(persona, compile_camera_description(settings))

    async def run(
        self,
        reference_image: str,
        persona: Persona,
        settings: CameraSettings,
    ) -> StudioShot:
        prompt = self.build_prompt(persona, settings)
        logger.debug(
            "Studio shot: rotation=%d vertical=%.1f zoom=%d wide=%s",
            settings.rotation,
            settings.vertical,
            settings.zoom,
            settings.is_wide_angle,
        )
        url = await self.client.generate_image(reference_image, prompt)
        return StudioShot(url=url, prompt=prompt)
