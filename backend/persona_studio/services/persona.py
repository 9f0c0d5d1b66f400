"""PersonaPipeline: turns a photo or creator attributes into a Persona."""
from typing import TYPE_CHECKING, Callable, Optional

from persona_studio.core.logging import setup_logging
from persona_studio.models.persona import CreatorAttributes, Persona

if TYPE_CHECKING:
    from persona_studio.services.generation import GenerationClient

logger = setup_logging("persona")


class PersonaPipeline:
    def __init__(self, client: "GenerationClient") -> None:
        self.client = client

    async def from_photo(self, image: str) -> Persona:
        return await self.client.analyze_image(image)

    async def from_attributes(
        self,
        attrs: CreatorAttributes,
        on_reference: Optional[Callable[[str], None]] = None,
    ) -> tuple[str, Persona]:
        """Synthesize a reference image, then analyze it.

        Strictly sequential: when image synthesis fails its error propagates
        and analysis is never attempted.

        Args:
            attrs: Creator form values.
            on_reference: Called with the synthesized image before analysis
                starts, so the caller can show it while the persona is pending.

        Returns:
            (reference image data URI, Persona)
        """
        reference_image = await self.client.generate_from_attributes(attrs)
        if on_reference is not None:
            on_reference(reference_image)
        logger.info("Reference image synthesized, analyzing persona")
        persona = await self.client.analyze_image(reference_image)
        return reference_image, persona
