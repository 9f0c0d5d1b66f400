"""Gemini generation client: persona analysis, story planning, image generation."""
from typing import Any, Optional

from google import genai  # type: ignore[import-untyped]
from google.genai import types  # type: ignore[import-untyped]
from pydantic import TypeAdapter, ValidationError

from persona_studio.core.config import Settings
from persona_studio.core.credentials import CredentialProvider
from persona_studio.core.errors import GenerationFailed, InvalidCredential, MalformedResponse
from persona_studio.core.logging import setup_logging
from persona_studio.core.payload import parse_data_uri, to_data_uri
from persona_studio.models.persona import CreatorAttributes, NonEmptyStr, Persona
from persona_studio.services import prompts

logger = setup_logging("generation")

# Substrings (lower-cased) that mark a rejected key or a malformed request.
INVALID_CREDENTIAL_MARKERS = ("api key not valid", "400", "invalid_argument")

PERSONA_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        name: (
            types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))
            if name == "hashtags"
            else types.Schema(type=types.Type.STRING)
        )
        for name in prompts.PERSONA_FIELDS
    },
    required=list(prompts.PERSONA_FIELDS),
)

STORY_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(type=types.Type.STRING),
)

_SCENE_PROMPTS = TypeAdapter(list[NonEmptyStr])


def is_credential_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in INVALID_CREDENTIAL_MARKERS)


def _response_parts(response: types.GenerateContentResponse) -> list[types.Part]:
    candidates = response.candidates
    if not candidates or candidates[0].content is None:
        return []
    return list(candidates[0].content.parts or [])


def _extract_image(response: types.GenerateContentResponse) -> Optional[str]:
    for part in _response_parts(response):
        if part.inline_data is not None and part.inline_data.data:
            mime_type = part.inline_data.mime_type or "image/png"
            return to_data_uri(bytes(part.inline_data.data), mime_type)
    return None


class GenerationClient:
    """Thin wrapper over one Gemini endpoint.

    Every operation resolves the credential first (CredentialMissing before
    any network attempt), sends exactly one generate_content request and
    validates the response before returning it.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        text_model: str = "gemini-2.5-flash",
        image_model: str = "gemini-3-pro-image-preview",
        aspect_ratio: str = "1:1",
        image_size: str = "2K",
        persona_language: str = "Korean",
    ) -> None:
        self.credentials = credentials
        self.text_model = text_model
        self.image_model = image_model
        self.aspect_ratio = aspect_ratio
        self.image_size = image_size
        self.persona_language = persona_language

    @classmethod
    def from_settings(cls, settings: Settings, credentials: CredentialProvider) -> "GenerationClient":
        return cls(
            credentials=credentials,
            text_model=settings.text_model,
            image_model=settings.image_model,
            aspect_ratio=settings.image_aspect_ratio,
            image_size=settings.image_size,
            persona_language=settings.persona_language,
        )

    async def _generate_content(
        self,
        api_key: str,
        model: str,
        contents: Any,
        config: types.GenerateContentConfig,
    ) -> types.GenerateContentResponse:
        """Issue one request and normalize transport failures.

        Raises:
            InvalidCredential: When the failure text marks a rejected key.
            GenerationFailed: For every other failure.
        """
        try:
            async with genai.Client(api_key=api_key).aio as client:
                return await client.models.generate_content(
                    model=model,
                    contents=contents,
                    config=config,
                )
        except Exception as exc:
            logger.error(
                "Gemini request failed: %s: %s",
                type(exc).__name__,
                exc,
                extra={"service": "GenerationClient", "error_type": type(exc).__name__},
            )
            if is_credential_error(exc):
                raise InvalidCredential(str(exc)) from exc
            raise GenerationFailed(str(exc)) from exc

    def _image_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            image_config=types.ImageConfig(
                aspect_ratio=self.aspect_ratio,
                image_size=self.image_size,
            ),
        )

    @staticmethod
    def _image_part(image: str) -> types.Part:
        try:
            mime_type, data = parse_data_uri(image)
        except ValueError as exc:
            raise GenerationFailed(f"Invalid reference image: {exc}") from exc
        return types.Part.from_bytes(data=data, mime_type=mime_type)

    async def analyze_image(self, image: str) -> Persona:
        """Derive a Persona from a reference image (data URI).

        Raises:
            MalformedResponse: When the answer is not a complete Persona.
        """
        api_key = self.credentials.resolve()
        response = await self._generate_content(
            api_key,
            self.text_model,
            [self._image_part(image), prompts.build_persona_prompt(self.persona_language)],
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=PERSONA_SCHEMA,
            ),
        )
        text = response.text
        if not text:
            raise MalformedResponse("Empty persona response")
        try:
            persona = Persona.model_validate_json(text)
        except ValidationError as exc:
            raise MalformedResponse(
                f"Persona response does not match schema ({exc.error_count()} errors)"
            ) from exc
        logger.info("Persona derived: nickname=%s occupation=%s", persona.nickname, persona.occupation)
        return persona

    async def plan_story(self, persona: Persona, scenario: Optional[str] = None) -> list[str]:
        """Ask for the ordered scene prompts of one story.

        The frame count is requested but not enforced; every entry must be
        non-empty text.
        """
        api_key = self.credentials.resolve()
        response = await self._generate_content(
            api_key,
            self.text_model,
            prompts.build_story_prompt(persona, scenario),
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=STORY_SCHEMA,
            ),
        )
        text = response.text
        if not text:
            raise MalformedResponse("Empty story plan response")
        try:
            scene_prompts = _SCENE_PROMPTS.validate_json(text)
        except ValidationError as exc:
            raise MalformedResponse(
                f"Story plan is not a list of non-empty strings ({exc.error_count()} errors)"
            ) from exc
        if len(scene_prompts) != prompts.STORY_FRAME_COUNT:
            logger.warning(
                "Story plan returned %d prompts (expected %d)",
                len(scene_prompts),
                prompts.STORY_FRAME_COUNT,
            )
        return scene_prompts

    async def generate_image(self, reference_image: str, scene_description: str) -> str:
        """Generate one identity-preserving image; returns a data URI."""
        api_key = self.credentials.resolve()
        response = await self._generate_content(
            api_key,
            self.image_model,
            [self._image_part(reference_image), prompts.build_frame_prompt(scene_description)],
            self._image_config(),
        )
        image = _extract_image(response)
        if image is None:
            raise GenerationFailed("No image generated")
        return image

    async def generate_from_attributes(self, attrs: CreatorAttributes) -> str:
        """Synthesize a reference portrait from creator attributes.

        Raises:
            GenerationFailed: "Model refused: <text>" when the model answered
                with text only, "No image generated" when it answered nothing.
        """
        api_key = self.credentials.resolve()
        response = await self._generate_content(
            api_key,
            self.image_model,
            prompts.build_attributes_prompt(attrs),
            self._image_config(),
        )
        image = _extract_image(response)
        if image is not None:
            return image
        refusal = response.text
        if refusal:
            raise GenerationFailed(f"Model refused: {refusal}")
        raise GenerationFailed("No image generated")
