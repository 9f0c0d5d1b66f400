"""Prompt templates sent to Gemini and the studio camera-description compiler."""
from typing import Optional

from persona_studio.models.image import CameraSettings
from persona_studio.models.persona import CreatorAttributes, Persona

STORY_FRAME_COUNT = 8

# Fields the persona analysis must return; hashtags is a list, the rest strings.
PERSONA_FIELDS = (
    "nickname",
    "age",
    "occupation",
    "personality",
    "lifestyle",
    "vibe",
    "description",
    "hashtags",
)


def build_persona_prompt(language: str = "Korean") -> str:
    """Instruction sent together with the reference image to derive a Persona."""
    return f"""이 사진 속 인물의 외모와 분위기를 자세히 관찰하고, 그에 어울리는 구체적인 "인플루언서 페르소나"를 만들어 주세요.
모든 항목은 반드시 {language}로 작성하세요.

각 항목을 구체적으로 채워 주세요:
1. age: 대략적인 나이대 (예: 20대 중반, 30대 초반)
2. occupation: 외모와 분위기에 맞는 직업 (예: 요가 강사, 카페 사장, 여행 크리에이터)
3. personality: 표정과 포즈에서 드러나는 성격
4. lifestyle: 즐길 법한 취미나 생활 방식
5. vibe: 패션과 전체적인 분위기를 나타내는 키워드
6. nickname: 기억하기 쉬운 별명
7. description: 페르소나를 요약하는 한 문장 (15단어 이내)
8. hashtags: 어울리는 해시태그 3~4개
"""


def build_story_prompt(persona: Persona, scenario: Optional[str] = None) -> str:
    """Brief asking the text model for STORY_FRAME_COUNT scene prompts.

    A non-empty scenario is quoted verbatim; otherwise the model invents one
    that fits the persona's occupation and lifestyle.
    """
    scenario = (scenario or "").strip()
    if scenario:
        scenario_directive = (
            f'SPECIFIC SCENARIO: The story must follow this scenario exactly: "{scenario}".'
        )
    else:
        scenario_directive = (
            "SCENARIO: Invent a trending, engaging lifestyle sequence that fits "
            "their occupation and lifestyle."
        )
    return f"""We are shooting a photo series ({STORY_FRAME_COUNT} images) for a virtual influencer.

INFLUENCER PROFILE:
- Name: {persona.nickname}
- Age: {persona.age}
- Job: {persona.occupation}
- Personality: {persona.personality}
- Lifestyle: {persona.lifestyle}
- Vibe: {persona.vibe}

TASK:
Write a sequential {STORY_FRAME_COUNT}-frame visual storyboard that reads as one cohesive story or a "day in the life" photo dump.
{scenario_directive}

REQUIREMENTS:
- Return exactly {STORY_FRAME_COUNT} distinct image prompts as a JSON array of strings.
- LOCATION CONSISTENCY (CRITICAL): background and location stay the same across all {STORY_FRAME_COUNT} frames. Only change location when the scenario explicitly travels.
- Each prompt must separately describe the outfit, the background, the action and the lighting.
- Keep the outfit consistent, or change it logically (jacket on/off) within the story.
- Vary the shots (close-ups, wide shots, dynamic angles) while keeping the same location.
"""


def build_frame_prompt(scene_description: str) -> str:
    """Identity-preserving instruction wrapped around one scene description."""
    return f"""Generate a high-quality influencer photo of the person in the reference image.

CRITICAL INSTRUCTION: Keep the facial identity, hair and body type identical to the reference image.

SCENE DESCRIPTION: {scene_description}

STYLE: Professional social media photography, 4k, cinematic lighting.
SKIN & TEXTURE: Flawless skin, beauty filter aesthetic, smooth texture, soft light on the face.
Avoid: gritty realism, pores, acne, blemishes, low quality, distortion.
"""


def build_attributes_prompt(attrs: CreatorAttributes) -> str:
    """Text-only beauty-portrait instruction for synthesizing a reference image."""
    return f"""Generate a high-end beauty portrait of a fashion model.
Style: commercial fashion photography, 8k resolution, perfectly retouched.

VISUAL ATTRIBUTES:
- Gender: {attrs.gender.value}
- Age appearance: approx. {attrs.age} years old
- Ethnicity/Heritage: {attrs.ethnicity.value}
- Physique: {attrs.build.value} build, approx. {attrs.height}cm tall, approx. {attrs.weight}kg
- Face: {attrs.eye_color.value} eyes, flawless glowing skin, perfect makeup.

HAIR & STYLE:
- Hair: {attrs.hair_color.value}, {attrs.hair_style.value}, shiny and healthy texture.
- Fashion: {attrs.fashion_style.value}
- Vibe: {attrs.vibe.value}

COMPOSITION:
Professional studio portrait, front-facing or 3/4 view, neutral soft-focus background.
Lighting: soft beauty-dish lighting with flattering shadows, studio softbox look.

NEGATIVE PROMPT: blemishes, pores, wrinkles, gritty texture, low quality, distortion, asymmetrical face.
"""


def _horizontal_clause(rotation: int) -> str:
    if rotation < -10:
        return f"left profile, {abs(rotation)} degrees"
    if rotation > 10:
        return f"right profile, {rotation} degrees"
    return "front facing view"


def _vertical_clause(vertical: float) -> str:
    if vertical < -0.3:
        return "low-angle shot (worm's eye view), looking up at the subject"
    if vertical > 0.3:
        return "high-angle shot (bird's eye view), looking down at the subject"
    return "eye-level shot"


def _zoom_clause(zoom: int) -> str:
    if zoom > 7:
        return "extreme close-up on the face, beauty shot, detailed makeup"
    if zoom > 3:
        return "medium close-up (head and shoulders)"
    return "full body shot"


def _lens_clause(is_wide_angle: bool) -> str:
    if is_wide_angle:
        return "shot with a wide-angle lens (16mm), slightly distorted perspective, dynamic background"
    return "shot with a portrait lens (85mm), compressed background, flattering perspective"


def compile_camera_description(settings: CameraSettings) -> str:
    """Translate camera settings into a description, clause order fixed.

    Comparisons are strict: rotation ±10, vertical ±0.3, zoom 7 and zoom 3
    all land in the lower tier.
    """
    return ", ".join(
        (
            _horizontal_clause(settings.rotation),
            _vertical_clause(settings.vertical),
            _zoom_clause(settings.zoom),
            _lens_clause(settings.is_wide_angle),
        )
    )


def build_studio_prompt(persona: Persona, camera_description: str) -> str:
    return f"""Studio photography session of {persona.nickname}.
Age: {persona.age}. Occupation: {persona.occupation}.
{persona.vibe} style.

CAMERA SETUP: {camera_description}

The subject poses professionally in a studio.
Lighting: high-end fashion studio lighting, softbox, rim light, flawless beauty retouching.
"""
