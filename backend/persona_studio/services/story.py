"""StoryOrchestrator: plan scene prompts, then render them all concurrently."""
import asyncio
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Generic, Optional, Sequence, TypeVar

from persona_studio.core.errors import GenerationFailed
from persona_studio.core.logging import setup_logging
from persona_studio.models.image import DEFAULT_STORY_LABEL, DroppedFrame, GeneratedImage, StoryBatch
from persona_studio.models.persona import Persona

if TYPE_CHECKING:
    from persona_studio.services.generation import GenerationClient

logger = setup_logging("story")

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one awaitable: exactly one of value/error is meaningful."""

    index: int
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Sequence[Awaitable[T]]) -> list[Settled[T]]:
    """Run awaitables concurrently and wait until every one has settled.

    Failures are captured instead of raised and nothing is cancelled. Results
    are written into per-index slots as they complete, so the returned list is
    in input order whatever the completion order was.
    """

    async def _run(index: int, awaitable: Awaitable[T]) -> Settled[T]:
        try:
            return Settled(index=index, value=await awaitable)
        except Exception as exc:
            return Settled(index=index, error=exc)

    tasks = [asyncio.create_task(_run(i, a)) for i, a in enumerate(awaitables)]
    slots: list[Optional[Settled[T]]] = [None] * len(tasks)
    for finished in asyncio.as_completed(tasks):
        outcome = await finished
        slots[outcome.index] = outcome
    return [slot for slot in slots if slot is not None]


class StoryOrchestrator:
    def __init__(self, client: "GenerationClient") -> None:
        self.client = client

    async def run(
        self,
        reference_image: str,
        persona: Persona,
        scenario: Optional[str] = None,
    ) -> StoryBatch:
        """Produce one story batch.

        A planning failure aborts the run. Frame failures are logged and
        reported as dropped frames; only a batch with no surviving frame is a
        failure.

        Raises:
            GenerationFailed: "no images" when every frame failed.
        """
        scenario = (scenario or "").strip()
        scene_prompts = await self.plan(persona, scenario)
        return await self.render(reference_image, scene_prompts, scenario)

    async def plan(self, persona: Persona, scenario: Optional[str] = None) -> list[str]:
        return await self.client.plan_story(persona, (scenario or "").strip() or None)

    async def render(
        self,
        reference_image: str,
        scene_prompts: Sequence[str],
        scenario: str = "",
    ) -> StoryBatch:
        """Render already-planned prompts into a StoryBatch."""
        outcomes = await settle_all(
            [self.client.generate_image(reference_image, prompt) for prompt in scene_prompts]
        )

        batch_id = uuid.uuid4().hex
        images: list[GeneratedImage] = []
        dropped: list[DroppedFrame] = []
        for outcome in outcomes:
            prompt = scene_prompts[outcome.index]
            if outcome.ok and outcome.value:
                images.append(
                    GeneratedImage(id=f"{batch_id}-{outcome.index}", url=outcome.value, prompt=prompt)
                )
                continue
            reason = str(outcome.error) if outcome.error else "No image generated"
            logger.warning(
                "Dropped story frame %d: %s",
                outcome.index,
                reason,
                extra=_frame_extra(outcome, batch_id),
            )
            dropped.append(DroppedFrame(index=outcome.index, prompt=prompt, reason=reason))

        if not images:
            raise GenerationFailed("no images")

        logger.info(
            "Story batch %s: %d/%d frames generated",
            batch_id,
            len(images),
            len(scene_prompts),
            extra={"batch_id": batch_id},
        )
        return StoryBatch(
            id=batch_id,
            scenario=scenario or DEFAULT_STORY_LABEL,
            images=tuple(images),
            planned_count=len(scene_prompts),
            dropped_frames=tuple(dropped),
        )


def _frame_extra(outcome: Settled[Any], batch_id: str) -> dict[str, Any]:
    extra: dict[str, Any] = {"frame_index": outcome.index, "batch_id": batch_id}
    if outcome.error is not None:
        extra["error_type"] = type(outcome.error).__name__
    return extra
