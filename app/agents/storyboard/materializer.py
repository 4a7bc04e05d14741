from typing import Optional, Sequence

from app.logging import get_logger
from app.agents.storyboard.prompts import KEYFRAME_COUNT
from app.agents.storyboard.state import (
    GenerationParams,
    NodeConnectionCallback,
    NodeCreationCallback,
    Position,
    StoryboardNodeSpec,
)

logger = get_logger("materializer")

NODE_KIND = "image"
TILE_WIDTH = 320
TILE_HEIGHT = 240


def layout_position(anchor: Position, index: int) -> Position:
    """2x2 grid slot for a 0-based keyframe index, independent of node size."""
    return Position(
        anchor.x + (index % 2) * TILE_WIDTH,
        anchor.y + (index // 2) * TILE_HEIGHT,
    )


def build_node_specs(
    keyframes: Sequence[str],
    base_prompt: str,
    params: GenerationParams,
    reference_image: Optional[str] = None,
) -> list[StoryboardNodeSpec]:
    if len(keyframes) != KEYFRAME_COUNT:
        raise ValueError(f"expected {KEYFRAME_COUNT} keyframes, got {len(keyframes)}")

    # Computed once so all four specs carry the identical value.
    aspect_ratio = params.aspect_ratio
    return [
        StoryboardNodeSpec(
            prompt=prompt,
            model=params.model,
            ratio=params.ratio,
            aspect_ratio=aspect_ratio,
            batch_size=params.batch_size,
            storyboard_index=i + 1,
            storyboard_base_prompt=base_prompt,
            reference_image=reference_image,
        )
        for i, prompt in enumerate(keyframes)
    ]


def materialize_storyboard_nodes(
    keyframes: Sequence[str],
    base_prompt: str,
    anchor: Position,
    on_add_node: NodeCreationCallback,
    params: GenerationParams,
    reference_image: Optional[str] = None,
) -> None:
    """Hand one image node per keyframe to the caller, in index order 1..4."""
    specs = build_node_specs(keyframes, base_prompt, params, reference_image)
    for i, spec in enumerate(specs):
        pos = layout_position(anchor, i)
        on_add_node(NODE_KIND, pos.x, pos.y, None, spec.to_node_data())
    logger.debug(f"materialized {len(specs)} storyboard nodes at ({anchor.x}, {anchor.y})")


def connect_storyboard_nodes(node_ids: Sequence, on_connect: Optional[NodeConnectionCallback]) -> None:
    if not on_connect or len(node_ids) < 2:
        return
    for source, target in zip(node_ids, node_ids[1:]):
        on_connect(source, "output", target, "input")
