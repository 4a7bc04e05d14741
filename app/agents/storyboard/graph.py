from __future__ import annotations

from typing import Mapping, Optional, Union

from langgraph.graph import StateGraph, START, END

from app.logging import get_logger
from app.agents.storyboard.materializer import materialize_storyboard_nodes
from app.agents.storyboard.parsing import parse_storyboard_analysis
from app.agents.storyboard.prompts import build_analysis_prompt, generate_storyboard_prompts
from app.agents.storyboard.state import (
    GenerationParams,
    NodeCreationCallback,
    Position,
    RunStatus,
    StoryboardState,
)
from app.agents.storyboard.vision import TextGenerator

logger = get_logger("graph")

ParamsInput = Union[GenerationParams, Mapping, None]


def resolve_params(params: ParamsInput = None) -> GenerationParams:
    """Merge caller params over the defaults (nano-banana, 16:9, batch of 1).

    Raises pydantic.ValidationError for a malformed ratio or batch size.
    """
    if isinstance(params, GenerationParams):
        return params
    return GenerationParams.model_validate(dict(params or {}))


def create_basic_storyboard_nodes(
    base_prompt: str,
    x: float,
    y: float,
    on_add_node: NodeCreationCallback,
    params: ParamsInput = None,
) -> None:
    """No-image run: four fixed beat prompts, no model call."""
    final_params = resolve_params(params)
    materialize_storyboard_nodes(
        generate_storyboard_prompts(base_prompt),
        base_prompt,
        Position(x, y),
        on_add_node,
        final_params,
    )


def build_storyboard_graph(generate_text: TextGenerator, on_add_node: NodeCreationCallback):
    """Image-guided run.

    compose -> call_model -> parse -> materialize -> END
    Any error in call_model or parse (or a missing reference image) goes to
    fallback, which runs the no-image path instead. The model is never retried.
    """

    async def compose_node(state: StoryboardState) -> dict:
        return {
            "status": RunStatus.COMPOSING,
            "instruction": build_analysis_prompt(state["base_prompt"]),
        }

    async def call_model_node(state: StoryboardState) -> dict:
        try:
            response = await generate_text(state["instruction"])
        except Exception as e:
            logger.error(f"storyboard analysis failed: {e}")
            return {"status": RunStatus.AWAITING_MODEL, "error": f"model call failed: {e}"}

        if not isinstance(response, str) or not response.strip():
            logger.error(f"storyboard analysis returned unusable text: {type(response).__name__}")
            return {"status": RunStatus.AWAITING_MODEL, "error": "model returned no usable text"}

        return {"status": RunStatus.AWAITING_MODEL, "response": response}

    async def parse_node(state: StoryboardState) -> dict:
        try:
            result = parse_storyboard_analysis(state["response"])
        except Exception as e:
            logger.error(f"storyboard parsing failed: {e}")
            return {"status": RunStatus.PARSING, "error": f"parse failed: {e}"}
        logger.info(f"keyframes parsed | tier={result.tier}")
        return {"status": RunStatus.PARSING, "keyframes": result.keyframes, "tier": result.tier}

    async def materialize_node(state: StoryboardState) -> dict:
        materialize_storyboard_nodes(
            state["keyframes"],
            state["base_prompt"],
            state["anchor"],
            on_add_node,
            state["params"],
            reference_image=state["reference_image"],
        )
        return {"status": RunStatus.MATERIALIZED}

    async def fallback_node(state: StoryboardState) -> dict:
        logger.warning(f"falling back to basic storyboard: {state.get('error') or 'no reference image'}")
        anchor = state["anchor"]
        create_basic_storyboard_nodes(state["base_prompt"], anchor.x, anchor.y, on_add_node, state["params"])
        return {"status": RunStatus.FALLBACK_MATERIALIZED}

    def route_start(state: StoryboardState) -> str:
        return "compose" if state.get("reference_image") else "fallback"

    def route_on_error(state: StoryboardState) -> str:
        return "fallback" if state.get("error") else "next"

    graph = StateGraph(StoryboardState)

    graph.add_node("compose", compose_node)
    graph.add_node("call_model", call_model_node)
    graph.add_node("parse", parse_node)
    graph.add_node("materialize", materialize_node)
    graph.add_node("fallback", fallback_node)

    graph.add_conditional_edges(START, route_start, {"compose": "compose", "fallback": "fallback"})
    graph.add_edge("compose", "call_model")
    graph.add_conditional_edges("call_model", route_on_error, {"next": "parse", "fallback": "fallback"})
    graph.add_conditional_edges("parse", route_on_error, {"next": "materialize", "fallback": "fallback"})
    graph.add_edge("materialize", END)
    graph.add_edge("fallback", END)

    return graph.compile()


async def run_storyboard_from_image(
    uploaded_image: Optional[str],
    base_prompt: str,
    x: float,
    y: float,
    on_add_node: NodeCreationCallback,
    generate_text: TextGenerator,
    params: ParamsInput = None,
) -> StoryboardState:
    """Run the image-guided graph and return its final state."""
    graph = build_storyboard_graph(generate_text, on_add_node)
    initial: StoryboardState = {
        "base_prompt": base_prompt,
        "reference_image": uploaded_image,
        "anchor": Position(x, y),
        "params": resolve_params(params),
        "status": RunStatus.START,
        "error": None,
    }
    final_state = await graph.ainvoke(initial)
    logger.info(f"storyboard run finished | status={final_state['status'].value}")
    return final_state


async def create_storyboard_nodes_from_image(
    uploaded_image: Optional[str],
    base_prompt: str,
    x: float,
    y: float,
    on_add_node: NodeCreationCallback,
    generate_text: TextGenerator,
    params: ParamsInput = None,
) -> bool:
    """True if the model-guided path completed, False if it fell back."""
    final_state = await run_storyboard_from_image(
        uploaded_image, base_prompt, x, y, on_add_node, generate_text, params
    )
    return final_state["status"] == RunStatus.MATERIALIZED
