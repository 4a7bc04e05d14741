import uuid
from typing import AsyncGenerator
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.logging import get_logger
from app.config import settings
from app.api.deps import TextGeneratorFactory, get_text_generator_factory, verify_token
from app.api.models import StoryboardRequest, sse_event
from app.agents.storyboard.graph import (
    create_basic_storyboard_nodes,
    resolve_params,
    run_storyboard_from_image,
)
from app.agents.storyboard.materializer import connect_storyboard_nodes
from app.agents.storyboard.state import RunStatus

router = APIRouter()
logger = get_logger("api.storyboard")


def default_params() -> dict:
    return {
        "model": settings.STORYBOARD_MODEL,
        "ratio": settings.STORYBOARD_RATIO,
        "batchSize": settings.STORYBOARD_BATCH_SIZE,
    }


async def stream_storyboard(
    request: StoryboardRequest,
    request_id: str,
    text_generator_factory: TextGeneratorFactory,
) -> AsyncGenerator[str, None]:
    events: list[str] = []
    node_ids: list[str] = []

    def on_add_node(kind: str, x: float, y: float, edge_hint: None, node_data: dict) -> None:
        node_id = f"{request_id}-{node_data['storyboardIndex']}"
        node_ids.append(node_id)
        events.append(sse_event("node", {"id": node_id, "kind": kind, "x": x, "y": y, "data": node_data}))

    def on_connect(source_id: str, source_port: str, target_id: str, target_port: str) -> None:
        events.append(sse_event("link", {
            "source": source_id,
            "sourcePort": source_port,
            "target": target_id,
            "targetPort": target_port,
        }))

    try:
        params = resolve_params(request.generation_params(default_params()))

        if request.referenceImage:
            final_state = await run_storyboard_from_image(
                request.referenceImage,
                request.basePrompt,
                request.x,
                request.y,
                on_add_node,
                text_generator_factory(request.referenceImage),
                params,
            )
            run_status = final_state["status"].value
            success = final_state["status"] == RunStatus.MATERIALIZED
        else:
            create_basic_storyboard_nodes(request.basePrompt, request.x, request.y, on_add_node, params)
            run_status = "basic"
            success = True

        if request.link:
            connect_storyboard_nodes(node_ids, on_connect)

        logger.info(f"[{request_id}] complete | status={run_status} | nodes={len(node_ids)}")
        for event in events:
            yield event
        yield sse_event("done", {"success": success, "status": run_status})
    except Exception as e:
        logger.error(f"[{request_id}] error: {e}")
        yield sse_event("error", {"message": str(e), "code": "storyboard_error"})
        yield sse_event("done", {})


@router.post("/storyboard")
async def storyboard(
    request: StoryboardRequest,
    user_id: str = Depends(verify_token),
    text_generator_factory: TextGeneratorFactory = Depends(get_text_generator_factory),
):
    # request_id is for logging and node ids only.
    request_id = str(uuid.uuid4())[:8]
    logger.info(
        f"[{request_id}] request | user_id={user_id} | "
        f"has_reference_image={request.referenceImage is not None} "
        f"anchor=({request.x}, {request.y}) link={request.link}"
    )
    return StreamingResponse(
        stream_storyboard(request, request_id, text_generator_factory),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
