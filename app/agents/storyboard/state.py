import re
from enum import Enum
from typing import Any, Callable, NamedTuple, NotRequired, Optional
from typing_extensions import TypedDict
from pydantic import BaseModel, ConfigDict, Field, field_validator

_RATIO_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$")

# (node_kind, x, y, edge_hint, node_data) -> None
NodeCreationCallback = Callable[[str, float, float, None, dict], None]
# (source_id, source_port, target_id, target_port) -> None
NodeConnectionCallback = Callable[[Any, str, Any, str], None]


def parse_ratio(ratio: str) -> tuple[int, int]:
    match = _RATIO_RE.match(ratio or "")
    if not match:
        raise ValueError(f"ratio must look like 'W:H', got {ratio!r}")
    w, h = int(match.group(1)), int(match.group(2))
    if w <= 0 or h <= 0:
        raise ValueError(f"ratio components must be positive, got {ratio!r}")
    return w, h


class GenerationParams(BaseModel):
    """Image generation parameters shared by all four storyboard nodes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, protected_namespaces=())

    model: str = "nano-banana"
    ratio: str = "16:9"
    batch_size: int = Field(default=1, ge=1, alias="batchSize")

    @field_validator("ratio")
    @classmethod
    def check_ratio(cls, v: str) -> str:
        # Rejected here: a node spec must never carry a NaN aspect ratio.
        parse_ratio(v)
        return v.strip()

    @property
    def aspect_ratio(self) -> float:
        w, h = parse_ratio(self.ratio)
        return w / h


class Position(NamedTuple):
    x: float
    y: float


class StoryboardNodeSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    prompt: str
    model: str
    ratio: str
    aspect_ratio: float = Field(alias="aspectRatio")
    batch_size: int = Field(alias="batchSize")
    is_storyboard: bool = Field(default=True, alias="isStoryboard")
    storyboard_index: int = Field(alias="storyboardIndex", ge=1, le=4)
    storyboard_base_prompt: str = Field(alias="storyboardBasePrompt")
    reference_image: Optional[str] = Field(default=None, alias="referenceImage")

    def to_node_data(self) -> dict:
        """camelCase payload handed to the node-creation callback."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RunStatus(str, Enum):
    START = "start"
    COMPOSING = "composing"
    AWAITING_MODEL = "awaiting_model"
    PARSING = "parsing"
    MATERIALIZED = "materialized"
    FALLBACK_MATERIALIZED = "fallback_materialized"


class StoryboardState(TypedDict):
    base_prompt: str
    reference_image: Optional[str]
    anchor: Position
    params: GenerationParams
    status: RunStatus

    instruction: NotRequired[str]
    response: NotRequired[Any]
    keyframes: NotRequired[list[str]]
    tier: NotRequired[str]
    # Set by the model/parse nodes; any value routes the run to the fallback.
    error: NotRequired[str | None]
