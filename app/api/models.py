import json
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.agents.storyboard.state import parse_ratio


class StoryboardRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", protected_namespaces=())
    basePrompt: str
    x: float = 0
    y: float = 0
    referenceImage: Optional[str] = None
    model: Optional[str] = None
    ratio: Optional[str] = None
    batchSize: Optional[int] = Field(default=None, ge=1)
    link: bool = False

    @field_validator("basePrompt")
    @classmethod
    def require_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("basePrompt must not be blank")
        return v.strip()

    @field_validator("referenceImage", "model", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("ratio")
    @classmethod
    def check_ratio(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        parse_ratio(v)
        return v.strip()

    def generation_params(self, defaults: dict) -> dict:
        """Caller-supplied params layered over the configured defaults."""
        params = dict(defaults)
        overrides = {"model": self.model, "ratio": self.ratio, "batchSize": self.batchSize}
        params.update({k: v for k, v in overrides.items() if v is not None})
        return params


def sse_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"
