import os
from dataclasses import dataclass
from typing import List
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    MODEL_NAME: str
    SUPABASE_URL: str
    SUPABASE_JWT_SECRET: str
    JWT_AUDIENCE: str
    CORS_ORIGINS: List[str]
    # Defaults merged under caller-supplied storyboard params
    STORYBOARD_MODEL: str
    STORYBOARD_RATIO: str
    STORYBOARD_BATCH_SIZE: int
    LOG_LEVEL: str

def _required(name: str) -> str:
    v = os.getenv(name)
    if not v:
        raise ValueError(f"{name} required")
    return v

def _load_settings() -> Settings:
    if not os.getenv("OPENAI_API_KEY"):
        raise ValueError("OPENAI_API_KEY required")

    cors_origins_str = _required("CORS_ORIGINS")
    cors_origins = [o.strip() for o in cors_origins_str.split(",") if o.strip()]
    
    if "*" in cors_origins:
        raise ValueError("CORS_ORIGINS must not contain '*' when using credentials/auth")

    batch_size_str = os.getenv("STORYBOARD_BATCH_SIZE", "1")
    try:
        batch_size = int(batch_size_str)
    except ValueError:
        raise ValueError(f"STORYBOARD_BATCH_SIZE must be an integer, got {batch_size_str!r}")

    return Settings(
        MODEL_NAME=os.getenv("MODEL_NAME", "gpt-4o"),
        SUPABASE_URL=_required("SUPABASE_URL").rstrip("/"),
        SUPABASE_JWT_SECRET=_required("SUPABASE_JWT_SECRET"),
        JWT_AUDIENCE=os.getenv("JWT_AUDIENCE", "authenticated"),
        CORS_ORIGINS=cors_origins,
        STORYBOARD_MODEL=os.getenv("STORYBOARD_MODEL", "nano-banana"),
        STORYBOARD_RATIO=os.getenv("STORYBOARD_RATIO", "16:9"),
        STORYBOARD_BATCH_SIZE=batch_size,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )

settings = _load_settings()
