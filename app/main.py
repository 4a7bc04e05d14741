from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.logging import setup_logging
from app.api.storyboard import router as storyboard_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="Storyboard Agent", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(storyboard_router)


@app.get("/health")
def health():
    return {"status": "ok"}
