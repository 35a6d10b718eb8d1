from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.v1.api import api_router
from app.api.v1.routes.feed import router as feed_router

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

app = FastAPI(title=settings.APP_NAME)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev.
# The feed is read-only and embedded by third-party pages, so GET is all it allows.
_default_origins = [
    "http://127.0.0.1:8080", "http://localhost:8080",
]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(api_router)
# Legacy widget embeds call /feed without the version prefix
app.include_router(feed_router)


@app.get("/health")
def health():
    return {"status": "ok"}
