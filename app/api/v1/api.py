from fastapi import APIRouter
from app.api.v1.routes.feed import router as feed_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(feed_router)
