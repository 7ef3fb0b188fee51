from fastapi import APIRouter

from .health import router as health_router
from .review import router as review_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(review_router)
