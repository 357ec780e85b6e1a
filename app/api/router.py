from fastapi import APIRouter

from app.api.routes.admin import router as admin_router
from app.api.routes.health import router as health_router
from app.api.routes.quizzes import router as quizzes_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(quizzes_router, tags=["quizzes"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
