"""
Router de la API v1 (montado bajo /api).
"""
from fastapi import APIRouter

from app.api.v1.endpoints import salsify


api_router = APIRouter(prefix="/v1")
api_router.include_router(salsify.router)
