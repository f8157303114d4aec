"""
Routers API pour Kasoku.

Ce module regroupe tous les sous-routers et expose un router principal
a inclure dans l'application FastAPI.
"""
from fastapi import APIRouter

from app.api.routers.training_session_router import router as training_session_router
from app.api.routers._shared import limiter

router = APIRouter()

router.include_router(training_session_router)

__all__ = ["router", "limiter"]
