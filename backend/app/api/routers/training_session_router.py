"""
Routes des seances d'entrainement : demarrage, mise a jour, fin, series,
metriques de performance.
Routes = validation + delegation au service. Pas de logique metier ici.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlmodel import Session

from app.core.database import get_session
from app.auth.jwt import get_current_user_id
from app.domain.entities import (
    ExercisePerformanceCreate,
    ExerciseProgress,
    ExerciseTrainingDetailRead,
    ExerciseTrainingDetailUpdate,
    PerformanceMetrics,
    TrainingSessionComplete,
    TrainingSessionRead,
    TrainingSessionStart,
    TrainingSessionUpdate,
    TrainingSessionWithDetails,
)
from app.domain.services.training_session_service import training_session_service
from app.api.routers._shared import security, limiter, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


# ============ SEANCES ============

@router.post("/training-sessions/start", response_model=TrainingSessionRead)
@limiter.limit("30/minute")
async def start_training_session(
    request: Request,
    response: Response,
    body: TrainingSessionStart,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Demarre une seance (reprend la seance assignee si elle existe)"""
    user_id = get_current_user_id(token.credentials)
    try:
        training_session = training_session_service.start(
            session, user_id, body.exercise_preset_group_id, body.athlete_id
        )
    except ValueError as e:
        raise to_http_exception(e)
    return training_session_service.to_read(training_session)


@router.get("/training-sessions", response_model=List[TrainingSessionRead])
async def list_training_sessions(
    token: str = Depends(security),
    session: Session = Depends(get_session),
    athlete_id: Optional[int] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=200)
):
    """Liste les seances d'un athlete, les plus recentes d'abord"""
    user_id = get_current_user_id(token.credentials)
    try:
        sessions = training_session_service.list_sessions(session, user_id, athlete_id, limit)
    except ValueError as e:
        raise to_http_exception(e)
    return [training_session_service.to_read(s) for s in sessions]


@router.get("/training-sessions/{session_id}", response_model=TrainingSessionWithDetails)
async def get_training_session(
    session_id: int,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Recupere une seance avec ses series"""
    get_current_user_id(token.credentials)
    try:
        training_session = training_session_service.get(session, session_id)
    except ValueError as e:
        raise to_http_exception(e)
    return training_session_service.to_details(training_session)


@router.patch("/training-sessions/{session_id}", response_model=TrainingSessionRead)
async def update_training_session(
    session_id: int,
    updates: TrainingSessionUpdate,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Met a jour une seance (notes, date, statut)"""
    get_current_user_id(token.credentials)
    try:
        training_session = training_session_service.update(session, session_id, updates)
    except ValueError as e:
        raise to_http_exception(e)
    return training_session_service.to_read(training_session)


@router.post("/training-sessions/{session_id}/complete", response_model=TrainingSessionRead)
async def complete_training_session(
    session_id: int,
    body: Optional[TrainingSessionComplete] = None,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Termine une seance (idempotent si deja terminee)"""
    get_current_user_id(token.credentials)
    notes = body.notes if body else None
    try:
        training_session = training_session_service.complete(session, session_id, notes)
    except ValueError as e:
        raise to_http_exception(e)
    return training_session_service.to_read(training_session)


# ============ SERIES ============

@router.post(
    "/training-sessions/{session_id}/exercises/{exercise_id}/performance",
    response_model=ExerciseTrainingDetailRead,
)
async def save_exercise_performance(
    session_id: int,
    exercise_id: int,
    set_data: ExercisePerformanceCreate,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Enregistre une serie (cree ou remplace la serie de meme index)"""
    get_current_user_id(token.credentials)
    try:
        detail = training_session_service.add_exercise_performance(session, session_id, exercise_id, set_data)
    except ValueError as e:
        raise to_http_exception(e)
    return ExerciseTrainingDetailRead.model_validate(detail)


@router.patch("/training-details/{detail_id}", response_model=ExerciseTrainingDetailRead)
async def update_exercise_performance(
    detail_id: int,
    updates: ExerciseTrainingDetailUpdate,
    token: str = Depends(security),
    session: Session = Depends(get_session)
):
    """Met a jour une serie deja enregistree"""
    get_current_user_id(token.credentials)
    try:
        detail = training_session_service.update_exercise_performance(session, detail_id, updates)
    except ValueError as e:
        raise to_http_exception(e)
    return ExerciseTrainingDetailRead.model_validate(detail)


# ============ PERFORMANCE ============

@router.get("/performance/metrics", response_model=PerformanceMetrics)
async def get_performance_metrics(
    token: str = Depends(security),
    session: Session = Depends(get_session),
    athlete_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
):
    """Metriques agregees (series, repetitions, charge, RPE, assiduite)"""
    user_id = get_current_user_id(token.credentials)
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be before end_date")
    try:
        return training_session_service.get_performance_metrics(
            session, user_id, athlete_id, start_date, end_date
        )
    except ValueError as e:
        raise to_http_exception(e)


@router.get("/performance/progress", response_model=List[ExerciseProgress])
async def get_exercise_progress(
    token: str = Depends(security),
    session: Session = Depends(get_session),
    athlete_id: Optional[int] = None,
    exercise_id: Optional[int] = None
):
    """Progression par exercice sur les seances terminees"""
    user_id = get_current_user_id(token.credentials)
    try:
        return training_session_service.get_exercise_progress(session, user_id, athlete_id, exercise_id)
    except ValueError as e:
        raise to_http_exception(e)
