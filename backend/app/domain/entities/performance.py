"""
Schémas d'analyse de performance (réponses API, pas de table)
"""
from pydantic import BaseModel
from typing import Optional
from datetime import date
from enum import Enum


class VolumeTrend(str, Enum):
    """Tendance de la charge entre la première et la dernière série enregistrée"""
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class PerformanceMetrics(BaseModel):
    """Agrégats de performance d'un athlète sur une période"""
    total_sets: int = 0
    total_reps: int = 0
    total_weight: float = 0.0
    average_rpe: float = 0.0
    completion_rate: float = 0.0  # pourcentage de séances terminées
    streak_days: int = 0


class ExerciseProgress(BaseModel):
    """Progression d'un athlète sur un exercice (séances terminées uniquement)"""
    exercise_id: int
    exercise_name: str
    sessions_completed: int
    pr_weight: Optional[float] = None
    pr_reps: Optional[int] = None
    pr_date: Optional[date] = None
    average_rpe: float = 0.0
    volume_trend: VolumeTrend = VolumeTrend.STABLE
