"""
Initialisation des entités du domaine
Résout les imports circulaires entre les modèles
"""

# Import des modèles dans l'ordre correct pour éviter les imports circulaires
from .athlete import Athlete, AthleteRead
from .exercise import Exercise, ExercisePresetGroup, ExercisePresetGroupRead
from .training_session import (
    SessionStatus,
    ExerciseTrainingSession, TrainingSessionStart, TrainingSessionRead, TrainingSessionUpdate,
    TrainingSessionComplete, TrainingSessionWithDetails,
    ExerciseTrainingDetail, ExercisePerformanceCreate, ExerciseTrainingDetailRead, ExerciseTrainingDetailUpdate,
)
from .performance import PerformanceMetrics, ExerciseProgress, VolumeTrend
from .auto_save import AutoSaveItem, AutoSaveKind, SetData

__all__ = [
    "Athlete", "AthleteRead",
    "Exercise", "ExercisePresetGroup", "ExercisePresetGroupRead",
    "SessionStatus",
    "ExerciseTrainingSession", "TrainingSessionStart", "TrainingSessionRead", "TrainingSessionUpdate",
    "TrainingSessionComplete", "TrainingSessionWithDetails",
    "ExerciseTrainingDetail", "ExercisePerformanceCreate", "ExerciseTrainingDetailRead",
    "ExerciseTrainingDetailUpdate",
    "PerformanceMetrics", "ExerciseProgress", "VolumeTrend",
    "AutoSaveItem", "AutoSaveKind", "SetData",
]
