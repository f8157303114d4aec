"""
Entités ExerciseTrainingSession et ExerciseTrainingDetail - Domain Layer
Une séance est l'exécution d'un preset group par un athlète ;
chaque detail est la mesure d'une série (set) d'un exercice de la séance.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String, UniqueConstraint
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from enum import Enum

from .exercise import ExercisePresetGroupRead

if TYPE_CHECKING:
    from .exercise import ExercisePresetGroup


class SessionStatus(str, Enum):
    """Statuts d'une séance. UNKNOWN n'existe que côté client (avant chargement)."""
    ASSIGNED = "assigned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    UNKNOWN = "unknown"


# ============================================================
# Séance
# ============================================================

class TrainingSessionBase(SQLModel):
    """Modèle de base pour ExerciseTrainingSession"""
    exercise_preset_group_id: int = Field(foreign_key="exercise_preset_groups.id", index=True)
    athlete_id: int = Field(foreign_key="athletes.id", index=True)
    notes: Optional[str] = None
    date_time: datetime = Field(default_factory=datetime.utcnow)


class ExerciseTrainingSession(TrainingSessionBase, table=True):
    """Table exercise_training_sessions"""
    __tablename__ = "exercise_training_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Colonne TEXT pour éviter les problèmes d'enum SQLAlchemy
    status: SessionStatus = Field(
        default=SessionStatus.ASSIGNED,
        sa_column=Column("status", String, nullable=False, index=True),
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relations
    exercise_preset_group: Optional["ExercisePresetGroup"] = Relationship(back_populates="training_sessions")
    exercise_training_details: List["ExerciseTrainingDetail"] = Relationship(back_populates="training_session")


class TrainingSessionStart(SQLModel):
    """Schéma pour démarrer une séance"""
    exercise_preset_group_id: int
    athlete_id: Optional[int] = None


class TrainingSessionRead(TrainingSessionBase):
    """Schéma pour lire une séance (réponse API)"""
    id: int
    status: SessionStatus
    created_at: datetime
    updated_at: datetime


class TrainingSessionUpdate(SQLModel):
    """Schéma pour mettre à jour une séance"""
    notes: Optional[str] = None
    status: Optional[SessionStatus] = None
    date_time: Optional[datetime] = None


class TrainingSessionComplete(SQLModel):
    """Schéma pour terminer une séance"""
    notes: Optional[str] = None


# ============================================================
# Détail de performance (une série)
# ============================================================

class TrainingDetailMeasures(SQLModel):
    """Mesures optionnelles d'une série (noms des colonnes en base)"""
    reps: Optional[int] = None
    weight: Optional[float] = None
    distance: Optional[float] = None
    performing_time: Optional[float] = None  # secondes ("duration" côté client)
    power: Optional[float] = None
    resistance: Optional[float] = None
    velocity: Optional[float] = None
    tempo: Optional[str] = None
    rest_time: Optional[int] = None
    rpe: Optional[float] = None
    notes: Optional[str] = None


class ExerciseTrainingDetail(TrainingDetailMeasures, table=True):
    """Table exercise_training_details"""
    __tablename__ = "exercise_training_details"
    __table_args__ = (
        UniqueConstraint(
            "exercise_training_session_id", "exercise_id", "set_index",
            name="uq_training_detail_session_exercise_set",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    exercise_training_session_id: int = Field(foreign_key="exercise_training_sessions.id", index=True)
    exercise_id: int = Field(foreign_key="exercises.id", index=True)
    set_index: int
    completed: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relations
    training_session: Optional["ExerciseTrainingSession"] = Relationship(back_populates="exercise_training_details")


class ExercisePerformanceCreate(TrainingDetailMeasures):
    """Schéma pour enregistrer (upsert) une série"""
    set_index: int = Field(ge=0)
    completed: Optional[bool] = None


class ExerciseTrainingDetailRead(TrainingDetailMeasures):
    """Schéma pour lire une série (réponse API)"""
    id: int
    exercise_training_session_id: int
    exercise_id: int
    set_index: int
    completed: bool = False


class ExerciseTrainingDetailUpdate(TrainingDetailMeasures):
    """Schéma pour modifier une série déjà enregistrée"""
    completed: Optional[bool] = None


class TrainingSessionWithDetails(TrainingSessionRead):
    """Séance avec son preset group et toutes ses séries"""
    exercise_preset_group: Optional[ExercisePresetGroupRead] = None
    exercise_training_details: List[ExerciseTrainingDetailRead] = []
