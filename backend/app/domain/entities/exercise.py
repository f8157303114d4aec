"""
Entités Exercise et ExercisePresetGroup - Domain Layer
Le preset group est le modèle (template) qu'une séance d'entraînement exécute.
Seules les colonnes lues par la synchronisation des séances sont modélisées.
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from .training_session import ExerciseTrainingSession


class Exercise(SQLModel, table=True):
    """Table exercises"""
    __tablename__ = "exercises"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)


class ExercisePresetGroupBase(SQLModel):
    """Modèle de base pour ExercisePresetGroup"""
    name: str = Field(max_length=255)
    description: Optional[str] = None


class ExercisePresetGroup(ExercisePresetGroupBase, table=True):
    """Table exercise_preset_groups"""
    __tablename__ = "exercise_preset_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relations
    training_sessions: List["ExerciseTrainingSession"] = Relationship(back_populates="exercise_preset_group")


class ExercisePresetGroupRead(ExercisePresetGroupBase):
    """Schéma pour lire un preset group (réponse API)"""
    id: int
