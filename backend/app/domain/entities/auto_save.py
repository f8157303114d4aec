"""
Entites de la file d'auto-save (en memoire, cote client).
Un item est une intention d'ecriture ; sa cle est deterministe pour que
deux ecritures successives sur la meme cible fusionnent en une seule.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class AutoSaveKind(str, Enum):
    """Type d'ecriture mise en file"""
    SESSION = "session"
    EXERCISE_DETAIL = "exercise_detail"


def session_key(session_id: int) -> str:
    return f"session-{session_id}"


def exercise_detail_key(session_id: int, exercise_id: int, set_index: int) -> str:
    return f"exercise-{session_id}-{exercise_id}-{set_index}"


@dataclass
class AutoSaveItem:
    """Ecriture en attente dans la file d'auto-save"""
    id: str
    kind: AutoSaveKind
    payload: Dict[str, Any]
    retry_count: int = 0


class SetData(BaseModel):
    """Mesures d'une serie telles que saisies cote client.

    ``duration`` est le nom local de la colonne ``performing_time``.
    """
    set_index: int
    reps: Optional[int] = None
    weight: Optional[float] = None
    distance: Optional[float] = None
    duration: Optional[float] = None
    power: Optional[float] = None
    resistance: Optional[float] = None
    velocity: Optional[float] = None
    tempo: Optional[str] = None
    completed: Optional[bool] = None

    def to_gateway_payload(self) -> Dict[str, Any]:
        """Convertit vers les noms de colonnes distants ; les mesures absentes sont omises."""
        payload = {
            "set_index": self.set_index,
            "reps": self.reps,
            "weight": self.weight,
            "distance": self.distance,
            "performing_time": self.duration,  # duration -> performing_time
            "power": self.power,
            "resistance": self.resistance,
            "velocity": self.velocity,
            "tempo": self.tempo,
            "completed": self.completed,
        }
        return {key: value for key, value in payload.items() if value is not None}
