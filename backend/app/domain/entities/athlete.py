"""
Entité Athlete - Domain Layer
Profil athlète rattaché à un utilisateur authentifié (sujet du JWT)
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class AthleteBase(SQLModel):
    """Modèle de base pour Athlete"""
    user_id: str = Field(index=True, max_length=255)
    name: Optional[str] = None


class Athlete(AthleteBase, table=True):
    """Table athletes"""
    __tablename__ = "athletes"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AthleteRead(AthleteBase):
    """Schéma pour lire un athlète (réponse API)"""
    id: int
