"""
Configuration de la base de données avec SQLModel
"""
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import create_engine, SQLModel, Session
from app.core.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# SQLite (dev, tests) : la session est partagée entre threads (gateway local, TestClient)
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    connect_args=_connect_args,
)


def create_db_and_tables():
    """Crée les tables des séances (Alembic reste la référence en production)"""
    # Enregistre les tables dans SQLModel.metadata
    import app.domain.entities  # noqa: F401

    SQLModel.metadata.create_all(engine)


def check_database_health() -> bool:
    """Vérifie que la base répond (utilisé par /health et au démarrage)"""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Base de données injoignable: {e}")
        return False


def get_session():
    """Générateur de session de base de données pour l'injection de dépendance"""
    with Session(engine) as session:
        yield session
