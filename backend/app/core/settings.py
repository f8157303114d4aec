"""
Configuration centralisée pour le backend Kasoku
Utilise pydantic-settings pour la gestion des variables d'environnement
"""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Configuration de l'application"""

    # Database
    DATABASE_URL: str = Field(
        description="URL de la base de données (PostgreSQL en production)"
    )

    # JWT Configuration
    JWT_SECRET_KEY: str = Field(
        description="Clé secrète pour signer les JWT (obligatoire, pas de valeur par défaut)"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)

    # Client de l'API (gateway HTTP utilisé par la synchronisation des séances)
    API_BASE_URL: str = Field(
        default="http://localhost:8000/api/v1",
        description="URL de base de l'API training utilisée par HttpTrainingGateway"
    )
    API_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout des appels HTTP du gateway (secondes)"
    )

    # Auto-save des séances
    AUTOSAVE_DELAY_MS: int = Field(
        default=2000,
        ge=0,
        description="Délai de debounce avant l'envoi de la file d'auto-save (ms)"
    )
    AUTOSAVE_MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        description="Nombre de nouvelles tentatives pour une écriture en échec"
    )
    ENABLE_OPTIMISTIC_UPDATES: bool = Field(default=True)

    # URLs de l'application
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="URL du frontend (utilisée pour CORS)"
    )

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Origines autorisées pour CORS (configuré automatiquement selon ENVIRONMENT si vide)"
    )

    # Monitoring (Sentry)
    SENTRY_DSN: str = Field(
        default="",
        description="DSN Sentry pour le error tracking (vide = Sentry desactive)"
    )

    # Application
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(
        default="",
        description="Niveau de logging (auto-configuré selon ENVIRONMENT si vide)"
    )

    @model_validator(mode="after")
    def _configure_environment(self) -> "Settings":
        """Configure DEBUG et LOG_LEVEL selon ENVIRONMENT."""
        is_prod = self.ENVIRONMENT == "production"
        # En production, forcer DEBUG=False
        if is_prod:
            self.DEBUG = False
        # LOG_LEVEL par défaut selon ENVIRONMENT
        if not self.LOG_LEVEL:
            self.LOG_LEVEL = "WARNING" if is_prod else "INFO"
        return self

    @model_validator(mode="after")
    def _set_default_origins(self) -> "Settings":
        """Définit les origines CORS par défaut selon ENVIRONMENT si non configurées."""
        if not self.ALLOWED_ORIGINS:
            if self.ENVIRONMENT == "production":
                self.ALLOWED_ORIGINS = ["https://kasoku.vercel.app"]
            else:
                self.ALLOWED_ORIGINS = [
                    "http://localhost:3000",
                    "http://127.0.0.1:3000",
                ]
        # Toujours inclure FRONTEND_URL dans les origines autorisees
        frontend = self.FRONTEND_URL.rstrip("/")
        if frontend and frontend not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS.append(frontend)
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Récupère la configuration (mise en cache)"""
    return Settings()
