"""
Gateway de persistance distante des seances.

Interface asynchrone consommee par la synchronisation cote client
(WorkoutApi, AutoSaveQueue). Chaque operation retourne un ActionResult :
un echec attendu n'est jamais leve, il est decrit (message + type d'erreur).

Deux implementations :
  - HttpTrainingGateway  → API REST /api/v1 via httpx.AsyncClient
  - LocalTrainingGateway → TrainingSessionService en process (SQLModel)
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

import httpx
from pydantic import ValidationError
from sqlmodel import Session

from app.domain.entities import (
    ExercisePerformanceCreate,
    ExerciseTrainingDetailUpdate,
    TrainingSessionRead,
    TrainingSessionUpdate,
    TrainingSessionWithDetails,
)
from app.domain.services.training_session_service import (
    TrainingSessionService,
    training_session_service,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Codes HTTP qui meritent une nouvelle tentative
TRANSIENT_STATUS_CODES = {408, 425, 429}


class ErrorKind(str, Enum):
    """Classification des echecs : seuls les echecs transitoires sont rejoues"""
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass
class ActionResult(Generic[T]):
    """Resultat d'une operation distante (succes ou echec decrit)"""
    is_success: bool
    message: str = ""
    data: Optional[T] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "") -> "ActionResult[T]":
        return cls(is_success=True, message=message, data=data)

    @classmethod
    def failure(cls, message: str, error_kind: ErrorKind = ErrorKind.TRANSIENT) -> "ActionResult[T]":
        return cls(is_success=False, message=message, error_kind=error_kind)

    @property
    def is_transient_failure(self) -> bool:
        return not self.is_success and self.error_kind != ErrorKind.PERMANENT


class TrainingGateway(ABC):
    """Operations distantes sur les seances et leurs series."""

    @abstractmethod
    async def start_training_session(
        self, preset_group_id: int, athlete_id: Optional[int] = None
    ) -> ActionResult[TrainingSessionRead]:
        ...

    @abstractmethod
    async def get_training_session_by_id(self, session_id: int) -> ActionResult[TrainingSessionWithDetails]:
        ...

    @abstractmethod
    async def update_training_session(self, session_id: int, updates: Dict[str, Any]) -> ActionResult:
        ...

    @abstractmethod
    async def complete_training_session(self, session_id: int, notes: Optional[str] = None) -> ActionResult:
        ...

    @abstractmethod
    async def add_exercise_performance(
        self, session_id: int, exercise_id: int, set_data: Dict[str, Any]
    ) -> ActionResult:
        """``set_data`` utilise les noms distants (``performing_time``, pas ``duration``)."""
        ...

    @abstractmethod
    async def update_exercise_performance(self, detail_id: int, updates: Dict[str, Any]) -> ActionResult:
        ...


# ============================================================
# Gateway HTTP
# ============================================================

class HttpTrainingGateway(TrainingGateway):
    """Gateway vers l'API REST training (voir app/api/routers/training_session_router.py)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if client is None:
            from app.core.settings import get_settings
            settings = get_settings()
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            client = httpx.AsyncClient(
                base_url=(base_url or settings.API_BASE_URL).rstrip("/"),
                headers=headers,
                timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            )
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTrainingGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> ActionResult[Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning(f"Timeout {method} {path}: {exc}")
            return ActionResult.failure(f"Request timed out: {exc}", ErrorKind.TRANSIENT)
        except httpx.HTTPError as exc:
            logger.warning(f"Erreur reseau {method} {path}: {exc}")
            return ActionResult.failure(f"Network error: {exc}", ErrorKind.TRANSIENT)

        if response.is_success:
            if not response.content:
                return ActionResult.ok(None)
            try:
                return ActionResult.ok(response.json())
            except ValueError as exc:
                # Corps 2xx illisible (page HTML de proxy)
                logger.error(f"Reponse non JSON {method} {path} ({response.status_code}): {exc}")
                return ActionResult.failure(f"Invalid response from server: {exc}", ErrorKind.PERMANENT)

        message = _error_message(response)
        if response.status_code in TRANSIENT_STATUS_CODES or response.status_code >= 500:
            kind = ErrorKind.TRANSIENT
        else:
            kind = ErrorKind.PERMANENT
        logger.warning(f"{method} {path} -> {response.status_code} ({kind.value}): {message}")
        return ActionResult.failure(message, kind)

    @staticmethod
    def _parse(result: ActionResult[Any], schema) -> ActionResult:
        if not result.is_success:
            return result
        try:
            return ActionResult.ok(schema.model_validate(result.data))
        except ValidationError as exc:
            logger.error(f"Reponse invalide ({schema.__name__}): {exc}")
            return ActionResult.failure(f"Invalid response from server: {exc}", ErrorKind.PERMANENT)

    async def start_training_session(
        self, preset_group_id: int, athlete_id: Optional[int] = None
    ) -> ActionResult[TrainingSessionRead]:
        result = await self._request(
            "POST",
            "/training-sessions/start",
            json={"exercise_preset_group_id": preset_group_id, "athlete_id": athlete_id},
        )
        return self._parse(result, TrainingSessionRead)

    async def get_training_session_by_id(self, session_id: int) -> ActionResult[TrainingSessionWithDetails]:
        result = await self._request("GET", f"/training-sessions/{session_id}")
        return self._parse(result, TrainingSessionWithDetails)

    async def update_training_session(self, session_id: int, updates: Dict[str, Any]) -> ActionResult:
        return await self._request("PATCH", f"/training-sessions/{session_id}", json=updates)

    async def complete_training_session(self, session_id: int, notes: Optional[str] = None) -> ActionResult:
        return await self._request("POST", f"/training-sessions/{session_id}/complete", json={"notes": notes})

    async def add_exercise_performance(
        self, session_id: int, exercise_id: int, set_data: Dict[str, Any]
    ) -> ActionResult:
        return await self._request(
            "POST",
            f"/training-sessions/{session_id}/exercises/{exercise_id}/performance",
            json=set_data,
        )

    async def update_exercise_performance(self, detail_id: int, updates: Dict[str, Any]) -> ActionResult:
        return await self._request("PATCH", f"/training-details/{detail_id}", json=updates)


def _error_message(response: httpx.Response) -> str:
    """Extrait le message d'erreur FastAPI (``detail``) ou retombe sur le texte brut."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return f"HTTP {response.status_code}"


# ============================================================
# Gateway en process
# ============================================================

class LocalTrainingGateway(TrainingGateway):
    """Gateway en process : appelle directement TrainingSessionService.

    ``user_id`` est l'utilisateur pour le compte duquel les seances sont demarrees.
    """

    def __init__(
        self,
        user_id: str,
        session_factory: Optional[Callable[[], Session]] = None,
        service: TrainingSessionService = training_session_service,
    ):
        if session_factory is None:
            from app.core.database import engine

            def session_factory() -> Session:
                return Session(engine)

        self.user_id = user_id
        self._session_factory = session_factory
        self._service = service

    def _execute(self, fn: Callable[[Session], Any]) -> Any:
        with self._session_factory() as session:
            return fn(session)

    async def _run(self, operation: str, fn: Callable[[Session], Any]) -> ActionResult:
        try:
            # I/O SQLModel synchrone : hors de la boucle d'evenements
            return ActionResult.ok(await asyncio.to_thread(self._execute, fn))
        except (ValueError, ValidationError) as exc:
            # Erreurs metier (introuvable, seance terminee, donnees invalides) : rejouer ne sert a rien
            logger.warning(f"{operation} refuse: {exc}")
            return ActionResult.failure(str(exc), ErrorKind.PERMANENT)
        except Exception as exc:
            logger.error(f"Erreur inattendue pendant {operation}: {exc}")
            return ActionResult.failure(f"An unexpected error occurred: {exc}", ErrorKind.TRANSIENT)

    async def start_training_session(
        self, preset_group_id: int, athlete_id: Optional[int] = None
    ) -> ActionResult[TrainingSessionRead]:
        return await self._run(
            "start_training_session",
            lambda s: self._service.to_read(self._service.start(s, self.user_id, preset_group_id, athlete_id)),
        )

    async def get_training_session_by_id(self, session_id: int) -> ActionResult[TrainingSessionWithDetails]:
        return await self._run(
            "get_training_session_by_id",
            lambda s: self._service.to_details(self._service.get(s, session_id)),
        )

    async def update_training_session(self, session_id: int, updates: Dict[str, Any]) -> ActionResult:
        return await self._run(
            "update_training_session",
            lambda s: self._service.to_read(
                self._service.update(s, session_id, TrainingSessionUpdate(**updates))
            ),
        )

    async def complete_training_session(self, session_id: int, notes: Optional[str] = None) -> ActionResult:
        return await self._run(
            "complete_training_session",
            lambda s: self._service.to_read(self._service.complete(s, session_id, notes)),
        )

    async def add_exercise_performance(
        self, session_id: int, exercise_id: int, set_data: Dict[str, Any]
    ) -> ActionResult:
        return await self._run(
            "add_exercise_performance",
            lambda s: self._service.add_exercise_performance(
                s, session_id, exercise_id, ExercisePerformanceCreate(**set_data)
            ).id,
        )

    async def update_exercise_performance(self, detail_id: int, updates: Dict[str, Any]) -> ActionResult:
        return await self._run(
            "update_exercise_performance",
            lambda s: self._service.update_exercise_performance(
                s, detail_id, ExerciseTrainingDetailUpdate(**updates)
            ).id,
        )
