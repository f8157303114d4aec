"""
Controleur de seance cote client.

Detient la seance courante et ses series en memoire, pilote la machine a
etats (assigned -> ongoing -> completed) et sequence les operations durables :
``complete_session`` ne part jamais avant une sauvegarde complete de la file.

Aucune operation ne leve : chacune retourne un OperationResult et met a jour
``error`` / ``is_loading``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.domain.entities import (
    ExerciseTrainingDetailRead,
    SessionStatus,
    TrainingSessionRead,
    TrainingSessionWithDetails,
)
from app.domain.entities.session_state import (
    STARTABLE_STATES,
    InvalidSessionTransition,
    OngoingSession,
    SessionState,
    UnknownSession,
    state_from_status,
)
from app.domain.services.workout_api import WorkoutApi

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    success: bool
    error: Optional[str] = None


class WorkoutSessionController:
    """Etat de seance expose a la couche de presentation."""

    def __init__(
        self,
        api: WorkoutApi,
        session: Optional[TrainingSessionWithDetails] = None,
        preset_group_id: Optional[int] = None,
        athlete_id: Optional[int] = None,
    ):
        self.api = api
        self.session: Optional[TrainingSessionWithDetails] = None
        self.training_details: List[ExerciseTrainingDetailRead] = []
        self.state: SessionState = UnknownSession()
        self.preset_group_id = preset_group_id
        self.athlete_id = athlete_id
        self.is_loading = False
        self.error: Optional[str] = None
        if session is not None:
            self._replace_session(session)

    # ------------------------------------------------------------------
    # Etat observable
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def session_id(self) -> Optional[int]:
        return self.state.session_id

    @property
    def is_saving(self) -> bool:
        return self.api.is_saving

    @property
    def last_save_time(self) -> Optional[float]:
        return self.api.last_save_time

    @property
    def pending_saves(self) -> int:
        return self.api.pending_saves

    # ------------------------------------------------------------------
    # Cycle de vie
    # ------------------------------------------------------------------

    async def start_session(self) -> OperationResult:
        if not isinstance(self.state, STARTABLE_STATES):
            return self._fail(str(InvalidSessionTransition(self.status, "start")))
        if not self.preset_group_id:
            return self._fail("No exercise preset group selected")

        self.is_loading = True
        self.error = None
        try:
            started = await self.api.start_session(self.preset_group_id, self.athlete_id)
            if started is None:
                return self._fail(self.api.error or "Failed to start session")

            previous = self.status
            self.state = self.state.start(started.id)
            self._adopt_started(started)
            logger.info(f"Seance {started.id}: {previous.value} -> {self.status.value}")
            return OperationResult(success=True)
        except Exception as e:
            logger.error(f"Erreur inattendue au demarrage de la seance: {e}")
            return self._fail(f"Failed to start session: {e}")
        finally:
            self.is_loading = False

    async def save_session(self) -> OperationResult:
        """Sauvegarde durable : vide la file d'auto-save avant de repondre."""
        self.is_loading = True
        self.error = None
        try:
            if await self.api.force_save():
                return OperationResult(success=True)
            return self._fail(self.api.error or "Some changes could not be saved")
        except Exception as e:
            logger.error(f"Erreur inattendue pendant la sauvegarde: {e}")
            return self._fail(f"Failed to save session: {e}")
        finally:
            self.is_loading = False

    async def complete_session(self, notes: Optional[str] = None) -> OperationResult:
        """Sauvegarde, puis termine, puis recharge la seance.

        Si la sauvegarde echoue, la seance n'est pas terminee.
        """
        if not isinstance(self.state, OngoingSession):
            return self._fail(str(InvalidSessionTransition(self.status, "complete")))

        saved = await self.save_session()
        if not saved.success:
            logger.warning(f"Seance {self.session_id}: fin annulee, sauvegarde incomplete")
            return saved

        session_id = self.state.session_id
        self.is_loading = True
        self.error = None
        try:
            if not await self.api.complete_session(session_id, notes):
                return self._fail(self.api.error or "Failed to complete session")
            self.state = self.state.complete()
            logger.info(f"Seance {session_id}: ongoing -> completed")
        except Exception as e:
            logger.error(f"Erreur inattendue a la fin de la seance {session_id}: {e}")
            return self._fail(f"Failed to complete session: {e}")
        finally:
            self.is_loading = False

        # Recuperer les champs calcules par le serveur
        refreshed = await self.refresh_session_data()
        if not refreshed.success:
            logger.warning(f"Seance {session_id} terminee mais non rechargee: {refreshed.error}")
        return OperationResult(success=True)

    async def refresh_session_data(self) -> OperationResult:
        """Recharge la seance et ses series et remplace l'etat local."""
        session_id = self.session_id
        if session_id is None:
            return self._fail("No session loaded")

        self.is_loading = True
        self.error = None
        try:
            session = await self.api.get_session(session_id)
            if session is None:
                return self._fail(self.api.error or "Failed to load session")
            self._replace_session(session)
            return OperationResult(success=True)
        except Exception as e:
            logger.error(f"Erreur inattendue au rechargement de la seance {session_id}: {e}")
            return self._fail(f"Failed to load session: {e}")
        finally:
            self.is_loading = False

    async def load_session(self, session_id: int) -> OperationResult:
        self.state = UnknownSession(session_id=session_id)
        return await self.refresh_session_data()

    # ------------------------------------------------------------------
    # Etat local (sans persistance)
    # ------------------------------------------------------------------

    def update_training_detail(self, detail_id: int, updates: Dict[str, Any]) -> bool:
        for index, detail in enumerate(self.training_details):
            if detail.id == detail_id:
                self.training_details[index] = detail.model_copy(update=updates)
                return True
        return False

    def update_exercise_training_details(
        self, exercise_id: int, details: List[ExerciseTrainingDetailRead]
    ) -> None:
        """Fusionne les series recues par id ; les ids inconnus sont ajoutes."""
        by_id = {detail.id: detail for detail in details if detail.exercise_id == exercise_id}
        merged = []
        for detail in self.training_details:
            merged.append(by_id.pop(detail.id, detail))
        merged.extend(by_id.values())
        self.training_details = merged

    def clear_error(self) -> None:
        self.error = None
        self.api.clear_error()

    # ------------------------------------------------------------------
    # Interne
    # ------------------------------------------------------------------

    def _fail(self, error: str) -> OperationResult:
        self.error = error
        return OperationResult(success=False, error=error)

    def _replace_session(self, session: TrainingSessionWithDetails) -> None:
        self.session = session
        self.training_details = list(session.exercise_training_details)
        self.state = state_from_status(session.status, session.id)
        self.preset_group_id = session.exercise_preset_group_id
        self.athlete_id = session.athlete_id

    def _adopt_started(self, started: TrainingSessionRead) -> None:
        data = started.model_dump()
        if self.session is not None:
            data["exercise_preset_group"] = self.session.exercise_preset_group
        data["exercise_training_details"] = self.training_details
        self.session = TrainingSessionWithDetails(**data)
        self.athlete_id = started.athlete_id
