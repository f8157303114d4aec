"""
Facade client des operations de seance.

Les ecritures de seance et de series passent par l'AutoSaveQueue (reponse
optimiste immediate) sauf si ``immediate=True`` ; demarrer et terminer une
seance sont toujours immediats. Les echecs immediats sont retournes
(``None`` / ``False``) et publies sur le canal de notifications.
"""
import logging
from typing import Any, Dict, Optional

from app.domain.entities import (
    AutoSaveItem,
    AutoSaveKind,
    SetData,
    TrainingSessionRead,
    TrainingSessionWithDetails,
)
from app.domain.entities.auto_save import exercise_detail_key, session_key
from app.domain.services.auto_save_queue import AutoSaveConfig, AutoSaveQueue
from app.domain.services.delayed_task_scheduler import AsyncioScheduler, DelayedTaskScheduler
from app.domain.services.notifications import NotificationChannel
from app.domain.services.training_gateway import ActionResult, ErrorKind, TrainingGateway

logger = logging.getLogger(__name__)


class WorkoutApi:
    """Operations de seance pour un client ; possede sa propre file d'auto-save."""

    def __init__(
        self,
        gateway: TrainingGateway,
        scheduler: Optional[DelayedTaskScheduler] = None,
        notifications: Optional[NotificationChannel] = None,
        config: Optional[AutoSaveConfig] = None,
        optimistic: bool = True,
    ):
        self.gateway = gateway
        self.notifications = notifications or NotificationChannel()
        self.scheduler = scheduler or AsyncioScheduler()
        self.queue = AutoSaveQueue(self._dispatch, self.scheduler, self.notifications, config)
        self.optimistic = optimistic
        self.is_loading = False
        self.error: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        gateway: TrainingGateway,
        scheduler: Optional[DelayedTaskScheduler] = None,
        notifications: Optional[NotificationChannel] = None,
        settings=None,
    ) -> "WorkoutApi":
        if settings is None:
            from app.core.settings import get_settings
            settings = get_settings()
        return cls(
            gateway,
            scheduler=scheduler,
            notifications=notifications,
            config=AutoSaveConfig.from_settings(settings),
            optimistic=settings.ENABLE_OPTIMISTIC_UPDATES,
        )

    # ------------------------------------------------------------------
    # Etat de la file
    # ------------------------------------------------------------------

    @property
    def is_saving(self) -> bool:
        return self.queue.is_saving

    @property
    def last_save_time(self) -> Optional[float]:
        return self.queue.last_save_time

    @property
    def pending_saves(self) -> int:
        return self.queue.pending_saves

    def clear_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def start_session(
        self, preset_group_id: int, athlete_id: Optional[int] = None
    ) -> Optional[TrainingSessionRead]:
        """Demarre une seance. Pas de retry : demarrer n'est pas idempotent."""
        result = await self._call(
            "Failed to start session",
            self.gateway.start_training_session(preset_group_id, athlete_id),
        )
        if not result.is_success:
            return None
        logger.info(f"Seance {result.data.id} demarree (groupe {preset_group_id})")
        self.notifications.notify("Session started", "Your training session has started.")
        return result.data

    async def get_session(self, session_id: int) -> Optional[TrainingSessionWithDetails]:
        result = await self._call("Failed to load session", self.gateway.get_training_session_by_id(session_id))
        return result.data if result.is_success else None

    async def update_session(
        self, session_id: int, updates: Dict[str, Any], immediate: bool = False
    ) -> bool:
        if not immediate and self.optimistic:
            self.queue.enqueue(AutoSaveItem(
                id=session_key(session_id),
                kind=AutoSaveKind.SESSION,
                payload={"session_id": session_id, "updates": dict(updates)},
            ))
            return True

        result = await self._call(
            "Failed to update session",
            self.gateway.update_training_session(session_id, updates),
        )
        return result.is_success

    async def complete_session(self, session_id: int, notes: Optional[str] = None) -> bool:
        """Termine la seance. Ne vide pas la file : c'est au controleur de sauvegarder avant."""
        result = await self._call(
            "Failed to complete session",
            self.gateway.complete_training_session(session_id, notes),
        )
        if result.is_success:
            logger.info(f"Seance {session_id} terminee")
            self.notifications.notify("Session completed", "Great work! Your session has been saved.")
        return result.is_success

    async def save_exercise_performance(
        self,
        session_id: int,
        exercise_id: int,
        set_data: SetData,
        immediate: bool = False,
    ) -> bool:
        if not immediate and self.optimistic:
            self.queue.enqueue(AutoSaveItem(
                id=exercise_detail_key(session_id, exercise_id, set_data.set_index),
                kind=AutoSaveKind.EXERCISE_DETAIL,
                payload={"session_id": session_id, "exercise_id": exercise_id, "set_data": set_data},
            ))
            return True

        result = await self._call(
            "Failed to save exercise performance",
            self.gateway.add_exercise_performance(session_id, exercise_id, set_data.to_gateway_payload()),
        )
        return result.is_success

    async def update_exercise_performance(
        self, detail_id: int, updates: Dict[str, Any], immediate: bool = True
    ) -> bool:
        # Pas de cle de file pour un detail deja persiste : toujours immediat
        if not immediate:
            logger.debug(f"Mise a jour du detail {detail_id} envoyee immediatement")
        result = await self._call(
            "Failed to update exercise performance",
            self.gateway.update_exercise_performance(detail_id, updates),
        )
        return result.is_success

    async def force_save(self) -> bool:
        """Vide la file immediatement ; False si des ecritures restent non livrees."""
        flushed = await self.queue.flush_now()
        if not flushed:
            self.error = "Some changes could not be saved"
            logger.warning(f"Sauvegarde forcee incomplete: {self.queue.pending_saves} item(s) en attente")
        return flushed

    def dispose(self) -> None:
        """Abandonne le debounce en attente (fin de vie de l'ecran de seance)."""
        self.queue.cancel()

    # ------------------------------------------------------------------
    # Interne
    # ------------------------------------------------------------------

    async def _call(self, failure_title: str, operation) -> ActionResult:
        self.is_loading = True
        self.error = None
        try:
            result = await operation
        except Exception as e:
            logger.error(f"{failure_title}: exception inattendue: {e}")
            result = ActionResult.failure(f"An unexpected error occurred: {e}", ErrorKind.TRANSIENT)
        finally:
            self.is_loading = False

        if not result.is_success:
            self.error = f"{failure_title}: {result.message}"
            logger.warning(self.error)
            self.notifications.error(failure_title, result.message)
        return result

    async def _dispatch(self, item: AutoSaveItem) -> ActionResult:
        payload = item.payload
        if item.kind == AutoSaveKind.SESSION:
            return await self.gateway.update_training_session(payload["session_id"], payload["updates"])
        set_data: SetData = payload["set_data"]
        return await self.gateway.add_exercise_performance(
            payload["session_id"], payload["exercise_id"], set_data.to_gateway_payload()
        )
