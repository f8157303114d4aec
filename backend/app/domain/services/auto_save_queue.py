"""
File d'auto-save en memoire : coalescence par cle, debounce, retries.

Chaque ecriture est indexee par une cle deterministe (voir
``app.domain.entities.auto_save``) : une nouvelle ecriture sur la meme cible
remplace la precedente. Apres ``delay`` secondes sans nouvelle ecriture,
tous les items sont envoyes en parallele. Les echecs transitoires sont
rejoues (jusqu'a ``max_retries`` fois, backoff 2x delay) ; au-dela, ou pour
un echec permanent, l'item est abandonne et une notification est publiee.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Dict, List, Optional

from app.domain.entities.auto_save import AutoSaveItem
from app.domain.services.delayed_task_scheduler import DelayedTaskScheduler, ScheduledHandle
from app.domain.services.notifications import NotificationChannel
from app.domain.services.training_gateway import ActionResult, ErrorKind

logger = logging.getLogger(__name__)

DispatchFn = Callable[[AutoSaveItem], Awaitable[ActionResult]]

# Multiplicateur du delai avant un nouveau passage apres echec
RETRY_BACKOFF_FACTOR = 2


@dataclass(frozen=True)
class AutoSaveConfig:
    delay: float = 2.0
    max_retries: int = 3

    @classmethod
    def from_settings(cls, settings=None) -> "AutoSaveConfig":
        if settings is None:
            from app.core.settings import get_settings
            settings = get_settings()
        return cls(
            delay=settings.AUTOSAVE_DELAY_MS / 1000,
            max_retries=settings.AUTOSAVE_MAX_RETRIES,
        )


class AutoSaveQueue:
    """File d'ecritures differees ; une instance par WorkoutApi."""

    def __init__(
        self,
        dispatch: DispatchFn,
        scheduler: DelayedTaskScheduler,
        notifications: NotificationChannel,
        config: Optional[AutoSaveConfig] = None,
    ):
        self.config = config or AutoSaveConfig()
        self._dispatch = dispatch
        self._scheduler = scheduler
        self._notifications = notifications
        self._items: Dict[str, AutoSaveItem] = {}
        self._timer: Optional[ScheduledHandle] = None
        self._drain_lock = asyncio.Lock()
        self._is_saving = False
        self._last_save_time: Optional[float] = None

    # ------------------------------------------------------------------
    # Etat observable
    # ------------------------------------------------------------------

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def last_save_time(self) -> Optional[float]:
        return self._last_save_time

    @property
    def pending_saves(self) -> int:
        return len(self._items)

    def get(self, key: str) -> Optional[AutoSaveItem]:
        return self._items.get(key)

    def keys(self) -> List[str]:
        return list(self._items)

    # ------------------------------------------------------------------
    # API publique
    # ------------------------------------------------------------------

    def enqueue(self, item: AutoSaveItem) -> None:
        """Ajoute ou remplace l'item de meme cle et relance le debounce."""
        if item.id in self._items:
            logger.debug(f"Auto-save {item.id}: payload remplace")
        self._items[item.id] = item
        self._schedule_drain(self.config.delay)

    async def flush_now(self) -> bool:
        """Annule le debounce et envoie immediatement.

        Retourne True si la file est vide apres ce passage.
        """
        self._cancel_timer()
        await self._drain()
        return not self._items

    def cancel(self) -> None:
        """Abandonne le timer en attente (les envois en cours ne sont pas annules)."""
        self._cancel_timer()

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _schedule_drain(self, delay: float) -> None:
        self._cancel_timer()
        self._start_timer(delay)

    def _start_timer(self, delay: float) -> None:
        handle: Optional[ScheduledHandle] = None

        async def on_timer() -> None:
            # Un enqueue a pu replanifier entre le declenchement et l'execution
            if self._timer is handle:
                self._timer = None
            await self._drain()

        handle = self._scheduler.schedule(delay, on_timer)
        self._timer = handle

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ------------------------------------------------------------------
    # Envoi
    # ------------------------------------------------------------------

    async def _perform(self, item: AutoSaveItem) -> ActionResult:
        try:
            return await self._dispatch(item)
        except Exception as e:
            logger.error(f"Auto-save {item.id}: exception pendant l'envoi: {e}")
            return ActionResult.failure(str(e), ErrorKind.TRANSIENT)

    async def _drain(self) -> None:
        async with self._drain_lock:
            if not self._items:
                return

            batch = list(self._items.values())
            logger.info(f"Auto-save: envoi de {len(batch)} item(s)")
            self._is_saving = True
            try:
                results = await asyncio.gather(*(self._perform(item) for item in batch))
            finally:
                self._is_saving = False

            all_succeeded = True
            needs_retry = False
            for item, result in zip(batch, results):
                # Un enqueue pendant l'envoi a remplace l'item : la nouvelle version prime
                still_current = self._items.get(item.id) is item

                if result.is_success:
                    if still_current:
                        del self._items[item.id]
                    continue

                all_succeeded = False
                if not still_current:
                    continue

                if result.error_kind == ErrorKind.PERMANENT:
                    del self._items[item.id]
                    logger.warning(f"Auto-save {item.id}: echec permanent, abandon ({result.message})")
                    self._notify_failure(item, result)
                elif item.retry_count < self.config.max_retries:
                    self._items[item.id] = replace(item, retry_count=item.retry_count + 1)
                    needs_retry = True
                    logger.info(
                        f"Auto-save {item.id}: echec, tentative "
                        f"{item.retry_count + 1}/{self.config.max_retries} planifiee ({result.message})"
                    )
                else:
                    del self._items[item.id]
                    logger.error(
                        f"Auto-save {item.id}: abandon apres {self.config.max_retries} tentatives "
                        f"({result.message})"
                    )
                    self._notify_failure(item, result)

            if all_succeeded:
                self._last_save_time = self._scheduler.now()

            if needs_retry and self._timer is None:
                self._start_timer(self.config.delay * RETRY_BACKOFF_FACTOR)

    def _notify_failure(self, item: AutoSaveItem, result: ActionResult) -> None:
        self._notifications.error(
            "Auto-save failed",
            f"Could not save {item.kind.value.replace('_', ' ')} changes: {result.message}",
        )
