"""
Planification de taches differees pour la file d'auto-save.

AsyncioScheduler s'appuie sur ``loop.call_later`` ; VirtualScheduler expose
une horloge virtuelle avancee a la main (tests de debounce / backoff sans
attente reelle).
"""
import asyncio
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

TaskCallback = Callable[[], Awaitable[None]]


class ScheduledHandle:
    """Poignee d'une tache planifiee ; ``cancel()`` est sans effet une fois la tache lancee."""

    def __init__(self):
        self._cancelled = False
        self._timer: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class DelayedTaskScheduler(ABC):

    @abstractmethod
    def schedule(self, delay: float, callback: TaskCallback) -> ScheduledHandle:
        """Planifie ``callback`` dans ``delay`` secondes."""

    @abstractmethod
    def now(self) -> float:
        """Horloge courante du scheduler, en secondes."""


class AsyncioScheduler(DelayedTaskScheduler):
    """Scheduler de production sur la boucle asyncio courante."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, delay: float, callback: TaskCallback) -> ScheduledHandle:
        loop = asyncio.get_running_loop()
        handle = ScheduledHandle()

        def _fire() -> None:
            if handle.cancelled:
                return
            task = loop.create_task(self._run(callback))
            # Reference forte tant que la tache tourne
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle._timer = loop.call_later(max(delay, 0.0), _fire)
        return handle

    def now(self) -> float:
        return time.monotonic()

    @staticmethod
    async def _run(callback: TaskCallback) -> None:
        try:
            await callback()
        except Exception as e:
            logger.error(f"Erreur dans une tache differee: {e}")


class VirtualScheduler(DelayedTaskScheduler):
    """Horloge virtuelle : rien ne s'execute avant un appel a ``advance()``."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._counter = itertools.count()
        self._queue: List[Tuple[float, int, ScheduledHandle, TaskCallback]] = []

    def schedule(self, delay: float, callback: TaskCallback) -> ScheduledHandle:
        handle = ScheduledHandle()
        due = self._now + max(delay, 0.0)
        heapq.heappush(self._queue, (due, next(self._counter), handle, callback))
        return handle

    def now(self) -> float:
        return self._now

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    async def advance(self, seconds: float) -> None:
        """Avance l'horloge de ``seconds`` en executant dans l'ordre les taches echues.

        Les taches planifiees pendant l'avance sont executees si elles
        tombent dans la fenetre.
        """
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            await callback()
        self._now = target
