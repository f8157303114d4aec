"""
Canal de notifications vers la couche de presentation (equivalent des toasts).
Les echecs en arriere-plan passent par ce canal : ils ne sont jamais leves.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List

logger = logging.getLogger(__name__)

NotificationListener = Callable[["Notification"], None]


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: str = "default"  # "default" | "destructive"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


class NotificationChannel:
    """Diffusion synchrone des notifications aux abonnes."""

    def __init__(self):
        self._listeners: List[NotificationListener] = []
        self.history: List[Notification] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Abonne ``listener`` ; retourne la fonction de desabonnement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notification: Notification) -> None:
        self.history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Listener de notification en erreur ({notification.title}): {e}")

    def notify(self, title: str, description: str = "", variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self.publish(notification)
        return notification

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, variant="destructive")
