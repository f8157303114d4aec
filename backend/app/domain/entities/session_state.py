"""
Machine a etats d'une seance, cote client.

    assigned --start--> ongoing --complete--> completed

Chaque statut est un type distinct : seuls ``UnknownSession`` et
``AssignedSession`` exposent ``start()``, seul ``OngoingSession`` expose
``complete()``. Une transition invalide n'est donc pas representable ;
le controleur verifie le type de l'etat courant avant tout appel distant.
"""
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from .training_session import SessionStatus


class InvalidSessionTransition(Exception):
    """Transition refusee par la machine a etats (ex: terminer une seance non demarree)."""

    def __init__(self, current: SessionStatus, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} a session in status '{current.value}'")


@dataclass(frozen=True)
class UnknownSession:
    """Etat avant chargement de la seance."""
    status: ClassVar[SessionStatus] = SessionStatus.UNKNOWN
    session_id: Optional[int] = None

    def start(self, session_id: int) -> "OngoingSession":
        return OngoingSession(session_id=session_id)


@dataclass(frozen=True)
class AssignedSession:
    status: ClassVar[SessionStatus] = SessionStatus.ASSIGNED
    session_id: Optional[int] = None

    def start(self, session_id: int) -> "OngoingSession":
        return OngoingSession(session_id=session_id)


@dataclass(frozen=True)
class OngoingSession:
    status: ClassVar[SessionStatus] = SessionStatus.ONGOING
    session_id: int

    def complete(self) -> "CompletedSession":
        return CompletedSession(session_id=self.session_id)


@dataclass(frozen=True)
class CompletedSession:
    """Etat terminal : aucune reouverture possible."""
    status: ClassVar[SessionStatus] = SessionStatus.COMPLETED
    session_id: int


SessionState = Union[UnknownSession, AssignedSession, OngoingSession, CompletedSession]

# Etats depuis lesquels une seance peut etre demarree
STARTABLE_STATES = (UnknownSession, AssignedSession)


def state_from_status(status: Optional[str], session_id: Optional[int]) -> SessionState:
    """Construit l'etat correspondant a un statut recu du serveur.

    Un statut inconnu, ou un statut qui exige un identifiant absent,
    retombe sur ``UnknownSession``.
    """
    try:
        parsed = SessionStatus(status) if status is not None else SessionStatus.UNKNOWN
    except ValueError:
        parsed = SessionStatus.UNKNOWN

    if parsed == SessionStatus.ASSIGNED:
        return AssignedSession(session_id=session_id)
    if session_id is not None:
        if parsed == SessionStatus.ONGOING:
            return OngoingSession(session_id=session_id)
        if parsed == SessionStatus.COMPLETED:
            return CompletedSession(session_id=session_id)
    return UnknownSession(session_id=session_id)
