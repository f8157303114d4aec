"""
Service des seances d'entrainement : demarrage, suivi serie par serie,
cloture, et analyses de performance.

C'est le systeme de reference derriere le gateway de synchronisation :
les ecritures de la file d'auto-save cote client aboutissent ici.
Les erreurs metier sont des ValueError que les routers traduisent en HTTP.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from app.domain.entities import (
    Athlete,
    Exercise,
    ExercisePerformanceCreate,
    ExerciseProgress,
    ExerciseTrainingDetail,
    ExerciseTrainingDetailUpdate,
    ExerciseTrainingSession,
    ExercisePresetGroupRead,
    ExerciseTrainingDetailRead,
    PerformanceMetrics,
    SessionStatus,
    TrainingSessionRead,
    TrainingSessionUpdate,
    TrainingSessionWithDetails,
    VolumeTrend,
)

logger = logging.getLogger(__name__)

# Colonnes NOT NULL : un null explicite dans un PATCH vaut "non modifie"
NON_NULLABLE_SESSION_FIELDS = {"status", "date_time"}
NON_NULLABLE_DETAIL_FIELDS = {"completed"}

STATUS_ORDER = [SessionStatus.ASSIGNED, SessionStatus.ONGOING, SessionStatus.COMPLETED]


class TrainingSessionNotFound(ValueError):
    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__("Training session not found")


class TrainingDetailNotFound(ValueError):
    def __init__(self, detail_id: int):
        self.detail_id = detail_id
        super().__init__("Exercise performance not found")


class AthleteProfileNotFound(ValueError):
    def __init__(self):
        super().__init__("No athlete profile found")


class SessionAlreadyCompleted(ValueError):
    """Une seance terminee ne peut plus etre modifiee (pas de reouverture)."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Training session {session_id} is already completed")


class InvalidStatusTransition(ValueError):
    """Une seance avance d'un seul statut a la fois : assigned -> ongoing -> completed."""

    def __init__(self, session_id: int, current: SessionStatus, target: SessionStatus):
        self.session_id = session_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move session {session_id} from '{current.value}' to '{target.value}'"
        )


class TrainingSessionService:

    # ------------------------------------------------------------------
    # Seances
    # ------------------------------------------------------------------

    def resolve_athlete_id(self, session: Session, user_id: str, athlete_id: Optional[int] = None) -> int:
        """Retourne l'athlete cible : celui fourni (coach) ou le profil de l'utilisateur courant."""
        if athlete_id is not None:
            return athlete_id
        athlete = session.exec(select(Athlete).where(Athlete.user_id == user_id)).first()
        if not athlete:
            raise AthleteProfileNotFound()
        return athlete.id

    def start(
        self,
        session: Session,
        user_id: str,
        exercise_preset_group_id: int,
        athlete_id: Optional[int] = None,
    ) -> ExerciseTrainingSession:
        """Demarre une seance.

        Une seance ASSIGNED existante pour ce preset group et cet athlete
        passe en ONGOING ; sinon une nouvelle seance ONGOING est creee.
        """
        final_athlete_id = self.resolve_athlete_id(session, user_id, athlete_id)

        training_session = session.exec(
            select(ExerciseTrainingSession)
            .where(
                ExerciseTrainingSession.exercise_preset_group_id == exercise_preset_group_id,
                ExerciseTrainingSession.athlete_id == final_athlete_id,
                ExerciseTrainingSession.status == SessionStatus.ASSIGNED.value,
            )
            .order_by(ExerciseTrainingSession.date_time)
        ).first()

        now = datetime.utcnow()
        if training_session:
            training_session.status = SessionStatus.ONGOING.value
            training_session.date_time = now
            training_session.updated_at = now
            logger.info(f"Seance {training_session.id} demarree (athlete={final_athlete_id})")
        else:
            training_session = ExerciseTrainingSession(
                exercise_preset_group_id=exercise_preset_group_id,
                athlete_id=final_athlete_id,
                status=SessionStatus.ONGOING.value,
                date_time=now,
            )
            logger.info(
                f"Nouvelle seance creee pour le preset group {exercise_preset_group_id} "
                f"(athlete={final_athlete_id})"
            )

        session.add(training_session)
        session.commit()
        session.refresh(training_session)
        return training_session

    def list_sessions(
        self,
        session: Session,
        user_id: str,
        athlete_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ExerciseTrainingSession]:
        final_athlete_id = self.resolve_athlete_id(session, user_id, athlete_id)
        query = (
            select(ExerciseTrainingSession)
            .where(ExerciseTrainingSession.athlete_id == final_athlete_id)
            .order_by(ExerciseTrainingSession.date_time.desc())
        )
        if limit:
            query = query.limit(limit)
        return list(session.exec(query).all())

    def get(self, session: Session, session_id: int) -> ExerciseTrainingSession:
        training_session = session.get(ExerciseTrainingSession, session_id)
        if not training_session:
            raise TrainingSessionNotFound(session_id)
        return training_session

    def update(
        self, session: Session, session_id: int, updates: TrainingSessionUpdate
    ) -> ExerciseTrainingSession:
        training_session = self._get_mutable(session, session_id)

        changes = _drop_nulls(updates.model_dump(exclude_unset=True), NON_NULLABLE_SESSION_FIELDS)
        new_status = changes.get("status")
        if new_status is not None:
            self._check_forward_transition(training_session, SessionStatus(new_status))
            changes["status"] = SessionStatus(new_status).value

        for field, value in changes.items():
            setattr(training_session, field, value)

        training_session.updated_at = datetime.utcnow()
        session.add(training_session)
        session.commit()
        session.refresh(training_session)
        return training_session

    def complete(
        self, session: Session, session_id: int, notes: Optional[str] = None
    ) -> ExerciseTrainingSession:
        """Termine une seance. Terminer une seance deja terminee est sans effet."""
        training_session = self.get(session, session_id)
        if training_session.status == SessionStatus.COMPLETED:
            logger.info(f"Seance {session_id} deja terminee, cloture ignoree")
            return training_session
        self._check_forward_transition(training_session, SessionStatus.COMPLETED)

        training_session.status = SessionStatus.COMPLETED.value
        if notes is not None:
            training_session.notes = notes
        training_session.updated_at = datetime.utcnow()
        session.add(training_session)
        session.commit()
        session.refresh(training_session)
        logger.info(f"Seance {session_id} terminee")
        return training_session

    # ------------------------------------------------------------------
    # Series (performance)
    # ------------------------------------------------------------------

    def add_exercise_performance(
        self,
        session: Session,
        session_id: int,
        exercise_id: int,
        set_data: ExercisePerformanceCreate,
    ) -> ExerciseTrainingDetail:
        """Enregistre une serie. Upsert sur (seance, exercice, set_index) : rejouer la meme ecriture est sans risque."""
        self._get_mutable(session, session_id)

        detail = session.exec(
            select(ExerciseTrainingDetail).where(
                ExerciseTrainingDetail.exercise_training_session_id == session_id,
                ExerciseTrainingDetail.exercise_id == exercise_id,
                ExerciseTrainingDetail.set_index == set_data.set_index,
            )
        ).first()

        values = set_data.model_dump(exclude_unset=True, exclude={"set_index"})
        if values.get("completed") is None:
            values.pop("completed", None)

        if detail:
            for field, value in values.items():
                setattr(detail, field, value)
            detail.updated_at = datetime.utcnow()
        else:
            detail = ExerciseTrainingDetail(
                exercise_training_session_id=session_id,
                exercise_id=exercise_id,
                set_index=set_data.set_index,
                **values,
            )

        session.add(detail)
        session.commit()
        session.refresh(detail)
        return detail

    def update_exercise_performance(
        self, session: Session, detail_id: int, updates: ExerciseTrainingDetailUpdate
    ) -> ExerciseTrainingDetail:
        detail = session.get(ExerciseTrainingDetail, detail_id)
        if not detail:
            raise TrainingDetailNotFound(detail_id)
        self._get_mutable(session, detail.exercise_training_session_id)

        changes = _drop_nulls(updates.model_dump(exclude_unset=True), NON_NULLABLE_DETAIL_FIELDS)
        for field, value in changes.items():
            setattr(detail, field, value)

        detail.updated_at = datetime.utcnow()
        session.add(detail)
        session.commit()
        session.refresh(detail)
        return detail

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    def get_performance_metrics(
        self,
        session: Session,
        user_id: str,
        athlete_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PerformanceMetrics:
        final_athlete_id = self.resolve_athlete_id(session, user_id, athlete_id)

        query = select(ExerciseTrainingSession).where(ExerciseTrainingSession.athlete_id == final_athlete_id)
        if start_date:
            query = query.where(ExerciseTrainingSession.date_time >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            query = query.where(
                ExerciseTrainingSession.date_time < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
            )
        sessions = session.exec(query).all()

        total_sets = 0
        total_reps = 0
        total_weight = 0.0
        rpe_values: List[float] = []
        completed_days = set()

        for training_session in sessions:
            if training_session.status == SessionStatus.COMPLETED:
                completed_days.add(training_session.date_time.date())
            for detail in training_session.exercise_training_details:
                total_sets += 1
                total_reps += detail.reps or 0
                total_weight += detail.weight or 0.0
                if detail.rpe is not None:
                    rpe_values.append(detail.rpe)

        completed_count = sum(1 for s in sessions if s.status == SessionStatus.COMPLETED)
        return PerformanceMetrics(
            total_sets=total_sets,
            total_reps=total_reps,
            total_weight=total_weight,
            average_rpe=sum(rpe_values) / len(rpe_values) if rpe_values else 0.0,
            completion_rate=(completed_count / len(sessions)) * 100 if sessions else 0.0,
            streak_days=_streak_days(completed_days),
        )

    def get_exercise_progress(
        self,
        session: Session,
        user_id: str,
        athlete_id: Optional[int] = None,
        exercise_id: Optional[int] = None,
    ) -> List[ExerciseProgress]:
        final_athlete_id = self.resolve_athlete_id(session, user_id, athlete_id)

        query = (
            select(ExerciseTrainingDetail, ExerciseTrainingSession.date_time, Exercise.name)
            .join(
                ExerciseTrainingSession,
                ExerciseTrainingDetail.exercise_training_session_id == ExerciseTrainingSession.id,
            )
            .outerjoin(Exercise, ExerciseTrainingDetail.exercise_id == Exercise.id)
            .where(
                ExerciseTrainingSession.athlete_id == final_athlete_id,
                ExerciseTrainingSession.status == SessionStatus.COMPLETED.value,
            )
            .order_by(ExerciseTrainingSession.date_time, ExerciseTrainingDetail.set_index)
        )
        if exercise_id is not None:
            query = query.where(ExerciseTrainingDetail.exercise_id == exercise_id)

        grouped: Dict[int, Dict[str, Any]] = defaultdict(
            lambda: {"name": None, "sessions": set(), "pr_weight": None, "pr_date": None,
                     "pr_reps": None, "rpe": [], "weights": []}
        )
        for detail, date_time, name in session.exec(query).all():
            data = grouped[detail.exercise_id]
            data["name"] = name
            data["sessions"].add(detail.exercise_training_session_id)
            if detail.weight is not None:
                data["weights"].append(detail.weight)
                if data["pr_weight"] is None or detail.weight > data["pr_weight"]:
                    data["pr_weight"] = detail.weight
                    data["pr_date"] = date_time.date()
            if detail.reps is not None and (data["pr_reps"] is None or detail.reps > data["pr_reps"]):
                data["pr_reps"] = detail.reps
            if detail.rpe is not None:
                data["rpe"].append(detail.rpe)

        return [
            ExerciseProgress(
                exercise_id=ex_id,
                exercise_name=data["name"] or "Unknown Exercise",
                sessions_completed=len(data["sessions"]),
                pr_weight=data["pr_weight"],
                pr_reps=data["pr_reps"],
                pr_date=data["pr_date"],
                average_rpe=sum(data["rpe"]) / len(data["rpe"]) if data["rpe"] else 0.0,
                volume_trend=_volume_trend(data["weights"]),
            )
            for ex_id, data in grouped.items()
        ]

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def to_read(training_session: ExerciseTrainingSession) -> TrainingSessionRead:
        return TrainingSessionRead.model_validate(training_session)

    @staticmethod
    def to_details(training_session: ExerciseTrainingSession) -> TrainingSessionWithDetails:
        group = training_session.exercise_preset_group
        details = sorted(
            training_session.exercise_training_details,
            key=lambda d: (d.exercise_id, d.set_index),
        )
        return TrainingSessionWithDetails(
            **TrainingSessionRead.model_validate(training_session).model_dump(),
            exercise_preset_group=ExercisePresetGroupRead.model_validate(group) if group else None,
            exercise_training_details=[ExerciseTrainingDetailRead.model_validate(d) for d in details],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_mutable(self, session: Session, session_id: int) -> ExerciseTrainingSession:
        training_session = self.get(session, session_id)
        if training_session.status == SessionStatus.COMPLETED:
            raise SessionAlreadyCompleted(session_id)
        return training_session

    @staticmethod
    def _check_forward_transition(training_session: ExerciseTrainingSession, new_status: SessionStatus) -> None:
        """Autorise le statut courant ou le suivant, jamais un saut ni un retour."""
        if new_status not in STATUS_ORDER:
            raise ValueError(f"Invalid session status '{new_status.value}'")
        current = SessionStatus(training_session.status)
        step = STATUS_ORDER.index(new_status) - STATUS_ORDER.index(current)
        if step not in (0, 1):
            raise InvalidStatusTransition(training_session.id, current, new_status)


def _drop_nulls(changes: Dict[str, Any], fields: set) -> Dict[str, Any]:
    return {k: v for k, v in changes.items() if v is not None or k not in fields}


def _streak_days(completed_days: set) -> int:
    """Nombre de jours consecutifs avec une seance terminee, en remontant depuis la plus recente."""
    if not completed_days:
        return 0
    day = max(completed_days)
    streak = 0
    while day in completed_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _volume_trend(weights: List[float]) -> VolumeTrend:
    """Compare la premiere et la derniere charge enregistrees (ordre chronologique)."""
    if len(weights) < 2:
        return VolumeTrend.STABLE
    if weights[-1] > weights[0]:
        return VolumeTrend.INCREASING
    if weights[-1] < weights[0]:
        return VolumeTrend.DECREASING
    return VolumeTrend.STABLE


# Instance globale
training_session_service = TrainingSessionService()
