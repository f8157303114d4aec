"""
Tests pour TrainingSessionService (SQLite en memoire).
Couvre : demarrage (reprise d'une seance assignee / creation), mises a jour,
cloture idempotente, upsert des series, metriques et progression.
"""
import pytest
from datetime import datetime, timedelta

from app.domain.entities import (
    ExercisePerformanceCreate,
    ExerciseTrainingDetailUpdate,
    ExerciseTrainingSession,
    SessionStatus,
    TrainingSessionUpdate,
    VolumeTrend,
)
from app.domain.services.training_session_service import (
    AthleteProfileNotFound,
    InvalidStatusTransition,
    SessionAlreadyCompleted,
    TrainingDetailNotFound,
    TrainingSessionNotFound,
    TrainingSessionService,
    _streak_days,
    _volume_trend,
)


@pytest.fixture
def service():
    return TrainingSessionService()


def _add_session(db_session, seeded, status: SessionStatus, date_time: datetime = None) -> ExerciseTrainingSession:
    ts = ExerciseTrainingSession(
        exercise_preset_group_id=seeded["group_id"],
        athlete_id=seeded["athlete_id"],
        status=status.value,
        date_time=date_time or datetime(2026, 10, 1, 9, 0, 0),
    )
    db_session.add(ts)
    db_session.commit()
    db_session.refresh(ts)
    return ts


class TestStart:

    def test_promotes_assigned_session(self, service, db_session, seeded):
        assigned = _add_session(db_session, seeded, SessionStatus.ASSIGNED)
        started = service.start(db_session, seeded["user_id"], seeded["group_id"])
        assert started.id == assigned.id
        assert started.status == SessionStatus.ONGOING

    def test_creates_session_when_none_assigned(self, service, db_session, seeded):
        started = service.start(db_session, seeded["user_id"], seeded["group_id"])
        assert started.id is not None
        assert started.status == SessionStatus.ONGOING
        assert started.athlete_id == seeded["athlete_id"]

    def test_unknown_user_without_athlete(self, service, db_session, seeded):
        with pytest.raises(AthleteProfileNotFound):
            service.start(db_session, "someone-else", seeded["group_id"])

    def test_explicit_athlete_id(self, service, db_session, seeded):
        started = service.start(db_session, "coach-1", seeded["group_id"], athlete_id=seeded["athlete_id"])
        assert started.athlete_id == seeded["athlete_id"]


class TestUpdateAndComplete:

    def test_update_notes(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        updated = service.update(db_session, ts.id, TrainingSessionUpdate(notes="felt strong"))
        assert updated.notes == "felt strong"
        assert updated.status == SessionStatus.ONGOING

    def test_update_missing_session(self, service, db_session, seeded):
        with pytest.raises(TrainingSessionNotFound):
            service.update(db_session, 999, TrainingSessionUpdate(notes="x"))

    def test_status_cannot_move_backwards(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        with pytest.raises(ValueError):
            service.update(db_session, ts.id, TrainingSessionUpdate(status=SessionStatus.ASSIGNED))

    def test_complete(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        completed = service.complete(db_session, ts.id, notes="done")
        assert completed.status == SessionStatus.COMPLETED
        assert completed.notes == "done"

    def test_complete_is_idempotent(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        service.complete(db_session, ts.id, notes="done")
        again = service.complete(db_session, ts.id, notes="ignored")
        assert again.status == SessionStatus.COMPLETED
        assert again.notes == "done"

    def test_update_completed_session_rejected(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.COMPLETED)
        with pytest.raises(SessionAlreadyCompleted):
            service.update(db_session, ts.id, TrainingSessionUpdate(notes="late edit"))

    def test_complete_assigned_session_rejected(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ASSIGNED)
        with pytest.raises(InvalidStatusTransition):
            service.complete(db_session, ts.id)
        db_session.refresh(ts)
        assert ts.status == SessionStatus.ASSIGNED

    def test_status_cannot_skip_ongoing(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ASSIGNED)
        with pytest.raises(InvalidStatusTransition):
            service.update(db_session, ts.id, TrainingSessionUpdate(status=SessionStatus.COMPLETED))

    def test_single_step_transitions(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ASSIGNED)
        service.update(db_session, ts.id, TrainingSessionUpdate(status=SessionStatus.ASSIGNED))
        service.update(db_session, ts.id, TrainingSessionUpdate(status=SessionStatus.ONGOING))
        updated = service.update(db_session, ts.id, TrainingSessionUpdate(status=SessionStatus.COMPLETED))
        assert updated.status == SessionStatus.COMPLETED

    def test_explicit_null_status_left_unchanged(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        updated = service.update(
            db_session, ts.id, TrainingSessionUpdate(status=None, date_time=None, notes="kept")
        )
        assert updated.status == SessionStatus.ONGOING
        assert updated.date_time == datetime(2026, 10, 1, 9, 0, 0)
        assert updated.notes == "kept"


class TestExercisePerformance:

    def test_upsert_on_same_set_index(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        first = service.add_exercise_performance(
            db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, reps=5, weight=100)
        )
        second = service.add_exercise_performance(
            db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, reps=6)
        )
        assert second.id == first.id
        assert second.reps == 6
        # Les mesures non envoyees sont conservees
        assert second.weight == 100

    def test_distinct_set_indexes(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        for set_index in range(3):
            service.add_exercise_performance(
                db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=set_index, reps=5)
            )
        details = service.to_details(service.get(db_session, ts.id)).exercise_training_details
        assert [d.set_index for d in details] == [0, 1, 2]

    def test_performing_time_stored(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        detail = service.add_exercise_performance(
            db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, performing_time=42)
        )
        assert detail.performing_time == 42
        assert detail.completed is False

    def test_add_to_completed_session_rejected(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.COMPLETED)
        with pytest.raises(SessionAlreadyCompleted):
            service.add_exercise_performance(
                db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, reps=5)
            )

    def test_update_exercise_performance(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        detail = service.add_exercise_performance(
            db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, reps=5)
        )
        updated = service.update_exercise_performance(
            db_session, detail.id, ExerciseTrainingDetailUpdate(rpe=8.5, completed=True)
        )
        assert updated.rpe == 8.5
        assert updated.completed is True
        assert updated.reps == 5

    def test_explicit_null_completed_left_unchanged(self, service, db_session, seeded):
        ts = _add_session(db_session, seeded, SessionStatus.ONGOING)
        detail = service.add_exercise_performance(
            db_session, ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, completed=True)
        )
        updated = service.update_exercise_performance(
            db_session, detail.id, ExerciseTrainingDetailUpdate(completed=None, reps=4)
        )
        assert updated.completed is True
        assert updated.reps == 4

    def test_update_missing_detail(self, service, db_session, seeded):
        with pytest.raises(TrainingDetailNotFound):
            service.update_exercise_performance(db_session, 999, ExerciseTrainingDetailUpdate(reps=1))


class TestAnalytics:

    def test_performance_metrics(self, service, db_session, seeded):
        day = datetime(2026, 10, 1, 9, 0, 0)
        for offset in range(2):
            ts = _add_session(db_session, seeded, SessionStatus.ONGOING, day + timedelta(days=offset))
            service.add_exercise_performance(
                db_session, ts.id, seeded["squat_id"],
                ExercisePerformanceCreate(set_index=0, reps=5, weight=100, rpe=8)
            )
            service.complete(db_session, ts.id)
        _add_session(db_session, seeded, SessionStatus.ASSIGNED, day + timedelta(days=5))

        metrics = service.get_performance_metrics(db_session, seeded["user_id"])

        assert metrics.total_sets == 2
        assert metrics.total_reps == 10
        assert metrics.total_weight == 200
        assert metrics.average_rpe == 8
        assert metrics.completion_rate == pytest.approx(200 / 3)
        assert metrics.streak_days == 2

    def test_metrics_date_filter(self, service, db_session, seeded):
        _add_session(db_session, seeded, SessionStatus.COMPLETED, datetime(2026, 9, 1, 9, 0))
        _add_session(db_session, seeded, SessionStatus.COMPLETED, datetime(2026, 10, 1, 9, 0))
        metrics = service.get_performance_metrics(
            db_session, seeded["user_id"], start_date=datetime(2026, 9, 15).date()
        )
        assert metrics.completion_rate == 100.0
        assert metrics.streak_days == 1

    def test_metrics_without_sessions(self, service, db_session, seeded):
        metrics = service.get_performance_metrics(db_session, seeded["user_id"])
        assert metrics.total_sets == 0
        assert metrics.completion_rate == 0.0

    def test_exercise_progress(self, service, db_session, seeded):
        weights = [100, 105, 110]
        for offset, weight in enumerate(weights):
            ts = _add_session(
                db_session, seeded, SessionStatus.ONGOING, datetime(2026, 10, 1 + offset, 9, 0)
            )
            service.add_exercise_performance(
                db_session, ts.id, seeded["squat_id"],
                ExercisePerformanceCreate(set_index=0, reps=5, weight=weight, rpe=7 + offset)
            )
            service.complete(db_session, ts.id)
        # Les seances non terminees ne comptent pas
        open_ts = _add_session(db_session, seeded, SessionStatus.ONGOING, datetime(2026, 10, 10, 9, 0))
        service.add_exercise_performance(
            db_session, open_ts.id, seeded["squat_id"], ExercisePerformanceCreate(set_index=0, weight=200)
        )

        progress = service.get_exercise_progress(db_session, seeded["user_id"], exercise_id=seeded["squat_id"])

        assert len(progress) == 1
        squat = progress[0]
        assert squat.exercise_name == "Back Squat"
        assert squat.sessions_completed == 3
        assert squat.pr_weight == 110
        assert squat.pr_date == datetime(2026, 10, 3).date()
        assert squat.average_rpe == 8
        assert squat.volume_trend == VolumeTrend.INCREASING


class TestHelpers:

    def test_streak_days(self):
        d = datetime(2026, 10, 10).date()
        assert _streak_days(set()) == 0
        assert _streak_days({d, d - timedelta(days=1), d - timedelta(days=3)}) == 2

    def test_volume_trend(self):
        assert _volume_trend([100]) == VolumeTrend.STABLE
        assert _volume_trend([100, 90]) == VolumeTrend.DECREASING
        assert _volume_trend([100, 100]) == VolumeTrend.STABLE
