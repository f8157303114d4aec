"""
Configuration commune des tests : variables d'environnement minimales,
base SQLite en memoire et jeux de donnees de seance.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.domain.entities import (
    Athlete,
    Exercise,
    ExercisePresetGroup,
    SessionStatus,
    TrainingSessionRead,
    TrainingSessionWithDetails,
)
from app.domain.services.training_gateway import ActionResult, TrainingGateway

USER_ID = "user-123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def seeded(db_session):
    """Un athlete rattache a USER_ID, deux exercices et un preset group."""
    athlete = Athlete(user_id=USER_ID, name="Test Athlete")
    squat = Exercise(name="Back Squat")
    bench = Exercise(name="Bench Press")
    group = ExercisePresetGroup(name="Lower Body A", description="Force")
    db_session.add_all([athlete, squat, bench, group])
    db_session.commit()
    for obj in (athlete, squat, bench, group):
        db_session.refresh(obj)
    return {
        "user_id": USER_ID,
        "athlete_id": athlete.id,
        "squat_id": squat.id,
        "bench_id": bench.id,
        "group_id": group.id,
    }


# ============================================================
# Gateway de test
# ============================================================

class FakeGateway(TrainingGateway):
    """Gateway en memoire : enregistre les appels, resultats programmables par operation.

    ``set_results(op, r1, r2, ...)`` : chaque appel consomme un resultat, le
    dernier est rejoue indefiniment.
    """

    def __init__(self, session_id: int = 42, preset_group_id: int = 7, athlete_id: int = 1):
        self.calls = []
        self.session_id = session_id
        self.preset_group_id = preset_group_id
        self.athlete_id = athlete_id
        self.session_status = SessionStatus.ONGOING
        self.details = []
        self._results = {}

    def set_results(self, operation: str, *results: ActionResult) -> None:
        self._results[operation] = list(results)

    def call_names(self):
        return [name for name, _ in self.calls]

    def _next(self, operation: str, default: ActionResult) -> ActionResult:
        queued = self._results.get(operation)
        if not queued:
            return default
        return queued.pop(0) if len(queued) > 1 else queued[0]

    def _read(self) -> TrainingSessionRead:
        now = datetime(2026, 10, 1, 9, 0, 0)
        return TrainingSessionRead(
            id=self.session_id,
            exercise_preset_group_id=self.preset_group_id,
            athlete_id=self.athlete_id,
            status=self.session_status,
            date_time=now,
            created_at=now,
            updated_at=now,
        )

    async def start_training_session(self, preset_group_id, athlete_id=None):
        self.calls.append(("start_training_session", (preset_group_id, athlete_id)))
        self.session_status = SessionStatus.ONGOING
        return self._next("start_training_session", ActionResult.ok(self._read()))

    async def get_training_session_by_id(self, session_id):
        self.calls.append(("get_training_session_by_id", (session_id,)))
        details = TrainingSessionWithDetails(
            **self._read().model_dump(), exercise_training_details=list(self.details)
        )
        return self._next("get_training_session_by_id", ActionResult.ok(details))

    async def update_training_session(self, session_id, updates):
        self.calls.append(("update_training_session", (session_id, updates)))
        return self._next("update_training_session", ActionResult.ok())

    async def complete_training_session(self, session_id, notes=None):
        self.calls.append(("complete_training_session", (session_id, notes)))
        result = self._next("complete_training_session", ActionResult.ok())
        if result.is_success:
            self.session_status = SessionStatus.COMPLETED
        return result

    async def add_exercise_performance(self, session_id, exercise_id, set_data):
        self.calls.append(("add_exercise_performance", (session_id, exercise_id, set_data)))
        return self._next("add_exercise_performance", ActionResult.ok())

    async def update_exercise_performance(self, detail_id, updates):
        self.calls.append(("update_exercise_performance", (detail_id, updates)))
        return self._next("update_exercise_performance", ActionResult.ok())


@pytest.fixture
def gateway():
    return FakeGateway()
