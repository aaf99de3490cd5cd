"""
Shared fixtures for quest damage tests.

Each test gets its own file-backed SQLite database so that worker threads
use separate connections.
"""
import threading
import pytest
from datetime import datetime, timedelta

from quest_damage.database import Base, build_engine, build_session_factory
from quest_damage import models  # noqa: F401  register models with Base
from quest_damage.exceptions import DatabaseException, HealthUpdateException
from quest_damage.models import Quest, DamageTracker
from quest_damage.repositories.quest_repository import QuestRepository
from quest_damage.repositories.tracker_repository import DamageTrackerRepository
from quest_damage.schemas import QuestSnapshot
from quest_damage.services.damage_tracking_service import DamageTrackingService

# Monday
NOW = datetime(2026, 10, 19, 12, 0, 0)


def make_quest(
    quest_id: int = 1,
    recurrence_type: str = "daily",
    due_days_ago: int = 0,
    now: datetime = NOW,
    **kwargs
) -> QuestSnapshot:
    """Build a quest snapshot due `due_days_ago` days before `now`"""
    kwargs.setdefault("title", f"Quest {quest_id}")
    return QuestSnapshot(
        id=quest_id,
        recurrence_type=recurrence_type,
        due_date=now - timedelta(days=due_days_ago),
        **kwargs
    )


class FakeQuestProvider:
    """In-memory quest provider"""

    def __init__(self, quests=None):
        self.quests = list(quests or [])
        self.error = None
        self.entered = threading.Event()
        self.release = None

    def fetch_active_incomplete_entities(self):
        self.entered.set()
        if self.release is not None:
            self.release.wait(timeout=10)
        if self.error is not None:
            raise self.error
        return [q for q in self.quests if q.is_active and not q.is_completed]

    def fetch_entity(self, quest_id):
        if self.error is not None:
            raise self.error
        return next((q for q in self.quests if q.id == quest_id), None)

    def fetch_all_entities(self):
        if self.error is not None:
            raise self.error
        return list(self.quests)


class FakeHealth:
    """Health collaborator that records every mutation"""

    def __init__(self):
        self.applied = []
        self.fail = False
        self.error = None

    def apply_damage(self, amount):
        if self.fail:
            raise HealthUpdateException("player store unavailable")
        if self.error is not None:
            raise self.error
        self.applied.append(amount)


class FailingTrackerRepository(DamageTrackerRepository):
    """Tracker repository that fails writes for selected quests"""

    def __init__(self, fail_upsert_for=(), fail_append_for=()):
        self.fail_upsert_for = set(fail_upsert_for)
        self.fail_append_for = set(fail_append_for)

    def create_or_update(self, db, quest_id, last_damage_check_date, total_damage_taken=None,
                         is_active=None, commit=True):
        if quest_id in self.fail_upsert_for:
            raise DatabaseException("tracker upsert", f"simulated failure for quest {quest_id}")
        return DamageTrackerRepository.create_or_update(
            db, quest_id, last_damage_check_date, total_damage_taken, is_active, commit
        )

    def append_event(self, db, tracker_id, damage_amount, reason, event_date=None,
                     missed_periods=0, commit=True):
        tracker = DamageTrackerRepository.get_by_id(db, tracker_id)
        if tracker is not None and tracker.quest_id in self.fail_append_for:
            raise DatabaseException("damage event append", f"simulated failure for quest {tracker.quest_id}")
        return DamageTrackerRepository.append_event(
            db, tracker_id, damage_amount, reason, event_date, missed_periods, commit
        )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def today_start(now):
    return datetime.combine(now.date(), datetime.min.time())


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'quest_damage_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def provider():
    return FakeQuestProvider()


@pytest.fixture
def health():
    return FakeHealth()


@pytest.fixture
def tracking_service(session_factory, provider, health, now):
    return DamageTrackingService(
        session_factory,
        provider,
        health,
        clock=lambda: now
    )


def create_tracker(db_session, quest_id, last_damage_check_date, total_damage_taken=0, is_active=True):
    """Insert a tracker directly"""
    tracker = DamageTracker(
        quest_id=quest_id,
        last_damage_check_date=last_damage_check_date,
        total_damage_taken=total_damage_taken,
        is_active=is_active
    )
    db_session.add(tracker)
    db_session.commit()
    db_session.refresh(tracker)
    return tracker


def create_quest(db_session, recurrence_type="daily", due_date=None, **kwargs):
    """Insert a quest row directly"""
    kwargs.setdefault("title", "Stored quest")
    quest = Quest(
        recurrence_type=recurrence_type,
        due_date=due_date or NOW - timedelta(days=1),
        **kwargs
    )
    return QuestRepository.create(db_session, quest)
