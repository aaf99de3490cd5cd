from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from quest_damage.database import Base


class Quest(Base):
    __tablename__ = "quests"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    due_date = Column(DateTime, nullable=False)
    recurrence_type = Column(String, default="one_time")  # daily, weekly, one_time, scheduled
    scheduled_days = Column(String, nullable=True)  # For scheduled: JSON array like "[0,2]" (Mon,Wed)
    is_active = Column(Boolean, default=True)
    is_completed = Column(Boolean, default=False)
    is_finished = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)  # Primary completion date
    created_at = Column(DateTime, default=datetime.now)

    completions = relationship(
        "QuestCompletion",
        back_populates="quest",
        cascade="all, delete-orphan",
        order_by="QuestCompletion.completed_at",
    )


class QuestCompletion(Base):
    __tablename__ = "quest_completions"

    id = Column(Integer, primary_key=True, index=True)
    quest_id = Column(Integer, ForeignKey("quests.id"), nullable=False, index=True)
    completed_at = Column(DateTime, nullable=False)

    quest = relationship("Quest", back_populates="completions")


class DamageTracker(Base):
    __tablename__ = "damage_trackers"

    id = Column(Integer, primary_key=True, index=True)
    quest_id = Column(Integer, nullable=False, unique=True, index=True)

    # Watermark: everything before this day has already been assessed
    last_damage_check_date = Column(DateTime, nullable=False)
    total_damage_taken = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    damage_history = relationship(
        "DamageEvent",
        back_populates="tracker",
        cascade="all, delete-orphan",
        order_by="DamageEvent.id",
    )


class DamageEvent(Base):
    __tablename__ = "damage_events"

    id = Column(Integer, primary_key=True, index=True)
    tracker_id = Column(Integer, ForeignKey("damage_trackers.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False, default=datetime.now)
    damage_amount = Column(Integer, nullable=False)
    missed_periods = Column(Integer, default=0)  # Missed days or occurrences behind the charge
    reason = Column(String, nullable=False)

    tracker = relationship("DamageTracker", back_populates="damage_history")


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    health = Column(Integer, default=50)
    max_health = Column(Integer, default=50)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
