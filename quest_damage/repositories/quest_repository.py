"""
Quest repository - Data access layer for Quest model.
Handles all database queries related to quests and their completions.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session, selectinload

from quest_damage.models import Quest, QuestCompletion
from quest_damage.schemas import QuestSnapshot
from quest_damage.services.date_service import DateService


class QuestRepository:
    """Repository for Quest data access"""

    @staticmethod
    def get_by_id(db: Session, quest_id: int) -> Optional[Quest]:
        """Get quest by ID"""
        return db.query(Quest).options(selectinload(Quest.completions)).filter(
            Quest.id == quest_id
        ).first()

    @staticmethod
    def get_all(db: Session) -> List[Quest]:
        """Get all quests"""
        return db.query(Quest).options(selectinload(Quest.completions)).all()

    @staticmethod
    def get_active_incomplete(db: Session) -> List[Quest]:
        """Get quests that are active and not completed"""
        return db.query(Quest).options(selectinload(Quest.completions)).filter(
            and_(
                Quest.is_active == True,
                Quest.is_completed == False
            )
        ).order_by(Quest.due_date).all()

    @staticmethod
    def create(db: Session, quest: Quest) -> Quest:
        """Create a new quest"""
        db.add(quest)
        db.commit()
        db.refresh(quest)
        return quest

    @staticmethod
    def add_completion(db: Session, quest: Quest, completed_at: datetime) -> QuestCompletion:
        """Record a completion for a quest"""
        completion = QuestCompletion(quest_id=quest.id, completed_at=completed_at)
        db.add(completion)
        db.commit()
        db.refresh(completion)
        return completion

    @staticmethod
    def to_snapshot(quest: Quest) -> QuestSnapshot:
        """Build the read-only view consumed by damage policies"""
        return QuestSnapshot(
            id=quest.id,
            title=quest.title,
            due_date=quest.due_date,
            recurrence_type=quest.recurrence_type,
            scheduled_days=DateService.parse_weekdays(quest.scheduled_days),
            completion_dates=[c.completed_at for c in quest.completions],
            completed_at=quest.completed_at,
            is_active=bool(quest.is_active),
            is_completed=bool(quest.is_completed),
            is_finished=bool(quest.is_finished)
        )
