"""
Damage tracker repository - Data access layer for DamageTracker and DamageEvent.
Handles all database queries related to per-quest damage tracking.
"""
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quest_damage.exceptions import DatabaseException, TrackerNotFoundException
from quest_damage.models import DamageTracker, DamageEvent


def _commit(db: Session, operation: str, commit: bool = True) -> None:
    """Commit (or only flush), rolling back and wrapping driver errors"""
    try:
        if commit:
            db.commit()
        else:
            db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        raise DatabaseException(operation, str(e)) from e


class DamageTrackerRepository:
    """Repository for DamageTracker data access"""

    @staticmethod
    def get_by_quest_id(db: Session, quest_id: int) -> Optional[DamageTracker]:
        """Get tracker for a quest (None for a quest never checked before)"""
        return db.query(DamageTracker).filter(DamageTracker.quest_id == quest_id).first()

    @staticmethod
    def get_by_id(db: Session, tracker_id: int) -> Optional[DamageTracker]:
        """Get tracker by ID"""
        return db.query(DamageTracker).filter(DamageTracker.id == tracker_id).first()

    @staticmethod
    def get_all_active(db: Session) -> List[DamageTracker]:
        """Get all active trackers"""
        return db.query(DamageTracker).filter(DamageTracker.is_active == True).all()

    @staticmethod
    def create_or_update(
        db: Session,
        quest_id: int,
        last_damage_check_date: datetime,
        total_damage_taken: Optional[int] = None,
        is_active: Optional[bool] = None,
        commit: bool = True
    ) -> DamageTracker:
        """
        Create a tracker for the quest or update the existing one.

        Only the watermark, total and (optionally) active flag are written;
        damage history is left untouched.

        Args:
            db: Database session
            quest_id: Quest the tracker belongs to
            last_damage_check_date: New watermark
            total_damage_taken: New cumulative total, or None to keep the stored one
            is_active: New active flag, or None to keep the current one
            commit: False to only flush, leaving the transaction open

        Returns:
            The stored tracker
        """
        tracker = DamageTrackerRepository.get_by_quest_id(db, quest_id)
        if tracker is None:
            tracker = DamageTracker(
                quest_id=quest_id,
                last_damage_check_date=last_damage_check_date,
                total_damage_taken=max(0, total_damage_taken or 0),
                is_active=True if is_active is None else is_active
            )
            db.add(tracker)
        else:
            tracker.last_damage_check_date = last_damage_check_date
            if total_damage_taken is not None:
                tracker.total_damage_taken = max(0, total_damage_taken)
            if is_active is not None:
                tracker.is_active = is_active

        _commit(db, "tracker upsert", commit)
        if commit:
            db.refresh(tracker)
        return tracker

    @staticmethod
    def append_event(
        db: Session,
        tracker_id: int,
        damage_amount: int,
        reason: str,
        event_date: Optional[datetime] = None,
        missed_periods: int = 0,
        commit: bool = True
    ) -> DamageEvent:
        """
        Append a damage event and add its amount to the tracker total.

        The total is incremented in SQL so concurrent writers never
        overwrite each other's additions.

        Raises:
            TrackerNotFoundException: If the tracker does not exist
        """
        tracker = DamageTrackerRepository.get_by_id(db, tracker_id)
        if tracker is None:
            raise TrackerNotFoundException(tracker_id)

        event = DamageEvent(
            tracker_id=tracker.id,
            date=event_date or datetime.now(),
            damage_amount=damage_amount,
            missed_periods=missed_periods,
            reason=reason
        )
        db.add(event)
        tracker.total_damage_taken = func.coalesce(DamageTracker.total_damage_taken, 0) + damage_amount

        _commit(db, "damage event append", commit)
        if commit:
            db.refresh(event)
        return event

    @staticmethod
    def save(db: Session) -> None:
        """Commit pending tracker and event changes as one transaction"""
        _commit(db, "tracker save")

    @staticmethod
    def get_events(db: Session, tracker_id: int) -> List[DamageEvent]:
        """Get damage events for a tracker, newest first"""
        return db.query(DamageEvent).filter(
            DamageEvent.tracker_id == tracker_id
        ).order_by(DamageEvent.date.desc(), DamageEvent.id.desc()).all()

    @staticmethod
    def deactivate(db: Session, quest_id: int) -> bool:
        """
        Mark the quest's tracker inactive.

        Returns:
            True if an active tracker was deactivated, False if it was
            missing or already inactive
        """
        tracker = DamageTrackerRepository.get_by_quest_id(db, quest_id)
        if tracker is None or not tracker.is_active:
            return False

        tracker.is_active = False
        _commit(db, "tracker deactivate")
        return True

    @staticmethod
    def delete_by_quest_id(db: Session, quest_id: int) -> None:
        """Delete the quest's tracker together with its history"""
        tracker = DamageTrackerRepository.get_by_quest_id(db, quest_id)
        if tracker is None:
            return
        db.delete(tracker)
        _commit(db, "tracker delete")

    @staticmethod
    def clear_inactive(db: Session, tracked_quest_ids: Iterable[int]) -> int:
        """
        Delete trackers that are inactive or whose quest is no longer tracked.

        Args:
            db: Database session
            tracked_quest_ids: IDs of quests the provider still tracks

        Returns:
            Number of trackers removed
        """
        tracked = set(tracked_quest_ids)
        stale = [
            tracker for tracker in db.query(DamageTracker).all()
            if not tracker.is_active or tracker.quest_id not in tracked
        ]
        for tracker in stale:
            db.delete(tracker)

        if stale:
            _commit(db, "tracker cleanup")
        return len(stale)
