"""
Damage tracking service.
Coordinates per-quest damage calculation and applies the capped total to the
player's health.

A calculation pass:
1. Rejects the call if another pass is running
2. Loads active, incomplete quests from the quest provider
3. Evaluates every quest concurrently (tracker fetch, policy, persistence)
4. Sums the damage of quests whose tracker was stored successfully
5. Caps the sum at the per-session maximum
6. Applies the capped amount to health in a single call
7. Publishes session state
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Callable, List, Optional

from quest_damage.constants import DEFAULT_GRACE_PERIOD_DAYS, DEFAULT_MAX_WORKERS, MAX_DAMAGE_PER_SESSION
from quest_damage.exceptions import CalculationInProgressException, QuestNotFoundException
from quest_damage.models import DamageEvent
from quest_damage.repositories.tracker_repository import DamageTrackerRepository
from quest_damage.schemas import QuestSnapshot, SessionStateResponse
from quest_damage.services.damage_policies import build_damage_policies, get_damage_policy
from quest_damage.services.date_service import DateService
from quest_damage.services.health_service import HealthCollaborator
from quest_damage.services.quest_provider import QuestProvider

logger = logging.getLogger("quest_damage.tracking")


@dataclass(frozen=True)
class EntityDamageResult:
    """Outcome of evaluating a single quest"""
    quest_id: int
    damage_amount: int = 0
    reason: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class DamageSessionResult:
    """Outcome of one calculation pass"""
    total_damage: int = 0
    entities_evaluated: int = 0
    errors: List[Exception] = field(default_factory=list)

    @property
    def error(self) -> Optional[Exception]:
        """First error collected during the pass"""
        return self.errors[0] if self.errors else None


class SessionState:
    """Status of the damage engine published to the UI layer"""

    def __init__(self):
        self._lock = threading.Lock()
        self.is_calculating = False
        self.last_calculation_timestamp: Optional[datetime] = None
        self.total_damage_taken_in_session = 0
        self._session_day: Optional[date] = None

    def begin(self) -> None:
        with self._lock:
            self.is_calculating = True

    def end(self) -> None:
        with self._lock:
            self.is_calculating = False

    def finish(self, applied_damage: int, finished_at: datetime) -> None:
        """Record a completed pass; the damage counter restarts each day"""
        with self._lock:
            if self._session_day != finished_at.date():
                self._session_day = finished_at.date()
                self.total_damage_taken_in_session = 0
            self.total_damage_taken_in_session += applied_damage
            self.last_calculation_timestamp = finished_at
            self.is_calculating = False

    def snapshot(self) -> SessionStateResponse:
        with self._lock:
            return SessionStateResponse(
                is_calculating=self.is_calculating,
                last_calculation_timestamp=self.last_calculation_timestamp,
                total_damage_taken_in_session=self.total_damage_taken_in_session
            )


class DamageTrackingService:
    """Service for quest damage tracking"""

    def __init__(
        self,
        session_factory,
        quest_provider: QuestProvider,
        health: HealthCollaborator,
        tracker_repo: Optional[DamageTrackerRepository] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_damage_per_session: int = MAX_DAMAGE_PER_SESSION,
        grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.session_factory = session_factory
        self.quest_provider = quest_provider
        self.health = health
        self.tracker_repo = tracker_repo or DamageTrackerRepository()
        self.max_workers = max(1, max_workers)
        self.max_damage_per_session = max(0, max_damage_per_session)
        self.policies = build_damage_policies(grace_period_days)
        self.clock = clock
        self.state = SessionState()
        self._calculation_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate_and_apply_damage(self) -> DamageSessionResult:
        """
        Calculate damage for all active quests and apply it to the player's health.

        Returns:
            DamageSessionResult with the capped damage applied and the errors
            collected. An error does not imply that no damage was applied.
        """
        if not self._calculation_lock.acquire(blocking=False):
            logger.warning("Damage calculation rejected: a pass is already running")
            return DamageSessionResult(errors=[CalculationInProgressException()])

        try:
            self.state.begin()
            try:
                quests = self.quest_provider.fetch_active_incomplete_entities()
            except Exception as e:
                logger.error(f"Failed to load quests for damage calculation: {e}")
                return DamageSessionResult(errors=[e])

            quests = [q for q in quests if q.is_active and not q.is_completed]
            return self._run_pass(quests)
        finally:
            self.state.end()
            self._calculation_lock.release()

    def handle_quest_failed(self, quest_id: int) -> DamageSessionResult:
        """
        Apply damage for one quest right away, e.g. when it becomes overdue.

        Runs under the same guard as a full pass, so health still sees at
        most one mutation at a time. Inactive or completed quests take no
        damage.

        Raises:
            QuestNotFoundException: If the provider does not know the quest
        """
        if not self._calculation_lock.acquire(blocking=False):
            logger.warning(f"Immediate damage for quest {quest_id} rejected: a pass is already running")
            return DamageSessionResult(errors=[CalculationInProgressException()])

        try:
            quest = self.quest_provider.fetch_entity(quest_id)
            if quest is None:
                raise QuestNotFoundException(quest_id)
            self.state.begin()
            if not quest.is_active or quest.is_completed:
                logger.info(f"Quest {quest_id} is inactive or completed, no damage applied")
                return self._run_pass([])
            return self._run_pass([quest])
        finally:
            self.state.end()
            self._calculation_lock.release()

    def calculate_damage_for_entity(self, quest: QuestSnapshot) -> EntityDamageResult:
        """
        Calculate and record damage for a single quest.

        The tracker watermark is always stored; an event is appended only when
        damage is owed. Health is not touched.
        """
        return self._calculate_for_entity(quest, self.clock())

    def _run_pass(self, quests: List[QuestSnapshot]) -> DamageSessionResult:
        now = self.clock()
        result = DamageSessionResult(entities_evaluated=len(quests))

        if not quests:
            logger.info("No active quests to check for damage")
            self.state.finish(0, now)
            return result

        entity_results = self._evaluate_all(quests, now)

        total_damage = 0
        for entity_result in entity_results:
            if entity_result.error is not None:
                result.errors.append(entity_result.error)
            elif entity_result.damage_amount > 0:
                total_damage += entity_result.damage_amount

        capped_damage = min(total_damage, self.max_damage_per_session)
        applied_damage = 0
        if capped_damage > 0:
            try:
                self.health.apply_damage(capped_damage)
                applied_damage = capped_damage
            except Exception as e:
                logger.error(f"Failed to apply {capped_damage} damage to player: {e}")
                result.errors.append(e)

        result.total_damage = capped_damage
        self.state.finish(applied_damage, now)

        logger.info(
            f"Damage pass finished: {len(quests)} quests, {total_damage} damage "
            f"(capped to {capped_damage}), {len(result.errors)} errors"
        )
        return result

    def _evaluate_all(self, quests: List[QuestSnapshot], now: datetime) -> List[EntityDamageResult]:
        """Evaluate quests concurrently and wait for all of them"""
        results: List[EntityDamageResult] = []
        workers = min(self.max_workers, len(quests))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._calculate_for_entity, quest, now): quest
                for quest in quests
            }
            for future in as_completed(futures):
                results.append(future.result())

        return results

    def _calculate_for_entity(self, quest: QuestSnapshot, now: datetime) -> EntityDamageResult:
        db = self.session_factory()
        try:
            tracker = self.tracker_repo.get_by_quest_id(db, quest.id)
            if tracker is not None and not tracker.is_active:
                return EntityDamageResult(quest_id=quest.id, reason="Damage tracking inactive")

            # First check for this quest starts from its due date
            watermark = tracker.last_damage_check_date if tracker is not None else quest.due_date

            policy = get_damage_policy(quest.recurrence_type, self.policies)
            calculation = policy.calculate(quest, watermark, now)

            new_watermark = calculation.new_watermark
            if watermark is not None:
                new_watermark = max(DateService.to_naive(watermark), new_watermark)

            # Watermark and event are committed together
            tracker = self.tracker_repo.create_or_update(
                db, quest.id, new_watermark, commit=False
            )
            if calculation.damage_amount > 0:
                self.tracker_repo.append_event(
                    db,
                    tracker.id,
                    calculation.damage_amount,
                    calculation.reason,
                    event_date=now,
                    missed_periods=calculation.missed_periods,
                    commit=False
                )
            self.tracker_repo.save(db)
            if calculation.damage_amount > 0:
                logger.info(f"Quest {quest.id}: {calculation.reason} ({calculation.damage_amount} damage)")

            return EntityDamageResult(
                quest_id=quest.id,
                damage_amount=calculation.damage_amount,
                reason=calculation.reason
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Damage calculation failed for quest {quest.id}: {e}")
            return EntityDamageResult(quest_id=quest.id, error=e)
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_session_state(self) -> SessionStateResponse:
        return self.state.snapshot()

    def get_damage_history(self, quest_id: int) -> List[DamageEvent]:
        """Damage events recorded for a quest, newest first"""
        db = self.session_factory()
        try:
            tracker = self.tracker_repo.get_by_quest_id(db, quest_id)
            if tracker is None:
                return []
            return self.tracker_repo.get_events(db, tracker.id)
        finally:
            db.close()

    def get_total_damage(self, quest_id: int) -> int:
        db = self.session_factory()
        try:
            tracker = self.tracker_repo.get_by_quest_id(db, quest_id)
            return tracker.total_damage_taken if tracker else 0
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def deactivate_tracking(self, quest_id: int) -> bool:
        """Stop tracking a quest; a missing or inactive tracker is a no-op"""
        db = self.session_factory()
        try:
            deactivated = self.tracker_repo.deactivate(db, quest_id)
        finally:
            db.close()
        if deactivated:
            logger.info(f"Damage tracking deactivated for quest {quest_id}")
        return deactivated

    def handle_quest_completed(self, quest_id: int) -> bool:
        return self.deactivate_tracking(quest_id)

    def cleanup_finished_entities(self) -> int:
        """
        Remove trackers of finished, completed, inactive or deleted quests.

        Returns:
            Number of trackers removed
        """
        quests = self.quest_provider.fetch_all_entities()
        tracked_ids = [
            q.id for q in quests
            if q.is_active and not q.is_finished and not q.is_completed
        ]

        db = self.session_factory()
        try:
            removed = self.tracker_repo.clear_inactive(db, tracked_ids)
        finally:
            db.close()

        logger.info(f"Damage tracker cleanup removed {removed} trackers")
        return removed
