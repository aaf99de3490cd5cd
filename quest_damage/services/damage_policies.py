"""
Damage policies.
One pure policy per recurrence type, mapping (quest, watermark, now) to the
damage owed for the days missed since the watermark.

All policies share the same interval rule: the watermark and `now` are reduced
to calendar days, and the assessed days are those in [watermark day, today).
Today is never charged because it is not over yet. The new watermark is the
start of today, so a day is assessed at most once.
"""
from datetime import datetime, timedelta, date
from typing import Dict, List, Optional

from quest_damage.constants import (
    RECURRENCE_DAILY, RECURRENCE_WEEKLY, RECURRENCE_ONE_TIME, RECURRENCE_SCHEDULED,
    DAILY_QUEST_DAMAGE_PER_DAY, WEEKLY_QUEST_DAMAGE, ONE_TIME_QUEST_DAMAGE,
    SCHEDULED_QUEST_DAMAGE_PER_OCCURRENCE, DEFAULT_GRACE_PERIOD_DAYS
)
from quest_damage.exceptions import UnknownRecurrenceTypeException
from quest_damage.schemas import QuestSnapshot, DamageCalculationResult
from quest_damage.services.date_service import DateService


class DamagePolicy:
    """Base class for recurrence-specific damage policies"""

    recurrence_type: str = ""

    def __init__(self, grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS):
        self.grace_period_days = max(0, grace_period_days)

    def calculate(
        self,
        quest: QuestSnapshot,
        last_damage_check_date: Optional[datetime],
        current_date: Optional[datetime] = None
    ) -> DamageCalculationResult:
        """
        Calculate damage for one quest.

        Never raises: completed or inactive quests and malformed input
        (missing dates, watermark after now) yield zero damage with the
        watermark held at the start of today.

        Args:
            quest: Read-only quest snapshot
            last_damage_check_date: Watermark stored on the quest's tracker
            current_date: Evaluation time (defaults to now)

        Returns:
            DamageCalculationResult with damage, missed periods and new watermark
        """
        now = DateService.to_naive(current_date or datetime.now())
        today_start = DateService.normalize_to_midnight(now)

        if quest.is_completed or not quest.is_active:
            return self._no_damage(quest, None, today_start)

        if last_damage_check_date is None or quest.due_date is None:
            return self._no_damage(quest, None, today_start)

        watermark = DateService.normalize_to_midnight(
            DateService.to_naive(last_damage_check_date)
        )
        if watermark > today_start:
            return self._no_damage(quest, watermark, today_start)

        due_day = DateService.to_naive(quest.due_date).date()
        first_chargeable = max(
            watermark.date(), due_day + timedelta(days=self.grace_period_days)
        )
        days = list(DateService.iter_days(first_chargeable, today_start.date()))

        missed = self._count_missed(quest, days, watermark.date())
        return DamageCalculationResult(
            damage_amount=missed * self.damage_per_period(),
            missed_periods=missed,
            reason=self._reason(quest, missed),
            last_check_date=watermark,
            new_watermark=today_start
        )

    def damage_per_period(self) -> int:
        raise NotImplementedError

    def _count_missed(self, quest: QuestSnapshot, days: List[date], watermark_day: date) -> int:
        raise NotImplementedError

    def _reason(self, quest: QuestSnapshot, missed: int) -> str:
        raise NotImplementedError

    def _no_damage(
        self,
        quest: QuestSnapshot,
        watermark: Optional[datetime],
        today_start: datetime
    ) -> DamageCalculationResult:
        return DamageCalculationResult(
            damage_amount=0,
            missed_periods=0,
            reason=self._reason(quest, 0),
            last_check_date=watermark,
            new_watermark=today_start
        )


class DailyDamagePolicy(DamagePolicy):
    """Charges for every missed day since the last completion or check"""

    recurrence_type = RECURRENCE_DAILY

    def damage_per_period(self) -> int:
        return DAILY_QUEST_DAMAGE_PER_DAY

    def _count_missed(self, quest: QuestSnapshot, days: List[date], watermark_day: date) -> int:
        completed = DateService.completion_days(quest.completion_dates, quest.completed_at)
        recent = [d for d in completed if d >= watermark_day]
        if recent:
            # A completion covers every day up to and including itself
            last_completion = max(recent)
            days = [d for d in days if d > last_completion]
        return len(days)

    def _reason(self, quest: QuestSnapshot, missed: int) -> str:
        if missed == 0:
            return f"Daily quest '{quest.title}' is up to date"
        return f"Daily quest '{quest.title}' missed for {missed} day(s)"


class FlatChargePolicy(DamagePolicy):
    """
    Charges one fixed penalty per evaluation pass while the quest is overdue.

    A pass only charges when it covers at least one day that has not been
    assessed yet, so repeated passes on the same day charge once.
    """

    flat_damage: int = 0
    label: str = ""

    def damage_per_period(self) -> int:
        return self.flat_damage

    def _count_missed(self, quest: QuestSnapshot, days: List[date], watermark_day: date) -> int:
        return 1 if days else 0

    def _reason(self, quest: QuestSnapshot, missed: int) -> str:
        if missed == 0:
            return f"{self.label} quest '{quest.title}' is not overdue"
        return f"{self.label} quest '{quest.title}' is overdue"


class WeeklyDamagePolicy(FlatChargePolicy):
    recurrence_type = RECURRENCE_WEEKLY
    flat_damage = WEEKLY_QUEST_DAMAGE
    label = "Weekly"


class OneTimeDamagePolicy(FlatChargePolicy):
    recurrence_type = RECURRENCE_ONE_TIME
    flat_damage = ONE_TIME_QUEST_DAMAGE
    label = "One-time"


class ScheduledDamagePolicy(DamagePolicy):
    """Charges for every scheduled weekday without a completion"""

    recurrence_type = RECURRENCE_SCHEDULED

    def damage_per_period(self) -> int:
        return SCHEDULED_QUEST_DAMAGE_PER_OCCURRENCE

    def _count_missed(self, quest: QuestSnapshot, days: List[date], watermark_day: date) -> int:
        scheduled = set(quest.scheduled_days)
        if not scheduled:
            return 0
        completed = DateService.completion_days(quest.completion_dates, quest.completed_at)
        return sum(
            1 for d in days
            if d.weekday() in scheduled and d not in completed
        )

    def _reason(self, quest: QuestSnapshot, missed: int) -> str:
        if missed == 0:
            return f"Scheduled quest '{quest.title}' is not overdue"
        return f"Scheduled quest '{quest.title}' missed on {missed} scheduled day(s)"


POLICY_CLASSES = (
    DailyDamagePolicy,
    WeeklyDamagePolicy,
    OneTimeDamagePolicy,
    ScheduledDamagePolicy,
)


def build_damage_policies(
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS
) -> Dict[str, DamagePolicy]:
    """Create one policy instance per recurrence type"""
    return {
        policy_class.recurrence_type: policy_class(grace_period_days)
        for policy_class in POLICY_CLASSES
    }


def get_damage_policy(
    recurrence_type: str,
    policies: Optional[Dict[str, DamagePolicy]] = None
) -> DamagePolicy:
    """
    Select the damage policy for a recurrence type.

    Raises:
        UnknownRecurrenceTypeException: If no policy handles the type
    """
    if policies is None:
        policies = build_damage_policies()
    policy = policies.get(recurrence_type)
    if policy is None:
        raise UnknownRecurrenceTypeException(recurrence_type)
    return policy
