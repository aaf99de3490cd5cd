from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


# Quest snapshot (read-only view handed to damage policies)
class QuestSnapshot(BaseModel):
    id: int
    title: str = ""
    due_date: Optional[datetime] = None
    recurrence_type: str = "one_time"  # daily, weekly, one_time, scheduled
    scheduled_days: List[int] = Field(default_factory=list)  # 0=Mon .. 6=Sun
    completion_dates: List[datetime] = Field(default_factory=list)
    completed_at: Optional[datetime] = None  # Primary completion date
    is_active: bool = True
    is_completed: bool = False
    is_finished: bool = False

    class Config:
        frozen = True
        from_attributes = True


class DamageCalculationResult(BaseModel):
    damage_amount: int = Field(default=0, ge=0)
    missed_periods: int = Field(default=0, ge=0)
    reason: str
    last_check_date: Optional[datetime] = None
    new_watermark: datetime

    class Config:
        frozen = True


# Damage tracker schemas
class DamageEventResponse(BaseModel):
    id: int
    date: datetime
    damage_amount: int
    missed_periods: int = 0
    reason: str

    class Config:
        from_attributes = True


class TotalDamageResponse(BaseModel):
    quest_id: int
    total_damage: int


# Session schemas
class SessionStateResponse(BaseModel):
    is_calculating: bool = False
    last_calculation_timestamp: Optional[datetime] = None
    total_damage_taken_in_session: int = 0


class DamageCalculationResponse(BaseModel):
    total_damage: int
    entities_evaluated: int = 0
    error: Optional[str] = None
    state: SessionStateResponse


class CleanupResponse(BaseModel):
    removed_trackers: int


# Player schemas
class PlayerHealthResponse(BaseModel):
    health: int
    max_health: int

    class Config:
        from_attributes = True
