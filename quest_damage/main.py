from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from typing import List
import logging
from pathlib import Path

from quest_damage import config
from quest_damage.auth import verify_api_key
from quest_damage.constants import CORS_ALLOWED_ORIGINS, DEFAULT_LOG_DIRECTORY_DEV
from quest_damage.database import engine, Base, SessionLocal
from quest_damage import models  # Import all models to register them with Base
from quest_damage.exceptions import CalculationInProgressException, QuestNotFoundException
from quest_damage.schemas import (
    DamageCalculationResponse, DamageEventResponse, TotalDamageResponse,
    SessionStateResponse, CleanupResponse, PlayerHealthResponse
)
from quest_damage.services.damage_tracking_service import DamageTrackingService, DamageSessionResult
from quest_damage.services.health_service import HealthService
from quest_damage.services.quest_provider import SqlQuestProvider
from quest_damage.services.scheduler_service import create_scheduler, start_scheduler, stop_scheduler

# Configure logging
LOG_DIR = config.LOG_DIR

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / config.LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / config.LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("quest_damage")

# Wire services once per process
health_service = HealthService(SessionLocal)
tracking_service = DamageTrackingService(
    SessionLocal,
    SqlQuestProvider(SessionLocal),
    health_service,
    max_workers=config.MAX_WORKERS,
    max_damage_per_session=config.MAX_PER_SESSION,
    grace_period_days=config.GRACE_PERIOD_DAYS
)
scheduler = create_scheduler(
    tracking_service,
    check_interval_minutes=config.CHECK_INTERVAL_MINUTES,
    cleanup_hour=config.CLEANUP_HOUR
)


def get_tracking_service() -> DamageTrackingService:
    return tracking_service


def get_health_service() -> HealthService:
    return health_service


app = FastAPI(
    title="Quest Damage API",
    description="Applies health damage for missed quests",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _calculation_response(
    result: DamageSessionResult,
    service: DamageTrackingService
) -> DamageCalculationResponse:
    if isinstance(result.error, CalculationInProgressException):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(result.error))
    return DamageCalculationResponse(
        total_damage=result.total_damage,
        entities_evaluated=result.entities_evaluated,
        error=str(result.error) if result.error else None,
        state=service.get_session_state()
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    Base.metadata.create_all(bind=engine)
    logger.info(f"Quest Damage API started. Logging to: {log_path}")
    start_scheduler(scheduler)


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Quest Damage API")
    stop_scheduler(scheduler)


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Quest Damage API", "status": "active"}


@app.post("/api/damage/calculate", response_model=DamageCalculationResponse, dependencies=[Depends(verify_api_key)])
def calculate_damage(service: DamageTrackingService = Depends(get_tracking_service)):
    """Run a damage calculation pass for all active quests"""
    result = service.calculate_and_apply_damage()
    return _calculation_response(result, service)


@app.get("/api/damage/state", response_model=SessionStateResponse, dependencies=[Depends(verify_api_key)])
def get_damage_state(service: DamageTrackingService = Depends(get_tracking_service)):
    """Get current damage calculation status"""
    return service.get_session_state()


@app.get("/api/damage/quests/{quest_id}/history", response_model=List[DamageEventResponse], dependencies=[Depends(verify_api_key)])
def get_quest_damage_history(quest_id: int, service: DamageTrackingService = Depends(get_tracking_service)):
    """Get damage events for a quest, newest first"""
    return service.get_damage_history(quest_id)


@app.get("/api/damage/quests/{quest_id}/total", response_model=TotalDamageResponse, dependencies=[Depends(verify_api_key)])
def get_quest_total_damage(quest_id: int, service: DamageTrackingService = Depends(get_tracking_service)):
    """Get total damage a quest has caused"""
    return TotalDamageResponse(quest_id=quest_id, total_damage=service.get_total_damage(quest_id))


@app.post("/api/damage/quests/{quest_id}/deactivate", dependencies=[Depends(verify_api_key)])
def deactivate_quest_tracking(quest_id: int, service: DamageTrackingService = Depends(get_tracking_service)):
    """Stop tracking damage for a quest"""
    return {"quest_id": quest_id, "deactivated": service.deactivate_tracking(quest_id)}


@app.post("/api/damage/quests/{quest_id}/failed", response_model=DamageCalculationResponse, dependencies=[Depends(verify_api_key)])
def quest_failed(quest_id: int, service: DamageTrackingService = Depends(get_tracking_service)):
    """Apply damage for a quest that just became overdue"""
    try:
        result = service.handle_quest_failed(quest_id)
    except QuestNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _calculation_response(result, service)


@app.post("/api/damage/quests/{quest_id}/completed", dependencies=[Depends(verify_api_key)])
def quest_completed(quest_id: int, service: DamageTrackingService = Depends(get_tracking_service)):
    """Stop damage tracking for a completed quest"""
    return {"quest_id": quest_id, "deactivated": service.handle_quest_completed(quest_id)}


@app.post("/api/damage/cleanup", response_model=CleanupResponse, dependencies=[Depends(verify_api_key)])
def cleanup_trackers(service: DamageTrackingService = Depends(get_tracking_service)):
    """Remove trackers of finished or inactive quests"""
    return CleanupResponse(removed_trackers=service.cleanup_finished_entities())


@app.get("/api/player/health", response_model=PlayerHealthResponse, dependencies=[Depends(verify_api_key)])
def get_player_health(health: HealthService = Depends(get_health_service)):
    """Get the player's current health"""
    return health.get_player()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quest_damage.main:app", host="0.0.0.0", port=8000, reload=False)
