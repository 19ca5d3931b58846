"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Optional, Union

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .backup import (
    BackupError,
    backup_filename,
    build_backup,
    dump_backup,
    parse_backup,
    restore_backup,
)
from .config import settings
from .goals.models import (
    TIMEFRAME_LABELS,
    TIMEFRAMES,
    DEFAULT_CATEGORIES,
    Goal,
    GoalNotFoundError,
    GoalValidationError,
    ReminderPrefs,
    Timeframe,
    UiPrefs,
    WireModel,
)
from .goals.service import GoalService
from .goals.stats import derive_status
from .reminders import ReminderEngine
from .storage.database import SqliteStore
from .storage.repository import StateRepository, sanitize_prefs

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@lru_cache
def get_repository() -> StateRepository:
    """Repository over the configured SQLite file (created on first use)."""
    return StateRepository(SqliteStore(settings.db_path))


def get_service(repository: StateRepository = Depends(get_repository)) -> GoalService:
    return GoalService(repository)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = ReminderEngine(
        get_repository(),
        poll_interval=settings.reminder_poll_interval,
        lookback=settings.reminder_lookback,
    )
    engine.start()
    try:
        yield
    finally:
        await engine.stop()


# Initialize FastAPI app
app = FastAPI(
    title="Routineland",
    description="Personal goal tracker: daily, weekly, monthly and yearly goals",
    version=VERSION,
    lifespan=lifespan,
)


class GoalDraft(WireModel):
    """Body for creating a goal."""

    timeframe: Timeframe
    title: str
    category_id: str
    start_at: str
    duration_value: Union[str, float, None] = None
    description: str = ""


class GoalUpdate(WireModel):
    """Body for editing a goal (timeframe can't change)."""

    title: str
    category_id: str
    start_at: str
    duration_value: Union[str, float, None] = None
    description: Optional[str] = None


def goal_view(goal: Goal, now: datetime) -> dict:
    """Stored goal plus its live status."""
    return {**goal.to_wire(), "liveStatus": derive_status(goal, now).value}


@app.exception_handler(GoalValidationError)
async def validation_error_handler(request: Request, exc: GoalValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(GoalNotFoundError)
async def not_found_handler(request: Request, exc: GoalNotFoundError):
    return JSONResponse(status_code=404, content={"detail": f"Goal not found: {exc}"})


@app.exception_handler(BackupError)
async def backup_error_handler(request: Request, exc: BackupError):
    logger.warning(f"Backup import rejected: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Routineland goal tracker",
        "version": VERSION,
        "endpoints": {
            "goals": "/api/goals",
            "stats": "/api/stats",
            "backup": "/api/backup",
            "status": "/status",
        },
    }


@app.get("/status")
async def status():
    """Server status endpoint."""
    return {
        "status": "running",
        "version": VERSION,
        "timestamp": datetime.now().isoformat(),
        "db_path": settings.db_path,
    }


@app.get("/api/categories")
async def list_categories():
    return [c.to_wire() for c in DEFAULT_CATEGORIES]


@app.get("/api/goals")
async def list_goals(
    timeframe: Optional[Timeframe] = None,
    service: GoalService = Depends(get_service),
):
    now = service.clock()
    return [goal_view(g, now) for g in service.list_goals(timeframe)]


@app.get("/api/goals/{timeframe}/view")
async def goals_view(
    timeframe: Timeframe,
    category: str = "all",
    q: str = "",
    service: GoalService = Depends(get_service),
):
    """
    Goals for one timeframe, filtered and grouped by category.

    Groups are ordered in progress, future, then done, and by start time.
    """
    now = service.clock()
    groups = service.grouped_view(timeframe, category_filter=category, query=q)
    return {
        "timeframe": timeframe.value,
        "label": TIMEFRAME_LABELS[timeframe],
        "stats": service.timeframe_stats(timeframe).model_dump(),
        "groups": [
            {"categoryId": category_id, "goals": [goal_view(g, now) for g in goals]}
            for category_id, goals in groups.items()
        ],
    }


@app.post("/api/goals", status_code=201)
async def add_goal(draft: GoalDraft, service: GoalService = Depends(get_service)):
    goal = service.add_goal(
        timeframe=draft.timeframe,
        title=draft.title,
        category_id=draft.category_id,
        start_at=draft.start_at,
        duration_value=draft.duration_value,
        description=draft.description,
    )
    return goal_view(goal, service.clock())


@app.put("/api/goals/{goal_id}")
async def edit_goal(
    goal_id: str, update: GoalUpdate, service: GoalService = Depends(get_service)
):
    goal = service.edit_goal(
        goal_id,
        title=update.title,
        category_id=update.category_id,
        start_at=update.start_at,
        duration_value=update.duration_value,
        description=update.description,
    )
    return goal_view(goal, service.clock())


@app.post("/api/goals/{goal_id}/toggle")
async def toggle_goal(goal_id: str, service: GoalService = Depends(get_service)):
    goal = service.toggle_done(goal_id)
    return goal_view(goal, service.clock())


@app.delete("/api/goals/{goal_id}")
async def remove_goal(goal_id: str, service: GoalService = Depends(get_service)):
    service.remove_goal(goal_id)
    return {"status": "success", "message": "Goal removed"}


@app.get("/api/stats")
async def stats(service: GoalService = Depends(get_service)):
    """Home page statistics."""
    return {
        "home": service.home_stats().to_wire(),
        "totals": service.totals().model_dump(),
        "timeframes": {
            tf.value: service.timeframe_stats(tf).model_dump() for tf in TIMEFRAMES
        },
    }


@app.get("/api/prefs/{timeframe}")
async def get_prefs(
    timeframe: Timeframe, repository: StateRepository = Depends(get_repository)
):
    prefs = repository.load_prefs(timeframe) or UiPrefs()
    return prefs.to_wire()


@app.put("/api/prefs/{timeframe}")
async def put_prefs(
    timeframe: Timeframe,
    body: dict = Body(...),
    repository: StateRepository = Depends(get_repository),
):
    prefs = sanitize_prefs(body)
    repository.save_prefs(timeframe, prefs)
    return prefs.to_wire()


@app.get("/api/reminders")
async def get_reminders(repository: StateRepository = Depends(get_repository)):
    return repository.load_reminder_prefs().to_wire()


@app.put("/api/reminders")
async def put_reminders(
    prefs: ReminderPrefs, repository: StateRepository = Depends(get_repository)
):
    repository.save_reminder_prefs(prefs)
    logger.info(f"Reminders {'enabled' if prefs.enabled else 'disabled'}")
    return prefs.to_wire()


@app.get("/api/backup")
async def export_backup(repository: StateRepository = Depends(get_repository)):
    """Download the full backup document."""
    document = build_backup(repository)
    return Response(
        content=dump_backup(document),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@app.post("/api/backup/restore")
async def import_backup(
    request: Request, repository: StateRepository = Depends(get_repository)
):
    """
    Replace stored state with an uploaded backup.

    The raw request body is the backup file. Nothing is written unless
    the whole document parses.
    """
    text = (await request.body()).decode("utf-8", errors="replace")
    document = parse_backup(text)
    restore_backup(repository, document)

    return {
        "status": "success",
        "message": "Backup restored",
        "goals": len(document.state.goals),
        "uiPrefs": sorted(tf.value for tf in document.ui_prefs),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
