"""
Scheduler API endpoints - generate, edit and confirm a tournament's fixtures
"""
import random
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Dict

from pavilion.config import settings
from pavilion.database import get_db
from pavilion.engine.fixture_scheduler import (
    FixtureScheduler, SchedulingConfig, SchedulingError,
    Venue, TimeSlot, default_time_slots,
)
from pavilion.api.tournament import get_tournament, team_entries, match_response
from pavilion.api.schemas import (
    SchedulingConfigRequest, SchedulerStateResponse, FixtureDraftResponse, ConflictResponse,
    FixtureUpdateRequest, SwapRequest, MatchResponse,
)

router = APIRouter(prefix="/scheduler", tags=["Scheduler"])

# Scheduling sessions in preview, keyed by tournament id
active_schedulers: Dict[int, FixtureScheduler] = {}


def _state(scheduler: FixtureScheduler) -> SchedulerStateResponse:
    return SchedulerStateResponse(
        step=scheduler.step.value,
        total_matches=scheduler.total_matches,
        fixtures=[FixtureDraftResponse.model_validate(f) for f in scheduler.fixtures],
        conflicts=[ConflictResponse.model_validate(c) for c in scheduler.conflicts],
        can_confirm=scheduler.can_confirm,
    )


def _get_scheduler(tournament_id: int) -> FixtureScheduler:
    scheduler = active_schedulers.get(tournament_id)
    if scheduler is None:
        raise HTTPException(status_code=404, detail="No scheduling session for this tournament")
    return scheduler


def _build_config(request: SchedulingConfigRequest, tournament) -> SchedulingConfig:
    start = request.start_date or tournament.start_date or date.today()
    end = request.end_date or tournament.end_date or start + timedelta(days=30)
    if end < start:
        raise HTTPException(status_code=400, detail="End date is before start date")

    if request.venues:
        venues = [
            Venue(
                name=v.name,
                id=v.id or str(i),
                slots=[TimeSlot(s.start_time, s.end_time, s.label, s.id or str(j)) for j, s in enumerate(v.slots, 1)],
            )
            for i, v in enumerate(request.venues, 1)
        ]
    else:
        venues = [Venue(
            name=tournament.venue or settings.SCHEDULER_DEFAULT_VENUE,
            slots=default_time_slots(),
            id="1",
        )]

    return SchedulingConfig(
        start_date=start,
        end_date=end,
        venues=venues,
        available_days=sorted(set(d for d in request.available_days if 0 <= d <= 6)),
        min_days_between_matches=request.min_days_between_matches,
        avoid_consecutive_days=request.avoid_consecutive_days,
        matches_per_day=request.matches_per_day,
    )


@router.post("/{tournament_id}/generate", response_model=SchedulerStateResponse)
def generate(tournament_id: int, request: SchedulingConfigRequest, db: Session = Depends(get_db)):
    """Generate a conflict-annotated fixture list for review"""
    tournament = get_tournament(tournament_id, db)

    # A new run replaces any preview in progress
    scheduler = FixtureScheduler(
        tournament_id=tournament.id,
        tournament_format=tournament.format.value,
        teams=team_entries(tournament),
        config=_build_config(request, tournament),
        rng=random.Random(request.seed) if request.seed is not None else None,
    )

    try:
        scheduler.handle_generate()
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    active_schedulers[tournament_id] = scheduler
    return _state(scheduler)


@router.get("/{tournament_id}", response_model=SchedulerStateResponse)
def get_state(tournament_id: int):
    return _state(_get_scheduler(tournament_id))


@router.put("/{tournament_id}/fixtures/{index}", response_model=SchedulerStateResponse)
def update_fixture(tournament_id: int, index: int, request: FixtureUpdateRequest):
    """Change one fixture's date, time or venue"""
    scheduler = _get_scheduler(tournament_id)
    try:
        scheduler.update_fixture(index, request.field, request.value)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(scheduler)


@router.post("/{tournament_id}/swap", response_model=SchedulerStateResponse)
def swap_fixtures(tournament_id: int, request: SwapRequest):
    """Swap the slots of two fixtures"""
    scheduler = _get_scheduler(tournament_id)
    try:
        scheduler.swap_fixtures(request.first, request.second)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(scheduler)


@router.post("/{tournament_id}/reset", response_model=SchedulerStateResponse)
def reset(tournament_id: int):
    """Discard the preview and go back to configuration"""
    scheduler = _get_scheduler(tournament_id)
    try:
        scheduler.back_to_config()
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(scheduler)


@router.post("/{tournament_id}/confirm", response_model=list[MatchResponse])
def confirm(tournament_id: int, db: Session = Depends(get_db)):
    """Save the previewed fixtures. Refused while scheduling errors remain."""
    tournament = get_tournament(tournament_id, db)
    scheduler = _get_scheduler(tournament_id)

    try:
        matches = scheduler.handle_confirm(db, balls_per_over=tournament.balls_per_over)
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    active_schedulers.pop(tournament_id, None)
    return [match_response(m) for m in matches]
