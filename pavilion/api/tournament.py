"""
Tournament API endpoints - tournaments, team registrations, matches
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from pavilion.config import settings
from pavilion.database import get_db
from pavilion.models.tournament import (
    Tournament, TournamentTeam, TournamentMatch,
    TournamentFormat, RegistrationStatus, MatchStage, TournamentMatchStatus,
)
from pavilion.engine.fixture_scheduler import TeamEntry, SchedulingError, quick_generate, draft_to_match
from pavilion.validators.fixture_validator import FixtureValidator
from pavilion.api.schemas import (
    TournamentCreate, TournamentResponse, TeamCreate, TeamResponse,
    MatchCreate, MatchUpdate, MatchResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


def get_tournament(tournament_id: int, db: Session) -> Tournament:
    tournament = db.query(Tournament).filter_by(id=tournament_id).first()
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def team_entries(tournament: Tournament) -> list[TeamEntry]:
    return [
        TeamEntry(
            id=t.id,
            team_name=t.team_name,
            group=t.group,
            registration_status=t.registration_status.value,
        )
        for t in tournament.teams
    ]


def tournament_response(tournament: Tournament) -> TournamentResponse:
    return TournamentResponse(
        id=tournament.id,
        name=tournament.name,
        format=tournament.format.value,
        venue=tournament.venue,
        start_date=tournament.start_date,
        end_date=tournament.end_date,
        balls_per_over=tournament.balls_per_over,
    )


def team_response(team: TournamentTeam) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        team_name=team.team_name,
        group=team.group,
        registration_status=team.registration_status.value,
    )


def match_response(match: TournamentMatch) -> MatchResponse:
    return MatchResponse(
        id=match.id,
        tournament_id=match.tournament_id,
        match_number=match.match_number,
        team1_id=match.team1_id,
        team1_name=match.team1_name,
        team2_id=match.team2_id,
        team2_name=match.team2_name,
        stage=match.stage.value,
        group=match.group,
        round=match.round,
        bracket_position=match.bracket_position,
        match_date=match.match_date,
        venue=match.venue,
        status=match.status.value,
    )


@router.post("", response_model=TournamentResponse)
def create_tournament(request: TournamentCreate, db: Session = Depends(get_db)):
    """Create a tournament"""
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise HTTPException(status_code=400, detail="End date is before start date")

    tournament = Tournament(
        name=request.name,
        format=TournamentFormat(request.format.value),
        venue=request.venue,
        start_date=request.start_date,
        end_date=request.end_date,
        balls_per_over=request.balls_per_over or settings.DEFAULT_BALLS_PER_OVER,
    )
    db.add(tournament)
    db.commit()
    db.refresh(tournament)
    logger.info("Created tournament %s (%s)", tournament.id, tournament.format.value)
    return tournament_response(tournament)


@router.get("/{tournament_id}", response_model=TournamentResponse)
def get_tournament_info(tournament_id: int, db: Session = Depends(get_db)):
    return tournament_response(get_tournament(tournament_id, db))


@router.post("/{tournament_id}/teams", response_model=TeamResponse)
def register_team(tournament_id: int, request: TeamCreate, db: Session = Depends(get_db)):
    """Register a team. Only approved teams are scheduled."""
    tournament = get_tournament(tournament_id, db)
    team = TournamentTeam(
        tournament_id=tournament.id,
        team_name=request.team_name,
        group=request.group,
        registration_status=RegistrationStatus(request.registration_status.value),
    )
    db.add(team)
    db.commit()
    db.refresh(team)
    return team_response(team)


@router.get("/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(tournament_id: int, db: Session = Depends(get_db)):
    tournament = get_tournament(tournament_id, db)
    return [team_response(t) for t in tournament.teams]


@router.get("/{tournament_id}/matches", response_model=List[MatchResponse])
def get_matches(tournament_id: int, status: str = None, db: Session = Depends(get_db)):
    """Get all matches for the tournament"""
    get_tournament(tournament_id, db)

    query = db.query(TournamentMatch).filter_by(tournament_id=tournament_id)
    if status:
        try:
            query = query.filter_by(status=TournamentMatchStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    return [match_response(m) for m in query.order_by(TournamentMatch.match_number).all()]


@router.post("/{tournament_id}/matches", response_model=MatchResponse)
def add_match(tournament_id: int, request: MatchCreate, db: Session = Depends(get_db)):
    """Add a single match by hand"""
    tournament = get_tournament(tournament_id, db)
    approved = {t.id: t for t in tournament.approved_teams}
    team1 = approved.get(request.team1_id)
    team2 = approved.get(request.team2_id)
    group = request.group if request.stage.value == "group" else None

    existing = db.query(TournamentMatch).filter_by(tournament_id=tournament.id).all()
    result = FixtureValidator.validate(
        team1, team2, request.stage.value, group, request.match_date, existing,
    )
    if not result["valid"]:
        raise HTTPException(status_code=400, detail=result["errors"][0])

    match = TournamentMatch(
        tournament_id=tournament.id,
        match_number=len(existing) + 1,
        team1_id=team1.id,
        team1_name=team1.team_name,
        team2_id=team2.id,
        team2_name=team2.team_name,
        stage=MatchStage(request.stage.value),
        group=group,
        round=request.round,
        match_date=request.match_date,
        venue=request.venue,
        balls_per_over=tournament.balls_per_over,
        status=TournamentMatchStatus.SCHEDULED,
    )
    db.add(match)
    db.commit()
    db.refresh(match)
    return match_response(match)


@router.put("/{tournament_id}/matches/{match_id}", response_model=MatchResponse)
def update_match(tournament_id: int, match_id: int, request: MatchUpdate, db: Session = Depends(get_db)):
    """Edit a scheduled match. Fields left out keep their current value."""
    tournament = get_tournament(tournament_id, db)
    match = db.query(TournamentMatch).filter_by(id=match_id, tournament_id=tournament.id).first()
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    if match.status != TournamentMatchStatus.SCHEDULED:
        raise HTTPException(status_code=400, detail="Only scheduled matches can be edited")

    changes = request.model_dump(exclude_unset=True)
    approved = {t.id: t for t in tournament.approved_teams}
    team1 = approved.get(changes.get("team1_id", match.team1_id))
    team2 = approved.get(changes.get("team2_id", match.team2_id))
    stage = changes["stage"].value if changes.get("stage") else match.stage.value
    group = changes.get("group", match.group) if stage == "group" else None
    match_date = changes.get("match_date", match.match_date)

    existing = db.query(TournamentMatch).filter_by(tournament_id=tournament.id).all()
    result = FixtureValidator.validate(team1, team2, stage, group, match_date, existing, editing_id=match.id)
    if not result["valid"]:
        raise HTTPException(status_code=400, detail=result["errors"][0])

    match.team1_id = team1.id
    match.team1_name = team1.team_name
    match.team2_id = team2.id
    match.team2_name = team2.team_name
    match.stage = MatchStage(stage)
    match.group = group
    match.match_date = match_date
    if "venue" in changes:
        match.venue = changes["venue"]
    if changes.get("round") is not None:
        match.round = changes["round"]
    db.commit()
    db.refresh(match)
    logger.info("Updated match %s in tournament %s", match.id, tournament.id)
    return match_response(match)


@router.post("/{tournament_id}/quick-generate")
def quick_generate_matches(tournament_id: int, db: Session = Depends(get_db)):
    """Generate undated fixtures for the tournament format"""
    tournament = get_tournament(tournament_id, db)
    existing = db.query(TournamentMatch).filter_by(tournament_id=tournament.id).count()

    try:
        drafts = quick_generate(
            tournament.id,
            tournament.format.value,
            team_entries(tournament),
            existing_count=existing,
            venue=tournament.venue,
        )
    except SchedulingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.add_all([draft_to_match(d, tournament.balls_per_over) for d in drafts])
    db.commit()

    return {
        "message": f"{len(drafts)} matches generated!",
        "total_matches": len(drafts),
    }
