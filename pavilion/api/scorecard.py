"""
Scoring API endpoints - ball recording, scorecards and the live overlay feed
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from pavilion.database import get_db
from pavilion.models.tournament import TournamentMatch, TournamentMatchStatus
from pavilion.models.ball import BallByBall
from pavilion.engine import ball_processor as bp
from pavilion.api.schemas import (
    BallCreate, BallResponse, ScorecardRequest,
    InningsScorecardResponse, LiveStateResponse,
    BattingLineResponse, BowlingLineResponse, FallOfWicketResponse,
    ExtrasResponse, InningsTotalsResponse, PartnershipResponse,
)

router = APIRouter(tags=["Scoring"])


def _get_match(match_id: int, db: Session) -> TournamentMatch:
    match = db.query(TournamentMatch).filter_by(id=match_id).first()
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def _match_balls(match_id: int, db: Session) -> list[dict]:
    rows = (
        db.query(BallByBall)
        .filter_by(match_id=match_id)
        .order_by(BallByBall.id)
        .all()
    )
    return bp.normalize_balls([r.to_dict() for r in rows])


def _scorecard(balls: list[dict], innings: int, balls_per_over: int) -> InningsScorecardResponse:
    inn_balls = bp.get_innings_balls(balls, innings)
    batting = bp.process_batting_stats(inn_balls)
    return InningsScorecardResponse(
        innings=innings,
        batsmen=[BattingLineResponse.model_validate(b) for b in batting],
        top_scorers=bp.top_scorers(batting),
        bowlers=[BowlingLineResponse.model_validate(b) for b in bp.process_bowling_stats(inn_balls, balls_per_over)],
        fall_of_wickets=[FallOfWicketResponse.model_validate(f) for f in bp.process_fall_of_wickets(inn_balls, balls_per_over)],
        extras=ExtrasResponse.model_validate(bp.calculate_extras(inn_balls)),
        totals=InningsTotalsResponse.model_validate(bp.calculate_innings_totals(inn_balls, balls_per_over)),
        partnerships=[PartnershipResponse.model_validate(p) for p in bp.process_partnerships(inn_balls)],
        wagon_wheel=bp.wagon_wheel(inn_balls),
    )


def _innings_numbers(balls: list[dict]) -> list[int]:
    return sorted({b["innings"] for b in balls}) or [1]


@router.post("/matches/{match_id}/balls", response_model=BallResponse)
def record_ball(match_id: int, request: BallCreate, db: Session = Depends(get_db)):
    """Append a delivery. Balls are never edited once recorded."""
    match = _get_match(match_id, db)
    if match.status in (TournamentMatchStatus.COMPLETED, TournamentMatchStatus.ABANDONED):
        raise HTTPException(status_code=400, detail="Match is no longer in progress")

    data = request.model_dump()
    if data["extra_type"] is not None:
        data["extra_type"] = data["extra_type"].value

    ball = BallByBall(match_id=match.id, **data)
    db.add(ball)
    if match.status == TournamentMatchStatus.SCHEDULED:
        match.status = TournamentMatchStatus.LIVE
    db.commit()
    db.refresh(ball)
    return BallResponse.model_validate(ball)


@router.get("/matches/{match_id}/balls", response_model=List[BallResponse])
def get_balls(match_id: int, innings: Optional[int] = None, db: Session = Depends(get_db)):
    _get_match(match_id, db)
    query = db.query(BallByBall).filter_by(match_id=match_id)
    if innings is not None:
        query = query.filter_by(innings=innings)
    rows = query.order_by(BallByBall.over_number, BallByBall.ball_number, BallByBall.id).all()
    return [BallResponse.model_validate(r) for r in rows]


@router.get("/matches/{match_id}/scorecard", response_model=List[InningsScorecardResponse])
def get_scorecard(match_id: int, innings: Optional[int] = None, db: Session = Depends(get_db)):
    """Full scorecard, one entry per innings"""
    match = _get_match(match_id, db)
    balls = _match_balls(match.id, db)
    numbers = [innings] if innings is not None else _innings_numbers(balls)
    return [_scorecard(balls, n, match.balls_per_over) for n in numbers]


@router.get("/matches/{match_id}/live", response_model=LiveStateResponse)
def get_live_state(match_id: int, db: Session = Depends(get_db)):
    """Current innings score, this over and the players at the crease"""
    match = _get_match(match_id, db)
    balls = _match_balls(match.id, db)
    bpo = match.balls_per_over

    innings1 = bp.get_innings_balls(balls, 1)
    innings2 = bp.get_innings_balls(balls, 2)
    current_innings = 2 if innings2 else 1
    current = innings2 if innings2 else innings1
    totals = bp.calculate_innings_totals(current, bpo)

    striker = non_striker = bowler = None
    if current:
        last = current[-1]
        batting = {b.name: b for b in bp.process_batting_stats(current)}
        bowling = {b.name: b for b in bp.process_bowling_stats(current, bpo)}
        if last.get("batsman") in batting:
            striker = BattingLineResponse.model_validate(batting[last["batsman"]])
        if last.get("non_striker") in batting:
            non_striker = BattingLineResponse.model_validate(batting[last["non_striker"]])
        if last.get("bowler") in bowling:
            bowler = BowlingLineResponse.model_validate(bowling[last["bowler"]])

    target = runs_needed = None
    if current_innings == 2:
        target = bp.calculate_innings_totals(innings1, bpo).runs + 1
        runs_needed = max(0, target - totals.runs)

    return LiveStateResponse(
        innings=current_innings,
        score=InningsTotalsResponse.model_validate(totals),
        current_over=bp.current_over_number(current, bpo),
        this_over=bp.this_over(current),
        striker=striker,
        non_striker=non_striker,
        bowler=bowler,
        target=target,
        runs_needed=runs_needed,
    )


@router.post("/scorecard", response_model=List[InningsScorecardResponse])
def compute_scorecard(request: ScorecardRequest):
    """Scorecard for balls supplied in the request body; nothing is stored"""
    balls = bp.normalize_balls(request.balls)
    numbers = [request.innings] if request.innings is not None else _innings_numbers(balls)
    return [_scorecard(balls, n, request.balls_per_over) for n in numbers]
