"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from enum import Enum


# Enums
class TournamentFormatEnum(str, Enum):
    LEAGUE = "league"
    SUPER_LEAGUE = "super_league"
    GROUP_KNOCKOUT = "group_knockout"
    KNOCKOUT = "knockout"


class RegistrationStatusEnum(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StageEnum(str, Enum):
    LEAGUE = "league"
    GROUP = "group"
    ROUND1 = "round1"
    QUARTERFINAL = "quarterfinal"
    SEMIFINAL = "semifinal"
    THIRD_PLACE = "third_place"
    FINAL = "final"
    BRACKET = "bracket"


class ExtraTypeEnum(str, Enum):
    WIDE = "wide"
    NO_BALL = "no_ball"
    BYE = "bye"
    LEG_BYE = "leg_bye"
    PENALTY = "penalty"


# Tournament Schemas
class TournamentCreate(BaseModel):
    name: str
    format: TournamentFormatEnum = TournamentFormatEnum.LEAGUE
    venue: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    balls_per_over: Optional[int] = Field(default=None, ge=1, le=10)  # Defaults to DEFAULT_BALLS_PER_OVER


class TournamentResponse(BaseModel):
    id: int
    name: str
    format: TournamentFormatEnum
    venue: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    balls_per_over: int

    class Config:
        from_attributes = True


class TeamCreate(BaseModel):
    team_name: str
    group: Optional[str] = None
    registration_status: RegistrationStatusEnum = RegistrationStatusEnum.PENDING


class TeamResponse(BaseModel):
    id: int
    team_name: str
    group: Optional[str] = None
    registration_status: RegistrationStatusEnum

    class Config:
        from_attributes = True


# Match Schemas
class MatchCreate(BaseModel):
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    match_date: Optional[str] = None
    venue: Optional[str] = None
    stage: StageEnum = StageEnum.GROUP
    group: Optional[str] = "A"
    round: int = 1


class MatchUpdate(BaseModel):
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    match_date: Optional[str] = None
    venue: Optional[str] = None
    stage: Optional[StageEnum] = None
    group: Optional[str] = None
    round: Optional[int] = None


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    match_number: int
    team1_id: int
    team1_name: str
    team2_id: int
    team2_name: str
    stage: StageEnum
    group: Optional[str] = None
    round: Optional[int] = None
    bracket_position: Optional[int] = None
    match_date: Optional[str] = None
    venue: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


# Scheduler Schemas
class TimeSlotSchema(BaseModel):
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    label: str = ""
    id: str = ""


class VenueSchema(BaseModel):
    name: str
    slots: list[TimeSlotSchema]
    id: str = ""


class SchedulingConfigRequest(BaseModel):
    start_date: Optional[date] = None  # Defaults to the tournament's dates
    end_date: Optional[date] = None
    venues: Optional[list[VenueSchema]] = None  # Defaults to one venue with the standard slots
    available_days: list[int] = Field(default_factory=lambda: [0, 6])
    min_days_between_matches: int = Field(default=1, ge=0)
    avoid_consecutive_days: bool = True
    matches_per_day: int = Field(default=2, ge=1)
    seed: Optional[int] = None  # Fixes the knockout draw


class FixtureDraftResponse(BaseModel):
    team1_id: int
    team1_name: str
    team2_id: int
    team2_name: str
    stage: str
    group: Optional[str] = None
    round: Optional[int] = None
    bracket_position: Optional[int] = None
    tournament_id: Optional[int] = None
    match_number: Optional[int] = None
    date: Optional[str] = None
    venue: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    match_date: Optional[str] = None
    status: str = "scheduled"

    class Config:
        from_attributes = True


class ConflictResponse(BaseModel):
    type: str
    message: str
    matches: tuple[int, int]
    severity: str

    class Config:
        from_attributes = True


class SchedulerStateResponse(BaseModel):
    step: str
    total_matches: int
    fixtures: list[FixtureDraftResponse]
    conflicts: list[ConflictResponse]
    can_confirm: bool


class FixtureUpdateRequest(BaseModel):
    field: str  # date, start_time, end_time, venue
    value: str


class SwapRequest(BaseModel):
    first: int
    second: int


# Ball Schemas
class BallCreate(BaseModel):
    innings: int = Field(default=1, ge=1, le=2)
    over_number: int = Field(ge=0)
    ball_number: int = Field(ge=0)
    batting_team: Optional[str] = None
    batsman: Optional[str] = None
    non_striker: Optional[str] = None
    bowler: Optional[str] = None
    runs: int = Field(default=0, ge=0)
    extras: int = Field(default=0, ge=0)
    extra_type: Optional[ExtraTypeEnum] = None
    is_legal_delivery: Optional[bool] = None
    is_four: bool = False
    is_six: bool = False
    is_wicket: bool = False
    wicket_type: Optional[str] = None
    dismissed_batsman: Optional[str] = None
    fielder: Optional[str] = None
    display_value: Optional[str] = None
    wagon_wheel_zone: Optional[int] = Field(default=None, ge=1, le=8)


class BallResponse(BallCreate):
    id: int

    class Config:
        from_attributes = True


class ScorecardRequest(BaseModel):
    balls: list[dict]
    innings: Optional[int] = None
    balls_per_over: int = Field(default=6, ge=1, le=10)


# Scorecard Schemas
class BattingLineResponse(BaseModel):
    name: str
    order: int
    runs: int
    balls: int
    fours: int
    sixes: int
    is_out: bool
    dismissal: str
    strike_rate: float

    class Config:
        from_attributes = True


class BowlingLineResponse(BaseModel):
    name: str
    order: int
    overs: str
    legal_balls: int
    maidens: int
    runs: int
    wickets: int
    wides: int
    no_balls: int
    dots: int
    economy: str

    class Config:
        from_attributes = True


class FallOfWicketResponse(BaseModel):
    wicket: int
    score: int
    batsman: str
    overs: str

    class Config:
        from_attributes = True


class ExtrasResponse(BaseModel):
    wides: int
    no_balls: int
    byes: int
    leg_byes: int
    penalty: int
    total: int

    class Config:
        from_attributes = True


class InningsTotalsResponse(BaseModel):
    runs: int
    wickets: int
    overs: str
    legal_balls: int
    run_rate: str

    class Config:
        from_attributes = True


class PartnershipResponse(BaseModel):
    wicket: int
    runs: int
    balls: int
    contributions: dict[str, int]
    is_unbroken: bool
    run_rate: str

    class Config:
        from_attributes = True


class InningsScorecardResponse(BaseModel):
    innings: int
    batsmen: list[BattingLineResponse]
    top_scorers: list[str]
    bowlers: list[BowlingLineResponse]
    fall_of_wickets: list[FallOfWicketResponse]
    extras: ExtrasResponse
    totals: InningsTotalsResponse
    partnerships: list[PartnershipResponse]
    wagon_wheel: dict[int, int]


class LiveStateResponse(BaseModel):
    innings: int
    score: InningsTotalsResponse
    current_over: int
    this_over: list[str]
    striker: Optional[BattingLineResponse] = None
    non_striker: Optional[BattingLineResponse] = None
    bowler: Optional[BowlingLineResponse] = None
    target: Optional[int] = None
    runs_needed: Optional[int] = None
