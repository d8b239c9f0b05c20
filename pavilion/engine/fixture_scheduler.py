"""
Fixture Scheduler - pairings, slot assignment and conflict detection
"""
import enum
import logging
import random
import re
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pavilion.models.tournament import TournamentMatch, MatchStage, TournamentMatchStatus

logger = logging.getLogger(__name__)

# 0 = Sunday ... 6 = Saturday
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

EDITABLE_FIELDS = ("date", "start_time", "end_time", "venue")


class SchedulingError(ValueError):
    """A scheduling action was rejected. Existing scheduler state is untouched."""


_TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):[0-5]\d")


def parse_date(value) -> str:
    """Canonical "YYYY-MM-DD" for an edited date"""
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise SchedulingError(f"Invalid date: {value}")


def parse_time(value) -> str:
    """A 24-hour "HH:MM" time, unchanged"""
    value = str(value).strip()
    if not _TIME_PATTERN.fullmatch(value):
        raise SchedulingError(f"Invalid time: {value} (expected HH:MM)")
    return value


class SchedulerStep(enum.Enum):
    CONFIG = "config"
    PREVIEW = "preview"
    COMMITTED = "committed"


TRANSITIONS = {
    SchedulerStep.CONFIG: {SchedulerStep.PREVIEW},
    SchedulerStep.PREVIEW: {SchedulerStep.CONFIG, SchedulerStep.COMMITTED},
    SchedulerStep.COMMITTED: set(),
}


@dataclass
class TeamEntry:
    """A team registered for the tournament"""
    id: int
    team_name: str
    group: Optional[str] = None
    registration_status: str = "approved"


@dataclass
class TimeSlot:
    start_time: str  # "HH:MM"
    end_time: str
    label: str = ""
    id: str = ""


@dataclass
class Venue:
    name: str
    slots: list[TimeSlot] = field(default_factory=list)
    id: str = ""


def default_time_slots() -> list[TimeSlot]:
    return [
        TimeSlot("09:00", "12:00", "Morning", "1"),
        TimeSlot("13:00", "16:00", "Afternoon", "2"),
        TimeSlot("17:00", "20:00", "Evening", "3"),
    ]


@dataclass
class SchedulingConfig:
    """Operator settings for a scheduling run"""
    start_date: date
    end_date: date
    venues: list[Venue] = field(default_factory=list)
    available_days: list[int] = field(default_factory=lambda: [0, 6])  # Weekends
    min_days_between_matches: int = 1
    avoid_consecutive_days: bool = True
    matches_per_day: int = 2  # Advisory only


@dataclass
class Slot:
    """One bookable date/venue/time combination"""
    date: str  # "YYYY-MM-DD"
    venue: str
    venue_id: str
    start_time: str
    end_time: str
    label: str = ""


@dataclass
class FixtureDraft:
    """A proposed match. Lives in the scheduler until confirmed."""
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
    match_date: Optional[str] = None  # "YYYY-MM-DDTHH:MM"
    status: str = "scheduled"

    @property
    def team_names(self) -> tuple[str, str]:
        return self.team1_name, self.team2_name


@dataclass
class Conflict:
    type: str  # same_day, consecutive, venue_clash
    message: str
    matches: tuple[int, int]
    severity: str  # error, warning


def _approved(teams: list[TeamEntry]) -> list[TeamEntry]:
    return [t for t in teams if t.registration_status == "approved"]


def _round_robin(teams: list[TeamEntry], stage: str, group: Optional[str] = None) -> list[FixtureDraft]:
    pairings = []
    for i, team1 in enumerate(teams):
        for team2 in teams[i + 1:]:
            pairings.append(FixtureDraft(
                team1_id=team1.id,
                team1_name=team1.team_name,
                team2_id=team2.id,
                team2_name=team2.team_name,
                stage=stage,
                group=group,
                round=1,
            ))
    return pairings


def _groups(teams: list[TeamEntry]) -> list[str]:
    """Distinct group labels in order of first appearance"""
    seen = []
    for team in teams:
        if team.group and team.group not in seen:
            seen.append(team.group)
    return seen


def knockout_stage(team_count: int) -> str:
    if team_count <= 4:
        return "semifinal"
    if team_count <= 8:
        return "quarterfinal"
    return "round1"


def generate_match_pairings(
    tournament_format: str,
    teams: list[TeamEntry],
    rng: Optional[random.Random] = None,
) -> list[FixtureDraft]:
    """
    Raw match pairings for a tournament format, approved teams only.

    league:         every pair once
    super_league:   every pair twice, home and away reversed in round 2
    group_knockout: every pair once within each group
    knockout:       shuffled, paired off in order; an odd team out gets no match
    """
    approved = _approved(teams)
    pairings = []

    if tournament_format in ("league", "super_league"):
        pairings = _round_robin(approved, "league")
        if tournament_format == "super_league":
            return_legs = [
                replace(
                    p,
                    team1_id=p.team2_id, team1_name=p.team2_name,
                    team2_id=p.team1_id, team2_name=p.team1_name,
                    round=2,
                )
                for p in pairings
            ]
            pairings.extend(return_legs)

    elif tournament_format == "group_knockout":
        for group in _groups(approved):
            group_teams = [t for t in approved if t.group == group]
            pairings.extend(_round_robin(group_teams, "group", group))

    elif tournament_format == "knockout":
        shuffled = list(approved)
        (rng or random).shuffle(shuffled)
        stage = knockout_stage(len(shuffled))
        for i in range(0, len(shuffled) - 1, 2):
            team1, team2 = shuffled[i], shuffled[i + 1]
            pairings.append(FixtureDraft(
                team1_id=team1.id,
                team1_name=team1.team_name,
                team2_id=team2.id,
                team2_name=team2.team_name,
                stage=stage,
                bracket_position=i // 2 + 1,
            ))

    else:
        raise SchedulingError(f"Unknown tournament format: {tournament_format}")

    return pairings


def expected_match_count(tournament_format: str, teams: list[TeamEntry]) -> int:
    """Number of matches a format will produce, shown before generating"""
    n = len(_approved(teams))
    if tournament_format == "league":
        return n * (n - 1) // 2
    if tournament_format == "super_league":
        return n * (n - 1)
    if tournament_format == "knockout":
        return n // 2
    if tournament_format == "group_knockout":
        approved = _approved(teams)
        total = 0
        for group in _groups(approved):
            size = sum(1 for t in approved if t.group == group)
            total += size * (size - 1) // 2
        return total
    return 0


def get_available_slots(config: SchedulingConfig) -> list[Slot]:
    """Every (day, venue, time slot) in range, date first, then venue, then slot"""
    slots = []
    current = config.start_date
    while current <= config.end_date:
        # date.weekday() is Monday=0; available_days uses Sunday=0
        if (current.weekday() + 1) % 7 in config.available_days:
            for venue in config.venues:
                for time_slot in venue.slots:
                    slots.append(Slot(
                        date=current.isoformat(),
                        venue=venue.name,
                        venue_id=venue.id,
                        start_time=time_slot.start_time,
                        end_time=time_slot.end_time,
                        label=time_slot.label,
                    ))
        current += timedelta(days=1)
    return slots


def assign_slots(pairings: list[FixtureDraft], slots: list[Slot], tournament_id: Optional[int] = None) -> list[FixtureDraft]:
    """Give pairing[i] slot[i]. All or nothing."""
    if len(slots) < len(pairings):
        raise SchedulingError(
            f"Not enough available slots ({len(slots)}) for {len(pairings)} matches. "
            "Adjust dates or add more time slots."
        )

    fixtures = []
    for number, (pairing, slot) in enumerate(zip(pairings, slots), 1):
        fixtures.append(replace(
            pairing,
            tournament_id=tournament_id,
            match_number=number,
            date=slot.date,
            venue=slot.venue,
            start_time=slot.start_time,
            end_time=slot.end_time,
            match_date=f"{slot.date}T{slot.start_time}",
            status="scheduled",
        ))
    return fixtures


def _short_date(iso_date: str) -> str:
    return date.fromisoformat(iso_date).strftime("%d %b")


def detect_conflicts(fixtures: list[FixtureDraft], config: SchedulingConfig) -> list[Conflict]:
    """
    Full conflict scan over the fixture list. Indices in the result are
    positions in `fixtures`.

    same_day (error):      a team appears twice on one date
    consecutive (warning): a team's gap between matches is under
                           min_days_between_matches + 1 days
    venue_clash (error):   two fixtures share date, venue and start time
    """
    conflicts = []

    # Same team twice on a day
    by_date: dict[str, list[int]] = {}
    for idx, fixture in enumerate(fixtures):
        if fixture.date:
            by_date.setdefault(fixture.date, []).append(idx)

    for match_date, indices in by_date.items():
        first_seen: dict[str, int] = {}
        for idx in indices:
            for team in fixtures[idx].team_names:
                if team in first_seen:
                    conflicts.append(Conflict(
                        type="same_day",
                        message=f"{team} has multiple matches on {_short_date(match_date)}",
                        matches=(first_seen[team], idx),
                        severity="error",
                    ))
                else:
                    first_seen[team] = idx

    # Rest days between a team's matches
    if config.avoid_consecutive_days:
        dated = sorted(
            (idx for idx, f in enumerate(fixtures) if f.date),
            key=lambda idx: fixtures[idx].date,
        )
        last_match: dict[str, int] = {}
        for idx in dated:
            current = date.fromisoformat(fixtures[idx].date)
            for team in fixtures[idx].team_names:
                if team in last_match:
                    previous_idx = last_match[team]
                    previous = date.fromisoformat(fixtures[previous_idx].date)
                    if (current - previous).days < config.min_days_between_matches + 1:
                        conflicts.append(Conflict(
                            type="consecutive",
                            message=(
                                f"{team} has matches on consecutive days "
                                f"({previous.strftime('%d %b')} & {current.strftime('%d %b')})"
                            ),
                            matches=(previous_idx, idx),
                            severity="warning",
                        ))
                last_match[team] = idx

    # Venue double-booking
    for i, first in enumerate(fixtures):
        for j in range(i + 1, len(fixtures)):
            second = fixtures[j]
            if (
                first.date
                and first.date == second.date
                and first.venue == second.venue
                and first.start_time == second.start_time
            ):
                conflicts.append(Conflict(
                    type="venue_clash",
                    message=f"Venue {first.venue} double-booked on {_short_date(first.date)} at {first.start_time}",
                    matches=(i, j),
                    severity="error",
                ))

    return conflicts


def quick_generate(
    tournament_id: int,
    tournament_format: str,
    teams: list[TeamEntry],
    existing_count: int = 0,
    venue: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> list[FixtureDraft]:
    """Pairings with match numbers and the tournament venue but no dates"""
    if len(_approved(teams)) < 2:
        raise SchedulingError("Need at least 2 teams")

    pairings = generate_match_pairings(tournament_format, teams, rng)
    return [
        replace(p, tournament_id=tournament_id, match_number=existing_count + n, venue=venue)
        for n, p in enumerate(pairings, 1)
    ]


def draft_to_match(draft: FixtureDraft, balls_per_over: int = 6) -> TournamentMatch:
    return TournamentMatch(
        tournament_id=draft.tournament_id,
        match_number=draft.match_number,
        team1_id=draft.team1_id,
        team1_name=draft.team1_name,
        team2_id=draft.team2_id,
        team2_name=draft.team2_name,
        stage=MatchStage(draft.stage),
        group=draft.group,
        round=draft.round,
        bracket_position=draft.bracket_position,
        match_date=draft.match_date,
        venue=draft.venue,
        balls_per_over=balls_per_over,
        status=TournamentMatchStatus.SCHEDULED,
    )


class FixtureScheduler:
    """
    Interactive scheduling session for one tournament.

    config -> (generate) -> preview -> (confirm) -> committed
    preview can go back to config for another run. Every edit in preview
    re-runs conflict detection over the whole fixture list.
    """

    def __init__(
        self,
        tournament_id: int,
        tournament_format: str,
        teams: list[TeamEntry],
        config: SchedulingConfig,
        rng: Optional[random.Random] = None,
    ):
        self.tournament_id = tournament_id
        self.tournament_format = tournament_format
        self.teams = teams
        self.config = config
        self.rng = rng or random.Random()

        self.step = SchedulerStep.CONFIG
        self.fixtures: list[FixtureDraft] = []
        self.conflicts: list[Conflict] = []

    @property
    def approved_teams(self) -> list[TeamEntry]:
        return _approved(self.teams)

    @property
    def total_matches(self) -> int:
        return expected_match_count(self.tournament_format, self.teams)

    @property
    def errors(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.severity == "error"]

    @property
    def warnings(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.severity == "warning"]

    @property
    def can_confirm(self) -> bool:
        return self.step == SchedulerStep.PREVIEW and not self.errors

    def _move_to(self, step: SchedulerStep) -> None:
        if step not in TRANSITIONS[self.step]:
            raise SchedulingError(f"Cannot move from {self.step.value} to {step.value}")
        self.step = step

    def _require_preview(self) -> None:
        if self.step != SchedulerStep.PREVIEW:
            raise SchedulingError(f"No fixtures to edit in {self.step.value} step")

    def _recompute(self) -> None:
        self.conflicts = detect_conflicts(self.fixtures, self.config)

    def generate_match_pairings(self) -> list[FixtureDraft]:
        return generate_match_pairings(self.tournament_format, self.teams, self.rng)

    def get_available_slots(self) -> list[Slot]:
        return get_available_slots(self.config)

    def handle_generate(self) -> list[FixtureDraft]:
        """Build the fixture list and move to preview. Raises SchedulingError without touching state."""
        if self.step != SchedulerStep.CONFIG:
            raise SchedulingError(f"Cannot generate fixtures in {self.step.value} step")

        if len(self.approved_teams) < 2:
            raise SchedulingError("Need at least 2 teams to generate fixtures")

        pairings = self.generate_match_pairings()
        slots = self.get_available_slots()
        try:
            fixtures = assign_slots(pairings, slots, self.tournament_id)
        except SchedulingError:
            logger.info(
                "Tournament %s: %d matches rejected, only %d slots",
                self.tournament_id, len(pairings), len(slots),
            )
            raise

        self.fixtures = fixtures
        self._recompute()
        self._move_to(SchedulerStep.PREVIEW)

        logger.info(
            "Tournament %s: generated %d fixtures from %d slots (%d errors, %d warnings)",
            self.tournament_id, len(fixtures), len(slots), len(self.errors), len(self.warnings),
        )
        return fixtures

    def update_fixture(self, index: int, field_name: str, value: str) -> FixtureDraft:
        self._require_preview()
        if field_name not in EDITABLE_FIELDS:
            raise SchedulingError(f"Field '{field_name}' cannot be edited")
        if not 0 <= index < len(self.fixtures):
            raise SchedulingError(f"No fixture at index {index}")

        if field_name == "date":
            value = parse_date(value)
        elif field_name in ("start_time", "end_time"):
            value = parse_time(value)
        elif not value or not str(value).strip():
            raise SchedulingError("Venue cannot be blank")

        fixture = replace(self.fixtures[index], **{field_name: value})
        if field_name in ("date", "start_time"):
            fixture.match_date = f"{fixture.date}T{fixture.start_time}"
        self.fixtures[index] = fixture
        self._recompute()
        return fixture

    def swap_fixtures(self, first: int, second: int) -> None:
        """Swap date, time slot and venue between two fixtures. Teams stay put."""
        self._require_preview()
        for index in (first, second):
            if not 0 <= index < len(self.fixtures):
                raise SchedulingError(f"No fixture at index {index}")

        a, b = self.fixtures[first], self.fixtures[second]
        self.fixtures[first] = replace(
            a, date=b.date, start_time=b.start_time, end_time=b.end_time, venue=b.venue,
            match_date=f"{b.date}T{b.start_time}",
        )
        self.fixtures[second] = replace(
            b, date=a.date, start_time=a.start_time, end_time=a.end_time, venue=a.venue,
            match_date=f"{a.date}T{a.start_time}",
        )
        self._recompute()

    def back_to_config(self) -> None:
        self._move_to(SchedulerStep.CONFIG)
        self.fixtures = []
        self.conflicts = []

    def handle_confirm(self, session: Session, balls_per_over: int = 6) -> list[TournamentMatch]:
        """
        Persist every fixture as a TournamentMatch in one transaction.
        Blocked while any error-severity conflict remains; warnings don't block.
        """
        self._require_preview()
        if self.errors:
            raise SchedulingError(f"Please resolve {len(self.errors)} scheduling errors first")

        matches = [draft_to_match(f, balls_per_over) for f in self.fixtures]
        try:
            session.add_all(matches)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Tournament %s: fixture commit failed, nothing saved", self.tournament_id)
            raise

        self._move_to(SchedulerStep.COMMITTED)
        logger.info("Tournament %s: %d matches scheduled", self.tournament_id, len(matches))
        return matches

    # Venue and availability editing

    def add_venue(self, name: str = "New Venue") -> Venue:
        venue = Venue(name=name, slots=default_time_slots(), id=str(len(self.config.venues) + 1))
        while any(v.id == venue.id for v in self.config.venues):
            venue.id = str(int(venue.id) + 1)
        self.config.venues.append(venue)
        return venue

    def _venue(self, venue_id: str) -> Venue:
        for venue in self.config.venues:
            if venue.id == venue_id:
                return venue
        raise SchedulingError(f"Venue {venue_id} not found")

    def remove_venue(self, venue_id: str) -> None:
        if len(self.config.venues) <= 1:
            raise SchedulingError("Need at least one venue")
        self.config.venues.remove(self._venue(venue_id))

    def add_time_slot(self, venue_id: str, start_time: str = "10:00", end_time: str = "13:00", label: str = "New Slot") -> TimeSlot:
        venue = self._venue(venue_id)
        slot = TimeSlot(start_time, end_time, label, str(len(venue.slots) + 1))
        while any(s.id == slot.id for s in venue.slots):
            slot.id = str(int(slot.id) + 1)
        venue.slots.append(slot)
        return slot

    def remove_time_slot(self, venue_id: str, slot_id: str) -> None:
        venue = self._venue(venue_id)
        venue.slots = [s for s in venue.slots if s.id != slot_id]

    def toggle_day(self, day: int) -> list[int]:
        if not 0 <= day <= 6:
            raise SchedulingError(f"Invalid day of week: {day}")
        days = set(self.config.available_days)
        days.symmetric_difference_update({day})
        self.config.available_days = sorted(days)
        return self.config.available_days
