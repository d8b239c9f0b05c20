"""
Tests for fixture generation, slot assignment and conflict detection.
"""
import random
import sys
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from pavilion.database import Base
from pavilion.models.tournament import (
    Tournament, TournamentTeam, TournamentMatch,
    TournamentFormat, RegistrationStatus, MatchStage, TournamentMatchStatus,
)
from pavilion.engine.fixture_scheduler import (
    FixtureScheduler, FixtureDraft, SchedulingConfig, SchedulingError, SchedulerStep,
    TeamEntry, Venue, TimeSlot,
    generate_match_pairings, expected_match_count, get_available_slots,
    assign_slots, detect_conflicts, quick_generate, draft_to_match,
)

# 17 Oct 2026 is a Saturday
SAT = date(2026, 10, 17)
SUN = date(2026, 10, 18)
NEXT_SAT = date(2026, 10, 24)
NEXT_SUN = date(2026, 10, 25)


def make_teams(*names, group=None):
    return [TeamEntry(id=i, team_name=name, group=group) for i, name in enumerate(names, 1)]


def one_slot_venue(name="Oval"):
    return Venue(name=name, slots=[TimeSlot("09:00", "12:00", "Morning", "1")], id="1")


def make_config(start=SAT, end=NEXT_SUN, venues=None, **kwargs):
    return SchedulingConfig(start_date=start, end_date=end, venues=venues or [one_slot_venue()], **kwargs)


def draft(team1, team2, day, start_time="09:00", venue="Oval"):
    return FixtureDraft(
        team1_id=0, team1_name=team1, team2_id=0, team2_name=team2, stage="league",
        date=day, venue=venue, start_time=start_time, match_date=f"{day}T{start_time}",
    )


@pytest.fixture
def test_db():
    """Create an in-memory test database."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = Session(engine)
    yield session
    session.close()


@pytest.fixture
def tournament(test_db):
    """A league tournament with three approved teams."""
    tournament = Tournament(name="Sunday League", format=TournamentFormat.LEAGUE, venue="Oval", balls_per_over=6)
    test_db.add(tournament)
    test_db.flush()
    for name in ("Ashes", "Bails", "Covers"):
        test_db.add(TournamentTeam(
            tournament_id=tournament.id,
            team_name=name,
            registration_status=RegistrationStatus.APPROVED,
        ))
    test_db.commit()
    return tournament


class TestMatchPairings:
    """Pairings per tournament format."""

    def test_league_pairs_every_team_once(self):
        teams = make_teams("A", "B", "C", "D", "E")
        pairings = generate_match_pairings("league", teams)

        assert len(pairings) == 10
        pairs = {frozenset((p.team1_id, p.team2_id)) for p in pairings}
        assert len(pairs) == 10
        assert all(p.team1_id != p.team2_id for p in pairings)
        assert all(p.stage == "league" and p.round == 1 for p in pairings)

    def test_super_league_plays_home_and_away(self):
        teams = make_teams("A", "B", "C", "D")
        pairings = generate_match_pairings("super_league", teams)

        assert len(pairings) == 12
        ordered = {(p.team1_id, p.team2_id) for p in pairings}
        assert len(ordered) == 12
        assert [p.round for p in pairings] == [1] * 6 + [2] * 6

    def test_group_knockout_pairs_within_groups(self):
        teams = (
            [TeamEntry(id=i, team_name=f"A{i}", group="A") for i in (1, 2, 3)]
            + [TeamEntry(id=i, team_name=f"B{i}", group="B") for i in (4, 5)]
            + [TeamEntry(id=6, team_name="Ungrouped")]
        )
        pairings = generate_match_pairings("group_knockout", teams)

        assert len(pairings) == 4
        assert all(p.stage == "group" for p in pairings)
        assert [p.group for p in pairings] == ["A", "A", "A", "B"]
        assert all(6 not in (p.team1_id, p.team2_id) for p in pairings)

    def test_knockout_drops_odd_team(self):
        teams = make_teams("A", "B", "C", "D", "E")
        pairings = generate_match_pairings("knockout", teams, random.Random(7))

        assert len(pairings) == 2
        assert all(p.stage == "quarterfinal" for p in pairings)
        assert [p.bracket_position for p in pairings] == [1, 2]
        playing = [t for p in pairings for t in (p.team1_id, p.team2_id)]
        assert len(set(playing)) == 4

    @pytest.mark.parametrize("count,stage,matches", [
        (2, "semifinal", 1),
        (4, "semifinal", 2),
        (8, "quarterfinal", 4),
        (9, "round1", 4),
    ])
    def test_knockout_stage_by_size(self, count, stage, matches):
        teams = make_teams(*[f"T{i}" for i in range(count)])
        pairings = generate_match_pairings("knockout", teams, random.Random(1))
        assert len(pairings) == matches
        assert {p.stage for p in pairings} == {stage}

    def test_knockout_draw_is_reproducible_with_seed(self):
        teams = make_teams(*[f"T{i}" for i in range(8)])
        first = generate_match_pairings("knockout", teams, random.Random(42))
        second = generate_match_pairings("knockout", teams, random.Random(42))
        assert first == second

    def test_only_approved_teams(self):
        teams = make_teams("A", "B", "C")
        teams[2].registration_status = "pending"
        pairings = generate_match_pairings("league", teams)
        assert [(p.team1_name, p.team2_name) for p in pairings] == [("A", "B")]

    def test_unknown_format(self):
        with pytest.raises(SchedulingError):
            generate_match_pairings("round_the_houses", make_teams("A", "B"))

    @pytest.mark.parametrize("fmt", ["league", "super_league", "knockout"])
    def test_expected_count_matches_generated(self, fmt):
        teams = make_teams("A", "B", "C", "D", "E", "F", "G")
        assert expected_match_count(fmt, teams) == len(generate_match_pairings(fmt, teams))


class TestSlots:
    """Slot enumeration and assignment."""

    def test_slots_ordered_by_date_venue_then_time(self):
        venues = [
            Venue(name="Oval", slots=[TimeSlot("09:00", "12:00", id="1"), TimeSlot("13:00", "16:00", id="2")], id="1"),
            Venue(name="Park", slots=[TimeSlot("10:00", "13:00", id="1")], id="2"),
        ]
        slots = get_available_slots(make_config(venues=venues))

        assert len(slots) == 12
        assert [(s.date, s.venue, s.start_time) for s in slots[:4]] == [
            ("2026-10-17", "Oval", "09:00"),
            ("2026-10-17", "Oval", "13:00"),
            ("2026-10-17", "Park", "10:00"),
            ("2026-10-18", "Oval", "09:00"),
        ]

    def test_weekdays_only(self):
        # Monday to Friday, Sunday=0 numbering
        slots = get_available_slots(make_config(available_days=[1, 2, 3, 4, 5]))
        assert [s.date for s in slots] == [
            "2026-10-19", "2026-10-20", "2026-10-21", "2026-10-22", "2026-10-23",
        ]

    def test_no_days_selected(self):
        assert get_available_slots(make_config(available_days=[])) == []

    def test_assign_numbers_and_dates(self):
        pairings = generate_match_pairings("league", make_teams("A", "B", "C"))
        fixtures = assign_slots(pairings, get_available_slots(make_config()), tournament_id=9)

        assert [f.match_number for f in fixtures] == [1, 2, 3]
        assert [f.match_date for f in fixtures] == [
            "2026-10-17T09:00", "2026-10-18T09:00", "2026-10-24T09:00",
        ]
        assert all(f.tournament_id == 9 and f.status == "scheduled" for f in fixtures)

    def test_not_enough_slots(self):
        pairings = generate_match_pairings("league", make_teams("A", "B", "C", "D"))
        slots = get_available_slots(make_config(end=NEXT_SAT))
        assert len(slots) == 3
        with pytest.raises(SchedulingError, match="Not enough available slots"):
            assign_slots(pairings, slots)


class TestConflicts:
    """Full-list conflict scan."""

    def test_same_day_is_an_error(self):
        fixtures = [draft("A", "B", "2026-10-17"), draft("A", "C", "2026-10-17", "13:00")]
        conflicts = detect_conflicts(fixtures, make_config())

        same_day = [c for c in conflicts if c.type == "same_day"]
        assert len(same_day) == 1
        assert same_day[0].severity == "error"
        assert same_day[0].matches == (0, 1)
        assert "A has multiple matches" in same_day[0].message

    def test_rematch_on_same_day_flags_both_teams(self):
        fixtures = [draft("A", "B", "2026-10-17"), draft("B", "A", "2026-10-17", "13:00")]
        same_day = [c for c in detect_conflicts(fixtures, make_config()) if c.type == "same_day"]
        assert len(same_day) == 2

    def test_venue_clash_is_an_error(self):
        fixtures = [draft("A", "B", "2026-10-17"), draft("C", "D", "2026-10-17")]
        conflicts = detect_conflicts(fixtures, make_config())

        assert [(c.type, c.severity, c.matches) for c in conflicts] == [("venue_clash", "error", (0, 1))]

    def test_different_venue_same_time_is_fine(self):
        fixtures = [draft("A", "B", "2026-10-17", venue="Oval"), draft("C", "D", "2026-10-17", venue="Park")]
        assert detect_conflicts(fixtures, make_config()) == []

    def test_consecutive_days_is_a_warning(self):
        fixtures = [draft("A", "B", "2026-10-17"), draft("A", "C", "2026-10-18")]
        conflicts = detect_conflicts(fixtures, make_config())

        assert [(c.type, c.severity, c.matches) for c in conflicts] == [("consecutive", "warning", (0, 1))]

    def test_consecutive_check_can_be_switched_off(self):
        fixtures = [draft("A", "B", "2026-10-17"), draft("A", "C", "2026-10-18")]
        assert detect_conflicts(fixtures, make_config(avoid_consecutive_days=False)) == []

    def test_consecutive_reports_positions_in_fixture_list(self):
        fixtures = [draft("A", "B", "2026-10-18"), draft("C", "D", "2026-10-24"), draft("A", "C", "2026-10-17")]
        consecutive = [c for c in detect_conflicts(fixtures, make_config()) if c.type == "consecutive"]
        assert [c.matches for c in consecutive] == [(2, 0)]

    def test_min_days_between_matches(self):
        config = make_config(min_days_between_matches=3)
        close = [draft("A", "B", "2026-10-17"), draft("A", "C", "2026-10-20")]
        apart = [draft("A", "B", "2026-10-17"), draft("A", "C", "2026-10-21")]
        assert len(detect_conflicts(close, config)) == 1
        assert detect_conflicts(apart, config) == []

    def test_undated_fixtures_are_ignored(self):
        fixtures = [
            FixtureDraft(team1_id=1, team1_name="A", team2_id=2, team2_name="B", stage="league"),
            FixtureDraft(team1_id=1, team1_name="A", team2_id=3, team2_name="C", stage="league"),
        ]
        assert detect_conflicts(fixtures, make_config()) == []


class TestFixtureScheduler:
    """Scheduling session: config -> preview -> committed."""

    @pytest.fixture
    def scheduler(self):
        return FixtureScheduler(
            tournament_id=1,
            tournament_format="league",
            teams=make_teams("A", "B", "C"),
            config=make_config(),
        )

    def test_generate_moves_to_preview(self, scheduler):
        fixtures = scheduler.handle_generate()

        assert scheduler.step == SchedulerStep.PREVIEW
        assert len(fixtures) == 3 == scheduler.total_matches
        assert scheduler.errors == []
        assert [c.matches for c in scheduler.warnings] == [(0, 1)]
        assert scheduler.can_confirm

    def test_rejected_generate_leaves_no_fixtures(self):
        scheduler = FixtureScheduler(
            tournament_id=1,
            tournament_format="league",
            teams=make_teams("A", "B", "C", "D"),
            config=make_config(end=SUN),
        )
        with pytest.raises(SchedulingError):
            scheduler.handle_generate()

        assert scheduler.fixtures == []
        assert scheduler.step == SchedulerStep.CONFIG

    def test_needs_two_teams(self):
        scheduler = FixtureScheduler(1, "league", make_teams("A"), make_config())
        with pytest.raises(SchedulingError, match="at least 2 teams"):
            scheduler.handle_generate()

    def test_cannot_generate_twice_without_reset(self, scheduler):
        scheduler.handle_generate()
        with pytest.raises(SchedulingError):
            scheduler.handle_generate()

        scheduler.back_to_config()
        assert scheduler.fixtures == [] and scheduler.conflicts == []
        assert len(scheduler.handle_generate()) == 3

    def test_back_to_config_only_from_preview(self, scheduler):
        with pytest.raises(SchedulingError):
            scheduler.back_to_config()

    def test_update_creates_and_clears_conflict(self, scheduler):
        scheduler.handle_generate()

        scheduler.update_fixture(1, "date", "2026-10-17")
        assert scheduler.fixtures[1].match_date == "2026-10-17T09:00"
        assert {c.type for c in scheduler.errors} == {"same_day", "venue_clash"}
        assert not scheduler.can_confirm

        scheduler.update_fixture(1, "date", "2026-10-25")
        assert scheduler.errors == []
        assert scheduler.can_confirm

    def test_update_start_time(self, scheduler):
        scheduler.handle_generate()
        scheduler.update_fixture(0, "start_time", "14:00")
        assert scheduler.fixtures[0].match_date == "2026-10-17T14:00"

    def test_update_rejects_bad_input(self, scheduler):
        scheduler.handle_generate()
        with pytest.raises(SchedulingError):
            scheduler.update_fixture(0, "team1_name", "Z")
        with pytest.raises(SchedulingError):
            scheduler.update_fixture(5, "venue", "Park")
        with pytest.raises(SchedulingError):
            scheduler.update_fixture(0, "date", "next saturday")

    @pytest.mark.parametrize("field_name,value", [
        ("start_time", "banana"),
        ("start_time", "25:00"),
        ("start_time", "9:00"),
        ("end_time", "12:60"),
        ("venue", "  "),
    ])
    def test_update_rejects_bad_times_and_blank_venue(self, scheduler, field_name, value):
        scheduler.handle_generate()
        before = scheduler.fixtures[0]

        with pytest.raises(SchedulingError):
            scheduler.update_fixture(0, field_name, value)
        assert scheduler.fixtures[0] == before
        assert scheduler.fixtures[0].match_date == "2026-10-17T09:00"

    def test_update_end_time(self, scheduler):
        scheduler.handle_generate()
        fixture = scheduler.update_fixture(0, "end_time", "11:30")
        assert fixture.end_time == "11:30"
        assert fixture.match_date == "2026-10-17T09:00"

    def test_edited_date_is_stored_canonical(self, scheduler):
        scheduler.handle_generate()
        fixture = scheduler.update_fixture(1, "date", " 2026-10-17 ")
        assert fixture.date == "2026-10-17"
        assert fixture.match_date == "2026-10-17T09:00"
        assert {c.type for c in scheduler.errors} == {"same_day", "venue_clash"}

    @pytest.mark.skipif(sys.version_info < (3, 11), reason="compact ISO dates need Python 3.11")
    def test_compact_date_still_clashes(self):
        scheduler = FixtureScheduler(
            1, "league", make_teams("A", "B", "C"), make_config(avoid_consecutive_days=False),
        )
        scheduler.handle_generate()

        fixture = scheduler.update_fixture(1, "date", "20261017")
        assert fixture.date == "2026-10-17"
        assert fixture.match_date == "2026-10-17T09:00"
        assert {c.type for c in scheduler.errors} == {"same_day", "venue_clash"}
        assert not scheduler.can_confirm

    def test_update_outside_preview(self, scheduler):
        with pytest.raises(SchedulingError):
            scheduler.update_fixture(0, "venue", "Park")

    def test_swap_exchanges_slots_not_teams(self, scheduler):
        scheduler.handle_generate()
        scheduler.swap_fixtures(0, 2)

        first, third = scheduler.fixtures[0], scheduler.fixtures[2]
        assert (first.team1_name, first.team2_name) == ("A", "B")
        assert first.date == "2026-10-24"
        assert third.date == "2026-10-17"
        assert third.match_date == "2026-10-17T09:00"
        # B v C now on the 17th, A v C on the 18th
        assert [c.matches for c in scheduler.warnings] == [(2, 1)]

    def test_swap_moves_whole_time_slot(self):
        venue = Venue(name="Oval", slots=[TimeSlot("09:00", "12:00", id="1"), TimeSlot("13:00", "16:00", id="2")], id="1")
        scheduler = FixtureScheduler(1, "league", make_teams("A", "B", "C"), make_config(venues=[venue]))
        scheduler.handle_generate()

        scheduler.swap_fixtures(0, 1)

        first, second = scheduler.fixtures[0], scheduler.fixtures[1]
        assert (first.start_time, first.end_time) == ("13:00", "16:00")
        assert (second.start_time, second.end_time) == ("09:00", "12:00")
        assert first.match_date == "2026-10-17T13:00"

    def test_confirm_blocked_by_errors(self, scheduler, test_db):
        scheduler.handle_generate()
        scheduler.update_fixture(1, "date", "2026-10-17")

        with pytest.raises(SchedulingError, match="resolve"):
            scheduler.handle_confirm(test_db)
        assert test_db.query(TournamentMatch).count() == 0
        assert scheduler.step == SchedulerStep.PREVIEW

    def test_confirm_with_warnings_saves_matches(self, tournament, test_db):
        teams = [TeamEntry(t.id, t.team_name) for t in tournament.teams]
        scheduler = FixtureScheduler(tournament.id, "league", teams, make_config())
        scheduler.handle_generate()
        assert scheduler.warnings

        matches = scheduler.handle_confirm(test_db, balls_per_over=8)

        assert scheduler.step == SchedulerStep.COMMITTED
        saved = test_db.query(TournamentMatch).order_by(TournamentMatch.match_number).all()
        assert len(saved) == len(matches) == 3
        assert [m.match_number for m in saved] == [1, 2, 3]
        assert all(m.status == TournamentMatchStatus.SCHEDULED for m in saved)
        assert all(m.stage == MatchStage.LEAGUE for m in saved)
        assert all(m.balls_per_over == 8 for m in saved)
        assert saved[0].match_day == "2026-10-17"

        with pytest.raises(SchedulingError):
            scheduler.back_to_config()

    def test_confirm_before_generate(self, scheduler, test_db):
        with pytest.raises(SchedulingError):
            scheduler.handle_confirm(test_db)


class TestVenueEditing:

    @pytest.fixture
    def scheduler(self):
        return FixtureScheduler(1, "league", make_teams("A", "B"), make_config())

    def test_add_and_remove_venue(self, scheduler):
        venue = scheduler.add_venue("Park")
        assert venue.id == "2"
        assert len(venue.slots) == 3

        scheduler.remove_venue("1")
        assert [v.name for v in scheduler.config.venues] == ["Park"]

    def test_last_venue_stays(self, scheduler):
        with pytest.raises(SchedulingError):
            scheduler.remove_venue("1")

    def test_time_slots(self, scheduler):
        slot = scheduler.add_time_slot("1", "15:00", "18:00", "Twilight")
        assert slot.id == "2"
        scheduler.remove_time_slot("1", "1")
        assert [s.label for s in scheduler.config.venues[0].slots] == ["Twilight"]

        with pytest.raises(SchedulingError):
            scheduler.add_time_slot("99")

    def test_toggle_day(self, scheduler):
        assert scheduler.toggle_day(3) == [0, 3, 6]
        assert scheduler.toggle_day(0) == [3, 6]
        with pytest.raises(SchedulingError):
            scheduler.toggle_day(7)


class TestQuickGenerate:

    def test_numbers_continue_after_existing(self):
        drafts = quick_generate(5, "league", make_teams("A", "B", "C"), existing_count=4, venue="Oval")
        assert [d.match_number for d in drafts] == [5, 6, 7]
        assert all(d.match_date is None and d.venue == "Oval" and d.tournament_id == 5 for d in drafts)

    def test_needs_two_approved_teams(self):
        teams = make_teams("A", "B")
        teams[1].registration_status = "rejected"
        with pytest.raises(SchedulingError):
            quick_generate(1, "league", teams)

    def test_draft_to_match(self):
        match = draft_to_match(quick_generate(1, "knockout", make_teams("A", "B"))[0], balls_per_over=5)
        assert match.stage == MatchStage.SEMIFINAL
        assert match.status == TournamentMatchStatus.SCHEDULED
        assert match.balls_per_over == 5
        assert match.match_day is None
