"""
Ball Data Processor - derives scorecards from ball-by-ball records.

Every function here is pure: it takes a list of ball dicts and returns fresh
derived records. Scorecards, match reports and the live overlay all go through
these so the numbers agree everywhere.

Call normalize_balls() on raw API/database records first. The other functions
assume normalized input but never raise on incomplete records; deliveries
missing a batsman or bowler name are left out of that player's grouping.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

WIDE = "wide"
NO_BALL = "no_ball"
BYE = "bye"
LEG_BYE = "leg_bye"
PENALTY = "penalty"

RUN_OUT = "run_out"

# Extra types that add a penalty run and don't count as one of the over's balls
ILLEGAL_EXTRAS = (WIDE, NO_BALL)

# Extras that are never charged to the bowler
UNCHARGED_EXTRAS = (BYE, LEG_BYE, PENALTY)

_NAME_FIELDS = ("batsman", "non_striker", "bowler", "dismissed_batsman", "fielder", "batting_team")


@dataclass
class BattingLine:
    """A batter's line on the scorecard"""
    name: str
    order: int
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal: str = ""

    @property
    def strike_rate(self) -> float:
        if self.balls == 0:
            return 0.0
        return (self.runs / self.balls) * 100


@dataclass
class BowlingLine:
    """A bowler's figures for an innings"""
    name: str
    order: int
    legal_balls: int = 0
    runs: int = 0
    wickets: int = 0
    maidens: int = 0
    wides: int = 0
    no_balls: int = 0
    dots: int = 0
    overs: str = "0.0"
    economy: str = "0.00"


@dataclass
class FallOfWicket:
    wicket: int
    score: int
    batsman: str
    overs: str


@dataclass
class Extras:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0
    penalty: int = 0
    total: int = 0


@dataclass
class InningsTotals:
    runs: int = 0
    wickets: int = 0
    overs: str = "0.0"
    legal_balls: int = 0
    run_rate: str = "0.00"

    @property
    def score_display(self) -> str:
        return f"{self.runs}/{self.wickets} ({self.overs})"


@dataclass
class Partnership:
    """Runs added between two wickets"""
    wicket: int
    runs: int = 0
    balls: int = 0
    contributions: dict = field(default_factory=dict)  # batsman name -> runs off the bat
    is_unbroken: bool = True

    @property
    def batsmen(self) -> list[str]:
        return list(self.contributions.keys())

    @property
    def run_rate(self) -> str:
        if self.balls == 0:
            return "0.00"
        return f"{(self.runs / self.balls) * 6:.2f}"


@dataclass
class InningsSummary:
    batsmen: list[BattingLine]
    bowlers: list[BowlingLine]
    fall_of_wickets: list[FallOfWicket]
    extras: Extras
    totals: InningsTotals
    partnerships: list[Partnership]


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _clean_name(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _clean_type(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    return value or None


def format_overs(legal_balls: int, balls_per_over: int = 6) -> str:
    """12 legal balls at 6 per over -> "2.0" """
    return f"{legal_balls // balls_per_over}.{legal_balls % balls_per_over}"


def normalize_balls(raw) -> list[dict]:
    """
    Normalize raw ball records into flat dicts with consistent types.

    - Records nested under a "data" key are flattened (the outer id is kept)
    - innings/over/ball numbers, runs and extras become non-negative ints
    - a wide or no-ball recorded without extras carries its 1-run penalty
    - is_wicket is set whenever a wicket_type is present
    - is_legal_delivery is filled in when absent: legal unless wide or no-ball

    Safe to call repeatedly on its own output.
    """
    if not raw:
        return []

    normalized = []
    for ball in raw:
        if not isinstance(ball, Mapping):
            continue

        if isinstance(ball.get("data"), Mapping):
            record = dict(ball["data"])
            record["id"] = ball.get("id")
        else:
            record = dict(ball)

        record["innings"] = _as_int(record.get("innings"), 1)
        for key in ("over_number", "ball_number", "runs", "extras"):
            record[key] = max(0, _as_int(record.get(key)))

        for key in _NAME_FIELDS:
            record[key] = _clean_name(record.get(key))

        record["extra_type"] = _clean_type(record.get("extra_type"))
        record["wicket_type"] = _clean_type(record.get("wicket_type"))

        if record["extra_type"] in ILLEGAL_EXTRAS and record["extras"] == 0:
            record["extras"] = 1

        record["is_wicket"] = bool(record.get("is_wicket") or record["wicket_type"])
        record["is_four"] = bool(record.get("is_four"))
        record["is_six"] = bool(record.get("is_six"))

        if record.get("is_legal_delivery") is None:
            record["is_legal_delivery"] = record["extra_type"] not in ILLEGAL_EXTRAS
        else:
            record["is_legal_delivery"] = bool(record["is_legal_delivery"])

        zone = _as_int(record.get("wagon_wheel_zone"), 0)
        record["wagon_wheel_zone"] = zone if 1 <= zone <= 8 else None

        normalized.append(record)

    return normalized


def sort_balls(balls: list[dict]) -> list[dict]:
    """Sort by over then ball number. Stable, so extras sharing a ball number keep their order."""
    return sorted(balls, key=lambda b: (b.get("over_number") or 0, b.get("ball_number") or 0))


def get_innings_balls(balls: list[dict], innings: int) -> list[dict]:
    if not balls:
        return []
    return sort_balls([b for b in balls if b.get("innings") == innings])


def is_legal_delivery(ball: dict) -> bool:
    """Byes, leg-byes and plain deliveries are legal; wides/no-balls only if the match profile marked them so"""
    extra_type = ball.get("extra_type")
    if not extra_type or extra_type in (BYE, LEG_BYE):
        return True
    return ball.get("is_legal_delivery") is True


def _off_the_bat(ball: dict) -> bool:
    return ball.get("extra_type") not in (WIDE, BYE, LEG_BYE)


def _is_four(ball: dict) -> bool:
    return _off_the_bat(ball) and (ball.get("is_four") or (ball.get("runs") or 0) == 4)


def _is_six(ball: dict) -> bool:
    return _off_the_bat(ball) and (ball.get("is_six") or (ball.get("runs") or 0) == 6)


def runs_conceded(ball: dict) -> int:
    """Runs charged to the bowler: runs off the bat plus wide/no-ball extras"""
    extra_type = ball.get("extra_type")
    charged = 0 if extra_type in UNCHARGED_EXTRAS else (ball.get("runs") or 0)
    if extra_type in ILLEGAL_EXTRAS:
        charged += ball.get("extras") or 0
    return charged


def format_dismissal(ball: dict) -> str:
    """Scorecard dismissal text, e.g. "c Smith b Jones" """
    wicket_type = ball.get("wicket_type")
    if not wicket_type:
        return ""

    bowler = ball.get("bowler") or "?"
    fielder = ball.get("fielder")

    if wicket_type == "bowled":
        return f"b {bowler}"
    if wicket_type == "caught":
        return f"c {fielder or '?'} b {bowler}"
    if wicket_type == "caught_behind":
        return f"c †{fielder or 'wk'} b {bowler}"
    if wicket_type == "caught_and_bowled":
        return f"c & b {bowler}"
    if wicket_type == "lbw":
        return f"lbw b {bowler}"
    if wicket_type == "stumped":
        return f"st †{fielder or 'wk'} b {bowler}"
    if wicket_type == RUN_OUT:
        return f"run out ({fielder or '?'})"
    if wicket_type == "hit_wicket":
        return f"hit wicket b {bowler}"
    if wicket_type == "obstructing_field":
        return "obstructing the field"
    if wicket_type == "timed_out":
        return "timed out"
    if wicket_type == "retired_hurt":
        return "retired hurt"
    if wicket_type == "retired_out":
        return "retired out"
    return wicket_type.replace("_", " ")


def process_batting_stats(balls: list[dict]) -> list[BattingLine]:
    """
    Batting lines in order of first appearance.

    Balls faced exclude wides. A batsman dismissed without facing (run out at
    the non-striker's end) still gets a line.
    """
    if not balls:
        return []

    batsmen: dict[str, BattingLine] = {}

    def line_for(name: str) -> BattingLine:
        if name not in batsmen:
            batsmen[name] = BattingLine(name=name, order=len(batsmen) + 1)
        return batsmen[name]

    for ball in sort_balls(balls):
        name = ball.get("batsman")
        if name:
            line = line_for(name)
            if ball.get("extra_type") != WIDE:
                line.balls += 1
            line.runs += ball.get("runs") or 0
            if _is_four(ball):
                line.fours += 1
            if _is_six(ball):
                line.sixes += 1

        if ball.get("is_wicket"):
            dismissed = ball.get("dismissed_batsman") or name
            if dismissed:
                line = line_for(dismissed)
                line.is_out = True
                line.dismissal = format_dismissal(ball)

    return sorted(batsmen.values(), key=lambda b: b.order)


def top_scorers(batting: list[BattingLine]) -> list[str]:
    """Names on the highest score. Nobody is highlighted while the best is zero."""
    if not batting:
        return []
    best = max(b.runs for b in batting)
    if best <= 0:
        return []
    return [b.name for b in batting if b.runs == best]


def process_bowling_stats(balls: list[dict], balls_per_over: int = 6) -> list[BowlingLine]:
    """
    Bowling figures in order of first appearance.

    Byes, leg-byes and penalty runs are not charged to the bowler, and run-outs
    are not credited as wickets. A maiden is a complete over by one bowler that
    conceded nothing.
    """
    if not balls:
        return []

    bowlers: dict[str, BowlingLine] = {}
    over_groups: dict[tuple, list] = {}  # (bowler, over) -> [legal balls, runs conceded]

    for ball in sort_balls(balls):
        name = ball.get("bowler")
        if not name:
            continue

        if name not in bowlers:
            bowlers[name] = BowlingLine(name=name, order=len(bowlers) + 1)
        bowler = bowlers[name]
        over = over_groups.setdefault((name, ball.get("over_number")), [0, 0])

        if is_legal_delivery(ball):
            bowler.legal_balls += 1
            over[0] += 1

        conceded = runs_conceded(ball)
        bowler.runs += conceded
        over[1] += conceded

        extra_type = ball.get("extra_type")
        if extra_type == WIDE:
            bowler.wides += 1
        elif extra_type == NO_BALL:
            bowler.no_balls += 1

        if ball.get("is_wicket") and ball.get("wicket_type") != RUN_OUT:
            bowler.wickets += 1

        if not ball.get("runs") and not ball.get("extras") and not ball.get("is_wicket"):
            bowler.dots += 1

    for (name, _), (legal, conceded) in over_groups.items():
        if legal == balls_per_over and conceded == 0:
            bowlers[name].maidens += 1

    result = sorted(bowlers.values(), key=lambda b: b.order)
    for bowler in result:
        bowler.overs = format_overs(bowler.legal_balls, balls_per_over)
        if bowler.legal_balls > 0:
            bowler.economy = f"{(bowler.runs / bowler.legal_balls) * balls_per_over:.2f}"
    return result


def process_fall_of_wickets(balls: list[dict], balls_per_over: int = 6) -> list[FallOfWicket]:
    if not balls:
        return []

    fow = []
    total_runs = 0
    legal_balls = 0

    for ball in sort_balls(balls):
        total_runs += (ball.get("runs") or 0) + (ball.get("extras") or 0)
        if is_legal_delivery(ball):
            legal_balls += 1

        if ball.get("is_wicket"):
            fow.append(FallOfWicket(
                wicket=len(fow) + 1,
                score=total_runs,
                batsman=ball.get("dismissed_batsman") or ball.get("batsman") or "Unknown",
                overs=format_overs(legal_balls, balls_per_over),
            ))

    return fow


def calculate_extras(balls: list[dict]) -> Extras:
    """
    Extras by type. Only the extras field counts, never runs off the bat.
    The total includes extras recorded without a recognised type.
    """
    extras = Extras()
    for ball in balls or []:
        extra_runs = ball.get("extras") or 0
        extra_type = ball.get("extra_type")
        if extra_type == WIDE:
            extras.wides += extra_runs
        elif extra_type == NO_BALL:
            extras.no_balls += extra_runs
        elif extra_type == BYE:
            extras.byes += extra_runs
        elif extra_type == LEG_BYE:
            extras.leg_byes += extra_runs
        elif extra_type == PENALTY:
            extras.penalty += extra_runs
        extras.total += extra_runs
    return extras


def calculate_innings_totals(balls: list[dict], balls_per_over: int = 6) -> InningsTotals:
    if not balls:
        return InningsTotals()

    total_runs = sum((b.get("runs") or 0) + (b.get("extras") or 0) for b in balls)
    wickets = sum(1 for b in balls if b.get("is_wicket"))
    legal_balls = sum(1 for b in balls if is_legal_delivery(b))

    run_rate = "0.00"
    if legal_balls > 0:
        run_rate = f"{total_runs / (legal_balls / balls_per_over):.2f}"

    return InningsTotals(
        runs=total_runs,
        wickets=wickets,
        overs=format_overs(legal_balls, balls_per_over),
        legal_balls=legal_balls,
        run_rate=run_rate,
    )


def process_partnerships(balls: list[dict]) -> list[Partnership]:
    """Partnerships in wicket order; the last one stays unbroken if no wicket ended it."""
    partnerships = []
    current = None

    for ball in sort_balls(balls or []):
        if current is None:
            current = Partnership(wicket=len(partnerships) + 1)

        striker = ball.get("batsman")
        for name in (striker, ball.get("non_striker")):
            if name and name not in current.contributions:
                current.contributions[name] = 0

        current.runs += (ball.get("runs") or 0) + (ball.get("extras") or 0)
        if is_legal_delivery(ball):
            current.balls += 1
        if striker:
            current.contributions[striker] += ball.get("runs") or 0

        if ball.get("is_wicket"):
            current.is_unbroken = False
            partnerships.append(current)
            current = None

    if current is not None:
        partnerships.append(current)
    return partnerships


def wagon_wheel(balls: list[dict]) -> dict[int, int]:
    """Runs off the bat per shot zone (1-8)"""
    zones = {zone: 0 for zone in range(1, 9)}
    for ball in balls or []:
        zone = ball.get("wagon_wheel_zone")
        runs = ball.get("runs") or 0
        if zone in zones and runs > 0:
            zones[zone] += runs
    return zones


def current_over_number(balls: list[dict], balls_per_over: int = 6) -> int:
    legal_balls = sum(1 for b in balls or [] if is_legal_delivery(b))
    return legal_balls // balls_per_over + 1


def display_value(ball: dict) -> str:
    """Symbol for the over-by-over strip when the scorer didn't record one"""
    if ball.get("display_value"):
        return str(ball["display_value"])
    if ball.get("is_wicket"):
        return "W"

    runs = ball.get("runs") or 0
    extras = ball.get("extras") or 0
    extra_type = ball.get("extra_type")
    if extra_type == WIDE:
        return "Wd" if extras <= 1 else f"{extras}Wd"
    if extra_type == NO_BALL:
        return "Nb" if runs == 0 else f"Nb+{runs}"
    if extra_type == BYE:
        return f"{extras}B"
    if extra_type == LEG_BYE:
        return f"{extras}Lb"
    return str(runs)


def this_over(balls: list[dict]) -> list[str]:
    """Display strip for the most recent over"""
    ordered = sort_balls(balls or [])
    if not ordered:
        return []
    latest = ordered[-1].get("over_number")
    return [display_value(b) for b in ordered if b.get("over_number") == latest]


def get_batsman_stats(balls, batsman_name: str) -> BattingLine:
    """Live figures for one batsman, straight from raw records"""
    normalized = normalize_balls(balls)
    for line in process_batting_stats(normalized):
        if line.name == batsman_name:
            return line
    return BattingLine(name=batsman_name, order=0)


def get_bowler_stats(balls, bowler_name: str, balls_per_over: int = 6) -> BowlingLine:
    normalized = normalize_balls(balls)
    for line in process_bowling_stats(normalized, balls_per_over):
        if line.name == bowler_name:
            return line
    return BowlingLine(name=bowler_name, order=0)


def get_processed_innings_data(balls, balls_per_over: int = 6) -> Optional[InningsSummary]:
    """Everything a scorecard needs for one innings, or None if nothing has been bowled"""
    normalized = normalize_balls(balls)
    if not normalized:
        return None

    return InningsSummary(
        batsmen=process_batting_stats(normalized),
        bowlers=process_bowling_stats(normalized, balls_per_over),
        fall_of_wickets=process_fall_of_wickets(normalized, balls_per_over),
        extras=calculate_extras(normalized),
        totals=calculate_innings_totals(normalized, balls_per_over),
        partnerships=process_partnerships(normalized),
    )
