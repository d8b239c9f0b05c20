#!/usr/bin/env python3
"""
CLI for Pavilion scorecards and fixture scheduling
"""
import json
import random
from datetime import date

import click
from rich.console import Console
from rich.table import Table

from pavilion.config import settings
from pavilion.database import init_db
from pavilion.engine import ball_processor as bp
from pavilion.engine.fixture_scheduler import (
    FixtureScheduler, SchedulingConfig, SchedulingError,
    TeamEntry, Venue, TimeSlot, DAYS_OF_WEEK, default_time_slots,
)

console = Console()


@click.group()
def cli():
    """Pavilion - Cricket Club Scoring & Scheduling"""
    pass


@cli.command()
def init():
    """Initialize the database"""
    console.print("[yellow]Initializing database...[/yellow]")
    init_db()
    console.print("[green]Database initialized successfully![/green]")


@cli.command()
@click.argument("balls_file", type=click.File("r"))
@click.option("--innings", default=None, type=int, help="Only show this innings")
@click.option("--balls-per-over", default=settings.DEFAULT_BALLS_PER_OVER, help="Legal deliveries per over")
def scorecard(balls_file, innings, balls_per_over: int):
    """Print a scorecard from a JSON list of ball records"""
    balls = bp.normalize_balls(json.load(balls_file))
    if not balls:
        console.print("[red]No deliveries found.[/red]")
        return

    numbers = [innings] if innings else sorted({b["innings"] for b in balls})
    for number in numbers:
        inn_balls = bp.get_innings_balls(balls, number)
        totals = bp.calculate_innings_totals(inn_balls, balls_per_over)
        batting = bp.process_batting_stats(inn_balls)
        best = bp.top_scorers(batting)

        table = Table(title=f"Innings {number}: {totals.score_display}  RR {totals.run_rate}")
        table.add_column("Batter", style="cyan")
        table.add_column("Dismissal")
        table.add_column("R", justify="right", style="green")
        table.add_column("B", justify="right")
        table.add_column("4s", justify="right")
        table.add_column("6s", justify="right")
        table.add_column("SR", justify="right")
        for line in batting:
            name = f"{line.name} *" if line.name in best else line.name
            table.add_row(
                name,
                line.dismissal if line.is_out else "not out",
                str(line.runs),
                str(line.balls),
                str(line.fours),
                str(line.sixes),
                f"{line.strike_rate:.2f}",
            )
        console.print(table)

        extras = bp.calculate_extras(inn_balls)
        console.print(
            f"Extras {extras.total} (w {extras.wides}, nb {extras.no_balls}, "
            f"b {extras.byes}, lb {extras.leg_byes}, p {extras.penalty})"
        )

        bowling = Table()
        bowling.add_column("Bowler", style="magenta")
        bowling.add_column("O", justify="right")
        bowling.add_column("M", justify="right")
        bowling.add_column("R", justify="right")
        bowling.add_column("W", justify="right", style="green")
        bowling.add_column("Econ", justify="right")
        for line in bp.process_bowling_stats(inn_balls, balls_per_over):
            bowling.add_row(
                line.name, line.overs, str(line.maidens), str(line.runs), str(line.wickets), line.economy,
            )
        console.print(bowling)

        fow = bp.process_fall_of_wickets(inn_balls, balls_per_over)
        if fow:
            console.print("[bold]Fall of wickets:[/bold] " + ", ".join(
                f"{f.score}-{f.wicket} ({f.batsman}, {f.overs})" for f in fow
            ))
        console.print()


def _load_scheduler(data: dict, seed) -> FixtureScheduler:
    teams = [
        TeamEntry(
            id=t.get("id", i),
            team_name=t["team_name"],
            group=t.get("group"),
            registration_status=t.get("registration_status", "approved"),
        )
        for i, t in enumerate(data.get("teams", []), 1)
    ]

    venues = [
        Venue(
            name=v["name"],
            id=str(v.get("id", i)),
            slots=[
                TimeSlot(s["start_time"], s["end_time"], s.get("label", ""), str(s.get("id", j)))
                for j, s in enumerate(v.get("slots", []), 1)
            ] or default_time_slots(),
        )
        for i, v in enumerate(data.get("venues", []), 1)
    ] or [Venue(name="Main Ground", slots=default_time_slots(), id="1")]

    config = SchedulingConfig(
        start_date=date.fromisoformat(data["start_date"]),
        end_date=date.fromisoformat(data["end_date"]),
        venues=venues,
        available_days=data.get("available_days", [0, 6]),
        min_days_between_matches=data.get("min_days_between_matches", 1),
        avoid_consecutive_days=data.get("avoid_consecutive_days", True),
    )
    return FixtureScheduler(
        tournament_id=data.get("tournament_id", 0),
        tournament_format=data.get("format", "league"),
        teams=teams,
        config=config,
        rng=random.Random(seed) if seed is not None else None,
    )


@cli.command()
@click.argument("config_file", type=click.File("r"))
@click.option("--seed", default=None, type=int, help="Seed for the knockout draw")
def schedule(config_file, seed):
    """Preview a fixture schedule from a JSON scheduling config"""
    scheduler = _load_scheduler(json.load(config_file), seed)
    days = ", ".join(DAYS_OF_WEEK[d] for d in scheduler.config.available_days)
    console.print(f"[yellow]Scheduling {scheduler.total_matches} matches on {days}...[/yellow]")

    try:
        fixtures = scheduler.handle_generate()
    except SchedulingError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    flagged = {}
    for conflict in scheduler.conflicts:
        for idx in conflict.matches:
            if flagged.get(idx) != "error":
                flagged[idx] = conflict.severity

    table = Table(title=f"Fixtures ({len(fixtures)} total)")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Venue")
    table.add_column("Match", style="cyan")
    table.add_column("Stage", style="magenta")
    for idx, f in enumerate(fixtures):
        style = {"error": "red", "warning": "yellow"}.get(flagged.get(idx))
        table.add_row(
            str(f.match_number),
            f.date,
            f"{f.start_time}-{f.end_time}",
            f.venue,
            f"{f.team1_name} vs {f.team2_name}",
            f.stage if not f.group else f"{f.stage} {f.group}",
            style=style,
        )
    console.print(table)

    if not scheduler.conflicts:
        console.print("[green]No conflicts.[/green]")
    for conflict in scheduler.conflicts:
        colour = "red" if conflict.severity == "error" else "yellow"
        console.print(f"[{colour}]{conflict.severity.upper()}[/{colour}] {conflict.message}")


if __name__ == "__main__":
    cli()
