"""
Tournament, team registration and scheduled match models
"""
from typing import Optional, List
from sqlalchemy import String, Integer, ForeignKey, Enum, DateTime, Date
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, date
import enum
from pavilion.database import Base


class TournamentFormat(enum.Enum):
    LEAGUE = "league"  # Single round-robin
    SUPER_LEAGUE = "super_league"  # Double round-robin, home and away
    GROUP_KNOCKOUT = "group_knockout"  # Round-robin inside each group
    KNOCKOUT = "knockout"


class RegistrationStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MatchStage(enum.Enum):
    LEAGUE = "league"
    GROUP = "group"
    ROUND1 = "round1"
    QUARTERFINAL = "quarterfinal"
    SEMIFINAL = "semifinal"
    THIRD_PLACE = "third_place"
    FINAL = "final"
    BRACKET = "bracket"


class TournamentMatchStatus(enum.Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Tournament(Base):
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(150))
    format: Mapped[TournamentFormat] = mapped_column(Enum(TournamentFormat), default=TournamentFormat.LEAGUE)
    venue: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    balls_per_over: Mapped[int] = mapped_column(Integer, default=6)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    teams: Mapped[List["TournamentTeam"]] = relationship(
        "TournamentTeam", back_populates="tournament", order_by="TournamentTeam.id"
    )
    matches: Mapped[List["TournamentMatch"]] = relationship(
        "TournamentMatch", back_populates="tournament", order_by="TournamentMatch.match_number"
    )

    @property
    def approved_teams(self) -> list["TournamentTeam"]:
        return [t for t in self.teams if t.registration_status == RegistrationStatus.APPROVED]

    def __repr__(self):
        return f"<Tournament '{self.name}' ({self.format.value})>"


class TournamentTeam(Base):
    __tablename__ = "tournament_teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id", ondelete="CASCADE"))
    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="teams")

    team_name: Mapped[str] = mapped_column(String(100))
    group: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # "A", "B", ...
    registration_status: Mapped[RegistrationStatus] = mapped_column(
        Enum(RegistrationStatus), default=RegistrationStatus.PENDING
    )

    def __repr__(self):
        return f"<TournamentTeam {self.team_name} ({self.registration_status.value})>"


class TournamentMatch(Base):
    """
    A match inside a tournament.
    Created one per confirmed scheduler fixture, or added manually.
    """
    __tablename__ = "tournament_matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id", ondelete="CASCADE"))
    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="matches")

    match_number: Mapped[int] = mapped_column(Integer)

    # Teams (names denormalised for display)
    team1_id: Mapped[int] = mapped_column(ForeignKey("tournament_teams.id"))
    team1_name: Mapped[str] = mapped_column(String(100))
    team2_id: Mapped[int] = mapped_column(ForeignKey("tournament_teams.id"))
    team2_name: Mapped[str] = mapped_column(String(100))

    # Stage
    stage: Mapped[MatchStage] = mapped_column(Enum(MatchStage), default=MatchStage.LEAGUE)
    group: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    round: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bracket_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Slot
    match_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # "YYYY-MM-DDTHH:MM"
    venue: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    balls_per_over: Mapped[int] = mapped_column(Integer, default=6)

    status: Mapped[TournamentMatchStatus] = mapped_column(
        Enum(TournamentMatchStatus), default=TournamentMatchStatus.SCHEDULED
    )

    # Ball by ball
    balls: Mapped[List["BallByBall"]] = relationship("BallByBall", back_populates="match")

    @property
    def match_day(self) -> Optional[str]:
        return self.match_date.split("T")[0] if self.match_date else None

    def __repr__(self):
        return f"<TournamentMatch #{self.match_number}: {self.team1_name} vs {self.team2_name}>"
