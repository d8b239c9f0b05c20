"""
Ball-by-ball delivery records. Append-only within a match.
"""
from typing import Optional
from sqlalchemy import String, Integer, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from pavilion.database import Base


class BallByBall(Base):
    __tablename__ = "ball_by_ball"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("tournament_matches.id", ondelete="CASCADE"), index=True)
    match: Mapped["TournamentMatch"] = relationship("TournamentMatch", back_populates="balls")

    innings: Mapped[int] = mapped_column(Integer, default=1)
    over_number: Mapped[int] = mapped_column(Integer)
    ball_number: Mapped[int] = mapped_column(Integer)  # 1-based within the over
    batting_team: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Players (names, as typed by the scorer)
    batsman: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    non_striker: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bowler: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Outcome
    runs: Mapped[int] = mapped_column(Integer, default=0)  # Off the bat
    extras: Mapped[int] = mapped_column(Integer, default=0)
    extra_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    is_legal_delivery: Mapped[Optional[bool]] = mapped_column(nullable=True)
    is_four: Mapped[bool] = mapped_column(default=False)
    is_six: Mapped[bool] = mapped_column(default=False)

    # Wicket
    is_wicket: Mapped[bool] = mapped_column(default=False)
    wicket_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    dismissed_batsman: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    fielder: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Display
    display_value: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    wagon_wheel_zone: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-8

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "innings": self.innings,
            "over_number": self.over_number,
            "ball_number": self.ball_number,
            "batting_team": self.batting_team,
            "batsman": self.batsman,
            "non_striker": self.non_striker,
            "bowler": self.bowler,
            "runs": self.runs,
            "extras": self.extras,
            "extra_type": self.extra_type,
            "is_legal_delivery": self.is_legal_delivery,
            "is_four": self.is_four,
            "is_six": self.is_six,
            "is_wicket": self.is_wicket,
            "wicket_type": self.wicket_type,
            "dismissed_batsman": self.dismissed_batsman,
            "fielder": self.fielder,
            "display_value": self.display_value,
            "wagon_wheel_zone": self.wagon_wheel_zone,
        }

    def __repr__(self):
        return f"<Ball {self.over_number}.{self.ball_number}: {self.runs} runs>"
