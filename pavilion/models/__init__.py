from pavilion.models.tournament import (
    Tournament, TournamentTeam, TournamentMatch,
    TournamentFormat, RegistrationStatus, MatchStage, TournamentMatchStatus,
)
from pavilion.models.ball import BallByBall

__all__ = [
    "Tournament",
    "TournamentTeam",
    "TournamentMatch",
    "TournamentFormat",
    "RegistrationStatus",
    "MatchStage",
    "TournamentMatchStatus",
    "BallByBall",
]
