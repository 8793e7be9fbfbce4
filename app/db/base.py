"""Регистрирует ORM-модели в метаданных SQLAlchemy."""

from app.models.base import Base
from app.models.bracket import BracketMatch, BracketMatchHistory, BracketParticipant
from app.models.tournament import ScheduledMatch, Team, Tournament

__all__ = [
    "Base",
    "Tournament",
    "Team",
    "ScheduledMatch",
    "BracketParticipant",
    "BracketMatchHistory",
    "BracketMatch",
]
