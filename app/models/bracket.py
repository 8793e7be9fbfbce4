from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.services.stages import MatchStatus, ParticipantStatus


class BracketParticipant(Base):
    __tablename__ = "bracket_participants"
    __table_args__ = (
        UniqueConstraint("tournament_id", "seed_position", name="uq_bracket_tournament_seed"),
        UniqueConstraint("tournament_id", "team_id", name="uq_bracket_tournament_team"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id", ondelete="CASCADE"), index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), index=True)
    team_name: Mapped[str] = mapped_column(String(120), nullable=False)
    seed_position: Mapped[int] = mapped_column(Integer)
    round: Mapped[int] = mapped_column(Integer, default=1)
    stage: Mapped[str] = mapped_column(String(20), index=True)
    status: Mapped[str] = mapped_column(String(20), default=ParticipantStatus.INCOMPLETE.value)
    is_eliminated: Mapped[bool] = mapped_column(Boolean, default=False)
    next_match_slot_id: Mapped[str | None] = mapped_column(String(10), nullable=True)
    score: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class BracketMatchHistory(Base):
    __tablename__ = "bracket_match_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("bracket_participants.id", ondelete="CASCADE"), index=True)
    round: Mapped[int] = mapped_column(Integer)
    stage: Mapped[str] = mapped_column(String(20))
    opponent_participant_id: Mapped[int | None] = mapped_column(
        ForeignKey("bracket_participants.id", ondelete="SET NULL"),
        nullable=True,
    )
    opponent_seed_position: Mapped[int] = mapped_column(Integer)
    seed_position: Mapped[int] = mapped_column(Integer)
    score: Mapped[int] = mapped_column(Integer, default=0)
    opponent_score: Mapped[int] = mapped_column(Integer, default=0)
    won: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class BracketMatch(Base):
    __tablename__ = "bracket_matches"
    __table_args__ = (UniqueConstraint("tournament_id", "slot_id", name="uq_bracket_match_slot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id", ondelete="CASCADE"), index=True)
    round: Mapped[int] = mapped_column(Integer)
    round_type: Mapped[str] = mapped_column(String(20), index=True)
    slot_id: Mapped[str] = mapped_column(String(10))
    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"))
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(20), default=MatchStatus.UNSCHEDULED.value)
    home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
