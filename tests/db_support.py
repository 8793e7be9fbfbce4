"""Общая база для тестов сервисов на временной SQLite-базе."""

import tempfile
import unittest
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db.base import Base
from app.models.bracket import BracketMatch, BracketMatchHistory, BracketParticipant
from app.models.tournament import Team, Tournament


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp_dir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmp_dir.name) / "bracket.db"
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        self.sessions = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def asyncTearDown(self) -> None:
        await self.engine.dispose()
        self._tmp_dir.cleanup()

    async def create_tournament_with_teams(self, stats: list[tuple[int, int, int, int, int]]) -> tuple[int, list[int]]:
        # stats: (wins, ties, losses, goals_for, goals_against) в порядке регистрации команд.
        async with self.sessions() as db:
            tournament = Tournament(name="Cup", number_of_rounds=1, status="in progress", progress="Not Started")
            db.add(tournament)
            await db.flush()
            teams = [
                Team(
                    tournament_id=tournament.id,
                    team_name=f"Team {idx}",
                    wins=wins,
                    ties=ties,
                    losses=losses,
                    goals_for=goals_for,
                    goals_against=goals_against,
                    pins=0,
                )
                for idx, (wins, ties, losses, goals_for, goals_against) in enumerate(stats, start=1)
            ]
            db.add_all(teams)
            await db.commit()
            return tournament.id, [team.id for team in teams]

    async def create_ranked_tournament(self, team_count: int) -> tuple[int, list[int]]:
        # Команда i набирает больше очков, чем команда i + 1, поэтому посев совпадает с порядком.
        return await self.create_tournament_with_teams(
            [(team_count - idx, 0, idx, 20 - idx, 10) for idx in range(team_count)]
        )

    async def participants_by_seed(self, tournament_id: int) -> dict[int, BracketParticipant]:
        async with self.sessions() as db:
            rows = (await db.scalars(select(BracketParticipant).where(BracketParticipant.tournament_id == tournament_id))).all()
            return {p.seed_position: p for p in rows}

    async def bracket_matches(self, tournament_id: int) -> list[BracketMatch]:
        async with self.sessions() as db:
            return list(
                (
                    await db.scalars(
                        select(BracketMatch).where(BracketMatch.tournament_id == tournament_id).order_by(BracketMatch.slot_id)
                    )
                ).all()
            )

    async def history(self, participant_id: int) -> list[BracketMatchHistory]:
        async with self.sessions() as db:
            return list(
                (
                    await db.scalars(
                        select(BracketMatchHistory)
                        .where(BracketMatchHistory.participant_id == participant_id)
                        .order_by(BracketMatchHistory.round)
                    )
                ).all()
            )

    async def get_tournament(self, tournament_id: int) -> Tournament:
        async with self.sessions() as db:
            return await db.scalar(select(Tournament).where(Tournament.id == tournament_id))

    async def get_team(self, team_id: int) -> Team:
        async with self.sessions() as db:
            return await db.scalar(select(Team).where(Team.id == team_id))
