"""Хранилища, через которые ядро сетки читает и пишет состояние.

Все репозитории работают поверх одной AsyncSession и не коммитят сами:
транзакцией целиком управляет вызывающий сервис.
"""

from dataclasses import dataclass

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateMatchCreationError
from app.models.bracket import BracketMatch, BracketMatchHistory, BracketParticipant
from app.models.tournament import ScheduledMatch, Team, Tournament
from app.services.stages import MatchStatus, RoundType, Stage


@dataclass(frozen=True)
class StatsDelta:
    wins: int = 0
    ties: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    pins: int = 0


class TournamentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, tournament_id: int) -> Tournament | None:
        return await self.db.scalar(select(Tournament).where(Tournament.id == tournament_id))

    async def get_for_update(self, tournament_id: int) -> Tournament | None:
        # Блокируем строку турнира до конца транзакции, чтобы переходы одного турнира шли по очереди.
        return await self.db.scalar(select(Tournament).where(Tournament.id == tournament_id).with_for_update())

    async def mark_progress(self, tournament_id: int, progress: str) -> None:
        await self.db.execute(update(Tournament).where(Tournament.id == tournament_id).values(progress=progress))


class TeamRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_tournament(self, tournament_id: int) -> list[Team]:
        # Порядок по id нужен для детерминированного тай-брейка при посеве.
        return list((await self.db.scalars(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id))).all())

    async def increment_stats(self, team_id: int, delta: StatsDelta) -> None:
        await self.db.execute(
            update(Team)
            .where(Team.id == team_id)
            .values(
                wins=Team.wins + delta.wins,
                ties=Team.ties + delta.ties,
                losses=Team.losses + delta.losses,
                goals_for=Team.goals_for + delta.goals_for,
                goals_against=Team.goals_against + delta.goals_against,
                pins=Team.pins + delta.pins,
            )
        )


class BracketTeamRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_many(self, participants: list[BracketParticipant]) -> list[BracketParticipant]:
        self.db.add_all(participants)
        await self.db.flush()
        return participants

    async def find_by_tournament(self, tournament_id: int) -> list[BracketParticipant]:
        return list(
            (
                await self.db.scalars(
                    select(BracketParticipant)
                    .where(BracketParticipant.tournament_id == tournament_id)
                    .order_by(BracketParticipant.seed_position)
                )
            ).all()
        )

    async def find_active_by_team_ids(self, tournament_id: int, team_ids: list[int]) -> list[BracketParticipant]:
        return list(
            (
                await self.db.scalars(
                    select(BracketParticipant).where(
                        BracketParticipant.tournament_id == tournament_id,
                        BracketParticipant.team_id.in_(team_ids),
                        BracketParticipant.is_eliminated.is_(False),
                    )
                )
            ).all()
        )

    async def find_by_stage(self, tournament_id: int, stage: Stage) -> list[BracketParticipant]:
        return list(
            (
                await self.db.scalars(
                    select(BracketParticipant)
                    .where(BracketParticipant.tournament_id == tournament_id, BracketParticipant.stage == stage.value)
                    .order_by(BracketParticipant.seed_position)
                )
            ).all()
        )

    async def add_history(self, entry: BracketMatchHistory) -> None:
        self.db.add(entry)
        await self.db.flush()

    async def history_for(self, participant_ids: list[int]) -> list[BracketMatchHistory]:
        if not participant_ids:
            return []
        return list(
            (
                await self.db.scalars(
                    select(BracketMatchHistory)
                    .where(BracketMatchHistory.participant_id.in_(participant_ids))
                    .order_by(BracketMatchHistory.round, BracketMatchHistory.id)
                )
            ).all()
        )

    async def delete_for_tournament(self, tournament_id: int) -> int:
        participant_ids = select(BracketParticipant.id).where(BracketParticipant.tournament_id == tournament_id)
        await self.db.execute(delete(BracketMatchHistory).where(BracketMatchHistory.participant_id.in_(participant_ids)))
        result = await self.db.execute(delete(BracketParticipant).where(BracketParticipant.tournament_id == tournament_id))
        return result.rowcount or 0


class BracketMatchRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_round_type(self, tournament_id: int, round_type: RoundType) -> list[BracketMatch]:
        return list(
            (
                await self.db.scalars(
                    select(BracketMatch)
                    .where(BracketMatch.tournament_id == tournament_id, BracketMatch.round_type == round_type.value)
                    .order_by(BracketMatch.slot_id)
                )
            ).all()
        )

    async def create_matches(self, tournament_id: int, matches: list[BracketMatch]) -> list[BracketMatch]:
        round_types = {match.round_type for match in matches}
        for round_type in round_types:
            if await self.find_by_round_type(tournament_id, RoundType(round_type)):
                raise DuplicateMatchCreationError(f"Матчи {round_type} для турнира {tournament_id} уже созданы")
        self.db.add_all(matches)
        await self.db.flush()
        return matches

    async def find_pairing(self, tournament_id: int, round_number: int, team_ids: tuple[int, int]) -> BracketMatch | None:
        # Хозяева и гости могут прийти в любом порядке.
        first, second = team_ids
        return await self.db.scalar(
            select(BracketMatch).where(
                BracketMatch.tournament_id == tournament_id,
                BracketMatch.round == round_number,
                or_(
                    (BracketMatch.home_team_id == first) & (BracketMatch.away_team_id == second),
                    (BracketMatch.home_team_id == second) & (BracketMatch.away_team_id == first),
                ),
            )
        )

    async def claim(self, match_id: int) -> bool:
        """Условно закрывает матч. False, если его уже закрыла другая транзакция."""
        # Это первая запись перехода: на SQLite она берет блокировку записи,
        # поэтому второй такой же результат ждет коммита первого и видит completed.
        result = await self.db.execute(
            update(BracketMatch)
            .where(BracketMatch.id == match_id, BracketMatch.status != MatchStatus.COMPLETED.value)
            .values(status=MatchStatus.COMPLETED.value)
        )
        return result.rowcount == 1

    async def delete_for_tournament(self, tournament_id: int) -> int:
        result = await self.db.execute(delete(BracketMatch).where(BracketMatch.tournament_id == tournament_id))
        return result.rowcount or 0


class ScheduledMatchRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_pending_by_teams(self, home_team_id: int, away_team_id: int) -> ScheduledMatch | None:
        # Только назначенные игры сетки, в любой ориентации хозяев и гостей.
        return await self.db.scalar(
            select(ScheduledMatch)
            .where(
                ScheduledMatch.kind == "bracket",
                or_(
                    (ScheduledMatch.home_team_id == home_team_id) & (ScheduledMatch.away_team_id == away_team_id),
                    (ScheduledMatch.home_team_id == away_team_id) & (ScheduledMatch.away_team_id == home_team_id),
                ),
                ScheduledMatch.status == MatchStatus.SCHEDULED.value,
            )
            .order_by(ScheduledMatch.scheduled_at, ScheduledMatch.id)
            .limit(1)
        )

    async def mark_completed(self, match_id: int) -> None:
        await self.db.execute(
            update(ScheduledMatch).where(ScheduledMatch.id == match_id).values(status=MatchStatus.COMPLETED.value)
        )

    async def delete_bracket_entries(self, tournament_id: int) -> int:
        result = await self.db.execute(
            delete(ScheduledMatch).where(ScheduledMatch.tournament_id == tournament_id, ScheduledMatch.kind == "bracket")
        )
        return result.rowcount or 0
