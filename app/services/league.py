"""Регулярный сезон: создание турнира, календарь, результаты и автопосев сетки."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from itertools import combinations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CALLER_ERRORS, TournamentNotFoundError, TransitionFailedError
from app.models.bracket import BracketMatch, BracketParticipant
from app.models.tournament import ScheduledMatch, Team, Tournament
from app.services.repositories import (
    BracketMatchRepository,
    BracketTeamRepository,
    StatsDelta,
    TeamRepository,
    TournamentRepository,
)
from app.services.seeding import RankedTeam, build_bracket, rank_teams
from app.services.stages import MatchStatus, TournamentProgress

logger = logging.getLogger(__name__)

TOURNAMENT_STATUSES = {"in progress", "completed"}


@dataclass
class RoundStatus:
    round: int
    total: int
    completed: int

    @property
    def is_completed(self) -> bool:
        return self.total > 0 and self.total == self.completed


@dataclass
class LeagueResult:
    match: ScheduledMatch
    all_rounds_completed: bool
    bracket: list[BracketParticipant] = field(default_factory=list)


def build_round_robin(tournament_id: int, teams: list[Team], number_of_rounds: int) -> list[ScheduledMatch]:
    # Каждая пара встречается по разу в каждом круге.
    return [
        ScheduledMatch(
            tournament_id=tournament_id,
            round=round_number,
            kind="league",
            home_team_id=home.id,
            away_team_id=away.id,
            status=MatchStatus.UNSCHEDULED.value,
        )
        for home, away in combinations(teams, 2)
        for round_number in range(1, number_of_rounds + 1)
    ]


async def create_tournament(db: AsyncSession, name: str, number_of_rounds: int, team_names: list[str]) -> Tournament:
    """Создает турнир, команды с нулевой статистикой и календарь кругового турнира."""
    cleaned = [team_name.strip() for team_name in team_names if team_name and team_name.strip()]
    if len(cleaned) < 2:
        raise ValueError("Нужно минимум 2 команды")
    if len(cleaned) != len(set(cleaned)):
        raise ValueError("Названия команд должны быть уникальными")
    if number_of_rounds < 1:
        raise ValueError("Количество кругов должно быть не меньше 1")

    tournament = Tournament(
        name=name.strip(),
        number_of_rounds=number_of_rounds,
        status="in progress",
        progress=TournamentProgress.NOT_STARTED.value,
    )
    db.add(tournament)
    await db.flush()

    teams = [
        Team(
            tournament_id=tournament.id,
            team_name=team_name,
            wins=0,
            ties=0,
            losses=0,
            goals_for=0,
            goals_against=0,
            pins=0,
        )
        for team_name in cleaned
    ]
    db.add_all(teams)
    await db.flush()
    db.add_all(build_round_robin(tournament.id, teams, number_of_rounds))
    await db.commit()
    logger.info("Tournament %s created with %s teams and %s rounds", tournament.id, len(teams), number_of_rounds)
    return tournament


async def schedule_match(db: AsyncSession, match_id: int, scheduled_at: datetime) -> ScheduledMatch:
    match = await db.scalar(select(ScheduledMatch).where(ScheduledMatch.id == match_id))
    if not match:
        raise ValueError("Match not found")
    if match.status == MatchStatus.COMPLETED.value:
        raise ValueError("Матч уже сыгран")
    match.scheduled_at = scheduled_at
    match.status = MatchStatus.SCHEDULED.value
    await db.commit()
    return match


async def schedule_bracket_match(db: AsyncSession, bracket_match_id: int, scheduled_at: datetime) -> ScheduledMatch:
    """Ставит матч сетки в календарь. Запись календаря закроется вместе с результатом матча."""
    bracket_match = await db.scalar(select(BracketMatch).where(BracketMatch.id == bracket_match_id))
    if not bracket_match:
        raise ValueError("Bracket match not found")
    if bracket_match.status == MatchStatus.COMPLETED.value:
        raise ValueError("Матч сетки уже сыгран")

    entry = ScheduledMatch(
        tournament_id=bracket_match.tournament_id,
        round=bracket_match.round,
        kind="bracket",
        home_team_id=bracket_match.home_team_id,
        away_team_id=bracket_match.away_team_id,
        status=MatchStatus.SCHEDULED.value,
        scheduled_at=scheduled_at,
    )
    db.add(entry)
    bracket_match.status = MatchStatus.SCHEDULED.value
    await db.commit()
    return entry


async def list_tournaments(db: AsyncSession) -> list[Tournament]:
    # Новые турниры первыми.
    return list((await db.scalars(select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc()))).all())


async def get_standings(db: AsyncSession, tournament_id: int) -> list[RankedTeam]:
    """Таблица регулярного сезона в том же порядке, в каком идет посев."""
    tournament = await TournamentRepository(db).get(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")
    return rank_teams(await TeamRepository(db).find_by_tournament(tournament_id))


async def get_team(db: AsyncSession, team_id: int) -> Team:
    team = await db.scalar(select(Team).where(Team.id == team_id))
    if not team:
        raise ValueError("Team not found")
    return team


async def list_unscheduled_matches(db: AsyncSession) -> list[ScheduledMatch]:
    return list(
        (
            await db.scalars(
                select(ScheduledMatch)
                .where(ScheduledMatch.status == MatchStatus.UNSCHEDULED.value)
                .order_by(ScheduledMatch.round, ScheduledMatch.id)
            )
        ).all()
    )


async def get_round_statuses(db: AsyncSession, tournament_id: int) -> list[RoundStatus]:
    tournament = await TournamentRepository(db).get(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")

    rows = (
        await db.execute(
            select(ScheduledMatch.round, ScheduledMatch.status, func.count(ScheduledMatch.id))
            .where(ScheduledMatch.tournament_id == tournament_id, ScheduledMatch.kind == "league")
            .group_by(ScheduledMatch.round, ScheduledMatch.status)
        )
    ).all()
    statuses = {round_number: RoundStatus(round=round_number, total=0, completed=0) for round_number in range(1, tournament.number_of_rounds + 1)}
    for round_number, status, count in rows:
        entry = statuses.setdefault(round_number, RoundStatus(round=round_number, total=0, completed=0))
        entry.total += count
        if status == MatchStatus.COMPLETED.value:
            entry.completed += count
    return [statuses[key] for key in sorted(statuses)]


async def record_league_result(
    db: AsyncSession,
    match_id: int,
    home_score: int,
    away_score: int,
    home_pins: int = 0,
    away_pins: int = 0,
) -> LeagueResult:
    """Записывает результат игры регулярного сезона. Ничьи разрешены.

    Когда сыграны все круги, в той же транзакции формируется сетка плей-офф.
    """
    if min(home_score, away_score, home_pins, away_pins) < 0:
        raise ValueError("Счет и пины не могут быть отрицательными")

    match = await db.scalar(select(ScheduledMatch).where(ScheduledMatch.id == match_id))
    if not match or match.kind != "league":
        raise ValueError("Match not found")
    if match.status == MatchStatus.COMPLETED.value:
        raise ValueError("Результат этой игры уже внесен")

    try:
        tournament = await TournamentRepository(db).get_for_update(match.tournament_id)
        match.status = MatchStatus.COMPLETED.value
        match.home_score, match.away_score = home_score, away_score
        match.home_pins, match.away_pins = home_pins, away_pins

        is_tie = home_score == away_score
        teams = TeamRepository(db)
        await teams.increment_stats(
            match.home_team_id,
            StatsDelta(
                wins=int(home_score > away_score),
                ties=int(is_tie),
                losses=int(home_score < away_score),
                goals_for=home_score,
                goals_against=away_score,
                pins=home_pins,
            ),
        )
        await teams.increment_stats(
            match.away_team_id,
            StatsDelta(
                wins=int(away_score > home_score),
                ties=int(is_tie),
                losses=int(away_score < home_score),
                goals_for=away_score,
                goals_against=home_score,
                pins=away_pins,
            ),
        )
        await db.flush()

        statuses = await get_round_statuses(db, match.tournament_id)
        all_rounds_completed = all(status.is_completed for status in statuses)
        bracket: list[BracketParticipant] = []
        if all_rounds_completed:
            logger.info("Regular season of tournament %s completed, seeding bracket", match.tournament_id)
            bracket = await build_bracket(db, tournament)
        await db.commit()
    except CALLER_ERRORS:
        await db.rollback()
        raise
    except Exception as exc:
        await db.rollback()
        logger.warning("League result %s rolled back: %r", match_id, exc)
        raise TransitionFailedError(f"Не удалось записать результат игры {match_id}") from exc
    return LeagueResult(match=match, all_rounds_completed=all_rounds_completed, bracket=bracket)


async def set_tournament_status(db: AsyncSession, tournament_id: int, status: str) -> Tournament:
    if status not in TOURNAMENT_STATUSES:
        raise ValueError("Invalid status value")
    tournament = await TournamentRepository(db).get(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")
    tournament.status = status
    tournament.progress = TournamentProgress.COMPLETED.value if status == "completed" else TournamentProgress.IN_PROGRESS.value
    await db.commit()
    return tournament


async def delete_tournament(db: AsyncSession, tournament_id: int) -> dict[str, int]:
    """Удаляет турнир со всеми командами, календарем и сеткой."""
    tournament = await TournamentRepository(db).get(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")

    deleted_bracket_teams = await BracketTeamRepository(db).delete_for_tournament(tournament_id)
    deleted_matches = await BracketMatchRepository(db).delete_for_tournament(tournament_id)
    deleted_scheduled = (
        await db.execute(delete(ScheduledMatch).where(ScheduledMatch.tournament_id == tournament_id))
    ).rowcount or 0
    deleted_teams = (await db.execute(delete(Team).where(Team.tournament_id == tournament_id))).rowcount or 0
    await db.execute(delete(Tournament).where(Tournament.id == tournament_id))
    await db.commit()
    logger.info("Tournament %s deleted", tournament_id)
    return {
        "deleted_teams": deleted_teams,
        "deleted_bracket_teams": deleted_bracket_teams,
        "deleted_scheduled_matches": deleted_scheduled,
        "deleted_matches": deleted_matches,
    }


async def get_bracket(db: AsyncSession, tournament_id: int) -> list[dict]:
    """Участники сетки по порядку посева со статистикой команды и историей матчей."""
    tournament = await TournamentRepository(db).get(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")

    bracket_teams = BracketTeamRepository(db)
    participants = await bracket_teams.find_by_tournament(tournament_id)
    teams = {team.id: team for team in await TeamRepository(db).find_by_tournament(tournament_id)}
    history = await bracket_teams.history_for([p.id for p in participants])

    result = []
    for participant in participants:
        team = teams[participant.team_id]
        result.append(
            {
                "id": participant.id,
                "team_id": participant.team_id,
                "team_name": participant.team_name,
                "seed_position": participant.seed_position,
                "round": participant.round,
                "stage": participant.stage,
                "status": participant.status,
                "is_eliminated": participant.is_eliminated,
                "next_match_slot_id": participant.next_match_slot_id,
                "score": participant.score,
                "match_history": [
                    {
                        "round": entry.round,
                        "stage": entry.stage,
                        "opponent_participant_id": entry.opponent_participant_id,
                        "opponent_seed_position": entry.opponent_seed_position,
                        "seed_position": entry.seed_position,
                        "score": entry.score,
                        "opponent_score": entry.opponent_score,
                        "won": entry.won,
                    }
                    for entry in history
                    if entry.participant_id == participant.id
                ],
                "stats": {
                    "wins": team.wins,
                    "losses": team.losses,
                    "ties": team.ties,
                    "goals_for": team.goals_for,
                    "goals_against": team.goals_against,
                    "pins": team.pins,
                },
            }
        )
    return result
