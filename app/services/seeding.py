"""Посев сетки плей-офф по итогам кругового турнира."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CALLER_ERRORS, TournamentNotFoundError, TransitionFailedError
from app.models.bracket import BracketMatch, BracketParticipant
from app.models.tournament import Team, Tournament
from app.services.repositories import (
    BracketMatchRepository,
    BracketTeamRepository,
    ScheduledMatchRepository,
    TeamRepository,
    TournamentRepository,
)
from app.services.stages import (
    MatchStatus,
    ParticipantStatus,
    TournamentProgress,
    bracket_size_for_team_count,
    first_round_for_bracket,
    first_round_pairings,
    next_match_slot_id,
    round_type_for_stage,
    slot_id,
    stage_for_round,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedTeam:
    team: Team
    points: int
    goal_difference: int


def rank_teams(teams: list[Team]) -> list[RankedTeam]:
    """Сортирует команды по очкам, разнице и забитым голам.

    Полностью равные команды остаются в порядке входного списка (по id),
    сортировка стабильна и с reverse=True.
    """
    ranked = [
        RankedTeam(team=team, points=team.wins * 3 + team.ties, goal_difference=team.goals_for - team.goals_against)
        for team in teams
    ]
    return sorted(ranked, key=lambda r: (r.points, r.goal_difference, r.team.goals_for), reverse=True)


def build_first_round_matches(tournament_id: int, participants: list[BracketParticipant], bracket_size: int) -> list[BracketMatch]:
    # Посев i играет с посевом (size + 1 - i), меньший номер посева дома.
    by_seed = {p.seed_position: p for p in participants}
    first_round = first_round_for_bracket(bracket_size)
    round_type = round_type_for_stage(stage_for_round(first_round, bracket_size))
    matches: list[BracketMatch] = []
    for match_number, (home_seed, away_seed) in enumerate(first_round_pairings(bracket_size), start=1):
        matches.append(
            BracketMatch(
                tournament_id=tournament_id,
                round=first_round,
                round_type=round_type.value,
                slot_id=slot_id(first_round, match_number),
                home_team_id=by_seed[home_seed].team_id,
                away_team_id=by_seed[away_seed].team_id,
                status=MatchStatus.UNSCHEDULED.value,
            )
        )
    return matches


async def build_bracket(db: AsyncSession, tournament: Tournament) -> list[BracketParticipant]:
    """Пересоздает участников и матчи первого раунда внутри текущей транзакции, без commit."""
    teams = await TeamRepository(db).find_by_tournament(tournament.id)
    ranked = rank_teams(teams)
    bracket_size = bracket_size_for_team_count(len(ranked))

    bracket_teams = BracketTeamRepository(db)
    await bracket_teams.delete_for_tournament(tournament.id)
    await BracketMatchRepository(db).delete_for_tournament(tournament.id)
    await ScheduledMatchRepository(db).delete_bracket_entries(tournament.id)

    first_round = first_round_for_bracket(bracket_size)
    stage = stage_for_round(first_round, bracket_size)
    participants = [
        BracketParticipant(
            tournament_id=tournament.id,
            team_id=entry.team.id,
            team_name=entry.team.team_name,
            seed_position=seed,
            round=first_round,
            stage=stage.value,
            status=ParticipantStatus.INCOMPLETE.value,
            is_eliminated=False,
            next_match_slot_id=next_match_slot_id(seed, stage),
            score=0,
        )
        for seed, entry in enumerate(ranked[:bracket_size], start=1)
    ]
    await bracket_teams.create_many(participants)
    await BracketMatchRepository(db).create_matches(
        tournament.id,
        build_first_round_matches(tournament.id, participants, bracket_size),
    )

    tournament.bracket_size = bracket_size
    tournament.progress = TournamentProgress.IN_PROGRESS.value
    logger.info(
        "Tournament %s seeded: %s of %s teams, bracket size %s, starting at %s",
        tournament.id,
        len(participants),
        len(ranked),
        bracket_size,
        stage.value,
    )
    return participants


async def seed_bracket(db: AsyncSession, tournament_id: int) -> list[BracketParticipant]:
    """Сеет сетку турнира заново и коммитит результат одной транзакцией."""
    tournament = await TournamentRepository(db).get_for_update(tournament_id)
    if not tournament:
        raise TournamentNotFoundError(f"Tournament {tournament_id} not found")

    try:
        participants = await build_bracket(db, tournament)
        await db.commit()
    except CALLER_ERRORS:
        await db.rollback()
        raise
    except Exception as exc:
        await db.rollback()
        logger.warning("Seeding of tournament %s rolled back: %r", tournament_id, exc)
        raise TransitionFailedError(f"Не удалось сформировать сетку турнира {tournament_id}") from exc
    return participants
