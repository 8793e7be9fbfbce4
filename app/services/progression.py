"""Продвижение участников по сетке после каждого сыгранного матча.

Один вызов record_match_result это одна транзакция: история обоих участников,
статистика команд, вылет проигравшего, продвижение победителя и создание
матчей следующей стадии либо коммитятся вместе, либо откатываются вместе.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CALLER_ERRORS, InvalidScoreError, ParticipantNotFoundError, TransitionFailedError
from app.models.bracket import BracketMatch, BracketMatchHistory, BracketParticipant
from app.services.repositories import (
    BracketMatchRepository,
    BracketTeamRepository,
    ScheduledMatchRepository,
    StatsDelta,
    TeamRepository,
    TournamentRepository,
)
from app.services.stages import (
    ROUND_BY_STAGE,
    MatchStatus,
    ParticipantStatus,
    Stage,
    TournamentProgress,
    bracket_size_for_team_count,
    next_match_slot_id,
    next_stage,
    round_type_for_stage,
    stage_for_round,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchStats:
    goals_for: int
    goals_against: int
    pins: int


@dataclass(frozen=True)
class ParticipantOutcome:
    participant_id: int
    team_id: int
    team_name: str
    seed_position: int
    round: int
    stage: Stage
    next_match_slot_id: str | None
    is_eliminated: bool
    is_champion: bool
    stats: MatchStats


@dataclass(frozen=True)
class MatchResultSummary:
    stage: Stage
    winner: ParticipantOutcome
    loser: ParticipantOutcome
    created_slots: list[str] = field(default_factory=list)
    tournament_completed: bool = False


def validate_scores(home_score: int, away_score: int, home_pins: int = 0, away_pins: int = 0) -> None:
    for name, value in (
        ("home_score", home_score),
        ("away_score", away_score),
        ("home_pins", home_pins),
        ("away_pins", away_pins),
    ):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidScoreError(f"{name} должен быть неотрицательным целым, получено {value!r}")
    if home_score == away_score:
        raise InvalidScoreError(f"Ничья {home_score}:{away_score} невозможна в матче плей-офф")


def resolve_pairing(
    participants: list[BracketParticipant],
    home_team_id: int,
    away_team_id: int,
) -> tuple[BracketParticipant, BracketParticipant]:
    """Находит пару активных участников, которые могут сыграть друг с другом."""
    if home_team_id == away_team_id:
        raise ParticipantNotFoundError("Команда не может играть сама с собой")
    by_team = {p.team_id: p for p in participants}
    home = by_team.get(home_team_id)
    away = by_team.get(away_team_id)
    if not home or not away:
        raise ParticipantNotFoundError("Одна или обе команды не найдены среди активных участников сетки")
    for participant in (home, away):
        if participant.is_eliminated or participant.status != ParticipantStatus.INCOMPLETE.value:
            raise ParticipantNotFoundError(f"Участник {participant.team_name} уже сыграл свой матч в этом раунде")
    if home.round != away.round:
        raise ParticipantNotFoundError(
            f"Участники играют в разных раундах: {home.team_name} в {home.round}, {away.team_name} в {away.round}"
        )
    return home, away


def eliminate(loser: BracketParticipant) -> None:
    loser.is_eliminated = True
    loser.status = ParticipantStatus.COMPLETED.value
    loser.next_match_slot_id = None


def promote(winner: BracketParticipant, played_stage: Stage) -> bool:
    """Переводит победителя в следующую стадию. Возвращает True, если это был финал."""
    upcoming = next_stage(played_stage)
    if upcoming is None:
        winner.status = ParticipantStatus.COMPLETED.value
        winner.is_eliminated = False
        winner.next_match_slot_id = None
        return True

    winner.round += 1
    winner.stage = upcoming.value
    winner.score = 0
    winner.status = ParticipantStatus.INCOMPLETE.value
    # Слот матча, который соберется из победителей текущей стадии.
    winner.next_match_slot_id = next_match_slot_id(winner.seed_position, played_stage)
    return False


def pair_next_stage(promoted: list[BracketParticipant], tournament_id: int, stage: Stage) -> list[BracketMatch]:
    # Группируем прошедших по слоту, в каждой паре меньший посев дома.
    by_slot: dict[str, list[BracketParticipant]] = defaultdict(list)
    for participant in promoted:
        if participant.next_match_slot_id:
            by_slot[participant.next_match_slot_id].append(participant)

    matches: list[BracketMatch] = []
    for slot in sorted(by_slot):
        group = sorted(by_slot[slot], key=lambda p: p.seed_position)
        if len(group) != 2:
            logger.warning("Slot %s of tournament %s has %s participants, match not created", slot, tournament_id, len(group))
            continue
        home, away = group
        matches.append(
            BracketMatch(
                tournament_id=tournament_id,
                round=ROUND_BY_STAGE[stage],
                round_type=round_type_for_stage(stage).value,
                slot_id=slot,
                home_team_id=home.team_id,
                away_team_id=away.team_id,
                status=MatchStatus.UNSCHEDULED.value,
            )
        )
    return matches


async def check_stage_completion(db: AsyncSession, tournament_id: int, stage: Stage) -> list[BracketMatch]:
    """Создает матчи следующей стадии, если все матчи стадии сыграны. Повторный вызов ничего не меняет."""
    bracket_teams = BracketTeamRepository(db)
    in_stage = await bracket_teams.find_by_stage(tournament_id, stage)
    if not in_stage or any(p.status != ParticipantStatus.COMPLETED.value for p in in_stage):
        return []

    if stage == Stage.FINALS:
        await TournamentRepository(db).mark_progress(tournament_id, TournamentProgress.COMPLETED.value)
        logger.info("Tournament %s completed", tournament_id)
        return []

    upcoming = next_stage(stage)
    matches_repo = BracketMatchRepository(db)
    if await matches_repo.find_by_round_type(tournament_id, round_type_for_stage(upcoming)):
        return []

    promoted = [
        p
        for p in await bracket_teams.find_by_stage(tournament_id, upcoming)
        if not p.is_eliminated and p.status == ParticipantStatus.INCOMPLETE.value
    ]
    matches = pair_next_stage(promoted, tournament_id, upcoming)
    if not matches:
        return []
    await matches_repo.create_matches(tournament_id, matches)
    logger.info(
        "Tournament %s: %s complete, created %s",
        tournament_id,
        stage.value,
        ", ".join(match.slot_id for match in matches),
    )
    return matches


def _outcome(participant: BracketParticipant, is_champion: bool, stats: MatchStats) -> ParticipantOutcome:
    return ParticipantOutcome(
        participant_id=participant.id,
        team_id=participant.team_id,
        team_name=participant.team_name,
        seed_position=participant.seed_position,
        round=participant.round,
        stage=Stage(participant.stage),
        next_match_slot_id=participant.next_match_slot_id,
        is_eliminated=participant.is_eliminated,
        is_champion=is_champion,
        stats=stats,
    )


async def _apply_result(
    db: AsyncSession,
    tournament_id: int,
    home_team_id: int,
    away_team_id: int,
    home_score: int,
    away_score: int,
    home_pins: int,
    away_pins: int,
) -> MatchResultSummary:
    tournament = await TournamentRepository(db).get_for_update(tournament_id)
    if not tournament:
        raise ParticipantNotFoundError(f"Tournament {tournament_id} not found")

    bracket_teams = BracketTeamRepository(db)
    candidates = await bracket_teams.find_active_by_team_ids(tournament_id, [home_team_id, away_team_id])
    home, away = resolve_pairing(candidates, home_team_id, away_team_id)

    matches_repo = BracketMatchRepository(db)
    bracket_match = await matches_repo.find_pairing(tournament_id, home.round, (home_team_id, away_team_id))
    if not bracket_match or bracket_match.status == MatchStatus.COMPLETED.value:
        raise ParticipantNotFoundError(
            f"Матч {home.team_name} против {away.team_name} в раунде {home.round} не найден в сетке или уже сыгран"
        )
    if not await matches_repo.claim(bracket_match.id):
        raise ParticipantNotFoundError(f"Результат матча {bracket_match.slot_id} уже внесен")

    bracket_size = tournament.bracket_size
    if not bracket_size:
        bracket_size = bracket_size_for_team_count(len(await bracket_teams.find_by_tournament(tournament_id)))
        tournament.bracket_size = bracket_size

    is_home_winner = home_score > away_score
    winner, loser = (home, away) if is_home_winner else (away, home)
    current_stage = stage_for_round(winner.round, bracket_size)

    for participant, opponent, score, opponent_score in (
        (home, away, home_score, away_score),
        (away, home, away_score, home_score),
    ):
        await bracket_teams.add_history(
            BracketMatchHistory(
                participant_id=participant.id,
                round=participant.round,
                stage=current_stage.value,
                opponent_participant_id=opponent.id,
                opponent_seed_position=opponent.seed_position,
                seed_position=participant.seed_position,
                score=score,
                opponent_score=opponent_score,
                won=participant is winner,
            )
        )
        participant.score = score

    teams = TeamRepository(db)
    await teams.increment_stats(
        home.team_id,
        StatsDelta(
            wins=int(is_home_winner),
            losses=int(not is_home_winner),
            goals_for=home_score,
            goals_against=away_score,
            pins=home_pins,
        ),
    )
    await teams.increment_stats(
        away.team_id,
        StatsDelta(
            wins=int(not is_home_winner),
            losses=int(is_home_winner),
            goals_for=away_score,
            goals_against=home_score,
            pins=away_pins,
        ),
    )

    eliminate(loser)
    is_champion = promote(winner, current_stage)
    logger.info(
        "Tournament %s %s: %s beat %s %s:%s",
        tournament_id,
        current_stage.value,
        winner.team_name,
        loser.team_name,
        max(home_score, away_score),
        min(home_score, away_score),
    )

    bracket_match.status = MatchStatus.COMPLETED.value
    if bracket_match.home_team_id == home_team_id:
        bracket_match.home_score, bracket_match.away_score = home_score, away_score
    else:
        bracket_match.home_score, bracket_match.away_score = away_score, home_score

    scheduled_repo = ScheduledMatchRepository(db)
    scheduled = await scheduled_repo.find_pending_by_teams(home_team_id, away_team_id)
    if scheduled:
        await scheduled_repo.mark_completed(scheduled.id)

    await db.flush()
    created = await check_stage_completion(db, tournament_id, current_stage)

    winner_stats = MatchStats(
        goals_for=max(home_score, away_score),
        goals_against=min(home_score, away_score),
        pins=home_pins if is_home_winner else away_pins,
    )
    loser_stats = MatchStats(
        goals_for=min(home_score, away_score),
        goals_against=max(home_score, away_score),
        pins=away_pins if is_home_winner else home_pins,
    )
    return MatchResultSummary(
        stage=current_stage,
        winner=_outcome(winner, is_champion, winner_stats),
        loser=_outcome(loser, False, loser_stats),
        created_slots=[match.slot_id for match in created],
        tournament_completed=is_champion,
    )


async def record_match_result(
    db: AsyncSession,
    tournament_id: int,
    home_team_id: int,
    away_team_id: int,
    home_score: int,
    away_score: int,
    home_pins: int = 0,
    away_pins: int = 0,
) -> MatchResultSummary:
    """Записывает результат матча сетки и продвигает победителя."""
    validate_scores(home_score, away_score, home_pins, away_pins)
    try:
        summary = await _apply_result(
            db, tournament_id, home_team_id, away_team_id, home_score, away_score, home_pins, away_pins
        )
        await db.commit()
    except CALLER_ERRORS:
        await db.rollback()
        raise
    except Exception as exc:
        await db.rollback()
        logger.warning("Result for tournament %s rolled back: %r", tournament_id, exc)
        raise TransitionFailedError(f"Не удалось записать результат матча в турнире {tournament_id}") from exc
    return summary
