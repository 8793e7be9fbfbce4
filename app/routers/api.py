from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.bracket import BracketMatch
from app.models.tournament import ScheduledMatch, Team, Tournament
from app.services.league import (
    create_tournament,
    delete_tournament,
    get_bracket,
    get_round_statuses,
    get_standings,
    get_team,
    list_tournaments,
    list_unscheduled_matches,
    record_league_result,
    schedule_bracket_match,
    schedule_match,
    set_tournament_status,
)
from app.services.progression import record_match_result
from app.services.seeding import seed_bracket

router = APIRouter(prefix="/api")


class CreateTournamentIn(BaseModel):
    tournament_name: str = Field(min_length=1, max_length=120)
    number_of_rounds: int = Field(ge=1)
    teams: list[str]


class TournamentStatusIn(BaseModel):
    status: str


class ScheduleIn(BaseModel):
    scheduled_at: datetime


class LeagueScoreIn(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    home_pins: int = Field(default=0, ge=0)
    away_pins: int = Field(default=0, ge=0)


class BracketScoreIn(BaseModel):
    home_team_id: int
    away_team_id: int
    # Отрицательный счет и ничью проверяет сервис, чтобы вернуть InvalidScoreError.
    home_score: int
    away_score: int
    home_pins: int = 0
    away_pins: int = 0


def match_to_dict(match: ScheduledMatch | BracketMatch) -> dict:
    data = {
        "id": match.id,
        "tournament_id": match.tournament_id,
        "round": match.round,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "status": match.status,
        "home_score": match.home_score,
        "away_score": match.away_score,
    }
    if isinstance(match, BracketMatch):
        data.update(round_type=match.round_type, slot_id=match.slot_id)
    else:
        data.update(kind=match.kind, scheduled_at=match.scheduled_at.isoformat() if match.scheduled_at else None)
    return data


def tournament_to_dict(tournament: Tournament) -> dict:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "number_of_rounds": tournament.number_of_rounds,
        "status": tournament.status,
        "progress": tournament.progress,
        "bracket_size": tournament.bracket_size,
        "created_at": tournament.created_at.isoformat() if tournament.created_at else None,
    }


def team_to_dict(team: Team) -> dict:
    return {
        "id": team.id,
        "tournament_id": team.tournament_id,
        "team_name": team.team_name,
        "wins": team.wins,
        "ties": team.ties,
        "losses": team.losses,
        "goals_for": team.goals_for,
        "goals_against": team.goals_against,
        "pins": team.pins,
    }


@router.get("/tournaments")
async def api_list_tournaments(db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": [tournament_to_dict(t) for t in await list_tournaments(db)]}


@router.post("/tournaments")
async def api_create_tournament(payload: CreateTournamentIn, db: AsyncSession = Depends(get_db)):
    tournament = await create_tournament(db, payload.tournament_name, payload.number_of_rounds, payload.teams)
    return {"success": True, "data": {"id": tournament.id, "name": tournament.name, "progress": tournament.progress}}


@router.delete("/tournaments/{tournament_id}")
async def api_delete_tournament(tournament_id: int, db: AsyncSession = Depends(get_db)):
    counts = await delete_tournament(db, tournament_id)
    return {"success": True, "message": "Tournament deleted successfully.", **counts}


@router.put("/tournaments/{tournament_id}/status")
async def api_set_status(tournament_id: int, payload: TournamentStatusIn, db: AsyncSession = Depends(get_db)):
    tournament = await set_tournament_status(db, tournament_id, payload.status)
    return {"success": True, "data": {"id": tournament.id, "status": tournament.status, "progress": tournament.progress}}


@router.get("/tournaments/{tournament_id}/rounds")
async def api_round_statuses(tournament_id: int, db: AsyncSession = Depends(get_db)):
    statuses = await get_round_statuses(db, tournament_id)
    return {"success": True, "data": [{**asdict(s), "is_completed": s.is_completed} for s in statuses]}


@router.get("/tournaments/{tournament_id}/teams")
async def api_standings(tournament_id: int, db: AsyncSession = Depends(get_db)):
    standings = await get_standings(db, tournament_id)
    return {
        "success": True,
        "data": [
            {**team_to_dict(row.team), "position": position, "points": row.points, "goal_difference": row.goal_difference}
            for position, row in enumerate(standings, start=1)
        ],
    }


@router.get("/teams/{team_id}")
async def api_get_team(team_id: int, db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": team_to_dict(await get_team(db, team_id))}


@router.get("/matches/unscheduled")
async def api_unscheduled_matches(db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": [match_to_dict(m) for m in await list_unscheduled_matches(db)]}


@router.get("/tournaments/{tournament_id}/matches")
async def api_matches(tournament_id: int, db: AsyncSession = Depends(get_db)):
    scheduled = (
        await db.scalars(
            select(ScheduledMatch).where(ScheduledMatch.tournament_id == tournament_id).order_by(ScheduledMatch.round, ScheduledMatch.id)
        )
    ).all()
    bracket = (
        await db.scalars(select(BracketMatch).where(BracketMatch.tournament_id == tournament_id).order_by(BracketMatch.slot_id))
    ).all()
    return {
        "success": True,
        "data": {
            "scheduled": [match_to_dict(m) for m in scheduled],
            "bracket": [match_to_dict(m) for m in bracket],
        },
    }


@router.put("/matches/{match_id}/schedule")
async def api_schedule_match(match_id: int, payload: ScheduleIn, db: AsyncSession = Depends(get_db)):
    match = await schedule_match(db, match_id, payload.scheduled_at)
    return {"success": True, "data": match_to_dict(match)}


@router.put("/matches/{match_id}/score")
async def api_league_score(match_id: int, payload: LeagueScoreIn, db: AsyncSession = Depends(get_db)):
    result = await record_league_result(
        db, match_id, payload.home_score, payload.away_score, payload.home_pins, payload.away_pins
    )
    return {
        "success": True,
        "data": match_to_dict(result.match),
        "all_rounds_completed": result.all_rounds_completed,
    }


@router.put("/bracket-matches/{bracket_match_id}/schedule")
async def api_schedule_bracket_match(bracket_match_id: int, payload: ScheduleIn, db: AsyncSession = Depends(get_db)):
    entry = await schedule_bracket_match(db, bracket_match_id, payload.scheduled_at)
    return {"success": True, "data": match_to_dict(entry)}


@router.post("/tournaments/{tournament_id}/bracket")
async def api_seed_bracket(tournament_id: int, db: AsyncSession = Depends(get_db)):
    await seed_bracket(db, tournament_id)
    return {"success": True, "data": await get_bracket(db, tournament_id)}


@router.get("/tournaments/{tournament_id}/bracket")
async def api_get_bracket(tournament_id: int, db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": await get_bracket(db, tournament_id)}


@router.put("/tournaments/{tournament_id}/bracket/result")
async def api_bracket_result(tournament_id: int, payload: BracketScoreIn, db: AsyncSession = Depends(get_db)):
    summary = await record_match_result(
        db,
        tournament_id,
        payload.home_team_id,
        payload.away_team_id,
        payload.home_score,
        payload.away_score,
        payload.home_pins,
        payload.away_pins,
    )
    return {"success": True, "data": asdict(summary)}
