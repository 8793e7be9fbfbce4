import asyncio
import random

from sqlalchemy import select

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.bracket import BracketMatch
from app.models.tournament import ScheduledMatch
from app.services.league import create_tournament, get_bracket, record_league_result
from app.services.progression import record_match_result

TEAM_NAMES = ["Wolves", "Hawks", "Bears", "Sharks", "Foxes", "Eagles", "Lions", "Owls"]


def _random_score(allow_tie: bool) -> tuple[int, int]:
    # Генерируем счет, в плей-офф без ничьих.
    home, away = random.randint(0, 20), random.randint(0, 20)
    while not allow_tie and home == away:
        away = random.randint(0, 20)
    return home, away


async def main() -> None:
    """Создает демо-турнир на 8 команд, отыгрывает круговой этап и сетку до чемпиона."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        tournament = await create_tournament(db, "Demo Cup", number_of_rounds=1, team_names=TEAM_NAMES)
        fixtures = list(
            (await db.scalars(select(ScheduledMatch.id).where(ScheduledMatch.tournament_id == tournament.id))).all()
        )
        for match_id in fixtures:
            home_score, away_score = _random_score(allow_tie=True)
            await record_league_result(db, match_id, home_score, away_score, random.randint(0, 3), random.randint(0, 3))

        played: set[int] = set()
        while True:
            pending = [
                match
                for match in (
                    await db.scalars(
                        select(BracketMatch)
                        .where(BracketMatch.tournament_id == tournament.id)
                        .order_by(BracketMatch.round, BracketMatch.slot_id)
                    )
                ).all()
                if match.id not in played
            ]
            if not pending:
                break
            for match in pending:
                home_score, away_score = _random_score(allow_tie=False)
                summary = await record_match_result(
                    db, tournament.id, match.home_team_id, match.away_team_id, home_score, away_score
                )
                played.add(match.id)
                print(f"{summary.stage.value}: {summary.winner.team_name} beat {summary.loser.team_name}")

        for row in await get_bracket(db, tournament.id):
            marker = "eliminated" if row["is_eliminated"] else "alive"
            print(f"#{row['seed_position']} {row['team_name']}: {row['stage']} ({marker})")


if __name__ == "__main__":
    asyncio.run(main())
