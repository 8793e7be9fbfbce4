import unittest
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from app.core.exceptions import InsufficientTeamsError, TournamentNotFoundError, TransitionFailedError
from app.models.bracket import BracketParticipant
from app.models.tournament import Team
from app.services.repositories import BracketTeamRepository
from app.services.seeding import rank_teams, seed_bracket
from db_support import DatabaseTestCase


def _team(team_id: int, wins: int, ties: int, goals_for: int, goals_against: int) -> Team:
    return Team(
        id=team_id,
        tournament_id=1,
        team_name=f"T{team_id}",
        wins=wins,
        ties=ties,
        losses=0,
        goals_for=goals_for,
        goals_against=goals_against,
        pins=0,
    )


class RankTeamsTests(unittest.TestCase):
    def test_points_then_goal_difference_then_goals_for(self) -> None:
        teams = [
            _team(1, wins=3, ties=0, goals_for=10, goals_against=5),
            _team(2, wins=2, ties=3, goals_for=12, goals_against=4),
            _team(3, wins=3, ties=0, goals_for=12, goals_against=7),
            _team(4, wins=3, ties=0, goals_for=10, goals_against=5),
            _team(5, wins=0, ties=1, goals_for=30, goals_against=0),
        ]

        ranked = rank_teams(teams)

        self.assertEqual([r.team.id for r in ranked], [2, 3, 1, 4, 5])
        self.assertEqual(ranked[0].points, 9)
        self.assertEqual(ranked[0].goal_difference, 8)
        self.assertEqual(ranked[-1].points, 1)

    def test_full_ties_keep_input_order(self) -> None:
        first = _team(7, wins=1, ties=1, goals_for=3, goals_against=3)
        second = _team(4, wins=1, ties=1, goals_for=3, goals_against=3)

        self.assertEqual([r.team.id for r in rank_teams([first, second])], [7, 4])
        self.assertEqual([r.team.id for r in rank_teams([second, first])], [4, 7])


class SeedBracketTests(DatabaseTestCase):
    async def test_eight_teams_start_at_quarter_finals(self) -> None:
        tournament_id, team_ids = await self.create_ranked_tournament(10)

        async with self.sessions() as db:
            participants = await seed_bracket(db, tournament_id)

        self.assertEqual(sorted(p.seed_position for p in participants), list(range(1, 9)))
        by_seed = await self.participants_by_seed(tournament_id)
        self.assertEqual(len(by_seed), 8)
        for seed, participant in by_seed.items():
            with self.subTest(seed=seed):
                self.assertEqual(participant.team_id, team_ids[seed - 1])
                self.assertEqual(participant.round, 1)
                self.assertEqual(participant.stage, "Quarter-finals")
                self.assertEqual(participant.status, "incomplete")
                self.assertFalse(participant.is_eliminated)
                self.assertEqual(participant.score, 0)
        self.assertEqual(by_seed[1].next_match_slot_id, "R2M1")
        self.assertEqual(by_seed[5].next_match_slot_id, "R2M1")
        self.assertEqual(by_seed[2].next_match_slot_id, "R2M2")
        self.assertEqual(by_seed[6].next_match_slot_id, "R2M2")

        matches = await self.bracket_matches(tournament_id)
        seed_by_team = {p.team_id: seed for seed, p in by_seed.items()}
        pairs = {(seed_by_team[m.home_team_id], seed_by_team[m.away_team_id]) for m in matches}
        self.assertEqual(pairs, {(1, 8), (4, 5), (3, 6), (2, 7)})
        self.assertEqual([m.slot_id for m in matches], ["R1M1", "R1M2", "R1M3", "R1M4"])
        self.assertTrue(all(m.round_type == "quarterFinal" and m.round == 1 for m in matches))
        self.assertTrue(all(m.status == "unscheduled" for m in matches))

        tournament = await self.get_tournament(tournament_id)
        self.assertEqual(tournament.bracket_size, 8)
        self.assertEqual(tournament.progress, "In Progress")

    async def test_five_teams_make_a_four_team_bracket(self) -> None:
        tournament_id, team_ids = await self.create_ranked_tournament(5)

        async with self.sessions() as db:
            await seed_bracket(db, tournament_id)

        by_seed = await self.participants_by_seed(tournament_id)
        self.assertEqual(sorted(by_seed), [1, 2, 3, 4])
        self.assertNotIn(team_ids[4], {p.team_id for p in by_seed.values()})
        self.assertTrue(all(p.round == 2 and p.stage == "Semi-finals" for p in by_seed.values()))
        self.assertTrue(all(p.next_match_slot_id == "R3M1" for p in by_seed.values()))

        matches = await self.bracket_matches(tournament_id)
        self.assertEqual([(m.slot_id, m.round_type, m.round) for m in matches], [("R2M1", "semiFinal", 2), ("R2M2", "semiFinal", 2)])
        self.assertEqual((matches[0].home_team_id, matches[0].away_team_id), (team_ids[0], team_ids[3]))
        self.assertEqual((matches[1].home_team_id, matches[1].away_team_id), (team_ids[1], team_ids[2]))

    async def test_three_teams_reduce_to_final_only(self) -> None:
        tournament_id, team_ids = await self.create_ranked_tournament(3)

        async with self.sessions() as db:
            participants = await seed_bracket(db, tournament_id)

        self.assertEqual(len(participants), 2)
        by_seed = await self.participants_by_seed(tournament_id)
        self.assertEqual({p.team_id for p in by_seed.values()}, {team_ids[0], team_ids[1]})
        self.assertTrue(all(p.round == 3 and p.stage == "Finals" for p in by_seed.values()))
        self.assertTrue(all(p.next_match_slot_id is None for p in by_seed.values()))

        matches = await self.bracket_matches(tournament_id)
        self.assertEqual(len(matches), 1)
        self.assertEqual((matches[0].slot_id, matches[0].round_type), ("R3M1", "final"))
        self.assertEqual((matches[0].home_team_id, matches[0].away_team_id), (team_ids[0], team_ids[1]))

    async def test_single_team_is_rejected_without_changes(self) -> None:
        tournament_id, _ = await self.create_ranked_tournament(1)

        async with self.sessions() as db:
            with self.assertRaises(InsufficientTeamsError):
                await seed_bracket(db, tournament_id)

        self.assertEqual(await self.participants_by_seed(tournament_id), {})
        tournament = await self.get_tournament(tournament_id)
        self.assertIsNone(tournament.bracket_size)

    async def test_reseed_replaces_bracket_with_identical_seeds(self) -> None:
        tournament_id, _ = await self.create_ranked_tournament(8)

        async with self.sessions() as db:
            await seed_bracket(db, tournament_id)
        first = {seed: p.team_id for seed, p in (await self.participants_by_seed(tournament_id)).items()}

        async with self.sessions() as db:
            await seed_bracket(db, tournament_id)
        second = {seed: p.team_id for seed, p in (await self.participants_by_seed(tournament_id)).items()}

        self.assertEqual(first, second)
        self.assertEqual(len(await self.bracket_matches(tournament_id)), 4)
        async with self.sessions() as db:
            total = (await db.scalars(select(BracketParticipant).where(BracketParticipant.tournament_id == tournament_id))).all()
        self.assertEqual(len(total), 8)

    async def test_equal_standings_seed_by_registration_order(self) -> None:
        tournament_id, team_ids = await self.create_tournament_with_teams([(1, 1, 1, 5, 5)] * 4)

        async with self.sessions() as db:
            await seed_bracket(db, tournament_id)

        by_seed = await self.participants_by_seed(tournament_id)
        self.assertEqual([by_seed[seed].team_id for seed in range(1, 5)], team_ids)

    async def test_unexpected_failure_is_wrapped_and_rolled_back(self) -> None:
        tournament_id, _ = await self.create_ranked_tournament(8)

        failing = AsyncMock(side_effect=ValueError("broken participant row"))
        with patch.object(BracketTeamRepository, "create_many", failing):
            async with self.sessions() as db:
                with self.assertRaises(TransitionFailedError) as ctx:
                    await seed_bracket(db, tournament_id)

        self.assertIsInstance(ctx.exception.__cause__, ValueError)
        self.assertEqual(await self.participants_by_seed(tournament_id), {})
        self.assertEqual(await self.bracket_matches(tournament_id), [])
        self.assertIsNone((await self.get_tournament(tournament_id)).bracket_size)

    async def test_unknown_tournament(self) -> None:
        async with self.sessions() as db:
            with self.assertRaises(TournamentNotFoundError):
                await seed_bracket(db, 999)


if __name__ == "__main__":
    unittest.main()
