import unittest

from httpx import ASGITransport, AsyncClient

from app.db.session import get_db
from app.main import app
from db_support import DatabaseTestCase


class BracketApiTests(DatabaseTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()

        async def override_get_db():
            async with self.sessions() as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db
        self.client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self) -> None:
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()

    async def _create(self, teams: list[str]) -> int:
        response = await self.client.post(
            "/api/tournaments",
            json={"tournament_name": "City Cup", "number_of_rounds": 1, "teams": teams},
        )
        self.assertEqual(response.status_code, 200)
        return response.json()["data"]["id"]

    async def test_league_to_champion_flow(self) -> None:
        tournament_id = await self._create(["Wolves", "Hawks", "Bears"])

        response = await self.client.get(f"/api/tournaments/{tournament_id}/matches")
        scheduled = response.json()["data"]["scheduled"]
        self.assertEqual(len(scheduled), 3)
        self.assertEqual(response.json()["data"]["bracket"], [])

        last = None
        for match, (home, away) in zip(scheduled, [(3, 0), (1, 1), (2, 0)]):
            last = await self.client.put(f"/api/matches/{match['id']}/score", json={"home_score": home, "away_score": away})
            self.assertEqual(last.status_code, 200)
        self.assertTrue(last.json()["all_rounds_completed"])

        rounds = (await self.client.get(f"/api/tournaments/{tournament_id}/rounds")).json()["data"]
        self.assertEqual(rounds, [{"round": 1, "total": 3, "completed": 3, "is_completed": True}])

        bracket = (await self.client.get(f"/api/tournaments/{tournament_id}/bracket")).json()["data"]
        self.assertEqual([row["team_name"] for row in bracket], ["Wolves", "Hawks"])
        self.assertTrue(all(row["stage"] == "Finals" and row["round"] == 3 for row in bracket))
        wolves_id, hawks_id = bracket[0]["team_id"], bracket[1]["team_id"]

        tie = await self.client.put(
            f"/api/tournaments/{tournament_id}/bracket/result",
            json={"home_team_id": wolves_id, "away_team_id": hawks_id, "home_score": 2, "away_score": 2},
        )
        self.assertEqual(tie.status_code, 400)
        self.assertFalse(tie.json()["success"])

        result = await self.client.put(
            f"/api/tournaments/{tournament_id}/bracket/result",
            json={"home_team_id": wolves_id, "away_team_id": hawks_id, "home_score": 4, "away_score": 1, "home_pins": 2},
        )
        self.assertEqual(result.status_code, 200)
        summary = result.json()["data"]
        self.assertTrue(summary["tournament_completed"])
        self.assertTrue(summary["winner"]["is_champion"])
        self.assertEqual(summary["winner"]["team_name"], "Wolves")
        self.assertEqual(summary["winner"]["stats"], {"goals_for": 4, "goals_against": 1, "pins": 2})
        self.assertTrue(summary["loser"]["is_eliminated"])

        again = await self.client.put(
            f"/api/tournaments/{tournament_id}/bracket/result",
            json={"home_team_id": wolves_id, "away_team_id": hawks_id, "home_score": 4, "away_score": 1},
        )
        self.assertEqual(again.status_code, 404)

        matches = (await self.client.get(f"/api/tournaments/{tournament_id}/matches")).json()["data"]["bracket"]
        self.assertEqual([(m["slot_id"], m["status"], m["home_score"], m["away_score"]) for m in matches], [("R3M1", "completed", 4, 1)])

    async def test_manual_seed_and_schedule(self) -> None:
        tournament_id = await self._create(["Wolves", "Hawks", "Bears", "Owls", "Foxes"])

        seeded = await self.client.post(f"/api/tournaments/{tournament_id}/bracket")
        self.assertEqual(seeded.status_code, 200)
        self.assertEqual([row["seed_position"] for row in seeded.json()["data"]], [1, 2, 3, 4])

        bracket_matches = (await self.client.get(f"/api/tournaments/{tournament_id}/matches")).json()["data"]["bracket"]
        self.assertEqual([m["slot_id"] for m in bracket_matches], ["R2M1", "R2M2"])

        response = await self.client.put(
            f"/api/bracket-matches/{bracket_matches[0]['id']}/schedule",
            json={"scheduled_at": "2026-11-01T18:00:00"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["kind"], "bracket")
        self.assertEqual(response.json()["data"]["scheduled_at"], "2026-11-01T18:00:00")

    async def test_error_mapping(self) -> None:
        missing = await self.client.get("/api/tournaments/999/bracket")
        self.assertEqual(missing.status_code, 404)

        missing_match = await self.client.put("/api/matches/999/score", json={"home_score": 1, "away_score": 0})
        self.assertEqual(missing_match.status_code, 404)

        solo = await self.client.post(
            "/api/tournaments",
            json={"tournament_name": "Solo", "number_of_rounds": 1, "teams": ["Wolves"]},
        )
        self.assertEqual(solo.status_code, 400)

        tournament_id = await self._create(["Wolves", "Hawks"])
        status = await self.client.put(f"/api/tournaments/{tournament_id}/status", json={"status": "paused"})
        self.assertEqual(status.status_code, 400)

    async def test_tournaments_standings_and_unscheduled_matches(self) -> None:
        first_id = await self._create(["Wolves", "Hawks", "Bears"])
        second_id = await self._create(["Owls", "Foxes"])

        listed = (await self.client.get("/api/tournaments")).json()["data"]
        self.assertEqual([t["id"] for t in listed], [second_id, first_id])
        self.assertEqual(listed[1]["progress"], "Not Started")

        scheduled = (await self.client.get(f"/api/tournaments/{first_id}/matches")).json()["data"]["scheduled"]
        await self.client.put(f"/api/matches/{scheduled[0]['id']}/score", json={"home_score": 3, "away_score": 0})

        standings = (await self.client.get(f"/api/tournaments/{first_id}/teams")).json()["data"]
        self.assertEqual([row["team_name"] for row in standings], ["Wolves", "Bears", "Hawks"])
        self.assertEqual([row["position"] for row in standings], [1, 2, 3])
        self.assertEqual((standings[0]["points"], standings[0]["goal_difference"]), (3, 3))

        team = await self.client.get(f"/api/teams/{standings[0]['id']}")
        self.assertEqual(team.status_code, 200)
        self.assertEqual((team.json()["data"]["wins"], team.json()["data"]["goals_for"]), (1, 3))
        self.assertEqual((await self.client.get("/api/teams/999")).status_code, 404)
        self.assertEqual((await self.client.get("/api/tournaments/999/teams")).status_code, 404)

        unscheduled = (await self.client.get("/api/matches/unscheduled")).json()["data"]
        self.assertEqual(len(unscheduled), 3)
        self.assertTrue(all(m["status"] == "unscheduled" for m in unscheduled))
        self.assertNotIn(scheduled[0]["id"], {m["id"] for m in unscheduled})

    async def test_deleted_tournament_cannot_be_seeded(self) -> None:
        tournament_id = await self._create(["Wolves", "Hawks"])
        deleted = await self.client.delete(f"/api/tournaments/{tournament_id}")
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json()["deleted_teams"], 2)

        missing = await self.client.post(f"/api/tournaments/{tournament_id}/bracket")
        self.assertEqual(missing.status_code, 404)


if __name__ == "__main__":
    unittest.main()
