import unittest
from unittest.mock import patch

from fastapi import HTTPException

from matchups.models import AppState, Player
from matchups.web import app as web_app


def make_state() -> AppState:
    return AppState(
        players=tuple(
            Player(id=f"p{i}", name=f"Player {i}", rating=1500 - 50 * i) for i in range(4)
        )
    )


class WebReadTests(unittest.TestCase):
    def test_leaderboard_is_sorted_by_rating(self) -> None:
        state = AppState(players=(
            Player(id="a", name="Low", rating=1100),
            Player(id="b", name="High", rating=1600),
        ))
        with patch.object(web_app, "state", state):
            board = web_app.get_leaderboard()
        self.assertEqual([p["id"] for p in board], ["b", "a"])

    def test_state_is_plain_records(self) -> None:
        with patch.object(web_app, "state", make_state()):
            raw = web_app.get_state()
        self.assertEqual(len(raw["players"]), 4)
        self.assertEqual(raw["calibration_sessions"], [])

    def test_unknown_tournament_is_404(self) -> None:
        with patch.object(web_app, "state", AppState()):
            with self.assertRaises(HTTPException) as ctx:
                web_app.get_tournament("missing")
        self.assertEqual(ctx.exception.status_code, 404)


class WebWriteTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        state_patch = patch.object(web_app, "state", make_state())
        save_patch = patch.object(web_app, "save_state")
        state_patch.start()
        self.save_state = save_patch.start()
        self.addCleanup(state_patch.stop)
        self.addCleanup(save_patch.stop)

    async def test_create_player_persists(self) -> None:
        player = await web_app.create_player({"name": "Ada", "rating": 1350})
        self.assertEqual(player["name"], "Ada")
        self.assertEqual(player["rating"], 1350)
        self.assertEqual(len(web_app.state.players), 5)
        self.save_state.assert_called_once()

    async def test_create_player_requires_name(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_player({})
        self.assertEqual(ctx.exception.status_code, 400)
        self.save_state.assert_not_called()

    async def test_ranked_match(self) -> None:
        result = await web_app.create_match({
            "player1_id": "p0", "player2_id": "p1",
            "player1_score": 3, "player2_score": 1, "winner_id": "p1",
        })
        (event,) = result["events"]
        self.assertEqual(event["type"], "MatchRecordedEvent")
        self.assertEqual(event["winner_name"], "Player 1")
        self.assertEqual(len(web_app.state.matches), 1)

    async def test_engine_errors_map_to_400_and_unknown_ids_to_404(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_match({
                "player1_id": "p0", "player2_id": "p1",
                "player1_score": 3, "player2_score": 1, "winner_id": "p2",
            })
        self.assertEqual(ctx.exception.status_code, 400)

        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_match({
                "player1_id": "p0", "player2_id": "ghost",
                "player1_score": 3, "player2_score": 1, "winner_id": "p0",
            })
        self.assertEqual(ctx.exception.status_code, 404)

        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_match({
                "player1_id": "p0", "player2_id": "p1",
                "player1_score": "three", "player2_score": 1, "winner_id": "p0",
            })
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(web_app.state.matches, ())

    async def test_tournament_flow(self) -> None:
        created = await web_app.create_tournament({"name": "Cup", "player_ids": ["p0", "p1", "p2"]})
        tid = created["tournament_id"]
        self.assertEqual(created["events"][0]["type"], "TournamentStartEvent")

        view = web_app.get_tournament(tid)
        (playable,) = view["playable"]
        self.assertEqual(playable["label"], "WB R1-M2")

        result = await web_app.create_tournament_match(tid, {
            "bracket": playable["bracket"],
            "round_index": playable["round_index"],
            "matchup_index": playable["matchup_index"],
            "player1_score": 2, "player2_score": 0,
            "winner_id": playable["player1_id"],
        })
        labels = [p["label"] for p in result["tournament"]["playable"]]
        self.assertEqual(labels, ["WB R2-M1"])

    async def test_tournament_rejects_bad_input(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_tournament({"player_ids": ["p0"]})
        self.assertEqual(ctx.exception.status_code, 400)
        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_tournament({"player_ids": ["p0", "p1"], "seeding": "swiss"})
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_calibration_flow(self) -> None:
        created = await web_app.create_calibration({"player_ids": ["p0", "p1"], "rounds": 1})
        sid = created["session_id"]
        session = web_app.state.calibration_session(sid)
        m = session.active_round.matchups[0]
        result = await web_app.create_calibration_match(sid, {
            "matchup_id": m.id, "player1_score": 1, "player2_score": 0, "winner_id": m.player1_id,
        })
        types = [e["type"] for e in result["events"]]
        self.assertEqual(types, ["MatchRecordedEvent", "CalibrationCompleteEvent"])

    async def test_calibration_needs_a_round(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await web_app.create_calibration({"player_ids": ["p0", "p1"], "rounds": 0})
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_delete_unknown_session_is_404(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await web_app.remove_calibration("missing")
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_clear_wipes_everything_and_persists(self) -> None:
        await web_app.create_tournament({"name": "Cup", "player_ids": ["p0", "p1", "p2"]})
        await web_app.create_match({
            "player1_id": "p0", "player2_id": "p1",
            "player1_score": 2, "player2_score": 0, "winner_id": "p0",
        })
        self.save_state.reset_mock()

        self.assertEqual(await web_app.clear(), {"ok": True})
        self.assertEqual(web_app.state, AppState())
        self.assertEqual(web_app.get_leaderboard(), [])
        self.save_state.assert_called_once()
