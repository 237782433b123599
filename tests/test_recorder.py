"""
Tests for the match recorder and roster — rating application, match
history, tournament and calibration flows through AppState snapshots.
"""

from __future__ import annotations

import random

import pytest

from matchups.config import RatingConfig
from matchups.errors import AlreadyDecidedError, InvalidIndexError, UnknownParticipantError
from matchups.events import (
    CalibrationCompleteEvent,
    CalibrationRoundStartEvent,
    MatchRecordedEvent,
    TournamentCompleteEvent,
    TournamentStartEvent,
)
from matchups.models import AppState, Player
from matchups.recorder import (
    delete_calibration_session,
    delete_tournament,
    record_calibration_match,
    record_match,
    record_tournament_match,
    start_calibration,
    start_tournament,
)
from matchups.roster import add_player, clear_state, leaderboard, remove_player, rename_player, reset_ratings
from matchups.tournaments import playable_matchups

NO_MARGIN = RatingConfig(use_score_margin=False)


def make_state(*ratings: int) -> AppState:
    return AppState(
        players=tuple(
            Player(id=f"p{i}", name=f"Player {i}", rating=r) for i, r in enumerate(ratings)
        )
    )


# --------------------------------------------------------------------------- #
# Ranked matches                                                               #
# --------------------------------------------------------------------------- #

class TestRecordMatch:
    def test_applies_rating_update(self):
        state = make_state(1200, 1200)
        new_state, events = record_match(state, "p0", "p1", 5, 3, "p0", rating_config=NO_MARGIN)

        assert new_state.player("p0").rating == 1216
        assert new_state.player("p1").rating == 1184
        assert new_state.player("p0").wins == 1
        assert new_state.player("p1").losses == 1
        assert new_state.player("p1").games_played == 1

        record = new_state.matches[0]
        assert (record.player1_score, record.player2_score) == (5, 3)
        assert record.winner_id == "p0"
        assert record.loser_id == "p1"
        assert record.rating_change == 16
        assert record.context == "ranked"

        (event,) = events
        assert isinstance(event, MatchRecordedEvent)
        assert event.winner_name == "Player 0"
        assert (event.winner_new_rating, event.loser_new_rating) == (1216, 1184)

    def test_score_margin_is_applied_by_default(self):
        state = make_state(1200, 1200)
        new_state, _ = record_match(state, "p0", "p1", 0, 10, "p1")
        assert new_state.player("p1").rating == 1224
        assert new_state.player("p0").rating == 1176

    def test_input_state_is_untouched(self):
        state = make_state(1200, 1200)
        record_match(state, "p0", "p1", 1, 0, "p0")
        assert state.player("p0").rating == 1200
        assert state.matches == ()

    def test_history_is_newest_first(self):
        state = make_state(1200, 1200, 1200)
        state, _ = record_match(state, "p0", "p1", 1, 0, "p0")
        state, _ = record_match(state, "p1", "p2", 1, 0, "p2")
        assert [m.winner_id for m in state.matches] == ["p2", "p0"]

    def test_invalid_participants(self):
        state = make_state(1200, 1200)
        with pytest.raises(UnknownParticipantError):
            record_match(state, "p0", "p0", 1, 0, "p0")
        with pytest.raises(UnknownParticipantError):
            record_match(state, "p0", "p1", 1, 0, "p9")
        with pytest.raises(KeyError):
            record_match(state, "p0", "ghost", 1, 0, "p0")


# --------------------------------------------------------------------------- #
# Tournaments                                                                  #
# --------------------------------------------------------------------------- #

class TestTournamentFlow:
    def test_start_tournament(self):
        state = make_state(1300, 1500, 1400)
        state, events = start_tournament(state, "  Cup  ", ["p0", "p1", "p2"], rng=random.Random(0))

        tournament = state.tournaments[0]
        assert tournament.name == "Cup"
        (event,) = events
        assert isinstance(event, TournamentStartEvent)
        assert event.participant_names == ["Player 1", "Player 2", "Player 0"]
        assert event.bracket_size == 4
        assert event.bye_count == 1

    def test_newest_tournament_first(self):
        state = make_state(1200, 1200)
        state, _ = start_tournament(state, "first", ["p0", "p1"])
        state, _ = start_tournament(state, "second", ["p0", "p1"])
        assert [t.name for t in state.tournaments] == ["second", "first"]

    def test_unknown_player(self):
        with pytest.raises(KeyError):
            start_tournament(make_state(1200), "x", ["p0", "ghost"])

    def test_plays_to_completion(self):
        state = make_state(1500, 1400, 1300, 1200)
        state, _ = start_tournament(state, "Cup", ["p0", "p1", "p2", "p3"])
        tid = state.tournaments[0].id

        all_events = []
        while playable := playable_matchups(state.tournament(tid)):
            bracket, ri, mi, m = playable[0]
            state, events = record_tournament_match(
                state, tid, bracket, ri, mi, 2, 1, m.player1_id, rating_config=NO_MARGIN
            )
            all_events.extend(events)

        tournament = state.tournament(tid)
        assert tournament.status == "completed"
        assert len(state.matches) == 6
        assert all(m.context == "tournament" and m.tournament_id == tid for m in state.matches)

        complete = [e for e in all_events if isinstance(e, TournamentCompleteEvent)]
        assert len(complete) == 1
        assert complete[0].champion_name == state.player_names()[tournament.grand_final.winner_id]

    def test_bracket_scores_are_kept(self):
        state = make_state(1200, 1200)
        state, _ = start_tournament(state, "", ["p0", "p1"])
        tid = state.tournaments[0].id
        state, _ = record_tournament_match(state, tid, "winners", 0, 0, 4, 7, "p1")
        assert state.tournament(tid).winners_rounds[0][0].scores == (4, 7)
        assert state.matches[0].rating_change > 0

    def test_failed_advance_records_nothing(self):
        state = make_state(1200, 1200, 1200, 1200)
        state, _ = start_tournament(state, "", ["p0", "p1", "p2", "p3"])
        tid = state.tournaments[0].id
        with pytest.raises(InvalidIndexError):
            record_tournament_match(state, tid, "winners", 3, 0, 1, 0, "p0")
        with pytest.raises(UnknownParticipantError):
            m = state.tournament(tid).winners_rounds[0][0]
            outsider = next(pid for pid in ("p0", "p1", "p2", "p3") if pid not in m.occupants)
            record_tournament_match(state, tid, "winners", 0, 0, 1, 0, outsider)
        assert state.matches == ()

    def test_delete_tournament(self):
        state = make_state(1200, 1200)
        state, _ = start_tournament(state, "", ["p0", "p1"])
        state = delete_tournament(state, state.tournaments[0].id)
        assert state.tournaments == ()
        with pytest.raises(KeyError):
            delete_tournament(state, "missing")


# --------------------------------------------------------------------------- #
# Calibration                                                                  #
# --------------------------------------------------------------------------- #

class TestCalibrationFlow:
    def test_full_session(self):
        state = make_state(1200, 1200, 1200, 1200)
        rng = random.Random(3)
        state, events = start_calibration(state, ["p0", "p1", "p2", "p3"], 3, rng=rng)
        assert isinstance(events[0], CalibrationRoundStartEvent)
        assert events[0].round_number == 1
        sid = state.calibration_sessions[0].id

        all_events = []
        while (current := state.calibration_session(sid).active_round) is not None:
            m = next(m for m in current.matchups if not m.is_decided)
            state, events = record_calibration_match(
                state, sid, m.id, 3, 0, m.player1_id, rng=rng, rating_config=NO_MARGIN
            )
            all_events.extend(events)

        session = state.calibration_session(sid)
        assert session.status == "completed"
        assert len(state.matches) == 6
        assert all(m.context == "calibration" for m in state.matches)
        assert all(m.calibration_session_id == sid for m in state.matches)

        starts = [e for e in all_events if isinstance(e, CalibrationRoundStartEvent)]
        assert [e.round_number for e in starts] == [2, 3]
        (complete,) = [e for e in all_events if isinstance(e, CalibrationCompleteEvent)]
        finals = [final for _, _, final in complete.results]
        assert finals == sorted(finals, reverse=True)
        assert all(start == 1200 for _, start, _ in complete.results)

    def test_errors(self):
        state = make_state(1200, 1200)
        rng = random.Random(0)
        state, _ = start_calibration(state, ["p0", "p1"], 1, rng=rng)
        sid = state.calibration_sessions[0].id
        with pytest.raises(InvalidIndexError):
            record_calibration_match(state, sid, "nope", 1, 0, "p0")
        with pytest.raises(KeyError):
            record_calibration_match(state, "missing", "nope", 1, 0, "p0")

        m = state.calibration_session(sid).active_round.matchups[0]
        state, _ = record_calibration_match(state, sid, m.id, 1, 0, m.player1_id, rng=rng)
        with pytest.raises(AlreadyDecidedError):
            record_calibration_match(state, sid, m.id, 1, 0, m.player1_id)

    def test_delete_session(self):
        state = make_state(1200, 1200)
        state, _ = start_calibration(state, ["p0", "p1"], 1)
        state = delete_calibration_session(state, state.calibration_sessions[0].id)
        assert state.calibration_sessions == ()


# --------------------------------------------------------------------------- #
# Roster                                                                       #
# --------------------------------------------------------------------------- #

class TestRoster:
    def test_add_player(self):
        state, player = add_player(AppState(), "  Ada  ")
        assert player.name == "Ada"
        assert player.rating == 1200
        assert state.players == (player,)

    def test_add_player_requires_name(self):
        with pytest.raises(ValueError):
            add_player(AppState(), "   ")

    def test_rename_and_remove(self):
        state = make_state(1200, 1300)
        state = rename_player(state, "p0", "Grace")
        assert state.player("p0").name == "Grace"
        state = remove_player(state, "p0")
        assert [p.id for p in state.players] == ["p1"]
        with pytest.raises(KeyError):
            remove_player(state, "p0")

    def test_reset_ratings_clears_history(self):
        state = make_state(1200, 1200)
        state, _ = record_match(state, "p0", "p1", 1, 0, "p0")
        state = reset_ratings(state)
        assert all(p.rating == 1200 and p.wins == 0 and p.losses == 0 for p in state.players)
        assert state.matches == ()

    def test_leaderboard_order(self):
        players = [
            Player(id="a", name="bob", rating=1300),
            Player(id="b", name="Alice", rating=1300),
            Player(id="c", name="Cy", rating=1400),
        ]
        assert [p.id for p in leaderboard(players)] == ["c", "b", "a"]

    def test_clear_state_drops_everything(self):
        state = make_state(1200, 1200, 1200)
        state, _ = record_match(state, "p0", "p1", 1, 0, "p0")
        state, _ = start_tournament(state, "Cup", ["p0", "p1", "p2"])
        state, _ = start_calibration(state, ["p0", "p1"], 1)

        cleared = clear_state()
        assert cleared == AppState()
        assert (cleared.players, cleared.matches) == ((), ())
        assert (cleared.tournaments, cleared.calibration_sessions) == ((), ())
        # The snapshot it replaces is untouched.
        assert len(state.players) == 3 and len(state.tournaments) == 1
