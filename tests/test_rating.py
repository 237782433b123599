"""
Tests for the rating engine — expected score, margin multiplier and the
half-up rounded Elo update.
"""

from __future__ import annotations

import math

import pytest

from matchups.rating import (
    MAX_MARGIN_MULTIPLIER,
    _round_half_up,
    calculate_rating_update,
    expected_score,
    margin_multiplier,
)


class TestExpectedScore:
    def test_equal_ratings_is_even(self):
        assert expected_score(1200, 1200) == pytest.approx(0.5)

    def test_is_symmetric(self):
        assert expected_score(1400, 1200) + expected_score(1200, 1400) == pytest.approx(1.0)

    def test_400_point_gap_is_ten_to_one(self):
        assert expected_score(1600, 1200) == pytest.approx(10 / 11)


class TestMarginMultiplier:
    def test_no_scores_recorded(self):
        assert margin_multiplier(0, 0) == 1.0

    def test_non_winning_scores_are_neutral(self):
        assert margin_multiplier(5, 5) == 1.0
        assert margin_multiplier(3, 5) == 1.0

    def test_shutout_hits_the_cap(self):
        assert margin_multiplier(10, 0) == pytest.approx(MAX_MARGIN_MULTIPLIER)

    def test_narrow_win_is_small_bonus(self):
        expected = 1.0 + math.log(2) / math.log(22) * 0.5
        assert margin_multiplier(11, 10) == pytest.approx(expected)

    def test_bigger_margin_bigger_multiplier(self):
        assert 1.0 < margin_multiplier(6, 4) < margin_multiplier(9, 1) <= MAX_MARGIN_MULTIPLIER

    def test_six_nil_is_the_cap(self):
        assert margin_multiplier(6, 0) == pytest.approx(1.5)

    def test_decisiveness_ordering(self):
        assert (
            margin_multiplier(6, 0)
            > margin_multiplier(6, 1)
            > margin_multiplier(7, 5)
            > margin_multiplier(7, 6)
            > 1.0
        )


class TestCalculateRatingUpdate:
    def test_equal_ratings_without_margin(self):
        update = calculate_rating_update(1200, 1200)
        assert update.winner_new_rating == 1216
        assert update.loser_new_rating == 1184
        assert update.delta == 16

    def test_shutout_scales_by_one_and_a_half(self):
        update = calculate_rating_update(1200, 1200, 10, 0)
        assert update.winner_new_rating == 1224
        assert update.loser_new_rating == 1176
        assert update.delta == 24

    def test_only_one_score_means_no_margin(self):
        update = calculate_rating_update(1200, 1200, 10, None)
        assert update.delta == 16

    def test_upset_moves_more_points(self):
        update = calculate_rating_update(1200, 1500)
        assert update.winner_new_rating == 1227
        assert update.loser_new_rating == 1473
        assert update.delta == 27

    def test_favourite_gains_little(self):
        update = calculate_rating_update(1500, 1200)
        assert update.winner_new_rating == 1505
        assert update.loser_new_rating == 1195

    def test_custom_k_factor(self):
        update = calculate_rating_update(1200, 1200, k_factor=16)
        assert (update.winner_new_rating, update.loser_new_rating) == (1208, 1192)

    def test_shutout_beats_narrow_win_at_equal_ratings(self):
        shutout = calculate_rating_update(1200, 1200, 6, 0)
        narrow = calculate_rating_update(1200, 1200, 7, 6)
        assert shutout.delta == 24
        assert narrow.delta == 18
        assert shutout.delta > narrow.delta

    def test_delta_is_measured_from_the_unrounded_rating(self):
        update = calculate_rating_update(1200.4, 1200)
        assert update.winner_new_rating == 1216
        assert update.delta == pytest.approx(15.6)

    def test_winner_never_loses_points(self):
        for winner, loser in [(800, 2400), (2400, 800), (1200, 1200)]:
            update = calculate_rating_update(winner, loser, 3, 0)
            assert update.delta >= 0
            assert update.loser_new_rating <= loser


class TestRounding:
    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, 0), (1216.49, 1216)])
    def test_half_up(self, value, expected):
        assert _round_half_up(value) == expected
