"""
Rating engine: Elo with an optional score-margin multiplier.

- Expected score: E = 1 / (1 + 10^((R_opp - R_self) / 400))
- Rating update:  R_new = round(R_old + K * M * (S - E))

where M is 1.0 unless both scores are known, in which case it grows from
1.0 (narrow win) to 1.5 (shutout) with the log-ratio of margin to total.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)

K_FACTOR = 32
MAX_MARGIN_MULTIPLIER = 1.5


@dataclass(frozen=True)
class RatingUpdate:
    """New ratings for both sides of one decided match."""

    winner_new_rating: int
    loser_new_rating: int
    delta: float   # winner_new_rating - winner_rating; whole for whole ratings


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability that A beats B under the logistic Elo model."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / 400))


def margin_multiplier(winner_score: float, loser_score: float) -> float:
    """
    Scale factor in [1.0, 1.5] for how decisive a win was.

    Returns 1.0 when there is no margin information (total <= 0) or the
    scores don't describe a win (winner_score <= loser_score).
    """
    total = winner_score + loser_score
    if total <= 0 or winner_score <= loser_score:
        return 1.0
    diff = winner_score - loser_score
    bonus = (math.log(1 + diff) / math.log(1 + total)) * (MAX_MARGIN_MULTIPLIER - 1.0)
    return min(MAX_MARGIN_MULTIPLIER, max(1.0, 1.0 + bonus))


def calculate_rating_update(
    winner_rating: float,
    loser_rating: float,
    winner_score: float | None = None,
    loser_score: float | None = None,
    *,
    k_factor: float = K_FACTOR,
) -> RatingUpdate:
    """
    Compute both players' new ratings.  Pure; never raises on numeric input.

    ``delta`` is the rounded new rating minus the old rating as given, so a
    fractional old rating gives a fractional delta.
    """
    multiplier = 1.0
    if winner_score is not None and loser_score is not None:
        multiplier = margin_multiplier(winner_score, loser_score)

    winner_expected = expected_score(winner_rating, loser_rating)
    loser_expected = expected_score(loser_rating, winner_rating)

    winner_new = _round_half_up(winner_rating + k_factor * multiplier * (1 - winner_expected))
    loser_new = _round_half_up(loser_rating + k_factor * multiplier * (0 - loser_expected))

    update = RatingUpdate(
        winner_new_rating=winner_new,
        loser_new_rating=loser_new,
        delta=winner_new - winner_rating,
    )
    logger.debug(
        "Rating update %s vs %s (x%.3f) -> %d / %d",
        winner_rating, loser_rating, multiplier, winner_new, loser_new,
    )
    return update


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; ratings use half-up.
    return math.floor(value + 0.5)
