"""
Leitner box scheduling with an optional SM-2 ease-factor variant.

Box transitions:
    score <= 2  -> back to box 1 (failed recall, full reset)
    score >= 3  -> advance one box, capped at 5

Review intervals by box:
    1: +1 day, 2: +3 days, 3: +7 days, 4: +14 days, 5: +30 days
    (anything else: +1 day)

Score scale (0-5):
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .errors import InvalidScore
from .models import MAX_BOX, MAX_SCORE, MIN_BOX, MIN_SCORE, ProgressSnapshot, is_correct

if TYPE_CHECKING:
    from config import Settings

# =============================================================================
# Pure scheduling functions
# =============================================================================

BOX_INTERVAL_DAYS: dict[int, int] = {1: 1, 2: 3, 3: 7, 4: 14, 5: 30}
DEFAULT_INTERVAL_DAYS = 1

FAILED_RECALL_MAX_SCORE = 2

BASE_XP = Decimal(10)
XP_BY_SCORE: dict[int, Decimal] = {
    0: Decimal(5),
    1: Decimal(5),
    2: Decimal(8),
    3: BASE_XP,
    4: BASE_XP * Decimal("1.2"),
    5: BASE_XP * Decimal("1.5"),
}


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in the progress table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def validate_score(score: object) -> int:
    """Return the score if it is an int in [0, 5], else raise InvalidScore."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore(score)
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidScore(score)
    return score


def clamp_box(box_number: int) -> int:
    return max(MIN_BOX, min(box_number, MAX_BOX))


def next_box_number(current_box: int, score: int) -> int:
    """Any failure resets to box 1; any pass advances exactly one box."""
    score = validate_score(score)
    if score <= FAILED_RECALL_MAX_SCORE:
        return MIN_BOX
    return min(clamp_box(current_box) + 1, MAX_BOX)


def initial_box_number(score: int) -> int:
    """Box for a card answered for the first time."""
    return 2 if is_correct(validate_score(score)) else 1


def review_interval_days(box_number: int) -> int:
    return BOX_INTERVAL_DAYS.get(box_number, DEFAULT_INTERVAL_DAYS)


def next_review_date(box_number: int, now: datetime) -> datetime:
    return now + timedelta(days=review_interval_days(box_number))


def xp_gain(score: int) -> int:
    """XP earned for a score, rounded half-up to a whole number."""
    amount = XP_BY_SCORE[validate_score(score)]
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def next_card_streak(score: int, streak: int) -> int:
    return streak + 1 if is_correct(validate_score(score)) else 0


# =============================================================================
# Strategies
# =============================================================================


@dataclass(frozen=True)
class ScheduleDecision:
    """New scheduling fields for a card after one answer."""

    box_number: int
    next_review_at: datetime
    interval_days: int | None = None
    ease_factor: float | None = None


class LeitnerStrategy:
    """
    Fixed box table. The default strategy.

    Ease-factor fields are carried over untouched so switching strategies
    does not discard them.
    """

    name = "leitner"

    def schedule(self, previous: ProgressSnapshot | None, score: int, now: datetime) -> ScheduleDecision:
        if previous is None:
            box = initial_box_number(score)
        else:
            box = next_box_number(previous.box_number, score)

        return ScheduleDecision(
            box_number=box,
            next_review_at=next_review_date(box, now),
            interval_days=previous.interval_days if previous else None,
            ease_factor=previous.ease_factor if previous else None,
        )


@dataclass
class SM2Config:
    """Configuration for the SM-2 computation."""

    initial_ease: float = 2.5
    minimum_ease: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review


class EaseFactorStrategy:
    """
    SM-2 ease factor and interval.

    Box bookkeeping still follows the Leitner transition so box views stay
    meaningful; only the due date comes from the SM-2 interval.

    SM-2 counts consecutive passes (score >= 3), which is not the card
    streak: a score of 3 breaks the streak but must not restart the
    interval progression. There is no column for the count, so it is
    recovered from the stored interval, see ``_repetitions``.
    """

    name = "ease_factor"

    def __init__(self, config: SM2Config | None = None):
        self.config = config or SM2Config()

    def _repetitions(self, previous: ProgressSnapshot | None) -> int:
        """0 after a failure or on a new card, 1 after the first pass, 2 or more after that."""
        if previous is None or not previous.interval_days:
            return 0
        if previous.last_score is None or previous.last_score <= FAILED_RECALL_MAX_SCORE:
            return 0
        if previous.interval_days < self.config.second_interval:
            return 1
        return 2

    def schedule(self, previous: ProgressSnapshot | None, score: int, now: datetime) -> ScheduleDecision:
        score = validate_score(score)
        ease = previous.ease_factor if previous and previous.ease_factor else self.config.initial_ease
        interval = previous.interval_days if previous and previous.interval_days else 0
        repetitions = self._repetitions(previous)

        # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        ef_delta = 0.1 - (5 - score) * (0.08 + (5 - score) * 0.02)
        new_ease = max(self.config.minimum_ease, ease + ef_delta)

        if score <= FAILED_RECALL_MAX_SCORE:
            new_interval = self.config.first_interval
        elif repetitions == 0:
            new_interval = self.config.first_interval
        elif repetitions == 1:
            new_interval = self.config.second_interval
        else:
            new_interval = max(1, round(interval * new_ease))

        if previous is None:
            box = initial_box_number(score)
        else:
            box = next_box_number(previous.box_number, score)

        return ScheduleDecision(
            box_number=box,
            next_review_at=now + timedelta(days=new_interval),
            interval_days=new_interval,
            ease_factor=round(new_ease, 2),
        )


SchedulingStrategy = LeitnerStrategy | EaseFactorStrategy


def build_strategy(settings: Settings) -> SchedulingStrategy:
    """Pick the strategy named in settings; the two are never mixed."""
    if settings.scheduler_strategy == "ease_factor":
        return EaseFactorStrategy(SM2Config(**settings.get_sm2_config()))
    return LeitnerStrategy()
