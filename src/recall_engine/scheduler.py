"""SM-2 spaced repetition extension.

Not used by scoring or queue building. It turns a recall rating into the
schedule fields the persistence collaborator stores on a card.

Ratings map to SM-2 quality as easy=5, good=4, hard=3, forgot=0. A forgotten
card (or one without a rating) restarts with a one day interval and a
lowered ease factor. Otherwise the interval goes 1 day, 6 days, then grows
by the card's ease factor as it stood before the review.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from recall_engine.config import RecallSettings, settings
from recall_engine.data_objects import CardStatus, Flashcard, RecallRating, as_utc
from recall_engine.review_models import ScheduleUpdate
from recall_engine.review_queue import utcnow

LOG = logging.getLogger(__name__)

QUALITY = {
    RecallRating.EASY: 5,
    RecallRating.GOOD: 4,
    RecallRating.HARD: 3,
    RecallRating.FORGOT: 0,
}
FAILED_EASE_PENALTY = 0.2
KNOWN_AFTER_REPETITIONS = 2


class Schedule(NamedTuple):
    ease_factor: float
    review_interval: int
    repetitions: int


def initial_schedule(config: RecallSettings = settings) -> Schedule:
    return Schedule(
        ease_factor=config.initial_ease_factor, review_interval=0, repetitions=0
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_next_review(
    ease_factor: float,
    review_interval: int,
    repetitions: int,
    rating: Optional[RecallRating],
    minimum_ease: float = 1.3,
) -> Schedule:
    if rating is None or rating == RecallRating.FORGOT:
        return Schedule(
            ease_factor=max(minimum_ease, ease_factor - FAILED_EASE_PENALTY),
            review_interval=1,
            repetitions=0,
        )

    q = QUALITY[RecallRating(rating)]
    new_ease = ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))

    if repetitions == 0:
        new_interval = 1
    elif repetitions == 1:
        new_interval = 6
    else:
        new_interval = _round_half_up(review_interval * ease_factor)

    return Schedule(
        ease_factor=max(minimum_ease, new_ease),
        review_interval=new_interval,
        repetitions=repetitions + 1,
    )


def next_review_date(review_interval: int, now: Optional[datetime] = None) -> datetime:
    now = as_utc(now) if now is not None else utcnow()
    return now + timedelta(days=review_interval)


def derive_status(rating: RecallRating, repetitions: int) -> CardStatus:
    """Status after a rating, given the repetition count it produced."""
    if rating in (RecallRating.EASY, RecallRating.GOOD) and repetitions >= KNOWN_AFTER_REPETITIONS:
        return CardStatus.KNOWN
    return CardStatus.LEARNING


def propose_update(
    card: Flashcard,
    rating: RecallRating | str,
    now: Optional[datetime] = None,
    config: RecallSettings = settings,
) -> ScheduleUpdate:
    """Compute the schedule fields to persist after ``card`` was rated."""
    rating = RecallRating(rating)
    now = as_utc(now) if now is not None else utcnow()

    schedule = calculate_next_review(
        card.ease_factor,
        card.review_interval,
        card.repetitions,
        rating,
        minimum_ease=config.minimum_ease_factor,
    )
    status = derive_status(rating, schedule.repetitions)

    LOG.debug(
        "Card %s rated %s: interval %d -> %d, ease %.2f -> %.2f, status %s",
        card.card_id,
        rating.value,
        card.review_interval,
        schedule.review_interval,
        card.ease_factor,
        schedule.ease_factor,
        status.value,
    )
    return ScheduleUpdate(
        last_recall_rating=rating,
        status=status,
        ease_factor=schedule.ease_factor,
        review_interval=schedule.review_interval,
        repetitions=schedule.repetitions,
        last_reviewed_at=now,
        next_review_at=next_review_date(schedule.review_interval, now),
    )


def propose_status_change(
    card: Flashcard,
    status: CardStatus | str,
    now: Optional[datetime] = None,
    config: RecallSettings = settings,
) -> ScheduleUpdate:
    """Manual status marking: known cards come back in a week, others tomorrow."""
    status = CardStatus(status)
    now = as_utc(now) if now is not None else utcnow()
    days = config.known_review_days if status == CardStatus.KNOWN else config.relearn_review_days

    return ScheduleUpdate(
        last_recall_rating=card.last_recall_rating,
        status=status,
        ease_factor=card.ease_factor,
        review_interval=card.review_interval,
        repetitions=card.repetitions,
        last_reviewed_at=now,
        next_review_at=now + timedelta(days=days),
    )
