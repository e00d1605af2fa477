"""Ordering of the cards a learner works through in one sitting."""
import logging
import random
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from recall_engine.data_objects import (
    CardStatus,
    Deck,
    FilterType,
    Flashcard,
    RecallRating,
    SortType,
    as_utc,
)

LOG = logging.getLogger(__name__)

_DIFFICULTY_SCORE = {
    RecallRating.FORGOT: 0,
    RecallRating.HARD: 1,
    RecallRating.GOOD: 2,
    RecallRating.EASY: 3,
}
_STATUS_SCORE = {
    CardStatus.NEW: 0,
    CardStatus.LEARNING: 1,
    CardStatus.KNOWN: 2,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_due(card: Flashcard, now: datetime) -> bool:
    """A card without a next review timestamp is always due."""
    if card.next_review_at is None:
        return True
    return card.next_review_at <= as_utc(now)


def difficulty_score(card: Flashcard) -> int:
    if card.last_recall_rating is None:
        return 0
    return _DIFFICULTY_SCORE[card.last_recall_rating]


def _matches(card: Flashcard, filter_type: FilterType) -> bool:
    match filter_type:
        case FilterType.DIFFICULT:
            return card.last_recall_rating in (RecallRating.HARD, RecallRating.FORGOT)
        case FilterType.EASY:
            return card.last_recall_rating == RecallRating.EASY
        case FilterType.NEW:
            return card.status == CardStatus.NEW
        case FilterType.MASTERED:
            return card.status == CardStatus.KNOWN
        case _:
            return True


class ReviewQueueBuilder:
    """Derives review queues from a deck and the learner's filter/sort choice.

    The builder keeps no state between calls, so a queue can always be
    recomputed from ``(cards, filter_type, sort_type)`` no matter how the
    previous queue was shuffled.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def build(
        self,
        cards: Iterable[Flashcard],
        filter_type: FilterType | str = FilterType.ALL,
        sort_type: SortType | str = SortType.DEFAULT,
        scope_note_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Deck:
        filter_type = FilterType(filter_type)
        sort_type = SortType(sort_type)
        now = as_utc(now) if now is not None else utcnow()

        queue = list(cards)
        total = len(queue)

        if scope_note_id is not None:
            queue = [card for card in queue if card.source_note_id == scope_note_id]

        queue = [card for card in queue if _matches(card, filter_type)]

        # sorted() is stable, ties keep deck order
        match sort_type:
            case SortType.NEWEST:
                queue = sorted(queue, key=lambda card: card.created_at, reverse=True)
            case SortType.OLDEST:
                queue = sorted(queue, key=lambda card: card.created_at)
            case SortType.DIFFICULTY:
                queue = sorted(queue, key=difficulty_score)
            case _:
                queue = sorted(
                    queue,
                    key=lambda card: (
                        0 if is_due(card, now) else 1,
                        _STATUS_SCORE[card.status],
                    ),
                )

        LOG.debug(
            "Built queue of %d/%d cards (filter=%s, sort=%s, note=%s)",
            len(queue),
            total,
            filter_type.value,
            sort_type.value,
            scope_note_id,
        )
        return queue

    def shuffle(self, queue: Sequence[Flashcard], rng: Optional[random.Random] = None) -> Deck:
        """Return a uniformly shuffled copy of ``queue`` (Fisher-Yates)."""
        rng = rng or self.rng
        shuffled = list(queue)
        for i in range(len(shuffled) - 1, 0, -1):
            j = rng.randrange(i + 1)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def restart(
        self,
        cards: Iterable[Flashcard],
        filter_type: FilterType | str = FilterType.ALL,
        sort_type: SortType | str = SortType.DEFAULT,
        scope_note_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Deck:
        """Recompute the canonical order, discarding any earlier shuffle."""
        return self.build(cards, filter_type, sort_type, scope_note_id, now)


default_builder = ReviewQueueBuilder()


def build(
    cards: Iterable[Flashcard],
    filter_type: FilterType | str = FilterType.ALL,
    sort_type: SortType | str = SortType.DEFAULT,
    scope_note_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Deck:
    return default_builder.build(cards, filter_type, sort_type, scope_note_id, now)


def shuffle(queue: Sequence[Flashcard], rng: Optional[random.Random] = None) -> Deck:
    return default_builder.shuffle(queue, rng)


def restart(
    cards: Iterable[Flashcard],
    filter_type: FilterType | str = FilterType.ALL,
    sort_type: SortType | str = SortType.DEFAULT,
    scope_note_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Deck:
    return default_builder.restart(cards, filter_type, sort_type, scope_note_id, now)
