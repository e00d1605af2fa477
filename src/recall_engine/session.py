import logging
import math
import random
from datetime import datetime
from typing import Iterable, List, Optional

from recall_engine.answer_scorer import AnswerScorer, default_scorer
from recall_engine.data_objects import (
    CardStatus,
    Deck,
    FilterType,
    Flashcard,
    RecallRating,
    ReviewCategory,
    SortType,
    SummaryMessage,
)
from recall_engine.deck_base import AbstractDeckSource, AbstractRatingSink
from recall_engine.review_models import ScheduleUpdate, ScoringResult, SessionStats
from recall_engine.review_queue import ReviewQueueBuilder, default_builder, is_due, utcnow
from recall_engine.scheduler import propose_update

LOG = logging.getLogger(__name__)


def _percentage(count: int, total: int) -> int:
    if total == 0:
        return 0
    return int(math.floor(count * 100 / total + 0.5))


def summarize(cards: Iterable[Flashcard]) -> SessionStats:
    """Count cards per status and pick the end-of-session message."""
    cards = list(cards)
    total = len(cards)
    known = sum(1 for card in cards if card.status == CardStatus.KNOWN)
    learning = sum(1 for card in cards if card.status == CardStatus.LEARNING)
    new = sum(1 for card in cards if card.status == CardStatus.NEW)

    known_percentage = _percentage(known, total)
    if known_percentage >= 80:
        message = SummaryMessage.EXCELLENT
    elif known_percentage >= 50:
        message = SummaryMessage.GREAT
    else:
        message = SummaryMessage.GOOD_START

    return SessionStats(
        total_cards=total,
        known_cards=known,
        learning_cards=learning,
        new_cards=new,
        known_percentage=known_percentage,
        learning_percentage=_percentage(learning, total),
        new_percentage=_percentage(new, total),
        message=message,
    )


def select_category(
    cards: Iterable[Flashcard],
    category: ReviewCategory | str,
    now: Optional[datetime] = None,
    builder: ReviewQueueBuilder = default_builder,
) -> Deck:
    """Cards for a "review again" choice, in default queue order."""
    category = ReviewCategory(category)
    now = now or utcnow()

    match category:
        case ReviewCategory.NEW:
            selected = [card for card in cards if card.status == CardStatus.NEW]
        case ReviewCategory.LEARNING:
            selected = [card for card in cards if card.status == CardStatus.LEARNING]
        case ReviewCategory.DUE:
            selected = [card for card in cards if is_due(card, now)]
        case _:
            selected = list(cards)

    return builder.build(selected, FilterType.ALL, SortType.DEFAULT, now=now)


class ReviewSession:
    """Headless review controller.

    The queue is always derived from the deck and the current filter, sort
    and note scope. The position in the queue is a separate cursor that
    only this object moves.
    """

    def __init__(
        self,
        cards: Iterable[Flashcard],
        filter_type: FilterType | str = FilterType.ALL,
        sort_type: SortType | str = SortType.DEFAULT,
        scope_note_id: Optional[str] = None,
        builder: Optional[ReviewQueueBuilder] = None,
        scorer: Optional[AnswerScorer] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.cards: List[Flashcard] = list(cards)
        self.filter_type = FilterType(filter_type)
        self.sort_type = SortType(sort_type)
        self.scope_note_id = scope_note_id
        self.builder = builder or default_builder
        self.scorer = scorer or default_scorer
        self.now = now

        self.queue: List[Flashcard] = []
        self.current_index: int = 0
        self.last_result: Optional[ScoringResult] = None
        self._rebuild()

    def __len__(self) -> int:
        return len(self.queue)

    @property
    def is_empty(self) -> bool:
        return not self.queue

    @property
    def is_last(self) -> bool:
        return self.current_index >= len(self.queue) - 1

    def _rebuild(self) -> None:
        self.queue = self.builder.build(
            self.cards,
            self.filter_type,
            self.sort_type,
            self.scope_note_id,
            now=self.now,
        )
        self._reset_position()

    def _reset_position(self) -> None:
        self.current_index = 0
        self.last_result = None

    def current(self) -> Optional[Flashcard]:
        """Get the current card or None if the queue is empty"""
        if self.queue and 0 <= self.current_index < len(self.queue):
            return self.queue[self.current_index]
        return None

    def advance(self) -> bool:
        if self.is_last:
            return False
        self.current_index += 1
        self.last_result = None
        return True

    def previous(self) -> bool:
        if self.current_index == 0:
            return False
        self.current_index -= 1
        self.last_result = None
        return True

    def next_card(self) -> Optional[Flashcard]:
        """Manual navigation: step forward, wrapping to the first card."""
        if self.queue:
            self.current_index = (self.current_index + 1) % len(self.queue)
            self.last_result = None
        return self.current()

    def previous_card(self) -> Optional[Flashcard]:
        """Manual navigation: step back, wrapping to the last card."""
        if self.queue:
            self.current_index = (self.current_index - 1) % len(self.queue)
            self.last_result = None
        return self.current()

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        self.queue = self.builder.shuffle(self.queue, rng)
        self._reset_position()

    def restart(self) -> None:
        self._rebuild()

    def change_filter(self, filter_type: FilterType | str) -> None:
        self.filter_type = FilterType(filter_type)
        self._rebuild()

    def change_sort(self, sort_type: SortType | str) -> None:
        self.sort_type = SortType(sort_type)
        self._rebuild()

    def scope_to_note(self, note_id: Optional[str]) -> None:
        self.scope_note_id = note_id
        self._rebuild()

    def review_category(self, category: ReviewCategory | str) -> None:
        scoped = self.cards
        if self.scope_note_id is not None:
            scoped = [card for card in scoped if card.source_note_id == self.scope_note_id]
        self.queue = select_category(scoped, category, now=self.now, builder=self.builder)
        self._reset_position()

    def summary(self) -> SessionStats:
        return summarize(self.queue)

    def submit(self, user_answer: str) -> ScoringResult:
        """Score a typed answer for the current card."""
        card = self.current()
        if card is None:
            raise ValueError("No card to score: the review queue is empty")

        self.last_result = self.scorer.score(user_answer, card.answer)
        return self.last_result

    def _replace_card(self, updated: Flashcard) -> None:
        self.queue[self.current_index] = updated
        self.cards = [
            updated if card.card_id == updated.card_id else card for card in self.cards
        ]

    async def arate(
        self,
        sink: AbstractRatingSink,
        rating: Optional[RecallRating | str] = None,
    ) -> ScheduleUpdate:
        """Hand a rating to the persistence collaborator and move on.

        Without an explicit rating the one from the last ``submit`` is used.
        The cursor stays put when the collaborator fails.
        """
        card = self.current()
        if card is None:
            raise ValueError("No card to rate: the review queue is empty")

        if rating is None:
            if self.last_result is None:
                raise ValueError("No rating given and no answer submitted")
            rating = self.last_result.rating

        update = propose_update(card, rating, now=self.now)
        try:
            await sink.aapply_rating(card.card_id, update)
        except Exception as e:
            LOG.error("Error applying rating to card %s: %s", card.card_id, e)
            raise

        LOG.info(
            "Card %s rated %s, next review %s",
            card.card_id,
            update.last_recall_rating.value,
            update.next_review_at.isoformat(),
        )
        self._replace_card(card.model_copy(update=update.model_dump()))
        if not self.advance():
            self.last_result = None
        return update


async def aload_review_session(
    source: AbstractDeckSource,
    scope_id: Optional[str] = None,
    filter_type: FilterType | str = FilterType.ALL,
    sort_type: SortType | str = SortType.DEFAULT,
    scope_note_id: Optional[str] = None,
    **kwargs,
) -> ReviewSession:
    """Load a deck from the persistence collaborator and open a session on it."""
    try:
        cards = await source.aload_deck(scope_id)
    except Exception as e:
        LOG.error("Error loading deck %s: %s", scope_id, e)
        raise

    LOG.info("Loaded %d cards for review (scope: %s)", len(cards), scope_id)
    return ReviewSession(cards, filter_type, sort_type, scope_note_id, **kwargs)
