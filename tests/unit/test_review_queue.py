"""Unit tests for review queue building."""
import random
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from recall_engine.data_objects import Flashcard
from recall_engine.review_queue import (
    ReviewQueueBuilder,
    build,
    difficulty_score,
    is_due,
    restart,
    shuffle,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_card(card_id, status="new", rating=None, next_review_at=None, created_days_ago=0, note=None):
    return Flashcard(
        id=card_id,
        question=f"Question {card_id}",
        answer=f"Answer {card_id}",
        status=status,
        last_recall_rating=rating,
        next_review_at=next_review_at,
        created_at=NOW - timedelta(days=created_days_ago),
        source_note_id=note,
    )


def ids(queue):
    return [card.card_id for card in queue]


class TestIsDue:
    """Test suite for due-ness."""

    def test_missing_timestamp_is_due(self):
        """Test that a card without a next review is due."""
        assert is_due(make_card("a"), NOW)

    def test_past_and_present_are_due(self):
        """Test that cards scheduled now or earlier are due."""
        assert is_due(make_card("a", next_review_at=NOW - timedelta(minutes=1)), NOW)
        assert is_due(make_card("b", next_review_at=NOW), NOW)

    def test_future_is_not_due(self):
        """Test that cards scheduled later are not due."""
        assert not is_due(make_card("a", next_review_at=NOW + timedelta(minutes=1)), NOW)

    def test_naive_timestamps_are_utc(self):
        """Test that naive timestamps are compared as UTC."""
        card = make_card("a", next_review_at=datetime(2024, 6, 1, 11, 0))

        assert is_due(card, datetime(2024, 6, 1, 12, 0))
        assert is_due(card, NOW)


class TestFilters:
    """Test suite for learner-facing filters."""

    @pytest.fixture
    def deck(self):
        return [
            make_card("new-hard", status="new", rating="hard"),
            make_card("learning-forgot", status="learning", rating="forgot"),
            make_card("known-easy", status="known", rating="easy"),
            make_card("known-hard", status="known", rating="hard"),
            make_card("learning-good", status="learning", rating="good"),
            make_card("new-unrated", status="new"),
        ]

    def test_all_is_a_permutation(self, deck):
        """Test that the 'all' filter keeps every card."""
        queue = build(deck, "all", "default", now=NOW)

        assert sorted(ids(queue)) == sorted(ids(deck))

    def test_difficult_keeps_hard_and_forgot(self, deck):
        """Test that 'difficult' keeps hard and forgotten cards."""
        queue = build(deck, "difficult", "oldest", now=NOW)

        assert set(ids(queue)) == {"new-hard", "learning-forgot", "known-hard"}

    def test_easy_keeps_easy_ratings(self, deck):
        """Test that 'easy' keeps only easy-rated cards."""
        assert ids(build(deck, "easy", now=NOW)) == ["known-easy"]

    def test_new_keeps_new_status(self, deck):
        """Test that 'new' keeps only new cards."""
        queue = build(deck, "new", now=NOW)

        assert all(card.status == "new" for card in queue)
        assert set(ids(queue)) == {"new-hard", "new-unrated"}

    def test_mastered_keeps_known_status(self, deck):
        """Test that 'mastered' keeps only known cards."""
        assert set(ids(build(deck, "mastered", now=NOW))) == {"known-easy", "known-hard"}

    def test_no_match_is_empty_not_error(self, deck):
        """Test that a filter with no matches returns an empty queue."""
        assert build(deck[:1], "mastered", now=NOW) == []
        assert build([], "all", now=NOW) == []

    def test_unknown_filter_rejected(self, deck):
        """Test that an unknown filter raises ValueError."""
        with pytest.raises(ValueError):
            build(deck, "bogus", now=NOW)


class TestScope:
    """Test suite for note scoping."""

    def test_scope_applied_before_filter(self):
        """Test that note scoping narrows the deck before filtering."""
        deck = [
            make_card("n1-new", status="new", note="n1"),
            make_card("n1-known", status="known", note="n1"),
            make_card("n2-new", status="new", note="n2"),
            make_card("orphan", status="new"),
        ]

        assert ids(build(deck, "all", scope_note_id="n1", now=NOW)) == ["n1-new", "n1-known"]
        assert ids(build(deck, "new", scope_note_id="n1", now=NOW)) == ["n1-new"]
        assert build(deck, "all", scope_note_id="missing", now=NOW) == []


class TestSorting:
    """Test suite for queue ordering."""

    def test_end_to_end_default_order(self):
        """Test the default order for a mixed three-card deck."""
        deck = [
            make_card("A", status="new"),
            make_card("B", status="known", next_review_at=NOW + timedelta(days=1)),
            make_card("C", status="learning", next_review_at=NOW - timedelta(days=1)),
        ]

        assert ids(build(deck, "all", "default", now=NOW)) == ["A", "C", "B"]

    def test_default_puts_due_first_then_status(self):
        """Test that due cards come first, then new, learning, known."""
        later = NOW + timedelta(days=3)
        deck = [
            make_card("known-later", status="known", next_review_at=later),
            make_card("new-later", status="new", next_review_at=later),
            make_card("known-due", status="known"),
            make_card("learning-later", status="learning", next_review_at=later),
            make_card("learning-due", status="learning", next_review_at=NOW),
            make_card("new-due", status="new"),
        ]

        assert ids(build(deck, now=NOW)) == [
            "new-due",
            "learning-due",
            "known-due",
            "new-later",
            "learning-later",
            "known-later",
        ]

    def test_default_is_stable(self):
        """Test that ties keep the deck order."""
        deck = [make_card(f"card-{i}", status="new") for i in range(5)]

        assert ids(build(deck, now=NOW)) == ids(deck)

    def test_newest_and_oldest(self):
        """Test sorting by creation time in both directions."""
        deck = [
            make_card("middle", created_days_ago=5),
            make_card("newest", created_days_ago=1),
            make_card("oldest", created_days_ago=9),
        ]

        assert ids(build(deck, sort_type="newest", now=NOW)) == ["newest", "middle", "oldest"]
        assert ids(build(deck, sort_type="oldest", now=NOW)) == ["oldest", "middle", "newest"]

    def test_difficulty_hardest_first(self):
        """Test that the difficulty sort puts the hardest cards first."""
        deck = [
            make_card("easy", rating="easy"),
            make_card("good", rating="good"),
            make_card("unrated"),
            make_card("hard", rating="hard"),
            make_card("forgot", rating="forgot"),
        ]

        assert ids(build(deck, sort_type="difficulty", now=NOW)) == [
            "unrated",
            "forgot",
            "hard",
            "good",
            "easy",
        ]

    def test_unrated_counts_as_forgot(self):
        """Test that unrated cards share the forgot difficulty score."""
        assert difficulty_score(make_card("x")) == 0
        assert difficulty_score(make_card("y", rating="forgot")) == 0

    def test_input_deck_is_not_reordered(self):
        """Test that building a queue leaves the deck untouched."""
        deck = [make_card("later", status="known", next_review_at=NOW + timedelta(days=1)), make_card("due")]
        before = ids(deck)

        build(deck, now=NOW)

        assert ids(deck) == before


class TestShuffleAndRestart:
    """Test suite for shuffling and restarting a queue."""

    @pytest.fixture
    def deck(self):
        return [
            make_card("A", status="new"),
            make_card("B", status="known", next_review_at=NOW + timedelta(days=1)),
            make_card("C", status="learning"),
            make_card("D", status="learning", next_review_at=NOW + timedelta(days=2)),
            make_card("E", status="known"),
        ]

    def test_shuffle_is_a_permutation(self, deck):
        """Test that shuffling keeps the same cards."""
        queue = build(deck, now=NOW)
        shuffled = shuffle(queue, random.Random(42))

        assert sorted(ids(shuffled)) == sorted(ids(queue))

    def test_shuffle_returns_new_list(self, deck):
        """Test that shuffling does not modify the given queue."""
        queue = build(deck, now=NOW)
        before = ids(queue)
        shuffled = shuffle(queue, random.Random(1))

        assert shuffled is not queue
        assert ids(queue) == before

    def test_shuffle_deterministic_with_seed(self, deck):
        """Test that equal seeds give equal shuffles."""
        queue = build(deck, now=NOW)

        assert ids(shuffle(queue, random.Random(7))) == ids(shuffle(queue, random.Random(7)))

    def test_builder_uses_injected_rng(self, deck):
        """Test that the builder shuffles with its own random source."""
        first = ReviewQueueBuilder(rng=random.Random(3))
        second = ReviewQueueBuilder(rng=random.Random(3))

        assert ids(first.shuffle(deck)) == ids(second.shuffle(deck))

    def test_restart_reproduces_default_order(self, deck):
        """Test that restarting after a shuffle restores the default order."""
        original = build(deck, "all", "default", now=NOW)
        shuffled = shuffle(original, random.Random(11))

        assert sorted(ids(shuffled)) == sorted(ids(original))
        restarted = restart(deck, "all", "default", now=NOW)
        assert isinstance(restarted, list)
        assert restarted == original
        assert ids(build(deck, "all", "default", now=NOW)) == ids(original)

    def test_shuffle_small_queues(self):
        """Test shuffling empty and single-card queues."""
        assert shuffle([], random.Random(0)) == []
        single = [make_card("only")]
        assert ids(shuffle(single, random.Random(0))) == ["only"]

    def test_shuffle_is_roughly_uniform(self):
        """Test that every permutation of three cards is about equally likely."""
        deck = [make_card("A"), make_card("B"), make_card("C")]
        rng = random.Random(2024)
        counts = Counter(tuple(ids(shuffle(deck, rng))) for _ in range(6000))

        assert len(counts) == 6
        assert all(800 < count < 1200 for count in counts.values())
