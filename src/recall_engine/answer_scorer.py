"""Local scoring of free-typed flashcard answers.

A typed answer is compared against the card's reference answer in two ways:
keyword coverage (does the answer mention the important words of the
reference?) and overall character-level similarity. The weighted blend is
mapped onto a recall rating that the scheduler understands.
"""
import logging
import re
from collections import Counter
from typing import List

from recall_engine.config import RecallSettings
from recall_engine.data_objects import RecallRating
from recall_engine.review_models import ScoringResult

LOG = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
_STOP_WORDS = frozenset(
    ["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"]
)
_MIN_KEYWORD_LENGTH = 4


def extract_keywords(text: str) -> List[str]:
    """Return the significant words of ``text`` in order, duplicates kept."""
    clean = _PUNCTUATION.sub("", text.lower())
    return [
        word
        for word in clean.split()
        if len(word) >= _MIN_KEYWORD_LENGTH and word not in _STOP_WORDS
    ]


def _bigrams(text: str) -> Counter:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def similarity(a: str, b: str) -> float:
    """Dice coefficient over character bigrams, in [0, 1]."""
    a = a.strip().lower()
    b = b.strip().lower()

    if len(a) < 2 or len(b) < 2:
        return 1.0 if a == b else 0.0

    first = _bigrams(a)
    second = _bigrams(b)
    overlap = sum((first & second).values())
    return 2.0 * overlap / (sum(first.values()) + sum(second.values()))


class AnswerScorer:
    def __init__(
        self,
        keyword_weight: float = 0.6,
        similarity_weight: float = 0.4,
        keyword_match_threshold: float = 0.8,
        easy_threshold: float = 0.9,
        good_threshold: float = 0.7,
        hard_threshold: float = 0.5,
    ) -> None:
        self.keyword_weight = keyword_weight
        self.similarity_weight = similarity_weight
        self.keyword_match_threshold = keyword_match_threshold
        self.easy_threshold = easy_threshold
        self.good_threshold = good_threshold
        self.hard_threshold = hard_threshold

    @classmethod
    def from_settings(cls, config: RecallSettings) -> "AnswerScorer":
        return cls(
            keyword_weight=config.keyword_weight,
            similarity_weight=config.similarity_weight,
            keyword_match_threshold=config.keyword_match_threshold,
            easy_threshold=config.easy_threshold,
            good_threshold=config.good_threshold,
            hard_threshold=config.hard_threshold,
        )

    def classify(self, final_score: float) -> RecallRating:
        """Map a final score onto a recall rating, first match wins."""
        if final_score >= self.easy_threshold:
            return RecallRating.EASY
        if final_score >= self.good_threshold:
            return RecallRating.GOOD
        if final_score >= self.hard_threshold:
            return RecallRating.HARD
        return RecallRating.FORGOT

    def _is_matched(self, keyword: str, user_keywords: List[str]) -> bool:
        return any(
            similarity(word, keyword) > self.keyword_match_threshold
            for word in user_keywords
        )

    def score(self, user_answer: str, reference_answer: str) -> ScoringResult:
        """Score ``user_answer`` against ``reference_answer``.

        Total over all strings: empty or punctuation-only answers simply
        score low. A reference without keywords yields a keyword score of
        1.0 since there is nothing to miss.
        """
        overall = similarity(user_answer, reference_answer)

        reference_keywords = extract_keywords(reference_answer)
        user_keywords = extract_keywords(user_answer)

        missing = [
            keyword
            for keyword in reference_keywords
            if not self._is_matched(keyword, user_keywords)
        ]
        if reference_keywords:
            matched = len(reference_keywords) - len(missing)
            keyword_score = matched / len(reference_keywords)
        else:
            keyword_score = 1.0

        final = self.keyword_weight * keyword_score + self.similarity_weight * overall
        final = min(1.0, max(0.0, final))
        rating = self.classify(final)

        LOG.debug(
            "Scored answer: keywords=%.3f similarity=%.3f final=%.3f rating=%s",
            keyword_score,
            overall,
            final,
            rating.value,
        )
        return ScoringResult(
            overall_similarity=overall,
            keyword_score=keyword_score,
            missing_keywords=missing,
            final_score=final,
            rating=rating,
        )


default_scorer = AnswerScorer()


def score(user_answer: str, reference_answer: str) -> ScoringResult:
    return default_scorer.score(user_answer, reference_answer)


def classify(final_score: float) -> RecallRating:
    return default_scorer.classify(final_score)
