from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    KNOWN = "known"


class RecallRating(str, Enum):
    EASY = "easy"
    GOOD = "good"
    HARD = "hard"
    FORGOT = "forgot"


class FilterType(str, Enum):
    ALL = "all"
    DIFFICULT = "difficult"
    EASY = "easy"
    NEW = "new"
    MASTERED = "mastered"


class SortType(str, Enum):
    DEFAULT = "default"
    NEWEST = "newest"
    OLDEST = "oldest"
    DIFFICULTY = "difficulty"


class ReviewCategory(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    ALL = "all"
    DUE = "due"


class SummaryMessage(str, Enum):
    EXCELLENT = "excellent"
    GREAT = "great"
    GOOD_START = "good_start"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Flashcard(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    card_id: str = Field(..., alias="id", serialization_alias="id")
    question: str
    answer: str
    status: CardStatus = CardStatus.NEW
    last_recall_rating: RecallRating | None = None
    next_review_at: datetime | None = None
    created_at: datetime
    source_note_id: str | None = None

    # Scheduling state, read-only here
    ease_factor: float = 2.5
    review_interval: int = 0
    repetitions: int = 0
    last_reviewed_at: datetime | None = None

    @field_validator("card_id", "source_note_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        # Persistence may hand back integer or UUID keys
        if value is None:
            return None
        return str(value)

    @field_validator("created_at", "next_review_at", "last_reviewed_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return as_utc(value)


Deck = List[Flashcard]
