from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from recall_engine.data_objects import CardStatus, RecallRating, SummaryMessage


class ScoringResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Raw components
    overall_similarity: float = Field(..., ge=0.0, le=1.0, alias="overallSimilarity")
    keyword_score: float = Field(..., ge=0.0, le=1.0, alias="keywordScore")
    missing_keywords: List[str] = Field(default_factory=list, alias="missingKeywords")

    # Weighted outcome
    final_score: float = Field(..., ge=0.0, le=1.0, alias="finalScore")
    rating: RecallRating


class ScheduleUpdate(BaseModel):
    """Fields the persistence collaborator should write after a rating."""

    model_config = ConfigDict(populate_by_name=True)

    last_recall_rating: RecallRating | None
    status: CardStatus
    ease_factor: float
    review_interval: int
    repetitions: int
    last_reviewed_at: datetime
    next_review_at: datetime


class SessionStats(BaseModel):
    total_cards: int = 0
    known_cards: int = 0
    learning_cards: int = 0
    new_cards: int = 0

    known_percentage: int = 0
    learning_percentage: int = 0
    new_percentage: int = 0

    message: SummaryMessage = SummaryMessage.GOOD_START
