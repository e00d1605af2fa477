from abc import ABC, abstractmethod
from typing import Optional

from recall_engine.data_objects import Deck
from recall_engine.review_models import ScheduleUpdate


class AbstractDeckSource(ABC):
    @abstractmethod
    async def aload_deck(self, scope_id: Optional[str] = None) -> Deck:
        """Fetch the flashcards eligible for a review session."""
        raise NotImplementedError


class AbstractRatingSink(ABC):
    @abstractmethod
    async def aapply_rating(self, card_id: str, update: ScheduleUpdate) -> None:
        """Persist the new schedule fields for a rated card."""
        raise NotImplementedError
