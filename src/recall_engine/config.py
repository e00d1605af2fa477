from pydantic_settings import BaseSettings


class RecallSettings(BaseSettings):
    # Answer scoring
    keyword_weight: float = 0.6
    similarity_weight: float = 0.4
    keyword_match_threshold: float = 0.8  # strict ">" comparison
    easy_threshold: float = 0.9
    good_threshold: float = 0.7
    hard_threshold: float = 0.5

    # SM-2 scheduling
    initial_ease_factor: float = 2.5
    minimum_ease_factor: float = 1.3
    known_review_days: int = 7
    relearn_review_days: int = 1

    model_config = {"env_prefix": "RECALL_"}


settings = RecallSettings()
