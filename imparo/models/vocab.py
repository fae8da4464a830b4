from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from imparo.constants import MAX_MASTERY, MIN_MASTERY


@dataclass
class VocabularyItem:
    term: str
    translation: str
    pronunciation: str = ""
    example: str = ""
    example_translation: str = ""
    week: int = 1
    mastery_level: int = MIN_MASTERY
    learned_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None
    correct_streak: int = 0
    incorrect_streak: int = 0

    def __post_init__(self):
        if not (self.term or "").strip():
            raise ValueError("VocabularyItem needs a term")
        self.mastery_level = max(MIN_MASTERY, min(MAX_MASTERY, int(self.mastery_level)))
