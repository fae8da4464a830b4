from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from imparo.models.vocab import VocabularyItem


class ReviewStyle(str, Enum):
    PRODUCTION = "production"    # translate into the target language
    CLOZE = "cloze"              # fill the blank in the example sentence
    RECOGNITION = "recognition"  # say what the term means


@dataclass
class ReviewQuestion:
    style: ReviewStyle
    prompt: str
    answer: str
    explanation: str
    item: VocabularyItem


@dataclass
class ReviewQuiz:
    title: str
    questions: List[ReviewQuestion]
    instructions: str = "Test your recall! Try to remember without looking at the answer."

    @property
    def words_count(self) -> int:
        return len(self.questions)


@dataclass
class QuizQuestion:
    kind: str
    question: str
    answer: str
    explanation: str = ""
    question_translation: str = ""
    choices: List[str] = field(default_factory=list)
    answer_index: Optional[int] = None

    def __post_init__(self):
        if self.choices:
            if len(self.choices) not in (3, 4):
                raise ValueError("QuizQuestion must have 3 or 4 choices")
            if self.answer_index is None or not (0 <= self.answer_index < len(self.choices)):
                raise ValueError("answer_index out of range")


@dataclass
class WeeklyQuiz:
    week: int
    theme: str
    title: str
    instructions: str
    questions: List[QuizQuestion]
