from dataclasses import dataclass, field
from typing import List


@dataclass
class StoryQuestion:
    question: str
    translation: str = ""
    answer: str = ""
    answer_translation: str = ""


@dataclass
class Story:
    title: str
    story: str
    translation: str = ""
    vocabulary_used: List[str] = field(default_factory=list)
    questions: List[StoryQuestion] = field(default_factory=list)


@dataclass
class PracticePrompt:
    title: str
    instructions: str
    prompt: str
    prompt_translation: str = ""
    vocabulary_to_use: List[str] = field(default_factory=list)
    example_response: str = ""
    example_translation: str = ""
    tips: List[str] = field(default_factory=list)
