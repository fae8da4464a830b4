from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Focus(str, Enum):
    """The seven day types of every program week, in order."""

    INTRODUCTION = "introduction"
    INTEGRATION = "integration"
    EXPANSION = "expansion"
    PRACTICE = "practice"
    APPLICATION = "application"
    MASTERY = "mastery"
    CONSOLIDATION = "consolidation"

    @classmethod
    def for_day(cls, day: int) -> "Focus":
        members = list(cls)
        if not 1 <= int(day) <= len(members):
            raise ValueError(f"day out of range: {day}")
        return members[int(day) - 1]

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ProgressSnapshot:
    week_number: int
    day_number: int
    total_elapsed_days: int
    completed: bool


@dataclass(frozen=True)
class CurriculumEntry:
    week: int
    day: int
    theme: str
    focus: Focus
    task: str


@dataclass(frozen=True)
class Exercise:
    kind: str
    description: str


@dataclass(frozen=True)
class DailyPlan:
    week_number: int
    day_number: int
    theme: str
    focus: Focus
    task: str
    morning: str
    afternoon: str
    evening: str
    description: str
    exercises: List[Exercise] = field(default_factory=list)
    estimated_time: str = ""
    vocabulary_count: int = 0
    includes_review: bool = False
    story_based: bool = True


@dataclass(frozen=True)
class DayOverview:
    day: int
    focus: Focus
    task: str
    estimated_time: str


@dataclass(frozen=True)
class WeekOverview:
    week: int
    theme: str
    days: List[DayOverview]
