"""
Spaced repetition over the words a learner has already been taught.

Each word sits at a mastery level (1..5). A level fixes how many days must
pass before the word is due again; two answers in a row of the same kind move
it up or down one level.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple

from imparo.constants import (
    MAX_MASTERY,
    MIN_MASTERY,
    REVIEW_INTERVALS,
    REVIEW_QUIZ_MAX,
    REVIEW_SESSION_CAP,
    REVIEW_WINDOW_WEEKS,
    STREAK_TO_MOVE,
    TARGET_LANGUAGE,
)
from imparo.db import Storage
from imparo.models.quiz import ReviewQuestion, ReviewQuiz, ReviewStyle
from imparo.models.vocab import VocabularyItem
from imparo.services.progress import Instant, days_between, utc_now
from imparo.utils.locks import KeyedLocks

log = logging.getLogger("Imparo")

_STYLE_ORDER = (ReviewStyle.PRODUCTION, ReviewStyle.CLOZE, ReviewStyle.RECOGNITION)


@dataclass(frozen=True)
class ReviewStats:
    total_tracked: int
    mastered: int
    needs_review: int


def interval_for(level: int) -> int:
    return REVIEW_INTERVALS.get(int(level), REVIEW_INTERVALS[MIN_MASTERY])


def review_window(current_week: int) -> range:
    return range(max(1, int(current_week) - (REVIEW_WINDOW_WEEKS - 1)), int(current_week) + 1)


def is_due(item: VocabularyItem, enrolled_at: Instant, now: Instant) -> bool:
    if item.last_reviewed_at is None:
        learned = item.learned_at or enrolled_at
        return days_between(learned, now) >= 1
    return days_between(item.last_reviewed_at, now) >= interval_for(item.mastery_level)


def record_outcome(item: VocabularyItem, correct: bool, now: Optional[datetime] = None) -> VocabularyItem:
    """
    Pure transition; returns a new item.

    A single answer never moves the level: it takes STREAK_TO_MOVE answers of
    the same kind in a row, and an answer of the other kind breaks the run.
    """
    level = item.mastery_level
    correct_streak = item.correct_streak
    incorrect_streak = item.incorrect_streak

    if correct:
        correct_streak += 1
        incorrect_streak = 0
        if correct_streak >= STREAK_TO_MOVE:
            level = min(level + 1, MAX_MASTERY)
            correct_streak = 0
    else:
        incorrect_streak += 1
        correct_streak = 0
        if incorrect_streak >= STREAK_TO_MOVE:
            level = max(level - 1, MIN_MASTERY)
            incorrect_streak = 0

    return replace(
        item,
        mastery_level=level,
        correct_streak=correct_streak,
        incorrect_streak=incorrect_streak,
        last_reviewed_at=now or utc_now(),
    )


def _blank_out(example: str, term: str) -> str:
    if term and term in example:
        return example.replace(term, "_____", 1)
    low_example, low_term = example.lower(), term.lower()
    idx = low_example.find(low_term) if low_term else -1
    if idx == -1:
        return f"_____ ({example})" if example else "_____"
    return example[:idx] + "_____" + example[idx + len(term):]


def _question_for(item: VocabularyItem, style: ReviewStyle) -> ReviewQuestion:
    pron = f" - {item.pronunciation}" if item.pronunciation else ""

    if style is ReviewStyle.PRODUCTION:
        return ReviewQuestion(
            style=style,
            prompt=f'Translate to {TARGET_LANGUAGE}: "{item.translation}"',
            answer=item.term,
            explanation=f"{item.term}{pron}",
            item=item,
        )

    if style is ReviewStyle.CLOZE:
        example = item.example or f"{item.term} è bello."
        return ReviewQuestion(
            style=style,
            prompt=f"Complete: {_blank_out(example, item.term)}",
            answer=item.term,
            explanation=f"Correct: {example}",
            item=item,
        )

    return ReviewQuestion(
        style=style,
        prompt=f'What does "{item.term}" mean?',
        answer=item.translation,
        explanation=f'{item.term} means "{item.translation}"{pron}',
        item=item,
    )


def build_review_quiz(items: List[VocabularyItem]) -> Optional[ReviewQuiz]:
    if not items:
        return None

    chosen = items[:REVIEW_QUIZ_MAX]
    questions = [_question_for(it, _STYLE_ORDER[i % len(_STYLE_ORDER)]) for i, it in enumerate(chosen)]
    return ReviewQuiz(title="Daily Review Quiz", questions=questions)


class ReviewScheduler:
    def __init__(self, store: Storage):
        self.store = store
        self.locks: KeyedLocks[Tuple[int, int, str]] = KeyedLocks()

    def select_due(
        self,
        learner_id: int,
        current_week: int,
        enrolled_at: Instant,
        now: Optional[Instant] = None,
    ) -> List[VocabularyItem]:
        now = now if now is not None else utc_now()
        due: List[VocabularyItem] = []

        for week in review_window(current_week):
            for item in self.store.get_vocabulary(learner_id, week):
                if is_due(item, enrolled_at, now):
                    due.append(item)
                    if len(due) >= REVIEW_SESSION_CAP:
                        return due
        return due

    async def submit_outcome(
        self,
        learner_id: int,
        week: int,
        term: str,
        correct: bool,
        now: Optional[datetime] = None,
    ) -> Optional[VocabularyItem]:
        """Read, transition and write one word; concurrent answers for the same word queue up."""
        async with self.locks.hold((int(learner_id), int(week), term.strip().lower())):
            wanted = term.strip().lower()
            current = next(
                (v for v in self.store.get_vocabulary(learner_id, week) if v.term.strip().lower() == wanted),
                None,
            )
            if current is None:
                log.warning("Review outcome for unknown word: learner=%s week=%s term=%r", learner_id, week, term)
                return None

            updated = record_outcome(current, correct, now)
            self.store.upsert_vocabulary(learner_id, week, [updated])

        log.debug(
            "Review updated learner=%s term=%r correct=%s level=%d",
            learner_id, term, correct, updated.mastery_level,
        )
        return updated

    def review_stats(self, learner_id: int) -> ReviewStats:
        reviewed = [v for v in self.store.all_vocabulary(learner_id) if v.last_reviewed_at is not None]
        return ReviewStats(
            total_tracked=len(reviewed),
            mastered=sum(1 for v in reviewed if v.mastery_level >= MAX_MASTERY),
            needs_review=sum(1 for v in reviewed if v.mastery_level < 3),
        )
