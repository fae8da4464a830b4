from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from imparo.constants import STORY_CONTEXT_WORDS
from imparo.db import Storage
from imparo.models.enrollment import Enrollment
from imparo.models.plan import DailyPlan, Focus
from imparo.models.vocab import VocabularyItem
from imparo.services import formatting
from imparo.services.curriculum import require_every_focus
from imparo.services.llm import LLMClient
from imparo.services.progress import utc_date, utc_now
from imparo.services.quiz_gen import generate_weekly_quiz
from imparo.services.review import ReviewScheduler, build_review_quiz
from imparo.services.story_gen import check_user_sentences, generate_practice_prompt, generate_story
from imparo.services.words_gen import generate_daily_words, generate_structured_vocabulary

log = logging.getLogger("Imparo")


class ContentKind(str, Enum):
    VOCABULARY = "vocabulary"
    STORY = "story"
    PRACTICE_PROMPT = "practice_prompt"
    QUIZ = "quiz"
    REVIEW = "review"
    FEEDBACK = "feedback"


CONTENT_FOR_FOCUS: Dict[Focus, ContentKind] = {
    Focus.INTRODUCTION: ContentKind.VOCABULARY,
    Focus.INTEGRATION: ContentKind.VOCABULARY,
    Focus.EXPANSION: ContentKind.STORY,
    Focus.PRACTICE: ContentKind.PRACTICE_PROMPT,
    Focus.APPLICATION: ContentKind.STORY,
    Focus.MASTERY: ContentKind.PRACTICE_PROMPT,
    Focus.CONSOLIDATION: ContentKind.QUIZ,
}
require_every_focus(CONTENT_FOR_FOCUS, "CONTENT_FOR_FOCUS")

# days whose evening slot is writing/speaking practice: the 21:00 prompt goes out only on these
PRACTICE_FOCUSES: FrozenSet[Focus] = frozenset({Focus.EXPANSION, Focus.PRACTICE, Focus.MASTERY})


def content_kind_for(focus: Focus) -> ContentKind:
    return CONTENT_FOR_FOCUS[focus]


def wants_practice_prompt(focus: Focus) -> bool:
    return focus in PRACTICE_FOCUSES


@dataclass
class DispatchedContent:
    kind: ContentKind
    text: str
    fallback: bool = False
    words: Optional[List[VocabularyItem]] = None


class ContentDispatcher:
    """
    Turns a learner's daily plan into a message body. Provider problems end in
    curated content (fallback=True); storage errors propagate to the caller.
    """

    def __init__(self, llm: LLMClient, store: Storage, review: ReviewScheduler):
        self.llm = llm
        self.store = store
        self.review = review
        # learners whose next chat message is an answer to a practice prompt
        self.practice_pending: Set[int] = set()

    # -----------------------------
    # Building blocks
    # -----------------------------
    async def vocabulary(
        self,
        enrollment: Enrollment,
        plan: DailyPlan,
        now: Optional[datetime] = None,
    ) -> DispatchedContent:
        now = now or utc_now()
        lid = enrollment.learner_id
        known = self.store.get_vocabulary(lid, plan.week_number)

        # the day's quota is generated once; later calls resend what was saved
        flags = self.store.get_daily_completion(lid, plan.week_number, plan.day_number) or {}
        if "words_sent" in flags:
            today = utc_date(now)
            todays = [w for w in known if w.learned_at is not None and utc_date(w.learned_at) == today]
            log.debug("Words for learner=%s W%sD%s already sent; resending %d",
                      lid, plan.week_number, plan.day_number, len(todays))
            return DispatchedContent(
                kind=ContentKind.VOCABULARY,
                text=formatting.format_words(todays, plan.theme),
                words=todays,
            )

        known_keys = {w.term.strip().lower() for w in known}

        result = await generate_daily_words(
            self.llm,
            theme=plan.theme,
            task=plan.task,
            focus=plan.focus.value,
            count=plan.vocabulary_count,
            week=plan.week_number,
            day=plan.day_number,
            avoid=[w.term for w in known],
        )

        # words already in storage keep their review state
        fresh = [
            replace(w, week=plan.week_number, learned_at=now)
            for w in result.payload
            if w.term.strip().lower() not in known_keys
        ]
        if fresh:
            self.store.upsert_vocabulary(lid, plan.week_number, fresh)
        self.store.record_daily_completion(
            lid, plan.week_number, plan.day_number, {"words_sent": len(result.payload)}
        )

        return DispatchedContent(
            kind=ContentKind.VOCABULARY,
            text=formatting.format_words(result.payload, plan.theme),
            fallback=result.fallback,
            words=result.payload,
        )

    async def themed_vocabulary(
        self,
        enrollment: Enrollment,
        plan: DailyPlan,
        now: Optional[datetime] = None,
    ) -> DispatchedContent:
        """The week's theme as a categorised list; new words join the learner's week."""
        now = now or utc_now()
        result = await generate_structured_vocabulary(
            self.llm, theme=plan.theme, task=plan.task, week=plan.week_number
        )

        known_keys = {
            w.term.strip().lower()
            for w in self.store.get_vocabulary(enrollment.learner_id, plan.week_number)
        }
        fresh: List[VocabularyItem] = []
        for words in result.payload.values():
            for w in words:
                key = w.term.strip().lower()
                if key in known_keys:
                    continue
                known_keys.add(key)
                fresh.append(replace(w, week=plan.week_number, learned_at=now))
        if fresh:
            self.store.upsert_vocabulary(enrollment.learner_id, plan.week_number, fresh)

        return DispatchedContent(
            kind=ContentKind.VOCABULARY,
            text=formatting.format_structured(result.payload, plan.theme),
            fallback=result.fallback,
            words=fresh,
        )

    async def story(self, enrollment: Enrollment, plan: DailyPlan) -> DispatchedContent:
        week_vocab = self.store.get_vocabulary(enrollment.learner_id, plan.week_number)
        result = await generate_story(self.llm, theme=plan.theme, vocabulary=week_vocab[:STORY_CONTEXT_WORDS])
        return DispatchedContent(ContentKind.STORY, formatting.format_story(result.payload), result.fallback)

    async def practice_prompt(self, enrollment: Enrollment, plan: DailyPlan) -> DispatchedContent:
        week_vocab = self.store.get_vocabulary(enrollment.learner_id, plan.week_number)
        result = await generate_practice_prompt(self.llm, theme=plan.theme, vocabulary=week_vocab)
        self.practice_pending.add(enrollment.learner_id)
        return DispatchedContent(ContentKind.PRACTICE_PROMPT, formatting.format_practice(result.payload), result.fallback)

    async def weekly_quiz(self, enrollment: Enrollment, plan: DailyPlan) -> DispatchedContent:
        week_vocab = self.store.get_vocabulary(enrollment.learner_id, plan.week_number)
        result = await generate_weekly_quiz(
            self.llm,
            week=plan.week_number,
            theme=plan.theme,
            vocabulary=week_vocab,
        )
        return DispatchedContent(ContentKind.QUIZ, formatting.format_quiz(result.payload), result.fallback)

    async def practice_feedback(self, enrollment: Enrollment, plan: DailyPlan, sentences: str) -> DispatchedContent:
        """Reviews the learner's answer to a practice prompt and marks the day's task done."""
        self.practice_pending.discard(enrollment.learner_id)
        week_vocab = self.store.get_vocabulary(enrollment.learner_id, plan.week_number)
        result = await check_user_sentences(self.llm, sentences=sentences, theme=plan.theme, vocabulary=week_vocab)
        self.store.record_daily_completion(
            enrollment.learner_id,
            plan.week_number,
            plan.day_number,
            {"task_completed": True, "practice_done": True},
        )
        text = f"📝 **Feedback**\n\n{result.payload}\n\n✅ Practice complete for today!"
        return DispatchedContent(ContentKind.FEEDBACK, text, result.fallback)

    def review_session(
        self,
        enrollment: Enrollment,
        plan: DailyPlan,
        now: Optional[datetime] = None,
    ) -> DispatchedContent:
        due = self.review.select_due(enrollment.learner_id, plan.week_number, enrollment.enrolled_at, now)
        quiz = build_review_quiz(due)
        return DispatchedContent(ContentKind.REVIEW, formatting.format_review_quiz(quiz), words=due)

    # -----------------------------
    # Decision table
    # -----------------------------
    async def dispatch(
        self,
        enrollment: Enrollment,
        plan: DailyPlan,
        now: Optional[datetime] = None,
    ) -> DispatchedContent:
        kind = content_kind_for(plan.focus)
        log.debug("Dispatch learner=%s W%sD%s focus=%s -> %s",
                  enrollment.learner_id, plan.week_number, plan.day_number, plan.focus.value, kind.value)

        if kind is ContentKind.VOCABULARY:
            return await self.vocabulary(enrollment, plan, now)
        if kind is ContentKind.STORY:
            return await self.story(enrollment, plan)
        if kind is ContentKind.PRACTICE_PROMPT:
            return await self.practice_prompt(enrollment, plan)
        return await self.weekly_quiz(enrollment, plan)
