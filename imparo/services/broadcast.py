"""
Scheduled broadcasts: one job walks every active enrollment and delivers
that learner's content for the day.

Learners are handled one after another with a short pause in between. Each
learner's step (progress -> plan -> generate -> send -> persist) runs under
that learner's lock, so a manual /trigger and a scheduled tick can never
interleave two deliveries for the same person.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import AsyncContextManager, Callable, Dict, List, Optional

import discord

from imparo.db import Storage
from imparo.errors import CurriculumEntryNotFound, StorageError
from imparo.models.enrollment import Enrollment
from imparo.models.plan import DailyPlan
from imparo.services.curriculum import CurriculumStore
from imparo.services.daily_plan import plan_for
from imparo.services.dispatcher import ContentDispatcher, wants_practice_prompt
from imparo.services.progress import utc_now
from imparo.utils.locks import KeyedLocks
from imparo.utils.text import chunk_text

log = logging.getLogger("Imparo")


class Job(str, Enum):
    MORNING = "morning"
    EVENING = "evening"
    PRACTICE = "practice"
    WEEKLY_QUIZ = "weekly_quiz"


# -----------------------------
# Delivery
# -----------------------------
class DiscordSender:
    """Direct messages through the running client; long bodies are split."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def send(self, learner_id: int, text: str) -> None:
        user = self.client.get_user(learner_id) or await self.client.fetch_user(learner_id)
        for part in chunk_text(text):
            await user.send(part)


@dataclass
class BroadcastReport:
    job: Job
    sent: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    completed: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    fallbacks: int = 0

    def summary(self) -> str:
        return (
            f"{self.job.value}: sent={len(self.sent)} skipped={len(self.skipped)} "
            f"completed={len(self.completed)} failed={len(self.failed)} fallbacks={self.fallbacks}"
        )


class Broadcaster:
    def __init__(
        self,
        store: Storage,
        curriculum: CurriculumStore,
        dispatcher: ContentDispatcher,
        sender,
        *,
        delay_s: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.curriculum = curriculum
        self.dispatcher = dispatcher
        self.sender = sender
        self.delay_s = max(0.0, float(delay_s))
        self.clock = clock

        self.locks: KeyedLocks[int] = KeyedLocks()
        self._stopping = False
        self.last_reports: Dict[Job, BroadcastReport] = {}

    def learner_lock(self, learner_id: int) -> AsyncContextManager[None]:
        return self.locks.hold(int(learner_id))

    def stop(self) -> None:
        """No new learners are started; the one in flight finishes."""
        self._stopping = True

    @property
    def stopping(self) -> bool:
        return self._stopping

    # -----------------------------
    # Job runner
    # -----------------------------
    async def run(self, job: Job, now: Optional[datetime] = None) -> BroadcastReport:
        report = BroadcastReport(job=job)
        if self._stopping:
            log.info("Broadcast %s ignored: shutting down", job.value)
            return report

        try:
            learners = self.store.list_active_enrollments()
        except StorageError:
            log.exception("Broadcast %s aborted: cannot list learners", job.value)
            return report

        log.info("Broadcast %s started for %d learners", job.value, len(learners))

        for i, enrollment in enumerate(learners):
            if self._stopping:
                log.info("Broadcast %s stopped early after %d learners", job.value, i)
                break
            if i and self.delay_s:
                await asyncio.sleep(self.delay_s)

            lid = enrollment.learner_id
            try:
                async with self.learner_lock(lid):
                    outcome = await self._run_for(job, enrollment, now or self.clock(), report)
            except CurriculumEntryNotFound:
                raise
            except StorageError as e:
                log.warning("Broadcast %s skipped learner %s: storage failed: %s", job.value, lid, e)
                report.failed.append(lid)
                continue
            except Exception:
                log.exception("Broadcast %s failed for learner %s", job.value, lid)
                report.failed.append(lid)
                continue

            getattr(report, outcome).append(lid)

        log.info("Broadcast %s", report.summary())
        self.last_reports[job] = report
        return report

    async def _run_for(self, job: Job, enrollment: Enrollment, now: datetime, report: BroadcastReport) -> str:
        lid = enrollment.learner_id
        snapshot, plan = plan_for(self.curriculum, enrollment.enrolled_at, now)

        if plan is None:
            self.store.deactivate(lid)
            log.info("Learner %s finished the program (day %d)", lid, snapshot.total_elapsed_days)
            return "completed"

        if job is Job.MORNING:
            await self._morning(enrollment, plan, now, report)
        elif job is Job.EVENING:
            await self._evening(enrollment, plan, report)
        elif job is Job.PRACTICE:
            if not wants_practice_prompt(plan.focus):
                return "skipped"
            await self._practice(enrollment, plan, report)
        else:
            # the weekly quiz closes the learner's own week, not the calendar one
            if plan.day_number != 7:
                return "skipped"
            await self._weekly_quiz(enrollment, plan, report)

        log.info("✅ %s sent to learner %s (W%dD%d)", job.value, lid, plan.week_number, plan.day_number)
        return "sent"

    # -----------------------------
    # Jobs
    # -----------------------------
    async def _morning(self, enrollment: Enrollment, plan: DailyPlan, now: datetime, report: BroadcastReport) -> None:
        lid = enrollment.learner_id
        content = await self.dispatcher.vocabulary(enrollment, plan, now)
        report.fallbacks += int(content.fallback)
        await self.sender.send(lid, content.text)

        flags = {"words_sent": len(content.words or [])}
        if plan.includes_review:
            review = self.dispatcher.review_session(enrollment, plan, now)
            if review.words:
                await self.sender.send(lid, review.text)
            flags["review_due"] = len(review.words or [])

        self.store.record_daily_completion(lid, plan.week_number, plan.day_number, flags)

    async def _evening(self, enrollment: Enrollment, plan: DailyPlan, report: BroadcastReport) -> None:
        content = await self.dispatcher.story(enrollment, plan)
        report.fallbacks += int(content.fallback)
        await self.sender.send(enrollment.learner_id, content.text)
        self.store.record_daily_completion(
            enrollment.learner_id, plan.week_number, plan.day_number, {"story_read": True}
        )

    async def _practice(self, enrollment: Enrollment, plan: DailyPlan, report: BroadcastReport) -> None:
        content = await self.dispatcher.practice_prompt(enrollment, plan)
        report.fallbacks += int(content.fallback)
        await self.sender.send(enrollment.learner_id, content.text)
        self.store.record_daily_completion(
            enrollment.learner_id, plan.week_number, plan.day_number, {"practice_sent": True}
        )

    async def _weekly_quiz(self, enrollment: Enrollment, plan: DailyPlan, report: BroadcastReport) -> None:
        content = await self.dispatcher.weekly_quiz(enrollment, plan)
        report.fallbacks += int(content.fallback)
        await self.sender.send(enrollment.learner_id, content.text)
        self.store.record_daily_completion(
            enrollment.learner_id, plan.week_number, plan.day_number, {"quiz_sent": True}
        )
