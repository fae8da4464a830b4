import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Callable, Dict, List, Optional

import discord
from discord.ext import tasks

from imparo.services.broadcast import Broadcaster, Job
from imparo.services.progress import utc_now

log = logging.getLogger("Imparo")

SUNDAY = 6


@dataclass(frozen=True)
class JobSpec:
    job: Job
    at: time
    label: str
    weekday: Optional[int] = None

    def fires_on(self, when: datetime) -> bool:
        return self.weekday is None or when.astimezone(timezone.utc).weekday() == self.weekday


JOBS: List[JobSpec] = [
    JobSpec(Job.MORNING, time(8, 0, tzinfo=timezone.utc), "Morning vocabulary"),
    JobSpec(Job.EVENING, time(20, 0, tzinfo=timezone.utc), "Evening story"),
    JobSpec(Job.PRACTICE, time(21, 0, tzinfo=timezone.utc), "Practice prompt"),
    JobSpec(Job.WEEKLY_QUIZ, time(19, 0, tzinfo=timezone.utc), "Weekly quiz", weekday=SUNDAY),
]


class BroadcastScheduler:
    """One `tasks.loop` per job, each firing once a day at a fixed UTC time."""

    def __init__(
        self,
        client: discord.Client,
        broadcaster: Broadcaster,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.broadcaster = broadcaster
        self.clock = clock
        self.loops: Dict[Job, tasks.Loop] = {spec.job: self._make_loop(spec) for spec in JOBS}

    def _make_loop(self, spec: JobSpec) -> tasks.Loop:
        @tasks.loop(time=spec.at)
        async def run_job():
            now = self.clock()
            if not spec.fires_on(now):
                return
            try:
                await self.broadcaster.run(spec.job, now)
            except Exception:
                log.exception("Scheduled job %s crashed", spec.job.value)

        @run_job.before_loop
        async def before_run_job():
            await self.client.wait_until_ready()

        return run_job

    def start(self) -> None:
        for job, loop in self.loops.items():
            if not loop.is_running():
                loop.start()
                log.debug("Scheduled job %s started", job.value)
        log.info("⏰ %d scheduled jobs running (UTC)", len(self.loops))

    def stop(self) -> None:
        """Stops after the current iteration; an in-flight broadcast finishes its learner."""
        self.broadcaster.stop()
        for loop in self.loops.values():
            if loop.is_running():
                loop.stop()
        log.info("Scheduled jobs stopped")

    def status(self) -> List[Dict[str, object]]:
        out = []
        for spec in JOBS:
            loop = self.loops[spec.job]
            report = self.broadcaster.last_reports.get(spec.job)
            out.append(
                {
                    "job": spec.job.value,
                    "label": spec.label,
                    "at": spec.at.strftime("%H:%M") + " UTC" + (" (Sunday)" if spec.weekday == SUNDAY else ""),
                    "running": loop.is_running(),
                    "next": loop.next_iteration,
                    "last": report.summary() if report else "never",
                }
            )
        return out


def scheduler_status(scheduler: Optional[BroadcastScheduler]) -> str:
    if scheduler is None:
        return "Scheduler not started."
    lines = []
    for row in scheduler.status():
        state = "🟢" if row["running"] else "🔴"
        nxt = row["next"].strftime("%Y-%m-%d %H:%M UTC") if row["next"] else "-"
        lines.append(f"{state} **{row['label']}** - {row['at']}\n   next: {nxt}\n   last: {row['last']}")
    return "\n".join(lines)
