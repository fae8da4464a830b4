from __future__ import annotations

import logging
import re
import time
from typing import Callable

import discord

from imparo.errors import GenerationError, StorageError
from imparo.models.enrollment import Enrollment
from imparo.models.plan import DailyPlan
from imparo.services.core import BotCore
from imparo.services.daily_plan import plan_for
from imparo.services.tutor import tutor_system
from imparo.utils.text import chunk_text, clean_llm_text

log = logging.getLogger("Imparo")

IMPARO_PREFIX = "imparo"
COOLDOWN_S = 2.5

TUTOR_OFFLINE = (
    "Mi dispiace! The tutor is offline right now. "
    "Try /today for your lesson or /review for practice."
)


def _strip_bot_mention(bot_user: discord.ClientUser | None, content: str) -> str | None:
    if not bot_user:
        return None
    if content.startswith(f"<@{bot_user.id}>") or content.startswith(f"<@!{bot_user.id}>"):
        return re.sub(r"^<@!?\d+>\s*", "", content).strip()
    return None


def extract_chat_text(bot_user: discord.ClientUser | None, raw: str, is_dm: bool) -> str | None:
    """The part of a message addressed to the bot, or None when it is not for us."""
    raw = (raw or "").strip()
    if not raw:
        return None
    if raw.lower().startswith(IMPARO_PREFIX + " "):
        return raw[len(IMPARO_PREFIX):].strip()
    mentioned = _strip_bot_mention(bot_user, raw)
    if mentioned is not None:
        return mentioned
    if is_dm and not raw.startswith("/"):
        return raw
    return None


class Cooldown:
    """Per-user rate limit. Entries older than the window are dropped on every check."""

    def __init__(self, seconds: float = COOLDOWN_S, clock: Callable[[], float] = time.monotonic):
        self.seconds = float(seconds)
        self.clock = clock
        self._last: dict[int, float] = {}

    def allow(self, user_id: int) -> bool:
        now = self.clock()
        for uid in [u for u, t in self._last.items() if now - t >= self.seconds]:
            del self._last[uid]
        if user_id in self._last:
            return False
        self._last[user_id] = now
        return True

    def __len__(self) -> int:
        return len(self._last)


def tutor_system_for(core: BotCore, enrollment: Enrollment | None) -> tuple[str, DailyPlan | None]:
    if enrollment is None:
        return tutor_system(), None
    snapshot, plan = plan_for(core.curriculum, enrollment.enrolled_at)
    return tutor_system(plan, completed=snapshot.completed), plan


def register_chat_router(client: discord.Client, core: BotCore) -> None:
    cooldown = Cooldown()

    @client.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        is_dm = isinstance(message.channel, discord.DMChannel)
        text = extract_chat_text(client.user, message.content, is_dm)
        if not text:
            return

        if not cooldown.allow(message.author.id):
            return

        try:
            enrollment = core.store.get_enrollment(message.author.id)
        except StorageError:
            log.exception("Chat lookup failed for %s", message.author.id)
            await message.reply("❌ Storage problem. Please try again later.")
            return

        if enrollment is None:
            await message.reply("Ciao! 👋 Use **/start** to join the program first.")
            return

        system, plan = tutor_system_for(core, enrollment)

        async with message.channel.typing():
            # answer to a practice prompt
            if plan is not None and enrollment.learner_id in core.dispatcher.practice_pending:
                try:
                    async with core.broadcaster.learner_lock(enrollment.learner_id):
                        content = await core.dispatcher.practice_feedback(enrollment, plan, text)
                except StorageError:
                    log.exception("Practice feedback failed for %s", enrollment.learner_id)
                    await message.reply("❌ Storage problem. Please try again later.")
                    return
                for part in chunk_text(content.text):
                    await message.reply(part)
                return

            try:
                answer = await core.tutor.reply(enrollment.learner_id, text[:1500], system)
            except GenerationError as e:
                log.warning("Tutor chat failed for %s: %s", enrollment.learner_id, e)
                await message.reply(TUTOR_OFFLINE)
                return

        for part in chunk_text(clean_llm_text(answer)):
            await message.reply(part)
