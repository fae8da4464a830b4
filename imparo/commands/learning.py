import logging
from typing import Optional

import discord

from imparo.constants import AI_FOOTER, PROGRAM_WEEKS
from imparo.errors import StorageError
from imparo.models.enrollment import Enrollment
from imparo.services import formatting
from imparo.services.core import BotCore
from imparo.services.daily_plan import plan_for, week_overview
from imparo.services.progress import progress_percentage, utc_now
from imparo.services.review import build_review_quiz
from imparo.utils.embeds import reply_embed, reply_error, reply_text
from imparo.views.review_view import ReviewView

log = logging.getLogger("Imparo")

OFFLINE_NOTE = "\n\n_(The AI tutor is unavailable right now: here is today's offline lesson.)_"

HELP_TEXT = """
**Daily schedule (UTC)**
🌅 08:00 - new vocabulary (+ review when words are due)
🌙 20:00 - reading practice story
✍️ 21:00 - writing prompt on practice days
📝 Sunday 19:00 - weekly quiz

**Commands**
/start - join the 12-week program
/status - where you are and how you are doing
/today - today's plan and lesson
/week - this week's overview
/vocab - themed vocabulary list
/quiz - this week's quiz
/review - spaced-repetition review session
/translate - English <-> Italian translation
/grammar - ask a grammar question
/clear - forget our conversation

Chat with me in DM (or mention me) to practise: I answer in Italian and English.
""".strip()


def _with_fallback_note(text: str, fallback: bool) -> str:
    return text + OFFLINE_NOTE if fallback else text


async def _require_enrollment(interaction: discord.Interaction, core: BotCore) -> Optional[Enrollment]:
    enrollment = core.store.get_enrollment(interaction.user.id)
    if enrollment is None:
        await reply_error(interaction, "You are not enrolled yet.", hint="Use /start first.")
        return None
    return enrollment


async def _completed(interaction: discord.Interaction) -> None:
    await reply_embed(
        interaction,
        title="🎓 Complimenti!",
        description=(
            f"You finished all {PROGRAM_WEEKS} weeks of the program.\n"
            "Keep using /review to maintain your vocabulary."
        ),
    )


def register_learning_commands(client: discord.Client, core: BotCore) -> None:
    # -----------------------------
    # /start
    # -----------------------------
    @client.tree.command(name="start", description="Join the 12-week Italian program.")
    async def start(interaction: discord.Interaction):
        try:
            enrollment, created = core.store.register_enrollment(
                interaction.user.id, getattr(interaction.user, "name", ""), utc_now()
            )
        except StorageError:
            log.exception("/start failed for %s", interaction.user.id)
            await reply_error(interaction, "Could not save your enrollment. Check logs.")
            return

        snapshot, plan = plan_for(core.curriculum, enrollment.enrolled_at)
        if created:
            log.info("New learner %s (%s)", enrollment.learner_id, enrollment.display_name)
            title = f"🇮🇹 Benvenuto, {enrollment.display_name or 'studente'}!"
            intro = "You are enrolled. Lessons arrive by DM every day."
        else:
            title = f"👋 Bentornato, {enrollment.display_name or 'studente'}!"
            intro = "You are already enrolled."

        fields = [{"name": "How it works", "value": HELP_TEXT, "inline": False}]
        if plan is not None:
            fields.insert(0, {
                "name": "Today",
                "value": f"Week {plan.week_number} - Day {plan.day_number}\n{plan.theme} · {plan.focus.label}",
                "inline": False,
            })
        await reply_embed(interaction, title=title, description=intro, fields=fields, ephemeral=True)

    # -----------------------------
    # /status
    # -----------------------------
    @client.tree.command(name="status", description="Your progress through the program.")
    async def status(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        snapshot, plan = plan_for(core.curriculum, enrollment.enrolled_at)
        if plan is None:
            await _completed(interaction)
            return

        stats = core.store.user_stats(enrollment.learner_id) or {}
        rs = core.review.review_stats(enrollment.learner_id)
        text = formatting.format_status(
            snapshot,
            progress_percentage(snapshot),
            plan.theme,
            plan.focus.label,
            stats,
        )
        text += f"\n**Reviewed words:** {rs.total_tracked} (need practice: {rs.needs_review})"
        await reply_embed(interaction, title="📊 Il tuo progresso", description=text, ephemeral=True)

    # -----------------------------
    # /today
    # -----------------------------
    @client.tree.command(name="today", description="Today's plan and lesson.")
    async def today(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        now = utc_now()
        snapshot, plan = plan_for(core.curriculum, enrollment.enrolled_at, now)
        if plan is None:
            await _completed(interaction)
            return

        await interaction.response.defer(thinking=True)
        try:
            async with core.broadcaster.learner_lock(enrollment.learner_id):
                content = await core.dispatcher.dispatch(enrollment, plan, now)
                review = core.dispatcher.review_session(enrollment, plan, now) if plan.includes_review else None
        except StorageError:
            log.exception("/today failed for %s", enrollment.learner_id)
            await reply_error(interaction, "Storage problem while preparing your lesson. Check logs.")
            return

        await reply_text(interaction, formatting.format_plan(plan))
        await reply_text(interaction, _with_fallback_note(content.text, content.fallback))
        if review is not None and review.words:
            await reply_text(interaction, review.text)

    # -----------------------------
    # /week
    # -----------------------------
    @client.tree.command(name="week", description="This week's theme and daily focus.")
    async def week(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        snapshot, plan = plan_for(core.curriculum, enrollment.enrolled_at)
        if plan is None:
            await _completed(interaction)
            return

        overview = week_overview(core.curriculum, snapshot.week_number)
        await reply_embed(
            interaction,
            title=f"📅 Settimana {overview.week}",
            description=formatting.format_week(overview, current_day=snapshot.day_number),
            footer=core.curriculum.description_for(snapshot.week_number)[:200],
        )

    # -----------------------------
    # /vocab
    # -----------------------------
    @client.tree.command(name="vocab", description="Themed vocabulary list for this week.")
    async def vocab(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        _, plan = plan_for(core.curriculum, enrollment.enrolled_at)
        if plan is None:
            await _completed(interaction)
            return

        await interaction.response.defer(thinking=True)
        try:
            async with core.broadcaster.learner_lock(enrollment.learner_id):
                content = await core.dispatcher.themed_vocabulary(enrollment, plan)
        except StorageError:
            log.exception("/vocab failed for %s", enrollment.learner_id)
            await reply_error(interaction, "Could not save the vocabulary. Check logs.")
            return

        await reply_text(interaction, _with_fallback_note(content.text, content.fallback) + f"\n\n_{AI_FOOTER}_")

    # -----------------------------
    # /quiz
    # -----------------------------
    @client.tree.command(name="quiz", description="Quiz on this week's vocabulary.")
    async def quiz(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        _, plan = plan_for(core.curriculum, enrollment.enrolled_at)
        if plan is None:
            await _completed(interaction)
            return

        await interaction.response.defer(thinking=True)
        try:
            content = await core.dispatcher.weekly_quiz(enrollment, plan)
        except StorageError:
            log.exception("/quiz failed for %s", enrollment.learner_id)
            await reply_error(interaction, "Could not load your vocabulary. Check logs.")
            return

        await reply_text(interaction, _with_fallback_note(content.text, content.fallback))

    # -----------------------------
    # /review
    # -----------------------------
    @client.tree.command(name="review", description="Spaced-repetition review of the words that are due.")
    async def review(interaction: discord.Interaction):
        enrollment = await _require_enrollment(interaction, core)
        if not enrollment:
            return

        snapshot, _ = plan_for(core.curriculum, enrollment.enrolled_at)
        try:
            due = core.review.select_due(enrollment.learner_id, snapshot.week_number, enrollment.enrolled_at)
        except StorageError:
            log.exception("/review failed for %s", enrollment.learner_id)
            await reply_error(interaction, "Could not load your vocabulary. Check logs.")
            return

        session = build_review_quiz(due)
        if session is None:
            await reply_embed(
                interaction,
                title="🔁 Ripasso",
                description="Nothing is due for review right now. Great job! 🎉",
                ephemeral=True,
            )
            return

        view = ReviewView(enrollment.learner_id, session, core.review)
        await interaction.response.send_message(embed=view.current_embed(), view=view)
        view.attach_message(await interaction.original_response())

    # -----------------------------
    # /help
    # -----------------------------
    @client.tree.command(name="help", description="Schedule and commands.")
    async def help_cmd(interaction: discord.Interaction):
        await reply_embed(interaction, title="📖 Imparo - help", description=HELP_TEXT, ephemeral=True)
