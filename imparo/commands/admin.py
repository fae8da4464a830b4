import logging
from datetime import timedelta
from typing import Optional

import discord
from discord import app_commands

from imparo.constants import PROGRAM_DAYS
from imparo.errors import StorageError
from imparo.services.broadcast import Job
from imparo.services.core import BotCore
from imparo.services.progress import compute_progress, utc_now
from imparo.services.scheduler import scheduler_status
from imparo.utils.embeds import reply_embed, reply_error
from imparo.utils.perms import admin_only, clamp

log = logging.getLogger("Imparo")


def register_admin_commands(client: discord.Client, core: BotCore) -> None:
    # -----------------------------
    # /setstart
    # -----------------------------
    @client.tree.command(
        name="setstart",
        description="ADMIN: Move a learner's enrollment date back (testing and demos).",
    )
    @app_commands.describe(
        days_ago="Enrollment becomes this many days ago (0 = today)",
        member="Learner to move (defaults to you)",
    )
    async def setstart(
        interaction: discord.Interaction,
        days_ago: int,
        member: Optional[discord.User] = None,
    ):
        if not admin_only(interaction):
            await reply_error(interaction, "Admin only.")
            return

        target = member or interaction.user
        days_ago = clamp(int(days_ago), 0, PROGRAM_DAYS + 7)
        enrolled_at = utc_now() - timedelta(days=days_ago)

        try:
            moved = core.store.override_enrollment_start(target.id, enrolled_at)
        except StorageError:
            log.exception("/setstart failed for %s", target.id)
            await reply_error(interaction, "Storage error. Check logs.")
            return

        if not moved:
            await reply_error(interaction, f"{target} is not enrolled.", hint="They need to use /start first.")
            return

        snap = compute_progress(enrolled_at)
        log.info("Admin %s moved learner %s start to %d days ago", interaction.user.id, target.id, days_ago)
        await reply_embed(
            interaction,
            title="🛠️ Enrollment moved",
            description=(
                f"**{target}** now started **{days_ago}** days ago.\n"
                f"Week {snap.week_number} - Day {snap.day_number}"
                + (" (program completed)" if snap.completed else "")
            ),
            ephemeral=True,
        )

    # -----------------------------
    # /trigger
    # -----------------------------
    @client.tree.command(name="trigger", description="ADMIN: Run a scheduled broadcast now.")
    @app_commands.describe(job="Which broadcast to run")
    @app_commands.choices(
        job=[
            app_commands.Choice(name="Morning vocabulary", value=Job.MORNING.value),
            app_commands.Choice(name="Evening story", value=Job.EVENING.value),
            app_commands.Choice(name="Practice prompt", value=Job.PRACTICE.value),
            app_commands.Choice(name="Weekly quiz", value=Job.WEEKLY_QUIZ.value),
        ]
    )
    async def trigger(interaction: discord.Interaction, job: app_commands.Choice[str]):
        if not admin_only(interaction):
            await reply_error(interaction, "Admin only.")
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        log.info("Admin %s triggered %s", interaction.user.id, job.value)

        try:
            report = await core.broadcaster.run(Job(job.value))
        except Exception:
            log.exception("/trigger %s failed", job.value)
            await reply_error(interaction, "Broadcast failed. Check logs.")
            return

        await reply_embed(
            interaction,
            title=f"📣 {job.name}",
            description=report.summary(),
            fields=[
                {"name": "Sent", "value": str(len(report.sent)), "inline": True},
                {"name": "Skipped", "value": str(len(report.skipped)), "inline": True},
                {"name": "Failed", "value": str(len(report.failed)), "inline": True},
            ],
            ephemeral=True,
        )

    # -----------------------------
    # /schedule
    # -----------------------------
    @client.tree.command(name="schedule", description="ADMIN: Scheduled jobs and their last run.")
    async def schedule(interaction: discord.Interaction):
        if not admin_only(interaction):
            await reply_error(interaction, "Admin only.")
            return

        await reply_embed(
            interaction,
            title="⏰ Scheduler",
            description=scheduler_status(core.scheduler),
            ephemeral=True,
        )

    # -----------------------------
    # /resetlearner
    # -----------------------------
    @client.tree.command(
        name="resetlearner",
        description="ADMIN: Delete a learner's enrollment, words and progress.",
    )
    @app_commands.describe(member="Learner to reset")
    async def resetlearner(interaction: discord.Interaction, member: discord.User):
        if not admin_only(interaction):
            await reply_error(interaction, "Admin only.")
            return

        try:
            if core.store.get_enrollment(member.id) is None:
                await reply_error(interaction, f"{member} is not enrolled.")
                return
            async with core.broadcaster.learner_lock(member.id):
                core.store.reset_learner(member.id)
        except StorageError:
            log.exception("/resetlearner failed for %s", member.id)
            await reply_error(interaction, "Storage error. Check logs.")
            return

        core.dispatcher.practice_pending.discard(member.id)
        core.tutor.clear(member.id)
        log.info("Admin %s reset learner %s", interaction.user.id, member.id)
        await reply_embed(
            interaction,
            title="🗑️ Learner reset",
            description=f"**{member}** was removed. They can use /start to begin again.",
            ephemeral=True,
        )
