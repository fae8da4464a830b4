import logging
import time
from typing import List, Optional

import discord

from imparo.models.quiz import ReviewQuiz
from imparo.services.review import ReviewScheduler
from imparo.utils.discord_ui import pretty_bar
from imparo.utils.embeds import EMBED_COLOR
from imparo.views.components.review_buttons import GotItButton, MissedItButton, RevealButton

log = logging.getLogger("Imparo")


class ReviewView(discord.ui.View):
    """
    One card per due word. The learner reveals the answer, then grades
    themselves; every grade goes through the scheduler so streaks and
    levels stay consistent with the broadcast side.
    """

    def __init__(self, owner_id: int, quiz: ReviewQuiz, review: ReviewScheduler):
        super().__init__(timeout=900)

        self.owner_id = owner_id
        self.quiz = quiz
        self.review = review

        self.i = 0
        self.revealed = False
        self.correct = 0
        self.level_changes: List[str] = []

        self.started_at_ts = time.time()
        self._message: Optional[discord.Message] = None

        self.btn_reveal = RevealButton()
        self.btn_got = GotItButton()
        self.btn_missed = MissedItButton()

        self.add_item(self.btn_reveal)
        self.add_item(self.btn_got)
        self.add_item(self.btn_missed)

        self._refresh_buttons()

    def attach_message(self, msg: discord.Message) -> None:
        self._message = msg

    def _owner_only(self, interaction: discord.Interaction) -> bool:
        return getattr(interaction.user, "id", None) == self.owner_id

    def _refresh_buttons(self) -> None:
        self.btn_reveal.disabled = self.revealed
        self.btn_got.disabled = not self.revealed
        self.btn_missed.disabled = not self.revealed

    def current_embed(self) -> discord.Embed:
        q = self.quiz.questions[self.i]
        total = len(self.quiz.questions)
        answer = f"**{q.answer}**\n{q.explanation}" if self.revealed else "||Click **Reveal** to check yourself.||"

        e = discord.Embed(
            title=f"🔁 {self.quiz.title}",
            description=f"**Card {self.i + 1}/{total}** · {q.style.value}\n\n{q.prompt}\n\n{answer}",
            color=EMBED_COLOR,
        )
        e.set_footer(text=f"{pretty_bar(self.i + 1, total, 10)} · correct {self.correct}/{self.i}")
        return e

    def summary_embed(self) -> discord.Embed:
        total = len(self.quiz.questions)
        elapsed = max(1, int(time.time() - self.started_at_ts))
        pct = int(round(self.correct / total * 100)) if total else 0
        badge = "🏆" if pct >= 90 else ("🎯" if pct >= 70 else "📘")

        e = discord.Embed(
            title=f"{badge} Ripasso finito!",
            description=(
                f"**Score:** {self.correct}/{total} ({pct}%)\n"
                f"**Progress:** {pretty_bar(self.correct, total, 10)}\n"
                f"**Time:** {elapsed}s"
            ),
            color=EMBED_COLOR,
        )
        if self.level_changes:
            e.add_field(name="Level changes", value="\n".join(self.level_changes[:15]), inline=False)
        e.set_footer(text="Words you missed come back sooner. Bravo!")
        return e

    async def reveal(self, interaction: discord.Interaction):
        if not self._owner_only(interaction):
            await interaction.response.send_message("❌ This review is not yours.", ephemeral=True)
            return

        self.revealed = True
        self._refresh_buttons()
        await interaction.response.edit_message(embed=self.current_embed(), view=self)

    async def answer(self, interaction: discord.Interaction, *, correct: bool):
        if not self._owner_only(interaction):
            await interaction.response.send_message("❌ This review is not yours.", ephemeral=True)
            return

        if not self.revealed:
            await interaction.response.send_message("🔒 Reveal the answer first.", ephemeral=True)
            return

        item = self.quiz.questions[self.i].item
        before = item.mastery_level
        updated = await self.review.submit_outcome(self.owner_id, item.week, item.term, correct)
        if updated is not None and updated.mastery_level != before:
            arrow = "⬆️" if updated.mastery_level > before else "⬇️"
            self.level_changes.append(f"{arrow} {item.term}: {before} → {updated.mastery_level}")

        self.correct += int(correct)
        self.i += 1
        self.revealed = False
        self._refresh_buttons()

        if self.i >= len(self.quiz.questions):
            self.stop()
            await interaction.response.edit_message(embed=self.summary_embed(), view=None)
            return

        await interaction.response.edit_message(embed=self.current_embed(), view=self)

    async def on_timeout(self):
        for item in self.children:
            item.disabled = True
        if self._message:
            try:
                await self._message.edit(view=self)
            except discord.HTTPException:
                log.debug("Review view timeout edit failed", exc_info=True)
