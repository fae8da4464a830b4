import logging

import discord
from discord import app_commands

from imparo.commands.chat_router import TUTOR_OFFLINE, tutor_system_for
from imparo.errors import GenerationError, StorageError
from imparo.services.core import BotCore
from imparo.services.tutor import grammar_prompt, translate_prompt
from imparo.utils.embeds import reply_embed, reply_error, reply_text
from imparo.utils.text import clean_llm_text

log = logging.getLogger("Imparo")

TRANSLATE_USAGE = "Please provide text to translate.\n\nExample: /translate Hello, how are you?"
GRAMMAR_USAGE = "Ask me any grammar question!\n\nExample: /grammar When do I use the subjunctive mood?"
CLEARED = "✅ Conversation cleared! Let's start fresh. Come posso aiutarti? (How can I help you?)"


async def _ask_tutor(interaction: discord.Interaction, core: BotCore, prompt: str) -> None:
    await interaction.response.defer(thinking=True)
    try:
        enrollment = core.store.get_enrollment(interaction.user.id)
    except StorageError:
        log.exception("Tutor lookup failed for %s", interaction.user.id)
        await reply_error(interaction, "Storage error. Check logs.")
        return

    system, _ = tutor_system_for(core, enrollment)
    try:
        answer = await core.tutor.reply(interaction.user.id, prompt, system)
    except GenerationError as e:
        log.warning("Tutor command failed for %s: %s", interaction.user.id, e)
        await reply_text(interaction, TUTOR_OFFLINE)
        return

    await reply_text(interaction, clean_llm_text(answer))


def register_tutor_commands(client: discord.Client, core: BotCore) -> None:
    # -----------------------------
    # /translate
    # -----------------------------
    @client.tree.command(name="translate", description="Translate between English and Italian.")
    @app_commands.describe(text="English or Italian text")
    async def translate(interaction: discord.Interaction, text: str = ""):
        text = (text or "").strip()
        if not text:
            await reply_text(interaction, TRANSLATE_USAGE, ephemeral=True)
            return
        await _ask_tutor(interaction, core, translate_prompt(text[:1500]))

    # -----------------------------
    # /grammar
    # -----------------------------
    @client.tree.command(name="grammar", description="Ask an Italian grammar question.")
    @app_commands.describe(question="What you want explained")
    async def grammar(interaction: discord.Interaction, question: str = ""):
        question = (question or "").strip()
        if not question:
            await reply_text(interaction, GRAMMAR_USAGE, ephemeral=True)
            return
        await _ask_tutor(interaction, core, grammar_prompt(question[:1500]))

    # -----------------------------
    # /clear
    # -----------------------------
    @client.tree.command(name="clear", description="Forget your conversation with the tutor.")
    async def clear(interaction: discord.Interaction):
        had_history = core.tutor.clear(interaction.user.id)
        log.debug("Tutor history cleared for %s (had=%s)", interaction.user.id, had_history)
        await reply_embed(interaction, title="🧹 Nuova conversazione", description=CLEARED, ephemeral=True)
