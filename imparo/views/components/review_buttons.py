import discord

from imparo.utils.discord_ui import internal_error


class RevealButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Mostra / Reveal", style=discord.ButtonStyle.secondary)

    async def callback(self, interaction: discord.Interaction):
        view = self.view
        if not view or not hasattr(view, "reveal"):
            return await internal_error(interaction)
        await view.reveal(interaction)


class GotItButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Got it ✅", style=discord.ButtonStyle.success)

    async def callback(self, interaction: discord.Interaction):
        view = self.view
        if not view or not hasattr(view, "answer"):
            return await internal_error(interaction)
        await view.answer(interaction, correct=True)


class MissedItButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Missed it ❌", style=discord.ButtonStyle.danger)

    async def callback(self, interaction: discord.Interaction):
        view = self.view
        if not view or not hasattr(view, "answer"):
            return await internal_error(interaction)
        await view.answer(interaction, correct=False)
