import io
import logging
import sys

import discord
from discord import app_commands

from config import (
    BROADCAST_DELAY_S,
    DB_PATH,
    DISCORD_TOKEN,
    GUILD_ID,
    LLM_PROVIDER,
    LOG_DIR,
    LOG_LEVEL,
    PLAN_PATH,
    STORAGE_MODE,
)
from imparo.commands import (
    register_admin_commands,
    register_chat_router,
    register_learning_commands,
    register_tutor_commands,
)
from imparo.constants import BOT_MODE, BOT_VERSION
from imparo.db import open_storage
from imparo.services.broadcast import DiscordSender
from imparo.services.core import build_core
from imparo.services.curriculum import CurriculumStore
from imparo.services.llm import build_llm_client
from imparo.services.scheduler import BroadcastScheduler
from imparo.utils.logger_setup import setup_logging
from imparo.utils.startup_banner import startup_banner

log = logging.getLogger("Imparo")


class _FilterPyNaCl(io.TextIOWrapper):
    def write(self, text):
        if "PyNaCl is not installed" in text:
            return 0
        return super().write(text)


def build_client():
    intents = discord.Intents.default()
    intents.message_content = True

    store = open_storage(STORAGE_MODE, DB_PATH)
    curriculum = CurriculumStore(PLAN_PATH)
    llm = build_llm_client()

    class ImparoBot(discord.Client):
        def __init__(self) -> None:
            super().__init__(intents=intents)
            self.tree = app_commands.CommandTree(self)

        async def setup_hook(self) -> None:
            register_learning_commands(self, core)
            register_admin_commands(self, core)
            register_tutor_commands(self, core)

            if GUILD_ID:
                guild = discord.Object(id=GUILD_ID)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
            else:
                await self.tree.sync()

            core.scheduler.start()

        async def close(self) -> None:
            if core.scheduler is not None:
                core.scheduler.stop()
            await super().close()
            store.close()
            log.info("Imparo shut down cleanly")

    client = ImparoBot()
    core = build_core(store, llm, curriculum, DiscordSender(client), delay_s=BROADCAST_DELAY_S)
    core.scheduler = BroadcastScheduler(client, core.broadcaster)
    register_chat_router(client, core)

    @client.event
    async def on_ready() -> None:
        if getattr(client, "_ready_once", False):
            return
        client._ready_once = True

        startup_banner(
            provider=LLM_PROVIDER,
            model=llm.default_model,
            api=llm.base_url.replace("http://", "").replace("https://", ""),
            commands=len(client.tree.get_commands()),
            learners=len(store.list_active_enrollments()),
            jobs=len(core.scheduler.loops),
            storage=STORAGE_MODE,
            version=BOT_VERSION,
            mode=BOT_MODE,
        )

        await client.change_presence(
            status=discord.Status.online,
            activity=discord.Game(name="🇮🇹 Impariamo l'italiano!"),
        )

    return client


def main() -> None:
    sys.stderr = _FilterPyNaCl(sys.stderr.buffer, encoding="utf-8")

    setup_logging(log_dir=LOG_DIR, console_level=LOG_LEVEL, file_level="DEBUG")

    if not DISCORD_TOKEN:
        raise SystemExit("DISCORD_TOKEN missing in .env")

    client = build_client()
    client.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
