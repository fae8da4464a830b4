import os
import logging
from pathlib import Path
from dotenv import load_dotenv

log = logging.getLogger("config")

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=True)
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
GUILD_ID = int(os.getenv("GUILD_ID", "0"))
ADMIN_USER_IDS = {
    int(x) for x in os.getenv("ADMIN_USER_IDS", "").replace(" ", "").split(",") if x.isdigit()
}

DB_PATH = os.getenv("DB_PATH", "./data/imparo.sqlite3")
# "sqlite" (durable) or "memory" (process-local, lost on restart)
STORAGE_MODE = os.getenv("STORAGE_MODE", "sqlite").strip().lower()
PLAN_PATH = os.getenv("PLAN_PATH", str(BASE_DIR / "imparo" / "data" / "plan.json"))

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "local").strip().lower()
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "qwen2.5:7b-instruct")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "45"))
BROADCAST_DELAY_S = float(os.getenv("BROADCAST_DELAY_S", "1.0"))

LOG_DIR = os.getenv("LOG_DIR", str(BASE_DIR / "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

log.debug("BASE_DIR=%s", BASE_DIR)
log.debug("ENV_PATH=%s exists=%s", ENV_PATH, ENV_PATH.exists())
log.debug("TOKEN_LEN=%s", len(DISCORD_TOKEN or ""))
log.debug("DB_PATH=%s STORAGE_MODE=%s", DB_PATH, STORAGE_MODE)
log.debug("PLAN_PATH=%s", PLAN_PATH)
log.debug("LLM_PROVIDER=%s OPENAI_BASE_URL=%s DEFAULT_MODEL=%s", LLM_PROVIDER, OPENAI_BASE_URL, DEFAULT_MODEL)
log.debug("GUILD_ID=%s", GUILD_ID)
