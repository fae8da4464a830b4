from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# libraries that only matter when something goes wrong
QUIET_LOGGERS = ("discord", "discord.client", "discord.gateway", "discord.http", "httpx", "httpcore")


class LevelTagFormatter(logging.Formatter):
    """Console lines as `HH:MM:SS ✔ message`, with only the level tag coloured."""

    TAGS = {
        logging.DEBUG: ("\033[90m", "·"),
        logging.INFO: ("\033[92m", "✔"),
        logging.WARNING: ("\033[93m", "!"),
        logging.ERROR: ("\033[91m", "✖"),
        logging.CRITICAL: ("\033[95m", "✖✖"),
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__(fmt="%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        color, tag = self.TAGS.get(record.levelno, ("", "?"))
        stamp = self.formatTime(record, "%H:%M:%S")
        if self.color:
            tag = f"{color}{tag}{self.RESET}"
        return f"{stamp} {tag} {super().format(record)}"


class DropGatewayChatter(logging.Filter):
    """Hides the connection lines discord.py prints on every (re)connect."""

    NEEDLES = (
        "logging in using static token",
        "Shard ID",
        "has connected to Gateway",
        "has successfully RESUMED",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(n in msg for n in self.NEEDLES)


def _level(name: str, default: int) -> int:
    value = logging.getLevelName((name or "").upper())
    return value if isinstance(value, int) else default


def _rotating(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    *,
    log_dir: str = "logs",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    color: bool | None = None,
) -> Path:
    """
    Console + two rotating files under `log_dir`: imparo.log gets everything
    at `file_level`, errors.log only warnings and worse. Returns the main
    log path.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / "imparo.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    if color is None:
        color = sys.stdout.isatty()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(_level(console_level, logging.INFO))
    console.setFormatter(LevelTagFormatter(color=color))
    console.addFilter(DropGatewayChatter())
    root.addHandler(console)

    root.addHandler(_rotating(log_path, _level(file_level, logging.DEBUG)))
    root.addHandler(_rotating(directory / "errors.log", logging.WARNING))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("Imparo").debug("Logging ready: %s", log_path.resolve())
    return log_path
