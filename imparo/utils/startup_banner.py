import logging
import platform
import sys

log = logging.getLogger("Imparo")


def startup_banner(
    *,
    provider: str,
    model: str,
    api: str,
    commands: int,
    learners: int,
    jobs: int,
    storage: str,
    version: str,
    mode: str,
) -> None:
    python_ver = sys.version.split()[0]
    os_name = platform.system()

    rows = [
        ("CORE", f"Imparo v{version}"),
        ("ENV", mode),
        ("RUNTIME", f"Python {python_ver}"),
        ("HOST", os_name),
        ("AI-ENGINE", f"{provider} / {model}"),
        ("LINK", api),
        ("STORAGE", storage),
        ("COMMANDS", str(commands)),
        ("LEARNERS", str(learners)),
        ("JOBS", f"{jobs} scheduled (UTC)"),
        ("STATUS", "OPERATIONAL"),
    ]

    width = 44
    line = "─" * width

    log.info(line)
    log.info(" 🇮🇹 Imparo is online")
    log.info("")

    label_width = max(len(k) for k, _ in rows)

    for k, v in rows:
        log.info(f"{k.ljust(label_width)} : {v}")

    log.info(line)
