import json
import re
from typing import List

# Discord message content limit is 2000; leave room for a continuation marker
MESSAGE_LIMIT = 1900


# -----------------------------
# LLM cleaning helpers
# -----------------------------
def unwrap_message_json(text: str) -> str:
    try:
        maybe = json.loads(text)
    except (TypeError, ValueError):
        return text
    if isinstance(maybe, dict) and "message" in maybe:
        return str(maybe["message"])
    return text


def clean_llm_text(text: str) -> str:
    text = unwrap_message_json(text or "")

    lines: List[str] = []
    for line in text.splitlines():
        s = line.rstrip()

        # lone hashtags the small models like to append
        if re.match(r"^\s*#\w+\s*$", s):
            continue

        s = re.sub(r"^\s*#{1,6}\s*", "", s)
        lines.append(s)

    return normalize_newlines("\n".join(lines))


# -----------------------------
# Generic helpers
# -----------------------------
def limit(s: str, n: int) -> str:
    s = (s or "").strip()
    if len(s) <= n:
        return s
    return s[: max(0, n - 1)].rstrip() + "…"


def normalize_newlines(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", (text or "").strip()).strip()


def chunk_text(text: str, max_len: int = MESSAGE_LIMIT) -> List[str]:
    t = (text or "").strip()
    if not t:
        return ["-"]

    chunks: List[str] = []
    while len(t) > max_len:
        cut = t.rfind("\n\n", 0, max_len)
        if cut == -1:
            cut = t.rfind("\n", 0, max_len)
        if cut == -1:
            cut = max_len

        piece = t[:cut].strip()
        if not piece:
            piece = t[:max_len].strip()

        chunks.append(piece)
        t = t[len(piece):].strip()

    if t:
        chunks.append(t)

    return chunks
