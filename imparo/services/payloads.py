import json
import re
from typing import Any, Dict, List

# -----------------------------
# JSON helpers (robust)
# -----------------------------
def _strip_fences(text: str) -> str:
    s = (text or "").strip()
    if s.startswith("```"):
        parts = s.split("```")
        if len(parts) >= 3:
            s = parts[1].strip()
            if s.lower().startswith("json"):
                s = s[4:].strip()
    return s.strip()


def _normalize_quotes(s: str) -> str:
    return s.replace("“", '"').replace("”", '"')


def _strip_control_chars(s: str) -> str:
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f]", "", s)


def _remove_trailing_commas(s: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", s)


def _extract_first_json(text: str) -> str:
    s = _strip_control_chars(_normalize_quotes(_strip_fences(text)))

    starts = [i for i in (s.find("{"), s.find("[")) if i != -1]
    if not starts:
        raise ValueError("No JSON value found")
    start = min(starts)
    opener = s[start]
    closer = "}" if opener == "{" else "]"

    depth = 0
    in_str = False
    esc = False

    for i in range(start, len(s)):
        ch = s[i]

        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue

        if ch == '"':
            in_str = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return s[start : i + 1].strip()

    raise ValueError("Unbalanced JSON brackets")


def safe_json_loads(text: str) -> Any:
    return json.loads(_remove_trailing_commas(_extract_first_json(text)))


def load_object(text: str) -> Dict[str, Any]:
    data = safe_json_loads(text)
    if not isinstance(data, dict):
        raise ValueError("JSON root is not an object")
    return data


def load_list(text: str, key: str = "") -> List[Any]:
    """A bare JSON array, or the array under `key` when the model wrapped it."""
    data = safe_json_loads(text)
    if isinstance(data, dict) and key and isinstance(data.get(key), list):
        data = data[key]
    if not isinstance(data, list):
        raise ValueError("JSON root is not a list")
    return data


def clean_text(s: Any, max_len: int = 400) -> str:
    s = re.sub(r"\s+", " ", str(s or "")).strip()
    return s[:max_len]


def str_list(x: Any, max_items: int = 12) -> List[str]:
    if not x:
        return []
    if not isinstance(x, list):
        x = [x]
    return [clean_text(i, 200) for i in x if clean_text(i, 200)][:max_items]
