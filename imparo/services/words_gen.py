import logging
from typing import Any, Dict, List, Optional

from imparo.constants import TARGET_LANGUAGE
from imparo.errors import GenerationError
from imparo.models.vocab import VocabularyItem
from imparo.services import fallbacks
from imparo.services.llm import GenerationResult, LLMClient
from imparo.services.payloads import clean_text, load_list, safe_json_loads

log = logging.getLogger("Imparo")

MAX_TERM = 60
MAX_EXAMPLE = 200

WORDS_SYSTEM = (
    f"You are an expert {TARGET_LANGUAGE} teacher writing vocabulary for English-speaking beginners.\n"
    "Return ONLY valid JSON. No commentary, no code fences."
)


def _coerce_word(item: Any, week: int) -> Optional[VocabularyItem]:
    if not isinstance(item, dict):
        return None
    term = clean_text(item.get("italian") or item.get("term"), MAX_TERM)
    translation = clean_text(item.get("english") or item.get("translation_word") or item.get("meaning"), MAX_TERM)
    if not term or not translation:
        return None
    return VocabularyItem(
        term=term,
        translation=translation,
        pronunciation=clean_text(item.get("pronunciation"), MAX_TERM),
        example=clean_text(item.get("example"), MAX_EXAMPLE),
        example_translation=clean_text(item.get("translation") or item.get("example_translation"), MAX_EXAMPLE),
        week=int(week),
    )


def coerce_words(raw: List[Any], week: int) -> List[VocabularyItem]:
    out: List[VocabularyItem] = []
    seen = set()
    for item in raw:
        w = _coerce_word(item, week)
        if w is None:
            continue
        key = w.term.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(w)
    return out


async def _retry_fix_json(llm: LLMClient, broken: str, n: int) -> List[Any]:
    prompt = (
        "Fix the following so it becomes VALID JSON ONLY.\n"
        "- Output ONLY a JSON array\n"
        '- Keep structure: [{"italian":"...","english":"...","pronunciation":"...","example":"...","translation":"..."}]\n'
        f"- EXACTLY {n} items\n\n"
        f"BROKEN:\n{broken[:4000]}"
    )
    fixed = await llm.ask(
        prompt=prompt,
        system="You repair JSON. Output ONLY valid JSON.",
        max_tokens=min(2400, 300 + n * 120),
        temperature=0.0,
    )
    return load_list(fixed, "words")


async def generate_daily_words(
    llm: LLMClient,
    *,
    theme: str,
    task: str,
    focus: str,
    count: int,
    week: int,
    day: int,
    avoid: Optional[List[str]] = None,
) -> GenerationResult[List[VocabularyItem]]:
    """
    Exactly `count` new words for the theme. Anything else (provider down,
    unparsable JSON, wrong number of words) yields the curated list instead.
    """
    count = max(0, int(count))
    if count == 0:
        return GenerationResult.success([])

    avoid = [a for a in (avoid or []) if a][:40]
    avoid_block = ""
    if avoid:
        avoid_block = "\nDo NOT repeat these words the learner already knows:\n" + ", ".join(avoid) + "\n"

    prompt = f"""
Generate EXACTLY {count} {TARGET_LANGUAGE} words for the theme "{theme}".
Today's task: {task}. Day focus: {focus}.
{avoid_block}
Return ONLY a JSON array in this format:
[
  {{
    "italian": "word in {TARGET_LANGUAGE}",
    "english": "English translation",
    "pronunciation": "phonetic pronunciation",
    "example": "simple example sentence in {TARGET_LANGUAGE} that contains the word",
    "translation": "English translation of the example"
  }}
]

Rules:
- EXACTLY {count} items
- common, practical words for beginners
- every example sentence must contain the word exactly as written
""".strip()

    raw = ""
    try:
        raw = await llm.ask(
            prompt=prompt,
            system=WORDS_SYSTEM,
            max_tokens=min(2400, 300 + count * 120),
            temperature=0.7,
        )
        try:
            items = load_list(raw, "words")
        except ValueError as e:
            log.warning("Words JSON parse failed: %s", e)
            items = await _retry_fix_json(llm, raw, count)

        words = coerce_words(items, week)
        if len(words) != count:
            raise GenerationError(f"expected {count} words, got {len(words)}")
    except (GenerationError, ValueError) as e:
        log.warning("Daily words fell back (theme=%r week=%s day=%s): %s", theme, week, day, e)
        return GenerationResult.fell_back(fallbacks.fallback_words(count, week, day), e)

    log.info("Generated %d words for theme %r", len(words), theme)
    return GenerationResult.success(words)


async def generate_structured_vocabulary(
    llm: LLMClient,
    *,
    theme: str,
    task: str,
    week: int,
) -> GenerationResult[Dict[str, List[VocabularyItem]]]:
    prompt = f"""
Generate a vocabulary list for the theme "{theme}" ({task}), organised by category.
Include nouns, verbs, adjectives and useful phrases; 4-6 items per category.

Return ONLY valid JSON in this format:
[
  {{
    "category": "Nouns",
    "words": [
      {{"italian": "...", "english": "...", "pronunciation": "...", "example": "...", "translation": "..."}}
    ]
  }}
]
""".strip()

    try:
        raw = await llm.ask(prompt=prompt, system=WORDS_SYSTEM, max_tokens=2500, temperature=0.7)
        data = safe_json_loads(raw)
        if isinstance(data, dict):
            data = data.get("categories") or []
        if not isinstance(data, list):
            raise ValueError("JSON root is not a list")

        out: Dict[str, List[VocabularyItem]] = {}
        for cat in data:
            if not isinstance(cat, dict):
                continue
            name = clean_text(cat.get("category"), 40) or "Words"
            words = coerce_words(cat.get("words") or [], week)
            if words:
                out.setdefault(name, []).extend(words)
        if not out:
            raise GenerationError("no usable categories")
    except (GenerationError, ValueError) as e:
        log.warning("Structured vocabulary fell back (theme=%r): %s", theme, e)
        words = fallbacks.fallback_words(15, week, 1)
        return GenerationResult.fell_back(
            {"Nouns": words[:5], "Verbs": words[5:10], "Adjectives": words[10:15]},
            e,
        )

    return GenerationResult.success(out)
