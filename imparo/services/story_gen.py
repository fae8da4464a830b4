import logging
from typing import List

from imparo.constants import TARGET_LANGUAGE
from imparo.errors import GenerationError
from imparo.models.content import PracticePrompt, Story, StoryQuestion
from imparo.models.vocab import VocabularyItem
from imparo.services import fallbacks
from imparo.services.llm import GenerationResult, LLMClient
from imparo.services.payloads import clean_text, load_object, str_list

log = logging.getLogger("Imparo")

STORY_SYSTEM = (
    f"You are a {TARGET_LANGUAGE} teacher writing graded reading for beginner-intermediate learners.\n"
    "Return ONLY valid JSON. No commentary, no code fences."
)


def _vocab_list(vocabulary: List[VocabularyItem], limit: int) -> str:
    return ", ".join(f"{w.term} ({w.translation})" for w in vocabulary)[:limit]


def _coerce_story(data: dict) -> Story:
    title = clean_text(data.get("title"), 120)
    body = str(data.get("story") or "").strip()
    if not title or len(body) < 40:
        raise GenerationError("story missing title or text")

    questions = []
    for q in data.get("questions") or []:
        if isinstance(q, dict) and clean_text(q.get("question")):
            questions.append(
                StoryQuestion(
                    question=clean_text(q.get("question"), 200),
                    translation=clean_text(q.get("translation"), 200),
                    answer=clean_text(q.get("answer"), 200),
                    answer_translation=clean_text(q.get("answer_translation"), 200),
                )
            )

    return Story(
        title=title,
        story=body[:2500],
        translation=str(data.get("translation") or "").strip()[:2500],
        vocabulary_used=str_list(data.get("vocabulary_used")),
        questions=questions[:5],
    )


def _coerce_prompt(data: dict) -> PracticePrompt:
    title = clean_text(data.get("title"), 120)
    prompt = clean_text(data.get("prompt"), 600)
    if not title or not prompt:
        raise GenerationError("practice prompt missing title or prompt")
    return PracticePrompt(
        title=title,
        instructions=clean_text(data.get("instructions"), 600),
        prompt=prompt,
        prompt_translation=clean_text(data.get("prompt_translation"), 600),
        vocabulary_to_use=str_list(data.get("vocabulary_to_use")),
        example_response=clean_text(data.get("example_response"), 800),
        example_translation=clean_text(data.get("example_translation"), 800),
        tips=str_list(data.get("tips"), 6),
    )


async def generate_story(
    llm: LLMClient,
    *,
    theme: str,
    vocabulary: List[VocabularyItem],
    level: str = "beginner",
) -> GenerationResult[Story]:
    prompt = (
        f'Write a 150-200 word {TARGET_LANGUAGE} story for the theme "{theme}" at {level} level.\n'
        f"Use these words where natural: {_vocab_list(vocabulary, 200) or '(free choice)'}.\n"
        "Add 3 comprehension questions.\n\n"
        'JSON: {"title":"...","story":"...","translation":"...","vocabulary_used":["..."],'
        '"questions":[{"question":"...","translation":"...","answer":"...","answer_translation":"..."}]}'
    )
    try:
        raw = await llm.ask(prompt=prompt, system=STORY_SYSTEM, max_tokens=1800, temperature=0.8)
        story = _coerce_story(load_object(raw))
    except (GenerationError, ValueError) as e:
        log.warning("Story fell back (theme=%r): %s", theme, e)
        return GenerationResult.fell_back(fallbacks.fallback_story(theme), e)

    log.info("Generated story for theme %r", theme)
    return GenerationResult.success(story)


async def generate_practice_prompt(
    llm: LLMClient,
    *,
    theme: str,
    vocabulary: List[VocabularyItem],
) -> GenerationResult[PracticePrompt]:
    prompt = (
        f'Create a short {TARGET_LANGUAGE} writing exercise for the theme "{theme}" (beginner-intermediate).\n'
        f"Vocabulary to use: {_vocab_list(vocabulary, 150) or '(free choice)'}.\n\n"
        'JSON: {"title":"...","instructions":"...","prompt":"...","prompt_translation":"...",'
        '"vocabulary_to_use":["..."],"example_response":"...","example_translation":"...","tips":["..."]}'
    )
    try:
        raw = await llm.ask(prompt=prompt, system=STORY_SYSTEM, max_tokens=1200, temperature=0.7)
        practice = _coerce_prompt(load_object(raw))
    except (GenerationError, ValueError) as e:
        log.warning("Practice prompt fell back (theme=%r): %s", theme, e)
        return GenerationResult.fell_back(fallbacks.fallback_practice_prompt(theme, vocabulary), e)

    return GenerationResult.success(practice)


async def check_user_sentences(
    llm: LLMClient,
    *,
    sentences: str,
    theme: str,
    vocabulary: List[VocabularyItem],
) -> GenerationResult[str]:
    system = (
        f"You are a {TARGET_LANGUAGE} teacher. Review the student's sentences: grammar, vocabulary, coherence.\n"
        f'Theme: "{theme}". Vocabulary: {_vocab_list(vocabulary, 150)}.\n'
        "Give short, constructive, encouraging feedback with corrected versions."
    )
    try:
        feedback = await llm.ask(
            prompt=f"Review: {(sentences or '')[:500]}",
            system=system,
            max_tokens=800,
            temperature=0.7,
        )
    except GenerationError as e:
        log.warning("Sentence feedback fell back: %s", e)
        return GenerationResult.fell_back(fallbacks.fallback_feedback(theme), e)

    return GenerationResult.success(feedback.strip())
