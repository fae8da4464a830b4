import logging
from typing import Any, List, Optional

from imparo.constants import TARGET_LANGUAGE
from imparo.errors import GenerationError
from imparo.models.quiz import QuizQuestion, WeeklyQuiz
from imparo.models.vocab import VocabularyItem
from imparo.services import fallbacks
from imparo.services.llm import GenerationResult, LLMClient
from imparo.services.payloads import clean_text, load_object

log = logging.getLogger("Imparo")

MIN_QUESTIONS = 4
MAX_QUESTIONS = 10
_KINDS = {"multiple_choice", "fill_in_blank", "translation", "vocabulary_matching"}


def _coerce_question(q: Any) -> Optional[QuizQuestion]:
    if not isinstance(q, dict):
        return None

    kind = clean_text(q.get("type"), 40).lower() or "translation"
    if kind not in _KINDS:
        kind = "translation"
    question = clean_text(q.get("question"), 300)
    if not question:
        return None

    if kind == "vocabulary_matching":
        pairs = [p for p in (q.get("pairs") or []) if isinstance(p, dict)]
        if not pairs:
            return None
        answer = "; ".join(f"{clean_text(p.get('italian'), 60)} = {clean_text(p.get('english'), 60)}" for p in pairs[:6])
        return QuizQuestion(kind=kind, question=question, answer=answer,
                            explanation=clean_text(q.get("explanation"), 300))

    if kind == "multiple_choice":
        choices = [clean_text(c, 80) for c in (q.get("options") or []) if clean_text(c, 80)]
        try:
            idx = int(q.get("correct_answer"))
        except (TypeError, ValueError):
            return None
        if len(choices) not in (3, 4) or not (0 <= idx < len(choices)):
            return None
        return QuizQuestion(
            kind=kind,
            question=question,
            answer=choices[idx],
            explanation=clean_text(q.get("explanation"), 300),
            question_translation=clean_text(q.get("question_translation"), 300),
            choices=choices,
            answer_index=idx,
        )

    answer = clean_text(q.get("correct_answer"), 200)
    if not answer:
        return None
    return QuizQuestion(
        kind=kind,
        question=question,
        answer=answer,
        explanation=clean_text(q.get("explanation"), 300),
        question_translation=clean_text(q.get("question_translation"), 300),
    )


async def generate_weekly_quiz(
    llm: LLMClient,
    *,
    week: int,
    theme: str,
    vocabulary: List[VocabularyItem],
    n: int = MAX_QUESTIONS,
) -> GenerationResult[WeeklyQuiz]:
    n = max(MIN_QUESTIONS, min(MAX_QUESTIONS, int(n)))
    vocab_list = ", ".join(f"{w.term} ({w.translation})" for w in vocabulary)[:200]

    prompt = f"""
Generate a {n}-question {TARGET_LANGUAGE} quiz for Week {week}, theme "{theme}".
Types: multiple_choice, fill_in_blank, translation, vocabulary_matching.
Use vocabulary: {vocab_list or '(theme vocabulary)'}. Beginner-intermediate level. Include explanations.

Return ONLY valid JSON:
{{"title":"...","instructions":"...","questions":[
  {{"type":"multiple_choice","question":"...","question_translation":"...","options":["...","...","...","..."],"correct_answer":0,"explanation":"..."}},
  {{"type":"fill_in_blank","question":"...","question_translation":"...","correct_answer":"...","explanation":"..."}},
  {{"type":"translation","question":"...","question_translation":"...","correct_answer":"...","explanation":"..."}},
  {{"type":"vocabulary_matching","question":"...","pairs":[{{"italian":"...","english":"..."}}],"explanation":"..."}}
]}}
""".strip()

    try:
        raw = await llm.ask(
            prompt=prompt,
            system=f"You are a {TARGET_LANGUAGE} teacher. Return ONLY valid JSON.",
            max_tokens=2500,
            temperature=0.7,
        )
        data = load_object(raw)
        questions = [q for q in (_coerce_question(x) for x in (data.get("questions") or [])) if q]
        if len(questions) < MIN_QUESTIONS:
            raise GenerationError(f"only {len(questions)} usable questions")
    except (GenerationError, ValueError) as e:
        log.warning("Weekly quiz fell back (week=%s): %s", week, e)
        return GenerationResult.fell_back(fallbacks.fallback_quiz(week, theme, vocabulary), e)

    return GenerationResult.success(
        WeeklyQuiz(
            week=int(week),
            theme=theme,
            title=clean_text(data.get("title"), 120) or f"Week {week} Quiz",
            instructions=clean_text(data.get("instructions"), 300) or "Answer each question.",
            questions=questions[:n],
        )
    )
