import asyncio
import json

from conftest import FakeLLM, utc, words_json
from imparo.errors import GenerationError
from imparo.models.vocab import VocabularyItem
from imparo.services import fallbacks
from imparo.services.daily_plan import build_daily_plan
from imparo.services.dispatcher import ContentDispatcher
from imparo.services.payloads import load_list, safe_json_loads
from imparo.services.quiz_gen import generate_weekly_quiz
from imparo.services.review import ReviewScheduler
from imparo.services.story_gen import check_user_sentences, generate_practice_prompt, generate_story
from imparo.services.words_gen import coerce_words, generate_daily_words, generate_structured_vocabulary

VOCAB = [
    VocabularyItem(term="ciao", translation="hello", example="Ciao, Marco!"),
    VocabularyItem(term="grazie", translation="thank you"),
]


def _words(llm, count=8, **kw):
    return asyncio.run(
        generate_daily_words(
            llm,
            theme="Greetings and Basic Phrases",
            task="Learn words",
            focus="integration",
            count=count,
            week=1,
            day=2,
            **kw,
        )
    )


# -----------------------------
# JSON repair
# -----------------------------
def test_safe_json_loads_handles_fences_and_trailing_commas() -> None:
    raw = 'Sure! ```json\n{"a": [1, 2,], "b": “x”}\n```'
    assert safe_json_loads(raw) == {"a": [1, 2], "b": "x"}


def test_load_list_unwraps_key() -> None:
    assert load_list('{"words": [{"italian": "uno"}]}', "words") == [{"italian": "uno"}]


def test_coerce_words_drops_incomplete_and_duplicate_entries() -> None:
    raw = [
        {"italian": "Casa", "english": "house"},
        {"italian": "casa", "english": "home"},
        {"italian": "", "english": "nothing"},
        {"term": "pane", "english": "bread", "translation": "Bread example."},
        "not a dict",
    ]
    words = coerce_words(raw, week=3)
    assert [w.term for w in words] == ["Casa", "pane"]
    assert words[1].example_translation == "Bread example."
    assert all(w.week == 3 for w in words)


# -----------------------------
# Daily words
# -----------------------------
def test_daily_words_success() -> None:
    llm = FakeLLM([words_json(8)])
    result = _words(llm)
    assert result.ok and not result.fallback
    assert len(result.payload) == 8
    assert result.payload[0].term == "parola0"
    assert result.payload[0].example_translation == "This is word 0."


def test_daily_words_zero_quota_skips_the_provider() -> None:
    llm = FakeLLM()
    result = _words(llm, count=0)
    assert result.ok and result.payload == []
    assert llm.calls == []


def test_daily_words_count_mismatch_falls_back() -> None:
    result = _words(FakeLLM([words_json(5)]))
    assert result.fallback
    assert len(result.payload) == 8
    assert "expected 8" in result.error


def test_daily_words_provider_error_falls_back() -> None:
    result = _words(FakeLLM([GenerationError("HTTP 503")]))
    assert result.fallback
    assert len(result.payload) == 8
    assert len({w.term for w in result.payload}) == 8


def test_daily_words_repairs_broken_json_once() -> None:
    llm = FakeLLM(["here are words: [{oops", words_json(8, "fixed")])
    result = _words(llm)
    assert result.ok
    assert result.payload[0].term == "fixed0"
    assert len(llm.calls) == 2
    assert "EXACTLY 8 items" in llm.calls[1]["prompt"]


def test_daily_words_unrepairable_json_falls_back() -> None:
    result = _words(FakeLLM(["nope", "still nope"]))
    assert result.fallback
    assert len(result.payload) == 8


def test_daily_words_prompt_lists_known_words() -> None:
    llm = FakeLLM([words_json(8)])
    _words(llm, avoid=["ciao", "grazie"])
    assert "ciao, grazie" in llm.calls[0]["prompt"]


def test_fallback_words_differ_between_days() -> None:
    day2 = _words(FakeLLM())
    day3 = asyncio.run(
        generate_daily_words(FakeLLM(), theme="t", task="t", focus="expansion", count=8, week=1, day=3)
    )
    assert [w.term for w in day2.payload] != [w.term for w in day3.payload]


def test_structured_vocabulary() -> None:
    raw = json.dumps(
        [
            {"category": "Nouns", "words": [{"italian": "casa", "english": "house"}]},
            {"category": "Verbs", "words": [{"italian": "andare", "english": "to go"}]},
        ]
    )
    result = asyncio.run(generate_structured_vocabulary(FakeLLM([raw]), theme="Home", task="t", week=5))
    assert result.ok
    assert list(result.payload) == ["Nouns", "Verbs"]
    assert result.payload["Verbs"][0].week == 5


def test_structured_vocabulary_fallback() -> None:
    result = asyncio.run(generate_structured_vocabulary(FakeLLM(), theme="Home", task="t", week=5))
    assert result.fallback
    assert list(result.payload) == ["Nouns", "Verbs", "Adjectives"]
    assert all(len(ws) == 5 for ws in result.payload.values())


# -----------------------------
# Stories and practice
# -----------------------------
def test_story_success() -> None:
    raw = json.dumps(
        {
            "title": "Al bar",
            "story": "Marco entra nel bar. Ordina un caffè e un cornetto. Il barista sorride.",
            "translation": "Marco enters the bar.",
            "vocabulary_used": ["caffè", "bar"],
            "questions": [{"question": "Cosa ordina Marco?", "translation": "What does Marco order?"}],
        }
    )
    llm = FakeLLM([raw])
    result = asyncio.run(generate_story(llm, theme="Food", vocabulary=VOCAB))
    assert result.ok
    assert result.payload.title == "Al bar"
    assert len(result.payload.questions) == 1
    assert "ciao (hello)" in llm.calls[0]["prompt"]


def test_story_too_short_falls_back() -> None:
    raw = json.dumps({"title": "X", "story": "Breve."})
    result = asyncio.run(generate_story(FakeLLM([raw]), theme="Food", vocabulary=[]))
    assert result.fallback
    assert result.payload.story


def test_practice_prompt_fallback_uses_vocabulary() -> None:
    result = asyncio.run(generate_practice_prompt(FakeLLM(["{}"]), theme="Food", vocabulary=VOCAB))
    assert result.fallback
    assert result.payload.prompt


def test_sentence_feedback() -> None:
    ok = asyncio.run(
        check_user_sentences(FakeLLM(["  Bravo! Perfetto.  "]), sentences="Io sono Marco.", theme="t", vocabulary=[])
    )
    assert ok.payload == "Bravo! Perfetto."

    down = asyncio.run(check_user_sentences(FakeLLM(), sentences="Io sono Marco.", theme="Food", vocabulary=[]))
    assert down.fallback
    assert "Food" in down.payload


# -----------------------------
# Weekly quiz
# -----------------------------
def _quiz_json(n: int) -> str:
    questions = []
    for i in range(n):
        questions.append(
            {
                "type": "multiple_choice",
                "question": f"Domanda {i}?",
                "options": ["a", "b", "c", "d"],
                "correct_answer": i % 4,
                "explanation": "because",
            }
        )
    questions.append({"type": "vocabulary_matching", "question": "Match", "pairs": [{"italian": "uno", "english": "one"}]})
    return json.dumps({"title": "Quiz settimanale", "instructions": "Rispondi.", "questions": questions})


def test_weekly_quiz_success() -> None:
    result = asyncio.run(generate_weekly_quiz(FakeLLM([_quiz_json(5)]), week=2, theme="Numbers", vocabulary=VOCAB))
    assert result.ok
    quiz = result.payload
    assert quiz.title == "Quiz settimanale"
    assert len(quiz.questions) == 6
    assert quiz.questions[1].answer == "b"
    assert quiz.questions[-1].answer == "uno = one"


def test_weekly_quiz_with_too_few_usable_questions_falls_back() -> None:
    result = asyncio.run(generate_weekly_quiz(FakeLLM([_quiz_json(1)]), week=2, theme="Numbers", vocabulary=VOCAB))
    assert result.fallback
    assert result.payload.week == 2
    assert [q.answer for q in result.payload.questions] == ["ciao", "thank you"]


def test_weekly_quiz_invalid_multiple_choice_is_dropped() -> None:
    data = json.loads(_quiz_json(4))
    data["questions"][0]["options"] = ["only", "two"]
    result = asyncio.run(
        generate_weekly_quiz(FakeLLM([json.dumps(data)]), week=2, theme="Numbers", vocabulary=VOCAB)
    )
    assert result.ok
    assert len(result.payload.questions) == 4


def test_fallback_words_never_repeat_within_a_week() -> None:
    seen = []
    for day in range(1, 6):
        quota = 10 if day == 1 else 8
        seen.extend(w.term for w in fallbacks.fallback_words(quota, week=4, day=day))
    assert len(seen) == 42
    assert len(set(seen)) == 42


def test_fallback_week_fills_storage_to_quota(memory_store, curriculum) -> None:
    enrollment, _ = memory_store.register_enrollment(1, "m", utc(2024, 2, 5))
    dispatcher = ContentDispatcher(FakeLLM(), memory_store, ReviewScheduler(memory_store))
    for day in range(1, 6):
        plan = build_daily_plan(curriculum, 1, day)
        asyncio.run(dispatcher.vocabulary(enrollment, plan, utc(2024, 2, 4 + day, 8)))
    assert len(memory_store.get_vocabulary(1, 1)) == 42
