import asyncio
import json

import pytest

from conftest import FakeLLM, utc, words_json
from imparo.models.plan import Focus
from imparo.models.vocab import VocabularyItem
from imparo.services.daily_plan import build_daily_plan
from imparo.services.dispatcher import (
    CONTENT_FOR_FOCUS,
    ContentDispatcher,
    ContentKind,
    content_kind_for,
    wants_practice_prompt,
)
from imparo.services.review import ReviewScheduler

NOW = utc(2024, 2, 5, 8)


def _dispatcher(store, llm) -> ContentDispatcher:
    return ContentDispatcher(llm, store, ReviewScheduler(store))


def _enroll(store, learner_id=1, when=NOW):
    enrollment, _ = store.register_enrollment(learner_id, "m", when)
    return enrollment


def test_every_focus_has_content() -> None:
    assert set(CONTENT_FOR_FOCUS) == set(Focus)


@pytest.mark.parametrize(
    "focus, kind",
    [
        (Focus.INTRODUCTION, ContentKind.VOCABULARY),
        (Focus.INTEGRATION, ContentKind.VOCABULARY),
        (Focus.EXPANSION, ContentKind.STORY),
        (Focus.PRACTICE, ContentKind.PRACTICE_PROMPT),
        (Focus.APPLICATION, ContentKind.STORY),
        (Focus.MASTERY, ContentKind.PRACTICE_PROMPT),
        (Focus.CONSOLIDATION, ContentKind.QUIZ),
    ],
)
def test_decision_table(focus, kind) -> None:
    assert content_kind_for(focus) is kind


def test_practice_prompt_only_on_writing_days() -> None:
    wanted = {f for f in Focus if wants_practice_prompt(f)}
    assert wanted == {Focus.EXPANSION, Focus.PRACTICE, Focus.MASTERY}


def test_vocabulary_persists_new_words_only(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    known = VocabularyItem(term="parola0", translation="old", mastery_level=4, learned_at=utc(2024, 2, 1))
    memory_store.upsert_vocabulary(1, 1, [known])

    llm = FakeLLM([words_json(8)])
    plan = build_daily_plan(curriculum, 1, 2)
    content = asyncio.run(_dispatcher(memory_store, llm).vocabulary(enrollment, plan, NOW))

    assert content.kind is ContentKind.VOCABULARY
    assert content.fallback is False
    assert "parola7" in content.text

    stored = {w.term: w for w in memory_store.get_vocabulary(1, 1)}
    assert len(stored) == 8
    assert stored["parola0"].mastery_level == 4
    assert stored["parola0"].translation == "old"
    assert stored["parola3"].learned_at == NOW
    assert "parola0" in llm.calls[0]["prompt"]


def test_vocabulary_fallback_still_delivers(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    plan = build_daily_plan(curriculum, 1, 1)
    content = asyncio.run(_dispatcher(memory_store, FakeLLM()).vocabulary(enrollment, plan, NOW))

    assert content.fallback is True
    assert len(content.words) == 10
    assert len(memory_store.get_vocabulary(1, 1)) == 10


def test_vocabulary_on_a_no_new_words_day(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    plan = build_daily_plan(curriculum, 1, 7)
    llm = FakeLLM()
    content = asyncio.run(_dispatcher(memory_store, llm).vocabulary(enrollment, plan, NOW))
    assert content.fallback is False
    assert content.words == []
    assert "No new words today" in content.text
    assert llm.calls == []


def test_story_context_is_first_five_week_words(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    memory_store.upsert_vocabulary(
        1, 1, [VocabularyItem(term=f"w{i}", translation=f"t{i}") for i in range(8)]
    )
    llm = FakeLLM()
    plan = build_daily_plan(curriculum, 1, 3)
    content = asyncio.run(_dispatcher(memory_store, llm).story(enrollment, plan))

    assert content.kind is ContentKind.STORY and content.fallback
    prompt = llm.calls[0]["prompt"]
    assert "w4 (t4)" in prompt and "w5" not in prompt


def test_dispatch_follows_the_table(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    dispatcher = _dispatcher(memory_store, FakeLLM())
    for day, kind in [(1, ContentKind.VOCABULARY), (3, ContentKind.STORY), (4, ContentKind.PRACTICE_PROMPT), (7, ContentKind.QUIZ)]:
        content = asyncio.run(dispatcher.dispatch(enrollment, build_daily_plan(curriculum, 2, day), NOW))
        assert content.kind is kind
        assert content.fallback is True
        assert content.text


def test_practice_prompt_then_feedback(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    plan = build_daily_plan(curriculum, 1, 4)
    dispatcher = _dispatcher(memory_store, FakeLLM())

    asyncio.run(dispatcher.practice_prompt(enrollment, plan))
    assert 1 in dispatcher.practice_pending

    dispatcher.llm = FakeLLM(["Ottimo lavoro!"])
    content = asyncio.run(dispatcher.practice_feedback(enrollment, plan, "Io mangio la pizza."))
    assert content.kind is ContentKind.FEEDBACK
    assert "Ottimo lavoro!" in content.text
    assert 1 not in dispatcher.practice_pending
    assert memory_store.get_daily_completion(1, 1, 4)["task_completed"] is True


def test_themed_vocabulary_adds_to_week(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    memory_store.upsert_vocabulary(1, 2, [VocabularyItem(term="casa", translation="house", mastery_level=3)])
    raw = json.dumps(
        [{"category": "Nouns", "words": [{"italian": "casa", "english": "home"}, {"italian": "letto", "english": "bed"}]}]
    )
    plan = build_daily_plan(curriculum, 2, 5)
    content = asyncio.run(_dispatcher(memory_store, FakeLLM([raw])).themed_vocabulary(enrollment, plan, NOW))

    assert [w.term for w in content.words] == ["letto"]
    stored = {w.term: w for w in memory_store.get_vocabulary(1, 2)}
    assert stored["casa"].mastery_level == 3
    assert stored["letto"].learned_at == NOW
    assert "NOUNS" in content.text


def test_review_session_uses_due_words(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store, when=utc(2024, 2, 1))
    memory_store.upsert_vocabulary(
        1, 1, [VocabularyItem(term="ciao", translation="hello", learned_at=utc(2024, 2, 1))]
    )
    plan = build_daily_plan(curriculum, 1, 5)
    content = _dispatcher(memory_store, FakeLLM()).review_session(enrollment, plan, NOW)
    assert content.kind is ContentKind.REVIEW
    assert [w.term for w in content.words] == ["ciao"]
    assert "hello" in content.text


def test_vocabulary_is_generated_once_per_day(memory_store, curriculum) -> None:
    enrollment = _enroll(memory_store)
    plan = build_daily_plan(curriculum, 1, 1)
    llm = FakeLLM([words_json(10, "primo"), words_json(10, "secondo")])
    dispatcher = _dispatcher(memory_store, llm)

    first = asyncio.run(dispatcher.vocabulary(enrollment, plan, NOW))
    again = asyncio.run(dispatcher.vocabulary(enrollment, plan, NOW.replace(hour=15)))
    asyncio.run(dispatcher.vocabulary(enrollment, plan, NOW.replace(hour=22)))

    assert len(llm.calls) == 1
    assert len(memory_store.get_vocabulary(1, 1)) == plan.vocabulary_count
    assert [w.term for w in again.words] == [w.term for w in first.words]
    assert again.fallback is False
    assert "primo9" in again.text and "secondo0" not in again.text
    assert memory_store.get_daily_completion(1, 1, 1) == {"words_sent": 10}
