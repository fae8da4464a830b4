import asyncio
from datetime import timedelta

from conftest import FakeLLM, FakeSender, FlakyStore, utc, words_json
from imparo.services.broadcast import BroadcastReport, Job
from imparo.services.core import build_core
from imparo.services.daily_plan import build_daily_plan

X = utc(2024, 2, 5, 8)


def _run(core, job, now):
    return asyncio.run(core.broadcaster.run(job, now))


# -----------------------------
# A learner's first weeks
# -----------------------------
def test_first_days_of_a_learner(core, llm, sender) -> None:
    core.store.register_enrollment(1, "giulia", X)

    llm.queue(words_json(10, "uno"))
    report = _run(core, Job.MORNING, X)
    assert report.sent == [1]
    assert len(core.store.get_vocabulary(1, 1)) == 10
    assert len(sender.texts_for(1)) == 1
    assert core.store.get_daily_completion(1, 1, 1) == {"words_sent": 10}

    llm.queue(words_json(8, "due"))
    _run(core, Job.MORNING, X + timedelta(days=1))
    texts = sender.texts_for(1)
    assert len(texts) == 3
    assert "uno0" in texts[2]
    flags = core.store.get_daily_completion(1, 1, 2)
    assert flags["words_sent"] == 8
    assert flags["review_due"] == 10
    assert len(core.store.get_vocabulary(1, 1)) == 18


def test_week_two_starts_on_day_eight(core, llm) -> None:
    core.store.register_enrollment(1, "giulia", X)
    llm.queue(words_json(10, "sett"))
    _run(core, Job.MORNING, X + timedelta(days=7))
    assert len(core.store.get_vocabulary(1, 2)) == 10
    assert core.store.get_vocabulary(1, 1) == []


def test_completed_learner_is_deactivated(core, sender) -> None:
    core.store.register_enrollment(1, "done", X - timedelta(days=84))
    core.store.register_enrollment(2, "new", X)

    report = _run(core, Job.MORNING, X)
    assert report.completed == [1]
    assert report.sent == [2]
    assert sender.texts_for(1) == []
    assert core.store.get_enrollment(1).active is False

    again = _run(core, Job.EVENING, X)
    assert again.completed == [] and again.sent == [2]


# -----------------------------
# Failure isolation
# -----------------------------
def test_storage_failure_only_affects_that_learner(curriculum) -> None:
    store = FlakyStore(broken={2})
    sender = FakeSender()
    core = build_core(store, FakeLLM(), curriculum, sender, delay_s=0)
    for lid in (1, 2, 3):
        store.register_enrollment(lid, f"l{lid}", X)

    report = _run(core, Job.MORNING, X)
    assert report.sent == [1, 3]
    assert report.failed == [2]
    assert report.fallbacks == 2
    assert sender.texts_for(2) == []


def test_send_failure_only_affects_that_learner(curriculum, memory_store) -> None:
    sender = FakeSender(fail_for={1})
    core = build_core(memory_store, FakeLLM(), curriculum, sender, delay_s=0)
    memory_store.register_enrollment(1, "a", X)
    memory_store.register_enrollment(2, "b", X)

    report = _run(core, Job.EVENING, X)
    assert report.failed == [1]
    assert report.sent == [2]
    assert memory_store.get_daily_completion(1, 1, 1) is None
    assert memory_store.get_daily_completion(2, 1, 1) == {"story_read": True}


# -----------------------------
# Job gating
# -----------------------------
def test_practice_prompt_only_on_practice_days(core, sender) -> None:
    core.store.register_enrollment(1, "day1", X)
    core.store.register_enrollment(2, "day3", X - timedelta(days=2))

    report = _run(core, Job.PRACTICE, X)
    assert report.skipped == [1]
    assert report.sent == [2]
    assert core.dispatcher.practice_pending == {2}
    assert core.store.get_daily_completion(2, 1, 3) == {"practice_sent": True}


def test_weekly_quiz_only_for_learners_on_day_seven(core, sender) -> None:
    core.store.register_enrollment(1, "day7", X - timedelta(days=6))
    core.store.register_enrollment(2, "day2", X - timedelta(days=1))

    report = _run(core, Job.WEEKLY_QUIZ, X)
    assert report.sent == [1]
    assert report.skipped == [2]
    assert core.store.get_daily_completion(1, 1, 7) == {"quiz_sent": True}


def test_stop_prevents_new_runs(core, sender) -> None:
    core.store.register_enrollment(1, "a", X)
    core.broadcaster.stop()
    report = _run(core, Job.MORNING, X)
    assert report.sent == [] and sender.sent == []
    assert core.broadcaster.stopping


def test_last_report_is_kept(core) -> None:
    core.store.register_enrollment(1, "a", X)
    report = _run(core, Job.EVENING, X)
    assert core.broadcaster.last_reports[Job.EVENING] is report
    assert report.summary() == "evening: sent=1 skipped=0 completed=0 failed=0 fallbacks=1"


def test_empty_report_summary() -> None:
    assert BroadcastReport(job=Job.PRACTICE).summary().startswith("practice: sent=0")


def test_morning_job_after_today_keeps_the_quota(core, llm, sender) -> None:
    enrollment, _ = core.store.register_enrollment(1, "giulia", X)
    plan = build_daily_plan(core.curriculum, 1, 1)
    llm.queue(words_json(10, "uno"), words_json(10, "extra"))

    early = asyncio.run(core.dispatcher.vocabulary(enrollment, plan, X.replace(hour=7)))
    report = _run(core, Job.MORNING, X)

    assert report.sent == [1]
    assert len(core.store.get_vocabulary(1, 1)) == 10
    assert sender.texts_for(1) == [early.text]
    assert core.store.get_daily_completion(1, 1, 1) == {"words_sent": 10}


def test_setstart_brings_a_finished_learner_back(core, sender) -> None:
    core.store.register_enrollment(1, "again", X - timedelta(days=90))
    assert _run(core, Job.MORNING, X).completed == [1]

    assert core.store.override_enrollment_start(1, X) is True
    report = _run(core, Job.EVENING, X)
    assert report.sent == [1]


def test_learner_locks_are_dropped_after_a_run(core) -> None:
    for lid in (1, 2, 3):
        core.store.register_enrollment(lid, f"l{lid}", X)
    _run(core, Job.EVENING, X)
    assert len(core.broadcaster.locks) == 0
