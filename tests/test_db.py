import sqlite3
from contextlib import closing
from datetime import timedelta

import pytest

from conftest import utc
from imparo.db import MemoryStore, SqliteStore, open_storage
from imparo.errors import StorageError
from imparo.models.vocab import VocabularyItem

NOW = utc(2024, 1, 15, 8)


def test_register_is_idempotent(store) -> None:
    first, created = store.register_enrollment(42, "giulia", NOW)
    assert created is True
    assert first.enrolled_at == NOW

    again, created = store.register_enrollment(42, "giulia2", NOW + timedelta(days=3))
    assert created is False
    assert again.enrolled_at == NOW
    assert again.display_name == "giulia2"


def test_get_enrollment_unknown(store) -> None:
    assert store.get_enrollment(404) is None


def test_active_enrollments_and_deactivate(store) -> None:
    store.register_enrollment(1, "a", NOW)
    store.register_enrollment(2, "b", NOW)
    assert [e.learner_id for e in store.list_active_enrollments()] == [1, 2]

    store.deactivate(1)
    assert [e.learner_id for e in store.list_active_enrollments()] == [2]
    assert store.get_enrollment(1).active is False

    # coming back through /start reactivates without moving the start date
    back, created = store.register_enrollment(1, "a", NOW + timedelta(days=90))
    assert created is False and back.active is True
    assert back.enrolled_at == NOW


def test_override_enrollment_start(store) -> None:
    assert store.override_enrollment_start(9, NOW) is False
    store.register_enrollment(9, "x", NOW)
    earlier = NOW - timedelta(days=10)
    assert store.override_enrollment_start(9, earlier) is True
    assert store.get_enrollment(9).enrolled_at == earlier


def test_override_enrollment_start_reactivates(store) -> None:
    store.register_enrollment(9, "x", NOW - timedelta(days=90))
    store.deactivate(9)
    assert store.override_enrollment_start(9, NOW) is True
    assert store.get_enrollment(9).active is True
    assert [e.learner_id for e in store.list_active_enrollments()] == [9]


def test_vocabulary_upsert_matches_terms_case_insensitively(store) -> None:
    store.upsert_vocabulary(5, 1, [VocabularyItem(term="Ciao", translation="hi", learned_at=NOW)])
    store.upsert_vocabulary(5, 1, [VocabularyItem(term="ciao ", translation="hello", mastery_level=3, correct_streak=1)])

    (item,) = store.get_vocabulary(5, 1)
    assert item.translation == "hello"
    assert item.mastery_level == 3
    assert item.correct_streak == 1
    assert item.week == 1


def test_vocabulary_is_per_week_and_learner(store) -> None:
    store.upsert_vocabulary(5, 1, [VocabularyItem(term="uno", translation="one")])
    store.upsert_vocabulary(5, 2, [VocabularyItem(term="due", translation="two")])
    store.upsert_vocabulary(6, 1, [VocabularyItem(term="tre", translation="three")])

    assert [w.term for w in store.get_vocabulary(5, 1)] == ["uno"]
    assert [w.term for w in store.get_vocabulary(5, 2)] == ["due"]
    assert [w.term for w in store.all_vocabulary(5)] == ["uno", "due"]
    assert store.get_vocabulary(7, 1) == []


def test_returned_items_are_copies(store) -> None:
    store.upsert_vocabulary(5, 1, [VocabularyItem(term="uno", translation="one")])
    (item,) = store.get_vocabulary(5, 1)
    item.mastery_level = 5
    assert store.get_vocabulary(5, 1)[0].mastery_level == 1


def test_daily_completion_flags_merge(store) -> None:
    assert store.get_daily_completion(5, 1, 1) is None
    store.record_daily_completion(5, 1, 1, {"words_sent": 10})
    store.record_daily_completion(5, 1, 1, {"story_read": True})
    assert store.get_daily_completion(5, 1, 1) == {"words_sent": 10, "story_read": True}


def test_user_stats(store) -> None:
    assert store.user_stats(5) is None
    store.register_enrollment(5, "m", NOW)
    store.upsert_vocabulary(
        5,
        1,
        [
            VocabularyItem(term="uno", translation="one", mastery_level=5),
            VocabularyItem(term="due", translation="two"),
        ],
    )
    store.record_daily_completion(5, 1, 1, {"task_completed": True})
    store.record_daily_completion(5, 1, 2, {"story_read": True})

    stats = store.user_stats(5)
    assert stats["total_vocabulary"] == 2
    assert stats["mastered"] == 1
    assert stats["completed_days"] == 1
    assert stats["active"] is True


def test_reset_learner(store) -> None:
    store.register_enrollment(5, "m", NOW)
    store.upsert_vocabulary(5, 1, [VocabularyItem(term="uno", translation="one")])
    store.record_daily_completion(5, 1, 1, {"x": 1})
    store.reset_learner(5)
    assert store.get_enrollment(5) is None
    assert store.get_vocabulary(5, 1) == []
    assert store.get_daily_completion(5, 1, 1) is None


def test_sqlite_persists_across_instances(tmp_path) -> None:
    path = str(tmp_path / "persist.sqlite3")
    SqliteStore(path).register_enrollment(1, "a", NOW)
    reopened = SqliteStore(path)
    assert reopened.get_enrollment(1).enrolled_at == NOW


def test_sqlite_errors_are_wrapped(tmp_path) -> None:
    store = SqliteStore(str(tmp_path / "broken.sqlite3"))
    with closing(sqlite3.connect(str(tmp_path / "broken.sqlite3"))) as con:
        con.execute("DROP TABLE vocabulary")
    with pytest.raises(StorageError):
        store.get_vocabulary(1, 1)


def test_open_storage_modes(tmp_path) -> None:
    assert isinstance(open_storage("memory", "ignored"), MemoryStore)
    assert isinstance(open_storage("sqlite", str(tmp_path / "x.sqlite3")), SqliteStore)
