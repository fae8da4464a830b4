import json
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from imparo.constants import DAYS_PER_WEEK, MAX_MASTERY, PROGRAM_WEEKS
from imparo.errors import StorageError
from imparo.models.enrollment import Enrollment
from imparo.models.vocab import VocabularyItem


def _term_key(term: str) -> str:
    return " ".join((term or "").strip().lower().split())


def _to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _from_iso(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    dt = datetime.fromisoformat(str(s))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Storage(ABC):
    """
    Everything the bot persists. Both back-ends must behave the same:
    callers never check which one they got.
    """

    # -------------------------
    # Enrollments
    # -------------------------
    @abstractmethod
    def register_enrollment(self, learner_id: int, display_name: str, now: datetime) -> Tuple[Enrollment, bool]:
        """Returns (enrollment, created). Existing learners are reactivated, never re-dated."""

    @abstractmethod
    def get_enrollment(self, learner_id: int) -> Optional[Enrollment]: ...

    @abstractmethod
    def list_active_enrollments(self) -> List[Enrollment]: ...

    @abstractmethod
    def override_enrollment_start(self, learner_id: int, enrolled_at: datetime) -> bool:
        """Admin/demo only: the one way enrolled_at changes after creation. Reactivates the learner."""

    @abstractmethod
    def deactivate(self, learner_id: int) -> None: ...

    # -------------------------
    # Vocabulary
    # -------------------------
    @abstractmethod
    def get_vocabulary(self, learner_id: int, week: int) -> List[VocabularyItem]: ...

    @abstractmethod
    def upsert_vocabulary(self, learner_id: int, week: int, items: List[VocabularyItem]) -> None:
        """Insert new terms, replace existing ones (matched case-insensitively)."""

    # -------------------------
    # Daily progress
    # -------------------------
    @abstractmethod
    def record_daily_completion(self, learner_id: int, week: int, day: int, flags: Dict[str, Any]) -> None:
        """Merges flags into whatever was already recorded for that day."""

    @abstractmethod
    def get_daily_completion(self, learner_id: int, week: int, day: int) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    def reset_learner(self, learner_id: int) -> None: ...

    def close(self) -> None:
        return None

    # -------------------------
    # Derived
    # -------------------------
    def all_vocabulary(self, learner_id: int) -> List[VocabularyItem]:
        out: List[VocabularyItem] = []
        for week in range(1, PROGRAM_WEEKS + 1):
            out.extend(self.get_vocabulary(learner_id, week))
        return out

    def user_stats(self, learner_id: int) -> Optional[Dict[str, Any]]:
        enrollment = self.get_enrollment(learner_id)
        if enrollment is None:
            return None

        words = self.all_vocabulary(learner_id)
        completed_days = 0
        for week in range(1, PROGRAM_WEEKS + 1):
            for day in range(1, DAYS_PER_WEEK + 1):
                flags = self.get_daily_completion(learner_id, week, day)
                if flags and flags.get("task_completed"):
                    completed_days += 1

        return {
            "learner_id": learner_id,
            "total_vocabulary": len(words),
            "mastered": sum(1 for w in words if w.mastery_level >= MAX_MASTERY),
            "completed_days": completed_days,
            "enrolled_at": enrollment.enrolled_at,
            "active": enrollment.active,
        }


class MemoryStore(Storage):
    """Process-local storage; content is lost on restart."""

    def __init__(self):
        self._lock = threading.RLock()
        self._enrollments: Dict[int, Enrollment] = {}
        self._vocab: Dict[Tuple[int, int], Dict[str, VocabularyItem]] = {}
        self._progress: Dict[Tuple[int, int, int], Dict[str, Any]] = {}

    def register_enrollment(self, learner_id: int, display_name: str, now: datetime) -> Tuple[Enrollment, bool]:
        with self._lock:
            existing = self._enrollments.get(int(learner_id))
            if existing:
                existing.active = True
                if display_name:
                    existing.display_name = display_name
                return replace(existing), False

            e = Enrollment(
                learner_id=int(learner_id),
                enrolled_at=now,
                display_name=display_name or "",
                active=True,
                created_at=now,
            )
            self._enrollments[e.learner_id] = e
            return replace(e), True

    def get_enrollment(self, learner_id: int) -> Optional[Enrollment]:
        with self._lock:
            e = self._enrollments.get(int(learner_id))
            return replace(e) if e else None

    def list_active_enrollments(self) -> List[Enrollment]:
        with self._lock:
            return [replace(e) for e in sorted(self._enrollments.values(), key=lambda x: x.learner_id) if e.active]

    def override_enrollment_start(self, learner_id: int, enrolled_at: datetime) -> bool:
        with self._lock:
            e = self._enrollments.get(int(learner_id))
            if not e:
                return False
            e.enrolled_at = enrolled_at
            e.active = True
            return True

    def deactivate(self, learner_id: int) -> None:
        with self._lock:
            e = self._enrollments.get(int(learner_id))
            if e:
                e.active = False

    def get_vocabulary(self, learner_id: int, week: int) -> List[VocabularyItem]:
        with self._lock:
            bucket = self._vocab.get((int(learner_id), int(week)), {})
            return [replace(v) for v in bucket.values()]

    def upsert_vocabulary(self, learner_id: int, week: int, items: List[VocabularyItem]) -> None:
        with self._lock:
            bucket = self._vocab.setdefault((int(learner_id), int(week)), {})
            for item in items:
                bucket[_term_key(item.term)] = replace(item, week=int(week))

    def record_daily_completion(self, learner_id: int, week: int, day: int, flags: Dict[str, Any]) -> None:
        with self._lock:
            self._progress.setdefault((int(learner_id), int(week), int(day)), {}).update(flags or {})

    def get_daily_completion(self, learner_id: int, week: int, day: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            flags = self._progress.get((int(learner_id), int(week), int(day)))
            return dict(flags) if flags is not None else None

    def reset_learner(self, learner_id: int) -> None:
        lid = int(learner_id)
        with self._lock:
            self._enrollments.pop(lid, None)
            for k in [k for k in self._vocab if k[0] == lid]:
                del self._vocab[k]
            for k in [k for k in self._progress if k[0] == lid]:
                del self._progress[k]


class SqliteStore(Storage):
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    # -------------------------
    # Connection
    # -------------------------
    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path)
        con.row_factory = sqlite3.Row
        return con

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        try:
            con = self._connect()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        try:
            with con:
                yield con
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            con.close()

    def _init_db(self) -> None:
        if self.db_path != ":memory:":
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        with self._tx() as con:
            # -------------------------
            # Enrollments
            # -------------------------
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS enrollments (
                    learner_id INTEGER PRIMARY KEY,
                    display_name TEXT,
                    enrolled_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0,1)),
                    created_at TEXT NOT NULL
                )
                """
            )

            # -------------------------
            # Vocabulary (one row per learner/week/term)
            # -------------------------
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS vocabulary (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    learner_id INTEGER NOT NULL,
                    week INTEGER NOT NULL,
                    term_key TEXT NOT NULL,

                    term TEXT NOT NULL,
                    translation TEXT NOT NULL,
                    pronunciation TEXT,
                    example TEXT,
                    example_translation TEXT,

                    mastery_level INTEGER NOT NULL DEFAULT 1,
                    learned_at TEXT,
                    last_reviewed_at TEXT,
                    correct_streak INTEGER NOT NULL DEFAULT 0,
                    incorrect_streak INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            con.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_vocab_unique
                ON vocabulary (learner_id, week, term_key)
                """
            )

            # -------------------------
            # Daily progress flags
            # -------------------------
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS daily_progress (
                    learner_id INTEGER NOT NULL,
                    week INTEGER NOT NULL,
                    day INTEGER NOT NULL,
                    flags_json TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (learner_id, week, day)
                )
                """
            )

    # -------------------------
    # Row mapping
    # -------------------------
    @staticmethod
    def _enrollment(r: sqlite3.Row) -> Enrollment:
        return Enrollment(
            learner_id=int(r["learner_id"]),
            enrolled_at=_from_iso(r["enrolled_at"]),
            display_name=r["display_name"] or "",
            active=bool(r["is_active"]),
            created_at=_from_iso(r["created_at"]),
        )

    @staticmethod
    def _vocab_item(r: sqlite3.Row) -> VocabularyItem:
        return VocabularyItem(
            term=r["term"],
            translation=r["translation"],
            pronunciation=r["pronunciation"] or "",
            example=r["example"] or "",
            example_translation=r["example_translation"] or "",
            week=int(r["week"]),
            mastery_level=int(r["mastery_level"] or 1),
            learned_at=_from_iso(r["learned_at"]),
            last_reviewed_at=_from_iso(r["last_reviewed_at"]),
            correct_streak=int(r["correct_streak"] or 0),
            incorrect_streak=int(r["incorrect_streak"] or 0),
        )

    # -------------------------
    # Enrollments
    # -------------------------
    def register_enrollment(self, learner_id: int, display_name: str, now: datetime) -> Tuple[Enrollment, bool]:
        with self._tx() as con:
            cur = con.execute(
                """
                INSERT OR IGNORE INTO enrollments(learner_id, display_name, enrolled_at, is_active, created_at)
                VALUES (?,?,?,1,?)
                """,
                (int(learner_id), display_name or "", _to_iso(now), _to_iso(now)),
            )
            created = cur.rowcount == 1
            if not created:
                con.execute(
                    """
                    UPDATE enrollments
                    SET is_active = 1,
                        display_name = COALESCE(NULLIF(?, ''), display_name)
                    WHERE learner_id = ?
                    """,
                    (display_name or "", int(learner_id)),
                )
            row = con.execute("SELECT * FROM enrollments WHERE learner_id = ?", (int(learner_id),)).fetchone()
        return self._enrollment(row), created

    def get_enrollment(self, learner_id: int) -> Optional[Enrollment]:
        with self._tx() as con:
            row = con.execute("SELECT * FROM enrollments WHERE learner_id = ?", (int(learner_id),)).fetchone()
        return self._enrollment(row) if row else None

    def list_active_enrollments(self) -> List[Enrollment]:
        with self._tx() as con:
            rows = con.execute("SELECT * FROM enrollments WHERE is_active = 1 ORDER BY learner_id").fetchall()
        return [self._enrollment(r) for r in rows or []]

    def override_enrollment_start(self, learner_id: int, enrolled_at: datetime) -> bool:
        with self._tx() as con:
            cur = con.execute(
                "UPDATE enrollments SET enrolled_at = ?, is_active = 1 WHERE learner_id = ?",
                (_to_iso(enrolled_at), int(learner_id)),
            )
        return cur.rowcount > 0

    def deactivate(self, learner_id: int) -> None:
        with self._tx() as con:
            con.execute("UPDATE enrollments SET is_active = 0 WHERE learner_id = ?", (int(learner_id),))

    # -------------------------
    # Vocabulary
    # -------------------------
    def get_vocabulary(self, learner_id: int, week: int) -> List[VocabularyItem]:
        with self._tx() as con:
            rows = con.execute(
                "SELECT * FROM vocabulary WHERE learner_id = ? AND week = ? ORDER BY id",
                (int(learner_id), int(week)),
            ).fetchall()
        return [self._vocab_item(r) for r in rows or []]

    def upsert_vocabulary(self, learner_id: int, week: int, items: List[VocabularyItem]) -> None:
        if not items:
            return
        with self._tx() as con:
            con.executemany(
                """
                INSERT INTO vocabulary(
                    learner_id, week, term_key,
                    term, translation, pronunciation, example, example_translation,
                    mastery_level, learned_at, last_reviewed_at, correct_streak, incorrect_streak
                )
                VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)
                ON CONFLICT(learner_id, week, term_key) DO UPDATE SET
                    term = excluded.term,
                    translation = excluded.translation,
                    pronunciation = excluded.pronunciation,
                    example = excluded.example,
                    example_translation = excluded.example_translation,
                    mastery_level = excluded.mastery_level,
                    learned_at = excluded.learned_at,
                    last_reviewed_at = excluded.last_reviewed_at,
                    correct_streak = excluded.correct_streak,
                    incorrect_streak = excluded.incorrect_streak
                """,
                [
                    (
                        int(learner_id),
                        int(week),
                        _term_key(it.term),
                        it.term,
                        it.translation,
                        it.pronunciation or None,
                        it.example or None,
                        it.example_translation or None,
                        int(it.mastery_level),
                        _to_iso(it.learned_at),
                        _to_iso(it.last_reviewed_at),
                        int(it.correct_streak),
                        int(it.incorrect_streak),
                    )
                    for it in items
                ],
            )

    # -------------------------
    # Daily progress
    # -------------------------
    def record_daily_completion(self, learner_id: int, week: int, day: int, flags: Dict[str, Any]) -> None:
        with self._tx() as con:
            row = con.execute(
                "SELECT flags_json FROM daily_progress WHERE learner_id = ? AND week = ? AND day = ?",
                (int(learner_id), int(week), int(day)),
            ).fetchone()
            merged: Dict[str, Any] = json.loads(row["flags_json"]) if row else {}
            merged.update(flags or {})
            con.execute(
                """
                INSERT INTO daily_progress(learner_id, week, day, flags_json, updated_at)
                VALUES (?,?,?,?,CURRENT_TIMESTAMP)
                ON CONFLICT(learner_id, week, day) DO UPDATE SET
                    flags_json = excluded.flags_json,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (int(learner_id), int(week), int(day), json.dumps(merged, ensure_ascii=False)),
            )

    def get_daily_completion(self, learner_id: int, week: int, day: int) -> Optional[Dict[str, Any]]:
        with self._tx() as con:
            row = con.execute(
                "SELECT flags_json FROM daily_progress WHERE learner_id = ? AND week = ? AND day = ?",
                (int(learner_id), int(week), int(day)),
            ).fetchone()
        return json.loads(row["flags_json"]) if row else None

    def reset_learner(self, learner_id: int) -> None:
        with self._tx() as con:
            con.execute("DELETE FROM enrollments WHERE learner_id = ?", (int(learner_id),))
            con.execute("DELETE FROM vocabulary WHERE learner_id = ?", (int(learner_id),))
            con.execute("DELETE FROM daily_progress WHERE learner_id = ?", (int(learner_id),))


def open_storage(mode: str, db_path: str) -> Storage:
    if (mode or "").strip().lower() == "memory":
        return MemoryStore()
    return SqliteStore(db_path)
