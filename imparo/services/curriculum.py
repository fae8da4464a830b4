from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from imparo.constants import DAYS_PER_WEEK, PROGRAM_WEEKS
from imparo.errors import CurriculumEntryNotFound, CurriculumError
from imparo.models.plan import CurriculumEntry, Focus

log = logging.getLogger("Imparo")

DEFAULT_PLAN_PATH = Path(__file__).resolve().parents[1] / "data" / "plan.json"


def require_every_focus(table: Mapping[Focus, Any], name: str) -> None:
    missing = [f.value for f in Focus if f not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


# -----------------------------
# Day activities (what each focus does, morning -> evening)
# -----------------------------
DAILY_ACTIVITIES: Dict[Focus, Dict[str, str]] = {
    Focus.INTRODUCTION: {
        "task": "Learn 8-10 new words + basic grammar in context",
        "morning": "vocabulary_grammar",
        "afternoon": "practice",
        "evening": "application",
    },
    Focus.INTEGRATION: {
        "task": "Review yesterday + 8-10 new words + grammar expansion",
        "morning": "review_learn",
        "afternoon": "integration",
        "evening": "production",
    },
    Focus.EXPANSION: {
        "task": "Review previous days + expand vocabulary and grammar",
        "morning": "review_learn",
        "afternoon": "reading",
        "evening": "writing",
    },
    Focus.PRACTICE: {
        "task": "Review all previous content + listening practice",
        "morning": "review",
        "afternoon": "listening",
        "evening": "speaking",
    },
    Focus.APPLICATION: {
        "task": "Apply all learned content in conversations",
        "morning": "review",
        "afternoon": "conversation",
        "evening": "assessment",
    },
    Focus.MASTERY: {
        "task": "Master difficult items + free practice",
        "morning": "difficult_review",
        "afternoon": "free_practice",
        "evening": "journal",
    },
    Focus.CONSOLIDATION: {
        "task": "Comprehensive review and assessment",
        "morning": "quiz",
        "afternoon": "error_review",
        "evening": "preview",
    },
}
require_every_focus(DAILY_ACTIVITIES, "DAILY_ACTIVITIES")


class CurriculumStore:
    """
    Read-only week -> theme table, loaded once from plan.json.
    Safe to share between tasks: nothing mutates it after __init__.
    """

    def __init__(self, plan_path: Optional[Path] = None):
        self.plan_path = Path(plan_path or DEFAULT_PLAN_PATH)
        self.title, self._weeks = self._load(self.plan_path)
        log.info("Curriculum loaded: %d weeks from %s", len(self._weeks), self.plan_path)

    @staticmethod
    def _load(path: Path) -> tuple[str, Dict[int, Dict[str, str]]]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise CurriculumError(f"Plan file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise CurriculumError(f"Plan file is not valid JSON: {path}: {e}") from e

        weeks_raw = raw.get("weeks") if isinstance(raw, dict) else None
        if not isinstance(weeks_raw, list):
            raise CurriculumError("Plan file has no 'weeks' list")

        weeks: Dict[int, Dict[str, str]] = {}
        for w in weeks_raw:
            if not isinstance(w, dict):
                continue
            try:
                n = int(w.get("week"))
            except (TypeError, ValueError):
                raise CurriculumError(f"Bad week number in plan: {w!r}")
            theme = str(w.get("theme") or "").strip()
            if not theme:
                raise CurriculumError(f"Week {n} has no theme")
            weeks[n] = {"theme": theme, "description": str(w.get("description") or "").strip()}

        expected = set(range(1, PROGRAM_WEEKS + 1))
        if set(weeks) != expected:
            missing = sorted(expected - set(weeks))
            extra = sorted(set(weeks) - expected)
            raise CurriculumError(f"Plan must define weeks 1..{PROGRAM_WEEKS} (missing={missing}, extra={extra})")

        return str(raw.get("title") or "").strip(), weeks

    @staticmethod
    def _check_range(week: int, day: int = 1) -> None:
        if not (1 <= int(week) <= PROGRAM_WEEKS and 1 <= int(day) <= DAYS_PER_WEEK):
            raise CurriculumEntryNotFound(week, day)

    def weeks(self) -> List[int]:
        return sorted(self._weeks)

    def theme_for(self, week: int) -> str:
        self._check_range(week)
        return self._weeks[int(week)]["theme"]

    def description_for(self, week: int) -> str:
        self._check_range(week)
        return self._weeks[int(week)]["description"]

    def entry(self, week: int, day: int) -> CurriculumEntry:
        self._check_range(week, day)
        focus = Focus.for_day(day)
        return CurriculumEntry(
            week=int(week),
            day=int(day),
            theme=self._weeks[int(week)]["theme"],
            focus=focus,
            task=DAILY_ACTIVITIES[focus]["task"],
        )
