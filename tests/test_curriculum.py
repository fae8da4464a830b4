import json

import pytest

from imparo.errors import CurriculumEntryNotFound, CurriculumError
from imparo.models.plan import Focus
from imparo.services.curriculum import CurriculumStore, require_every_focus
from imparo.services.daily_plan import (
    build_daily_plan,
    exercises_for,
    plan_for,
    vocabulary_count,
    week_overview,
    week_plans,
)
from conftest import utc


def _write_plan(tmp_path, weeks):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps({"title": "t", "weeks": weeks}), encoding="utf-8")
    return path


def test_bundled_plan_has_twelve_themed_weeks(curriculum) -> None:
    assert curriculum.weeks() == list(range(1, 13))
    assert curriculum.theme_for(1) == "Greetings and Basic Phrases"
    assert curriculum.theme_for(12) == "Italian Culture and Review"
    assert all(curriculum.description_for(w) for w in curriculum.weeks())


def test_every_program_day_resolves(curriculum) -> None:
    for week in range(1, 13):
        for day in range(1, 8):
            entry = curriculum.entry(week, day)
            assert entry.theme == curriculum.theme_for(week)
            assert entry.focus is Focus.for_day(day)
            assert entry.task


@pytest.mark.parametrize("week, day", [(0, 1), (13, 1), (1, 0), (1, 8), (-1, 3)])
def test_out_of_range_entry_raises(curriculum, week, day) -> None:
    with pytest.raises(CurriculumEntryNotFound) as exc:
        curriculum.entry(week, day)
    assert (exc.value.week, exc.value.day) == (week, day)


def test_missing_plan_file(tmp_path) -> None:
    with pytest.raises(CurriculumError):
        CurriculumStore(tmp_path / "nope.json")


def test_invalid_json_plan(tmp_path) -> None:
    path = tmp_path / "plan.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CurriculumError):
        CurriculumStore(path)


def test_plan_with_missing_week(tmp_path) -> None:
    weeks = [{"week": n, "theme": f"Theme {n}"} for n in range(1, 12)]
    with pytest.raises(CurriculumError, match="missing=\\[12\\]"):
        CurriculumStore(_write_plan(tmp_path, weeks))


def test_plan_with_blank_theme(tmp_path) -> None:
    weeks = [{"week": n, "theme": f"Theme {n}"} for n in range(1, 13)]
    weeks[4]["theme"] = " "
    with pytest.raises(CurriculumError):
        CurriculumStore(_write_plan(tmp_path, weeks))


def test_custom_plan_file(tmp_path) -> None:
    weeks = [{"week": n, "theme": f"Tema {n}"} for n in range(1, 13)]
    store = CurriculumStore(_write_plan(tmp_path, weeks))
    assert store.theme_for(7) == "Tema 7"
    assert store.description_for(7) == ""


def test_focus_tables_must_cover_every_focus() -> None:
    partial = {f: 1 for f in list(Focus)[:-1]}
    with pytest.raises(RuntimeError, match="consolidation"):
        require_every_focus(partial, "partial")


def test_focus_for_day_order() -> None:
    assert [Focus.for_day(d) for d in range(1, 8)] == list(Focus)
    with pytest.raises(ValueError):
        Focus.for_day(8)


# -----------------------------
# Daily plans
# -----------------------------
def test_vocabulary_quota_per_day() -> None:
    assert [vocabulary_count(d) for d in range(1, 8)] == [10, 8, 8, 8, 8, 0, 0]


def test_daily_plan_shape(curriculum) -> None:
    plan = build_daily_plan(curriculum, 4, 1)
    assert plan.week_number == 4 and plan.day_number == 1
    assert plan.theme == "Food and Restaurants"
    assert plan.focus is Focus.INTRODUCTION
    assert plan.vocabulary_count == 10
    assert plan.includes_review is False
    assert plan.story_based is True
    assert "Food and Restaurants" in plan.description
    assert 4 <= len(plan.exercises) <= 5
    assert plan.estimated_time


def test_review_included_after_first_day(curriculum) -> None:
    flags = [p.includes_review for p in week_plans(curriculum, 2)]
    assert flags == [False] + [True] * 6


def test_consolidation_day_has_five_exercises(curriculum) -> None:
    plan = build_daily_plan(curriculum, 3, 7)
    assert plan.focus is Focus.CONSOLIDATION
    assert plan.vocabulary_count == 0
    assert len(plan.exercises) == 5


def test_exercises_mention_theme() -> None:
    exercises = exercises_for(Focus.INTRODUCTION, "Travel and Transport")
    assert any("Travel and Transport" in e.description for e in exercises)


def test_daily_plan_out_of_range(curriculum) -> None:
    with pytest.raises(CurriculumEntryNotFound):
        build_daily_plan(curriculum, 13, 1)


def test_week_overview_marks_all_days(curriculum) -> None:
    overview = week_overview(curriculum, 5)
    assert overview.theme == curriculum.theme_for(5)
    assert [d.day for d in overview.days] == list(range(1, 8))
    assert [d.focus for d in overview.days] == list(Focus)


def test_plan_for_returns_nothing_once_completed(curriculum) -> None:
    snap, plan = plan_for(curriculum, utc(2024, 1, 1), utc(2024, 3, 25))
    assert snap.completed is True
    assert plan is None

    snap, plan = plan_for(curriculum, utc(2024, 1, 1), utc(2024, 1, 8))
    assert (plan.week_number, plan.day_number) == (2, 1)
