from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from imparo.constants import DAYS_PER_WEEK, TARGET_LANGUAGE
from imparo.models.plan import DailyPlan, DayOverview, Exercise, Focus, ProgressSnapshot, WeekOverview
from imparo.services.curriculum import DAILY_ACTIVITIES, CurriculumStore, require_every_focus
from imparo.services.progress import Instant, compute_progress

# -----------------------------
# Templates per focus
# -----------------------------
_DESCRIPTIONS: Dict[Focus, str] = {
    Focus.INTRODUCTION: (
        'Day 1: Introduction to "{theme}"\n'
        "🌅 Morning: Learn 8-10 essential words + basic grammar in a dialogue/story context\n"
        "🌆 Afternoon: Practice using new words and grammar in simple sentences\n"
        "🌙 Evening: Apply what you learned in your own sentences"
    ),
    Focus.INTEGRATION: (
        "Day 2: Integration and Expansion\n"
        "🌅 Morning: Review yesterday's words + learn 8-10 new words + expand grammar\n"
        "🌆 Afternoon: Integrate all words and grammar in meaningful sentences\n"
        "🌙 Evening: Produce original sentences using everything learned"
    ),
    Focus.EXPANSION: (
        "Day 3: Expanding Your Knowledge\n"
        "🌅 Morning: Review previous days + add 8-10 new words + new grammar patterns\n"
        "🌆 Afternoon: Read a dialogue/story using all learned vocabulary and grammar\n"
        "🌙 Evening: Write using the new patterns and vocabulary"
    ),
    Focus.PRACTICE: (
        "Day 4: Practice Makes Perfect\n"
        "🌅 Morning: Review all vocabulary from this week (spaced repetition)\n"
        "🌆 Afternoon: Listen to {language} audio and practice comprehension\n"
        "🌙 Evening: Practice pronunciation and speaking exercises"
    ),
    Focus.APPLICATION: (
        "Day 5: Real Application\n"
        "🌅 Morning: Review difficult items from the week\n"
        "🌆 Afternoon: Have conversations about \"{theme}\" using this week's content\n"
        "🌙 Evening: Self-assessment quiz on this week's progress"
    ),
    Focus.MASTERY: (
        "Day 6: Mastery and Freedom\n"
        "🌅 Morning: Focus on difficult items that need extra practice\n"
        "🌆 Afternoon: Free practice - use {language} however you want\n"
        "🌙 Evening: Write a journal entry using this week's vocabulary"
    ),
    Focus.CONSOLIDATION: (
        "Day 7: Week {week} Consolidation\n"
        "🌅 Morning: Comprehensive quiz on all week's content\n"
        "🌆 Afternoon: Review mistakes and practice weak areas\n"
        "🌙 Evening: Celebrate progress + preview next week's theme"
    ),
}

_EXERCISES: Dict[Focus, List[Tuple[str, str]]] = {
    Focus.INTRODUCTION: [
        ("story_vocabulary", "Learn 8-10 words in a dialogue/story context about {theme}"),
        ("grammar_in_context", "Learn a grammar rule that uses these words immediately"),
        ("active_recall", "Recall words without looking (active, not passive)"),
        ("simple_sentences", "Create 3-5 simple sentences using new words + grammar"),
    ],
    Focus.INTEGRATION: [
        ("review_quiz", "Quick review quiz on yesterday's words (spaced repetition)"),
        ("new_words", "Learn 8 new words that connect to yesterday's topic"),
        ("grammar_expansion", "Expand grammar knowledge with new patterns"),
        ("integrated_practice", "Use all words and grammar together in sentences"),
    ],
    Focus.EXPANSION: [
        ("review", "Review words from Days 1-2 (active recall)"),
        ("new_content", "Add 8 more words + new grammar patterns"),
        ("reading_comprehension", "Read a dialogue using ALL learned vocabulary"),
        ("writing_practice", "Write sentences using new patterns"),
    ],
    Focus.PRACTICE: [
        ("spaced_review", "Review all week's vocabulary (spaced repetition)"),
        ("listening", "Listen to an audio dialogue using this week's vocabulary"),
        ("pronunciation", "Practice pronouncing all learned words"),
        ("speaking", "Record yourself speaking using this week's content"),
    ],
    Focus.APPLICATION: [
        ("difficult_review", "Focus on words/grammar you find difficult"),
        ("conversation", "Have a conversation about {theme} using learned content"),
        ("scenarios", "Practice real-world scenarios (ordering, asking directions, etc.)"),
        ("self_quiz", "Test yourself on this week's progress"),
    ],
    Focus.MASTERY: [
        ("weak_areas", "Practice items you struggled with"),
        ("free_practice", "Use {language} freely - no restrictions!"),
        ("creative_writing", "Write creatively using all learned vocabulary"),
        ("journal", "Write a journal entry about {theme}"),
    ],
    Focus.CONSOLIDATION: [
        ("comprehensive_quiz", "Quiz on all week's content"),
        ("error_analysis", "Review mistakes and understand why"),
        ("weak_practice", "Extra practice on weak areas"),
        ("celebration", "Celebrate your progress this week!"),
        ("preview", "Preview next week's theme"),
    ],
}

_TIME_ESTIMATES: Dict[Focus, str] = {
    Focus.INTRODUCTION: "25-30 minutes total (10 min morning, 10 min afternoon, 10 min evening)",
    Focus.INTEGRATION: "25-30 minutes total (review + new content + practice)",
    Focus.EXPANSION: "25-30 minutes total (review + expansion + application)",
    Focus.PRACTICE: "25-30 minutes total (review + listening + speaking)",
    Focus.APPLICATION: "25-30 minutes total (review + conversation + assessment)",
    Focus.MASTERY: "20-25 minutes total (practice + free expression)",
    Focus.CONSOLIDATION: "30-35 minutes total (quiz + review + preview)",
}

for _name, _table in (
    ("_DESCRIPTIONS", _DESCRIPTIONS),
    ("_EXERCISES", _EXERCISES),
    ("_TIME_ESTIMATES", _TIME_ESTIMATES),
):
    require_every_focus(_table, _name)


def vocabulary_count(day: int) -> int:
    if day == 1:
        return 10
    if 2 <= day <= 5:
        return 8
    return 0


def exercises_for(focus: Focus, theme: str) -> List[Exercise]:
    return [
        Exercise(kind=kind, description=text.format(theme=theme, language=TARGET_LANGUAGE))
        for kind, text in _EXERCISES[focus]
    ]


def build_daily_plan(curriculum: CurriculumStore, week: int, day: int) -> DailyPlan:
    """Raises CurriculumEntryNotFound for week/day outside the program."""
    entry = curriculum.entry(week, day)
    focus = entry.focus
    slots = DAILY_ACTIVITIES[focus]

    return DailyPlan(
        week_number=entry.week,
        day_number=entry.day,
        theme=entry.theme,
        focus=focus,
        task=entry.task,
        morning=slots["morning"],
        afternoon=slots["afternoon"],
        evening=slots["evening"],
        description=_DESCRIPTIONS[focus].format(
            theme=entry.theme, week=entry.week, language=TARGET_LANGUAGE
        ),
        exercises=exercises_for(focus, entry.theme),
        estimated_time=_TIME_ESTIMATES[focus],
        vocabulary_count=vocabulary_count(entry.day),
        includes_review=entry.day > 1,
        story_based=True,
    )


def week_plans(curriculum: CurriculumStore, week: int) -> List[DailyPlan]:
    return [build_daily_plan(curriculum, week, d) for d in range(1, DAYS_PER_WEEK + 1)]


def week_overview(curriculum: CurriculumStore, week: int) -> WeekOverview:
    days = []
    for d in range(1, DAYS_PER_WEEK + 1):
        entry = curriculum.entry(week, d)
        days.append(
            DayOverview(
                day=d,
                focus=entry.focus,
                task=entry.task,
                estimated_time=_TIME_ESTIMATES[entry.focus],
            )
        )
    return WeekOverview(week=int(week), theme=curriculum.theme_for(week), days=days)


def plan_for(
    curriculum: CurriculumStore,
    enrolled_at: Instant,
    now: Optional[Instant] = None,
) -> Tuple[ProgressSnapshot, Optional[DailyPlan]]:
    """Where the learner is today; no plan once the program is over."""
    snapshot = compute_progress(enrolled_at, now)
    if snapshot.completed:
        return snapshot, None
    return snapshot, build_daily_plan(curriculum, snapshot.week_number, snapshot.day_number)
