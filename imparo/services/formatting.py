"""Markdown bodies for the messages the bot sends."""
from typing import Dict, List, Optional

from imparo.constants import PROGRAM_WEEKS
from imparo.models.content import PracticePrompt, Story
from imparo.models.plan import DailyPlan, ProgressSnapshot, WeekOverview
from imparo.models.quiz import ReviewQuiz, WeeklyQuiz
from imparo.models.vocab import VocabularyItem


def _word_block(i: int, w: VocabularyItem) -> str:
    lines = [f"**{i}. {w.term}** - {w.translation}"]
    if w.pronunciation:
        lines.append(f"🔊 {w.pronunciation}")
    if w.example:
        lines.append(f"📝 *Example:* {w.example}")
        if w.example_translation:
            lines.append(f"   _{w.example_translation}_")
    return "\n".join(lines)


def format_words(words: List[VocabularyItem], theme: str = "") -> str:
    header = "📚 **Daily Vocabulary**" + (f" - {theme}" if theme else "")
    if not words:
        return header + "\n\nNo new words today: focus on review! 🔁"
    body = "\n\n".join(_word_block(i, w) for i, w in enumerate(words, start=1))
    return (
        f"{header}\n\n{body}\n\n"
        "**Buono studio!** (Happy studying!) 📖\n"
        "_Tip: say each word out loud!_ 🗣️"
    )


def format_structured(categories: Dict[str, List[VocabularyItem]], theme: str) -> str:
    parts = [f"📚 **Vocabulary - {theme}**"]
    for name, words in categories.items():
        lines = [f"**{name.upper()}**"]
        for w in words:
            line = f"• **{w.term}** - {w.translation}"
            if w.pronunciation:
                line += f"  🔊 {w.pronunciation}"
            lines.append(line)
            if w.example:
                lines.append(f"  📝 {w.example}")
        parts.append("\n".join(lines))
    parts.append("_Tip: use these words in your own sentences!_ 🗣️")
    return "\n\n".join(parts)


def format_story(story: Story) -> str:
    parts = [f"📖 **Reading Practice**\n\n**{story.title}**\n\n{story.story}"]
    if story.translation:
        parts.append(f"**English Translation:**\n||{story.translation}||")
    if story.vocabulary_used:
        parts.append("**Vocabulary Used:**\n" + "\n".join(f"• {w}" for w in story.vocabulary_used))
    if story.questions:
        qs = []
        for i, q in enumerate(story.questions, start=1):
            line = f"**{i}. {q.question}**"
            if q.translation:
                line += f"\n_{q.translation}_"
            qs.append(line)
        parts.append("**Comprehension Questions:**\n\n" + "\n\n".join(qs))
    parts.append("**Buona lettura!** (Happy reading!) 📚")
    return "\n\n".join(parts)


def format_practice(p: PracticePrompt) -> str:
    parts = [f"✍️ **Writing Practice**\n\n**{p.title}**"]
    if p.instructions:
        parts.append(f"**Instructions:**\n{p.instructions}")
    task = f"**Your Task:**\n{p.prompt}"
    if p.prompt_translation:
        task += f"\n_{p.prompt_translation}_"
    parts.append(task)
    if p.vocabulary_to_use:
        parts.append("**Vocabulary to Use:**\n" + "\n".join(f"• {w}" for w in p.vocabulary_to_use))
    if p.example_response:
        ex = f"**Example Response:**\n{p.example_response}"
        if p.example_translation:
            ex += f"\n_{p.example_translation}_"
        parts.append(ex)
    if p.tips:
        parts.append("**Tips:**\n" + "\n".join(f"• {t}" for t in p.tips))
    parts.append("_Reply with your sentences and I'll give you feedback!_ 💬")
    return "\n\n".join(parts)


def format_quiz(quiz: WeeklyQuiz) -> str:
    parts = [f"📝 **{quiz.title}**\nWeek {quiz.week} - {quiz.theme}", quiz.instructions]
    answers = []
    for i, q in enumerate(quiz.questions, start=1):
        block = f"**{i}. {q.question}**"
        if q.question_translation:
            block += f"\n_{q.question_translation}_"
        if q.choices:
            block += "\n" + "\n".join(f"{chr(65 + j)}) {c}" for j, c in enumerate(q.choices))
        parts.append(block)

        ans = q.answer if q.answer_index is None else f"{chr(65 + q.answer_index)}) {q.answer}"
        if q.explanation:
            ans += f" - {q.explanation}"
        answers.append(f"{i}. {ans}")

    parts.append("**Answers:**\n||" + "\n".join(answers) + "||")
    return "\n\n".join(parts)


def format_review_quiz(quiz: Optional[ReviewQuiz]) -> str:
    if quiz is None:
        return "🔁 **Review**\n\nNothing is due for review right now. Great job! 🎉"
    lines = [f"🔁 **{quiz.title}** ({quiz.words_count} words)", quiz.instructions, ""]
    for i, q in enumerate(quiz.questions, start=1):
        lines.append(f"**{i}.** {q.prompt}\n||{q.answer} - {q.explanation}||")
    return "\n".join(lines)


def format_plan(plan: DailyPlan) -> str:
    lines = [
        f"📝 **Week {plan.week_number} - Day {plan.day_number}**",
        f"**Theme:** {plan.theme}",
        f"**Focus:** {plan.focus.label}",
        "",
        plan.description,
        "",
        "**Exercises:**",
    ]
    lines.extend(f"• {e.description}" for e in plan.exercises)
    lines.append("")
    if plan.vocabulary_count:
        lines.append(f"**New words today:** {plan.vocabulary_count}")
    if plan.includes_review:
        lines.append("**Review:** included (use /review)")
    lines.append(f"⏱️ {plan.estimated_time}")
    return "\n".join(lines)


def format_week(overview: WeekOverview, current_day: int = 0) -> str:
    lines = [f"📅 **Week {overview.week} Overview**", f"**Theme:** {overview.theme}", "", "**Daily Plan:**"]
    for d in overview.days:
        marker = "👉" if d.day == current_day else "📌"
        lines.append(f"{marker} **Day {d.day}** - {d.focus.label}\n   {d.task}")
    return "\n".join(lines)


def format_status(
    snapshot: ProgressSnapshot,
    percentage: int,
    theme: str,
    focus_label: str,
    stats: Optional[dict] = None,
) -> str:
    lines = [
        "📊 **Your Progress**",
        "",
        f"**Week:** {snapshot.week_number}/{PROGRAM_WEEKS}",
        f"**Day:** {snapshot.day_number}/7 (program day {snapshot.total_elapsed_days})",
        f"**Progress:** {percentage}%",
        f"**Theme:** {theme}",
        f"**Today's focus:** {focus_label}",
    ]
    if stats:
        lines.append("")
        lines.append(f"**Words learned:** {stats.get('total_vocabulary', 0)}")
        lines.append(f"**Mastered:** {stats.get('mastered', 0)}")
        lines.append(f"**Days completed:** {stats.get('completed_days', 0)}")
    return "\n".join(lines)
