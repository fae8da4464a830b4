from typing import Dict

BOT_VERSION = "1.4.0"
BOT_MODE = "Development"
AI_FOOTER = "AI generated - double check with a dictionary"

TARGET_LANGUAGE = "Italian"
SOURCE_LANGUAGE = "English"

# -----------------------------
# Program shape
# -----------------------------
PROGRAM_WEEKS = 12
DAYS_PER_WEEK = 7
PROGRAM_DAYS = PROGRAM_WEEKS * DAYS_PER_WEEK

# -----------------------------
# Spaced repetition
# -----------------------------
MIN_MASTERY = 1
MAX_MASTERY = 5
# mastery level -> minimum days before the next review
REVIEW_INTERVALS: Dict[int, int] = {
    1: 1,
    2: 3,
    3: 7,
    4: 14,
    5: 30,
}
STREAK_TO_MOVE = 2
REVIEW_WINDOW_WEEKS = 4
REVIEW_SESSION_CAP = 20
REVIEW_QUIZ_MAX = 10

# words from the week passed to the story generator as context
STORY_CONTEXT_WORDS = 5

TUTOR_SYSTEM = """
You are Imparo, an Italian teacher and conversation partner.

Tone:
- warm, patient, encouraging.
- correct mistakes gently and explain why.

Rules:
- Use Italian as much as possible, English for explanations.
- Keep it concise by default (3-8 lines).
- Ask at most ONE follow-up question.
""".strip()
