from __future__ import annotations

import logging
from typing import Dict, List, Optional

from imparo.constants import PROGRAM_WEEKS, TUTOR_SYSTEM
from imparo.models.plan import DailyPlan
from imparo.services.llm import LLMClient

log = logging.getLogger("Imparo")

# turns kept per learner besides the system prompt
MAX_HISTORY = 20

CHAT_MAX_TOKENS = 1000
CHAT_TEMPERATURE = 0.6


def tutor_system(plan: Optional[DailyPlan] = None, *, completed: bool = False) -> str:
    if plan is not None:
        return (
            f"{TUTOR_SYSTEM}\n\n"
            f"The learner is in week {plan.week_number}, day {plan.day_number} of a {PROGRAM_WEEKS}-week beginner course.\n"
            f'This week\'s theme: "{plan.theme}". Today\'s focus: {plan.focus.label}.\n'
            "Prefer vocabulary and examples from this theme."
        )
    if completed:
        return f"{TUTOR_SYSTEM}\n\nThe learner has completed the {PROGRAM_WEEKS}-week course."
    return TUTOR_SYSTEM


def translate_prompt(text: str) -> str:
    return (
        "Translate the following text between English and Italian. "
        "If it's English, translate to Italian. If it's Italian, translate to English. "
        f'Provide the translation and a brief explanation if needed:\n\n"{text}"'
    )


def grammar_prompt(question: str) -> str:
    return f"Grammar question: {question}\n\nPlease explain this Italian grammar concept clearly with examples."


class TutorSessions:
    """
    Conversation memory for the chat tutor, one history per learner.

    Only the newest `max_messages` turns are kept; the system prompt is
    rebuilt on every call from the learner's current day, so it never counts
    against the limit. Histories live in memory and are lost on restart.
    """

    def __init__(self, llm: LLMClient, max_messages: int = MAX_HISTORY):
        self.llm = llm
        self.max_messages = max(2, int(max_messages))
        self._history: Dict[int, List[Dict[str, str]]] = {}

    def history(self, learner_id: int) -> List[Dict[str, str]]:
        return list(self._history.get(int(learner_id), []))

    def add(self, learner_id: int, role: str, content: str) -> None:
        turns = self._history.setdefault(int(learner_id), [])
        turns.append({"role": role, "content": content})
        if len(turns) > self.max_messages:
            del turns[: len(turns) - self.max_messages]

    def clear(self, learner_id: int) -> bool:
        return self._history.pop(int(learner_id), None) is not None

    def messages(self, learner_id: int, system: str, text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system},
            *self.history(learner_id),
            {"role": "user", "content": text},
        ]

    async def reply(self, learner_id: int, text: str, system: str) -> str:
        """
        Asks the model with the learner's history and records both turns.
        GenerationError propagates and leaves the history untouched.
        """
        answer = await self.llm.chat(
            self.messages(learner_id, system, text),
            max_tokens=CHAT_MAX_TOKENS,
            temperature=CHAT_TEMPERATURE,
        )
        self.add(learner_id, "user", text)
        self.add(learner_id, "assistant", answer)
        log.debug("Tutor reply for %s (history=%d)", learner_id, len(self._history.get(int(learner_id), [])))
        return answer

    def __len__(self) -> int:
        return len(self._history)
