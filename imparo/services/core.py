from dataclasses import dataclass
from typing import Optional

from imparo.db import Storage
from imparo.services.broadcast import Broadcaster
from imparo.services.curriculum import CurriculumStore
from imparo.services.dispatcher import ContentDispatcher
from imparo.services.llm import LLMClient
from imparo.services.review import ReviewScheduler
from imparo.services.scheduler import BroadcastScheduler
from imparo.services.tutor import TutorSessions


@dataclass
class BotCore:
    """Everything the command handlers and scheduled jobs share."""

    store: Storage
    llm: LLMClient
    curriculum: CurriculumStore
    review: ReviewScheduler
    dispatcher: ContentDispatcher
    broadcaster: Broadcaster
    tutor: TutorSessions
    scheduler: Optional[BroadcastScheduler] = None


def build_core(store: Storage, llm: LLMClient, curriculum: CurriculumStore, sender, *, delay_s: float = 1.0) -> BotCore:
    review = ReviewScheduler(store)
    dispatcher = ContentDispatcher(llm, store, review)
    broadcaster = Broadcaster(store, curriculum, dispatcher, sender, delay_s=delay_s)
    return BotCore(
        store=store,
        llm=llm,
        curriculum=curriculum,
        review=review,
        dispatcher=dispatcher,
        broadcaster=broadcaster,
        tutor=TutorSessions(llm),
    )
