from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Union

import pytest

from imparo.db import MemoryStore, SqliteStore
from imparo.errors import GenerationError, StorageError
from imparo.services.core import BotCore, build_core
from imparo.services.curriculum import CurriculumStore


class FakeLLM:
    """
    Stands in for LLMClient. Queued replies are returned in order; an
    exception instance in the queue is raised instead. An empty queue raises
    GenerationError, like an unreachable provider.
    """

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        self.replies: List[Union[str, Exception]] = list(replies or [])
        self.calls: List[Dict[str, object]] = []
        self.default_model = "fake-model"
        self.base_url = "http://fake.local/v1"

    def queue(self, *replies: Union[str, Exception]) -> "FakeLLM":
        self.replies.extend(replies)
        return self

    async def ask(self, prompt: str, system: str = "", model=None, max_tokens: int = 800, temperature: float = 0.7) -> str:
        messages = [{"role": "system", "content": system}, {"role": "user", "content": prompt}]
        return await self.chat(messages, model=model, max_tokens=max_tokens, temperature=temperature)

    async def chat(self, messages, model=None, max_tokens: int = 800, temperature: float = 0.7) -> str:
        self.calls.append(
            {
                "prompt": messages[-1]["content"],
                "system": messages[0]["content"],
                "messages": [dict(m) for m in messages],
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if not self.replies:
            raise GenerationError("provider unreachable")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSender:
    def __init__(self, fail_for: Optional[set] = None):
        self.sent: List[tuple] = []
        self.fail_for = set(fail_for or ())

    async def send(self, learner_id: int, text: str) -> None:
        if learner_id in self.fail_for:
            raise RuntimeError(f"cannot DM {learner_id}")
        self.sent.append((learner_id, text))

    def texts_for(self, learner_id: int) -> List[str]:
        return [t for lid, t in self.sent if lid == learner_id]


class FlakyStore(MemoryStore):
    """Memory store whose vocabulary reads fail for chosen learners."""

    def __init__(self, broken: set):
        super().__init__()
        self.broken = set(broken)

    def get_vocabulary(self, learner_id, week):
        if learner_id in self.broken:
            raise StorageError("disk on fire")
        return super().get_vocabulary(learner_id, week)


def words_json(n: int, prefix: str = "parola") -> str:
    return json.dumps(
        [
            {
                "italian": f"{prefix}{i}",
                "english": f"word {i}",
                "pronunciation": f"pa-ro-la {i}",
                "example": f"Questa è la {prefix}{i}.",
                "translation": f"This is word {i}.",
            }
            for i in range(n)
        ]
    )


def utc(y: int, m: int, d: int, hh: int = 0, mm: int = 0) -> datetime:
    return datetime(y, m, d, hh, mm, tzinfo=timezone.utc)


@pytest.fixture
def curriculum() -> CurriculumStore:
    return CurriculumStore()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(str(tmp_path / "imparo.sqlite3"))
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        yield MemoryStore()
        return
    s = SqliteStore(str(tmp_path / "imparo.sqlite3"))
    yield s
    s.close()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def core(memory_store, llm, curriculum, sender) -> BotCore:
    return build_core(memory_store, llm, curriculum, sender, delay_s=0)


class FakeTree:
    """Collects slash-command callbacks the way CommandTree.command would register them."""

    def __init__(self):
        self.commands: Dict[str, object] = {}

    def command(self, *, name: str, description: str = ""):
        def decorator(fn):
            self.commands[name] = fn
            return fn

        return decorator


class FakeResponse:
    def __init__(self, sink: list):
        self.sink = sink
        self.done = False

    def is_done(self) -> bool:
        return self.done

    async def defer(self, **kwargs) -> None:
        self.done = True

    async def send_message(self, content=None, *, embed=None, ephemeral=False) -> None:
        self.done = True
        self.sink.append({"content": content, "embed": embed, "ephemeral": ephemeral})


class FakeFollowup:
    def __init__(self, sink: list):
        self.sink = sink

    async def send(self, content=None, *, embed=None, ephemeral=False) -> None:
        self.sink.append({"content": content, "embed": embed, "ephemeral": ephemeral})


class FakeInteraction:
    def __init__(self, user_id: int, *, administrator: bool = False):
        self.sent: List[dict] = []
        self.user = SimpleNamespace(
            id=user_id,
            name=f"user{user_id}",
            guild_permissions=SimpleNamespace(administrator=administrator),
        )
        self.response = FakeResponse(self.sent)
        self.followup = FakeFollowup(self.sent)

    def texts(self) -> List[str]:
        out = []
        for m in self.sent:
            if m["content"]:
                out.append(m["content"])
            if m["embed"] is not None:
                out.append(m["embed"].description or "")
        return out


def commands_of(register, core: BotCore) -> Dict[str, object]:
    client = SimpleNamespace(tree=FakeTree())
    register(client, core)
    return client.tree.commands
