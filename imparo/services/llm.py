import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

import httpx

from imparo.errors import GenerationError

log = logging.getLogger("Imparo")

T = TypeVar("T")


@dataclass
class GenerationResult(Generic[T]):
    """
    Outcome of one content request: either the parsed payload or the reason
    the caller fell back to curated content. Never raised past the dispatcher.
    """

    payload: T
    ok: bool = True
    error: Optional[str] = None

    @property
    def fallback(self) -> bool:
        return not self.ok

    @classmethod
    def success(cls, payload: T) -> "GenerationResult[T]":
        return cls(payload=payload, ok=True)

    @classmethod
    def fell_back(cls, payload: T, error: Any) -> "GenerationResult[T]":
        return cls(payload=payload, ok=False, error=str(error) or type(error).__name__)


class LLMClient:
    """
    OpenAI-compatible chat client:
    - Default: local OpenAI-compatible server (e.g., Ollama), no key
    - With an api_key: OpenAI (or Groq) with a Bearer token

    Supports:
    - /chat/completions (local or remote)
    - OpenAI /responses (remote) with compatible parsing

    Every failure is raised as GenerationError so callers can fall back.
    """

    def __init__(
        self,
        base_url: str,
        default_model: str,
        *,
        api_key: str = "",
        prefer_responses_api: bool = False,
        timeout: float = 45.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.default_model = default_model
        self.api_key = (api_key or "").strip()
        self.prefer_responses_api = bool(prefer_responses_api)
        self.timeout = float(timeout)
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _check_status(r: httpx.Response) -> None:
        if r.status_code == 401:
            raise GenerationError("Invalid API key (401). Check OPENAI_API_KEY / GROQ_API_KEY.")
        if r.status_code >= 400:
            body = (r.text or "")[:500]
            raise GenerationError(f"LLM error ({r.status_code}): {body}")

    @staticmethod
    def _parse_responses(data: Any) -> str:
        if isinstance(data, dict) and "output_text" in data:
            out = str(data.get("output_text") or "").strip()
            if out:
                return out

        if isinstance(data, dict) and isinstance(data.get("output"), list):
            texts = []
            for item in data["output"]:
                content = item.get("content") if isinstance(item, dict) else None
                if isinstance(content, list):
                    for part in content:
                        if isinstance(part, dict) and "text" in part:
                            texts.append(str(part["text"]))
            return "\n".join([t for t in texts if t]).strip()

        return ""

    @staticmethod
    def _parse_chat(data: Any) -> str:
        if isinstance(data, dict) and data.get("choices"):
            choice0 = data["choices"][0] or {}
            msg = choice0.get("message") or {}
            content = (msg.get("content") or "").strip()
            if content:
                return content

            text = (choice0.get("text") or "").strip()
            if text:
                return text

            return ""

        if isinstance(data, dict) and "message" in data:
            msg = data["message"]
            if isinstance(msg, dict):
                return str(msg.get("content") or "").strip()
            return str(msg).strip()

        if isinstance(data, dict) and "response" in data:
            return str(data["response"]).strip()

        return ""

    async def ask(
        self,
        prompt: str,
        system: str = "You are a helpful Italian teacher.",
        model: Optional[str] = None,
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> str:
        messages = [
            {"role": "system", "content": system or "You are a helpful Italian teacher."},
            {"role": "user", "content": prompt or ""},
        ]
        return await self.chat(messages, model=model, max_tokens=max_tokens, temperature=temperature)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 800,
        temperature: float = 0.7,
    ) -> str:
        """One completion over a full message list (system, earlier turns, new user turn)."""
        if not self.base_url:
            raise GenerationError("LLM misconfigured: missing base_url.")

        used_model = model or self.default_model

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                if self.prefer_responses_api and self.api_key:
                    r = await client.post(
                        f"{self.base_url}/responses",
                        headers=self._headers(),
                        json={
                            "model": used_model,
                            "input": messages,
                            "temperature": temperature,
                            "max_output_tokens": max_tokens,
                        },
                    )
                    self._check_status(r)
                    out = self._parse_responses(r.json())
                else:
                    r = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers=self._headers(),
                        json={
                            "model": used_model,
                            "messages": messages,
                            "max_tokens": max_tokens,
                            "temperature": temperature,
                        },
                    )
                    self._check_status(r)
                    out = self._parse_chat(r.json())
        except httpx.HTTPError as e:
            raise GenerationError(f"LLM request failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise GenerationError(f"LLM returned a non-JSON body: {e}") from e

        if not out:
            raise GenerationError("LLM returned empty output")
        return out


def build_llm_client() -> LLMClient:
    from config import (
        DEFAULT_MODEL,
        GROQ_API_KEY,
        GROQ_BASE_URL,
        GROQ_MODEL,
        LLM_PROVIDER,
        LLM_TIMEOUT_S,
        OPENAI_API_KEY,
        OPENAI_API_URL,
        OPENAI_BASE_URL,
        OPENAI_MODEL,
    )

    if LLM_PROVIDER == "groq":
        return LLMClient(GROQ_BASE_URL, GROQ_MODEL, api_key=GROQ_API_KEY, timeout=LLM_TIMEOUT_S)
    if LLM_PROVIDER == "openai":
        return LLMClient(
            OPENAI_API_URL,
            OPENAI_MODEL,
            api_key=OPENAI_API_KEY,
            prefer_responses_api=True,
            timeout=LLM_TIMEOUT_S,
        )
    return LLMClient(OPENAI_BASE_URL, DEFAULT_MODEL, timeout=LLM_TIMEOUT_S)
