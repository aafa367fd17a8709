# backend/ai/llm_client.py
"""
Model-assisted grading collaborator.

`evaluate(prompt, schema)` returns a validated pydantic object; `generate_text`
returns free text. Any transport error, non-2xx status, timeout or output that
does not parse into the schema raises GradingFailure so the evaluation queue
can apply its retry policy.
"""
import json
import logging
import re
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ai.prompts import SYSTEM_PROMPT
from core.config import settings
from core.errors import GradingFailure

log = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_JSON_BLOB = re.compile(r"(\{[\s\S]*\})", flags=re.S)

# canned answers for AI_PROVIDER=stub, keyed by schema name
STUB_PAYLOADS: Dict[str, Dict[str, Any]] = {
    "SemanticReview": {
        "semantic_score": 70,
        "feedback": "LLM stub",
        "strengths": [],
        "improvements": [],
    },
    "CodeReview": {
        "score": 70,
        "criteria_scores": {},
        "strengths": [],
        "improvements": [],
        "overall_feedback": "LLM stub",
        "code_quality": "good",
        "completeness": "mostly_complete",
    },
}
STUB_TEXT = "LLM stub summary."


def extract_json(raw: str) -> Dict[str, Any]:
    raw = (raw or "").strip()
    try:
        body = json.loads(raw)
    except ValueError:
        m = _JSON_BLOB.search(raw)
        if not m:
            raise GradingFailure("model output is not JSON", {"raw": raw[:200]})
        try:
            body = json.loads(m.group(1))
        except ValueError as e:
            raise GradingFailure(f"model output is not JSON: {e}", {"raw": raw[:200]})
    if not isinstance(body, dict):
        raise GradingFailure("model output is not a JSON object", {"raw": raw[:200]})
    return body


class ModelClient:
    def __init__(
        self,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider = (provider or settings.AI_PROVIDER).lower()
        self.timeout = timeout if timeout is not None else settings.grading_timeout_seconds
        self._transport = transport  # tests inject httpx.MockTransport

    @property
    def model_name(self) -> str:
        if self.provider == "ollama":
            return settings.ollama_model
        if self.provider == "openai":
            return settings.openai_model
        return "stub"

    async def evaluate(self, prompt: str, schema: Type[T]) -> T:
        if self.provider == "stub":
            body = dict(STUB_PAYLOADS.get(schema.__name__, {}))
        else:
            raw = await self._complete(prompt, json_mode=True)
            body = extract_json(raw)
        try:
            return schema.model_validate(body)
        except ValidationError as e:
            raise GradingFailure(f"model output failed validation: {e.error_count()} error(s)")

    async def generate_text(self, prompt: str) -> str:
        if self.provider == "stub":
            return STUB_TEXT
        text = (await self._complete(prompt, json_mode=False)).strip()
        if not text:
            raise GradingFailure("model returned empty text")
        return text

    # ------------------------------
    # Providers
    # ------------------------------
    async def _complete(self, prompt: str, json_mode: bool) -> str:
        try:
            if self.provider == "ollama":
                return await self._ollama_call(prompt, json_mode)
            if self.provider == "openai":
                return await self._openai_call(prompt, json_mode)
        except httpx.TimeoutException as e:
            raise GradingFailure(f"{self.provider} timed out: {e!r}")
        except httpx.HTTPStatusError as e:
            raise GradingFailure(
                f"{self.provider} returned {e.response.status_code}",
                {"status": e.response.status_code},
            )
        except httpx.HTTPError as e:
            raise GradingFailure(f"{self.provider} request failed: {e!r}")
        raise GradingFailure(f"unknown AI_PROVIDER={self.provider}")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _ollama_call(self, prompt: str, json_mode: bool) -> str:
        url = f"{settings.ollama_url.rstrip('/')}/api/generate"
        payload: Dict[str, Any] = {
            "model": settings.ollama_model,
            "system": SYSTEM_PROMPT,
            "prompt": prompt,
            "stream": False,
        }
        if json_mode:
            payload["format"] = "json"
        async with self._client() as client:
            r = await client.post(url, json=payload)
            r.raise_for_status()
            # non-streaming replies are one object, but some builds still send NDJSON
            lines = [ln.strip() for ln in r.text.splitlines() if ln.strip()]
            if not lines:
                raise GradingFailure("ollama returned an empty body")
            try:
                body = json.loads(lines[-1])
            except ValueError:
                return r.text
            if isinstance(body, dict) and isinstance(body.get("response"), str):
                return body["response"]
            return lines[-1]

    async def _openai_call(self, prompt: str, json_mode: bool) -> str:
        if not settings.openai_api_key:
            raise GradingFailure("OPENAI_API_KEY is not set")
        headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
        payload: Dict[str, Any] = {
            "model": settings.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
            "max_tokens": 800,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        async with self._client() as client:
            r = await client.post("https://api.openai.com/v1/chat/completions", headers=headers, json=payload)
            r.raise_for_status()
            try:
                return r.json()["choices"][0]["message"]["content"] or ""
            except (ValueError, KeyError, IndexError, TypeError) as e:
                raise GradingFailure(f"unexpected openai response shape: {e!r}")
