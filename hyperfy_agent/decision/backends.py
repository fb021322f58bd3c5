"""
Generative backends — anything that turns (prompt, schema) into a JSON object.

The OpenAI-compatible adapter speaks the Chat Completions contract, so the
same path works for hosted models and local servers that mimic it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Mapping, Optional, Protocol

import requests

from hyperfy_agent.schema.synthesizer import ActionSchema

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class BackendError(RuntimeError):
    """The backend could not produce an object."""

    def __init__(self, message: str, *, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class GenerativeBackend(Protocol):
    """Pluggable structured generation."""

    async def generate_object(
        self, prompt: str, schema: ActionSchema
    ) -> Optional[Any]: ...


def extract_json_object(text: str) -> dict:
    """Return the first JSON object found in a model reply."""
    candidate = (text or "").strip()
    if not candidate:
        raise BackendError("Empty model response", error_code="empty_response")

    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for idx, char in enumerate(candidate):
        if char != "{":
            continue
        try:
            parsed, _ = decoder.raw_decode(candidate, idx)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise BackendError(
        "Response does not contain a valid JSON object",
        error_code="invalid_json_output",
    )


class OpenAICompatibleBackend:
    """Structured generation over an OpenAI-compatible Chat Completions API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 256,
        timeout_seconds: float = 30.0,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OpenAICompatibleBackend":
        env = os.environ if environ is None else environ
        timeout = env.get("HYPERFY_LLM_TIMEOUT_SECONDS") or "30"
        return cls(
            model=env.get("HYPERFY_LLM_MODEL") or DEFAULT_MODEL,
            base_url=env.get("HYPERFY_LLM_BASE_URL") or DEFAULT_BASE_URL,
            api_key=env.get("HYPERFY_LLM_API_KEY") or env.get("OPENAI_API_KEY"),
            timeout_seconds=float(timeout),
        )

    def _build_messages(self, prompt: str, schema: ActionSchema) -> list:
        system = (
            "Return a strict JSON object only, without markdown or commentary. "
            "The object must match this JSON schema:\n"
            f"{json.dumps(schema.json_schema(), separators=(',', ':'))}"
        )
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

    def _post(self, payload: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise BackendError(f"Backend network error: {exc}", error_code="network_error") from exc

        if response.status_code >= 400:
            raise BackendError(
                f"Backend HTTP error {response.status_code}: {response.text[:240]}",
                error_code=f"http_{response.status_code}",
            )
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                "Backend returned non-JSON response", error_code="invalid_provider_response"
            ) from exc

    def complete(self, prompt: str, schema: ActionSchema) -> Optional[Any]:
        """
        Blocking call; returns None when the reply carries no choices.

        A reply without a JSON object comes back as its raw text, so schema
        validation (not the transport) is what rejects it.
        """
        payload = {
            "model": self.model,
            "messages": self._build_messages(prompt, schema),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        parsed = self._post(payload)
        choices = parsed.get("choices") or []
        if not choices:
            logger.warning("Backend reply from %s had no choices", self.model)
            return None
        content: Any = ((choices[0] or {}).get("message") or {}).get("content")
        if isinstance(content, list):
            content = "".join(str(part.get("text", "")) for part in content if isinstance(part, dict))
        text = str(content or "")
        try:
            return extract_json_object(text)
        except BackendError as exc:
            if exc.error_code != "invalid_json_output":
                raise
            logger.warning("Backend reply from %s holds no JSON object", self.model)
            return text

    async def generate_object(self, prompt: str, schema: ActionSchema) -> Optional[Any]:
        return await asyncio.to_thread(self.complete, prompt, schema)
