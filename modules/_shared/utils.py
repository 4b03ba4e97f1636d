# modules/_shared/utils.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


def _truthy(s: str | None) -> bool:
    return (s or "").strip().lower() in {"1", "true", "yes", "on"}


def _get_float_env(name: str | None, default: float | None) -> float | None:
    if not name:
        return default
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Invalid float in %s=%r; using default %s", name, raw, default)
        return default


def json_schema_format(name: str, schema: dict[str, Any], *, description: str | None = None) -> dict[str, Any]:
    """Build a strict `response_format` payload for structured outputs."""
    payload: dict[str, Any] = {"name": name, "schema": schema, "strict": True}
    if description:
        payload["description"] = description
    return {"type": "json_schema", "json_schema": payload}


@dataclass
class OpenAIChat:
    """
    Thin facade over openai.chat.completions with:
      - model loaded from env via `model_env` (or the literal value if unset)
      - temperature from `temp_env` when set, otherwise the API default
      - client-side retries disabled (`max_retries`), callers own retry policy

    Errors from the openai package propagate unchanged.
    """

    model_env: str
    temp_env: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    max_retries: int = 0
    timeout: float = 60.0

    def chat(
        self,
        system_msg: str | None,
        user_msg: str,
        *,
        response_format: dict[str, Any] | None = None,
    ) -> str:
        from openai import OpenAI  # local import to keep tests light

        model = os.getenv(self.model_env) or self.model_env
        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise RuntimeError(f"{self.api_key_env} not set")
        temp = _get_float_env(self.temp_env, None)

        messages: list[dict[str, str]] = []
        if system_msg:
            messages.append({"role": "system", "content": system_msg})
        messages.append({"role": "user", "content": user_msg})

        params: dict[str, Any] = {"model": model, "messages": messages}
        if temp is not None:
            params["temperature"] = temp
        if response_format is not None:
            params["response_format"] = response_format

        log.debug("OpenAIChat.chat(model=%r, temperature=%s)", model, temp)
        with OpenAI(api_key=api_key, max_retries=self.max_retries, timeout=self.timeout) as client:
            resp = client.chat.completions.create(**params)

        if not resp.choices:
            log.debug("OpenAIChat.chat() received no choices")
            return ""
        content = (resp.choices[0].message.content or "").strip()
        log.debug("OpenAIChat.chat() received %d chars", len(content))

        if _truthy(os.getenv("LLM_DEBUG_RESPONSES")):
            log.debug("OpenAIChat.chat() content: %s", content[:2000])
        return content
