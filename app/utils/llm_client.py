"""OpenAI Responses API transport for the extraction oracle."""

from __future__ import annotations

import json
import os
import time
import urllib.error
import urllib.request
import uuid
from collections.abc import Callable
from typing import Any

from skills.application_sync.errors import TransientError

DEFAULT_BASE_URL = "https://api.openai.com/v1"
TRANSIENT_HTTP_CODES = {408, 409, 429, 500, 502, 503, 504}
MAX_OUTPUT_TOKENS = 1024

CompletionFn = Callable[[str, str], object]


def _request_id() -> str:
    return uuid.uuid4().hex[:8]


def _text_size(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return len(value)
    if isinstance(value, list):
        return sum(_text_size(item) for item in value)
    if isinstance(value, dict):
        return sum(_text_size(v) for v in value.values())
    return len(str(value))


def _usage_suffix(data: dict[str, Any]) -> str:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return ""
    tokens_in, tokens_out = usage.get("input_tokens"), usage.get("output_tokens")
    if isinstance(tokens_in, int) and isinstance(tokens_out, int):
        return f" input_tokens={tokens_in} output_tokens={tokens_out}"
    return ""


def _elapsed_ms(started_at: float) -> int:
    return int((time.monotonic() - started_at) * 1000)


def llm_call(
    feature: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout_sec: int = 60,
) -> dict[str, Any]:
    """POST one Responses API payload and return the decoded reply.

    Rate limits, 5xx replies and network failures raise ``TransientError``;
    any other HTTP error raises ``RuntimeError``.
    """
    request_id = _request_id()
    prompt_chars = _text_size(payload.get("input"))
    tag = f"feature={feature} request_id={request_id} model={payload.get('model', '')}"

    if os.getenv("DISABLE_LLM", "").strip() == "1":
        print(f"[LLM BLOCKED] {tag} reason=DISABLE_LLM prompt_chars={prompt_chars}", flush=True)
        raise RuntimeError("LLM call blocked by DISABLE_LLM=1")
    if not api_key.strip():
        raise RuntimeError("Missing OpenAI API key")

    req = urllib.request.Request(
        url=f"{base_url.rstrip('/')}/responses",
        data=json.dumps(payload).encode("utf-8"),
        headers={"Authorization": f"Bearer {api_key.strip()}", "Content-Type": "application/json"},
        method="POST",
    )

    print(f"[LLM START] {tag}", flush=True)
    started_at = time.monotonic()
    try:
        with urllib.request.urlopen(req, timeout=timeout_sec) as resp:
            data = json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        print(f"[LLM ERROR] {tag} latency_ms={_elapsed_ms(started_at)} status={exc.code}", flush=True)
        detail = exc.read().decode("utf-8", errors="ignore")[:300]
        error_cls = TransientError if exc.code in TRANSIENT_HTTP_CODES else RuntimeError
        raise error_cls(f"LLM request failed ({exc.code}): {detail}") from exc
    except (urllib.error.URLError, TimeoutError) as exc:
        print(f"[LLM ERROR] {tag} latency_ms={_elapsed_ms(started_at)} reason={exc}", flush=True)
        raise TransientError(f"LLM request failed: {exc}") from exc

    if not isinstance(data, dict):
        raise RuntimeError("LLM response is not a JSON object")
    print(
        f"[LLM END] {tag} latency_ms={_elapsed_ms(started_at)} prompt_chars={prompt_chars}{_usage_suffix(data)}",
        flush=True,
    )
    return data


def extract_llm_text(data: object) -> str | None:
    """Reply text from a Responses API or chat-completions payload."""
    if not isinstance(data, dict):
        return None
    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    chunks = [
        part["text"]
        for item in data.get("output") or []
        if isinstance(item, dict) and isinstance(item.get("content"), list)
        for part in item["content"]
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    if chunks:
        return "\n".join(chunks)

    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        content = (choices[0].get("message") or {}).get("content")
        if isinstance(content, str):
            return content
    return None


def _input_text(role: str, text: str) -> dict[str, Any]:
    return {"role": role, "content": [{"type": "input_text", "text": text}]}


def build_completion(
    *,
    api_key: str,
    model: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout_sec: int = 60,
    feature: str = "application_extraction",
) -> CompletionFn:
    """Return a ``complete(system, user)`` callable bound to one model."""

    def complete(system_instruction: str, user_text: str) -> str | None:
        payload = {
            "model": model,
            "temperature": 0,
            "max_output_tokens": MAX_OUTPUT_TOKENS,
            "input": [_input_text("system", system_instruction), _input_text("user", user_text)],
        }
        data = llm_call(feature, payload, api_key=api_key, base_url=base_url, timeout_sec=timeout_sec)
        return extract_llm_text(data)

    return complete
