from __future__ import annotations

import ast
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import BadRequestError, OpenAI

from quizgate.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None


PLACEHOLDER_KEY_MARKERS = [
    "your_api_key",
    "your api key",
    "your-api-key",
    "replace_me",
    "replace-me",
    "changeme",
    "change_me",
    "your_openai_api_key",
    "openai_api_key",
    "sk-xxxxxxxx",
]


def _looks_like_placeholder_key(k: str | None) -> bool:
    ks = (k or "").strip().lower()
    if not ks:
        return False
    if any(m in ks for m in PLACEHOLDER_KEY_MARKERS):
        return True
    return "xxxx" in ks


def llm_available() -> bool:
    """Return True if question generation can call an LLM.

    - OpenAI API: set OPENAI_API_KEY
    - OpenAI-compatible local servers (Ollama/LM Studio): set OPENAI_BASE_URL (key can be blank)
    """
    base_url = (settings.OPENAI_BASE_URL or "").strip()
    if base_url:
        return True
    key = (settings.OPENAI_API_KEY or "").strip()
    return bool(key) and not _looks_like_placeholder_key(key)


def _get_client() -> OpenAI:
    global _client
    if _client is not None:
        return _client

    base_url = (settings.OPENAI_BASE_URL or "").strip() or None
    api_key = (settings.OPENAI_API_KEY or "").strip() or None

    if _looks_like_placeholder_key(api_key):
        raise RuntimeError(
            "API key looks like a placeholder. Please replace OPENAI_API_KEY in backend/.env with your real key."
        )
    # A local OpenAI-compatible server accepts any key.
    if not api_key and base_url:
        api_key = "ollama"
    if not api_key:
        raise RuntimeError(
            "LLM is not configured. Set OPENAI_API_KEY (OpenAI) or OPENAI_BASE_URL (Ollama/LM Studio) in backend/.env"
        )

    kwargs: Dict[str, Any] = {
        "api_key": api_key,
        "timeout": float(settings.OPENAI_HTTP_TIMEOUT_SEC),
        "max_retries": int(settings.OPENAI_MAX_RETRIES),
    }
    if base_url:
        kwargs["base_url"] = base_url
    _client = OpenAI(**kwargs)
    return _client


_THINK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


def _preprocess_llm_text(s: str) -> str:
    """Strip <think> blocks and markdown fences some models wrap JSON in."""
    s = (s or "").strip()
    if not s:
        return ""
    s = _THINK_RE.sub("", s).strip()
    if "```" in s:
        s = _FENCE_RE.sub("", s).strip()
    return s


def _extract_last_json_object(s: str) -> Dict[str, Any] | None:
    """Return the last valid JSON object found in text, or None."""
    dec = json.JSONDecoder()
    last_obj: Dict[str, Any] | None = None
    i = 0
    while True:
        i = s.find("{", i)
        if i < 0:
            break
        try:
            obj, end = dec.raw_decode(s[i:])
        except json.JSONDecodeError:
            i += 1
            continue
        if isinstance(obj, dict):
            last_obj = obj
        i += max(1, end)
    return last_obj


def _try_json(text: str) -> Dict[str, Any] | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def _try_literal(text: str) -> Dict[str, Any] | None:
    try:
        lit = ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return None
    return lit if isinstance(lit, dict) else None


def _safe_json_loads(s: str) -> Dict[str, Any]:
    s2 = _preprocess_llm_text(s)
    if not s2:
        raise ValueError("Empty LLM response (expected JSON).")

    obj = _try_json(s2)
    if obj is not None:
        return obj

    # Trailing commas before '}' or ']'
    s3 = re.sub(r",\s*([}\]])", r"\1", s2)
    obj = _try_json(s3)
    if obj is not None:
        return obj

    obj = _extract_last_json_object(s3)
    if obj is not None:
        return obj

    # Quasi-JSON (single quotes, True/False/None); literal_eval never executes code.
    s4 = re.sub(r"\bnull\b", "None", s3, flags=re.IGNORECASE)
    s4 = re.sub(r"\btrue\b", "True", s4, flags=re.IGNORECASE)
    s4 = re.sub(r"\bfalse\b", "False", s4, flags=re.IGNORECASE)
    obj = _try_literal(s4)
    if obj is not None:
        return obj

    raise ValueError(f"Could not parse JSON from LLM output. Head={s2[:200]!r}")


def _extract_chat_completion_text(res: Any) -> str:
    choices = getattr(res, "choices", None) or []
    if not choices:
        return ""
    msg = getattr(choices[0], "message", None)
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for p in content:
            text = p.get("text") if isinstance(p, dict) else getattr(p, "text", None)
            if isinstance(text, str) and text.strip():
                parts.append(text.strip())
        return "\n".join(parts)
    return ""


def chat_json(
    *,
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
    temperature: float = 0.3,
    max_tokens: int = 1200,
) -> Dict[str, Any]:
    """Call the chat model in JSON mode and return the parsed object.

    Providers that reject ``response_format`` are retried without it. An
    unparsable answer is retried once with a stricter instruction.
    """
    client = _get_client()
    m = model or settings.OPENAI_CHAT_MODEL

    json_guard = {
        "role": "system",
        "content": (
            "You are a strict JSON generator. "
            "Output exactly ONE valid JSON object and nothing else. "
            "Do NOT include explanations or markdown fences."
        ),
    }
    guarded_messages = [json_guard] + (messages or [])

    def _call_chat(_messages: List[Dict[str, str]], _max_tokens: int, _temp: float):
        base_kwargs: Dict[str, Any] = {
            "model": m,
            "messages": _messages,
            "temperature": float(_temp),
            "max_tokens": int(_max_tokens),
        }
        try:
            return client.chat.completions.create(**base_kwargs, response_format={"type": "json_object"})
        except BadRequestError:
            logger.info("model %s rejected JSON mode, retrying without response_format", m)
            return client.chat.completions.create(**base_kwargs)

    res = _call_chat(guarded_messages, int(max_tokens), float(temperature))
    content = _extract_chat_completion_text(res)
    try:
        return _safe_json_loads(content)
    except ValueError:
        logger.warning("unparsable JSON from %s, retrying once", m)

    guard = {
        "role": "system",
        "content": "CRITICAL: Output ONLY a single valid JSON object. No explanations, no markdown fences.",
    }
    res2 = _call_chat([guard] + guarded_messages, min(int(max_tokens) * 2, 4096), 0.0)
    return _safe_json_loads(_extract_chat_completion_text(res2))
