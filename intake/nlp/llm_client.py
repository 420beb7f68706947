"""
Language-model boundary for classification and extraction (LangChain).
One system instruction plus user content in, one JSON object out. Code fences,
comments and prose around the object are stripped before parsing.
"""

import json
import logging
import re
from typing import Any

from intake import settings

logger = logging.getLogger(__name__)

_chat = None
_chat_checked = False


class ModelError(Exception):
    """Base for model-boundary failures. Callers convert these to fallbacks."""


class ModelUnavailableError(ModelError):
    """No model is configured; nothing was attempted."""


class ModelCallError(ModelError):
    """The call itself failed (network, timeout, provider error)."""


class ModelResponseError(ModelError):
    """The call returned, but not with a usable JSON object."""


def _build_chat():
    if settings.USE_OLLAMA:
        from langchain_community.chat_models import ChatOllama

        return ChatOllama(
            model=settings.OLLAMA_MODEL,
            temperature=0,
            timeout=int(settings.LLM_TIMEOUT_SECONDS),
        )
    if not settings.OPENAI_API_KEY:
        return None
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=settings.OPENAI_CHAT_MODEL,
        temperature=0,
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )


def get_chat():
    """Shared chat model, built on first use. None when nothing is configured."""
    global _chat, _chat_checked
    if not _chat_checked:
        _chat = _build_chat()
        _chat_checked = True
        if _chat is None:
            logger.warning("No language model configured (set OPENAI_API_KEY or USE_OLLAMA=1)")
    return _chat


def set_chat(chat) -> None:
    """Replace the shared chat model (tests, alternative providers)."""
    global _chat, _chat_checked
    _chat = chat
    _chat_checked = True


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(^|[\s,{\[])//[^\n]*", re.MULTILINE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _first_object(text: str) -> str | None:
    """Balanced ``{...}`` span starting at the first brace, string-aware."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_json_object(text: str) -> dict[str, Any]:
    """Pull one JSON object out of a model reply. Raises ModelResponseError."""
    if not text or not text.strip():
        raise ModelResponseError("empty model reply")
    fenced = _FENCE_RE.search(text)
    body = fenced.group(1) if fenced else text
    body = _BLOCK_COMMENT_RE.sub("", body)
    body = _LINE_COMMENT_RE.sub(r"\1", body)
    candidate = _first_object(body)
    if candidate is None:
        raise ModelResponseError("no JSON object in model reply")
    for attempt in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ModelResponseError("model reply is not a JSON object")


def _content_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = [p.get("text", "") if isinstance(p, dict) else str(p) for p in content]
        return "".join(parts)
    return str(content or "")


def complete_json(
    system_prompt: str,
    user_content: str,
    *,
    history: list[dict[str, str]] | None = None,
    chat=None,
) -> dict[str, Any]:
    """
    One model call. Raises ModelUnavailableError, ModelCallError or
    ModelResponseError; never returns a partial result.
    """
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    chat = chat or get_chat()
    if chat is None:
        raise ModelUnavailableError("no language model configured")
    messages = [SystemMessage(content=system_prompt)]
    for h in history or []:
        if h.get("role") == "user":
            messages.append(HumanMessage(content=h.get("text") or ""))
        else:
            messages.append(AIMessage(content=h.get("text") or ""))
    messages.append(HumanMessage(content=user_content))
    try:
        response = chat.invoke(messages)
    except Exception as e:
        raise ModelCallError(f"{type(e).__name__}: {e}") from e
    return parse_json_object(_content_text(response))
