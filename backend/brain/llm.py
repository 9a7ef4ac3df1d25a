"""LLM gateway, the one place that talks to Claude.

Every feature (plan generation, replanning, quizzes, tutor chat, insights)
goes through `complete()` / `complete_json()` so retry, quota handling and
JSON clean-up behave the same everywhere.
"""
from __future__ import annotations

import json
import logging

import anthropic
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from server import config
from brain.errors import AIError, AIQuotaError, AIResponseError, AIUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8000

_client: anthropic.Anthropic | None = None


class _TransientAIError(AIError):
    """Connection drop, timeout or 5xx; worth another attempt."""


def get_client() -> anthropic.Anthropic:
    global _client
    if not config.ANTHROPIC_API_KEY:
        raise AIUnavailableError("AI features require an API key")
    if _client is None:
        _client = anthropic.Anthropic(api_key=config.ANTHROPIC_API_KEY)
    return _client


def _call_once(prompt: str, system: str | None, model: str, max_tokens: int,
               history: list[dict] | None, source: str) -> str:
    client = get_client()
    messages = list(history or []) + [{"role": "user", "content": prompt}]
    kwargs = {"model": model, "max_tokens": max_tokens, "messages": messages}
    if system:
        kwargs["system"] = system

    try:
        message = client.messages.create(**kwargs)
    except anthropic.RateLimitError as exc:
        logger.warning("Quota exceeded for %s: %s", source, exc)
        raise AIQuotaError(
            "Daily AI quota exceeded. Please try again later or check your API key."
        ) from exc
    except (anthropic.APIConnectionError, anthropic.InternalServerError) as exc:
        # APITimeoutError is a subclass of APIConnectionError
        logger.warning("Transient AI error in %s: %s", source, exc)
        raise _TransientAIError(str(exc)) from exc
    except anthropic.APIStatusError as exc:
        # 529 overloaded and other 5xx outside InternalServerError
        if exc.status_code >= 500:
            logger.warning("Transient AI error in %s: %s", source, exc)
            raise _TransientAIError(str(exc)) from exc
        logger.error("AI call failed in %s: %s", source, exc)
        raise AIError(str(exc)) from exc
    except anthropic.APIError as exc:
        logger.error("AI call failed in %s: %s", source, exc)
        raise AIError(str(exc)) from exc

    parts = [block.text for block in message.content if getattr(block, "type", "text") == "text"]
    return "".join(parts).strip()


def complete(prompt: str, *, source: str, system: str | None = None,
             model: str | None = None, max_tokens: int = DEFAULT_MAX_TOKENS,
             history: list[dict] | None = None) -> str:
    """Send one user turn (plus optional prior turns) and return the text reply.

    Transient failures are retried with exponential backoff (2s, 4s, ...) up to
    LLM_MAX_RETRIES times; quota errors fail immediately.
    """
    model = model or config.PLANNER_MODEL

    @retry(
        retry=retry_if_exception_type(_TransientAIError),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        stop=stop_after_attempt(config.LLM_MAX_RETRIES + 1),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=True,
    )
    def _attempt() -> str:
        logger.info("Calling %s for %s", model, source)
        return _call_once(prompt, system, model, max_tokens, history, source)

    try:
        return _attempt()
    except _TransientAIError as exc:
        raise AIError(f"AI service unavailable after retries: {exc}") from exc


def strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        # Opening fence (```json\n or ```\n)
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else cleaned[3:]
        cleaned = cleaned.rsplit("```", 1)[0]
    return cleaned.strip()


def parse_json(text: str | None):
    """Parse JSON out of a model reply.

    Tries the whole reply first, then the outermost array or object found in
    it (an array wins when it opens before the first brace). Empty input
    returns None.
    """
    if not text:
        return None

    cleaned = strip_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    first_bracket, last_bracket = cleaned.find("["), cleaned.rfind("]")
    first_brace, last_brace = cleaned.find("{"), cleaned.rfind("}")

    extracted = None
    if first_bracket != -1 and last_bracket > first_bracket and (first_brace == -1 or first_bracket < first_brace):
        extracted = cleaned[first_bracket: last_bracket + 1]
    elif first_brace != -1 and last_brace > first_brace:
        extracted = cleaned[first_brace: last_brace + 1]

    if extracted is not None:
        try:
            return json.loads(extracted)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse AI JSON. Raw head: %s", text[:200].replace("\n", " "))
            raise AIResponseError(f"Failed to parse AI response: {exc}") from exc

    logger.error("No JSON found in AI reply. Raw head: %s", text[:200].replace("\n", " "))
    raise AIResponseError("Failed to parse AI response: no JSON structure found")


def complete_json(prompt: str, *, source: str, **kwargs):
    return parse_json(complete(prompt, source=source, **kwargs))
