"""LLM client — multi-provider support (OpenAI, Anthropic, Google).

This is the generation capability the market intel pipeline consumes:
given a system prompt and a user prompt, return text or raise LLMError.
Which provider/model serves a task comes from config.get_llm_config().

Error handling:
  - 400-level errors (bad request, auth) are NOT retried — they won't fix themselves.
  - 429 (rate limit) and 5xx (server errors) ARE retried with exponential backoff.
  - All errors are extracted into clean, readable messages.
  - Every request carries config.LLM_REQUEST_TIMEOUT so a call can't hang a run.
"""

from __future__ import annotations

import json
import logging
import re
import socket
from functools import partial
from typing import Any, Callable

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

import config

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, str], str]


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------

class LLMError(Exception):
    """Clean error from an LLM call with a human-readable message."""

    def __init__(self, message: str, provider: str = "", model: str = "", cause: Exception | None = None):
        self.provider = provider
        self.model = model
        self.cause = cause
        super().__init__(message)


class LLMUnavailableError(LLMError):
    """The provider can't be called at all (missing key, unknown provider)."""


def _is_retryable(exc: BaseException) -> bool:
    """Return True if the error is transient and worth retrying.

    We retry on rate limits, server errors and connection / timeout errors.
    Bad requests, auth errors and unknown models are final.
    """
    try:
        from openai import (
            APIConnectionError,
            APITimeoutError,
            InternalServerError,
            RateLimitError,
        )
        if isinstance(exc, (RateLimitError, InternalServerError, APIConnectionError, APITimeoutError)):
            return True
    except ImportError:
        pass

    try:
        from anthropic import (
            APIConnectionError as AnthropicConnError,
            APITimeoutError as AnthropicTimeout,
            InternalServerError as AnthropicInternal,
            RateLimitError as AnthropicRateLimit,
        )
        if isinstance(exc, (AnthropicRateLimit, AnthropicInternal, AnthropicConnError, AnthropicTimeout)):
            return True
    except ImportError:
        pass

    return isinstance(exc, (ConnectionError, TimeoutError, socket.timeout))


def _extract_error_message(exc: Exception, provider: str, model: str) -> str:
    """Pull out a clean, human-readable error message from an API exception."""
    msg = str(exc)

    try:
        from openai import AuthenticationError, BadRequestError, NotFoundError
        if isinstance(exc, BadRequestError):
            body = getattr(exc, "body", None)
            if isinstance(body, dict):
                msg = body.get("error", {}).get("message", msg)
            return f"[{provider}/{model}] Bad request: {msg}"
        if isinstance(exc, AuthenticationError):
            return f"[{provider}] Authentication failed — check your OPENAI_API_KEY."
        if isinstance(exc, NotFoundError):
            return f"[{provider}] Model '{model}' not found. Check the model name in config.py or .env."
    except ImportError:
        pass

    try:
        from anthropic import AuthenticationError as AnthropicAuth, NotFoundError as AnthropicNotFound
        if isinstance(exc, AnthropicAuth):
            return f"[{provider}] Authentication failed — check your ANTHROPIC_API_KEY."
        if isinstance(exc, AnthropicNotFound):
            return f"[{provider}] Model '{model}' not found."
    except ImportError:
        pass

    if len(msg) > 300:
        msg = msg[:300] + "..."
    return f"[{provider}/{model}] {msg}"


# ---------------------------------------------------------------------------
# Provider clients (lazy-init)
# ---------------------------------------------------------------------------

_openai_client = None
_anthropic_client = None
_google_client = None


def _get_openai():
    global _openai_client
    if _openai_client is None:
        if not config.OPENAI_API_KEY:
            raise LLMUnavailableError(
                "OPENAI_API_KEY is not set. Add it to your .env file.",
                provider="openai",
            )
        from openai import OpenAI
        _openai_client = OpenAI(api_key=config.OPENAI_API_KEY, timeout=config.LLM_REQUEST_TIMEOUT)
    return _openai_client


def _get_anthropic():
    global _anthropic_client
    if _anthropic_client is None:
        if not config.ANTHROPIC_API_KEY:
            raise LLMUnavailableError(
                "ANTHROPIC_API_KEY is not set. Add it to your .env file.",
                provider="anthropic",
            )
        import anthropic
        _anthropic_client = anthropic.Anthropic(
            api_key=config.ANTHROPIC_API_KEY, timeout=config.LLM_REQUEST_TIMEOUT
        )
    return _anthropic_client


def _get_google():
    global _google_client
    if _google_client is None:
        if not config.GOOGLE_API_KEY:
            raise LLMUnavailableError(
                "GOOGLE_API_KEY is not set. Add it to your .env file.",
                provider="google",
            )
        from google import genai
        from google.genai import types
        _google_client = genai.Client(
            api_key=config.GOOGLE_API_KEY,
            http_options=types.HttpOptions(timeout=int(config.LLM_REQUEST_TIMEOUT * 1000)),
        )
    return _google_client


# ---------------------------------------------------------------------------
# Provider-specific call implementations
# ---------------------------------------------------------------------------

# Newer OpenAI models take max_completion_tokens instead of max_tokens.
_OPENAI_NEW_TOKEN_PARAM_PREFIXES = (
    "gpt-4o", "gpt-4.1", "gpt-4.5", "gpt-5", "o1", "o3", "o4",
)


def _call_openai(system_prompt: str, user_prompt: str, model: str, temperature: float, max_tokens: int) -> str:
    client = _get_openai()
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
    }
    if any(model.startswith(p) for p in _OPENAI_NEW_TOKEN_PARAM_PREFIXES):
        kwargs["max_completion_tokens"] = max_tokens
    else:
        kwargs["max_tokens"] = max_tokens

    response = client.chat.completions.create(**kwargs)
    content = response.choices[0].message.content or ""
    logger.info("OpenAI [%s]: %d chars, usage=%s", model, len(content), response.usage)
    return content


def _call_anthropic(system_prompt: str, user_prompt: str, model: str, temperature: float, max_tokens: int) -> str:
    client = _get_anthropic()
    response = client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    content = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
    logger.info(
        "Anthropic [%s]: %d chars, in=%d out=%d",
        model, len(content), response.usage.input_tokens or 0, response.usage.output_tokens or 0,
    )
    return content


def _call_google(system_prompt: str, user_prompt: str, model: str, temperature: float, max_tokens: int) -> str:
    from google.genai import types

    client = _get_google()
    response = client.models.generate_content(
        model=model,
        contents=user_prompt,
        config=types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
        ),
    )
    content = response.text or ""
    logger.info("Google [%s]: %d chars", model, len(content))
    return content


_PROVIDERS: dict[str, Callable[..., str]] = {
    "openai": _call_openai,
    "anthropic": _call_anthropic,
    "google": _call_google,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

@retry(
    retry=retry_if_exception(_is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=20),
    reraise=True,
)
def call_llm(
    system_prompt: str,
    user_prompt: str,
    provider: str = "openai",
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 1_000,
) -> str:
    """Call an LLM and return raw text. Provider-agnostic.

    Retries on transient errors (rate limits, server errors).
    Raises LLMError immediately for bad requests or auth errors.
    """
    model = model or config.DEFAULT_MODEL
    call_fn = _PROVIDERS.get(provider)
    if not call_fn:
        raise LLMUnavailableError(
            f"Unknown provider: '{provider}'. Available: {list(_PROVIDERS.keys())}",
            provider=provider,
            model=model,
        )

    logger.info("LLM call: provider=%s, model=%s, temp=%.1f", provider, model, temperature)
    try:
        return call_fn(system_prompt, user_prompt, model, temperature, max_tokens)
    except LLMError:
        raise
    except Exception as exc:
        clean_msg = _extract_error_message(exc, provider, model)
        logger.warning("LLM call failed: %s", clean_msg)
        if _is_retryable(exc):
            raise  # let tenacity retry
        raise LLMError(clean_msg, provider=provider, model=model, cause=exc) from exc


def generator_for(task: str) -> GenerateFn:
    """Bind call_llm to the provider/model configured for a pipeline task."""
    conf = config.get_llm_config(task)
    return partial(
        call_llm,
        provider=conf["provider"],
        model=conf["model"],
        temperature=conf["temperature"],
        max_tokens=conf["max_tokens"],
    )


def strip_code_fences(raw: str) -> str:
    cleaned = (raw or "").strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```\w*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```\s*$", "", cleaned)
    return cleaned.strip()


def safe_json_loads(raw: str) -> Any:
    """Parse JSON with fallback repair for common LLM quirks.

    Handles: markdown fences, trailing commas, preamble/postamble around
    a single JSON array or object. Raises ValueError when nothing parses.
    """
    cleaned = strip_code_fences(raw)
    if not cleaned:
        raise ValueError("empty response")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    fixed = re.sub(r",\s*([}\]])", r"\1", cleaned)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        pass

    # Strip preamble/postamble: try the outermost array, then the outermost object.
    for pattern in (r"\[.*\]", r"\{.*\}"):
        match = re.search(pattern, cleaned, re.DOTALL)
        if not match:
            continue
        candidate = re.sub(r",\s*([}\]])", r"\1", match.group(0))
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise ValueError(f"response is not valid JSON: {cleaned[:120]!r}")
