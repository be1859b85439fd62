import asyncio
import json
import logging
import re
from typing import Any, Optional, Sequence

import httpx

from prep_panel.errors import ConfigurationError, ParseError, UpstreamError
from prep_panel.settings.config import settings

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}

# first ```json ... ``` fence, language tag optional
_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

# swapped for httpx.MockTransport in tests
HTTP_TRANSPORT: Optional[httpx.AsyncBaseTransport] = None


#----------model invoker---------------

def _backoff(attempt: int) -> float:
    return settings.LLM_RETRY_BACKOFF_SECONDS * (2 ** attempt)


async def chat_completion(
    messages: Sequence[dict],
    *,
    model: Optional[str] = None,
    max_tokens: int = 2000,
) -> str:
    """
    POST a chat-completions request and return choices[0].message.content.

    Transient statuses (429/5xx) and transport errors are retried with
    exponential backoff, at most LLM_MAX_RETRIES extra attempts. Nothing is
    persisted before this returns, so a retry never duplicates stored state.
    """
    api_key = (settings.OPENAI_API_KEY or "").strip()
    if not api_key:
        raise ConfigurationError("OpenAI API key not configured")

    payload = {
        "model": model or settings.EFFICIENT_MODEL,
        "messages": list(messages),
        "max_completion_tokens": max_tokens,
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    retries = max(0, settings.LLM_MAX_RETRIES)

    async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS, transport=HTTP_TRANSPORT) as client:
        for attempt in range(retries + 1):
            last_attempt = attempt == retries
            try:
                r = await client.post(settings.OPENAI_API_URL, json=payload, headers=headers)
            except httpx.TransportError as e:
                if last_attempt:
                    raise UpstreamError(f"OpenAI API unreachable: {e}") from e
                logger.warning("OpenAI transport error (attempt %d/%d): %s", attempt + 1, retries + 1, e)
                await asyncio.sleep(_backoff(attempt))
                continue

            if r.is_success:
                break

            logger.error("OpenAI API error %s: %s", r.status_code, r.text[:500])
            if r.status_code in TRANSIENT_STATUSES and not last_attempt:
                await asyncio.sleep(_backoff(attempt))
                continue
            raise UpstreamError(f"OpenAI API error: {r.status_code}", upstream_status=r.status_code)

    try:
        data = r.json()
    except ValueError:
        return "{}"
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return "{}"
    return content if content is not None else "{}"


#----------response parser---------------

def parse_ai_response(raw: str, context: str = "AI response") -> Any:
    """
    Parse model output as JSON, falling back to the first fenced code block.
    Raises ParseError (carrying the raw text) when neither parses.
    """
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Failed to parse %s as JSON; looking for a code fence", context)

    m = _JSON_FENCE.search(raw or "")
    if m:
        try:
            parsed = json.loads(m.group(1))
            logger.info("Extracted JSON from markdown code block for %s", context)
            return parsed
        except ValueError as e:
            logger.error("Failed to parse fenced JSON for %s: %s", context, e)

    logger.debug("Unparseable %s: %s", context, raw)
    raise ParseError(f"Invalid response format from AI for {context}", raw_text=raw or "")
