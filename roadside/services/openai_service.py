"""
OpenAI chat completions over HTTP
Breakdown categorization for tickets and assistant replies for web chat
"""

import json
import logging
from typing import Optional

import httpx

from ..config import OPENAI_API_KEY, OPENAI_CHAT_MODEL, OPENAI_MODEL

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

DEFAULT_BREAKDOWN_REASON = [{"label": "Other", "key": "other", "idx": 8}]

BREAKDOWN_CATEGORIES = [
    {"label": "Flat Tire", "key": "flat_tire", "idx": 1},
    {"label": "Battery Replacement", "key": "battery_replacement", "idx": 2},
    {"label": "Jump Start", "key": "jump_start", "idx": 3},
    {"label": "Lockout", "key": "lockout", "idx": 4},
    {"label": "Tire Replacement", "key": "tire_replacement", "idx": 5},
    {"label": "Fuel Delivery", "key": "fuel_delivery", "idx": 6},
    {"label": "Towing", "key": "towing", "idx": 7},
    {"label": "Other", "key": "other", "idx": 8},
]

BREAKDOWN_SYSTEM_PROMPT = (
    "Given a description of a vehicle issue, return a JSON array of objects with the "
    '"label", "key" and "idx" of every service that applies.\n\n'
    "Available services:\n"
    + "\n".join(f"{c['label']}: {json.dumps(c)}" for c in BREAKDOWN_CATEGORIES)
    + "\n\nIf nothing fits, return "
    + json.dumps(DEFAULT_BREAKDOWN_REASON)
    + ".\nReturn only the JSON array, no additional text."
)


async def _chat_completion(
    messages: list[dict], model: str, temperature: float, max_tokens: int
) -> str:
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            OPENAI_CHAT_URL,
            headers={"Authorization": f"Bearer {OPENAI_API_KEY}"},
            json={
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )
        response.raise_for_status()
        body = response.json()

    choices = body.get("choices") if isinstance(body, dict) else None
    message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ValueError(f"Malformed completion response: {str(body)[:200]}")
    return content.strip()


async def categorize_breakdown_reason(description: Optional[str]) -> list[dict]:
    """
    Map a free-text breakdown description onto the service categories.

    Falls back to [Other] when OpenAI is not configured, fails, or answers with
    anything other than a non-empty JSON array.
    """
    if not OPENAI_API_KEY:
        logger.warning("⚠️ OpenAI API key not found, using default breakdown reason")
        return list(DEFAULT_BREAKDOWN_REASON)
    if not description:
        return list(DEFAULT_BREAKDOWN_REASON)

    try:
        content = await _chat_completion(
            [
                {"role": "system", "content": BREAKDOWN_SYSTEM_PROMPT},
                {"role": "user", "content": description},
            ],
            model=OPENAI_MODEL,
            temperature=0.3,
            max_tokens=200,
        )
        logger.info(f"🤖 Breakdown categorization result: {content}")
        parsed = json.loads(content)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Breakdown categorization failed: {str(e)}")
        return list(DEFAULT_BREAKDOWN_REASON)

    if isinstance(parsed, list) and parsed:
        return parsed

    logger.warning("⚠️ Invalid categorization response structure, using default")
    return list(DEFAULT_BREAKDOWN_REASON)


async def generate_chat_reply(system_prompt: str, history: list[dict]) -> str:
    """
    Produce the assistant's next message.

    Args:
        system_prompt: Fully rendered system instruction
        history: [{"role": "user"|"assistant", "content": str}, ...] oldest first

    Raises:
        RuntimeError: If OpenAI is not configured
        httpx.HTTPError: On transport or API errors
        ValueError: If the completion body carries no message content
    """
    if not OPENAI_API_KEY:
        raise RuntimeError("OpenAI API key not configured")

    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(m for m in history if m.get("role") in ("user", "assistant"))

    return await _chat_completion(messages, model=OPENAI_CHAT_MODEL, temperature=0.7, max_tokens=1024)
