"""Chat-completion client used by every stage and agent."""

import json
import re
from typing import Any, Dict, Optional, Union

import httpx

from .config import (
    OPENAI_API_KEY,
    OPENAI_API_URL,
    COMPLETION_MODEL,
    COMPLETION_TEMPERATURE,
    COMPLETION_MAX_TOKENS,
    COMPLETION_TIMEOUT,
)
from .errors import ConfigurationError, UpstreamError
from .log import get_logger

logger = get_logger(__name__)


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = re.sub(r"^```[a-zA-Z]*\s*", "", stripped)
        stripped = re.sub(r"\s*```$", "", stripped)
    return stripped.strip()


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object in ``text``, tolerating fences and trailing commas."""
    if not text:
        return None
    text = _strip_code_fence(text)
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for idx in range(start, len(text)):
        char = text[idx]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                payload = text[start:idx + 1]
                for candidate in (payload, re.sub(r",\s*([\]}])", r"\1", payload)):
                    try:
                        return json.loads(candidate)
                    except json.JSONDecodeError:
                        continue
                return None
    return None


def to_json(value: Any) -> str:
    """Pretty JSON for embedding structured context in a prompt."""
    return json.dumps(value, indent=2, default=str)


async def call_llm(
    system_prompt: str,
    user_prompt: str,
    structured: bool = True,
) -> Union[Dict[str, Any], str]:
    """
    Run one chat completion.

    Args:
        system_prompt: System instruction
        user_prompt: User content
        structured: Request a JSON object and return it parsed

    Returns:
        Parsed JSON object when ``structured`` is true, otherwise the raw text

    Raises:
        ConfigurationError: No completion credential is configured
        UpstreamError: Non-success status or a body that is not the requested shape
    """
    if not OPENAI_API_KEY:
        raise ConfigurationError("OPENAI_API_KEY not configured")

    headers = {
        "Authorization": f"Bearer {OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }
    payload: Dict[str, Any] = {
        "model": COMPLETION_MODEL,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": COMPLETION_TEMPERATURE,
        "max_tokens": COMPLETION_MAX_TOKENS,
    }
    if structured:
        payload["response_format"] = {"type": "json_object"}

    try:
        async with httpx.AsyncClient(timeout=COMPLETION_TIMEOUT) as client:
            response = await client.post(OPENAI_API_URL, headers=headers, json=payload)
    except httpx.HTTPError as e:
        raise UpstreamError(f"Completion request failed: {e}") from e

    if response.status_code >= 400:
        raise UpstreamError(
            f"Completion API error ({response.status_code}): {response.text[:500]}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise UpstreamError(f"Invalid completion response: {e}", status_code=response.status_code) from e

    if content is None:
        raise UpstreamError("Completion response had no content", status_code=response.status_code)

    if not structured:
        return content

    parsed = extract_json(content)
    if parsed is None:
        logger.error(f"Completion content is not a JSON object: {content[:200]}")
        raise UpstreamError("Completion response is not a JSON object", status_code=response.status_code)
    return parsed
