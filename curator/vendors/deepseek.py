"""Client utilities for the DeepSeek chat completion API."""

import logging
from typing import Any, Dict

import requests

from curator.core.config import ConfigError

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


class GenerationError(RuntimeError):
    """Raised when the completion endpoint returns a non-successful response."""


def chat_completion(
    system_prompt: str,
    user_prompt: str,
    *,
    api_key: str,
    api_url: str,
    model: str = "deepseek-chat",
    temperature: float = 0.3,
    timeout: int = 60,
) -> str:
    """Run one completion and return the first choice's message content."""
    if not api_key:
        raise ConfigError("DEEPSEEK_API_KEY is required for chat completions")

    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
    }
    headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}

    logger.debug("Calling chat completion model=%s", model)
    response = _SESSION.post(api_url, json=body, headers=headers, timeout=timeout)
    if not (200 <= response.status_code < 300):
        message = _error_message(response)
        logger.error("chat_completion failed: status=%s, error_message=%s", response.status_code, message)
        raise GenerationError(f"DeepSeek API error: {response.status_code} {message}")

    payload = response.json()
    choices = payload.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return message.get("content") or ""


def _error_message(response: Any) -> str:
    try:
        data: Dict[str, Any] = response.json()
    except ValueError:
        data = {}
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return getattr(response, "reason", "") or ""
