"""X.AI implementation of AnswerProvider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wibot.config import Settings
from wibot.errors import XaiServiceError
from wibot.llm.base import AnswerProvider

_LOGGER = logging.getLogger(__name__)

NO_RESPONSE = "No response received"

SYSTEM_PROMPT = """You are a helpful assistant. When formatting responses:
- Use *word* for bold text (surround text with single asterisks)
- Start list items with - or *
- Keep responses clear and structured
- Separate paragraphs with blank lines

Example format:
Here are the prices:
- *Bitcoin (BTC)*: The price is $50,000
- *Ethereum (ETH)*: The price is $3,000"""


class XaiProvider(AnswerProvider):
    """Answer provider using X.AI's OpenAI-compatible chat endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    async def ask(self, question: str) -> str:
        payload: dict[str, Any] = {
            "model": self._settings.xai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": question},
            ],
            "stream": False,
            "temperature": self._settings.xai_temperature,
        }

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.xai_base_url,
                timeout=timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.xai_api_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise XaiServiceError(f"X.AI request failed: {exc}") from exc
        except ValueError as exc:
            raise XaiServiceError("X.AI returned a non-JSON body") from exc

        content = _extract_content(data)
        _LOGGER.info("X.AI response: content=%r", content[:200])
        return content


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return NO_RESPONSE
    return content if isinstance(content, str) else NO_RESPONSE
