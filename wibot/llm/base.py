"""Answer service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AnswerProvider(ABC):
    """Abstract question-answering service used by commands and the scheduler."""

    @abstractmethod
    async def ask(self, question: str) -> str:
        """Return the model's answer to ``question``.

        Raises:
            XaiServiceError: when the service is unreachable or the reply
                cannot be parsed.
        """
