"""Remote completion client."""
import asyncio
import logging
import time
from typing import List, Optional, Protocol, Sequence

from openai import APITimeoutError, AsyncOpenAI, OpenAIError

from receptionist.core.exceptions import CompletionError, CompletionTimeout
from receptionist.services.call_session.models import Turn

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Text in, text out. Raises CompletionTimeout or CompletionError."""

    async def complete(
        self, instructions: str, turns: Sequence[Turn], timeout: Optional[float] = None
    ) -> str: ...


class OpenAICompletionClient:
    """Completion client backed by the OpenAI chat completions API.

    Never retries: a timeout is surfaced to the caller so the call can
    speak a filler phrase instead of silently waiting again.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 300,
        default_timeout: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.default_timeout = default_timeout

    async def complete(
        self, instructions: str, turns: Sequence[Turn], timeout: Optional[float] = None
    ) -> str:
        deadline = timeout if timeout is not None else self.default_timeout
        messages: List[dict] = [{"role": "system", "content": instructions}]
        messages.extend({"role": turn.role, "content": turn.text} for turn in turns)

        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=0.7,
                ),
                timeout=deadline,
            )
        except (asyncio.TimeoutError, APITimeoutError) as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.error(f"[COMPLETION] Timeout after {elapsed_ms:.0f}ms")
            raise CompletionTimeout(f"Completion exceeded {deadline}s") from e
        except OpenAIError as e:
            logger.error(f"[COMPLETION] Error: {type(e).__name__}: {str(e)}")
            raise CompletionError(str(e)) from e

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(f"[COMPLETION] Response received in {elapsed_ms:.0f}ms")

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise CompletionError("Completion returned no content")
        return content
