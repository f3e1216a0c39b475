"""Unit tests for the OpenAI completion client."""
import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from openai import APIConnectionError

from receptionist.core.exceptions import CompletionError, CompletionTimeout
from receptionist.services.agent.completion import OpenAICompletionClient
from receptionist.services.call_session.models import Turn


def make_client(create):
    openai_client = Mock()
    openai_client.chat.completions.create = create
    return OpenAICompletionClient(api_key="test-key", model="gpt-4o-mini", client=openai_client)


def completion(content):
    return Mock(choices=[Mock(message=Mock(content=content))])


class TestOpenAICompletionClient:
    """Test completion calls and failure mapping."""

    @pytest.mark.asyncio
    async def test_complete(self):
        create = AsyncMock(return_value=completion("We open at eight."))
        client = make_client(create)

        reply = await client.complete("Be nice.", [Turn(role="user", text="When do you open?")])

        assert reply == "We open at eight."
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be nice."},
            {"role": "user", "content": "When do you open?"},
        ]

    @pytest.mark.asyncio
    async def test_deadline(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        with pytest.raises(CompletionTimeout):
            await make_client(slow).complete("Be nice.", [], timeout=0.01)

    @pytest.mark.asyncio
    async def test_remote_error(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        create = AsyncMock(side_effect=APIConnectionError(request=request))

        with pytest.raises(CompletionError):
            await make_client(create).complete("Be nice.", [])

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        create = AsyncMock(return_value=completion(None))

        with pytest.raises(CompletionError):
            await make_client(create).complete("Be nice.", [])
