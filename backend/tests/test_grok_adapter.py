"""Unit tests for GrokAdapter."""

from unittest.mock import Mock, patch

import pytest

from adapter.grok import (
    GrokAdapter,
    PrecedingTurn,
    build_gap_filling_prompt,
    DEFAULT_MODEL,
)
from errors import SynthesisError


@pytest.fixture
def mock_client():
    client = Mock()
    chat = Mock()
    client.chat.create.return_value = chat
    chat.parse.return_value = (None, PrecedingTurn(message="How was your weekend?"))
    return client


class TestGapFillingPrompt:
    """Test the instruction sent to Grok."""

    def test_contains_post_text(self):
        prompt = build_gap_filling_prompt("It was amazing, went hiking!")
        assert "- Speaker 2:\nIt was amazing, went hiking!" in prompt

    def test_requests_json_message_field(self):
        prompt = build_gap_filling_prompt("hi")
        assert '"message": "Your response here"' in prompt
        assert "%%%???%%%" in prompt


class TestGrokAdapter:
    """Test the GrokAdapter class."""

    def test_adapter_init_builds_client(self):
        with patch('adapter.grok.Client') as mock_client_class:
            client = Mock()
            mock_client_class.return_value = client

            adapter = GrokAdapter(api_key="test_key")

            assert adapter._client == client
            assert adapter.model == DEFAULT_MODEL
            mock_client_class.assert_called_once_with(api_key='test_key')

    def test_generate_prompt(self, mock_client):
        adapter = GrokAdapter(api_key="test_key", model="grok-test", client=mock_client)

        result = adapter.generate_prompt("It was amazing, went hiking!")

        assert result == "How was your weekend?"
        mock_client.chat.create.assert_called_once_with(model="grok-test", max_tokens=300, temperature=0.5)
        chat = mock_client.chat.create.return_value
        chat.parse.assert_called_once_with(PrecedingTurn)
        chat.append.assert_called_once()

    def test_api_failure_raises_synthesis_error(self, mock_client):
        mock_client.chat.create.return_value.parse.side_effect = RuntimeError("503 unavailable")
        adapter = GrokAdapter(api_key="test_key", client=mock_client)

        with pytest.raises(SynthesisError) as exc_info:
            adapter.generate_prompt("hello")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "503 unavailable" in str(exc_info.value)

    def test_unparsable_response_raises_synthesis_error(self, mock_client):
        mock_client.chat.create.return_value.parse.return_value = (None, None)
        adapter = GrokAdapter(api_key="test_key", client=mock_client)

        with pytest.raises(SynthesisError):
            adapter.generate_prompt("hello")

    @pytest.mark.asyncio
    async def test_generate_prompt_async(self, mock_client):
        adapter = GrokAdapter(api_key="test_key", client=mock_client)

        result = await adapter.generate_prompt_async("hello")

        assert result == "How was your weekend?"

    @pytest.mark.asyncio
    async def test_generate_prompt_async_failure(self, mock_client):
        mock_client.chat.create.side_effect = RuntimeError("boom")
        adapter = GrokAdapter(api_key="test_key", client=mock_client)

        with pytest.raises(SynthesisError):
            await adapter.generate_prompt_async("hello")
