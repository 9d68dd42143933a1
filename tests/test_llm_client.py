import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from sommelier.errors import ConfigurationError
from sommelier.llm_client import (
    CHAT_MAX_TOKENS,
    CHAT_TEMPERATURE,
    SOMMELIER_SYSTEM_PROMPT,
    LLMClient,
    decode_audio,
)


@pytest.fixture
def openai_client():
    """Stand-in for AsyncOpenAI with the three endpoints the server uses."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Try a Rioja."))]
    ))
    client.audio.speech.create = AsyncMock(return_value=SimpleNamespace(content=b"mp3-bytes"))
    client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="red wine please"))
    client.close = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_chat_builds_sommelier_conversation(config, openai_client):
    llm = LLMClient(config, client=openai_client)
    history = [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello!"}]

    reply = await llm.chat("Something for steak?", history)

    assert reply == "Try a Rioja."
    kwargs = openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4"
    assert kwargs["temperature"] == CHAT_TEMPERATURE
    assert kwargs["max_tokens"] == CHAT_MAX_TOKENS
    assert kwargs["messages"] == [
        {"role": "system", "content": SOMMELIER_SYSTEM_PROMPT},
        *history,
        {"role": "user", "content": "Something for steak?"},
    ]


@pytest.mark.asyncio
async def test_synthesize(config, openai_client):
    audio = await LLMClient(config, client=openai_client).synthesize("Cheers")

    assert audio == b"mp3-bytes"
    openai_client.audio.speech.create.assert_awaited_once_with(
        model="tts-1", voice="alloy", input="Cheers", response_format="mp3",
    )


@pytest.mark.asyncio
async def test_transcribe_decodes_data_url(config, openai_client):
    raw = b"\x1aE\xdf\xa3webm"
    data_url = "data:audio/webm;base64," + base64.b64encode(raw).decode()

    text = await LLMClient(config, client=openai_client).transcribe(data_url)

    assert text == "red wine please"
    kwargs = openai_client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["file"] == ("audio.webm", raw, "audio/webm")


def test_system_prompt_keeps_brand_name():
    assert SOMMELIER_SYSTEM_PROMPT.startswith(
        "You are a sophisticated sommelier assistant for Sommalier Gent, a wine recommendation service."
    )


def test_decode_audio_rejects_garbage():
    assert decode_audio(base64.b64encode(b"abc").decode()) == b"abc"
    with pytest.raises(ValueError):
        decode_audio("not base64!")


@pytest.mark.asyncio
async def test_missing_api_key(config):
    config.openai_api_key = ""
    llm = LLMClient(config)

    assert llm.client is None
    with pytest.raises(ConfigurationError, match="OpenAI API key not configured"):
        await llm.chat("hello")
    with pytest.raises(ConfigurationError):
        await llm.synthesize("hello")
    with pytest.raises(ConfigurationError):
        await llm.transcribe("aGVsbG8=")
    await llm.close()


@pytest.mark.asyncio
async def test_close(config, openai_client):
    await LLMClient(config, client=openai_client).close()

    openai_client.close.assert_awaited_once()
