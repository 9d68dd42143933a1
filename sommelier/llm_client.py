"""OpenAI chat, speech and transcription client."""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from .config import Config
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SOMMELIER_SYSTEM_PROMPT = (
    "You are a sophisticated sommelier assistant for Sommalier Gent, a wine "
    "recommendation service. You help customers find the perfect wine based on "
    "their preferences, food pairings, and occasions. Be knowledgeable, elegant, "
    "and conversational. Keep responses concise for voice interactions."
)

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 300


def decode_audio(audio: str) -> bytes:
    """Decode base64 audio, with or without a data: URL prefix."""
    if audio.startswith("data:") and "," in audio:
        audio = audio.split(",", 1)[1]
    try:
        return base64.b64decode(audio, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 audio: {e}") from e


class LLMClient:
    """
    Async client for the OpenAI API.

    Handles:
    - Sommelier chat completions over caller-supplied history
    - Text-to-speech (mp3)
    - Speech-to-text from base64 audio

    The SDK client is only built when an API key is configured; calls
    without one raise ConfigurationError.
    """

    def __init__(self, config: Config, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.client = client
        if self.client is None and config.openai_api_key:
            self.client = AsyncOpenAI(api_key=config.openai_api_key)
        if self.client is None:
            logger.warning("OpenAI API key not configured. Voice chat, TTS and transcription will fail.")

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise ConfigurationError("OpenAI API key not configured")
        return self.client

    async def close(self):
        """Close HTTP client."""
        if self.client is not None:
            await self.client.close()

    async def chat(self, message: str, history: Optional[List[Dict[str, Any]]] = None) -> str:
        """Answer one user message in the sommelier persona."""
        client = self._require_client()

        messages = [{"role": "system", "content": SOMMELIER_SYSTEM_PROMPT}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": message})

        logger.info(f"Chat completion: model={self.config.chat_model}, messages={len(messages)}")

        completion = await client.chat.completions.create(
            model=self.config.chat_model,
            messages=messages,
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )
        return completion.choices[0].message.content or ""

    async def synthesize(self, text: str) -> bytes:
        """Render text to mp3 audio."""
        client = self._require_client()

        response = await client.audio.speech.create(
            model=self.config.tts_model,
            voice=self.config.tts_voice,
            input=text,
            response_format="mp3",
        )
        return response.content

    async def transcribe(self, audio_b64: str) -> str:
        """Transcribe base64-encoded browser audio."""
        client = self._require_client()

        audio = decode_audio(audio_b64)
        logger.info(f"Transcribing {len(audio)} bytes of audio")

        transcription = await client.audio.transcriptions.create(
            model=self.config.transcribe_model,
            file=("audio.webm", audio, "audio/webm"),
        )
        return transcription.text
