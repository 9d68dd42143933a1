"""Sommelier server configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PUBLIC_DIR = str(Path(__file__).parent / "public")


@dataclass
class Config:
    """Configuration loaded from environment variables."""

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    public_dir: str = field(default_factory=lambda: os.getenv("PUBLIC_DIR", DEFAULT_PUBLIC_DIR))

    # OpenAI
    openai_api_key: str = field(default_factory=lambda: os.getenv("CHATGPT_API_KEY", ""))
    chat_model: str = field(default_factory=lambda: os.getenv("OPENAI_CHAT_MODEL", "gpt-4"))
    tts_model: str = field(default_factory=lambda: os.getenv("OPENAI_TTS_MODEL", "tts-1"))
    tts_voice: str = field(default_factory=lambda: os.getenv("OPENAI_TTS_VOICE", "alloy"))
    transcribe_model: str = field(default_factory=lambda: os.getenv("OPENAI_TRANSCRIBE_MODEL", "whisper-1"))

    # Salesforce / Agentforce
    salesforce_domain: str = field(default_factory=lambda:
        os.getenv("SALESFORCE_DOMAIN", "https://login.salesforce.com").rstrip("/"))
    consumer_key: str = field(default_factory=lambda: os.getenv("SALESFORCE_CONSUMER_KEY", ""))
    consumer_secret: str = field(default_factory=lambda: os.getenv("SALESFORCE_CONSUMER_SECRET", ""))
    api_version: str = field(default_factory=lambda: os.getenv("SALESFORCE_API_VERSION", "v60.0"))
    agent_id: str = field(default_factory=lambda: os.getenv("AGENTFORCE_AGENT_ID", "0XxHu000000TNPtKAO"))
    agent_timeout: float = field(default_factory=lambda: float(os.getenv("AGENT_TIMEOUT", "30")))

    @property
    def salesforce_configured(self) -> bool:
        """Whether the OAuth client-credentials pair is present."""
        return bool(self.consumer_key and self.consumer_secret)

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def services_base_url(self) -> str:
        """Versioned REST root of the Salesforce org."""
        return f"{self.salesforce_domain}/services/data/{self.api_version}"
