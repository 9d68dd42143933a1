"""Data models for the sommelier server."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


# ============================================================================
# Request Models
# ============================================================================
#
# Required fields are Optional here so missing values reach the handlers,
# which answer 400 with the same error envelope as every other failure.

class ChatMessage(BaseModel):
    """OpenAI chat message format."""
    role: str
    content: str


class VoiceChatRequest(BaseModel):
    message: Optional[str] = None
    history: Optional[List[ChatMessage]] = None


class AgentChatRequest(BaseModel):
    message: Optional[str] = None
    conversationId: Optional[str] = None


class SpeechRequest(BaseModel):
    text: Optional[str] = None


class TranscriptionRequest(BaseModel):
    audio: Optional[str] = None


# ============================================================================
# Agent Platform Models
# ============================================================================

class Sender(str, Enum):
    """Author of a message in an agent conversation."""
    USER = "user"
    AGENT = "agent"


@dataclass
class AgentMessage:
    """A single message read back from the agent platform."""
    text: str
    sender: Sender
    timestamp: str = ""


@dataclass
class AgentReply:
    """Reply text plus the conversation id to hand back to the caller."""
    text: str
    session_id: Optional[str]
    strategy: str
    received_at: datetime = field(default_factory=datetime.now)
