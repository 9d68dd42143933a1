"""
Voice chat API endpoints.

Provides the JSON endpoints the browser voice UI calls:
- /api/voice-chat: OpenAI sommelier chat
- /api/agentforce-chat: Salesforce Agentforce agent relay
- /api/tts, /api/transcribe: speech in and out

Every failure is answered with {error, details, note?}; 400 when a
required field is missing or the body does not parse, 500 otherwise.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from .agent_client import CONFIGURATION_HINT, AgentforceOrchestrator
from .errors import ConfigurationError, OrchestrationError
from .llm_client import LLMClient
from .models import AgentChatRequest, SpeechRequest, TranscriptionRequest, VoiceChatRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

CREDENTIALS_NOTE = (
    "Set SALESFORCE_CONSUMER_KEY and SALESFORCE_CONSUMER_SECRET to the "
    "connected app's OAuth client credentials"
)


def get_llm(request: Request) -> LLMClient:
    return request.app.state.llm


def get_agentforce(request: Request) -> AgentforceOrchestrator:
    return request.app.state.agentforce


def error_response(status_code: int, error: str, details: Optional[str] = None,
                   note: Optional[str] = None) -> JSONResponse:
    """Build the uniform error envelope."""
    content = {"error": error}
    if details is not None:
        content["details"] = details
    if note is not None:
        content["note"] = note
    return JSONResponse(status_code=status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer unparseable or mistyped bodies with the error envelope."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    details = "; ".join(problems)
    logger.warning(f"Rejected request to {request.url.path}: {details}")
    return error_response(400, "Invalid request body", details)


@router.post("/voice-chat")
async def voice_chat(body: VoiceChatRequest, llm: LLMClient = Depends(get_llm)):
    """Answer a message with the sommelier persona, given prior history."""
    if not body.message:
        return error_response(400, "Message is required")

    try:
        history = [m.model_dump() for m in body.history or []]
        response = await llm.chat(body.message, history)
    except Exception as e:
        logger.error(f"OpenAI API error: {e}", exc_info=True)
        return error_response(500, "Failed to process request", str(e))

    return {"response": response}


@router.post("/agentforce-chat")
async def agentforce_chat(
    body: AgentChatRequest,
    agentforce: AgentforceOrchestrator = Depends(get_agentforce),
):
    """
    Relay a message to the Agentforce agent.

    The conversationId returned must be sent back with the next message to
    stay in the same agent session.
    """
    if not body.message:
        return error_response(400, "Message is required")

    try:
        reply = await agentforce.chat(body.message, body.conversationId)
    except ConfigurationError as e:
        logger.error(f"Agentforce not configured: {e}")
        return error_response(500, "Salesforce credentials not configured", str(e), CREDENTIALS_NOTE)
    except OrchestrationError as e:
        logger.error(f"Agentforce orchestration failed: {e}")
        return error_response(500, "Failed to get response from Agentforce", str(e), e.hint)
    except Exception as e:
        logger.error(f"Agentforce error: {e}", exc_info=True)
        return error_response(500, "Failed to get response from Agentforce", str(e), CONFIGURATION_HINT)

    return {"response": reply.text, "conversationId": reply.session_id}


@router.post("/tts")
async def text_to_speech(body: SpeechRequest, llm: LLMClient = Depends(get_llm)):
    """Synthesize speech for the given text as audio/mpeg."""
    if not body.text:
        return error_response(400, "Text is required")

    try:
        audio = await llm.synthesize(body.text)
    except Exception as e:
        logger.error(f"TTS error: {e}", exc_info=True)
        return error_response(500, "Failed to generate speech", str(e))

    return Response(content=audio, media_type="audio/mpeg")


@router.post("/transcribe")
async def transcribe(body: TranscriptionRequest, llm: LLMClient = Depends(get_llm)):
    """Transcribe base64 audio recorded in the browser."""
    if not body.audio:
        return error_response(400, "Audio is required")

    try:
        text = await llm.transcribe(body.audio)
    except Exception as e:
        logger.error(f"Transcription error: {e}", exc_info=True)
        return error_response(500, "Failed to transcribe audio", str(e))

    return {"text": text}
