"""
Reply extraction for agent platform responses.

The agent platform answers in several shapes depending on which endpoint
handled the message. Each extractor looks for one shape and returns the
reply text or None; REPLY_EXTRACTORS is applied in order and the first
string found wins.

Immediate response shapes:

    {"output": {"text": "..."}}
    {"response": "..."} / {"message": "..."} / {"text": "..."}

Polled message list (GET on the message endpoint):

    [{"Sender__c": "Agent", "Message__c": "...", "CreatedDate": "..."}, ...]
    {"messages": [{"role": "assistant", "content": "...", "createdAt": "..."}]}
"""

from typing import Any, Callable, List, Optional, Tuple

from .models import AgentMessage, Sender

Extractor = Callable[[Any], Optional[str]]

SENDER_FIELDS = ("Sender__c", "sender", "role", "type")
TEXT_FIELDS = ("Message__c", "text", "message", "content")
TIMESTAMP_FIELDS = ("CreatedDate", "createdAt", "created_at", "timestamp")
LIST_FIELDS = ("messages", "records")

AGENT_SENDERS = {"agent", "bot", "chatbot", "assistant", "inform"}


def _string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def extract_output_text(body: Any) -> Optional[str]:
    """`output.text`"""
    if not isinstance(body, dict):
        return None
    output = body.get("output")
    if isinstance(output, dict):
        return _string(output.get("text"))
    return None


def extract_top_level_text(body: Any) -> Optional[str]:
    """`response`, then `message`, then `text`."""
    if not isinstance(body, dict):
        return None
    for key in ("response", "message", "text"):
        text = _string(body.get(key))
        if text:
            return text
    return None


REPLY_EXTRACTORS: Tuple[Extractor, ...] = (
    extract_output_text,
    extract_top_level_text,
)


def extract_reply(body: Any, extractors: Tuple[Extractor, ...] = REPLY_EXTRACTORS) -> Optional[str]:
    """Apply extractors in order; first non-empty string wins."""
    for extractor in extractors:
        text = extractor(body)
        if text:
            return text
    return None


# =============================================================================
# Polled message lists
# =============================================================================

def _first_field(record: dict, names: Tuple[str, ...]) -> Any:
    for name in names:
        value = record.get(name)
        if value not in (None, ""):
            return value
    return None


def parse_message(record: Any) -> Optional[AgentMessage]:
    """Normalize one message record, whatever its field naming."""
    if not isinstance(record, dict):
        return None

    text = _string(_first_field(record, TEXT_FIELDS)) or extract_output_text(record)
    if not text:
        return None

    author = _first_field(record, SENDER_FIELDS)
    sender = Sender.AGENT if str(author or "").lower() in AGENT_SENDERS else Sender.USER
    timestamp = _first_field(record, TIMESTAMP_FIELDS)

    return AgentMessage(
        text=text,
        sender=sender,
        timestamp="" if timestamp is None else str(timestamp),
    )


def _message_records(body: Any) -> List[Any]:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in LIST_FIELDS:
            records = body.get(key)
            if isinstance(records, list):
                return records
    return []


def latest_agent_message(body: Any) -> Optional[str]:
    """Newest agent-authored message text in a polled message list."""
    messages = [m for m in (parse_message(r) for r in _message_records(body)) if m]
    messages.sort(key=lambda m: m.timestamp, reverse=True)

    for message in messages:
        if message.sender == Sender.AGENT:
            return message.text
    return None
