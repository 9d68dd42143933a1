"""Agentforce session negotiation, message relay and endpoint fallback."""

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .config import Config
from .errors import OrchestrationError, RelayError
from .extractors import extract_reply, latest_agent_message
from .models import AgentReply
from .token_store import TokenAcquirer, TokenStore

logger = logging.getLogger(__name__)

# Wait before reading the message list back when the send returned no reply.
POLL_DELAY_SECONDS = 3.0

CONFIGURATION_HINT = (
    "Check the Agentforce agent ID, connected app and API access configuration"
)

Sleep = Callable[[float], Awaitable[Any]]


def generate_session_key() -> str:
    """Opaque external session key, e.g. session-1718000000000-k3j9x0a2b."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"session-{int(time.time() * 1000)}-{suffix}"


def path_segment(value: Any) -> str:
    """Escape a caller-influenced value so it stays inside one URL path segment."""
    return quote(str(value), safe="")


@dataclass(frozen=True)
class MessageStrategy:
    """One message endpoint shape: where to post and what to send."""
    name: str
    url_template: str
    build_payload: Callable[[str, Optional[str]], Dict[str, Any]]

    def url(self, base_url: str, agent_id: str, session_id: Optional[str]) -> str:
        return self.url_template.format(
            base=base_url,
            agent_id=path_segment(agent_id),
            session_id=path_segment(session_id),
        )


def _input_payload(text: str, session_id: Optional[str]) -> Dict[str, Any]:
    return {"input": {"text": text}}


def _flat_payload(text: str, session_id: Optional[str]) -> Dict[str, Any]:
    return {"message": text, "sessionId": session_id}


PRIMARY_STRATEGY = MessageStrategy(
    name="primary",
    url_template="{base}/einstein/ai-agent/agents/{agent_id}/sessions/{session_id}/messages",
    build_payload=_input_payload,
)

CHATBOT_STRATEGY = MessageStrategy(
    name="chatbot",
    url_template="{base}/connect/chatbot/agents/{agent_id}/sessions/{session_id}/messages",
    build_payload=_input_payload,
)

CHAT_STRATEGY = MessageStrategy(
    name="chat",
    url_template="{base}/einstein/ai-agent/agents/{agent_id}/chat",
    build_payload=_flat_payload,
)

FALLBACK_CHAIN: Sequence[MessageStrategy] = (PRIMARY_STRATEGY, CHATBOT_STRATEGY, CHAT_STRATEGY)


def _auth_headers(access_token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }


class SessionNegotiator:
    """Creates an agent session unless the caller already holds one."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url

    async def ensure_session(
        self,
        access_token: str,
        agent_id: str,
        existing_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Return the session id to send messages to.

        A caller-supplied id is reused as is. A failed creation is logged
        and yields None; sending is still attempted.
        """
        if existing_id:
            return existing_id

        session_key = generate_session_key()
        payload = {
            "externalSessionKey": session_key,
            "bypassUser": True,
        }

        try:
            resp = await self.client.post(
                f"{self.base_url}/einstein/ai-agent/agents/{path_segment(agent_id)}/sessions",
                json=payload,
                headers=_auth_headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Agentforce session creation failed: {e}")
            return None

        if not resp.is_success:
            logger.warning(f"Agentforce session creation returned {resp.status_code}: {resp.text}")
            return None

        data = _json_or_none(resp)
        session_id = None
        if isinstance(data, dict):
            session_id = data.get("sessionId") or data.get("id")
        session_id = session_id or session_key
        logger.info(f"Created Agentforce session {session_id}")
        return session_id


class MessageRelay:
    """
    Sends a user message and locates the agent's reply.

    The reply is read from the send response when present. Otherwise the
    relay waits POLL_DELAY_SECONDS and reads the message list back once.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        poll_delay: float = POLL_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.base_url = base_url
        self.poll_delay = poll_delay
        self.sleep = sleep

    async def send_and_await_reply(
        self,
        access_token: str,
        agent_id: str,
        session_id: Optional[str],
        text: str,
        strategy: MessageStrategy = PRIMARY_STRATEGY,
    ) -> str:
        url = strategy.url(self.base_url, agent_id, session_id)
        headers = _auth_headers(access_token)

        try:
            resp = await self.client.post(
                url,
                json=strategy.build_payload(text, session_id),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise RelayError(strategy.name, f"request failed: {e}") from e

        if not resp.is_success:
            logger.warning(f"Agentforce {strategy.name} send returned {resp.status_code}: {resp.text}")
            raise RelayError(strategy.name, "send rejected", resp.status_code, resp.text)

        reply = extract_reply(_json_or_none(resp))
        if reply:
            return reply

        logger.info(f"No immediate reply from {strategy.name} endpoint, polling in {self.poll_delay}s")
        await self.sleep(self.poll_delay)

        try:
            poll = await self.client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise RelayError(strategy.name, f"poll failed: {e}") from e

        if not poll.is_success:
            logger.warning(f"Agentforce {strategy.name} poll returned {poll.status_code}: {poll.text}")
            raise RelayError(strategy.name, "poll rejected", poll.status_code, poll.text)

        reply = latest_agent_message(_json_or_none(poll))
        if reply:
            return reply

        raise RelayError(strategy.name, "no agent reply found in response")


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        logger.debug(f"Non-JSON response body: {resp.text[:200]}")
        return None


class AgentforceOrchestrator:
    """
    Token, session and message flow for one user turn.

    Handles:
    - Bearer token reuse and refresh via the injected TokenStore
    - Session creation when the caller has no conversation id
    - Message send over each strategy of the fallback chain in order
    """

    def __init__(
        self,
        config: Config,
        client: httpx.AsyncClient,
        token_store: Optional[TokenStore] = None,
        strategies: Sequence[MessageStrategy] = FALLBACK_CHAIN,
        poll_delay: float = POLL_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.client = client
        self.token_store = token_store or TokenStore(
            TokenAcquirer(client),
            config.consumer_key,
            config.consumer_secret,
            config.salesforce_domain,
        )
        self.negotiator = SessionNegotiator(client, config.services_base_url)
        self.relay = MessageRelay(client, config.services_base_url, poll_delay=poll_delay, sleep=sleep)
        self.strategies = list(strategies)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def chat(self, text: str, conversation_id: Optional[str] = None) -> AgentReply:
        """
        Send one user message and return the agent's reply.

        ConfigurationError and AuthError from the token step propagate
        unchanged. OrchestrationError is raised once every strategy failed.
        """
        token = await self.token_store.get_token()
        agent_id = self.config.agent_id

        session_id = await self.negotiator.ensure_session(token.value, agent_id, conversation_id)

        failures: List[RelayError] = []
        for strategy in self.strategies:
            try:
                reply = await self.relay.send_and_await_reply(
                    token.value, agent_id, session_id, text, strategy=strategy,
                )
            except RelayError as e:
                logger.warning(f"Agentforce strategy '{strategy.name}' failed: {e}")
                failures.append(e)
                continue

            logger.info(f"Agentforce reply via {strategy.name} for session {session_id}")
            return AgentReply(text=reply, session_id=session_id, strategy=strategy.name)

        logger.error(f"All Agentforce strategies failed for session {session_id}")
        raise OrchestrationError(CONFIGURATION_HINT, failures)
