"""
Sommelier Voice Server

Voice chat backend relaying the browser UI to OpenAI and to a
Salesforce Agentforce agent.

Components:
- api: JSON endpoints for chat, agent relay, speech and transcription
- agent_client: Agentforce session negotiation, message relay, fallback chain
- token_store: OAuth client-credentials token acquisition and caching
- extractors: Reply extraction across agent response shapes
- llm_client: OpenAI chat, speech and transcription client
"""

from .main import app, create_app

__version__ = "1.0.0"
