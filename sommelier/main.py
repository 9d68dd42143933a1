"""
Sommelier Voice Server - Main Entry Point

Voice chat backend for the Sommalier Gent wine assistant. Proxies the
browser voice UI to OpenAI (chat, speech, transcription) and to a
Salesforce Agentforce agent, and serves the UI's static pages.

Usage:
    python -m sommelier.main

Environment Variables:
    HOST                        - Server host (default: 0.0.0.0)
    PORT                        - Server port (default: 3000)
    CHATGPT_API_KEY             - OpenAI API key
    SALESFORCE_DOMAIN           - Salesforce org URL
    SALESFORCE_CONSUMER_KEY     - Connected app client id
    SALESFORCE_CONSUMER_SECRET  - Connected app client secret
    AGENTFORCE_AGENT_ID         - Agentforce agent id
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from .agent_client import AgentforceOrchestrator
from .api import router as api_router, validation_error_handler
from .config import Config
from .llm_client import LLMClient

load_dotenv()

logger = logging.getLogger(__name__)

# Page routes and the file each one serves from the public directory.
PAGES = {
    "/": "index.html",
    "/voice": "voice.html",
    "/voice2": "voice2.html",
    "/voice3": "voice3.html",
}


def configure_logging(level: str = "INFO"):
    """Send all logs to stdout in one format."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    config: Config = app.state.config
    configure_logging(config.log_level)

    # Startup
    logger.info("=" * 60)
    logger.info("Sommelier Voice Server Starting")
    logger.info("=" * 60)

    app.state.llm = LLMClient(config)
    app.state.agentforce = AgentforceOrchestrator(
        config,
        httpx.AsyncClient(timeout=config.agent_timeout),
    )

    if not config.salesforce_configured:
        logger.warning("SALESFORCE_CONSUMER_KEY/SECRET not set - /api/agentforce-chat will fail")

    logger.info(f"OpenAI configured: {config.openai_configured} (chat model: {config.chat_model})")
    logger.info(f"Salesforce domain: {config.salesforce_domain}")
    logger.info(f"Agentforce agent: {config.agent_id}")
    logger.info(f"Static pages: {config.public_dir}")
    logger.info("-" * 60)
    logger.info(f"Server ready at http://{config.host}:{config.port}")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.agentforce.close()
    await app.state.llm.close()
    logger.info("Shutdown complete")


def _page_route(public_dir: Path, filename: str):
    async def page():
        path = public_dir / filename
        if not path.is_file():
            raise HTTPException(status_code=404, detail=f"{filename} not found")
        return FileResponse(path, media_type="text/html")

    page.__name__ = f"page_{filename.split('.')[0]}"
    return page


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the FastAPI application for the given configuration."""
    config = config or Config()

    app = FastAPI(
        title="Sommelier Voice Server",
        description=(
            "Voice chat backend for the Sommalier Gent wine assistant. "
            "Relays chat to OpenAI and to a Salesforce Agentforce agent."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "openai_configured": config.openai_configured,
            "salesforce_configured": config.salesforce_configured,
            "agent_id": config.agent_id,
        }

    public_dir = Path(config.public_dir)
    for path, filename in PAGES.items():
        app.add_api_route(path, _page_route(public_dir, filename), methods=["GET"],
                          include_in_schema=False)

    # Remaining assets (scripts, styles) are served as-is
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir), name="static")
    else:
        logger.warning(f"Public directory {public_dir} not found - static assets disabled")

    return app


app = create_app()


def main():
    """Run the sommelier server."""
    config: Config = app.state.config
    uvicorn.run(
        "sommelier.main:app",
        host=config.host,
        port=config.port,
        reload=False,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
