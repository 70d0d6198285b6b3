#!/usr/bin/env python3
"""
Leasing Voice Agent - Webhook API Server

Receives conversation webhooks from the voice platform and streams the
agent's replies back for speech synthesis.

Usage:
    python server.py [--host HOST] [--port PORT]

Example:
    python server.py --host 0.0.0.0 --port 8000
"""

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, StreamingResponse
from langchain_groq import ChatGroq
from pydantic import ValidationError

from src.leasing_agent import (
    AIAgent,
    ConversationStore,
    EventDispatcher,
    GenerationOrchestrator,
    LLMUnitSearchBackend,
    Settings,
    WebhookRequest,
    build_tools,
)
from src.leasing_agent.signature import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger("server")

VERSION = "1.0"


def build_dispatcher(settings: Settings, store: Optional[ConversationStore] = None) -> EventDispatcher:
    """
    Wire the Groq-backed agent, tools and store into a dispatcher.

    Raises:
        ValueError: If GROQ_API_KEY is not configured
    """
    if not settings.groq_configured:
        raise ValueError("GROQ_API_KEY not set")

    llm = ChatGroq(
        model=settings.groq_model,
        groq_api_key=settings.groq_api_key,
        temperature=settings.llm_temperature,
        streaming=True,
        max_retries=3,
        timeout=30.0,
    )
    unit_search_llm = ChatGroq(
        model=settings.get_unit_search_model(),
        groq_api_key=settings.groq_api_key,
        temperature=1.0,
        max_retries=3,
        timeout=30.0,
    )

    tools = build_tools(LLMUnitSearchBackend(unit_search_llm))
    agent = AIAgent(llm=llm, tools=tools, max_steps=settings.max_tool_steps)
    return EventDispatcher(
        store=store or ConversationStore(),
        orchestrator=GenerationOrchestrator(agent),
    )


async def _evict_idle_conversations(store: ConversationStore, settings: Settings):
    """Background sweep releasing conversations nobody has touched for a while."""
    while True:
        await asyncio.sleep(settings.eviction_interval_seconds)
        store.evict_idle(settings.conversation_idle_ttl_seconds)


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[EventDispatcher] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Configuration (read from the environment when omitted)
        dispatcher: Pre-built dispatcher; built from settings at startup when omitted
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.dispatcher is None:
            try:
                app.state.dispatcher = build_dispatcher(settings)
            except ValueError as e:
                logger.error("Server configuration error: %s", e)

        sweeper = None
        if app.state.dispatcher is not None and settings.conversation_idle_ttl_seconds > 0:
            sweeper = asyncio.create_task(
                _evict_idle_conversations(app.state.dispatcher.store, settings)
            )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()

    app = FastAPI(
        title="Leasing Voice Agent API",
        description="Webhook API for a tool-calling leasing voice agent with interruption repair",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def get_root():
        """Root endpoint with API information."""
        return {
            "name": "Leasing Voice Agent API",
            "version": VERSION,
            "status": "running",
            "endpoints": {
                "webhook": "/api/agent",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        current = app.state.dispatcher
        return {
            "status": "healthy" if current is not None else "degraded",
            "service": "leasing-voice-agent",
            "version": VERSION,
            "groq_configured": settings.groq_configured,
            "groq_model": settings.groq_model if settings.groq_configured else None,
            "webhook_secret_configured": settings.webhook_secret_configured,
            "active_conversations": len(current.store) if current is not None else 0,
        }

    async def handle_webhook(request: Request):
        body = await request.body()

        if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), settings.webhook_secret):
            logger.warning("Rejected webhook with invalid signature")
            return PlainTextResponse("Unauthorized", status_code=401)

        try:
            payload = WebhookRequest.model_validate_json(body)
        except ValidationError as e:
            logger.warning("Rejected malformed webhook payload: %s", e.errors())
            return PlainTextResponse("Bad Request", status_code=400)

        current = app.state.dispatcher
        if current is None:
            return PlainTextResponse("Service Unavailable", status_code=503)

        try:
            stream = await current.dispatch(payload)
        except Exception:
            logger.exception("Webhook handling failed for conversation %s", payload.conversation_id)
            return PlainTextResponse("Internal Server Error", status_code=500)

        if stream is None:
            return PlainTextResponse("OK", status_code=200)

        return StreamingResponse(
            stream.sse(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    app.add_api_route("/api/agent", handle_webhook, methods=["POST"])
    app.add_api_route("/webhook", handle_webhook, methods=["POST"])

    return app


app = create_app()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Leasing Voice Agent Webhook Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    logging.basicConfig(
        level=app.state.settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info("Leasing Voice Agent API Server v%s", VERSION)
    logger.info("Webhook URL: http://%s:%d/api/agent", args.host, args.port)
    logger.info("API Docs: http://%s:%d/docs", args.host, args.port)

    uvicorn.run(
        "server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=app.state.settings.log_level.lower(),
    )
