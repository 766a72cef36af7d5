"""
CosmoDance Info Backend - FastAPI application
Chat endpoint plus direct access to the schedule & price engine
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import get_config
from logging_config import setup_logging
from openai_client import StudioChatClient
from studio_engine import StudioEngine
from tools import ToolRegistry

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    message: str
    history: Optional[List[Dict[str, str]]] = None


class ChatResponse(BaseModel):
    reply: str
    sources: Optional[List[str]] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None
    suggested_questions: Optional[List[str]] = None


def _categorize(message: str) -> str:
    lower = message.lower()
    if any(k in lower for k in ["расписан", "когда", "время", "групп"]):
        return "schedule"
    if any(k in lower for k in ["цена", "стоим", "абонемент", "сколько"]):
        return "prices"
    if any(k in lower for k in ["филиал", "адрес", "где"]):
        return "branches"
    return "general"


def create_app(
    engine: Optional[StudioEngine] = None,
    chat_client: Optional[StudioChatClient] = None,
    prefetch_on_startup: Optional[bool] = None,
) -> FastAPI:
    cfg = get_config()
    setup_logging(cfg.app.log_level, cfg.app.log_dir)

    engine = engine or StudioEngine(cfg.engine)
    tool_registry = ToolRegistry(engine)
    if prefetch_on_startup is None:
        prefetch_on_startup = cfg.app.prefetch_on_startup

    async def warm_up():
        result = await engine.prefetch()
        logger.info("Startup prefetch: %s", result)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Best effort, in the background: startup never waits on the site
        task = asyncio.create_task(warm_up()) if prefetch_on_startup else None
        app.state.prefetch_task = task
        yield
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await engine.aclose()

    app = FastAPI(title="CosmoDance Info API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine
    app.state.tool_registry = tool_registry
    app.state.chat_client = chat_client

    def get_chat_client(request: Request) -> StudioChatClient:
        if request.app.state.chat_client is None:
            try:
                request.app.state.chat_client = StudioChatClient(cfg.api)
            except ValueError as e:
                raise HTTPException(status_code=503, detail=str(e))
        return request.app.state.chat_client

    @app.get("/")
    def root():
        return {"message": "CosmoDance Info API", "status": "running"}

    @app.get("/api/health")
    def health_check():
        """Reports whether live or fallback data is being served"""
        stats = engine.get_stats()
        validation = cfg.validate_config()
        origins = stats["last_origin"]
        degraded = any(origin != "live" for origin in origins.values())
        return {
            "status": "degraded" if degraded else "ok",
            "origins": origins,
            "cache": stats["cache"],
            "config_issues": validation["issues"],
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/api/schedule")
    async def get_schedule(branch: Optional[str] = None):
        """Client view of the schedule, optionally for one branch"""
        snapshot = await engine.get_schedule(branch)
        return snapshot.to_dict()

    @app.get("/api/prices")
    async def get_prices():
        snapshot = await engine.get_prices()
        return snapshot.to_dict()

    @app.get("/api/branches")
    def get_branches():
        return tool_registry.list_branches()

    @app.get("/api/stats")
    def get_stats():
        return engine.get_stats()

    @app.post("/api/clear-cache")
    def clear_cache():
        """Admin action: the next request refetches from the site"""
        engine.clear_cache()
        return {"status": "success", "message": "Cache cleared"}

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(body: ChatRequest, request: Request):
        """Main chat endpoint with tool support"""
        user_message = body.message.strip()
        if not user_message:
            raise HTTPException(status_code=400, detail="Message cannot be empty")

        client = get_chat_client(request)
        try:
            response = await client.chat_with_tools(
                user_message=user_message,
                tools_schema=tool_registry.get_tools_schema(),
                tool_registry=tool_registry,
                history=body.history,
            )
        except Exception as e:
            logger.error("Error processing chat request: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=f"Error processing request: {e}")

        logger.info("Chat query [%s]: %s", _categorize(user_message), user_message[:200])
        return ChatResponse(**response)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    app_config = get_config().app
    uvicorn.run(app, host=app_config.host, port=app_config.port)
