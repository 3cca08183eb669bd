"""
AgentFlow API - HTTP surface over the workflow executor, tool dispatcher and provider router
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import redis.asyncio as aioredis

from .config import EngineConfig
from .errors import AgentFlowError
from .http import TransportClient
from .ledger import ExecutionLedger, InMemoryExecutionLedger, SQLiteExecutionLedger
from .logging_config import configure_logging
from .providers import (
    CredentialStore,
    EnvCredentialStore,
    InMemoryRateLimiter,
    InMemoryUsageTracker,
    ProviderRouter,
    RedisRateLimiter,
    SQLiteUsageTracker,
)
from .routes import providers_router, tools_router, workflows_router
from .tools import InMemoryToolRegistry, ToolDispatcher, ToolRegistry
from .workflow import (
    ExecutionEventBus,
    InMemoryLockManager,
    LedgerSubscriber,
    RedisLockManager,
    WorkflowExecutor,
)

logger = logging.getLogger(__name__)


def build_components(
    config: EngineConfig,
    credentials: Optional[CredentialStore] = None,
    tool_registry: Optional[ToolRegistry] = None,
    ledger: Optional[ExecutionLedger] = None,
    transport: Optional[TransportClient] = None,
) -> Dict[str, Any]:
    """Wire the engine's collaborators from configuration"""
    transport = transport or TransportClient(
        timeout=config.http_timeout,
        retries=config.http_retries,
        retry_delay=config.http_retry_delay,
    )

    redis_client = None
    if config.redis_url:
        redis_client = aioredis.from_url(config.redis_url, encoding="utf-8", decode_responses=True)
        lock_manager = RedisLockManager(redis_client)
        rate_limiter = RedisRateLimiter(
            redis_client,
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )
        logger.info(f"Using Redis at {config.redis_url} for locks and rate limits")
    else:
        lock_manager = InMemoryLockManager()
        rate_limiter = InMemoryRateLimiter(
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )

    if ledger is None:
        ledger = SQLiteExecutionLedger(config.ledger_db_path) if config.ledger_db_path else InMemoryExecutionLedger()
    usage_tracker = SQLiteUsageTracker(config.usage_db_path) if config.usage_db_path else InMemoryUsageTracker()

    if tool_registry is None:
        tool_registry = (
            InMemoryToolRegistry.from_file(config.tools_file) if config.tools_file else InMemoryToolRegistry()
        )

    provider_router = ProviderRouter(
        credentials or EnvCredentialStore(),
        transport=transport,
        rate_limiter=rate_limiter,
        usage_tracker=usage_tracker,
        openai_base_url=config.openai_base_url,
    )
    tool_dispatcher = ToolDispatcher(tool_registry, transport=transport, ledger=ledger)

    event_bus = ExecutionEventBus()
    LedgerSubscriber(ledger).attach(event_bus)

    workflow_executor = WorkflowExecutor(
        provider_router=provider_router,
        tool_dispatcher=tool_dispatcher,
        lock_manager=lock_manager,
        event_bus=event_bus,
        max_steps=config.max_workflow_steps,
    )

    return {
        "transport": transport,
        "redis": redis_client,
        "ledger": ledger,
        "usage_tracker": usage_tracker,
        "tool_registry": tool_registry,
        "provider_router": provider_router,
        "tool_dispatcher": tool_dispatcher,
        "event_bus": event_bus,
        "workflow_executor": workflow_executor,
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration * 1000:.1f}ms)")
        return response


def create_app(config: Optional[EngineConfig] = None, **overrides) -> FastAPI:
    """
    Create the API application.

    Keyword overrides (credentials, tool_registry, ledger, transport) replace
    the collaborators built from configuration.
    """
    config = config or EngineConfig.from_env()
    components = build_components(config, **overrides)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting AgentFlow API")
        for name in ("ledger", "usage_tracker"):
            initialize = getattr(components[name], "initialize", None)
            if initialize is not None:
                await initialize()
        yield
        logger.info("Shutting down AgentFlow API")
        await components["transport"].aclose()
        if components["redis"] is not None:
            await components["redis"].aclose()

    app = FastAPI(
        title="AgentFlow API",
        description="Workflow execution engine for AI agents",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.config = config
    for name, component in components.items():
        setattr(app.state, name, component)

    @app.exception_handler(AgentFlowError)
    async def agentflow_error_handler(request: Request, exc: AgentFlowError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(workflows_router)
    app.include_router(tools_router)
    app.include_router(providers_router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "redis": components["redis"] is not None,
            "nodeTypes": len(components["workflow_executor"].get_available_node_types()),
        }

    return app


def main():
    import uvicorn

    config = EngineConfig.from_env()
    configure_logging(config.log_level)
    app = create_app(config)

    # uvicorn's own loggers stay quiet; requests are logged by LoggingMiddleware
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "null": {
                "class": "logging.NullHandler",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["null"], "level": "WARNING"},
            "uvicorn.error": {"handlers": ["null"], "level": "WARNING"},
            "uvicorn.access": {"handlers": ["null"], "level": "WARNING"},
        },
    }

    uvicorn.run(app, host="0.0.0.0", port=8700, log_config=log_config)


if __name__ == "__main__":
    main()
