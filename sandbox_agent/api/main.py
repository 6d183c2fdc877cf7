"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sandbox_agent.agent.workflow import build_agent
from sandbox_agent.api.routes import router
from sandbox_agent.config import get_settings
from sandbox_agent.llm.gateway import GatewayAdapter
from sandbox_agent.llm.router import ModelRouter
from sandbox_agent.tools.files import upload_files
from sandbox_agent.tools.sandbox import SandboxSession


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    # Fails fast with ValueError when the gateway key is missing
    model_router = ModelRouter(adapter=GatewayAdapter())
    try:
        sandbox = await SandboxSession.create(settings)
        try:
            await upload_files(sandbox, settings.files_dir)
            app.state.agent = build_agent(settings, sandbox, router=model_router)
            logger.info(f"Agent ready with model {settings.agent_model}")

            yield

            # Shutdown
            logger.info("Shutting down...")
        finally:
            app.state.agent = None
            await sandbox.close()
    finally:
        await model_router.close()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat with an LLM agent that inspects files through a sandboxed shell",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sandbox_agent.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
