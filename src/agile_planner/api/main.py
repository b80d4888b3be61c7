"""FastAPI application for the planner API."""

from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import env_provider_factory
from ..models import PlannerConfig
from ..protocols import CompletionProvider
from .routes import backlog


ProviderFactory = Callable[[], CompletionProvider]


def create_app(
    provider_factory: Optional[ProviderFactory] = None,
    config: Optional[PlannerConfig] = None,
    env_file: Optional[Path | str] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        provider_factory: Builds a provider per request; raises
            ConfigurationError when no credentials are available
            (default: read OPENAI_API_KEY / GROQ_API_KEY).
        config: Generation settings.
        env_file: .env file used by the default provider factory.

    Returns:
        Configured FastAPI application
    """
    config = config or PlannerConfig()

    app = FastAPI(
        title="Agile Planner API",
        description="Generate schema-validated agile backlogs with an LLM",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.provider_factory = provider_factory or env_provider_factory(
        env_file, timeout=config.request_timeout_seconds
    )

    app.include_router(backlog.router, prefix="/api", tags=["backlog"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Agile Planner API",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    env_file: Optional[Path | str] = None,
) -> None:
    """Run the API server.

    Args:
        host: Host to bind to
        port: Port to listen on
        env_file: .env file to load API keys from
    """
    import uvicorn

    uvicorn.run(create_app(env_file=env_file), host=host, port=port)
