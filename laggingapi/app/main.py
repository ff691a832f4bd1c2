from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


# Load environment variables from .env file
def load_env_file(env_path: Optional[Path] = None):
    """Load .env file if it exists; variables already set in the environment win"""
    env_path = env_path or Path(__file__).parent / ".env"
    if not env_path.exists():
        logger.info("No .env file found at %s", env_path)
        return
    with open(env_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.split('#')[0].strip()  # Remove inline comments
                os.environ.setdefault(key, value)
    logger.info("Loaded environment variables from %s", env_path)


# Load .env on startup
load_env_file()

# Routers
from .routers import lagging
from .services.data_cache import ResultCache
from .services.lagging import LaggingSummaryService
from .services.settings import LaggingSettings
from .services.source_data import SourceDataFetcher


def create_app(
    settings: Optional[LaggingSettings] = None,
    fetcher: Optional[SourceDataFetcher] = None,
    cache: Optional[ResultCache] = None,
) -> FastAPI:
    settings = settings or LaggingSettings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    app = FastAPI(title="Lagging Indicators API", version="0.1.0")

    # CORS (open for dashboard clients; adjust for production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "*"
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.lagging_service = LaggingSummaryService(
        fetcher=fetcher or SourceDataFetcher.from_url(settings.database_url, timeout=settings.fetch_timeout),
        cache=cache or ResultCache(default_ttl=settings.summary_cache_ttl),
        settings=settings,
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Include feature routers
    app.include_router(lagging.router)

    return app


app = create_app()
