"""Main FastAPI application and process entry point"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from taskbridge import __version__
from taskbridge.api import sync
from taskbridge.config import ConfigurationError, Settings, load_settings
from taskbridge.scheduler import SyncScheduler
from taskbridge.security import BearerTokenMiddleware
from taskbridge.services.sync_service import SyncService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Keep per-request traces from the HTTP stack out of DEBUG runs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    if settings.dry_run:
        logger.warning("DRY RUN MODE ENABLED: no changes will be written to Tududi")
    if settings.debug:
        logger.info("DEBUG MODE ENABLED")


def create_app(
    settings: Settings,
    *,
    service: Optional[SyncService] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the app around an explicit settings object"""
    service = service or SyncService.from_settings(settings)
    sync_scheduler = SyncScheduler(service, settings.sync_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info(f"Starting GitHub to Tududi sync service (dedup mode: {settings.dedup_mode.value})")
        if start_scheduler:
            sync_scheduler.start()
        yield
        # Shutdown
        logger.info("Stopping GitHub to Tududi sync service")
        sync_scheduler.stop()

    app = FastAPI(
        title="TaskBridge",
        description="Synchronize GitHub issues into Tududi projects and tasks",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sync_scheduler = sync_scheduler

    if settings.api_token:
        app.add_middleware(BearerTokenMiddleware, token=settings.api_token, allow_paths={"/health"})

    app.include_router(sync.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "TaskBridge", "dry_run": settings.dry_run}

    return app


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Sync GitHub issues into Tududi.")
    parser.add_argument("--once", action="store_true", help="run a single sync cycle and exit")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(str(e))
        return 1

    configure_logging(settings)

    if args.once:
        result = SyncService.from_settings(settings).run_cycle()
        return 0 if result.get("status") == "success" else 1

    import uvicorn

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.effective_log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
