"""
Cup server - serves the latest update check results

Endpoints:
- GET /api/v3/json     full report (also consumed by peer servers)
- GET /api/v3/refresh  run a check now
- GET /health          liveness probe
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from cup import __version__
from cup.config.settings import AppConfig, PollingFilter
from cup.docker_monitor.image_source import DockerImageSource
from cup.models.config_models import CupConfig
from cup.updates.report import build_report
from cup.updates.types import CheckResult
from cup.updates.update_checker import UpdateChecker
from cup.utils.duration_parser import parse_refresh_interval

logger = logging.getLogger(__name__)


class ReportService:
    """
    Holds the latest results and refreshes them.

    Refreshes are serialized; a request arriving while a refresh runs waits
    for it and then runs its own.
    """

    def __init__(self, checker: UpdateChecker):
        self.checker = checker
        self.results: List[CheckResult] = []
        self.last_updated: Optional[datetime] = None
        self._lock = asyncio.Lock()

    async def refresh(self):
        async with self._lock:
            if self.last_updated is not None:
                logger.info("Refreshing data")
            self.results = await self.checker.check()
            self.last_updated = datetime.now(timezone.utc)
            logger.info(f"✨ Checked {len(self.results)} images")

    def report(self) -> Dict[str, Any]:
        return build_report(self.results, self.last_updated)


async def refresh_periodically(service: ReportService, interval: float):
    """Refresh forever, `interval` seconds after the previous refresh finished."""
    while True:
        await asyncio.sleep(interval)
        try:
            await service.refresh()
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {e}", exc_info=True)


def create_app(config: CupConfig, checker: Optional[UpdateChecker] = None) -> FastAPI:
    """
    Build the API app.

    Args:
        config: Loaded config file
        checker: UpdateChecker to use (built from config and the local Docker daemon if omitted)
    """
    if checker is None:
        checker = UpdateChecker(
            config,
            image_source=DockerImageSource(config.socket),
            http_timeout=AppConfig.HTTP_TIMEOUT,
            http_retries=AppConfig.HTTP_RETRIES,
            # Agents only report their own images
            include_servers=not config.agent,
        )
    service = ReportService(checker)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle"""
        logger.info("Starting server, please wait...")

        # Reapply polling filter to uvicorn access logger (must be done after uvicorn starts)
        logging.getLogger("uvicorn.access").addFilter(PollingFilter())

        def _handle_task_exception(task: asyncio.Task):
            """Handle exceptions from background tasks"""
            try:
                task.result()
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Background task failed: {e}", exc_info=True)

        await service.refresh()
        logger.info("Ready to start!")

        refresh_task = None
        interval = parse_refresh_interval(config.refresh_interval)
        if interval:
            refresh_task = asyncio.create_task(refresh_periodically(service, interval))
            refresh_task.add_done_callback(_handle_task_exception)
            logger.info(f"Refreshing every {interval:g}s")

        yield

        if refresh_task is not None:
            refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task

    app = FastAPI(
        title="Cup API",
        version=__version__,
        lifespan=lifespan
    )
    app.state.service = service

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "cup"}

    @app.get("/api/v3/json")
    async def api_json():
        """Full report of the latest check"""
        return JSONResponse(service.report())

    @app.get("/api/v3/refresh")
    async def api_refresh():
        """Run a check now and return once it finished"""
        await service.refresh()
        return PlainTextResponse("OK")

    return app
