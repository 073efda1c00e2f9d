"""
PyHeaderBlock Main Application

FastAPI application that puts the header/IP filter in front of an upstream
service.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .core.config import Settings
from .core.engine import HeaderBlockEngine
from .core.exceptions import PyHeaderBlockError, UpstreamError
from .core.proxy import UpstreamForwarder
from .logging import configure_logging
from .middleware import HeaderBlockMiddleware


logger = structlog.get_logger()


class PyHeaderBlockApp:
    """Main PyHeaderBlock application class"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings

        # rule compilation errors surface here, before the app exists
        self.engine = HeaderBlockEngine(settings.headerblock, logger=structlog.get_logger("pyheaderblock"))

        self.forwarder: Optional[UpstreamForwarder] = None
        if settings.upstream.url:
            self.forwarder = UpstreamForwarder(settings.upstream, transport=transport)

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application"""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.startup()
            yield
            await self.shutdown()

        app = FastAPI(
            title="PyHeaderBlock",
            description="Request filter by client IP and header rules",
            version="1.0.0",
            lifespan=lifespan,
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )

        app.add_middleware(HeaderBlockMiddleware, engine=self.engine)
        self._setup_routes(app)
        self._setup_exception_handlers(app)

        return app

    def _setup_routes(self, app: FastAPI):
        """Setup application routes"""

        @app.get("/health")
        async def health_check():
            return {
                "status": "ok",
                "upstream": self.settings.upstream.url is not None
            }

        @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "PATCH"])
        async def proxy_handler(request: Request, path: str):
            if self.forwarder is None:
                raise HTTPException(status_code=503, detail="No upstream configured")
            return await self.forwarder.forward(request)

    def _setup_exception_handlers(self, app: FastAPI):
        """Setup exception handlers"""

        @app.exception_handler(UpstreamError)
        async def upstream_error_handler(request: Request, exc: UpstreamError):
            logger.error("Upstream error", error=str(exc), details=exc.details)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict()
            )

        @app.exception_handler(PyHeaderBlockError)
        async def pyheaderblock_error_handler(request: Request, exc: PyHeaderBlockError):
            logger.error("PyHeaderBlock error", error=str(exc), details=exc.details)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict()
            )

    async def startup(self):
        """Application startup"""
        logger.info(
            "Starting PyHeaderBlock application",
            upstream=self.settings.upstream.url,
            block_rules=len(self.engine.block_rules),
            whitelist_rules=len(self.engine.whitelist_rules),
            allowed_networks=len(self.engine.allowlist)
        )

    async def shutdown(self):
        """Application shutdown"""
        logger.info("Shutting down PyHeaderBlock application")
        if self.forwarder:
            await self.forwarder.stop()

    def get_stats(self) -> Dict[str, Any]:
        """Get application statistics"""
        stats = {"engine": self.engine.get_summary()}
        if self.forwarder:
            stats["upstream"] = self.forwarder.get_statistics()
        return stats


def create_app(settings: Optional[Settings] = None, config_file: Optional[str] = None) -> FastAPI:
    """Create PyHeaderBlock application"""
    if settings is None:
        settings = Settings.load_from_file(config_file) if config_file else Settings()

    return PyHeaderBlockApp(settings).app


def run_server(
    config_file: str = "config/config.yaml",
    host: Optional[str] = None,
    port: Optional[int] = None
):
    """Run the PyHeaderBlock server"""
    settings = Settings.load_from_file(config_file)

    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    configure_logging(settings.logging)

    app = create_app(settings)

    logger.info(
        "Starting PyHeaderBlock server",
        host=settings.server.host,
        port=settings.server.port
    )

    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        access_log=True,
        log_level=settings.logging.level.value,
        log_config=None
    )


if __name__ == "__main__":
    import sys

    config_file = sys.argv[1] if len(sys.argv) > 1 else "config/config.yaml"
    run_server(config_file)
