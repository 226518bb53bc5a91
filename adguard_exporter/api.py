"""HTTP surface of the exporter using FastAPI."""
import logging
import time

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response

from adguard_exporter.poller import MetricsPoller
from adguard_exporter.registry import MetricsRegistry

logger = logging.getLogger(__name__)


class ExporterAPI:
    """FastAPI app serving the scrape endpoint."""

    def __init__(self, poller: MetricsPoller, registry: MetricsRegistry):
        """
        Initialize the API.

        Args:
            poller: Runs one fetch-and-update cycle per scrape
            registry: Registry rendered into each scrape response
        """
        self.poller = poller
        self.registry = registry
        self.app = FastAPI(title="AdGuard Prometheus Exporter")

        # Setup routes
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        # Plain def: FastAPI runs it in the threadpool since the fetch blocks
        @self.app.get("/metrics")
        def metrics():
            """Poll AdGuard Home and return every metric."""
            try:
                self.poller.update_metrics()
                body = self.registry.render()
            except Exception as e:
                logger.error(f"Error serving metrics: {e}", exc_info=True)
                return PlainTextResponse(str(e), status_code=500)

            return Response(content=body, media_type=self.registry.content_type)

    def run(self, host: str = "0.0.0.0", port: int = 9617):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="warning")
