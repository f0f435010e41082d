"""
Base Node class untuk semua demo nodes.
Mengintegrasikan coordination session dan HTTP status server.
"""

import logging
from typing import Any, Dict, Optional

from aiohttp import web

from ..coordination.client import CoordinationClient
from ..utils.metrics import metrics

logger = logging.getLogger(__name__)


class BaseNode:
    """
    Base class untuk nodes yang memakai coordination recipes.
    Menyediakan common functionality:
    - Lifecycle coordination session
    - HTTP API server (status, metrics, health)
    """

    def __init__(self, node_id: int, host: str, port: int, client: CoordinationClient):
        """
        Args:
            node_id: Unique ID untuk node
            host: Host address untuk HTTP server
            port: Port number untuk HTTP server
            client: Session ke coordination service
        """
        self.node_id = node_id
        self.host = host
        self.port = port
        self.client = client

        # HTTP server
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

        # Setup routes
        self._setup_routes()

        # Running state
        self._running = False

        logger.info(f"{type(self).__name__} {node_id} initialized at {host}:{port}")

    def _setup_routes(self):
        """Setup HTTP API routes"""
        self.app.router.add_get('/api/status', self.handle_status)
        self.app.router.add_get('/api/metrics', self.handle_metrics)
        self.app.router.add_get('/health', self.handle_health)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, serve_http: bool = True):
        """Start session dan (optional) HTTP server"""
        logger.info(f"Starting node {self.node_id}...")

        await self.client.start()

        if serve_http:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            self.site = web.TCPSite(self.runner, self.host, self.port)
            await self.site.start()

        self._running = True
        logger.info(f"Node {self.node_id} started successfully")

    async def stop(self):
        """Stop node dan cleanup"""
        logger.info(f"Stopping node {self.node_id}...")

        self._running = False

        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()

        await self.client.stop()

        logger.info(f"Node {self.node_id} stopped")

    def get_status(self) -> Dict[str, Any]:
        """Status dasar. Override untuk menambah informasi recipe."""
        return {
            'node_id': self.node_id,
            'address': f"{self.host}:{self.port}",
            'running': self._running,
            'session_id': self.client.session_id,
        }

    async def handle_status(self, request: web.Request) -> web.Response:
        """Get node status"""
        return web.json_response(self.get_status())

    async def handle_metrics(self, request: web.Request) -> web.Response:
        """Export Prometheus metrics"""
        metrics_data = metrics.get_metrics()
        return web.Response(body=metrics_data, content_type='text/plain')

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        if self._running:
            return web.json_response({'status': 'healthy'})
        else:
            return web.json_response({'status': 'unhealthy'}, status=503)
