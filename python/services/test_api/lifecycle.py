"""Startup and shutdown sequencing around the HTTP server."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import threading
from typing import Iterator, Optional

import uvicorn
from loguru import logger
from uvicorn.server import HANDLED_SIGNALS

from test_api.agent import AgentClient, AgentError, AgentSDK
from test_api.app import ENDPOINTS, create_app
from test_api.config import Settings
from test_api.store import UserStore

DEFAULT_PORT = 8080


def resolve_port(sdk: AgentSDK) -> int:
    config = sdk.get_config()
    if config is None:
        return DEFAULT_PORT
    return config.port


class Lifecycle:
    """Best-effort agent registration and heartbeat.

    Nothing here is fatal: an agent that cannot be reached leaves the service
    running unregistered. ``stop`` is idempotent.
    """

    def __init__(self, sdk: AgentSDK, heartbeat_interval: float = 60.0):
        self.sdk = sdk
        self.heartbeat_interval = heartbeat_interval
        self.registered = False
        self.heartbeat_running = False
        self.stopped = False

    async def start(self) -> None:
        try:
            await self.sdk.auto_register()
        except AgentError as e:
            logger.warning("Failed to register with agent: {}", e)
            logger.info("Continuing without agent registration...")
            return
        self.registered = True
        logger.info("Successfully registered with agent")

        try:
            await self.sdk.start_heartbeat(self.heartbeat_interval)
        except AgentError as e:
            logger.warning("Failed to start heartbeat: {}", e)
            return
        self.heartbeat_running = True
        logger.info("Heartbeat started (every {}s)", self.heartbeat_interval)

    async def stop(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        if self.heartbeat_running:
            await self.sdk.stop_heartbeat()
            self.heartbeat_running = False
            logger.debug("Heartbeat stopped")


class ServerStartupError(Exception):
    """The HTTP listener could not be started."""


class GracefulServer(uvicorn.Server):
    """uvicorn server that cancels background work before draining.

    On SIGINT/SIGTERM ``shutdown`` stops accepting connections and waits for
    in-flight requests up to ``timeout_graceful_shutdown`` before cancelling
    them. The signal is consumed here rather than re-raised once serving
    ends, so the caller gets to close its resources and exit normally.
    """

    def __init__(self, config: uvicorn.Config, lifecycle: Lifecycle):
        super().__init__(config)
        self.lifecycle = lifecycle

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return
        original_handlers = {sig: signal.signal(sig, self.handle_exit) for sig in HANDLED_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in original_handlers.items():
                signal.signal(sig, handler)

    async def shutdown(self, sockets: Optional[list] = None) -> None:
        logger.info("Shutting down server...")
        await self.lifecycle.stop()
        try:
            await super().shutdown(sockets=sockets)
        except Exception:
            logger.exception("Server shutdown error")
        logger.info("Server stopped")


def build_server(settings: Settings, sdk: AgentSDK, lifecycle: Lifecycle, store: Optional[UserStore] = None) -> GracefulServer:
    app = create_app(store)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=resolve_port(sdk),
        timeout_graceful_shutdown=settings.shutdown_timeout,
        access_log=settings.access_log,
        log_config=None,
    )
    return GracefulServer(config, lifecycle)


def log_endpoints(port: int) -> None:
    logger.info("Test Backend running on port {}", port)
    logger.info("Available endpoints:")
    for method, path, description in ENDPOINTS:
        logger.info("  {:<4} {:<16} - {}", method, path, description)


class Service:
    """One run of the service: agent lifecycle plus HTTP server.

    ``run`` returns once the server has drained after a termination signal
    (or ``server.should_exit``). The agent client is closed on every path.
    """

    def __init__(self, settings: Settings, sdk: AgentSDK, store: Optional[UserStore] = None):
        self.settings = settings
        self.sdk = sdk
        self.lifecycle = Lifecycle(sdk, heartbeat_interval=settings.heartbeat_interval)
        self.server = build_server(settings, sdk, self.lifecycle, store)

    async def run(self) -> None:
        config = self.server.config
        try:
            await self.lifecycle.start()
            log_endpoints(config.port)
            try:
                await self.server.serve()
            except SystemExit as e:
                # uvicorn exits this way when it cannot bind
                raise ServerStartupError(f"cannot listen on {config.host}:{config.port}") from e
        finally:
            await self.lifecycle.stop()
            await self.sdk.aclose()
            logger.debug("Agent client closed")


async def serve(settings: Settings, sdk: Optional[AgentSDK] = None) -> None:
    """Run the service until a termination signal arrives.

    Raises ``AgentConfigError`` when the agent config is unusable and
    ``ServerStartupError`` when the listener cannot bind.
    """
    if sdk is None:
        sdk = AgentClient.load(settings.agent_config)
    await Service(settings, sdk).run()


def run(settings: Settings) -> None:
    asyncio.run(serve(settings))
