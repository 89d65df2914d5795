"""Client for the external agent: registration, heartbeat and config.

The service only depends on the ``AgentSDK`` protocol. ``AgentClient`` is the
HTTP implementation used in production; tests substitute their own.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Protocol

import httpx
import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_FILE = "agent.yaml"


class AgentError(Exception):
    """An interaction with the agent failed."""


class AgentConfigError(AgentError):
    """The agent config could not be loaded."""


class AgentConfig(BaseModel):
    service_name: str = "test-api"
    version: str = "1.0.0"
    port: int = Field(8080, ge=1, le=65535)
    agent_url: str = "http://127.0.0.1:9090"
    health_path: str = "/healthz"
    timeout: float = Field(5.0, gt=0)


class AgentSDK(Protocol):
    async def auto_register(self) -> None: ...

    async def start_heartbeat(self, interval: float) -> None: ...

    async def stop_heartbeat(self) -> None: ...

    def get_config(self) -> Optional[AgentConfig]: ...

    async def aclose(self) -> None: ...


def load_config(config_path: str = "") -> AgentConfig:
    """Read an ``AgentConfig`` from YAML.

    With no path, ``agent.yaml`` in the working directory is used when it
    exists and defaults otherwise. An explicit path must exist.
    """
    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise AgentConfigError(f"agent config not found: {config_path}")
    else:
        path = Path(DEFAULT_CONFIG_FILE)
        if not path.is_file():
            logger.debug("No {} found, using default agent config", DEFAULT_CONFIG_FILE)
            return AgentConfig()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise AgentConfigError(f"cannot read agent config {path}: {e}") from e
    if not isinstance(data, dict):
        raise AgentConfigError(f"agent config {path} must be a mapping")

    try:
        return AgentConfig.model_validate(data)
    except ValidationError as e:
        raise AgentConfigError(f"invalid agent config {path}: {e}") from e


class AgentClient:
    def __init__(self, config: AgentConfig, http: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._http = http or httpx.AsyncClient(base_url=config.agent_url, timeout=config.timeout)
        self._registered = False
        self._heartbeat_task: Optional[asyncio.Task] = None

    @classmethod
    def load(cls, config_path: str = "") -> AgentClient:
        return cls(load_config(config_path))

    @property
    def registered(self) -> bool:
        return self._registered

    def get_config(self) -> Optional[AgentConfig]:
        return self._config

    async def _post(self, url: str, payload: dict) -> None:
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AgentError(f"agent returned HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise AgentError(f"agent request to {url} failed: {e}") from e

    async def auto_register(self) -> None:
        cfg = self._config
        await self._post(
            "/api/v1/services/register",
            {
                "name": cfg.service_name,
                "port": cfg.port,
                "version": cfg.version,
                "health_path": cfg.health_path,
            },
        )
        self._registered = True
        logger.debug("Registered {} on port {} with agent at {}", cfg.service_name, cfg.port, cfg.agent_url)

    async def heartbeat(self) -> None:
        await self._post(
            f"/api/v1/services/{self._config.service_name}/heartbeat",
            {"name": self._config.service_name, "status": "healthy"},
        )

    async def start_heartbeat(self, interval: float) -> None:
        if not self._registered:
            raise AgentError("cannot start heartbeat before registering")
        if interval <= 0:
            raise AgentError(f"heartbeat interval must be positive, got {interval}")
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(interval))

    async def _heartbeat_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.heartbeat()
                logger.debug("Heartbeat sent for {}", self._config.service_name)
            except AgentError as e:
                logger.warning("Heartbeat failed: {}", e)

    async def stop_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def aclose(self) -> None:
        await self.stop_heartbeat()
        await self._http.aclose()
