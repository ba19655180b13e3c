"""Composition helpers for running datastar-aiohttp servers.

Configuration priority:
1. Function arguments (highest)
2. Environment variables
3. YAML config file (path given directly or via DATASTAR_CONFIG)
4. Defaults
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from datastar_aiohttp.core.constants import Defaults
from datastar_aiohttp.testserver import (
    DEFAULT_PORT,
    ConformanceServer,
    ConformanceServerConfig,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_KEY = "DATASTAR_CONFIG"


def _load_config_file(
    config_file: str | None,
    env_config_key: str = CONFIG_ENV_KEY,
) -> tuple[dict[str, Any], Callable[[Any, str, str, Any], Any]]:
    """Load a YAML config file and return (file_config, get_value_fn).

    The get_value function resolves a value with priority
    arg > env > file > default.
    """
    file_config: dict[str, Any] = {}
    config_path = config_file or os.environ.get(env_config_key)
    if config_path:
        try:
            file_config = yaml.safe_load(Path(config_path).read_text()) or {}
        except FileNotFoundError:
            logger.warning("Config file not found: %s", config_path)

    def get_value(arg: Any, env_key: str, file_key: str, default: Any) -> Any:
        if arg is not None:
            return arg
        env_val = os.environ.get(env_key)
        if env_val:
            return env_val
        file_val = file_config.get(file_key)
        if file_val is not None:
            return file_val
        return default

    return file_config, get_value


def load_test_server_config(
    host: str | None = None,
    port: int | None = None,
    retry_duration: int | None = None,
    config_file: str | None = None,
) -> ConformanceServerConfig:
    """Resolve the conformance server configuration.

    Environment variables:
        DATASTAR_TEST_HOST, TEST_PORT, DATASTAR_RETRY_DURATION

    Config file keys:
        host, port, retry_duration

    Raises:
        ValueError: If port or retry duration is not an integer.
    """
    _, get_value = _load_config_file(config_file)

    return ConformanceServerConfig(
        host=str(get_value(host, "DATASTAR_TEST_HOST", "host", "127.0.0.1")),
        port=int(get_value(port, "TEST_PORT", "port", DEFAULT_PORT)),
        default_retry_duration=int(
            get_value(
                retry_duration,
                "DATASTAR_RETRY_DURATION",
                "retry_duration",
                Defaults.SSE_RETRY_DURATION,
            )
        ),
    )


async def create_test_server(
    host: str | None = None,
    port: int | None = None,
    retry_duration: int | None = None,
    config_file: str | None = None,
) -> None:
    """Create and run the conformance test server until cancelled."""
    config = load_test_server_config(host, port, retry_duration, config_file)
    server = ConformanceServer(config=config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        logger.info("Test server cancelled")
        raise
    finally:
        await server.shutdown()
