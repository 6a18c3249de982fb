"""Composition helpers for running the gateway.

Configuration priority:
1. Function arguments (highest)
2. Environment variables (SWITCHYARD_*)
3. YAML config file (``config_file`` or SWITCHYARD_CONFIG)
4. GatewayConfig defaults
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from switchyard.gateway.server import GatewayConfig, GatewayServer

ENV_CONFIG_KEY = "SWITCHYARD_CONFIG"


async def _load_config_file(
    config_file: str | None,
    env_config_key: str = ENV_CONFIG_KEY,
) -> tuple[dict[str, Any], Callable[[Any, str, str], Any]]:
    """Load the YAML config file and return (file_config, get_value_fn).

    Args:
        config_file: Path to config file, or None to check env var.
        env_config_key: Environment variable name for config path.

    Returns:
        Tuple of (file_config dict, get_value function).
        get_value(arg, env_key, file_key) resolves arg > env > file and
        returns None when none of them is set.
    """
    file_config: dict[str, Any] = {}
    config_path = config_file or os.environ.get(env_config_key)
    if config_path:
        content = await asyncio.to_thread(Path(config_path).read_text)
        loaded = yaml.safe_load(content) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        file_config = loaded

    def get_value(arg: Any, env_key: str, file_key: str) -> Any:
        if arg is not None:
            return arg
        env_val = os.environ.get(env_key)
        if env_val:
            return env_val
        return file_config.get(file_key)

    return file_config, get_value


def _parse_number(name: str, raw: Any, kind: Callable[[Any], Any]) -> Any:
    if raw is None:
        return None
    try:
        return kind(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return bool(raw)


async def load_gateway_config(
    host: str | None = None,
    port: int | None = None,
    debug_dir: str | None = None,
    config_file: str | None = None,
) -> GatewayConfig:
    """Resolve a GatewayConfig from arguments, environment and config file.

    Raises:
        ValueError: If a numeric setting cannot be parsed.
        FileNotFoundError: If the config file does not exist.
    """
    _, get_value = await _load_config_file(config_file)
    defaults = GatewayConfig()

    port_value = _parse_number("port", get_value(port, "SWITCHYARD_PORT", "port"), int)
    log_headers = get_value(None, "SWITCHYARD_LOG_HEADERS", "log_headers")

    return GatewayConfig(
        host=get_value(host, "SWITCHYARD_HOST", "host") or defaults.host,
        port=defaults.port if port_value is None else port_value,
        openrouter_base_url=get_value(
            None, "SWITCHYARD_OPENROUTER_BASE_URL", "openrouter_base_url"
        )
        or defaults.openrouter_base_url,
        modelscope_base_url=get_value(
            None, "SWITCHYARD_MODELSCOPE_BASE_URL", "modelscope_base_url"
        )
        or defaults.modelscope_base_url,
        gemini_base_url=get_value(None, "SWITCHYARD_GEMINI_BASE_URL", "gemini_base_url")
        or defaults.gemini_base_url,
        connect_timeout=_parse_number(
            "connect_timeout",
            get_value(None, "SWITCHYARD_CONNECT_TIMEOUT", "connect_timeout"),
            float,
        ),
        read_timeout=_parse_number(
            "read_timeout",
            get_value(None, "SWITCHYARD_READ_TIMEOUT", "read_timeout"),
            float,
        ),
        debug_dir=get_value(debug_dir, "SWITCHYARD_DEBUG_DIR", "debug_dir"),
        log_headers=False if log_headers is None else _parse_bool(log_headers),
    )


async def create_gateway(
    host: str | None = None,
    port: int | None = None,
    debug_dir: str | None = None,
    config_file: str | None = None,
) -> None:
    """Create and run the gateway server.

    This is a convenience function that blocks until stopped.

    Example:
        >>> # export SWITCHYARD_PORT=8787
        >>> await create_gateway()
        >>>
        >>> await create_gateway(host="0.0.0.0", config_file="switchyard.yaml")
    """
    config = await load_gateway_config(
        host=host,
        port=port,
        debug_dir=debug_dir,
        config_file=config_file,
    )
    server = GatewayServer(config=config)
    try:
        await server.serve()
    finally:
        await server.stop()
