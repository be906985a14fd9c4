"""
inventory_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``; ``inventory_config.bridges`` turns a
    KernelConfig into kernel inputs (engine, capability table,
    coordinator).

Failure modes:
    - ``FileNotFoundError`` -- the selected YAML file does not exist.
    - ``ValueError`` -- schema validation failures.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_config
from inventory_config.schema import DatabaseSettings, InventorySettings, KernelConfig

_logger = logging.getLogger("inventory_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "INVENTORY_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"
LOG_LEVEL_ENV = "INVENTORY_LOG_LEVEL"


def get_active_config(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> KernelConfig:
    """The ONLY public configuration entrypoint.

    The YAML document is taken from ``config_path``, else the file named
    by ``INVENTORY_CONFIG``, else the bundled ``defaults.yaml``.  Then
    ``DATABASE_URL`` and ``INVENTORY_LOG_LEVEL`` override their settings.

    Args:
        config_path: Explicit YAML file.
        env: Environment to read; defaults to ``os.environ``.

    Returns:
        A validated, frozen KernelConfig.

    Raises:
        FileNotFoundError: If the YAML file does not exist.
        ValueError: If validation fails.
    """
    env = os.environ if env is None else env
    path = Path(config_path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    data = load_yaml_file(path)

    if env.get(DATABASE_URL_ENV):
        data.setdefault("database", {})
        data["database"]["url"] = env[DATABASE_URL_ENV]
    if env.get(LOG_LEVEL_ENV):
        data.setdefault("logging", {})
        data["logging"]["level"] = env[LOG_LEVEL_ENV]

    config = parse_config(data)

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(path),
            "dialect": config.database.url.split(":", 1)[0],
            "log_level": config.log_level,
            "low_stock_threshold": config.inventory.low_stock_threshold,
            "role_overrides": [role for role, _ in config.role_permissions],
        },
    )
    return config


__all__ = [
    "DatabaseSettings",
    "InventorySettings",
    "KernelConfig",
    "get_active_config",
]
