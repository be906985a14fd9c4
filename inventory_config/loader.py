"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML settings document and parses it into the frozen
``inventory_config.schema`` dataclasses.  Runtime callers use
``inventory_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong section shape or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import DatabaseSettings, InventorySettings, KernelConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    """Parse DatabaseSettings from the ``database`` section."""
    if "url" not in data:
        raise ValueError("database.url is required")
    return DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        sqlite_busy_timeout=float(data.get("sqlite_busy_timeout", 30.0)),
    )


def parse_role_permissions(data: dict[str, Any]) -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Parse ``{role: [grant, ...]}`` into sorted, hashable pairs."""
    pairs = []
    for role, grants in sorted(data.items()):
        if not isinstance(grants, list) or not all(isinstance(g, str) for g in grants):
            raise ValueError(f"role_permissions.{role} must be a list of strings")
        pairs.append((str(role), tuple(sorted(grants))))
    return tuple(pairs)


def parse_config(data: dict[str, Any]) -> KernelConfig:
    """
    Parse a whole settings document.

    Raises:
        ValueError: if any section is malformed or any value invalid.
    """
    inventory = _section(data, "inventory")
    return KernelConfig(
        database=parse_database(_section(data, "database")),
        inventory=InventorySettings(
            low_stock_threshold=inventory.get("low_stock_threshold", 5),
        ),
        log_level=str(_section(data, "logging").get("level", "INFO")).upper(),
        role_permissions=parse_role_permissions(_section(data, "role_permissions")),
    )
