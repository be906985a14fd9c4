"""
Config -> Kernel Bridges.

Functions that turn a KernelConfig into kernel inputs.  They live here
because the kernel must never import inventory_config.

Usage:
    from inventory_config import get_active_config
    from inventory_config.bridges import build_coordinator

    config = get_active_config()
    coordinator = build_coordinator(config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from inventory_config.schema import KernelConfig
from inventory_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain import authorization
from inventory_kernel.domain.authorization import CapabilityTable
from inventory_kernel.domain.clock import Clock
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.coordinator import OrderCoordinator


def build_capability_table(config: KernelConfig) -> CapabilityTable:
    """Default capability table with the configured role overrides applied."""
    return authorization.build_capability_table(dict(config.role_permissions))


def init_engine(config: KernelConfig) -> Engine:
    """Initialize the kernel's engine from the database settings."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )


def build_coordinator(
    config: KernelConfig,
    clock: Clock | None = None,
    create_schema: bool = True,
) -> OrderCoordinator:
    """
    Wire a ready-to-use OrderCoordinator.

    Configures logging, initializes the engine, registers the ORM
    immutability listeners and (by default) creates missing tables.
    """
    configure_logging(level=config.log_level)
    init_engine(config)
    register_immutability_listeners()
    if create_schema:
        create_tables()
    return OrderCoordinator(
        session_factory=get_session_factory(),
        clock=clock,
        capabilities=build_capability_table(config),
        low_stock_threshold=config.inventory.low_stock_threshold,
    )
