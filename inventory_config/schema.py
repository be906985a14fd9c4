"""
KernelConfig schema.

The typed, frozen form of the inventory kernel's settings.  YAML documents
are parsed into these types by the loader; every value is validated on
construction.
"""

from __future__ import annotations

from dataclasses import dataclass

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url or not isinstance(self.url, str):
            raise ValueError("database.url must be a non-empty string")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(
                f"database.max_overflow must be >= 0, got {self.max_overflow}"
            )
        if self.pool_timeout <= 0:
            raise ValueError(
                f"database.pool_timeout must be > 0, got {self.pool_timeout}"
            )
        if self.sqlite_busy_timeout <= 0:
            raise ValueError(
                f"database.sqlite_busy_timeout must be > 0, got {self.sqlite_busy_timeout}"
            )


# ---------------------------------------------------------------------------
# Inventory behaviour
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InventorySettings:
    """Business settings for stock reporting."""

    low_stock_threshold: int = 5

    def __post_init__(self) -> None:
        if (
            isinstance(self.low_stock_threshold, bool)
            or not isinstance(self.low_stock_threshold, int)
            or self.low_stock_threshold < 0
        ):
            raise ValueError(
                "inventory.low_stock_threshold must be a non-negative integer, "
                f"got {self.low_stock_threshold!r}"
            )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KernelConfig:
    """
    Root configuration object.

    ``role_permissions`` holds ``(role, grants)`` pairs that replace the
    default capability grants of the named roles; empty means defaults.
    """

    database: DatabaseSettings
    inventory: InventorySettings
    log_level: str = "INFO"
    role_permissions: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def __post_init__(self) -> None:
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of {VALID_LOG_LEVELS}, got {self.log_level!r}"
            )
        roles = [role for role, _ in self.role_permissions]
        if len(roles) != len(set(roles)):
            raise ValueError("role_permissions lists a role more than once")
