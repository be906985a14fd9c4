"""
Request handlers for the order endpoints.

Responsibility:
    Resolve the caller, validate the payload, call the OrderCoordinator and
    shape the result.  Every InventoryKernelError becomes an ApiResponse
    with the error's status class and code; nothing is swallowed.
    Unexpected exceptions propagate to the host framework.

Architecture position:
    Kernel > API boundary.  HTTP routing belongs to the host application;
    these handlers take an already-parsed request mapping and JSON payload.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from inventory_kernel.api.identity import IdentityProvider
from inventory_kernel.api.schemas import (
    ORDER_TYPE_TO_WIRE,
    STATUS_TO_WIRE,
    parse_change_status,
    parse_create_order,
)
from inventory_kernel.domain.dtos import OrderInfo
from inventory_kernel.domain.values import Actor
from inventory_kernel.exceptions import InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.coordinator import OrderCoordinator

logger = get_logger("api.handlers")

UNAUTHENTICATED_CODE = "UNAUTHENTICATED"


@dataclass(frozen=True)
class ApiResponse:
    """Status code plus JSON-shaped body."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def order_created_body(order: OrderInfo) -> dict[str, Any]:
    return {
        "id_narudzbenica": order.id,
        "tip": ORDER_TYPE_TO_WIRE[order.order_type],
        "status": STATUS_TO_WIRE[order.status],
        "ukupna_vrednost": str(order.total_value),
        "datum_kreiranja": _isoformat(order.created_at),
    }


def status_changed_body(order: OrderInfo) -> dict[str, Any]:
    return {
        "id_narudzbenica": order.id,
        "status": STATUS_TO_WIRE[order.status],
        "datum_zavrsetka": _isoformat(order.completed_at),
        "stornirana": order.is_voided,
    }


def order_detail_body(order: OrderInfo) -> dict[str, Any]:
    body = order_created_body(order)
    body.update(
        status_changed_body(order),
        dobavljac_id=order.supplier_id,
        dostavljac_id=order.fulfiller_id,
        napomena=order.note,
        razlog_storniranja=order.void_reason,
        stavke=[
            {
                "proizvod_id": line.product_id,
                "kolicina": line.quantity,
                "cena": str(line.unit_price),
                "ukupno": str(line.line_total),
            }
            for line in order.lines
        ],
    )
    return body


def error_body(exc: InventoryKernelError) -> dict[str, Any]:
    return {"error": str(exc), "code": exc.code}


class OrderApi:
    """
    Order endpoints: create, change status, read.

    Args:
        coordinator: Runs each operation in its own transaction.
        identity_provider: Resolves the caller of each request.
    """

    def __init__(self, coordinator: OrderCoordinator, identity_provider: IdentityProvider):
        self.coordinator = coordinator
        self.identity_provider = identity_provider

    def create_order(self, request: Mapping[str, Any], payload: Any) -> ApiResponse:
        """POST /narudzbenice -> 201 with the new order's summary."""
        return self._handle(
            request,
            "create_order",
            lambda actor: ApiResponse(
                201,
                order_created_body(
                    self.coordinator.create_order(parse_create_order(payload), actor)
                ),
            ),
        )

    def change_status(
        self, request: Mapping[str, Any], order_id: int, payload: Any
    ) -> ApiResponse:
        """PATCH /narudzbenice/{id}/status -> 200 with the new status."""
        return self._handle(
            request,
            "change_status",
            lambda actor: ApiResponse(
                200,
                status_changed_body(
                    self.coordinator.change_status(
                        order_id, parse_change_status(payload), actor
                    )
                ),
            ),
        )

    def get_order(self, request: Mapping[str, Any], order_id: int) -> ApiResponse:
        """GET /narudzbenice/{id} -> 200 with header and lines."""
        return self._handle(
            request,
            "get_order",
            lambda actor: ApiResponse(
                200, order_detail_body(self.coordinator.get_order(order_id, actor))
            ),
        )

    def _handle(
        self,
        request: Mapping[str, Any],
        endpoint: str,
        call: Callable[[Actor], ApiResponse],
    ) -> ApiResponse:
        actor = self.identity_provider.resolve(request)
        if actor is None:
            logger.warning("request_unauthenticated", extra={"endpoint": endpoint})
            return ApiResponse(
                401, {"error": "Not authenticated", "code": UNAUTHENTICATED_CODE}
            )

        with LogContext.bind(request_id=request.get("request_id")):
            try:
                return call(actor)
            except InventoryKernelError as exc:
                logger.info(
                    "request_failed",
                    extra={
                        "endpoint": endpoint,
                        "status_code": exc.status_class,
                        "error_code": exc.code,
                    },
                )
                return ApiResponse(exc.status_class, error_body(exc))
