"""
Request schemas for the two core request shapes.

Responsibility:
    Turn JSON-shaped payloads into validated, frozen commands before any
    core call, and translate the wire vocabulary (``NABAVKA``,
    ``ZAVRSENA``, ...) to and from the kernel's enums.

Architecture position:
    Kernel > API boundary.  The only place wire names appear.

Failure modes:
    - MalformedRequestError: payload or a field has the wrong shape.
    - InvalidOrderTypeError: type missing or not NABAVKA/PRODAJA.
    - EmptyOrderError, InvalidQuantityError, SupplierRequiredError,
      SupplierForbiddenError: raised by CreateOrderCommand itself.
    - UnknownStatusError: status not one of the wire statuses.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from inventory_kernel.domain.dtos import ChangeStatusCommand, CreateOrderCommand, LineRequest
from inventory_kernel.domain.values import OrderStatus, OrderType
from inventory_kernel.exceptions import (
    EmptyOrderError,
    InvalidOrderTypeError,
    MalformedRequestError,
    UnknownStatusError,
)

ORDER_TYPE_FROM_WIRE: dict[str, OrderType] = {
    "NABAVKA": OrderType.PURCHASE,
    "PRODAJA": OrderType.SALE,
}
ORDER_TYPE_TO_WIRE: dict[OrderType, str] = {v: k for k, v in ORDER_TYPE_FROM_WIRE.items()}

STATUS_FROM_WIRE: dict[str, OrderStatus] = {
    "KREIRANA": OrderStatus.CREATED,
    "POSLATA": OrderStatus.SENT,
    "U_TRANSPORTU": OrderStatus.IN_TRANSIT,
    "PRIMLJENA": OrderStatus.RECEIVED,
    "ZAVRSENA": OrderStatus.FULFILLED,
    "OTKAZANA": OrderStatus.CANCELLED,
    "STORNIRANA": OrderStatus.VOIDED,
}
STATUS_TO_WIRE: dict[OrderStatus, str] = {v: k for k, v in STATUS_FROM_WIRE.items()}


def _require_mapping(payload: Any, field: str = "body") -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedRequestError(field, "must be an object")
    return payload


def _optional_id(payload: Mapping[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise MalformedRequestError(key, "must be a positive integer")
    return value


def _optional_text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedRequestError(key, "must be a string")
    return value


def parse_create_order(payload: Any) -> CreateOrderCommand:
    """
    Validate a create-order payload.

    Shape::

        {"type": "NABAVKA" | "PRODAJA",        # "tip" is accepted too
         "dobavljac_id": int?, "dostavljac_id": int?, "napomena": str?,
         "stavke": [{"proizvod_id": int, "kolicina": int}, ...]}
    """
    payload = _require_mapping(payload)

    raw_type = payload.get("type", payload.get("tip"))
    order_type = ORDER_TYPE_FROM_WIRE.get(raw_type) if isinstance(raw_type, str) else None
    if order_type is None:
        raise InvalidOrderTypeError(raw_type)

    raw_lines = payload.get("stavke")
    if raw_lines is None:
        raise EmptyOrderError()
    if not isinstance(raw_lines, list):
        raise MalformedRequestError("stavke", "must be a list")

    lines = []
    for index, raw_line in enumerate(raw_lines):
        raw_line = _require_mapping(raw_line, f"stavke[{index}]")
        product_id = raw_line.get("proizvod_id")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise MalformedRequestError(
                f"stavke[{index}].proizvod_id", "must be an integer"
            )
        # Quantity range is checked by CreateOrderCommand
        lines.append(LineRequest(product_id=product_id, quantity=raw_line.get("kolicina")))

    return CreateOrderCommand(
        order_type=order_type,
        lines=tuple(lines),
        supplier_id=_optional_id(payload, "dobavljac_id"),
        fulfiller_id=_optional_id(payload, "dostavljac_id"),
        note=_optional_text(payload, "napomena"),
    )


def parse_change_status(payload: Any) -> ChangeStatusCommand:
    """
    Validate a change-status payload.

    Shape::

        {"status": "U_TRANSPORTU" | "ZAVRSENA" | ..., "razlog_storniranja": str?}
    """
    payload = _require_mapping(payload)

    raw_status = payload.get("status")
    status = STATUS_FROM_WIRE.get(raw_status) if isinstance(raw_status, str) else None
    if status is None:
        raise UnknownStatusError(raw_status, tuple(STATUS_FROM_WIRE))

    return ChangeStatusCommand(
        status=status,
        reason=_optional_text(payload, "razlog_storniranja"),
    )
