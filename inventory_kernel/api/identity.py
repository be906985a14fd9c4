"""
Identity provider contract for the request boundary.

Authentication and role lookup live outside the kernel.  The boundary only
needs something that turns a request into an Actor, or says it cannot.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from inventory_kernel.domain.values import Actor, Role

# Role names as issued by the identity provider
ROLE_FROM_WIRE: dict[str, Role] = {
    "VLASNIK": Role.OWNER,
    "RADNIK": Role.WORKER,
    "DOSTAVLJAC": Role.COURIER,
}


class IdentityProvider(Protocol):
    """Resolves the caller of a request."""

    def resolve(self, request: Mapping[str, Any]) -> Actor | None:
        """Return the request's Actor, or None when it is not authenticated."""
        ...


class StaticIdentityProvider:
    """
    Token -> Actor lookup from a fixed table.

    The request carries its token under ``"token"``.  Used by tests and by
    embedders whose authentication has already happened upstream.
    """

    def __init__(self, actors: Mapping[str, Actor]):
        self._actors = dict(actors)

    @classmethod
    def from_wire(
        cls, entries: Mapping[str, tuple[int, str]]
    ) -> StaticIdentityProvider:
        """Build from ``{token: (user_id, "VLASNIK" | "RADNIK" | "DOSTAVLJAC")}``."""
        actors = {}
        for token, (user_id, role_name) in entries.items():
            try:
                role = ROLE_FROM_WIRE[role_name]
            except KeyError:
                raise ValueError(f"Unknown role {role_name!r} for token {token!r}") from None
            actors[token] = Actor(user_id=user_id, role=role)
        return cls(actors)

    def resolve(self, request: Mapping[str, Any]) -> Actor | None:
        token = request.get("token")
        if not isinstance(token, str):
            return None
        return self._actors.get(token)
