from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from .config import EndpointStrategy

HEALTH_ROUTE = "health"
ORDER_ROUTE = "order"

ROUTE_PATHS: dict[str, str] = {
    HEALTH_ROUTE: "/health",
    ORDER_ROUTE: "/order",
}

ROUTE_METHODS: dict[str, str] = {
    HEALTH_ROUTE: "GET",
    ORDER_ROUTE: "POST",
}

# Share of each route under the mixed strategy.
MIXED_WEIGHTS: dict[str, float] = {
    ORDER_ROUTE: 0.7,
    HEALTH_ROUTE: 0.3,
}

ORDER_ITEM_ID = "item-1"


@dataclass(frozen=True)
class RequestSpec:
    route: str
    method: str
    path: str
    body: dict[str, Any] | None = None


def build_order_payload(rng: random.Random) -> dict[str, Any]:
    return {
        "items": [{"id": ORDER_ITEM_ID, "quantity": rng.randint(1, 5)}],
        "total": rng.randrange(100, 1100),
    }


def build_request(route: str, rng: random.Random) -> RequestSpec:
    body = build_order_payload(rng) if route == ORDER_ROUTE else None
    return RequestSpec(
        route=route,
        method=ROUTE_METHODS[route],
        path=ROUTE_PATHS[route],
        body=body,
    )


def select_endpoint(
    strategy: EndpointStrategy | str,
    rng: random.Random | None = None,
) -> RequestSpec:
    """Pick the route for the next request according to ``strategy``.

    Mixed draws are independent per call; there is no round-robin state.
    """
    rng = rng or random.Random()
    strategy = EndpointStrategy(strategy)
    if strategy is EndpointStrategy.HEALTH:
        route = HEALTH_ROUTE
    elif strategy is EndpointStrategy.ORDER:
        route = ORDER_ROUTE
    else:
        route = _weighted_choice(MIXED_WEIGHTS, rng)
    return build_request(route, rng)


def _weighted_choice(weights: dict[str, float], rng: random.Random) -> str:
    total = sum(weights.values())
    if total <= 0:
        raise ValueError("Weights must sum to > 0")
    r = rng.random() * total
    upto = 0.0
    for key, weight in weights.items():
        upto += weight
        if upto > r:
            return key
    # Float errors fallback
    return next(iter(weights))


__all__ = [
    "HEALTH_ROUTE",
    "MIXED_WEIGHTS",
    "ORDER_ROUTE",
    "ROUTE_PATHS",
    "RequestSpec",
    "build_order_payload",
    "build_request",
    "select_endpoint",
]
