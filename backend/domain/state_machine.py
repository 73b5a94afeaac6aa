"""
Order status transition graph.

Every allowed status change is listed here; services never compare status
strings on their own. Production stages advance linearly through NEXT_STATUS,
and the provider's decision (accept / reject) is only possible from PLACED.
"""
from domain.enums import OrderStatus


# Linear production flow used by advance(); the caller never picks the target
NEXT_STATUS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.ACCEPTED: OrderStatus.CUTTING,
    OrderStatus.CUTTING: OrderStatus.STITCHING,
    OrderStatus.STITCHING: OrderStatus.FINISHING,
    OrderStatus.FINISHING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.DELIVERED,
}

# Provider decision on a freshly placed order
DECISION_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.ACCEPTED, OrderStatus.REJECTED})

ONGOING_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.ACCEPTED,
    OrderStatus.CUTTING,
    OrderStatus.STITCHING,
    OrderStatus.FINISHING,
    OrderStatus.READY,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
)

# Full edge set: current status -> statuses it may move to
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset() for status in OrderStatus
}
TRANSITIONS[OrderStatus.PLACED] = DECISION_STATUSES
for _current, _successor in NEXT_STATUS.items():
    TRANSITIONS[_current] = TRANSITIONS[_current] | {_successor}


def next_status(current: OrderStatus) -> OrderStatus | None:
    """Successor of `current` in the production flow, or None when there is none."""
    return NEXT_STATUS.get(OrderStatus(current))


def is_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    """True if `current -> target` is an edge of the transition graph."""
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


def reachable_from(start: OrderStatus = OrderStatus.PLACED) -> set[OrderStatus]:
    """All statuses reachable from `start` (inclusive) by following allowed edges."""
    seen = {OrderStatus(start)}
    frontier = [OrderStatus(start)]
    while frontier:
        for target in TRANSITIONS[frontier.pop()]:
            if target not in seen:
                seen.add(target)
                frontier.append(target)
    return seen
