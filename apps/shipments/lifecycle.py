"""
Shipment status graph.

    CREATED → ASSIGNED → PICKED_UP → IN_TRANSIT → OUT_FOR_DELIVERY → DELIVERED
                  └─────────(first GPS fix)────────┘
    any non-terminal state → CANCELLED

Each edge belongs to exactly one kind of actor; callers ask for the edge set
of the actor they represent so a driver can never perform an admin edge.
"""

from apps.shipments.models import Shipment
from supplytrack.errors import InvalidTransition, TerminalState

S = Shipment.Status

TERMINAL = frozenset({S.DELIVERED, S.CANCELLED})
ACTIVE   = frozenset({S.ASSIGNED, S.PICKED_UP, S.IN_TRANSIT, S.OUT_FOR_DELIVERY})

ADMIN_EDGES = {
    S.CREATED: {S.ASSIGNED},
}

DRIVER_EDGES = {
    S.ASSIGNED:         {S.PICKED_UP},
    S.PICKED_UP:        {S.IN_TRANSIT},
    S.IN_TRANSIT:       {S.OUT_FOR_DELIVERY},
    S.OUT_FOR_DELIVERY: {S.DELIVERED},
}

# taken by record_fix when the driver starts reporting position
FIX_EDGES = {
    S.ASSIGNED:  {S.IN_TRANSIT},
    S.PICKED_UP: {S.IN_TRANSIT},
}

CANCEL_EDGES = {status: {S.CANCELLED} for status in S if status not in TERMINAL}


def _as_status(value):
    try:
        return S(value)
    except ValueError:
        raise InvalidTransition(f"Unknown status '{value}'.", current_status=None, allowed=[])


def check_transition(edges, current, target):
    """Raise unless current → target is an edge of ``edges``; return the target Status."""
    current = S(current)
    target  = _as_status(target)
    if current in TERMINAL:
        raise TerminalState(
            f"Shipment is already {current} and accepts no further changes.",
            current_status=current,
        )
    allowed = edges.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Cannot move from {current} to {target}.",
            current_status=current,
            allowed=sorted(allowed),
        )
    return target


def next_driver_status(current):
    """The single forward step a driver may take from ``current``, or None."""
    nxt = DRIVER_EDGES.get(S(current))
    return next(iter(nxt)) if nxt else None


def previous_driver_status(target):
    """The status a driver moves to ``target`` from, or None."""
    target = S(target)
    return next((src for src, dst in DRIVER_EDGES.items() if target in dst), None)
