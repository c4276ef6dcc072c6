"""
Vassal hierarchy traversal and aggregation.

Polities live in an id-indexed arena; vassal edges are walked with explicit
stacks so depth is bounded and cycles are detected instead of recursed into.
"""

import structlog
from typing import Dict, List, Optional

from .exceptions import InvariantViolationError
from .models import County, Polity

logger = structlog.get_logger()

PRIMARY_VASSAL_SHARE = 0.40
OTHER_VASSAL_SHARE = 0.20


def roots(polities: Dict[int, Polity]) -> List[int]:
    """Independent polity ids, ascending."""
    return [pid for pid in sorted(polities) if polities[pid].suzerain is None]


def check_acyclic(polities: Dict[int, Polity]) -> None:
    """Following suzerain pointers from any polity must end within n steps."""
    limit = len(polities)
    for pid in polities:
        current = polities[pid].suzerain
        steps = 0
        while current is not None:
            steps += 1
            if steps > limit:
                raise InvariantViolationError(f"Vassal cycle through polity {pid}")
            current = polities[current].suzerain


def realm_of(polities: Dict[int, Polity], pid: int) -> int:
    """Top-level polity of the realm containing `pid`."""
    limit = len(polities)
    steps = 0
    while polities[pid].suzerain is not None:
        pid = polities[pid].suzerain
        steps += 1
        if steps > limit:
            raise InvariantViolationError(f"Vassal cycle through polity {pid}")
    return pid


def subtree(polities: Dict[int, Polity], pid: int) -> List[int]:
    """`pid` followed by every polity beneath it, depth-first pre-order."""
    result = []
    seen = set()
    stack = [pid]
    while stack:
        current = stack.pop()
        if current in seen:
            raise InvariantViolationError(f"Polity {current} reached twice in subtree of {pid}")
        seen.add(current)
        result.append(current)
        stack.extend(reversed(polities[current].vassals))
    return result


def top_down_order(polities: Dict[int, Polity]) -> List[int]:
    """Every polity, each suzerain before its vassals."""
    order: List[int] = []
    for root in roots(polities):
        order.extend(subtree(polities, root))
    if len(order) != len(polities):
        raise InvariantViolationError("Polities unreachable from any realm root")
    return order


def set_suzerain(polities: Dict[int, Polity], vassal_id: int, suzerain_id: Optional[int]) -> None:
    """Move a polity (with its own vassals) under a new suzerain."""
    vassal = polities[vassal_id]
    if vassal.suzerain is not None:
        previous = polities[vassal.suzerain]
        previous.vassals = [v for v in previous.vassals if v != vassal_id]
    vassal.suzerain = suzerain_id
    if suzerain_id is not None:
        if suzerain_id in subtree(polities, vassal_id):
            raise InvariantViolationError(
                f"Polity {suzerain_id} cannot be suzerain of its own overlord {vassal_id}"
            )
        polities[suzerain_id].vassals.append(vassal_id)


def compute_power(polities: Dict[int, Polity], counties: Dict[int, County]) -> None:
    """
    Raw power, realm power and realm average development for every polity.

    Realm power is own power plus 40% of the strongest vassal's realm power
    and 20% of each other vassal's, evaluated bottom-up.
    """
    subtree_dev: Dict[int, float] = {}
    subtree_counties: Dict[int, int] = {}

    for pid in reversed(top_down_order(polities)):
        polity = polities[pid]
        own_dev = float(sum(counties[c].development for c in polity.counties))
        polity.power = own_dev

        vassal_powers = sorted(
            ((polities[v].realm_power, -v) for v in polity.vassals), reverse=True
        )
        realm_power = own_dev
        for i, (vassal_power, _) in enumerate(vassal_powers):
            share = PRIMARY_VASSAL_SHARE if i == 0 else OTHER_VASSAL_SHARE
            realm_power += vassal_power * share
        polity.realm_power = realm_power

        total_dev = own_dev + sum(subtree_dev[v] for v in polity.vassals)
        total_counties = len(polity.counties) + sum(subtree_counties[v] for v in polity.vassals)
        subtree_dev[pid] = total_dev
        subtree_counties[pid] = total_counties
        polity.realm_avg_development = total_dev / total_counties if total_counties else 0.0


def realm_counties(polities: Dict[int, Polity], pid: int) -> List[int]:
    """All counties owned anywhere in the subtree of `pid`."""
    result: List[int] = []
    for member in subtree(polities, pid):
        result.extend(polities[member].counties)
    return result
