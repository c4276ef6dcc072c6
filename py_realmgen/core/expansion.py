"""
Cost-weighted multi-source frontier expansion.

One routine serves every territorial spread in the generator: county
partitioning on the cell grid, polity grouping, and culture, sub-culture and
religion spread over the county graph. The frontier always advances from the
globally cheapest pending node; ties are broken by insertion order so the
outcome depends only on the inputs and the random stream.
"""

import heapq
import math
import numpy as np
import structlog
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple

logger = structlog.get_logger()

# step_cost(source, destination, owner, carry) -> (increment, new_carry) or None
StepCost = Callable[[int, int, int, Any], Optional[Tuple[float, Any]]]
Allowed = Callable[[int, int], bool]


def expand(
    n_nodes: int,
    sources: Iterable[Tuple[int, int]],
    neighbors: Callable[[int], Sequence[int]],
    step_cost: StepCost,
    allowed: Optional[Allowed] = None,
    initial_carry: Any = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Spread owners outward from their source nodes.

    Args:
        n_nodes: Number of nodes; node ids are 0..n_nodes-1
        sources: (owner, node) pairs seeding the frontier at cost 0
        neighbors: Returns the neighbours of a node, in a fixed order
        step_cost: Cost of moving an owner from one node to the next, plus the
            carried state (e.g. consecutive sea steps); None blocks the move
        allowed: Optional territory constraint on (owner, destination)
        initial_carry: Carried state at every source

    Returns:
        Tuple of (owner per node, -1 when unreached; accumulated cost per node)
    """
    costs = [math.inf] * n_nodes
    owners = [-1] * n_nodes
    frontier = []
    counter = 0

    for owner, node in sources:
        if costs[node] == 0:
            # First source on a node keeps it
            continue
        costs[node] = 0.0
        owners[node] = owner
        frontier.append((0.0, counter, node, owner, initial_carry))
        counter += 1
    heapq.heapify(frontier)

    while frontier:
        cost, _, node, owner, carry = heapq.heappop(frontier)
        if cost > costs[node]:
            continue

        for neighbor in neighbors(node):
            if allowed is not None and not allowed(owner, neighbor):
                continue
            step = step_cost(node, neighbor, owner, carry)
            if step is None:
                continue
            increment, new_carry = step
            new_cost = cost + increment
            if new_cost < costs[neighbor]:
                costs[neighbor] = new_cost
                owners[neighbor] = owner
                heapq.heappush(frontier, (new_cost, counter, neighbor, owner, new_carry))
                counter += 1

    return np.array(owners, dtype=np.int32), np.array(costs, dtype=np.float64)
