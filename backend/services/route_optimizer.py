"""Visiting-order optimization for via-points.

Source and destination are fixed; only the order of the via-points in between
is optimized (open-path TSP with fixed endpoints). Cost is straight-line
(Haversine) distance, a proxy for road distance: scoring every permutation by
real road distance would take n! routing calls.

- up to BRUTE_FORCE_MAX_VIAS vias: exact, every permutation is evaluated
- more than that: greedy nearest-neighbour, approximate only
"""

import logging
from itertools import permutations
from typing import Sequence

import networkx as nx

from backend.models.route import NamedPoint
from backend.services.geo import haversine_km


logger = logging.getLogger(__name__)

BRUTE_FORCE_MAX_VIAS = 8

SOURCE = "source"
DESTINATION = "destination"


def build_distance_graph(
    source: NamedPoint,
    vias: Sequence[NamedPoint],
    destination: NamedPoint,
) -> nx.Graph:
    """Complete graph over source, destination and via indices, weighted in km."""
    g = nx.Graph()
    coords = {SOURCE: source.coordinate, DESTINATION: destination.coordinate}
    coords.update({i: via.coordinate for i, via in enumerate(vias)})

    g.add_nodes_from(coords)
    nodes = list(coords)
    for i, u in enumerate(nodes):
        for v in nodes[i + 1:]:
            g.add_edge(u, v, weight=haversine_km(coords[u], coords[v]))

    return g


def route_cost(source: NamedPoint, vias: Sequence[NamedPoint], destination: NamedPoint) -> float:
    """Straight-line length of source -> vias (in the given order) -> destination."""
    stops = [source, *vias, destination]
    return sum(
        haversine_km(stops[i].coordinate, stops[i + 1].coordinate)
        for i in range(len(stops) - 1)
    )


class RouteOrderOptimizer:
    """Finds a low-cost visiting order for via-points between fixed endpoints."""

    def __init__(self, brute_force_max_vias: int = BRUTE_FORCE_MAX_VIAS):
        self.brute_force_max_vias = brute_force_max_vias

    def order(
        self,
        source: NamedPoint,
        vias: Sequence[NamedPoint],
        destination: NamedPoint,
    ) -> list[NamedPoint]:
        """Return the via-points in the order they should be visited."""
        vias = list(vias)
        if len(vias) <= 1:
            return vias

        g = build_distance_graph(source, vias, destination)

        if len(vias) <= self.brute_force_max_vias:
            indices = self._brute_force(g, len(vias))
        else:
            indices = self._nearest_neighbor(g, len(vias))

        ordered = [vias[i] for i in indices]
        logger.debug(
            "Ordered %d vias (%s), straight-line cost %.2f km",
            len(vias),
            "exact" if len(vias) <= self.brute_force_max_vias else "nearest-neighbour",
            route_cost(source, ordered, destination),
        )
        return ordered

    def _brute_force(self, g: nx.Graph, n: int) -> list[int]:
        """Exhaustive search over all n! orders.

        permutations() enumerates in lexicographic order of input indices and
        only a strictly cheaper order replaces the best, so ties resolve to the
        first order found.
        """
        # Plain lists for the hot loop; graph lookups are too slow for 8! orders
        matrix = [[0.0] * n for _ in range(n)]
        for i in range(n):
            for j in range(i + 1, n):
                matrix[i][j] = matrix[j][i] = g[i][j]["weight"]
        source_dist = [g[SOURCE][i]["weight"] for i in range(n)]
        dest_dist = [g[i][DESTINATION]["weight"] for i in range(n)]

        best_order = list(range(n))
        best_cost = float("inf")

        for perm in permutations(range(n)):
            cost = source_dist[perm[0]] + dest_dist[perm[-1]]
            for k in range(n - 1):
                cost += matrix[perm[k]][perm[k + 1]]
                if cost >= best_cost:
                    break
            else:
                best_cost = cost
                best_order = list(perm)

        return best_order

    def _nearest_neighbor(self, g: nx.Graph, n: int) -> list[int]:
        """Greedy: closest via to source first, then closest to the last stop.

        Ties go to the via that comes first in input order.
        """
        remaining = list(range(n))
        ordered = []
        current = SOURCE

        while remaining:
            nearest = min(remaining, key=lambda v: g[current][v]["weight"])
            ordered.append(nearest)
            remaining.remove(nearest)
            current = nearest

        return ordered


def create_route_order_optimizer(brute_force_max_vias: int = BRUTE_FORCE_MAX_VIAS) -> RouteOrderOptimizer:
    """Create a route-order optimizer."""
    return RouteOrderOptimizer(brute_force_max_vias)
