import enum
import logging
import math
from typing import List, Optional, Tuple

import networkx as nx

from config import EPSILON
from errors import RouteStateError

logger = logging.getLogger(__name__)


class PathState(enum.Enum):
    EMPTY = "empty"  # no route
    ROUTING = "routing"  # search in progress
    FOLLOWING = "following"  # lanes left to traverse
    ARRIVED = "arrived"  # end of the last lane reached


class Path:
    """
    Route of one agent: the lanes to traverse and how far along them it is.

    The route is consumed lane by lane, point by point. Routing to another
    destination requires reset() first.
    """

    def __init__(self, network, node=None):
        self.network = network
        self.state = PathState.EMPTY
        self.destination = None
        self._lanes = []
        self._lane_index = 0
        self._point_index = 1  # next polyline point to reach on the current lane
        self._node = node

    def reset(self):
        self.state = PathState.EMPTY
        self.destination = None
        self._lanes = []
        self._lane_index = 0
        self._point_index = 1

    # ------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------
    def find_path(self, from_node, to_node) -> Optional[List]:
        """
        Shortest route (by lane length) from `from_node` to `to_node`.

        Returns the lanes to traverse, or None if `to_node` cannot be
        reached; an unreachable destination leaves the path EMPTY.
        """
        if self.state is not PathState.EMPTY:
            raise RouteStateError(f"Path is {self.state.value}; reset() before routing again")
        self.state = PathState.ROUTING

        # the graph snapshot and the lanes read from it stay consistent
        # while no split can run
        with self.network.lock:
            G = self.network.graph()
            try:
                node_ids = nx.dijkstra_path(G, from_node.id, to_node.id, weight="weight")
            except (nx.NetworkXNoPath, nx.NodeNotFound):
                logger.debug("No path from %s to %s.", from_node, to_node)
                self.state = PathState.EMPTY
                return None
            lanes = [G[u][v]["lane"] for u, v in zip(node_ids, node_ids[1:])]

        self._lanes = lanes
        self._lane_index = 0
        self._point_index = 1
        self._node = from_node
        self.destination = to_node
        self.state = PathState.FOLLOWING if lanes else PathState.ARRIVED
        return list(lanes)

    # ------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------
    @property
    def lanes(self):
        return tuple(self._lanes)

    @property
    def length(self) -> float:
        return sum(lane.length for lane in self._lanes)

    def current_lane(self):
        if self.state is not PathState.FOLLOWING:
            return None
        return self._lanes[self._lane_index]

    def available(self) -> bool:
        return self.state is PathState.FOLLOWING

    def has_arrived(self) -> bool:
        return self.state is PathState.ARRIVED

    def in_node(self):
        """Node at, or most recently passed, along the route."""
        return self._node

    def distance_to_node(self, position) -> float:
        """Distance from `position` to the end node of the current lane."""
        if self.state is not PathState.FOLLOWING:
            return 0.0
        points = self._lanes[self._lane_index].points
        remaining = math.dist(position, points[self._point_index])
        remaining += sum(math.dist(a, b) for a, b in zip(points[self._point_index:], points[self._point_index + 1:]))
        return remaining

    def remaining_length(self, position) -> float:
        if self.state is not PathState.FOLLOWING:
            return 0.0
        remaining = self.distance_to_node(position)
        remaining += sum(lane.length for lane in self._lanes[self._lane_index + 1:])
        return remaining

    def move(self, position, step: float) -> Tuple[float, float]:
        """
        Advance up to `step` along the route from `position`.

        Distance left over at the end of a lane carries into the next one.
        Returns the displacement (dx, dy); (0, 0) once the route is used up.
        """
        if self.state is not PathState.FOLLOWING or step <= 0:
            return (0.0, 0.0)

        x, y = position
        remaining = step
        while True:
            lane = self._lanes[self._lane_index]
            tx, ty = lane.points[self._point_index]
            distance = math.hypot(tx - x, ty - y)
            if distance - remaining > EPSILON:
                fraction = remaining / distance
                x += (tx - x) * fraction
                y += (ty - y) * fraction
                break

            x, y = tx, ty
            remaining -= distance
            self._point_index += 1
            if self._point_index == len(lane.points):
                self._node = lane.end
                self._lane_index += 1
                self._point_index = 1
                if self._lane_index == len(self._lanes):
                    self.state = PathState.ARRIVED
                    break
            if remaining <= 0:
                break

        return (x - position[0], y - position[1])

    def __repr__(self):
        return (
            f"Path(state={self.state.value}, lanes={len(self._lanes)}, "
            f"at_lane={self._lane_index}, destination={self.destination})"
        )
