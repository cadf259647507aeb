"""
Road network: owns every node and lane of the simulation.

The network is built once from line features (see convert.py) and then
mutated only through connect(), which grafts an outside point onto the
nearest lane. All mutation happens under `lock`, so a split never
interleaves with a path search reading the same lanes.
"""
import logging
import math
import random
import threading
from typing import Dict, Iterable, Iterator, List, Optional

import networkx as nx

from config import ACCESS_LANE_NAME, EPSILON, LANE_CELL_SIZE
from errors import ConstructionError, RoadNetworkError
from lane import Lane, same_position
from node import Node
from projector import Projector

logger = logging.getLogger(__name__)


class RoadNetwork:
    def __init__(self, projector: Projector, seed: Optional[int] = None):
        self.projector = projector
        self.nodes: List[Node] = []  # index == node id
        self._lanes: Dict[int, Lane] = {}  # lane arena, id -> live lane
        self._next_lane_id = 0
        self._cells: Dict[tuple, List[Node]] = {}  # spatial hash of node positions
        self._lane_grid: Dict[tuple, List[Lane]] = {}  # live lanes by LANE_CELL_SIZE cell
        self._random = random.Random(seed)
        self.version = 0  # bumped on every topology change
        self._graph = None
        self._graph_version = -1
        self.lock = threading.RLock()

    @classmethod
    def from_features(cls, features: Iterable, projector: Projector, seed: Optional[int] = None) -> "RoadNetwork":
        network = cls(projector, seed=seed)
        network.build(features)
        return network

    # ------------------------------------------------------------
    # Bounding parameters
    # ------------------------------------------------------------
    @property
    def window(self):
        return self.projector.window

    @property
    def bbox(self):
        return self.projector.bbox

    # ------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------
    @staticmethod
    def _cell(position):
        return (math.floor(position[0] / EPSILON), math.floor(position[1] / EPSILON))

    def node_at(self, position) -> Optional[Node]:
        cx, cy = self._cell(position)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for node in self._cells.get((cx + dx, cy + dy), ()):
                    if same_position(node.position, position):
                        return node
        return None

    def admit(self, node: Node) -> Node:
        """
        Give `node` the next id. Returns the node already admitted at the
        same position instead, if there is one.
        """
        with self.lock:
            if node.admitted:
                return node
            existing = self.node_at(node.position)
            if existing is not None:
                return existing
            node.id = len(self.nodes)
            self.nodes.append(node)
            self._cells.setdefault(self._cell(node.position), []).append(node)
            self.version += 1
            return node

    def random_node(self) -> Optional[Node]:
        if not self.nodes:
            return None
        return self._random.choice(self.nodes)

    def find_direction(self, tag) -> List[Node]:
        """Nodes carrying the destination tag `tag`."""
        return [node for node in self.nodes if node.direction == tag]

    # ------------------------------------------------------------
    # Lanes
    # ------------------------------------------------------------
    def lane(self, lane_id) -> Optional[Lane]:
        return self._lanes.get(lane_id)

    def lanes(self) -> Iterator[Lane]:
        """Live lanes, node by node in admission order."""
        for node in self.nodes:
            yield from node.lanes

    @staticmethod
    def _lane_cells(lane: Lane):
        """Grid cells touched by the lane's segments, padded by EPSILON."""
        cells = set()
        for (ax, ay), (bx, by) in zip(lane.points, lane.points[1:]):
            x0 = math.floor((min(ax, bx) - EPSILON) / LANE_CELL_SIZE)
            x1 = math.floor((max(ax, bx) + EPSILON) / LANE_CELL_SIZE)
            y0 = math.floor((min(ay, by) - EPSILON) / LANE_CELL_SIZE)
            y1 = math.floor((max(ay, by) + EPSILON) / LANE_CELL_SIZE)
            for cx in range(x0, x1 + 1):
                for cy in range(y0, y1 + 1):
                    cells.add((cx, cy))
        return cells

    def register_lane(self, lane: Lane):
        lane.id = self._next_lane_id
        self._next_lane_id += 1
        self._lanes[lane.id] = lane
        for cell in self._lane_cells(lane):
            self._lane_grid.setdefault(cell, []).append(lane)
        self.version += 1

    def retire_lane(self, lane: Lane):
        self._lanes.pop(lane.id, None)
        for cell in self._lane_cells(lane):
            bucket = self._lane_grid.get(cell)
            if bucket is not None and lane in bucket:
                bucket.remove(lane)
        lane.retired = True
        self.version += 1

    def _attach(self, lane: Lane):
        lane.start.lanes.append(lane)
        self.register_lane(lane)

    def add_lane(self, start: Node, end: Node, points, name="", oneway=False) -> Lane:
        """
        Connect two nodes. Two-way roads also get the mirrored lane, and the
        pair reference each other. Raises ConstructionError on bad geometry.
        """
        with self.lock:
            start = self.admit(start)
            end = self.admit(end)
            lane = Lane(self, start, end, points, name)
            reverse = None if oneway else Lane(self, end, start, reversed(lane.points), name)

            self._attach(lane)
            if reverse is not None:
                self._attach(reverse)
                lane.pair_with(reverse)
            return lane

    def _matching_lane(self, start, end, points) -> Optional[Lane]:
        """The lane from start to end along the same polyline, if any."""
        for lane in start.lanes:
            if lane.end is end and len(lane.points) == len(points) and all(
                same_position(a, b) for a, b in zip(lane.points, points)
            ):
                return lane
        return None

    def _add_road(self, start: Node, end: Node, points, name="", oneway=False) -> int:
        """
        Add the lanes of one road piece that the network lacks. Each
        direction is checked on its own, so a two-way road over an existing
        one-way lane only adds the reverse lane. Returns the number of lanes
        created.
        """
        points = list(points)
        forward = self._matching_lane(start, end, points)
        backward = None if oneway else self._matching_lane(end, start, points[::-1])

        created = []
        if forward is None:
            forward = Lane(self, start, end, points, name)
            created.append(forward)
        if not oneway and backward is None:
            backward = Lane(self, end, start, points[::-1], name)
            created.append(backward)

        for lane in created:
            self._attach(lane)
        if backward is not None and forward.reverse_id is None and backward.reverse_id is None:
            forward.pair_with(backward)
        return len(created)

    # ------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------
    def build(self, features: Iterable):
        count = 0
        for feature in features:
            try:
                self.add_feature(feature)
            except ConstructionError as e:
                logger.warning("Rejected feature %r: %s", getattr(feature, "name", None), e)
            count += 1
        logger.info(
            "Road network built from %d features: %d nodes, %d lanes.",
            count, len(self.nodes), len(self._lanes),
        )

    def _lane_containing(self, position) -> Optional[Lane]:
        cell = (math.floor(position[0] / LANE_CELL_SIZE), math.floor(position[1] / LANE_CELL_SIZE))
        candidates = sorted(self._lane_grid.get(cell, ()), key=lambda lane: lane.id)
        for lane in candidates:
            if lane.can_split_at(position):
                return lane
        return None

    def _resolve(self, position, create: bool) -> Optional[Node]:
        """
        Node for a projected point: an existing node, a junction made by
        splitting the lane the point lies on, or (if `create`) a new node.
        """
        node = self.node_at(position)
        if node is not None:
            return node
        lane = self._lane_containing(position)
        if lane is not None:
            head, _ = lane.split(Node(position))
            return head.end
        if create:
            return self.admit(Node(position))
        return None

    def add_feature(self, feature) -> int:
        """Add one line feature; returns the number of lanes created."""
        with self.lock:
            points = []
            try:
                for longitude, latitude in feature.coordinates:
                    point = self.projector.project(float(latitude), float(longitude))
                    if self.projector.within_window(point):
                        points.append(point)
            except (TypeError, ValueError) as e:
                raise ConstructionError(f"Invalid coordinates: {e}") from e
            if len(points) < 2:
                logger.debug("Feature %r has fewer than 2 points in the window, skipped.", feature.name)
                return 0

            first_new_id = len(self.nodes)
            created = 0
            anchor = None
            pending = []
            node = None
            for index, point in enumerate(points):
                is_end = index == 0 or index == len(points) - 1
                node = self._resolve(point, create=is_end)
                if node is None:
                    pending.append(point)
                    continue
                if anchor is None:
                    anchor, pending = node, [node.position]
                    continue
                if node is anchor and len(pending) == 1:
                    continue  # repeated coordinate

                pending.append(node.position)
                try:
                    created += self._add_road(anchor, node, pending, feature.name, feature.oneway)
                except ConstructionError as e:
                    logger.warning("Rejected lane of %r: %s", feature.name, e)
                anchor, pending = node, [node.position]

            if feature.direction and node is not None and node.id >= first_new_id:
                node.direction = feature.direction
            return created

    # ------------------------------------------------------------
    # Spatial queries
    # ------------------------------------------------------------
    def find_closest_lane(self, position) -> Optional[Lane]:
        best, best_distance = None, math.inf
        for lane in self.lanes():
            distance = math.dist(position, lane.find_closest_point(position))
            if distance < best_distance:
                best, best_distance = lane, distance
        return best

    def find_closest_point(self, position):
        lane = self.find_closest_lane(position)
        if lane is None:
            return None
        return lane.find_closest_point(position)

    # ------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------
    def connect(self, node: Node) -> Node:
        """
        Graft `node` onto the network through the closest lane.

        The lane is split at its point closest to the node and a two-way
        access lane joins the node to that junction. Returns the network
        node standing for `node` (an existing node at the same position
        takes its place, inheriting the direction tag if it has none).
        """
        with self.lock:
            if node.lanes:
                raise RoadNetworkError(f"{node} is already connected")
            existing = self.node_at(node.position)
            if existing is not None:
                if existing.direction is None:
                    existing.direction = node.direction
                return existing

            lane = self.find_closest_lane(node.position)
            if lane is None:
                logger.warning("No lane to connect %s to; admitted unconnected.", node)
                return self.admit(node)

            if lane.can_split_at(node.position):
                lane.split(node)
                return node

            point = lane.find_closest_point(node.position)
            junction = self.node_at(point)
            if junction is None:
                pieces = lane.split(Node(point))
                if pieces is None:
                    # closest point within EPSILON of an end node
                    junction = min((lane.start, lane.end), key=lambda n: n.distance_to(point))
                else:
                    junction = pieces[0].end

            self.admit(node)
            self.add_lane(node, junction, [node.position, junction.position], ACCESS_LANE_NAME)
            logger.debug("Connected %s to %s via %s.", node, junction, lane.name)
            return node

    # ------------------------------------------------------------
    # Routing graph
    # ------------------------------------------------------------
    def graph(self) -> nx.DiGraph:
        """
        Directed graph of node ids, rebuilt when the topology changed.
        Edge attributes: weight (lane length) and lane. Parallel lanes
        collapse onto the shortest one.
        """
        with self.lock:
            if self._graph is not None and self._graph_version == self.version:
                return self._graph
            G = nx.DiGraph()
            G.add_nodes_from(node.id for node in self.nodes)
            for lane in self.lanes():
                u, v = lane.start.id, lane.end.id
                if G.has_edge(u, v) and G[u][v]["weight"] <= lane.length:
                    continue
                G.add_edge(u, v, weight=lane.length, lane=lane)
            self._graph = G
            self._graph_version = self.version
            return G

    def __len__(self):
        return len(self.nodes)

    def __repr__(self):
        return f"RoadNetwork(nodes={len(self.nodes)}, lanes={len(self._lanes)})"
