import math
from typing import Optional, Tuple

from shapely.geometry import LineString, Point

from config import EPSILON
from errors import ConstructionError


def same_position(a, b) -> bool:
    return math.dist(a, b) <= EPSILON


class Lane:
    """
    Directed edge of the road graph.

    Supports:
      - polyline length
      - point-on-lane test within EPSILON
      - closest point on the polyline (clamped, never extrapolated)
      - splitting at an interior node, together with the reverse lane
      - lookup of the reverse lane through its arena handle

    A lane is registered with its network by RoadNetwork.add_lane() or by
    split(). A split retires the lane: it leaves the owner's outbound list
    and the arena but keeps its points, so a path already following it can
    finish the traversal.
    """

    def __init__(self, network, start, end, points, name=""):
        if start is end:
            raise ConstructionError(f"Lane from {start} to itself")
        points = [(float(x), float(y)) for x, y in points]
        if len(points) < 2:
            raise ConstructionError(f"Lane needs at least 2 points, got {len(points)}")
        if not same_position(points[0], start.position) or not same_position(points[-1], end.position):
            raise ConstructionError(f"Lane geometry does not run from {start} to {end}")

        # snap the ends onto the node positions
        points[0] = start.position
        points[-1] = end.position
        length = sum(math.dist(a, b) for a, b in zip(points, points[1:]))
        if length <= EPSILON:
            raise ConstructionError(f"Zero-length lane from {start} to {end}")

        self.network = network
        self.id = None  # arena handle, set on registration
        self.start = start
        self.end = end
        self.points = tuple(points)
        self.name = name
        self.reverse_id = None
        self.retired = False
        self._length = length
        self._geometry = None

    # ------------------------------------------------------------
    # Basic geometric properties
    # ------------------------------------------------------------
    @property
    def length(self) -> float:
        return self._length

    @property
    def geometry(self) -> LineString:
        if self._geometry is None:
            self._geometry = LineString(self.points)
        return self._geometry

    def contains(self, point) -> bool:
        minx, miny, maxx, maxy = self.geometry.bounds
        x, y = point
        if not (minx - EPSILON <= x <= maxx + EPSILON and miny - EPSILON <= y <= maxy + EPSILON):
            return False
        return self.geometry.distance(Point(point)) <= EPSILON

    def find_closest_point(self, position) -> Tuple[float, float]:
        geometry = self.geometry
        nearest = geometry.interpolate(geometry.project(Point(position)))
        return (nearest.x, nearest.y)

    def distance_to(self, position) -> float:
        return self.geometry.distance(Point(position))

    # ------------------------------------------------------------
    # Reverse lane
    # ------------------------------------------------------------
    def find_contrariwise(self) -> Optional["Lane"]:
        if self.reverse_id is None:
            return None
        return self.network.lane(self.reverse_id)

    def pair_with(self, other: "Lane"):
        self.reverse_id = other.id
        other.reverse_id = self.id

    # ------------------------------------------------------------
    # Splitting
    # ------------------------------------------------------------
    def can_split_at(self, position) -> bool:
        """True if position lies on the lane strictly between its end nodes."""
        if self.retired:
            return False
        if same_position(position, self.start.position) or same_position(position, self.end.position):
            return False
        return self.contains(position)

    def split(self, node):
        """
        Split this lane, and its reverse lane, at `node`.

        Returns the (head, tail) lanes of this direction, or None when the
        node does not lie between the lane's end nodes.
        """
        with self.network.lock:
            if not self.can_split_at(node.position):
                return None
            reverse = self.find_contrariwise()
            node = self.network.admit(node)

            head, tail = self._divide(node)
            if reverse is not None and reverse.can_split_at(node.position):
                reverse_head, reverse_tail = reverse._divide(node)
                head.pair_with(reverse_tail)
                tail.pair_with(reverse_head)
            return head, tail

    def _divide_points(self, position):
        point = Point(position)
        for i, (a, b) in enumerate(zip(self.points, self.points[1:])):
            if LineString([a, b]).distance(point) > EPSILON:
                continue
            head = list(self.points[:i + 1])
            if same_position(head[-1], position):
                head.pop()
            head.append(position)

            rest = list(self.points[i + 1:])
            if same_position(rest[0], position):
                rest.pop(0)
            return head, [position] + rest
        return None

    def _divide(self, node):
        head_points, tail_points = self._divide_points(node.position)
        head = Lane(self.network, self.start, node, head_points, self.name)
        tail = Lane(self.network, node, self.end, tail_points, self.name)

        # head takes this lane's slot in the owner's outbound list
        owner_lanes = self.start.lanes
        owner_lanes[owner_lanes.index(self)] = head
        node.lanes.append(tail)

        self.network.register_lane(head)
        self.network.register_lane(tail)
        self.network.retire_lane(self)
        return head, tail

    def __repr__(self):
        return (
            f"Lane(id={self.id}, {self.start.id}->{self.end.id}, "
            f"name={self.name!r}, points={len(self.points)}, length={self._length:.3f})"
        )
