import math


class Node:
    """
    Vertex of the road graph.

    A node is created free-standing (id is None) and gets its id when a
    RoadNetwork admits it. The position never changes afterwards.
    """

    def __init__(self, position, direction=None):
        self.id = None
        self._position = (float(position[0]), float(position[1]))
        self.direction = direction  # destination tag, e.g. "shelter"
        self.lanes = []  # outbound lanes, in insertion order

    @property
    def position(self):
        return self._position

    @property
    def admitted(self):
        return self.id is not None

    def outbound_lanes(self):
        return tuple(self.lanes)

    def distance_to(self, point):
        return math.dist(self._position, point)

    def lane_to(self, other):
        """First outbound lane ending at `other`, or None."""
        for lane in self.lanes:
            if lane.end is other:
                return lane
        return None

    def __repr__(self):
        x, y = self._position
        tag = f", direction={self.direction!r}" if self.direction else ""
        return f"Node(id={self.id}, pos=({x:.3f}, {y:.3f}){tag})"
