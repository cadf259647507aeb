import enum

from config import AGENT_SPEED, VEHICLE_SPEED_FACTOR
from lane import same_position
from path import Path


class AgentKind(enum.Enum):
    PEDESTRIAN = "pedestrian"
    VEHICLE = "vehicle"

    @property
    def speed_factor(self):
        return VEHICLE_SPEED_FACTOR if self is AgentKind.VEHICLE else 1.0


class Agent:
    def __init__(self, agent_id, network, kind=AgentKind.PEDESTRIAN, node=None, speed=AGENT_SPEED):
        # speed ~ 1.4 units/s (walking); vehicles scale it by their kind
        self.id = agent_id
        self.network = network
        self.kind = kind
        self.speed = speed
        node = node if node is not None else network.random_node()
        if node is None:
            raise ValueError("No nodes available to spawn agents.")
        self.position = node.position
        self.path = Path(network, node)
        self.status = "waiting"  # waiting / moving / arrived / panic
        self.next_destination = None  # reroute waiting for the next node

    def at_node(self):
        return same_position(self.position, self.path.in_node().position)

    def set_destination(self, node):
        """
        Route to `node`; an unreachable destination puts the agent in panic.

        An agent partway along a lane keeps going to the lane's end node and
        reroutes from there.
        """
        if self.status == "moving" and not self.at_node():
            self.next_destination = node
            return True
        self.next_destination = None
        return self._route(node)

    def _route(self, node):
        self.path.reset()
        lanes = self.path.find_path(self.path.in_node(), node)
        if lanes is None:
            self.status = "panic"
            return False
        self.status = "arrived" if self.path.has_arrived() else "moving"
        return True

    def update(self, dt=1.0):
        if self.status != "moving":
            return self.position

        step = self.speed * self.kind.speed_factor * dt
        if self.next_destination is not None:
            # stop at the end of the lane to reroute
            step = min(step, self.path.distance_to_node(self.position))
        passed = self.path.in_node()
        dx, dy = self.path.move(self.position, step)
        self.position = (self.position[0] + dx, self.position[1] + dy)

        if self.next_destination is not None and self.path.in_node() is not passed:
            self.position = self.path.in_node().position
            destination, self.next_destination = self.next_destination, None
            self._route(destination)
        elif self.path.has_arrived():
            self.status = "arrived"
            # end exactly on the destination node
            self.position = self.path.in_node().position
        return self.position
