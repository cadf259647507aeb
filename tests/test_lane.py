import math

import pytest

from errors import ConstructionError
from lane import Lane
from node import Node


@pytest.fixture
def bent(network):
    """Two-way lane (100, 100) -> (200, 100) -> (200, 200)."""
    a, b = Node((100, 100)), Node((200, 200))
    return network.add_lane(a, b, [(100, 100), (200, 100), (200, 200)], "Bent")


def test_length_sums_segments(bent):
    assert bent.length == pytest.approx(200.0)


def test_contains_points_on_any_segment(bent):
    assert bent.contains((150, 100))
    assert bent.contains((200, 100))
    assert bent.contains((200, 175))
    assert bent.contains((100, 100))
    assert not bent.contains((150, 150))
    assert not bent.contains((150, 100.01))


def test_closest_point_is_clamped(network):
    lane = network.add_lane(Node((0, 0)), Node((10, 0)), [(0, 0), (10, 0)], oneway=True)
    assert lane.find_closest_point((5, 3)) == pytest.approx((5, 0))
    assert lane.find_closest_point((-5, 3)) == pytest.approx((0, 0))
    assert lane.find_closest_point((15, -2)) == pytest.approx((10, 0))


@pytest.mark.parametrize("position", [(5, 3), (-5, 3), (15, -2), (0, 0), (3, -7), (10, 10)])
def test_closest_point_never_farther_than_endpoints(network, position):
    lane = network.add_lane(Node((0, 0)), Node((10, 0)), [(0, 0), (10, 0)], oneway=True)
    closest = lane.find_closest_point(position)
    bound = min(math.dist(position, (0, 0)), math.dist(position, (10, 0)))
    assert math.dist(position, closest) <= bound + 1e-9


def test_split_preserves_geometry(network, bent):
    start, end, original = bent.start, bent.end, bent.points
    head, tail = bent.split(Node((200, 150)))

    assert head.points == ((100, 100), (200, 100), (200, 150))
    assert tail.points == ((200, 150), (200, 200))
    assert head.points + tail.points[1:] == original[:2] + ((200, 150),) + original[2:]
    assert (head.start, tail.end) == (start, end)
    assert head.end is tail.start
    assert head.end.position == (200, 150)


def test_split_at_interior_vertex(bent):
    original = bent.points
    head, tail = bent.split(Node((200, 100)))
    assert head.points == ((100, 100), (200, 100))
    assert tail.points == ((200, 100), (200, 200))
    assert head.points + tail.points[1:] == original


def test_split_replaces_lane_in_owner(network, bent):
    owner = bent.start
    index = owner.lanes.index(bent)
    head, tail = bent.split(Node((150, 100)))

    assert owner.lanes[index] is head
    assert bent not in owner.lanes
    assert tail in head.end.lanes
    assert bent.retired
    assert network.lane(bent.id) is None
    # retired lane keeps its shape
    assert bent.points == ((100, 100), (200, 100), (200, 200))


def test_split_admits_new_node(network, bent):
    node = Node((150, 100))
    bent.split(node)
    assert node.admitted
    assert network.nodes[node.id] is node


def test_split_off_lane_is_noop(network, bent):
    lanes_before = list(network.lanes())
    assert bent.split(Node((150, 150))) is None
    assert bent.split(Node((100, 100))) is None
    assert bent.split(Node((200, 200))) is None
    assert not bent.retired
    assert list(network.lanes()) == lanes_before


def test_split_also_splits_reverse(bent):
    reverse = bent.find_contrariwise()
    assert reverse.points == tuple(reversed(bent.points))

    head, tail = bent.split(Node((200, 150)))
    assert reverse.retired

    head_reverse = head.find_contrariwise()
    tail_reverse = tail.find_contrariwise()
    assert head_reverse.start is head.end and head_reverse.end is head.start
    assert tail_reverse.start is tail.end and tail_reverse.end is tail.start
    assert head_reverse.points == tuple(reversed(head.points))
    assert tail_reverse.points == tuple(reversed(tail.points))
    assert head_reverse.find_contrariwise() is head
    assert tail_reverse.find_contrariwise() is tail


def test_one_way_lane_has_no_reverse(network):
    lane = network.add_lane(Node((0, 0)), Node((10, 0)), [(0, 0), (10, 0)], oneway=True)
    assert lane.find_contrariwise() is None
    head, tail = lane.split(Node((4, 0)))
    assert head.find_contrariwise() is None
    assert tail.find_contrariwise() is None


def test_lane_to_itself_rejected(network):
    node = Node((10, 10))
    with pytest.raises(ConstructionError):
        Lane(network, node, node, [(10, 10), (20, 20), (10, 10)])


def test_lane_needs_two_points(network):
    with pytest.raises(ConstructionError):
        Lane(network, Node((0, 0)), Node((5, 5)), [(0, 0)])


def test_zero_length_lane_rejected(network):
    with pytest.raises(ConstructionError):
        Lane(network, Node((3, 3)), Node((3, 3)), [(3, 3), (3, 3)])


def test_geometry_must_match_nodes(network):
    with pytest.raises(ConstructionError):
        Lane(network, Node((0, 0)), Node((5, 5)), [(0, 0), (6, 6)])
