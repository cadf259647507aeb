import pytest

from convert import RoadFeature
from projector import Projector
from road_network import RoadNetwork

# 10 x 10 degrees onto a 1000 x 1000 window: (lon, lat) = (1, 5) -> (100, 500)
BBOX = (0.0, 10.0, 0.0, 10.0)
WINDOW = (1000, 1000)


@pytest.fixture
def projector():
    return Projector(BBOX, WINDOW)


@pytest.fixture
def network(projector):
    return RoadNetwork(projector, seed=7)


@pytest.fixture
def make_feature():
    def _make(name, *coords, oneway=False, direction=None):
        return RoadFeature(name=name, coordinates=list(coords), oneway=oneway, direction=direction)
    return _make


@pytest.fixture
def pos(projector):
    """Plane position of (lon, lat)."""
    def _pos(lon, lat):
        return projector.project(lat, lon)
    return _pos


@pytest.fixture
def crossing(projector, make_feature):
    """
    Two two-way roads crossing at X = (5, 5):
    W (1, 5) - X - E (9, 5) and N (5, 9) - X - S (5, 1).
    Node ids: W 0, E 1, N 2, X 3, S 4.
    """
    features = [
        make_feature("East-West", (1, 5), (5, 5), (9, 5)),
        make_feature("North-South", (5, 9), (5, 5), (5, 1)),
    ]
    return RoadNetwork.from_features(features, projector, seed=7)


@pytest.fixture
def one_way_scenario(projector, make_feature):
    """
    One-way A (1, 5) -> B (5, 5) -> C (9, 5) and two-way D (5, 9) - B - E (5, 1).
    Node ids: A 0, C 1, D 2, B 3, E 4.
    """
    features = [
        make_feature("ABC", (1, 5), (5, 5), (9, 5), oneway=True),
        make_feature("DBE", (5, 9), (5, 5), (5, 1)),
    ]
    return RoadNetwork.from_features(features, projector, seed=7)
