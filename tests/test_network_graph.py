import logging

import geopandas as gpd
import pytest
from shapely.geometry import LineString

import network_graph
from config import SHELTER_DIRECTION, configure_logging
from path import Path

# a small street grid near the origin, (lon, lat)
EDGES = [
    ([(121.430, 25.170), (121.435, 25.170), (121.440, 25.170)], "Zhongzheng Rd", False),
    ([(121.435, 25.165), (121.435, 25.170), (121.435, 25.175)], ["Xinsheng St", "Alley 3"], False),
    ([(121.440, 25.170), (121.440, 25.175)], "Gongming St", True),
]


@pytest.fixture
def fake_osm(monkeypatch):
    calls = {}

    def graph_from_point(center, dist, network_type):
        calls["args"] = (center, dist, network_type)
        return "G"

    def graph_to_gdfs(G, nodes, edges):
        assert G == "G" and edges and not nodes
        return gpd.GeoDataFrame(
            {
                "name": [name for _, name, _ in EDGES],
                "oneway": [oneway for _, _, oneway in EDGES],
                "highway": ["primary", "residential", "residential"],
            },
            geometry=[LineString(coords) for coords, _, _ in EDGES],
            crs="EPSG:4326",
        )

    monkeypatch.setattr(network_graph.ox, "graph_from_point", graph_from_point)
    monkeypatch.setattr(network_graph.ox, "graph_to_gdfs", graph_to_gdfs)
    return calls


def test_fetch_features(fake_osm):
    features = network_graph.fetch_features((25.17, 121.435), 500, "walk")
    assert fake_osm["args"] == ((25.17, 121.435), 500, "walk")
    assert [f.name for f in features] == ["Zhongzheng Rd", "Xinsheng St", "Gongming St"]
    assert [f.oneway for f in features] == [False, False, True]


def test_build_network_fits_features_in_window(fake_osm):
    network = network_graph.build_network(network_graph.fetch_features(), window=(800, 600), seed=1)
    assert network.window == (800, 600)
    # 3 + 2 + 1 distinct vertices: the crossing and the shared corner merge
    assert len(network) == 6
    for node in network.nodes:
        assert network.projector.within_window(node.position)


def test_add_shelters(fake_osm):
    network = network_graph.build_network(network_graph.fetch_features())
    shelters = network_graph.add_shelters(network, [(121.433, 25.171), (122.0, 26.0)])

    assert len(shelters) == 1
    assert network.find_direction(SHELTER_DIRECTION) == shelters
    start = network.node_at(network.projector.project(25.165, 121.435))
    assert Path(network).find_path(start, shelters[0]) is not None


def test_main_exports(fake_osm, monkeypatch):
    exported = {}

    def export(network, nodes_path, lanes_path):
        exported["network"] = network
        return None, None

    monkeypatch.setattr(network_graph, "export_network_to_csv", export)
    monkeypatch.setattr(network_graph, "SHELTER_COORDS", [(121.436, 25.172)])
    network = network_graph.main(seed=2)
    assert exported["network"] is network
    assert len(network.find_direction(SHELTER_DIRECTION)) == 1


def test_configure_logging():
    assert configure_logging(logging.DEBUG) is logging.getLogger()


def test_shelter_on_existing_node_is_tagged(fake_osm):
    network = network_graph.build_network(network_graph.fetch_features())
    corner = network.node_at(network.projector.project(25.175, 121.440))
    assert corner.direction is None

    assert network_graph.add_shelters(network, [(121.440, 25.175)]) == [corner]
    assert corner.direction == SHELTER_DIRECTION
