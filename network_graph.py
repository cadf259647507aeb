import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import osmnx as ox

from config import (
    CENTER,
    DIST,
    LANES_CSV,
    NETWORK_TYPE,
    NODES_CSV,
    SHELTER_COORDS,
    SHELTER_DIRECTION,
    WINDOW_SIZE,
    configure_logging,
)
from convert import RoadFeature, bounding_box, export_network_to_csv, features_from_frame
from node import Node
from projector import Projector
from road_network import RoadNetwork

logger = logging.getLogger(__name__)


# -----------------------------
# Retrieve the street network
# -----------------------------
def fetch_features(center: Tuple[float, float] = CENTER, dist: float = DIST,
                   network_type: str = NETWORK_TYPE) -> List[RoadFeature]:
    """Street edges around center (lat, lon) as road features in lon/lat."""
    G = ox.graph_from_point(center, dist=dist, network_type=network_type)
    edges_gdf = ox.graph_to_gdfs(G, nodes=False, edges=True)
    features = features_from_frame(edges_gdf)
    logger.info("Fetched %d street edges around %s.", len(features), center)
    return features


def build_network(features: Sequence[RoadFeature], window=WINDOW_SIZE, seed: Optional[int] = None) -> RoadNetwork:
    projector = Projector(bounding_box(features), window)
    return RoadNetwork.from_features(features, projector, seed=seed)


# -----------------------------
# Add shelters as nodes and connect them to the nearest lane
# -----------------------------
def add_shelters(network: RoadNetwork, coords: Iterable[Tuple[float, float]] = SHELTER_COORDS) -> List[Node]:
    shelters = []
    for lon, lat in coords:
        position = network.projector.project(lat, lon)
        if not network.projector.within_window(position):
            logger.warning("Shelter (%s, %s) lies outside the window, skipped.", lon, lat)
            continue
        node = network.connect(Node(position, direction=SHELTER_DIRECTION))
        shelters.append(node)
    logger.info("Connected %d shelters.", len(shelters))
    return shelters


def main(center=CENTER, dist=DIST, seed=None):
    configure_logging()
    network = build_network(fetch_features(center, dist), seed=seed)
    add_shelters(network, SHELTER_COORDS)
    export_network_to_csv(network, NODES_CSV, LANES_CSV)
    return network


if __name__ == "__main__":
    main()
