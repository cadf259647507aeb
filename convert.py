import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString, MultiLineString

from config import BBOX_MARGIN, LANES_CSV, NODES_CSV
from errors import ConstructionError

logger = logging.getLogger(__name__)

ONEWAY_TRUE = {"1", "yes", "true", "-1"}
# OSM oneway=-1: traffic runs against the drawing direction
ONEWAY_REVERSED = "-1"


@dataclass
class RoadFeature:
    name: str
    coordinates: List[Tuple[float, float]]  # (lon, lat) pairs
    oneway: bool = False
    direction: Optional[str] = None
    type: Optional[str] = None


def _clean(value) -> Optional[Any]:
    """Missing values (None / NaN) become None; OSM list values keep their first entry."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def parse_oneway(value) -> bool:
    value = _clean(value)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ONEWAY_TRUE
    return bool(value)


def oneway_reversed(value) -> bool:
    value = _clean(value)
    if isinstance(value, str):
        return value.strip() == ONEWAY_REVERSED
    if value is None or isinstance(value, bool):
        return False
    return value == -1


def _coordinates(line) -> List[Tuple[float, float]]:
    try:
        coords = [(float(c[0]), float(c[1])) for c in line]
    except (TypeError, ValueError, IndexError) as e:
        raise ConstructionError(f"Invalid coordinate in {line!r}") from e
    if len(coords) < 2:
        raise ConstructionError(f"Line needs at least 2 coordinates, got {len(coords)}")
    return coords


def _feature(properties, coords) -> RoadFeature:
    name = _clean(properties.get("name"))
    direction = _clean(properties.get("direction"))
    road_type = _clean(properties.get("type")) or _clean(properties.get("highway"))
    if oneway_reversed(properties.get("oneway")):
        coords = coords[::-1]
    return RoadFeature(
        name=str(name) if name is not None else "",
        coordinates=coords,
        oneway=parse_oneway(properties.get("oneway")),
        direction=str(direction) if direction is not None else None,
        type=str(road_type) if road_type is not None else None,
    )


# ------------------------------------------------------------
# GeoJSON dicts
# ------------------------------------------------------------
def parse_feature(raw: Dict) -> List[RoadFeature]:
    """
    Road features of one GeoJSON feature: one per LineString part.
    Non-line geometries give none; malformed lines raise ConstructionError.
    """
    properties = raw.get("properties") or {}
    geometry = raw.get("geometry") or {}
    geometry_type = geometry.get("type")
    if geometry_type == "LineString":
        lines = [geometry.get("coordinates") or []]
    elif geometry_type == "MultiLineString":
        lines = geometry.get("coordinates") or []
    else:
        return []
    return [_feature(properties, _coordinates(line)) for line in lines]


def load_features(collection: Dict) -> List[RoadFeature]:
    features = []
    for index, raw in enumerate(collection.get("features", [])):
        try:
            features.extend(parse_feature(raw))
        except ConstructionError as e:
            logger.warning("Skipping feature #%d: %s", index, e)
    logger.info("Loaded %d road features.", len(features))
    return features


# ------------------------------------------------------------
# GeoDataFrames (files, OSM edges)
# ------------------------------------------------------------
def features_from_frame(gdf: gpd.GeoDataFrame) -> List[RoadFeature]:
    features = []
    for index, row in gdf.iterrows():
        geom = row.geometry
        if geom is None or geom.is_empty:
            continue
        if isinstance(geom, LineString):
            parts = [geom]
        elif isinstance(geom, MultiLineString):
            parts = list(geom.geoms)
        else:
            continue  # buildings, points, ...
        properties = row.drop(labels=[gdf.geometry.name]).to_dict()
        for part in parts:
            try:
                features.append(_feature(properties, _coordinates(part.coords)))
            except ConstructionError as e:
                logger.warning("Skipping row %s: %s", index, e)
    return features


def read_features(path: str) -> List[RoadFeature]:
    gdf = gpd.read_file(path)
    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        gdf = gdf.to_crs(epsg=4326)
    features = features_from_frame(gdf)
    logger.info("Read %d road features from %s.", len(features), path)
    return features


def bounding_box(features: Iterable[RoadFeature], margin: float = BBOX_MARGIN):
    """(min_lat, max_lat, min_lon, max_lon) around all feature coordinates."""
    lons, lats = [], []
    for feature in features:
        for lon, lat in feature.coordinates:
            lons.append(lon)
            lats.append(lat)
    if not lons:
        raise ValueError("No coordinates to bound.")
    return (min(lats) - margin, max(lats) + margin, min(lons) - margin, max(lons) + margin)


# ------------------------------------------------------------
# Export
# ------------------------------------------------------------
def _lonlat(projector, points: Sequence[Tuple[float, float]]):
    return [tuple(reversed(projector.unproject(x, y))) for x, y in points]


def export_network_to_csv(network, nodes_path: str = NODES_CSV, lanes_path: str = LANES_CSV):
    """
    Export nodes and lanes to CSV files for Kepler.gl visualization.
    Nodes contain lat/lon coordinates.
    Lanes contain geometry in GeoJSON format (lon/lat) and length in plane units.
    """
    projector = network.projector
    nodes_rows = []
    for node in network.nodes:
        lat, lon = projector.unproject(*node.position)
        nodes_rows.append({
            "id": node.id,
            "latitude": lat,
            "longitude": lon,
            "x": node.position[0],
            "y": node.position[1],
            "direction": node.direction,
        })
    nodes_df = pd.DataFrame(nodes_rows, columns=["id", "latitude", "longitude", "x", "y", "direction"])

    lanes_df = pd.DataFrame(
        [
            {
                "id": lane.id,
                "start": lane.start.id,
                "end": lane.end.id,
                "name": lane.name,
                "length": lane.length,
                "length_m": projector.to_distance(lane.length),
                "reverse": lane.reverse_id,
                "geometry": json.dumps(LineString(_lonlat(projector, lane.points)).__geo_interface__),
            }
            for lane in network.lanes()
        ],
        columns=["id", "start", "end", "name", "length", "length_m", "reverse", "geometry"],
    )

    for path in (nodes_path, lanes_path):
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
    nodes_df.to_csv(nodes_path, index=False)
    lanes_df.to_csv(lanes_path, index=False)
    logger.info("Exported %d nodes to %s and %d lanes to %s.", len(nodes_df), nodes_path, len(lanes_df), lanes_path)
    return nodes_df, lanes_df
