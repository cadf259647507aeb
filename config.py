"""
Configuration for the road network simulation.

Values are plain module-level constants; modules import what they need.
"""
import logging

# ---------------------------------------------------------------
# SIMULATION PLANE
# ---------------------------------------------------------------

WINDOW_SIZE = (1000, 1000)  # (width, height) in plane units

# Tolerance for position equality and point-on-lane tests (plane units)
EPSILON = 1e-6

# Cell size of the grid indexing lane segments (plane units)
LANE_CELL_SIZE = 25.0

# 1 deg latitude ≈ 111_320 m
METERS_PER_DEGREE_LAT = 111_320

# Bounding box margin (degrees) added around fetched features so that
# border points stay strictly inside the window
BBOX_MARGIN = 1e-4

# ---------------------------------------------------------------
# NETWORK
# ---------------------------------------------------------------

ACCESS_LANE_NAME = "Access"
SHELTER_DIRECTION = "shelter"

# ---------------------------------------------------------------
# AGENTS
# ---------------------------------------------------------------

AGENT_SPEED = 1.4  # plane units per second, walking pace
VEHICLE_SPEED_FACTOR = 4.0

# ---------------------------------------------------------------
# OPENSTREETMAP SOURCE
# ---------------------------------------------------------------

CENTER = (25.17023490455234, 121.4388617427341)  # (lat, lon)
DIST = 1500  # meters
NETWORK_TYPE = "all"

# Shelter coordinates (lon, lat)
SHELTER_COORDS = [
    (121.4503963662213, 25.174749947684575),
    (121.44445025347713, 25.17827306137527),
    (121.43907880175816, 25.179057230917174),
]

NODES_CSV = "output_files/nodes.csv"
LANES_CSV = "output_files/lanes.csv"

# ---------------------------------------------------------------
# LOGGING
# ---------------------------------------------------------------

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level=logging.INFO):
    """Console logging for scripts; a no-op if the root logger already has handlers."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return logging.getLogger()
