from typing import Optional, Tuple

from config import METERS_PER_DEGREE_LAT, WINDOW_SIZE


class Projector:
    """
    Linear map from geographic coordinates to the simulation plane.

    window: (width, height) of the plane
    bbox: (min_lat, max_lat, min_lon, max_lon) mapped onto the window
    North is up, so latitude grows towards smaller y.
    """

    def __init__(self, bbox: Tuple[float, float, float, float], window: Tuple[float, float] = WINDOW_SIZE):
        min_lat, max_lat, min_lon, max_lon = (float(v) for v in bbox)
        if max_lat <= min_lat or max_lon <= min_lon:
            raise ValueError(f"Degenerate bounding box: {bbox}")
        width, height = (float(v) for v in window)
        if width <= 0 or height <= 0:
            raise ValueError(f"Window must have a positive size: {window}")

        self.bbox = (min_lat, max_lat, min_lon, max_lon)
        self.window = (width, height)

    @property
    def width(self) -> float:
        return self.window[0]

    @property
    def height(self) -> float:
        return self.window[1]

    def project(self, latitude: float, longitude: float) -> Tuple[float, float]:
        min_lat, max_lat, min_lon, max_lon = self.bbox
        x = (longitude - min_lon) / (max_lon - min_lon) * self.width
        y = self.height - (latitude - min_lat) / (max_lat - min_lat) * self.height
        return (x, y)

    def unproject(self, x: float, y: float) -> Tuple[float, float]:
        """Inverse of project(); returns (latitude, longitude)."""
        min_lat, max_lat, min_lon, max_lon = self.bbox
        longitude = min_lon + x / self.width * (max_lon - min_lon)
        latitude = min_lat + (self.height - y) / self.height * (max_lat - min_lat)
        return (latitude, longitude)

    def within_window(self, point) -> bool:
        x, y = point
        return 0 < x < self.width and 0 < y < self.height

    def to_distance(self, pixel_length: float, surface_width: Optional[float] = None) -> float:
        """
        Convert a plane length to meters using the latitude-axis scale.

        surface_width is the width the plane is actually rendered at; a
        surface drawn wider than the window shows more pixels per meter.
        """
        min_lat, max_lat, _, _ = self.bbox
        meters_per_unit = (max_lat - min_lat) * METERS_PER_DEGREE_LAT / self.height
        if surface_width:
            pixel_length = pixel_length * self.width / surface_width
        return pixel_length * meters_per_unit

    def __repr__(self):
        return f"Projector(bbox={self.bbox}, window={self.window})"
