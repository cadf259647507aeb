"""Exceptions raised by the road network."""


class RoadNetworkError(Exception):
    """Base class for road network errors."""


class ConstructionError(RoadNetworkError):
    """A lane or feature cannot be built from the given geometry."""


class RouteStateError(RoadNetworkError):
    """A path was asked to route again without being reset."""
