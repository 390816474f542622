# app/validation/corridor.py
"""
Flight corridor sampling.

Points are linearly interpolated in latitude/longitude between departure and
arrival. Routes in a training area are short enough that the great-circle
difference does not matter for weather sampling.
"""

import math
from typing import List

from ..weather.models import Coordinate, Route

EARTH_RADIUS_MILES = 3959.0

DEFAULT_SAMPLES = 5


def interpolate(start: Coordinate, end: Coordinate, fraction: float) -> Coordinate:
    """Point at fraction (0.0-1.0) of the way from start to end."""
    return Coordinate(
        latitude=round(start.latitude + (end.latitude - start.latitude) * fraction, 6),
        longitude=round(start.longitude + (end.longitude - start.longitude) * fraction, 6),
    )


def corridor_points(route: Route, samples: int = DEFAULT_SAMPLES) -> List[Coordinate]:
    """
    Departure, (samples - 2) evenly spaced waypoints, arrival.

    The default of 5 gives waypoints at 25 %, 50 % and 75 %.

    Raises:
        ValueError: samples < 2
    """
    if samples < 2:
        raise ValueError(f"samples must be at least 2, got {samples}")

    interior = samples - 2
    waypoints = [
        interpolate(route.departure, route.arrival, (i + 1) / (interior + 1))
        for i in range(interior)
    ]
    return [route.departure, *waypoints, route.arrival]


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in statute miles."""
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_MILES * c, 2)


def initial_bearing(a: Coordinate, b: Coordinate) -> float:
    """Initial true course from a to b in degrees (0-360)."""
    return Route(departure=a, arrival=b).heading()


def point_label(index: int, count: int, route: Route) -> str:
    if index == 0:
        return f"Departure ({route.departure_id})" if route.departure_id else "Departure"
    if index == count - 1:
        return f"Arrival ({route.arrival_id})" if route.arrival_id else "Arrival"
    return f"Waypoint {index}"
