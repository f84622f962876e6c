"""
Route Optimizer for multi-stop visits.

Orders a user-selected set of places starting from the user's position:
1. Nearest-neighbor construction from the start location
2. 2-opt local improvement on the open path (no return to start)
3. Timing pass at a constant average speed, recording arrival and departure

Feasibility against opening hours is reported separately by
`is_route_feasible`; the optimizer always returns a route.
"""

import logging
from datetime import datetime, timedelta
from math import ceil
from typing import List, Optional, Sequence

import numpy as np

from geo_utils import distance_matrix
from models import (
    WEEKDAYS,
    FeasibilityReport,
    Location,
    OptimizedRoute,
    Place,
    RoutePlace,
)

logger = logging.getLogger(__name__)

AVERAGE_SPEED_KMH = 30


def travel_minutes(distance_m: float, speed_kmh: float = AVERAGE_SPEED_KMH) -> int:
    """Travel time in whole minutes, rounded up."""
    return ceil(distance_m / 1000 / speed_kmh * 60)


def _path_length(order: Sequence[int], matrix: np.ndarray) -> float:
    return float(sum(matrix[order[k], order[k + 1]] for k in range(len(order) - 1)))


def _nearest_neighbor(matrix: np.ndarray) -> List[int]:
    """
    Greedy visiting order over matrix indices 1..n, starting from index 0.

    Ties go to the lowest index, i.e. the earliest place in the input.
    """
    n = matrix.shape[0]
    unvisited = list(range(1, n))
    route: List[int] = []
    current = 0

    while unvisited:
        nearest = min(unvisited, key=lambda idx: matrix[current, idx])
        unvisited.remove(nearest)
        route.append(nearest)
        current = nearest

    return route


def _two_opt(route: List[int], matrix: np.ndarray) -> List[int]:
    """
    Reverse segments route[i+1..j] (j >= i+2) while that shortens the path.

    Repeats full passes until one finds no improving reversal.
    """
    best = list(route)
    best_length = _path_length(best, matrix)
    improved = True

    while improved:
        improved = False
        for i in range(len(best) - 2):
            for j in range(i + 2, len(best)):
                candidate = best[:i + 1] + best[i + 1:j + 1][::-1] + best[j + 1:]
                length = _path_length(candidate, matrix)
                if length < best_length - 1e-9:
                    best, best_length = candidate, length
                    improved = True

    return best


def route_distance(places: Sequence[Place], start: Optional[Location] = None) -> float:
    """Sum of consecutive leg distances (meters), optionally from `start`."""
    points = [p.location for p in places]
    if start is not None:
        points = [start] + points
    if len(points) < 2:
        return 0.0
    matrix = distance_matrix(points)
    return _path_length(list(range(len(points))), matrix)


def nearest_neighbor_order(places: Sequence[Place], start: Location) -> List[Place]:
    """Initial visiting order before 2-opt improvement."""
    if not places:
        return []
    matrix = distance_matrix([start] + [p.location for p in places])
    return [places[idx - 1] for idx in _nearest_neighbor(matrix)]


def _single_place_route(place: Place, start_time: datetime) -> OptimizedRoute:
    duration = place.visit_minutes
    return OptimizedRoute(
        stops=[RoutePlace(
            place=place,
            order=0,
            arrival_time=start_time,
            departure_time=start_time + timedelta(minutes=duration),
        )],
        total_distance_meters=0.0,
        total_duration_minutes=duration,
    )


def optimize_route(places: Sequence[Place], start: Location,
                   start_time: Optional[datetime] = None) -> OptimizedRoute:
    """
    Visiting order with arrival/departure times.

    Args:
        places: Places to visit (any order)
        start: Starting location
        start_time: Departure time from `start` (defaults to now)

    Returns:
        OptimizedRoute; empty for no places
    """
    if start_time is None:
        start_time = datetime.now()

    if not places:
        return OptimizedRoute()

    if len(places) == 1:
        return _single_place_route(places[0], start_time)

    # Index 0 is the start location, index k is places[k - 1]
    matrix = distance_matrix([start] + [p.location for p in places])

    initial = _nearest_neighbor(matrix)
    optimized = _two_opt(initial, matrix)
    logger.info(f"Route over {len(places)} places: nearest neighbor "
                f"{_path_length(initial, matrix):.0f}m -> 2-opt {_path_length(optimized, matrix):.0f}m")

    stops: List[RoutePlace] = []
    current_time = start_time
    current_idx = 0
    total_distance = 0.0
    total_duration = 0

    for order, idx in enumerate(optimized):
        place = places[idx - 1]
        leg = float(matrix[current_idx, idx])
        leg_minutes = travel_minutes(leg)

        current_time += timedelta(minutes=leg_minutes)
        arrival = current_time
        current_time += timedelta(minutes=place.visit_minutes)

        stops.append(RoutePlace(place=place, order=order,
                                arrival_time=arrival, departure_time=current_time))

        total_distance += leg
        total_duration += leg_minutes + place.visit_minutes
        current_idx = idx

    return OptimizedRoute(
        stops=stops,
        total_distance_meters=total_distance,
        total_duration_minutes=total_duration,
    )


def is_route_feasible(route: OptimizedRoute) -> FeasibilityReport:
    """Check every arrival against the stop's opening hours."""
    conflicts: List[str] = []

    for stop in route.stops:
        place = stop.place
        if not place.opening_hours:
            continue

        weekday = WEEKDAYS[stop.arrival_time.weekday()]
        arrival = stop.arrival_time.strftime("%H:%M")

        hours = place.opening_hours.get(weekday)
        if hours is None:
            conflicts.append(f"{place.name} is closed on {weekday}")
            continue

        if arrival < hours.open or arrival > hours.close:
            conflicts.append(f"{place.name} will be closed at the estimated arrival time ({arrival})")

    return FeasibilityReport(feasible=not conflicts, conflicts=conflicts)


def format_duration(minutes: float) -> str:
    """`45 min`, `2 h` or `1 h 30 min`."""
    hours, mins = divmod(round(minutes), 60)

    if hours == 0:
        return f"{mins} min"
    if mins == 0:
        return f"{hours} h"
    return f"{hours} h {mins} min"
