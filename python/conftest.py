"""Shared pytest fixtures for the recommendation core tests."""

from datetime import datetime
from typing import List, Optional

import pytest

from models import Location, Place, PlaceCategory, PriceLevel

# 1 degree of latitude on a 6,371 km sphere
METERS_PER_DEGREE = 111_194.93

# 2024-01-01 was a Monday
MONDAY_MORNING = datetime(2024, 1, 1, 10, 0)
MONDAY_LATE_NIGHT = datetime(2024, 1, 1, 3, 0)


def north_of(origin: Location, meters: float) -> Location:
    return Location(origin.latitude + meters / METERS_PER_DEGREE, origin.longitude)


def make_place(place_id: str = "p1",
               category: PlaceCategory = PlaceCategory.RESTAURANT,
               meters_north: float = 0.0,
               meters_east: float = 0.0,
               **kwargs) -> Place:
    """Place near (0, 0); offsets are exact on the equator."""
    defaults = dict(
        name=f"Place {place_id}",
        price_level=PriceLevel.MEDIUM,
        rating=4.0,
        review_count=50,
    )
    defaults.update(kwargs)
    return Place(
        id=place_id,
        category=category,
        latitude=meters_north / METERS_PER_DEGREE,
        longitude=meters_east / METERS_PER_DEGREE,
        **defaults,
    )


class FakeProvider:
    """Async places provider that records calls and can fail on demand."""

    def __init__(self, places: Optional[List[Place]] = None, failures: int = 0):
        self.places = list(places or [])
        self.failures = failures
        self.calls: List[float] = []

    async def fetch_nearby(self, location, radius_meters, limit):
        self.calls.append(radius_meters)
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("places backend unreachable")
        return self.places[:limit]

    async def fetch_by_id(self, place_id):
        return next((p for p in self.places if p.id == place_id), None)


@pytest.fixture
def origin() -> Location:
    return Location(0.0, 0.0)


@pytest.fixture
def restaurant() -> Place:
    return make_place("rest", PlaceCategory.RESTAURANT, meters_north=500,
                      rating=4.8, review_count=200, price_level=PriceLevel.MEDIUM,
                      safety_rating=4.5)


@pytest.fixture
def museum() -> Place:
    return make_place("museum", PlaceCategory.MUSEUM, meters_north=5000,
                      rating=3.0, review_count=5, price_level=PriceLevel.HIGH,
                      safety_rating=4.0)
