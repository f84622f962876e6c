import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from models import (
    Interest,
    Location,
    MissingLocationError,
    PlaceCategory,
    PriceLevel,
    RecommendationFilters,
    UserProfile,
)
from recommendation_config import ErrorConfig, FallbackConfig, RecommendationConfig
from recommendation_service import RecommendationService, StaticPlacesProvider

from conftest import MONDAY_MORNING, FakeProvider, make_place


NO_DELAY = RecommendationConfig(errors=ErrorConfig(max_retries=2, retry_delay_ms=0))
NO_CACHE = replace(NO_DELAY, fallback=FallbackConfig(use_cache=False))

FOODIE = UserProfile(interests=(Interest.GASTRONOMY,))
CULTURE = UserProfile(interests=(Interest.CULTURE,))


class Clock:
    def __init__(self, now=MONDAY_MORNING):
        self.now = now

    def __call__(self):
        return self.now


def _neighborhood(count=6):
    categories = [PlaceCategory.RESTAURANT, PlaceCategory.MUSEUM, PlaceCategory.PARK,
                  PlaceCategory.CAFE, PlaceCategory.GALLERY, PlaceCategory.SHOP]
    return [
        make_place(f"n{i}", categories[i % len(categories)], meters_north=200 * (i + 1),
                   rating=4.0 + (i % 5) / 10)
        for i in range(count)
    ]


def _fallback_places():
    return [make_place(f"fb{i}", PlaceCategory.PARK, meters_east=300 * (i + 1)) for i in range(3)]


def _service(provider, config=NO_DELAY, clock=None):
    return RecommendationService(provider, config=config, fallback_source=_fallback_places,
                                 clock=clock or Clock())


def _ids(places):
    return [p.id for p in places]


# =============================================================================
# BASIC FLOW
# =============================================================================

def test_missing_location_is_reported():
    service = _service(FakeProvider(_neighborhood()))

    with pytest.raises(MissingLocationError, match="location required"):
        asyncio.run(service.get_recommendations(None, FOODIE))


def test_missing_profile_uses_default(origin):
    service = _service(FakeProvider(_neighborhood()))
    places = asyncio.run(service.get_recommendations(origin, None))

    assert sorted(_ids(places)) == sorted(_ids(_neighborhood()))


def test_results_are_sorted_and_tracked(origin, restaurant, museum):
    provider = FakeProvider([museum, restaurant] + _neighborhood(4))
    service = _service(provider)

    places = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert places[0].id == "rest"
    assert set(_ids(places)) == service.shown_history
    assert service.cache_size == 1


def test_too_few_matches_relaxes_filters(origin):
    service = _service(FakeProvider(_neighborhood()))
    filters = RecommendationFilters(categories=(PlaceCategory.MUSEUM,))

    places = asyncio.run(service.get_recommendations(origin, CULTURE, filters))

    assert len(places) == 6
    assert places[0].category == PlaceCategory.MUSEUM


def test_explain(origin, restaurant):
    service = _service(FakeProvider([restaurant]))
    [explanation] = service.explain([restaurant], origin, FOODIE)

    assert explanation.primary_reason == "Matches your interest in gastronomia"
    assert 0 <= explanation.match_percentage <= 100


# =============================================================================
# CACHE
# =============================================================================

def test_cache_hit_skips_provider(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider)

    first = asyncio.run(service.get_recommendations(origin, FOODIE))
    second = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert first == second
    assert provider.calls == [5000]


def test_nearby_coordinates_share_a_cache_entry(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider)

    asyncio.run(service.get_recommendations(origin, FOODIE))
    asyncio.run(service.get_recommendations(Location(0.00001, 0.00001), FOODIE))

    assert len(provider.calls) == 1


def test_profile_change_invalidates_cache(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider)

    asyncio.run(service.get_recommendations(origin, FOODIE))
    asyncio.run(service.get_recommendations(origin, CULTURE))
    asyncio.run(service.get_recommendations(origin, replace(CULTURE, preferred_budget=PriceLevel.LOW)))

    assert len(provider.calls) == 3


def test_category_filters_use_separate_cache_entries(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider)

    asyncio.run(service.get_recommendations(origin, FOODIE))
    asyncio.run(service.get_recommendations(
        origin, FOODIE, RecommendationFilters(categories=(PlaceCategory.PARK,))))

    assert len(provider.calls) == 2
    assert service.cache_size == 2


def test_cache_expires(origin):
    provider = FakeProvider(_neighborhood())
    clock = Clock()
    service = _service(provider, clock=clock)

    asyncio.run(service.get_recommendations(origin, FOODIE))
    clock.now += timedelta(minutes=14)
    asyncio.run(service.get_recommendations(origin, FOODIE))
    assert len(provider.calls) == 1

    clock.now += timedelta(minutes=2)
    asyncio.run(service.get_recommendations(origin, FOODIE))
    assert len(provider.calls) == 2


def test_clear_cache(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider)

    asyncio.run(service.get_recommendations(origin, FOODIE))
    service.clear_cache()

    assert service.cache_size == 0
    assert service.shown_history == frozenset()

    asyncio.run(service.get_recommendations(origin, FOODIE))
    assert len(provider.calls) == 2


# =============================================================================
# PROVIDER FAILURES & RADIUS
# =============================================================================

def test_provider_failure_retries_then_falls_back(origin):
    provider = FakeProvider(_neighborhood(), failures=10)
    service = _service(provider)

    places = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert len(provider.calls) == 3
    assert sorted(_ids(places)) == ["fb0", "fb1", "fb2"]


def test_provider_recovers_after_one_failure(origin):
    provider = FakeProvider(_neighborhood(), failures=1)
    service = _service(provider)

    places = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert provider.calls == [5000, 5000]
    assert len(places) == 6


def test_radius_expands_when_results_are_scarce(origin):
    provider = FakeProvider(_neighborhood(2))
    service = _service(provider)

    places = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert provider.calls == [5000, 7000, 9000, 11000]
    assert len(places) == 2


def test_radius_expansion_can_be_disabled(origin):
    provider = FakeProvider(_neighborhood(2))
    config = replace(NO_DELAY, fallback=FallbackConfig(expand_radius=False))

    asyncio.run(_service(provider, config).get_recommendations(origin, FOODIE))

    assert provider.calls == [5000]


def test_requested_radius_is_clamped(origin):
    provider = FakeProvider(_neighborhood())
    service = _service(provider, NO_CACHE)

    asyncio.run(service.get_recommendations(origin, FOODIE, RecommendationFilters(max_distance=500)))
    asyncio.run(service.get_recommendations(origin, FOODIE, RecommendationFilters(max_distance=50000)))

    assert provider.calls == [1000, 20000]


def test_empty_provider_falls_back(origin):
    provider = FakeProvider([])
    service = _service(provider)

    places = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert provider.calls == [5000, 7000, 9000, 11000]
    assert sorted(_ids(places)) == ["fb0", "fb1", "fb2"]


def test_fallback_without_nearby_places_returns_source_head():
    source = [make_place(f"s{i}", meters_north=100 * i) for i in range(12)]
    service = RecommendationService(FakeProvider(), fallback_source=lambda: source, clock=Clock())

    places = service.get_fallback_recommendations(Location(10, 10), FOODIE)

    assert _ids(places) == [f"s{i}" for i in range(10)]


def test_fallback_can_be_disabled(origin):
    config = replace(NO_DELAY, fallback=FallbackConfig(use_mock_data=False))
    service = _service(FakeProvider([]), config)

    assert asyncio.run(service.get_recommendations(origin, FOODIE)) == []


def test_fallback_ranks_nearby_places(origin, restaurant, museum):
    far = make_place("far", meters_north=50_000)
    service = RecommendationService(FakeProvider(), fallback_source=lambda: [museum, far, restaurant],
                                    clock=Clock())

    assert _ids(service.get_fallback_recommendations(origin, FOODIE)) == ["rest", "museum"]


# =============================================================================
# NOVELTY
# =============================================================================

def _large_neighborhood():
    categories = [PlaceCategory.RESTAURANT, PlaceCategory.MUSEUM, PlaceCategory.PARK,
                  PlaceCategory.CAFE, PlaceCategory.GALLERY, PlaceCategory.SHOP,
                  PlaceCategory.MONUMENT, PlaceCategory.THEATER]
    return [
        make_place(f"{category.value}-{i}", category, meters_north=100 * (i + 1),
                   meters_east=150 * k, rating=3.5 + i / 10)
        for k, category in enumerate(categories)
        for i in range(5)
    ]


def test_recently_shown_places_are_skipped(origin):
    service = _service(FakeProvider(_large_neighborhood()), NO_CACHE)

    first = asyncio.run(service.get_recommendations(origin, FOODIE))
    second = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert len(first) == len(second) == 20
    assert not set(_ids(first)) & set(_ids(second))
    assert len(service.shown_history) == 40


def test_small_result_sets_repeat(origin):
    service = _service(FakeProvider(_neighborhood()), NO_CACHE)

    first = asyncio.run(service.get_recommendations(origin, FOODIE))
    second = asyncio.run(service.get_recommendations(origin, FOODIE))

    assert _ids(first) == _ids(second)


# =============================================================================
# TRENDING & SIMILAR
# =============================================================================

def test_trending_places(origin):
    places = [
        make_place("busy", rating=4.2, review_count=5000),
        make_place("gem", rating=4.9, review_count=20),
        make_place("meh", rating=3.9, review_count=10000),
    ]
    service = _service(FakeProvider(places))

    assert _ids(asyncio.run(service.get_trending_places(origin))) == ["busy", "gem"]
    assert _ids(asyncio.run(service.get_trending_places(origin, limit=1))) == ["busy"]


def test_trending_falls_back_on_provider_error(origin):
    service = _service(FakeProvider(_neighborhood(), failures=1))

    places = asyncio.run(service.get_trending_places(origin, limit=2))

    assert _ids(places) == ["fb0", "fb1"]


def test_similar_places(restaurant):
    candidates = [
        restaurant,
        make_place("same", PlaceCategory.RESTAURANT, rating=4.1),
        make_place("better", PlaceCategory.RESTAURANT, rating=4.7),
        make_place("pricey", PlaceCategory.RESTAURANT, price_level=PriceLevel.HIGH),
        make_place("cafe", PlaceCategory.CAFE),
    ]
    service = _service(FakeProvider(candidates))

    similar = asyncio.run(service.get_similar_places(restaurant))

    assert _ids(similar) == ["better", "same"]


def test_static_provider_returns_nearest_first(origin, restaurant, museum):
    provider = StaticPlacesProvider([museum, restaurant])

    assert _ids(asyncio.run(provider.fetch_nearby(origin, 10_000, 10))) == ["rest", "museum"]
    assert _ids(asyncio.run(provider.fetch_nearby(origin, 1_000, 10))) == ["rest"]
    assert asyncio.run(provider.fetch_by_id("museum")) is museum
    assert asyncio.run(provider.fetch_by_id("missing")) is None


def _broken_source():
    raise OSError("static list unavailable")


def test_failing_fallback_source_returns_empty_list(origin):
    provider = FakeProvider([], failures=10)
    service = RecommendationService(provider, config=NO_DELAY, fallback_source=_broken_source,
                                    clock=Clock())

    assert asyncio.run(service.get_recommendations(origin, None)) == []
    assert asyncio.run(service.get_trending_places(origin)) == []
