"""
Recommendation Orchestrator.

`RecommendationService` owns the session-scoped state (recommendation cache
and shown-history) and sequences the ranking pipeline around an async places
provider:

    cache -> fetch (radius expansion, retries) -> filter (relax) -> score
    -> diversity -> time boost -> sort -> novelty filter -> truncate -> cache

Any failure after the cache lookup degrades to a fallback list built from a
static place source. Only a missing location is reported to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from math import ceil, log
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from geo_utils import distance_meters, is_within_radius
from models import (
    Location,
    MissingLocationError,
    Place,
    ProviderUnavailableError,
    RecommendationExplanation,
    RecommendationFilters,
    ScoredPlace,
    UserProfile,
    default_profile,
)
from ranking_logic import (
    apply_diversity,
    apply_filters,
    apply_time_boost,
    explain_place,
    score_candidates,
    score_place,
)
from recommendation_config import DEFAULT_CONFIG, RecommendationConfig, get_time_period
from sample_data import get_all_places

logger = logging.getLogger(__name__)


class PlacesProvider(Protocol):
    """Source of verified places (database, maps API, cache layers)."""

    async def fetch_nearby(self, location: Location, radius_meters: float,
                           limit: int) -> List[Place]:
        ...

    async def fetch_by_id(self, place_id: str) -> Optional[Place]:
        ...


FallbackSource = Callable[[], Sequence[Place]]


class StaticPlacesProvider:
    """In-memory provider over a fixed list, nearest first."""

    def __init__(self, places: Optional[Sequence[Place]] = None):
        self._places = list(places) if places is not None else get_all_places()

    async def fetch_nearby(self, location: Location, radius_meters: float,
                           limit: int) -> List[Place]:
        nearby = [p for p in self._places if is_within_radius(p.location, location, radius_meters)]
        nearby.sort(key=lambda p: distance_meters(location, p.location))
        return nearby[:limit]

    async def fetch_by_id(self, place_id: str) -> Optional[Place]:
        return next((p for p in self._places if p.id == place_id), None)


@dataclass
class CacheEntry:
    places: List[Place]
    profile: UserProfile
    timestamp: datetime


class RecommendationService:
    """
    Personalized recommendations for one application session.

    Args:
        provider: Async places provider
        config: Tuning parameters (defaults to DEFAULT_CONFIG)
        fallback_source: Callable returning the static fallback places
        clock: Callable returning the current local time
    """

    def __init__(self, provider: PlacesProvider,
                 config: Optional[RecommendationConfig] = None,
                 fallback_source: Optional[FallbackSource] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.provider = provider
        self.config = config or DEFAULT_CONFIG
        self.fallback_source = fallback_source or get_all_places
        self.clock = clock or datetime.now
        self._cache: Dict[str, CacheEntry] = {}
        self._shown_history: set = set()

    @property
    def shown_history(self) -> frozenset:
        return frozenset(self._shown_history)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def get_recommendations(self, location: Optional[Location],
                                  profile: Optional[UserProfile] = None,
                                  filters: Optional[RecommendationFilters] = None) -> List[Place]:
        """
        Ranked places for a user at a location.

        Raises:
            MissingLocationError: when no location is available
        """
        if location is None:
            raise MissingLocationError()
        if profile is None:
            logger.info("No user profile, using default profile")
            profile = default_profile()

        logger.info(f"Starting recommendations at ({location.latitude}, {location.longitude}) "
                    f"interests={[i.value for i in profile.interests]} "
                    f"budget={profile.preferred_budget.value if profile.preferred_budget else None}")

        now = self.clock()

        cached = self._get_cached(location, profile, filters, now)
        if cached is not None:
            return cached

        try:
            places = await self._fetch_with_fallback(location, filters)

            if not places:
                logger.warning("No places found, using fallback data")
                return self.get_fallback_recommendations(location, profile)

            filtered = apply_filters(places, filters, profile, self.config, now)
            if (len(filtered) < self.config.search.min_results
                    and self.config.fallback.relax_filters):
                logger.info("Too few results, relaxing filters...")
                filtered = apply_filters(places, None, profile, self.config, now)

            logger.info(f"Scoring {len(filtered)} places...")
            scored = score_candidates(filtered, profile, location, self.config, now)
            scored.sort(key=lambda s: s.score, reverse=True)
            for idx, item in enumerate(scored[:5], 1):
                reason = item.explanation.primary_reason if item.explanation else ""
                logger.debug(f"  {idx}. {item.place.name} ({item.place.category.value}): "
                             f"{item.score:.1f} pts {reason}")

            diverse = apply_diversity(scored, self.config)
            logger.info(f"After diversity: {len(diverse)} places")

            boosted = apply_time_boost(diverse, self.config, now)
            logger.info(f"Time boost applied for {get_time_period(now).value}")

            boosted.sort(key=lambda s: s.score, reverse=True)
            fresh = self._filter_recently_shown(boosted)

            top_places = [item.place for item in fresh[:self.config.search.max_results]]

            self._store(location, profile, filters, top_places, now)
            if self.config.features.track_history:
                self._shown_history.update(p.id for p in top_places)

            logger.info(f"Generated {len(top_places)} personalized recommendations")
            return top_places

        except Exception as e:
            logger.error(f"Error generating recommendations: {e}")
            return self.get_fallback_recommendations(location, profile)

    def explain(self, places: Sequence[Place], location: Location,
                profile: Optional[UserProfile] = None) -> List[RecommendationExplanation]:
        """Explanations for places previously returned to the user."""
        profile = profile or default_profile()
        now = self.clock()
        return [explain_place(p, profile, location, self.config, now) for p in places]

    def clear_cache(self) -> None:
        """Drop cached recommendations and the shown-history."""
        self._cache.clear()
        self._shown_history.clear()
        logger.info("Recommendation cache cleared")

    async def get_trending_places(self, location: Location, limit: int = 10) -> List[Place]:
        """Well-rated places weighted by review volume."""
        try:
            nearby = await self.provider.fetch_nearby(location, 10000, self.config.search.fetch_limit)
        except Exception as e:
            logger.error(f"Error getting trending places: {e}")
            return self._fallback_head(limit)

        if not nearby:
            return self._fallback_head(limit)

        trending = [p for p in nearby if p.rating >= 4.0]
        trending.sort(key=lambda p: p.rating * log(p.review_count + 1), reverse=True)
        return trending[:limit]

    async def get_similar_places(self, place: Place, limit: int = 5) -> List[Place]:
        """Places near `place` with the same category and price level."""
        nearby = await self.provider.fetch_nearby(place.location, 3000, self.config.search.fetch_limit)
        similar = [
            p for p in nearby
            if p.id != place.id
            and p.category == place.category
            and p.price_level == place.price_level
        ]
        similar.sort(key=lambda p: p.rating, reverse=True)
        return similar[:limit]

    def get_fallback_recommendations(self, location: Location,
                                     profile: UserProfile) -> List[Place]:
        """Static places near the user, ranked with the regular scorer."""
        if not self.config.fallback.use_mock_data:
            logger.warning("Fallback data disabled, returning no recommendations")
            return []

        logger.warning("Using fallback recommendations (static data)")
        try:
            source = list(self.fallback_source())
            now = self.clock()
            max_distance = self.config.search.default_radius * 2

            nearby = [p for p in source if is_within_radius(p.location, location, max_distance)]
            nearby.sort(key=lambda p: score_place(p, profile, location, self.config, now), reverse=True)
            nearby = nearby[:self.config.search.max_results]
        except Exception as e:
            logger.error(f"Fallback source failed: {e}")
            return []

        return nearby if nearby else source[:10]

    def _fallback_head(self, limit: int) -> List[Place]:
        try:
            return list(self.fallback_source())[:limit]
        except Exception as e:
            logger.error(f"Fallback source failed: {e}")
            return []

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def _clamp_radius(self, radius: float) -> float:
        search = self.config.search
        return max(search.min_radius, min(radius, search.max_radius))

    async def _fetch_with_fallback(self, location: Location,
                                   filters: Optional[RecommendationFilters]) -> List[Place]:
        """
        Fetch nearby places, expanding the radius when results are scarce
        and retrying provider errors with a fixed delay.

        Raises:
            ProviderUnavailableError: after `errors.max_retries` retries
        """
        search = self.config.search
        fallback = self.config.fallback
        radius = self._clamp_radius((filters.max_distance if filters else None) or search.default_radius)
        max_attempts = fallback.max_expansions + 1 if fallback.expand_radius else 1
        attempt = 0
        retries = 0

        while True:
            try:
                logger.info(f"Searching places within {radius:.0f}m "
                            f"(attempt {attempt + 1}/{max_attempts})")
                places = await self.provider.fetch_nearby(location, radius, search.fetch_limit)
            except Exception as e:
                logger.error(f"Error fetching places (retry {retries}/{self.config.errors.max_retries}): {e}")
                if retries >= self.config.errors.max_retries:
                    raise ProviderUnavailableError(str(e)) from e
                retries += 1
                await asyncio.sleep(self.config.errors.retry_delay_ms / 1000)
                continue

            if len(places) >= search.min_results:
                logger.info(f"Found {len(places)} places")
                return places

            attempt += 1
            if attempt >= max_attempts or radius >= search.max_radius:
                return places

            radius = min(radius + fallback.radius_expansion_step, search.max_radius)
            logger.info(f"Expanding search radius to {radius:.0f}m")

    # -------------------------------------------------------------------------
    # Cache & history
    # -------------------------------------------------------------------------

    def _cache_key(self, location: Location, filters: Optional[RecommendationFilters]) -> str:
        precision = self.config.search.cache_coordinate_precision
        if filters and filters.categories:
            filter_key = ",".join(sorted(c.value for c in filters.categories))
        else:
            filter_key = "all"
        return (f"{round(location.latitude, precision)}_"
                f"{round(location.longitude, precision)}_{filter_key}")

    def _get_cached(self, location: Location, profile: UserProfile,
                    filters: Optional[RecommendationFilters],
                    now: datetime) -> Optional[List[Place]]:
        if not self.config.fallback.use_cache:
            return None

        key = self._cache_key(location, filters)
        entry = self._cache.get(key)
        if entry is None:
            logger.debug(f"No cache found for key: {key}")
            return None

        expiration = timedelta(minutes=self.config.search.cache_expiration_minutes)
        if now - entry.timestamp > expiration:
            logger.info(f"Cache expired for key: {key}")
            del self._cache[key]
            return None

        if (tuple(entry.profile.interests) != tuple(profile.interests)
                or entry.profile.preferred_budget != profile.preferred_budget):
            logger.info("Profile changed, invalidating cache")
            del self._cache[key]
            return None

        logger.info(f"Cache HIT for key: {key}")
        return list(entry.places)

    def _store(self, location: Location, profile: UserProfile,
               filters: Optional[RecommendationFilters], places: List[Place],
               now: datetime) -> None:
        if not self.config.fallback.use_cache:
            return
        key = self._cache_key(location, filters)
        self._cache[key] = CacheEntry(places=list(places), profile=profile, timestamp=now)
        logger.debug(f"Cached {len(places)} recommendations with key: {key}")

    def _filter_recently_shown(self, scored: List[ScoredPlace]) -> List[ScoredPlace]:
        """Skip already shown places unless that would drop more than half."""
        if not self.config.features.avoid_recently_shown:
            return scored

        min_to_keep = ceil(len(scored) / 2)
        fresh = [item for item in scored if item.place.id not in self._shown_history]
        return fresh if len(fresh) >= min_to_keep else scored
