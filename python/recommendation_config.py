"""
Configuration for the recommendation system.

Centralized place to tune scoring weights, search radii, diversity,
time-of-day context, safety, fallback and retry behaviour. Every ranking
function takes a `RecommendationConfig` so tests can vary parameters.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from models import PlaceCategory, TimePeriod


@dataclass(frozen=True)
class ScoringWeights:
    """Points per sub-score (must total 100)."""
    interests: float = 30
    rating: float = 20
    popularity: float = 10
    distance: float = 10
    budget: float = 10
    activity_level: float = 5
    travel_style: float = 5
    dietary: float = 5
    time_preference: float = 5

    def as_dict(self) -> Dict[str, float]:
        return {
            "interests": self.interests,
            "rating": self.rating,
            "popularity": self.popularity,
            "distance": self.distance,
            "budget": self.budget,
            "activity_level": self.activity_level,
            "travel_style": self.travel_style,
            "dietary": self.dietary,
            "time_preference": self.time_preference,
        }

    def __post_init__(self):
        total = sum(self.as_dict().values())
        if abs(total - 100) > 1e-6:
            raise ValueError(f"Scoring weights must total 100, got {total}")


@dataclass(frozen=True)
class SearchConfig:
    default_radius: float = 5000       # meters
    max_radius: float = 20000
    min_radius: float = 1000
    fetch_limit: int = 100
    max_results: int = 20
    min_results: int = 5
    cache_expiration_minutes: float = 15
    cache_coordinate_precision: int = 4  # decimals kept in the cache key


@dataclass(frozen=True)
class DiversityConfig:
    enabled: bool = True
    max_same_category_percent: float = 0.4
    category_spread_factor: float = 0.3
    min_category_variety: int = 3


@dataclass(frozen=True)
class TimePeriodConfig:
    hours: Tuple[int, int]
    boost_categories: FrozenSet[PlaceCategory]
    boost_factor: float


def _default_periods() -> Dict[TimePeriod, TimePeriodConfig]:
    return {
        TimePeriod.MORNING: TimePeriodConfig(
            hours=(6, 12),
            boost_categories=frozenset({
                PlaceCategory.CAFE, PlaceCategory.RESTAURANT,
                PlaceCategory.PARK, PlaceCategory.MUSEUM,
            }),
            boost_factor=1.2,
        ),
        TimePeriod.AFTERNOON: TimePeriodConfig(
            hours=(12, 18),
            boost_categories=frozenset({
                PlaceCategory.RESTAURANT, PlaceCategory.MUSEUM, PlaceCategory.GALLERY,
                PlaceCategory.SHOP, PlaceCategory.MARKET,
            }),
            boost_factor=1.2,
        ),
        TimePeriod.EVENING: TimePeriodConfig(
            hours=(18, 24),
            boost_categories=frozenset({
                PlaceCategory.RESTAURANT, PlaceCategory.BAR,
                PlaceCategory.THEATER, PlaceCategory.CULTURAL_CENTER,
            }),
            boost_factor=1.2,
        ),
        TimePeriod.LATE_NIGHT: TimePeriodConfig(
            hours=(0, 6),
            boost_categories=frozenset({PlaceCategory.BAR}),
            boost_factor=1.1,
        ),
    }


@dataclass(frozen=True)
class TimeContextConfig:
    enabled: bool = True
    periods: Dict[TimePeriod, TimePeriodConfig] = field(default_factory=_default_periods)


@dataclass(frozen=True)
class SafetyConfig:
    enabled: bool = True
    min_safety_rating: float = 3.0   # 1-5 scale
    safety_weight: float = 0.1
    warn_low_safety: bool = True


@dataclass(frozen=True)
class FallbackConfig:
    use_cache: bool = True
    use_mock_data: bool = True
    expand_radius: bool = True
    radius_expansion_step: float = 2000
    max_expansions: int = 3
    relax_filters: bool = True


@dataclass(frozen=True)
class ErrorConfig:
    max_retries: int = 2
    retry_delay_ms: int = 1000


@dataclass(frozen=True)
class FeatureConfig:
    explain_recommendations: bool = True
    track_history: bool = True
    avoid_recently_shown: bool = True


@dataclass(frozen=True)
class RecommendationConfig:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    search: SearchConfig = field(default_factory=SearchConfig)
    diversity: DiversityConfig = field(default_factory=DiversityConfig)
    time_context: TimeContextConfig = field(default_factory=TimeContextConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    errors: ErrorConfig = field(default_factory=ErrorConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)


DEFAULT_CONFIG = RecommendationConfig()


def get_time_period(now: Optional[datetime] = None) -> TimePeriod:
    """Map the wall-clock hour to morning/afternoon/evening/late night."""
    hour = (now or datetime.now()).hour

    if 6 <= hour < 12:
        return TimePeriod.MORNING
    if 12 <= hour < 18:
        return TimePeriod.AFTERNOON
    if 18 <= hour < 24:
        return TimePeriod.EVENING
    return TimePeriod.LATE_NIGHT


def get_time_period_boost(category: PlaceCategory,
                          config: RecommendationConfig = DEFAULT_CONFIG,
                          now: Optional[datetime] = None) -> float:
    """Score multiplier for a category at the current time of day."""
    if not config.time_context.enabled:
        return 1.0

    period = config.time_context.periods.get(get_time_period(now))
    if period is not None and category in period.boost_categories:
        return period.boost_factor
    return 1.0
