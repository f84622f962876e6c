"""
Ranking Logic for the tourism recommendation core.

This module implements the decision-making logic for filtering and ranking
places against a user profile and location.

Scoring Formula (max 100 points, default weights):
- Interests: 0-30 (interest -> category map, tag matches)
- Rating: 0-20 (stars / 5)
- Popularity: 0-10 (review count, saturates at 100)
- Distance: 0-10 (linear decay to the profile's max distance)
- Budget: 0-10 (ordinal gap between preferred and actual price level)
- Activity level: 0-5
- Travel style: 0-5
- Dietary: 0-5 (food and drink places only)
- Time preference: 0-5
Then a safety adjustment of +/-2 points, and a clamp to [0, 100].
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from math import ceil
from typing import Iterable, Mapping, Optional

import pandas as pd

from geo_utils import distance_meters, format_distance
from models import (
    WEEKDAYS,
    ActivityLevel,
    DietaryPreference,
    Interest,
    Location,
    Place,
    PlaceCategory,
    PriceLevel,
    RecommendationExplanation,
    RecommendationFilters,
    ScoredPlace,
    TravelStyle,
    UserProfile,
)
from recommendation_config import (
    DEFAULT_CONFIG,
    RecommendationConfig,
    get_time_period,
    get_time_period_boost,
)

logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUP TABLES
# =============================================================================

INTEREST_CATEGORY_MAPPING: Mapping[Interest, frozenset[PlaceCategory]] = {
    Interest.GASTRONOMY: frozenset({PlaceCategory.RESTAURANT, PlaceCategory.CAFE, PlaceCategory.MARKET}),
    Interest.CULTURE: frozenset({
        PlaceCategory.MUSEUM, PlaceCategory.GALLERY,
        PlaceCategory.CULTURAL_CENTER, PlaceCategory.THEATER,
    }),
    Interest.NATURE: frozenset({PlaceCategory.PARK, PlaceCategory.VIEWPOINT}),
    Interest.ADVENTURE: frozenset({PlaceCategory.PARK, PlaceCategory.VIEWPOINT}),
    Interest.NIGHTLIFE: frozenset({PlaceCategory.BAR}),
    Interest.SHOPPING: frozenset({PlaceCategory.SHOP, PlaceCategory.MARKET}),
    Interest.HISTORY: frozenset({PlaceCategory.MUSEUM, PlaceCategory.MONUMENT, PlaceCategory.CHURCH}),
    Interest.ART: frozenset({PlaceCategory.GALLERY, PlaceCategory.MUSEUM, PlaceCategory.THEATER}),
    Interest.SPORTS: frozenset({PlaceCategory.PARK}),
    Interest.RELAXATION: frozenset({PlaceCategory.PARK, PlaceCategory.CAFE, PlaceCategory.VIEWPOINT}),
}

ACTIVITY_CATEGORY_MAPPING: Mapping[ActivityLevel, frozenset[PlaceCategory]] = {
    ActivityLevel.RELAXED: frozenset({
        PlaceCategory.CAFE, PlaceCategory.RESTAURANT,
        PlaceCategory.MUSEUM, PlaceCategory.GALLERY,
    }),
    ActivityLevel.MODERATE: frozenset({
        PlaceCategory.PARK, PlaceCategory.MARKET, PlaceCategory.CULTURAL_CENTER,
        PlaceCategory.SHOP, PlaceCategory.VIEWPOINT,
    }),
    ActivityLevel.ACTIVE: frozenset({PlaceCategory.PARK, PlaceCategory.VIEWPOINT}),
    ActivityLevel.INTENSE: frozenset({PlaceCategory.PARK, PlaceCategory.VIEWPOINT}),
}

TRAVEL_STYLE_KEYWORDS: Mapping[TravelStyle, frozenset[str]] = {
    TravelStyle.SOLO: frozenset({"tranquilo", "individual", "trabajo", "wifi"}),
    TravelStyle.COUPLE: frozenset({"romantico", "pareja", "cena", "intimo"}),
    TravelStyle.FAMILY: frozenset({"familia", "ninos", "kids", "playground"}),
    TravelStyle.FRIENDS: frozenset({"grupo", "social", "diversion", "bar"}),
    TravelStyle.GROUP: frozenset({"grupos", "eventos", "capacidad", "reservas"}),
}

DIETARY_KEYWORDS: Mapping[DietaryPreference, frozenset[str]] = {
    DietaryPreference.VEGETARIAN: frozenset({"vegetariano", "veggie", "vegetarian"}),
    DietaryPreference.VEGAN: frozenset({"vegano", "vegan", "plant-based"}),
    DietaryPreference.GLUTEN_FREE: frozenset({"sin gluten", "gluten-free", "celiac"}),
    DietaryPreference.HALAL: frozenset({"halal"}),
    DietaryPreference.KOSHER: frozenset({"kosher"}),
    DietaryPreference.LACTOSE_FREE: frozenset({"sin lactosa", "lactose-free", "dairy-free"}),
}

FOOD_CATEGORIES: frozenset[PlaceCategory] = frozenset({
    PlaceCategory.RESTAURANT, PlaceCategory.CAFE, PlaceCategory.BAR, PlaceCategory.MARKET,
})

# Budget sub-score by ordinal distance between preferred and actual level
BUDGET_GAP_SCORES = {0: 1.0, 1: 0.7, 2: 0.4, 3: 0.2}


@dataclass
class ScoreBreakdown:
    """Per-factor sub-scores (0-1) plus the weighted total."""
    interests: float
    rating: float
    popularity: float
    distance: float
    budget: float
    activity_level: float
    travel_style: float
    dietary: float
    time_preference: float
    distance_m: float
    safety_adjustment: float
    total: float

    def sub_scores(self) -> dict[str, float]:
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


def _tags_contain(tags: Iterable[str], keyword: str) -> int:
    """Number of tags containing `keyword` (case-insensitive substring)."""
    kw = keyword.lower()
    return sum(1 for tag in tags if kw in tag.lower())


# =============================================================================
# SUB-SCORES
# =============================================================================

def interest_score(place: Place, profile: UserProfile) -> float:
    if not profile.interests:
        # No interests set - popularity as proxy
        return min(place.review_count / 50, 1) * 0.7

    match_count = 0.0
    for interest in profile.interests:
        if place.category in INTEREST_CATEGORY_MAPPING.get(interest, frozenset()):
            match_count += 1.0
        match_count += _tags_contain(place.tags, interest.value) * 0.3

    return min(match_count / len(profile.interests), 1)


def budget_score(place: Place, profile: UserProfile) -> float:
    preferred = profile.preferred_budget or PriceLevel.MEDIUM
    gap = abs(preferred.rank - place.price_level.rank)
    return BUDGET_GAP_SCORES[gap]


def activity_level_score(place: Place, profile: UserProfile) -> float:
    if profile.activity_level is None:
        return 0.7
    fitting = ACTIVITY_CATEGORY_MAPPING.get(profile.activity_level, frozenset())
    return 1.0 if place.category in fitting else 0.5


def travel_style_score(place: Place, profile: UserProfile) -> float:
    if profile.travel_style is None:
        return 0.7
    keywords = TRAVEL_STYLE_KEYWORDS.get(profile.travel_style, frozenset())
    if any(_tags_contain(place.tags, kw) for kw in keywords):
        return 1.0
    return 0.6


def dietary_score(place: Place, profile: UserProfile) -> float:
    if place.category not in FOOD_CATEGORIES:
        return 1.0  # not applicable

    preferences = [p for p in profile.dietary_preferences if p != DietaryPreference.NONE]
    if not preferences:
        return 1.0

    matched = 0
    for pref in preferences:
        keywords = DIETARY_KEYWORDS.get(pref, frozenset())
        if any(_tags_contain(place.tags, kw) for kw in keywords):
            matched += 1

    return matched / len(preferences)


def time_preference_score(place: Place, profile: UserProfile,
                          now: Optional[datetime] = None) -> float:
    if not profile.preferred_times:
        return 1.0

    if get_time_period(now) in profile.preferred_times:
        return 1.0
    return 0.7 if place.opening_hours else 0.8


def score_breakdown(place: Place, profile: UserProfile, location: Location,
                    config: RecommendationConfig = DEFAULT_CONFIG,
                    now: Optional[datetime] = None) -> ScoreBreakdown:
    """
    Score a single place against a profile and origin.

    Args:
        place: Candidate place
        profile: User preferences
        location: Scoring origin
        config: Weights and safety settings
        now: Clock used for time-of-day preferences (defaults to now)

    Returns:
        ScoreBreakdown with every sub-score and the clamped 0-100 total
    """
    distance_m = distance_meters(location, place.location)
    max_distance_m = (profile.max_distance_km or 10) * 1000

    breakdown = ScoreBreakdown(
        interests=interest_score(place, profile),
        rating=place.rating / 5,
        popularity=min(place.review_count / 100, 1),
        distance=max(0.0, 1 - distance_m / max_distance_m),
        budget=budget_score(place, profile),
        activity_level=activity_level_score(place, profile),
        travel_style=travel_style_score(place, profile),
        dietary=dietary_score(place, profile),
        time_preference=time_preference_score(place, profile, now),
        distance_m=distance_m,
        safety_adjustment=0.0,
        total=0.0,
    )

    weights = config.weights.as_dict()
    total = sum(value * weights[name] for name, value in breakdown.sub_scores().items())

    if config.safety.enabled:
        breakdown.safety_adjustment = (place.effective_safety - 3) * config.safety.safety_weight * 10
        total += breakdown.safety_adjustment

    breakdown.total = max(0.0, min(100.0, total))
    return breakdown


def score_place(place: Place, profile: UserProfile, location: Location,
                config: RecommendationConfig = DEFAULT_CONFIG,
                now: Optional[datetime] = None) -> float:
    """Relevance score in [0, 100]."""
    return score_breakdown(place, profile, location, config, now).total


def explain_place(place: Place, profile: UserProfile, location: Location,
                  config: RecommendationConfig = DEFAULT_CONFIG,
                  now: Optional[datetime] = None,
                  breakdown: Optional[ScoreBreakdown] = None) -> RecommendationExplanation:
    """Human-readable reasons why a place was recommended."""
    if breakdown is None:
        breakdown = score_breakdown(place, profile, location, config, now)
    reasons: list[str] = []

    for interest in profile.interests:
        if place.category in INTEREST_CATEGORY_MAPPING.get(interest, frozenset()):
            reasons.append(f"Matches your interest in {interest.value}")
            break

    if place.rating >= 4.5:
        reasons.append(f"Excellent rating ({place.rating:.1f}★)")

    if place.review_count > 50:
        reasons.append(f"Popular ({place.review_count} reviews)")

    if breakdown.distance_m < 1000:
        reasons.append(f"Very close ({format_distance(breakdown.distance_m)})")

    if profile.preferred_budget is not None and place.price_level == profile.preferred_budget:
        reasons.append(f"Price level {place.price_level.value}")

    return RecommendationExplanation(
        primary_reason=reasons[0] if reasons else "Recommended for you",
        secondary_reasons=reasons[1:3],
        score=breakdown.total,
        match_percentage=round(breakdown.total),
    )


def score_candidates(places: Iterable[Place], profile: UserProfile, location: Location,
                     config: RecommendationConfig = DEFAULT_CONFIG,
                     now: Optional[datetime] = None) -> list[ScoredPlace]:
    """Score (and optionally explain) every candidate."""
    scored: list[ScoredPlace] = []
    for place in places:
        breakdown = score_breakdown(place, profile, location, config, now)
        explanation = None
        if config.features.explain_recommendations:
            explanation = explain_place(place, profile, location, config, now, breakdown)
        scored.append(ScoredPlace(place=place, score=breakdown.total, explanation=explanation))
    return scored


def score_frame(places: Iterable[Place], profile: UserProfile, location: Location,
                config: RecommendationConfig = DEFAULT_CONFIG,
                now: Optional[datetime] = None) -> pd.DataFrame:
    """
    Score breakdown for a set of places as a DataFrame, sorted by total.

    Columns: id, name, category, distance_m, one column per sub-score,
    safety_adjustment, score, rank.
    """
    rows = []
    for place in places:
        breakdown = score_breakdown(place, profile, location, config, now)
        row = {
            "id": place.id,
            "name": place.name,
            "category": place.category.value,
            "distance_m": round(breakdown.distance_m, 1),
        }
        row.update(breakdown.sub_scores())
        row["safety_adjustment"] = breakdown.safety_adjustment
        row["score"] = breakdown.total
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=["id", "name", "category", "distance_m", "score", "rank"])

    df = pd.DataFrame(rows).sort_values("score", ascending=False).reset_index(drop=True)
    df["rank"] = range(1, len(df) + 1)
    return df


# =============================================================================
# FILTERS
# =============================================================================

def is_place_open(place: Place, now: Optional[datetime] = None) -> bool:
    """True when today's opening window contains the current time, [open, close)."""
    if not place.opening_hours:
        return False

    now = now or datetime.now()
    today = place.opening_hours.get(WEEKDAYS[now.weekday()])
    if today is None:
        return False

    current = now.strftime("%H:%M")
    return today.open <= current < today.close


def apply_filters(places: list[Place],
                  filters: Optional[RecommendationFilters],
                  profile: Optional[UserProfile],
                  config: RecommendationConfig = DEFAULT_CONFIG,
                  now: Optional[datetime] = None) -> list[Place]:
    """
    Apply hard constraints to a candidate list.

    Process:
    1. Safety threshold (if enabled)
    2. Explicit categories
    3. Explicit budget ceiling, else the profile budget plus one level
    4. Minimum rating (default 3.0)
    5. Open now (if requested)

    Returns:
        New list; the input is not modified
    """
    filtered = list(places)
    initial_count = len(filtered)

    if config.safety.enabled:
        before = len(filtered)
        filtered = [p for p in filtered if p.effective_safety >= config.safety.min_safety_rating]
        logger.debug(f"Safety filter: {before} -> {len(filtered)}")
        if config.safety.warn_low_safety:
            for p in filtered:
                if p.effective_safety < config.safety.min_safety_rating + 0.5:
                    logger.warning(f"Low safety rating for {p.name}: {p.effective_safety}")

    if filters and filters.categories:
        before = len(filtered)
        wanted = set(filters.categories)
        filtered = [p for p in filtered if p.category in wanted]
        logger.debug(f"Category filter ({', '.join(c.value for c in filters.categories)}): "
                     f"{before} -> {len(filtered)}")

    if filters and filters.budget_level is not None:
        before = len(filtered)
        ceiling = filters.budget_level.rank
        filtered = [p for p in filtered if p.price_level.rank <= ceiling]
        logger.debug(f"Budget filter (<={filters.budget_level.value}): {before} -> {len(filtered)}")
    elif profile is not None and profile.preferred_budget is not None:
        before = len(filtered)
        ceiling = profile.preferred_budget.rank + 1
        filtered = [p for p in filtered if p.price_level.rank <= ceiling]
        logger.debug(f"User budget (<={profile.preferred_budget.value} +1): {before} -> {len(filtered)}")

    min_rating = filters.min_rating if filters and filters.min_rating else 3.0
    before = len(filtered)
    filtered = [p for p in filtered if p.rating >= min_rating]
    logger.debug(f"Rating filter (>={min_rating}): {before} -> {len(filtered)}")

    if filters and filters.open_now:
        before = len(filtered)
        filtered = [p for p in filtered if is_place_open(p, now)]
        logger.debug(f"Open now filter: {before} -> {len(filtered)}")

    logger.info(f"Filtered {initial_count} -> {len(filtered)} places")
    return filtered


# =============================================================================
# RE-RANKING
# =============================================================================

def apply_diversity(scored: list[ScoredPlace],
                    config: RecommendationConfig = DEFAULT_CONFIG,
                    target_count: Optional[int] = None) -> list[ScoredPlace]:
    """
    Cap the share of any single category and reward variety.

    Walks `scored` in the given order, so callers sort by descending score
    first to keep the top places of each category. Returns new ScoredPlace
    objects; inputs keep their scores.
    """
    settings = config.diversity
    if not settings.enabled:
        return list(scored)

    if target_count is None:
        target_count = config.search.max_results

    max_per_category = ceil(len(scored) * settings.max_same_category_percent)
    counts: dict[PlaceCategory, int] = {}
    diverse: list[ScoredPlace] = []
    remaining: list[ScoredPlace] = []

    for item in scored:
        category = item.place.category
        if counts.get(category, 0) < max_per_category:
            diverse.append(item)
            counts[category] = counts.get(category, 0) + 1
        else:
            remaining.append(item)

    slots = target_count - len(diverse)
    if slots > 0:
        diverse.extend(remaining[:slots])

    factor = 1.0
    if len({item.place.category for item in diverse}) >= settings.min_category_variety:
        factor = 1 + settings.category_spread_factor * 0.1

    return [replace(item, score=item.score * factor) for item in diverse]


def apply_time_boost(scored: list[ScoredPlace],
                     config: RecommendationConfig = DEFAULT_CONFIG,
                     now: Optional[datetime] = None) -> list[ScoredPlace]:
    """Multiply scores of categories that suit the current time of day."""
    if not config.time_context.enabled:
        return list(scored)

    return [
        replace(item, score=item.score * get_time_period_boost(item.place.category, config, now))
        for item in scored
    ]


def rank_places(places: list[Place], profile: UserProfile, location: Location,
                filters: Optional[RecommendationFilters] = None,
                config: RecommendationConfig = DEFAULT_CONFIG,
                now: Optional[datetime] = None) -> list[ScoredPlace]:
    """
    Stateless ranking pass: filter, score, diversify, time-boost, sort.

    The stateful pieces (cache, shown-history, provider fallbacks) live in
    RecommendationService.
    """
    filtered = apply_filters(places, filters, profile, config, now)
    if len(filtered) < config.search.min_results and config.fallback.relax_filters and filters:
        logger.info("Too few results, relaxing filters...")
        filtered = apply_filters(places, None, profile, config, now)

    scored = score_candidates(filtered, profile, location, config, now)
    scored.sort(key=lambda s: s.score, reverse=True)

    diverse = apply_diversity(scored, config)
    boosted = apply_time_boost(diverse, config, now)
    boosted.sort(key=lambda s: s.score, reverse=True)
    return boosted
