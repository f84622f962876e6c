"""
Domain records for the tourism recommendation core.

Places, user profiles and locations arrive from external collaborators
(database, maps API, session store). The core only reads them. Enumeration
values are the wire values used by the mobile app and the places database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


DEFAULT_SAFETY_RATING = 4.0
DEFAULT_VISIT_DURATION_MIN = 60
DEFAULT_MAX_DISTANCE_KM = 10.0

# datetime.weekday() order
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PlaceCategory(str, Enum):
    RESTAURANT = "restaurante"
    MUSEUM = "museo"
    PARK = "parque"
    MONUMENT = "monumento"
    BAR = "bar"
    CAFE = "cafe"
    SHOP = "tienda"
    GALLERY = "galeria"
    THEATER = "teatro"
    PLAZA = "plaza"
    MARKET = "mercado"
    VIEWPOINT = "mirador"
    CHURCH = "iglesia"
    CULTURAL_CENTER = "centro_cultural"


class PriceLevel(str, Enum):
    """Ordinal price tier: low < medium < high < premium."""
    LOW = "bajo"
    MEDIUM = "medio"
    HIGH = "alto"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return PRICE_ORDER.index(self)


PRICE_ORDER: list[PriceLevel] = [
    PriceLevel.LOW, PriceLevel.MEDIUM, PriceLevel.HIGH, PriceLevel.PREMIUM,
]


class Interest(str, Enum):
    GASTRONOMY = "gastronomia"
    CULTURE = "cultura"
    NATURE = "naturaleza"
    ADVENTURE = "aventura"
    NIGHTLIFE = "vida_nocturna"
    SHOPPING = "compras"
    HISTORY = "historia"
    ART = "arte"
    SPORTS = "deportes"
    RELAXATION = "relax"


class TravelStyle(str, Enum):
    SOLO = "solo"
    COUPLE = "pareja"
    FAMILY = "familia"
    FRIENDS = "amigos"
    GROUP = "grupo"


class ActivityLevel(str, Enum):
    RELAXED = "relajado"
    MODERATE = "moderado"
    ACTIVE = "activo"
    INTENSE = "intenso"


class DietaryPreference(str, Enum):
    NONE = "ninguna"
    VEGETARIAN = "vegetariano"
    VEGAN = "vegano"
    GLUTEN_FREE = "sin_gluten"
    HALAL = "halal"
    KOSHER = "kosher"
    LACTOSE_FREE = "sin_lactosa"


class TimePeriod(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    LATE_NIGHT = "late_night"


# =============================================================================
# ERRORS
# =============================================================================

class RecommendationError(Exception):
    """Base class for recommendation core errors."""


class ProviderUnavailableError(RecommendationError):
    """The places provider kept failing after all retries."""


class MissingLocationError(RecommendationError):
    """No current location; the caller must obtain one before asking."""

    def __init__(self, message: str = "location required"):
        super().__init__(message)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class Location:
    """A coordinate, optionally with GPS accuracy (m) and epoch-ms timestamp."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class DayHours:
    """Opening window for one weekday, local `HH:MM` strings."""
    open: str
    close: str


@dataclass(frozen=True)
class Place:
    """A point of interest as supplied by the places provider."""
    id: str
    name: str
    category: PlaceCategory
    latitude: float
    longitude: float
    price_level: PriceLevel = PriceLevel.MEDIUM
    rating: float = 0.0
    review_count: int = 0
    tags: frozenset[str] = frozenset()
    # excluded from the hash; dicts are unhashable
    opening_hours: Optional[dict[str, DayHours]] = field(default=None, hash=False)
    safety_rating: Optional[float] = None
    average_visit_duration: Optional[int] = None
    description: Optional[str] = None
    address: Optional[str] = None

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)

    @property
    def effective_safety(self) -> float:
        if self.safety_rating is None:
            return DEFAULT_SAFETY_RATING
        return self.safety_rating

    @property
    def visit_minutes(self) -> int:
        return self.average_visit_duration or DEFAULT_VISIT_DURATION_MIN


@dataclass(frozen=True)
class UserProfile:
    """Stated preferences of the requesting user."""
    interests: tuple[Interest, ...] = ()
    preferred_budget: Optional[PriceLevel] = PriceLevel.MEDIUM
    travel_style: Optional[TravelStyle] = None
    activity_level: Optional[ActivityLevel] = None
    dietary_preferences: tuple[DietaryPreference, ...] = ()
    preferred_times: tuple[TimePeriod, ...] = ()
    max_distance_km: Optional[float] = DEFAULT_MAX_DISTANCE_KM
    language: str = "es"


def default_profile() -> UserProfile:
    """Neutral profile used when the user has not completed onboarding."""
    return UserProfile(interests=(), preferred_budget=PriceLevel.MEDIUM, language="es")


@dataclass(frozen=True)
class RecommendationFilters:
    """Optional hard constraints requested by the caller."""
    categories: tuple[PlaceCategory, ...] = ()
    budget_level: Optional[PriceLevel] = None
    min_rating: Optional[float] = None
    open_now: bool = False
    max_distance: Optional[float] = None  # meters


@dataclass
class RecommendationExplanation:
    primary_reason: str
    secondary_reasons: list[str]
    score: float
    match_percentage: int


@dataclass
class ScoredPlace:
    """A candidate with its working score during one ranking pass."""
    place: Place
    score: float
    explanation: Optional[RecommendationExplanation] = None


@dataclass
class RoutePlace:
    place: Place
    order: int
    arrival_time: datetime
    departure_time: datetime

    @property
    def place_id(self) -> str:
        return self.place.id


@dataclass
class OptimizedRoute:
    stops: list[RoutePlace] = field(default_factory=list)
    total_distance_meters: float = 0.0
    total_duration_minutes: int = 0

    @property
    def estimated_times(self) -> list[tuple[str, datetime, datetime]]:
        return [(s.place_id, s.arrival_time, s.departure_time) for s in self.stops]

    @property
    def ordered_places(self) -> list[Place]:
        return [s.place for s in self.stops]


@dataclass
class FeasibilityReport:
    feasible: bool
    conflicts: list[str] = field(default_factory=list)
