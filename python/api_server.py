"""
FastAPI Server for the tourism recommendation core.

Provides REST API endpoints for personalized recommendations and routes.
Run with: uvicorn api_server:app --port 8000

Endpoints:
- POST /recommendations: Ranked places for a location and profile
- GET /trending: Well-rated popular places nearby
- POST /route: Optimized visiting order with feasibility check
- DELETE /cache: Clear recommendation cache and shown-history
- GET /categories: Enumerations and the interest -> category table
- GET /health: Health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from geo_utils import format_distance
from models import (
    ActivityLevel,
    DietaryPreference,
    Interest,
    Location,
    MissingLocationError,
    PlaceCategory,
    PriceLevel,
    RecommendationFilters,
    TimePeriod,
    TravelStyle,
    UserProfile,
)
from ranking_logic import INTEREST_CATEGORY_MAPPING
from recommendation_service import RecommendationService, StaticPlacesProvider
from route_optimizer import format_duration, is_route_feasible, optimize_route

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Global service instance (one session per process)
_service: Optional[RecommendationService] = None


# =============================================================================
# PYDANTIC MODELS (Request/Response schemas)
# =============================================================================

class LocationInput(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = None
    timestamp: Optional[int] = None

    def to_location(self) -> Location:
        return Location(self.latitude, self.longitude, self.accuracy, self.timestamp)


class ProfileInput(BaseModel):
    """Input schema for user preferences."""
    interests: List[Interest] = []
    preferred_budget: Optional[PriceLevel] = Field(PriceLevel.MEDIUM, alias="preferredBudget")
    travel_style: Optional[TravelStyle] = Field(None, alias="travelStyle")
    activity_level: Optional[ActivityLevel] = Field(None, alias="activityLevel")
    dietary_preferences: List[DietaryPreference] = Field([], alias="dietaryPreferences")
    preferred_times: List[TimePeriod] = Field([], alias="preferredTimes")
    max_distance_km: Optional[float] = Field(10, alias="maxDistanceKm", gt=0)
    language: str = "es"

    class Config:
        populate_by_name = True

    def to_profile(self) -> UserProfile:
        return UserProfile(
            interests=tuple(self.interests),
            preferred_budget=self.preferred_budget,
            travel_style=self.travel_style,
            activity_level=self.activity_level,
            dietary_preferences=tuple(self.dietary_preferences),
            preferred_times=tuple(self.preferred_times),
            max_distance_km=self.max_distance_km,
            language=self.language,
        )


class FiltersInput(BaseModel):
    categories: List[PlaceCategory] = []
    budget_level: Optional[PriceLevel] = Field(None, alias="budgetLevel")
    min_rating: Optional[float] = Field(None, alias="minRating", ge=0, le=5)
    open_now: bool = Field(False, alias="openNow")
    max_distance: Optional[float] = Field(None, alias="maxDistance", gt=0)

    class Config:
        populate_by_name = True

    def to_filters(self) -> RecommendationFilters:
        return RecommendationFilters(
            categories=tuple(self.categories),
            budget_level=self.budget_level,
            min_rating=self.min_rating,
            open_now=self.open_now,
            max_distance=self.max_distance,
        )


class RecommendationRequest(BaseModel):
    location: Optional[LocationInput] = None
    profile: Optional[ProfileInput] = None
    filters: Optional[FiltersInput] = None


class PlaceOutput(BaseModel):
    id: str
    name: str
    category: PlaceCategory
    latitude: float
    longitude: float
    price_level: PriceLevel
    rating: float
    review_count: int
    tags: List[str] = []
    safety_rating: Optional[float] = None
    reason: Optional[str] = None
    secondary_reasons: List[str] = []
    match_percentage: Optional[int] = None


class RecommendationResponse(BaseModel):
    places: List[PlaceOutput]
    debug: Dict[str, Any]


class RouteRequest(BaseModel):
    place_ids: List[str] = Field(..., alias="placeIds")
    start: LocationInput
    start_time: Optional[datetime] = Field(None, alias="startTime")

    class Config:
        populate_by_name = True


class RouteStopOutput(BaseModel):
    order: int
    place_id: str
    name: str
    arrival_time: datetime
    departure_time: datetime


class RouteResponse(BaseModel):
    stops: List[RouteStopOutput]
    total_distance_meters: float
    total_duration_minutes: int
    formatted_distance: str
    formatted_duration: str
    feasible: bool
    conflicts: List[str]


class HealthResponse(BaseModel):
    """Response schema for health check."""
    status: str
    service_ready: bool
    cached_entries: int
    shown_history: int


def _place_output(place, explanation=None) -> PlaceOutput:
    return PlaceOutput(
        id=place.id,
        name=place.name,
        category=place.category,
        latitude=place.latitude,
        longitude=place.longitude,
        price_level=place.price_level,
        rating=place.rating,
        review_count=place.review_count,
        tags=sorted(place.tags),
        safety_rating=place.safety_rating,
        reason=explanation.primary_reason if explanation else None,
        secondary_reasons=explanation.secondary_reasons if explanation else [],
        match_percentage=explanation.match_percentage if explanation else None,
    )


def get_service() -> RecommendationService:
    global _service
    if _service is None:
        _service = RecommendationService(StaticPlacesProvider())
    return _service


# =============================================================================
# FASTAPI APP
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the recommendation service on startup."""
    global _service
    logger.info("Starting recommendation service...")
    _service = RecommendationService(StaticPlacesProvider())
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Tourism Recommendation API",
    description="Personalized place recommendations and visiting routes",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware for the mobile/web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service_ready=_service is not None,
        cached_entries=_service.cache_size if _service else 0,
        shown_history=len(_service.shown_history) if _service else 0,
    )


@app.post("/recommendations", response_model=RecommendationResponse)
async def recommendations(request: RecommendationRequest):
    """
    Personalized recommendations.

    A missing profile falls back to the default profile; a missing
    location is rejected so the client can prompt for permission.
    """
    service = get_service()

    location = request.location.to_location() if request.location else None
    profile = request.profile.to_profile() if request.profile else None
    filters = request.filters.to_filters() if request.filters else None

    try:
        places = await service.get_recommendations(location, profile, filters)
    except MissingLocationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    explanations = service.explain(places, location, profile)
    outputs = [_place_output(p, e) for p, e in zip(places, explanations)]

    debug = {
        "n_output": len(outputs),
        "top_3_ids": [p.id for p in outputs[:3]],
        "default_profile": request.profile is None,
    }
    logger.info(f"Returned {len(outputs)} recommendations. Top: {debug['top_3_ids']}")

    return RecommendationResponse(places=outputs, debug=debug)


@app.get("/trending", response_model=List[PlaceOutput])
async def trending(lat: float, lon: float, limit: int = 10):
    """Trending places near a coordinate."""
    if limit <= 0:
        raise HTTPException(status_code=400, detail="limit must be positive")
    places = await get_service().get_trending_places(Location(lat, lon), limit)
    return [_place_output(p) for p in places]


@app.post("/route", response_model=RouteResponse)
async def route(request: RouteRequest):
    """Optimized visiting order for the selected places."""
    service = get_service()

    places = []
    for place_id in request.place_ids:
        place = await service.provider.fetch_by_id(place_id)
        if place is None:
            raise HTTPException(status_code=404, detail=f"Unknown place: {place_id}")
        places.append(place)

    optimized = optimize_route(places, request.start.to_location(), request.start_time)
    report = is_route_feasible(optimized)

    return RouteResponse(
        stops=[
            RouteStopOutput(
                order=stop.order,
                place_id=stop.place_id,
                name=stop.place.name,
                arrival_time=stop.arrival_time,
                departure_time=stop.departure_time,
            )
            for stop in optimized.stops
        ],
        total_distance_meters=round(optimized.total_distance_meters, 1),
        total_duration_minutes=optimized.total_duration_minutes,
        formatted_distance=format_distance(optimized.total_distance_meters),
        formatted_duration=format_duration(optimized.total_duration_minutes),
        feasible=report.feasible,
        conflicts=report.conflicts,
    )


@app.delete("/cache")
async def clear_cache():
    get_service().clear_cache()
    return {"cleared": True}


@app.get("/categories")
async def list_categories():
    """List enumerations and the interest -> category mapping."""
    return {
        "categories": [c.value for c in PlaceCategory],
        "interests": [i.value for i in Interest],
        "price_levels": [p.value for p in PriceLevel],
        "interest_categories": {
            interest.value: sorted(c.value for c in categories)
            for interest, categories in INTEREST_CATEGORY_MAPPING.items()
        },
    }


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
