#!/usr/bin/env python3
"""
Demo script for the tourism recommendation core.

This script runs the recommendation pipeline and the route optimizer on the
sample Madrid data, showing score breakdowns and an optimized walking tour.

Usage:
    python run_demo.py
"""

import asyncio
import logging
from datetime import datetime

from models import ActivityLevel, Interest, Location, PriceLevel, TravelStyle, UserProfile
from ranking_logic import score_frame
from recommendation_service import RecommendationService, StaticPlacesProvider
from route_optimizer import format_duration, is_route_feasible, optimize_route
from geo_utils import format_distance
from sample_data import MADRID_CENTER, SAMPLE_PLACES

logging.basicConfig(level=logging.INFO)


def print_separator(char: str = "=", length: int = 60):
    """Print a separator line."""
    print(char * length)


async def run_demo():
    """Run the recommendation and route demo with a few profiles."""
    center = Location(*MADRID_CENTER)
    now = datetime.now().replace(hour=11, minute=0, second=0, microsecond=0)
    service = RecommendationService(StaticPlacesProvider(), clock=lambda: now)

    print_separator()
    print("TOURISM RECOMMENDATIONS - Demo")
    print_separator()
    print(f"\nSearch center: Madrid ({center.latitude}, {center.longitude})")
    print(f"Total places in sample data: {len(SAMPLE_PLACES)}")

    scenarios = [
        {
            "name": "Food lover, medium budget",
            "profile": UserProfile(
                interests=(Interest.GASTRONOMY,),
                preferred_budget=PriceLevel.MEDIUM,
            ),
        },
        {
            "name": "Culture couple, relaxed pace",
            "profile": UserProfile(
                interests=(Interest.CULTURE, Interest.ART),
                preferred_budget=PriceLevel.HIGH,
                travel_style=TravelStyle.COUPLE,
                activity_level=ActivityLevel.RELAXED,
            ),
        },
        {
            "name": "Outdoor family, low budget",
            "profile": UserProfile(
                interests=(Interest.NATURE, Interest.HISTORY),
                preferred_budget=PriceLevel.LOW,
                travel_style=TravelStyle.FAMILY,
            ),
        },
    ]

    for scenario in scenarios:
        print("\n")
        print_separator("-")
        print(f"Scenario: {scenario['name']}")
        print_separator("-")

        profile = scenario["profile"]
        service.clear_cache()
        places = await service.get_recommendations(center, profile)

        frame = score_frame(places, profile, center, now=now)
        print(frame[["rank", "name", "category", "distance_m", "interests", "score"]]
              .head(5).round(2).to_string(index=False))

        print("\nWhy these places?")
        for place, explanation in zip(places[:3], service.explain(places[:3], center, profile)):
            print(f"  {place.name}: {explanation.primary_reason}")
            for reason in explanation.secondary_reasons:
                print(f"    - {reason}")

        route = optimize_route(places[:4], center, now)
        report = is_route_feasible(route)
        print(f"\nRoute ({format_distance(route.total_distance_meters)}, "
              f"{format_duration(route.total_duration_minutes)}):")
        for stop in route.stops:
            print(f"  {stop.order + 1}. {stop.place.name} "
                  f"{stop.arrival_time:%H:%M}-{stop.departure_time:%H:%M}")
        if not report.feasible:
            for conflict in report.conflicts:
                print(f"  ! {conflict}")

    print()
    print_separator()
    print("Demo complete!")
    print_separator()


if __name__ == "__main__":
    asyncio.run(run_demo())
