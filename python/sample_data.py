"""
Sample place data for the fallback recommendation source and the demo.

This data simulates places around central Madrid with a mix of:
- All fourteen place categories
- Price levels from bajo to premium
- Tags for interest, travel style and dietary matching
- Opening hours, safety ratings and visit durations
"""

from models import WEEKDAYS, DayHours, Place, PlaceCategory, PriceLevel


# Puerta del Sol
MADRID_CENTER = (40.4168, -3.7038)


def _every_day(open_: str, close: str) -> dict[str, DayHours]:
    hours = DayHours(open_, close)
    return {day: hours for day in WEEKDAYS}


def _weekdays_except(closed_day: str, open_: str, close: str) -> dict[str, DayHours]:
    hours = _every_day(open_, close)
    hours.pop(closed_day)
    return hours


SAMPLE_PLACES: list[Place] = [
    # === FOOD & DRINK ===
    Place(
        id="es-rest-1",
        name="Casa Botín",
        category=PlaceCategory.RESTAURANT,
        latitude=40.4141,
        longitude=-3.7081,
        price_level=PriceLevel.HIGH,
        rating=4.6,
        review_count=5400,
        tags=frozenset({"tradicional", "cena", "romantico", "historia"}),
        opening_hours=_every_day("13:00", "23:30"),
        safety_rating=4.5,
        average_visit_duration=90,
    ),
    Place(
        id="es-rest-2",
        name="La Hummuseria",
        category=PlaceCategory.RESTAURANT,
        latitude=40.4262,
        longitude=-3.7007,
        price_level=PriceLevel.MEDIUM,
        rating=4.5,
        review_count=1200,
        tags=frozenset({"vegetariano", "vegano", "sin gluten", "social"}),
        opening_hours=_every_day("12:30", "23:00"),
        safety_rating=4.3,
        average_visit_duration=75,
    ),
    Place(
        id="es-cafe-1",
        name="Café de Oriente",
        category=PlaceCategory.CAFE,
        latitude=40.4184,
        longitude=-3.7117,
        price_level=PriceLevel.MEDIUM,
        rating=4.2,
        review_count=3100,
        tags=frozenset({"terraza", "tranquilo", "wifi"}),
        opening_hours=_every_day("08:30", "23:59"),
        safety_rating=4.6,
        average_visit_duration=45,
    ),
    Place(
        id="es-bar-1",
        name="Taberna La Dolores",
        category=PlaceCategory.BAR,
        latitude=40.4143,
        longitude=-3.6974,
        price_level=PriceLevel.LOW,
        rating=4.3,
        review_count=2600,
        tags=frozenset({"tapas", "grupo", "social", "vida_nocturna"}),
        opening_hours=_every_day("11:00", "23:59"),
        safety_rating=4.0,
        average_visit_duration=60,
    ),
    Place(
        id="es-market-1",
        name="Mercado de San Miguel",
        category=PlaceCategory.MARKET,
        latitude=40.4154,
        longitude=-3.7090,
        price_level=PriceLevel.MEDIUM,
        rating=4.4,
        review_count=48000,
        tags=frozenset({"gastronomia", "tapas", "familia", "vegetarian"}),
        opening_hours=_every_day("10:00", "23:59"),
        safety_rating=4.2,
        average_visit_duration=60,
    ),

    # === CULTURE ===
    Place(
        id="es-museum-1",
        name="Museo del Prado",
        category=PlaceCategory.MUSEUM,
        latitude=40.4138,
        longitude=-3.6921,
        price_level=PriceLevel.MEDIUM,
        rating=4.8,
        review_count=95000,
        tags=frozenset({"arte", "historia", "cultura"}),
        opening_hours=_every_day("10:00", "20:00"),
        safety_rating=4.8,
        average_visit_duration=180,
    ),
    Place(
        id="es-gallery-1",
        name="CaixaForum Madrid",
        category=PlaceCategory.GALLERY,
        latitude=40.4111,
        longitude=-3.6935,
        price_level=PriceLevel.LOW,
        rating=4.5,
        review_count=14000,
        tags=frozenset({"arte", "contemporaneo", "jardin vertical"}),
        opening_hours=_every_day("10:00", "20:00"),
        safety_rating=4.7,
        average_visit_duration=90,
    ),
    Place(
        id="es-theater-1",
        name="Teatro Real",
        category=PlaceCategory.THEATER,
        latitude=40.4184,
        longitude=-3.7101,
        price_level=PriceLevel.PREMIUM,
        rating=4.7,
        review_count=21000,
        tags=frozenset({"opera", "cultura", "pareja", "eventos"}),
        opening_hours=_weekdays_except("sunday", "10:00", "23:00"),
        safety_rating=4.7,
        average_visit_duration=150,
    ),
    Place(
        id="es-cultural-1",
        name="Matadero Madrid",
        category=PlaceCategory.CULTURAL_CENTER,
        latitude=40.3921,
        longitude=-3.6975,
        price_level=PriceLevel.LOW,
        rating=4.5,
        review_count=9800,
        tags=frozenset({"cultura", "eventos", "familia"}),
        opening_hours=_weekdays_except("monday", "09:00", "22:00"),
        safety_rating=4.2,
        average_visit_duration=90,
    ),

    # === HISTORY & LANDMARKS ===
    Place(
        id="es-monument-1",
        name="Puerta de Alcalá",
        category=PlaceCategory.MONUMENT,
        latitude=40.4200,
        longitude=-3.6887,
        price_level=PriceLevel.LOW,
        rating=4.6,
        review_count=30000,
        tags=frozenset({"historia", "foto"}),
        safety_rating=4.6,
        average_visit_duration=20,
    ),
    Place(
        id="es-church-1",
        name="Catedral de la Almudena",
        category=PlaceCategory.CHURCH,
        latitude=40.4157,
        longitude=-3.7144,
        price_level=PriceLevel.LOW,
        rating=4.6,
        review_count=27000,
        tags=frozenset({"historia", "arquitectura", "tranquilo"}),
        opening_hours=_every_day("10:00", "20:30"),
        safety_rating=4.5,
        average_visit_duration=45,
    ),
    Place(
        id="es-plaza-1",
        name="Plaza Mayor",
        category=PlaceCategory.PLAZA,
        latitude=40.4155,
        longitude=-3.7074,
        price_level=PriceLevel.LOW,
        rating=4.5,
        review_count=120000,
        tags=frozenset({"historia", "terraza", "familia"}),
        safety_rating=4.1,
        average_visit_duration=30,
    ),

    # === OUTDOORS ===
    Place(
        id="es-park-1",
        name="Parque del Retiro",
        category=PlaceCategory.PARK,
        latitude=40.4153,
        longitude=-3.6845,
        price_level=PriceLevel.LOW,
        rating=4.8,
        review_count=150000,
        tags=frozenset({"naturaleza", "familia", "ninos", "deportes", "relax"}),
        opening_hours=_every_day("06:00", "22:00"),
        safety_rating=4.6,
        average_visit_duration=120,
    ),
    Place(
        id="es-viewpoint-1",
        name="Templo de Debod",
        category=PlaceCategory.VIEWPOINT,
        latitude=40.4240,
        longitude=-3.7177,
        price_level=PriceLevel.LOW,
        rating=4.6,
        review_count=70000,
        tags=frozenset({"atardecer", "romantico", "naturaleza", "historia"}),
        safety_rating=3.9,
        average_visit_duration=40,
    ),

    # === SHOPPING ===
    Place(
        id="es-shop-1",
        name="El Rastro",
        category=PlaceCategory.SHOP,
        latitude=40.4087,
        longitude=-3.7075,
        price_level=PriceLevel.LOW,
        rating=4.3,
        review_count=36000,
        tags=frozenset({"compras", "mercadillo", "amigos"}),
        opening_hours={"sunday": DayHours("09:00", "15:00")},
        safety_rating=3.4,
        average_visit_duration=90,
    ),
]


def get_places_by_category(category: PlaceCategory) -> list[Place]:
    """Filter sample places by category."""
    return [p for p in SAMPLE_PLACES if p.category == category]


def get_all_places() -> list[Place]:
    """Get all sample places."""
    return SAMPLE_PLACES.copy()


if __name__ == "__main__":
    print(f"Total places: {len(SAMPLE_PLACES)}")
    for category in PlaceCategory:
        print(f"  {category.value}: {len(get_places_by_category(category))}")
