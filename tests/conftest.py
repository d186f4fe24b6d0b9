"""Pytest configuration and shared fixtures for the seo-local-pages test suite."""

import json

import pytest

from location_content import Location, Service


# ---------------------------------------------------------------------------
# Matrix fixtures
# ---------------------------------------------------------------------------

SERVICE_ROWS = [
    ("landscape-maintenance", "Landscape Maintenance"),
    ("landscaping", "Landscaping"),
    ("hardscaping", "Hardscaping"),
    ("landscape-lighting", "Landscape Lighting"),
    ("pool-service", "Pool Service"),
    ("commercial-services", "Commercial Services"),
    ("lawn-care", "Lawn Care"),
    ("seasonal-cleanup", "Seasonal Cleanup"),
    ("power-washing", "Power Washing"),
    ("fencing", "Fencing"),
    ("snow-removal", "Snow Removal"),
    ("tree-trimming", "Tree Trimming"),
    ("mulching", "Mulching"),
    ("irrigation", "Irrigation"),
    ("sod-installation", "Sod Installation"),
    ("aeration", "Aeration"),
    ("gutter-cleaning", "Gutter Cleaning"),
    ("pest-control", "Pest Control"),
    ("drainage-solutions", "Drainage Solutions"),
    ("outdoor-kitchens", "Outdoor Kitchens"),
]

TOWNS = [
    "Avalon",
    "Cape May",
    "Cape May Court House",
    "Dennis Township",
    "Lower Township",
    "Middle Township",
    "North Wildwood",
    "Ocean City",
    "Ocean View",
    "Rio Grande",
    "Sea Isle City",
    "Stone Harbor",
    "Strathmere",
    "Upper Township",
    "West Cape May",
    "Wildwood",
    "Wildwood Crest",
    "Woodbine",
    "Villas",
    "Diamond Beach",
]


@pytest.fixture
def services():
    """Twenty services: the ten with curated context lists plus ten without."""
    return [Service(slug=slug, title=title) for slug, title in SERVICE_ROWS]


@pytest.fixture
def locations():
    """Twenty Cape May County towns."""
    return [Location(slug=town.lower().replace(" ", "-"), town=town) for town in TOWNS]


@pytest.fixture
def lawn_care():
    return Service(slug="lawn-care", title="Lawn Care")


@pytest.fixture
def avalon():
    return Location(slug="avalon", town="Avalon")


# ---------------------------------------------------------------------------
# Dataset files
# ---------------------------------------------------------------------------

@pytest.fixture
def services_json(tmp_path):
    """Service records as a CMS-style JSON payload, including one bad row."""
    path = tmp_path / "services.json"
    payload = {
        "result": [
            {"slug": "lawn-care", "title": "Lawn Care", "description": "Our lawn service keeps yards healthy."},
            {"slug": "landscape-lighting", "title": "Landscape Lighting"},
            {"slug": "", "title": "Nameless"},
        ]
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def locations_csv(tmp_path):
    """Location records as CSV with geo columns."""
    path = tmp_path / "locations.csv"
    path.write_text(
        "slug,town,lat,lng\n"
        "avalon,Avalon,39.1012,-74.7177\n"
        "stone-harbor,Stone Harbor,39.0526,-74.7580\n"
        "north-wildwood,North Wildwood,,\n",
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# Rendered HTML fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_page_valid():
    """Rendered location page that passes every validation rule."""
    return """<!DOCTYPE html>
<html lang="en">
<head>
    <title>Professional Lawn Care in Avalon, NJ | Blue Lawns</title>
    <meta name="description" content="Lawn Care services in Avalon, NJ by Blue Lawns. Thick and green solutions for residential and commercial properties. Licensed &amp; insured.">
    <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "BreadcrumbList", "itemListElement": [
        {"@type": "ListItem", "position": 1, "name": "Home", "item": "https://www.bluelawns.com/"}
    ]}
    </script>
</head>
<body>
    <main>
        <h1>Professional Lawn Care in Avalon</h1>
        <h2>Frequently Asked Questions</h2>
        <p>Avalon homeowners trust Blue Lawns for expert lawn care.</p>
    </main>
</body>
</html>"""


@pytest.fixture
def sample_page_invalid():
    """Rendered page with a short title, no description, two H1s and broken JSON-LD."""
    return """<html>
<head>
    <title>Lawn Care</title>
    <script type="application/ld+json">{"@type": "FAQPage",</script>
    <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "BreadcrumbList", "itemListElement": [
        {"@type": "ListItem", "position": 1, "name": "Home", "item": "/"}
    ]}
    </script>
</head>
<body>
    <h1>Lawn Care</h1>
    <h1>Lawn Care Again</h1>
</body>
</html>"""
