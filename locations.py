"""
Static pickup hub registry.

The four hubs and the weekend dates meals can be dropped off are fixed for the
drive, so they live here rather than in the database. Both tables are built
once at import and exposed read-only.
"""
from datetime import date
from types import MappingProxyType
from typing import NamedTuple, Optional


class LocationInfo(NamedTuple):
    name: str
    address: str
    city: str
    full_address: str
    note: Optional[str] = None


LOCATIONS = MappingProxyType({
    "Portland": LocationInfo(
        name="Jantzen Beach Target",
        address="1555 N Tomahawk Island Dr",
        city="Portland, OR 97217",
        full_address="Jantzen Beach Target\n1555 N Tomahawk Island Dr\nPortland, OR 97217",
    ),
    "I5 Corridor": LocationInfo(
        name="I5 Corridor",
        address="Between Portland and Eugene",
        city="",
        full_address="Between Portland and Eugene",
        note="Message courier to set location",
    ),
    "Salem": LocationInfo(
        name="Public Service Building",
        address="255 Capitol St NE",
        city="Salem, OR 97310",
        full_address="Public Service Building\n255 Capitol St NE\nSalem, OR 97310",
    ),
    "Eugene": LocationInfo(
        name="Self Delivery",
        address="Will deliver my own meal",
        city="",
        full_address="Will deliver my own meal - no courier needed",
        note="No courier needed",
    ),
})

# Key order used for seeding and for grouping the public meal list
LOCATION_KEYS = tuple(LOCATIONS)
VALID_LOCATIONS = frozenset(LOCATION_KEYS)

# December 2025 weekends
ALLOWED_DATES = (
    date(2025, 12, 6),
    date(2025, 12, 7),
    date(2025, 12, 13),
    date(2025, 12, 14),
    date(2025, 12, 20),
    date(2025, 12, 21),
)


def get_location_info(location: str) -> Optional[LocationInfo]:
    return LOCATIONS.get(location)


def get_location_display_text(location: str) -> str:
    """One-line label, e.g. 'Public Service Building - 255 Capitol St NE, Salem, OR 97310'."""
    info = get_location_info(location)
    if not info:
        return location
    text = f"{info.name} - {info.address}"
    if info.city:
        text += f", {info.city}"
    if info.note:
        text += f" ({info.note})"
    return text


def get_location_address(location: str) -> str:
    info = get_location_info(location)
    if not info:
        return location
    return info.full_address
