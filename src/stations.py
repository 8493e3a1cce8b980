# ABOUTME: Static station lookup tables: manual coordinate corrections and ICAO country prefixes.
# ABOUTME: Patches known-bad upstream coordinates and maps station identifiers to countries.

from types import MappingProxyType

from src.models import Observation

# Upstream metadata for these stations is missing or wrong; these values win.
MANUAL_COORDS = MappingProxyType(
    {
        "OERS": (25.6283, 37.0889),  # Red Sea / Hanak
        "OEMN": (21.4133, 39.8933),  # Mina
        "OEAR": (21.3547, 39.9839),  # Arafat
        "OESB": (22.5141, 53.9642),  # Shaybah
        "OEAH": (25.2853, 49.4852),  # Al Ahsa
        "OEPS": (24.0627, 47.5805),  # Prince Sultan Air Base
        "OEKK": (27.9009, 45.5282),  # King Khalid Military City
        "OERY": (24.7098, 46.7252),  # Riyadh Air Base
        "OEJB": (27.0390, 49.4051),  # Jubail
        "OEDM": (24.4499, 44.1212),  # Dawadmi
    }
)

COUNTRY_MAP = MappingProxyType(
    {
        "OE": "Saudi Arabia",
        "OI": "Iran",
        "OR": "Iraq",
        "OJ": "Jordan",
        "OK": "Kuwait",
        "OB": "Bahrain",
        "OT": "Qatar",
        "OM": "UAE",
        "OO": "Oman",
        "OL": "Lebanon",
        "OS": "Syria",
        "OY": "Yemen",
    }
)

COUNTRIES_ORDER = (
    "Saudi Arabia",
    "Kuwait",
    "Bahrain",
    "Qatar",
    "UAE",
    "Oman",
    "Yemen",
    "Jordan",
    "Iraq",
    "Syria",
    "Lebanon",
    "Iran",
)

PRIMARY_COUNTRY = "Saudi Arabia"

UNKNOWN_COUNTRY = "Unknown"


def patch_coordinates(obs: Observation) -> Observation:
    """Return the observation with table coordinates applied when its station is listed."""
    coords = MANUAL_COORDS.get(obs.station)
    if coords is None:
        return obs
    lat, lon = coords
    return obs.model_copy(update={"lat": lat, "lon": lon})


def country_for_station(station: str | None) -> str:
    """Map a station identifier to a country by its two-letter ICAO prefix."""
    if not station or len(station) < 2:
        return UNKNOWN_COUNTRY
    return COUNTRY_MAP.get(station[:2].upper(), UNKNOWN_COUNTRY)
