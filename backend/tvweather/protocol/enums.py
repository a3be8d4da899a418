"""Decoders for the provider's Swedish textual enumerations.

Values map onto translation keys. Anything not in the tables decodes to
``UNKNOWN(<value>)`` so new provider values never break a poll.
"""

import re

PRECIPITATION_NAMES: dict[str, str] = {
    "Givare saknas/Fel på givare": "precipitation.error",
    "Lätt regn": "precipitation.light_rain",
    "Måttligt regn": "precipitation.moderate_rain",
    "Kraftigt regn": "precipitation.heavy_rain",
    "Lätt snöblandat regn": "precipitation.light_snow_rain",
    "Måttligt snöblandat regn": "precipitation.moderate_snow_rain",
    "Kraftigt snöblandat regn": "precipitation.heavy_snow_rain",
    "Lätt snöfall": "precipitation.light_snow",
    "Måttligt snöfall": "precipitation.moderate_snow",
    "Kraftigt snöfall": "precipitation.heavy_snow",
    "Annan nederbördstyp": "precipitation.other",
    "Ingen nederbörd": "precipitation.none",
    "Okänd nederbördstyp": "precipitation.unknown",
}

WIND_DIRECTIONS: dict[str, str] = {
    "Norr": "wind.north",
    "Nordnordöst": "wind.north_north_east",
    "Nordöst": "wind.north_east",
    "Östnordöst": "wind.east_north_east",
    "Öst": "wind.east",
    "Östsydöst": "wind.east_south_east",
    "Sydöst": "wind.south_east",
    "Sydsydöst": "wind.south_south_east",
    "Söder": "wind.south",
    "Sydsydväst": "wind.south_south_west",
    "Sydväst": "wind.south_west",
    "Västsydväst": "wind.west_south_west",
    "Väst": "wind.west",
    "Västnordväst": "wind.west_north_west",
    "Nordväst": "wind.north_west",
    "Nordnordväst": "wind.north_north_west",
}

_SENTINEL = re.compile(r"^UNKNOWN\(.*\)$", re.DOTALL)


def unknown(value: object) -> str:
    text = str(value)
    if _SENTINEL.match(text):
        return text
    return f"UNKNOWN({text})"


def decode(table: dict[str, str], value: object) -> str:
    """Look up a provider value, falling back to the UNKNOWN sentinel."""
    if isinstance(value, str) and value in table:
        return table[value]
    return unknown(value)


def decode_precipitation_name(name: object) -> str:
    return decode(PRECIPITATION_NAMES, name)


def decode_wind_direction(name: object) -> str:
    return decode(WIND_DIRECTIONS, name)
