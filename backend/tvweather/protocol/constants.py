"""Protocol constants for the Trafikverket open data API."""

from enum import Enum

# Request headers (the body is an XML query, the response is JSON)
CONTENT_TYPE = "text/xml"
ACCEPT = "*/*"

# Request timeout bounds (seconds)
DEFAULT_TIMEOUT = 5.0
MAX_TIMEOUT = 10.0


class ObjectType(str, Enum):
    """Provider object types queried by this integration."""
    WEATHER_MEASUREPOINT = "WeatherMeasurepoint"
    CAMERA = "Camera"


# Schema version per object type
SCHEMA_VERSIONS = {
    ObjectType.WEATHER_MEASUREPOINT: "2.1",
    ObjectType.CAMERA: "1",
}

# Fields returned by station searches
STATION_FIELDS = ["Id", "Name", "Geometry.WGS84"]

# High-frequency aggregates left out of observation requests
OBSERVATION_EXCLUDES = [
    "Observation.Aggregated10minutes",
    "Observation.Aggregated5minutes",
]

# Fields returned by camera lookups
CAMERA_FIELDS = ["Id", "Name", "PhotoUrl", "HasFullSizePhoto", "PhotoTime"]

# Full-size photo variant is selected with a query parameter
FULLSIZE_SUFFIX = "?type=fullsize"

# Event name published on every failed request
API_ERROR_EVENT = "api_error"
