"""Tests for the Trafikverket API client against canned responses."""

import httpx
import pytest

from tvweather.services.errors import (
    ApiError,
    MalformedResponseError,
    StationNotFoundError,
    TransportError,
)

from conftest import TOKEN, make_client, parse_query


class TestSearches:
    @pytest.mark.asyncio
    async def test_search_by_name_returns_ten(self):
        client = make_client()
        stations = await client.search_stations_by_name("Sto")
        assert len(stations) == 10
        for station in stations:
            assert station.id
            assert station.name.startswith("St")

    @pytest.mark.asyncio
    async def test_search_by_name_request(self):
        client = make_client()
        await client.search_stations_by_name("Sto")
        request = client._transport.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "text/xml"
        query = parse_query(request)
        assert query.find("FILTER/LIKE").get("value") == "^Sto"
        assert [e.text for e in query.iter("INCLUDE")] == ["Id", "Name", "Geometry.WGS84"]

    @pytest.mark.asyncio
    async def test_search_by_location_returns_eleven(self):
        client = make_client()
        stations = await client.search_stations_by_location(55.695530700000006, 13.0590207, "20000m")
        assert len(stations) == 11
        within = parse_query(client._transport.requests[0]).find("FILTER/WITHIN")
        assert within.get("value") == "13.0590207 55.695530700000006"
        assert within.get("radius") == "20000m"

    @pytest.mark.asyncio
    async def test_station_geometry(self):
        client = make_client()
        stations = await client.search_stations_by_location(55.69, 13.05, "20000m")
        lodde = stations[0]
        assert lodde.geometry.longitude == pytest.approx(13.0183)
        assert lodde.geometry.latitude == pytest.approx(55.7649)

    @pytest.mark.asyncio
    async def test_no_matches(self):
        client = make_client()
        assert await client.search_stations_by_name("Zzz") == []

    @pytest.mark.asyncio
    async def test_token_is_sent(self):
        client = make_client()
        await client.search_stations_by_name("Sto")
        body = client._transport.requests[0].content.decode()
        assert f'authenticationkey="{TOKEN}"' in body


class TestObservation:
    @pytest.mark.asyncio
    async def test_fetch_station_observation(self):
        client = make_client()
        point = await client.fetch_station_observation("1211")
        assert point.name == "Löddeköpinge"
        assert point.id == "1211"
        obs = point.observation
        assert obs.air_temperature == -2.4
        assert obs.surface_temperature == -1.1
        assert obs.relative_humidity == 87.1
        assert obs.wind_speed == 4.7
        assert obs.wind_direction == 225
        assert obs.wind_gust_speed == 8.3
        assert obs.rain_sum == 0
        assert obs.snow_sum_solid == 1.2
        assert obs.total_water_equivalent == 0.4
        assert obs.precipitation_type == "Lätt snöfall"
        assert obs.modified_time == "2024-01-15T09:12:31.456Z"
        assert point.raw["Observation"]["Wind"][0]["Height"] == 6

    @pytest.mark.asyncio
    async def test_observation_request_excludes_short_aggregates(self):
        client = make_client()
        await client.fetch_station_observation("1211")
        query = parse_query(client._transport.requests[0])
        assert query.find("FILTER/EQ").get("value") == "1211"
        assert [e.text for e in query.iter("EXCLUDE")] == [
            "Observation.Aggregated10minutes",
            "Observation.Aggregated5minutes",
        ]

    @pytest.mark.asyncio
    async def test_sparse_observation_defaults_to_zero(self):
        def handler(request):
            return httpx.Response(200, json={"RESPONSE": {"RESULT": [{"WeatherMeasurepoint": [
                {"Id": "9", "Name": "Sparse", "Observation": {"Air": {}}},
            ]}]}})

        point = await make_client(handler).fetch_station_observation("9")
        assert point.observation.air_temperature == 0
        assert point.observation.wind_direction == 0
        assert point.observation.precipitation_type is None
        assert point.geometry.longitude is None

    @pytest.mark.asyncio
    async def test_unknown_station(self):
        client = make_client()
        errors = []
        client.on("api_error", errors.append)
        with pytest.raises(StationNotFoundError):
            await client.fetch_station_observation("404")
        assert len(errors) == 1


class TestCameras:
    @pytest.mark.asyncio
    async def test_fetch_station_cameras(self):
        client = make_client()
        cameras = await client.fetch_station_cameras("Löddeköpinge")
        assert [c.has_full_size_photo for c in cameras] == [True, False]
        assert cameras[0].photo_url.endswith(".Jpeg")
        query = parse_query(client._transport.requests[0])
        assert query.get("objecttype") == "Camera"
        assert query.find("FILTER/LIKE").get("value") == "^Löddeköpinge"


class TestFailures:
    @pytest.mark.asyncio
    async def test_http_error_is_raised_and_published(self):
        client = make_client(lambda r: httpx.Response(500, text="Internal error"))
        seen = []
        client.on("api_error", seen.append)
        with pytest.raises(ApiError) as exc_info:
            await client.search_stations_by_name("Sto")
        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "Internal error"
        assert seen == [exc_info.value]

    @pytest.mark.asyncio
    async def test_every_listener_receives_the_error(self):
        client = make_client(lambda r: httpx.Response(401, text="denied"))
        first, second = [], []

        async def async_listener(error):
            second.append(error)

        client.on("api_error", first.append)
        client.on("api_error", async_listener)
        with pytest.raises(ApiError):
            await client.fetch_station_observation("1211")
        assert len(first) == 1
        assert len(second) == 1

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_mask_error(self):
        client = make_client(lambda r: httpx.Response(503, text="busy"))

        def broken(error):
            raise RuntimeError("listener bug")

        client.on("api_error", broken)
        with pytest.raises(ApiError):
            await client.search_stations_by_name("Sto")

    @pytest.mark.asyncio
    async def test_removed_listener(self):
        client = make_client(lambda r: httpx.Response(500))
        seen = []
        client.on("api_error", seen.append)
        client.off("api_error", seen.append)
        assert client.listener_count("api_error") == 0
        with pytest.raises(ApiError):
            await client.search_stations_by_name("Sto")
        assert seen == []

    @pytest.mark.asyncio
    async def test_malformed_json_keeps_raw_text(self):
        client = make_client(lambda r: httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(MalformedResponseError) as exc_info:
            await client.search_stations_by_name("Sto")
        assert exc_info.value.status_code == 200
        assert exc_info.value.body == "<html>maintenance</html>"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        seen = []
        client.on("api_error", seen.append)
        with pytest.raises(TransportError) as exc_info:
            await client.fetch_station_observation("1211")
        assert exc_info.value.kind == TransportError.TIMEOUT
        assert seen == [exc_info.value]

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("name resolution failed", request=request)

        with pytest.raises(TransportError) as exc_info:
            await make_client(handler).search_stations_by_name("Sto")
        assert exc_info.value.kind == TransportError.CONNECTION

    @pytest.mark.asyncio
    async def test_error_inside_envelope(self):
        def handler(request):
            return httpx.Response(200, json={"RESPONSE": {"RESULT": [
                {"ERROR": {"SOURCE": "Request", "MESSAGE": "Invalid authentication"}},
            ]}})

        with pytest.raises(ApiError) as exc_info:
            await make_client(handler).search_stations_by_name("Sto")
        assert exc_info.value.body == "Invalid authentication"
