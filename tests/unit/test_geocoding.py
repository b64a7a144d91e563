"""Unit tests for geocoding: the Nominatim adapter and the tiered resolver.

Tests cover:
1. Nominatim request shape and response parsing (httpx.MockTransport)
2. Nominatim failures degrade to None
3. Resolver tier order (exact city before API, API before partial match)
4. Idempotence: a repeated lookup makes no further network calls
5. Bounded in-process state: key locks and the memory tier
6. Persistent cache write-through and read
7. Deterministic display offsets
"""

import httpx
import pytest

from tripcore.adapters.nominatim import NominatimClient
from tripcore.cache.ttl import InMemoryTTLCache
from tripcore.geocoding.resolver import GeocodeRequest, GeocodingResolver, apply_offset, hint_hash
from tripcore.models.common import Coordinate
from tripcore.tools.executor import ExternalCallExecutor


class FakeGeocoder:
    """Records queries and answers from a fixed table."""

    def __init__(self, answers: dict[str, Coordinate] | None = None) -> None:
        self.answers = answers or {}
        self.queries: list[str] = []

    async def search(self, query: str) -> Coordinate | None:
        self.queries.append(query)
        return self.answers.get(query)


class TestNominatimClient:
    """Test the Nominatim adapter against a mock transport."""

    @pytest.mark.asyncio
    async def test_parses_first_result(self, fast_executor: ExternalCallExecutor) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"lat": "38.6916", "lon": "-9.2160"}, {"lat": "0", "lon": "0"}])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        nominatim = NominatimClient(
            base_url="https://geo.test/",
            user_agent="tripcore-tests",
            client=client,
            executor=fast_executor,
        )

        coords = await nominatim.search("Belem Tower")

        assert coords == Coordinate(latitude=38.6916, longitude=-9.2160)
        assert nominatim.calls == 1
        request = seen[0]
        assert request.url.path == "/search"
        assert request.url.params["q"] == "Belem Tower"
        assert request.url.params["limit"] == "1"
        assert request.headers["User-Agent"] == "tripcore-tests"

    @pytest.mark.asyncio
    async def test_empty_result_is_none(self, fast_executor: ExternalCallExecutor) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
        nominatim = NominatimClient(client=client, executor=fast_executor)

        assert await nominatim.search("Nowhere At All") is None

    @pytest.mark.asyncio
    async def test_http_error_is_none(self, fast_executor: ExternalCallExecutor) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        nominatim = NominatimClient(client=client, executor=fast_executor)

        assert await nominatim.search("Lisbon") is None

    @pytest.mark.asyncio
    async def test_malformed_result_is_none(self, fast_executor: ExternalCallExecutor) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[{"display_name": "x"}]))
        )
        nominatim = NominatimClient(client=client, executor=fast_executor)

        assert await nominatim.search("Lisbon") is None

    @pytest.mark.asyncio
    async def test_blank_query_skips_network(self, fast_executor: ExternalCallExecutor) -> None:
        nominatim = NominatimClient(executor=fast_executor)

        assert await nominatim.search("   ") is None
        assert nominatim.calls == 0


class TestOffsets:
    """Test deterministic display offsets."""

    def test_hint_hash_is_signed_32_bit(self) -> None:
        assert hint_hash("") == 0
        assert hint_hash("a") == 97
        assert -(2**31) <= hint_hash("a very long hint string " * 20) < 2**31

    def test_offset_is_deterministic_and_small(self) -> None:
        base = Coordinate(latitude=48.8566, longitude=2.3522)

        first = apply_offset(base, "Louvre|10:00|1")
        second = apply_offset(base, "Louvre|10:00|1")

        assert first == second
        assert abs(first.latitude - base.latitude) <= 0.0101
        assert abs(first.longitude - base.longitude) <= 0.0101

    def test_offset_clamps_to_valid_range(self) -> None:
        shifted = apply_offset(Coordinate(latitude=90, longitude=180), "edge")
        assert -90 <= shifted.latitude <= 90
        assert -180 <= shifted.longitude <= 180


class TestGeocodingResolver:
    """Test tier order, caching and fallbacks."""

    @pytest.mark.asyncio
    async def test_exact_city_skips_api(self) -> None:
        geocoder = FakeGeocoder()
        resolver = GeocodingResolver(client=geocoder)

        coords = await resolver.resolve("  Paris ", jitter=False)

        assert coords == Coordinate(latitude=48.8566, longitude=2.3522)
        assert geocoder.queries == []

    @pytest.mark.asyncio
    async def test_api_answers_before_partial_match(self) -> None:
        caves = Coordinate(latitude=18.2800, longitude=83.0380)
        geocoder = FakeGeocoder({"Borra Caves, Visakhapatnam": caves})
        resolver = GeocodingResolver(client=geocoder)

        coords = await resolver.resolve("Borra Caves, Visakhapatnam", jitter=False)

        assert coords == caves

    @pytest.mark.asyncio
    async def test_api_with_city_context(self) -> None:
        fort = Coordinate(latitude=26.9855, longitude=75.8513)
        geocoder = FakeGeocoder({"Amber Fort, Jaipur": fort})
        resolver = GeocodingResolver(client=geocoder)

        coords = await resolver.resolve("Amber Fort", city_context="Jaipur", jitter=False)

        assert coords == fort
        assert geocoder.queries == ["Amber Fort", "Amber Fort, Jaipur"]

    @pytest.mark.asyncio
    async def test_partial_city_when_api_misses(self) -> None:
        resolver = GeocodingResolver(client=FakeGeocoder())

        coords = await resolver.resolve("Old Quarter of Lisbon", jitter=False)

        assert coords == Coordinate(latitude=38.7223, longitude=-9.1393)

    @pytest.mark.asyncio
    async def test_city_context_is_last_resort(self) -> None:
        resolver = GeocodingResolver(client=FakeGeocoder())

        coords = await resolver.resolve("Unnamed Alley Cafe", city_context="Prague", jitter=False)

        assert coords == Coordinate(latitude=50.0755, longitude=14.4378)

    @pytest.mark.asyncio
    async def test_unresolvable_returns_none(self) -> None:
        resolver = GeocodingResolver(client=FakeGeocoder())

        assert await resolver.resolve("Zzyzx Qwv", jitter=False) is None
        assert await resolver.resolve("") is None

    @pytest.mark.asyncio
    async def test_repeat_lookup_hits_memory(self) -> None:
        spot = Coordinate(latitude=10.0, longitude=20.0)
        geocoder = FakeGeocoder({"Hidden Spring": spot})
        resolver = GeocodingResolver(client=geocoder)

        first = await resolver.resolve("Hidden Spring", hint="h")
        second = await resolver.resolve("hidden   spring", hint="h")

        assert first == second
        assert geocoder.queries == ["Hidden Spring"]

    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_one_network_call(self) -> None:
        spot = Coordinate(latitude=10.0, longitude=20.0)
        geocoder = FakeGeocoder({"Hidden Spring": spot})
        resolver = GeocodingResolver(client=geocoder)

        requests = [GeocodeRequest(place_name="Hidden Spring", hint=str(i)) for i in range(5)]
        results = await resolver.resolve_many(requests)

        assert all(r is not None for r in results)
        assert geocoder.queries == ["Hidden Spring"]

    @pytest.mark.asyncio
    async def test_key_locks_released_after_lookups(self) -> None:
        geocoder = FakeGeocoder({"Hidden Spring": Coordinate(latitude=10.0, longitude=20.0)})
        resolver = GeocodingResolver(client=geocoder)

        names = ["Hidden Spring", "Hidden Spring", "Zzyzx Qwv", "Old Mill"]
        await resolver.resolve_many([GeocodeRequest(place_name=n, city_context="Prague") for n in names])

        assert resolver._locks == {}

    @pytest.mark.asyncio
    async def test_memory_evicts_least_recently_used(self) -> None:
        geocoder = FakeGeocoder({name: Coordinate(latitude=1.0, longitude=0.0) for name in ["Aa", "Bb", "Cc"]})
        resolver = GeocodingResolver(client=geocoder, memory_max_entries=2)

        for name in ["Aa", "Bb", "Aa", "Cc", "Aa", "Bb"]:
            await resolver.resolve(name, jitter=False)

        # Bb was evicted when Cc arrived; Aa stayed warm
        assert geocoder.queries == ["Aa", "Bb", "Cc", "Bb"]

    @pytest.mark.asyncio
    async def test_persistent_cache_write_through(self) -> None:
        spot = Coordinate(latitude=10.0, longitude=20.0)
        cache = InMemoryTTLCache()
        geocoder = FakeGeocoder({"Hidden Spring": spot})

        await GeocodingResolver(client=geocoder, persistent_cache=cache, ttl_days=1).resolve("Hidden Spring")
        assert await cache.get("geo:hidden spring") == {"latitude": 10.0, "longitude": 20.0}

        fresh_geocoder = FakeGeocoder()
        fresh = GeocodingResolver(client=fresh_geocoder, persistent_cache=cache, ttl_days=1)
        coords = await fresh.resolve("Hidden Spring", jitter=False)

        assert coords == spot
        assert fresh_geocoder.queries == []

    @pytest.mark.asyncio
    async def test_jitter_differs_by_hint(self) -> None:
        resolver = GeocodingResolver()

        a = await resolver.resolve("Rome", hint="Colosseum|09:00|0")
        b = await resolver.resolve("Rome", hint="Pantheon|11:00|1")

        assert a is not None and b is not None
        assert a == apply_offset(Coordinate(latitude=41.9028, longitude=12.4964), "Colosseum|09:00|0")
        assert b == apply_offset(Coordinate(latitude=41.9028, longitude=12.4964), "Pantheon|11:00|1")
