import pytest

from ev_trip_planner.error_handling import CircuitBreaker
from ev_trip_planner.models import StationAmenities, StationRecord
from ev_trip_planner.services.station_aggregator import StationAggregator, matches_amenities

from conftest import FakeStationProvider, make_raw_station


def station_with(**amenities) -> StationRecord:
    return StationRecord(id=1, title="Test", latitude=0.0, longitude=0.0,
                         is_operational=True, amenities=StationAmenities(**amenities))


def route_polyline(n=10):
    return [(40.0 + i * 0.1, -74.0 + i * 0.1) for i in range(n)]


class TestAmenityMatching:
    def test_empty_preferences_match_everything(self):
        assert matches_amenities(station_with(), [])

    def test_any_preference_is_enough(self):
        station = station_with(wifi=True)
        assert matches_amenities(station, ["restrooms", "wifi"])
        assert not matches_amenities(station, ["restrooms", "shopping"])

    def test_food_maps_to_food_nearby(self):
        assert matches_amenities(station_with(food_nearby=True), ["food"])
        assert not matches_amenities(station_with(restrooms=True), ["food"])

    def test_unknown_preference_is_satisfied(self):
        assert matches_amenities(station_with(), ["valet_parking"])

    def test_preferences_are_case_insensitive(self):
        assert matches_amenities(station_with(restrooms=True), ["Restrooms"])


class TestStationProcessing:
    """Normalisation of raw provider records"""

    def test_provider_fields(self, aggregator):
        record = aggregator.process_station(make_raw_station(7, 1.25, power_kw=150), (40.0, -74.0))

        assert record.id == 7
        assert record.title == "Station 7"
        assert record.address == "7 Main St, Springfield, IL, 62701"
        assert record.city == "Springfield"
        assert record.country == "United States"
        assert record.distance_miles == 1.25
        assert record.power_kw == 150
        assert record.connection_type == "CCS"
        assert record.is_fast_charge is True
        assert record.quantity == 1
        assert record.total_ports == 3
        assert record.network == "ChargeNet"
        assert record.operator == "ChargeNet"
        assert record.website == "https://chargenet.example"
        assert record.is_operational is True

    def test_synthetic_annotations_within_bounds(self, aggregator):
        for i in range(25):
            record = aggregator.process_station(make_raw_station(i, 1.0, power_kw=150), (40.0, -74.0))

            assert 0 <= record.available_ports <= record.total_ports
            if record.available_ports == 0:
                assert 5 <= record.estimated_wait_minutes < 35
            else:
                assert record.estimated_wait_minutes is None
            assert 0.10 <= record.pricing.per_kwh <= 0.40
            assert record.pricing.per_minute is not None
            assert record.pricing.currency == "USD"
            assert 3.0 <= record.reviews.average_rating <= 5.0
            assert 5 <= record.reviews.total_reviews <= 54
            assert len(record.reviews.recent_reviews) == 3
            assert all(r.rating in (4, 5) for r in record.reviews.recent_reviews)
            assert 20 <= record.environmental_impact.co2_saved_kg <= 70
            assert 30 <= record.environmental_impact.renewable_percentage <= 70

    def test_slow_chargers_have_no_per_minute_price(self, aggregator):
        record = aggregator.process_station(make_raw_station(1, 1.0, power_kw=22), (40.0, -74.0))
        assert record.pricing.per_minute is None

    def test_distance_computed_when_provider_omits_it(self, aggregator):
        raw = make_raw_station(1, 0.0, lat=41.0, lon=-74.0)
        del raw["AddressInfo"]["Distance"]
        record = aggregator.process_station(raw, (40.0, -74.0))
        # one degree of latitude is ~69 miles
        assert record.distance_miles == pytest.approx(69.1, abs=0.2)

    def test_same_seed_gives_same_annotations(self, station_provider):
        import random
        first = StationAggregator(provider=station_provider, rng=random.Random(3))
        second = StationAggregator(provider=station_provider, rng=random.Random(3))
        a = first.process_station(make_raw_station(1, 1.0), (40.0, -74.0))
        b = second.process_station(make_raw_station(1, 1.0), (40.0, -74.0))
        assert a.amenities == b.amenities
        assert a.pricing == b.pricing


@pytest.mark.asyncio
class TestFindNear:
    """Point lookups: filtering, ordering, caching and degradation"""

    async def test_filters_non_operational_and_sorts_by_distance(self, aggregator):
        stations = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert [s.id for s in stations] == [1, 3]
        assert all(s.is_operational for s in stations)

    async def test_uses_configured_defaults(self, station_provider, clock, rng):
        aggregator = StationAggregator(provider=station_provider, clock=clock, rng=rng,
                                       default_radius_miles=6.2, default_max_results=50)
        await aggregator.find_near(40.0, -74.0)
        assert station_provider.calls == [(40.0, -74.0, 6.2, 50)]

    async def test_max_results_truncates(self, aggregator):
        stations = await aggregator.find_near(40.0, -74.0, 5.0, 1)
        assert [s.id for s in stations] == [1]

    async def test_cached_within_ttl(self, aggregator, station_provider, clock):
        first = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        clock.advance(299)
        second = await aggregator.find_near(40.0, -74.0, 5.0, 50)

        assert len(station_provider.calls) == 1
        assert [s.id for s in first] == [s.id for s in second]
        assert first[0].pricing == second[0].pricing

        clock.advance(2)
        await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert len(station_provider.calls) == 2

    async def test_cache_key_is_not_rounded(self, aggregator, station_provider):
        await aggregator.find_near(40.0, -74.0, 5.0, 50)
        await aggregator.find_near(40.0001, -74.0, 5.0, 50)
        await aggregator.find_near(40.0, -74.0, 10.0, 50)
        assert len(station_provider.calls) == 3

    async def test_amenity_filter_applies_to_cached_results(self, aggregator, station_provider):
        everything = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        with_wifi = await aggregator.find_near(40.0, -74.0, 5.0, 50, ["wifi"])

        assert len(station_provider.calls) == 1
        assert [s.id for s in with_wifi] == [s.id for s in everything if s.amenities.wifi]

    async def test_returned_records_are_copies(self, aggregator):
        first = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        first[0].title = "changed"
        second = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert second[0].title == "Station 1"

    async def test_provider_error_degrades_and_is_not_cached(self, clock, rng):
        provider = FakeStationProvider(records=[make_raw_station(1, 1.0)], failing_points=[(40.0, -74.0)])
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)

        assert await aggregator.find_near(40.0, -74.0, 5.0, 50) == []

        provider.failing_points.clear()
        stations = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert [s.id for s in stations] == [1]
        assert len(provider.calls) == 2

    async def test_malformed_records_are_skipped(self, clock, rng):
        provider = FakeStationProvider(records=[{"ID": 9}, make_raw_station(1, 1.0)])
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)
        stations = await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert [s.id for s in stations] == [1]

    async def test_demo_mode_never_calls_provider(self, rng):
        aggregator = StationAggregator(provider=None, rng=rng)
        assert aggregator.demo_mode
        assert await aggregator.find_near(40.0, -74.0, 5.0, 50) == []
        assert await aggregator.find_along_route(route_polyline()) == []

    async def test_open_circuit_skips_provider(self, clock, rng):
        provider = FakeStationProvider(failing_points=[(1.0, 1.0), (2.0, 2.0)])
        breaker = CircuitBreaker("stations", failure_threshold=2, recovery_timeout=60, clock=clock)
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng, circuit_breaker=breaker)

        await aggregator.find_near(1.0, 1.0, 5.0, 50)
        await aggregator.find_near(2.0, 2.0, 5.0, 50)
        assert await aggregator.find_near(3.0, 3.0, 5.0, 50) == []
        assert len(provider.calls) == 2

    async def test_clear_cache(self, aggregator, station_provider):
        await aggregator.find_near(40.0, -74.0, 5.0, 50)
        aggregator.clear_cache()
        await aggregator.find_near(40.0, -74.0, 5.0, 50)
        assert len(station_provider.calls) == 2


@pytest.mark.asyncio
class TestFindAlongRoute:
    """Polyline sampling, deduplication and partial failure"""

    async def test_samples_five_points_with_route_limit(self, clock, rng):
        provider = FakeStationProvider()
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)
        polyline = route_polyline(10)

        await aggregator.find_along_route(polyline, 5.0)

        queried = sorted((lat, lon) for lat, lon, _, _ in provider.calls)
        assert queried == [polyline[i] for i in (0, 2, 4, 6, 8)]
        assert all(max_results == 20 for _, _, _, max_results in provider.calls)

    async def test_short_polyline_uses_every_point(self, clock, rng):
        provider = FakeStationProvider()
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)
        await aggregator.find_along_route(route_polyline(3), 5.0)
        assert len(provider.calls) == 3

    async def test_empty_polyline(self, aggregator, station_provider):
        assert await aggregator.find_along_route([], 5.0) == []
        assert station_provider.calls == []

    async def test_deduplicates_by_station_id(self, clock, rng):
        polyline = route_polyline(10)
        provider = FakeStationProvider(by_point={
            polyline[0]: [make_raw_station(1, 1.0), make_raw_station(2, 3.0)],
            polyline[2]: [make_raw_station(2, 0.5), make_raw_station(4, 2.0)],
        })
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)

        stations = await aggregator.find_along_route(polyline, 5.0)

        assert [s.id for s in stations] == [2, 1, 4]
        assert [s.distance_miles for s in stations] == [0.5, 1.0, 2.0]

    async def test_one_failing_point_keeps_the_rest(self, clock, rng):
        polyline = route_polyline(10)
        provider = FakeStationProvider(
            by_point={polyline[2]: [make_raw_station(4, 2.0)]},
            failing_points=[polyline[0]],
        )
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)

        stations = await aggregator.find_along_route(polyline, 5.0)
        assert [s.id for s in stations] == [4]

    async def test_amenity_preferences_are_forwarded(self, clock, rng):
        polyline = route_polyline(5)
        provider = FakeStationProvider(records=[make_raw_station(i, float(i)) for i in range(1, 8)])
        aggregator = StationAggregator(provider=provider, clock=clock, rng=rng)

        stations = await aggregator.find_along_route(polyline, 5.0, ["restrooms"])
        assert all(s.amenities.restrooms for s in stations)
