"""Tests for the unit cache and the deduplicating loader."""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from pa_pedia.cache import UnitCache
from pa_pedia.errors import TransientFetchError, UnitNotFoundError
from pa_pedia.loader import UnitLoader

from conftest import FakeService, make_entry, make_unit


class TestUnitCache:
    def test_put_get(self, tank):
        cache = UnitCache()
        cache.put("MLA:tank", tank)
        assert cache.get("MLA:tank") is tank
        assert "MLA:tank" in cache
        assert cache.get("MLA:bot") is None
        assert len(cache) == 1

    def test_evict_faction(self, tank, bot):
        cache = UnitCache()
        cache.put("MLA:tank", tank)
        cache.put("MLA:bot@1.0", bot)
        cache.put("MLAX:tank", tank)
        assert cache.evict_faction("MLA") == 2
        assert list(cache) == ["MLAX:tank"]

    def test_clear(self, tank):
        cache = UnitCache()
        cache.put("MLA:tank", tank)
        cache.clear()
        assert len(cache) == 0


class TestLoadUnit:
    def test_loads_and_caches(self, fake_service, tank):
        loader = UnitLoader(fake_service)

        async def run():
            first = await loader.load_unit("MLA", "tank")
            second = await loader.load_unit("MLA", "tank")
            return first, second

        first, second = asyncio.run(run())
        assert first is tank and second is tank
        assert fake_service.calls == {"MLA:tank": 1}
        assert loader.get_unit("MLA:tank") is tank

    def test_concurrent_requests_share_one_fetch(self, fake_service):
        fake_service.delay = 0.01
        loader = UnitLoader(fake_service)

        async def run():
            return await asyncio.gather(*[loader.load_unit("MLA", "tank") for _ in range(5)])

        units = asyncio.run(run())
        assert len({id(u) for u in units}) == 1
        assert fake_service.calls["MLA:tank"] == 1
        assert not loader.in_flight("MLA:tank")

    def test_versions_are_separate_keys(self, fake_service, tank):
        fake_service.add("MLA", tank, version="1.0.0")
        loader = UnitLoader(fake_service)

        async def run():
            await loader.load_unit("MLA", "tank")
            await loader.load_unit("MLA", "tank", "1.0.0")

        asyncio.run(run())
        assert fake_service.calls == {"MLA:tank": 1, "MLA:tank@1.0.0": 1}

    def test_failure_propagates_and_is_not_cached(self, fake_service):
        fake_service.failures["MLA:tank"] = TransientFetchError("disk busy")
        loader = UnitLoader(fake_service)

        async def run():
            with pytest.raises(TransientFetchError):
                await loader.load_unit("MLA", "tank")
            del fake_service.failures["MLA:tank"]
            return await loader.load_unit("MLA", "tank")

        unit = asyncio.run(run())
        assert unit.id == "tank"
        assert fake_service.calls["MLA:tank"] == 2

    def test_not_found(self, fake_service):
        loader = UnitLoader(fake_service)
        with pytest.raises(UnitNotFoundError):
            asyncio.run(loader.load_unit("MLA", "ghost"))
        assert loader.get_unit("MLA:ghost") is None

    def test_cancelled_waiter_does_not_cancel_fetch(self, fake_service, tank):
        loader = UnitLoader(fake_service)

        async def run():
            gate = asyncio.Event()
            fake_service.gates["MLA:tank"] = gate
            waiter = asyncio.create_task(loader.load_unit("MLA", "tank"))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            assert loader.in_flight("MLA:tank")

            gate.set()
            # A new waiter joins the same fetch
            return await loader.load_unit("MLA", "tank")

        unit = asyncio.run(run())
        assert unit is tank
        assert fake_service.calls["MLA:tank"] == 1
        assert loader.get_unit("MLA:tank") is tank


class TestLoadFaction:
    def test_primes_cache(self, tank, bot):
        service = FakeService()
        service.factions["MLA"] = [make_entry(tank), make_entry(bot)]
        loader = UnitLoader(service)

        entries = asyncio.run(loader.load_faction("MLA"))
        assert [e.identifier for e in entries] == ["tank", "bot"]
        assert loader.get_unit("MLA:tank") is tank
        assert loader.get_unit("MLA:bot") is bot
        assert "MLA" in loader.faction_indexes

        # Primed units never reach resolve_unit
        assert asyncio.run(loader.load_unit("MLA", "tank")) is tank
        assert service.calls == {}

    def test_concurrent_loads_are_deduplicated(self, tank):
        calls = []

        class CountingService(FakeService):
            async def list_units(self, faction_id, version=None):
                calls.append(faction_id)
                await asyncio.sleep(0.01)
                return await super().list_units(faction_id, version)

        service = CountingService()
        service.factions["MLA"] = [make_entry(tank)]
        loader = UnitLoader(service)

        async def run():
            await asyncio.gather(loader.load_faction("MLA"), loader.load_faction("MLA"))

        asyncio.run(run())
        assert calls == ["MLA"]

    def test_error_is_recorded(self):
        loader = UnitLoader(FakeService())
        with pytest.raises(UnitNotFoundError):
            asyncio.run(loader.load_faction("Nope"))
        assert isinstance(loader.faction_errors["Nope"], UnitNotFoundError)

    def test_entries_without_unit_are_not_cached(self):
        service = FakeService()
        partial = make_entry(make_unit("partial"))
        partial.unit = None
        service.factions["MLA"] = [partial]
        loader = UnitLoader(service)
        asyncio.run(loader.load_faction("MLA"))
        assert len(loader.cache) == 0

    def test_evict_faction(self, tank):
        service = FakeService()
        service.factions["MLA"] = [make_entry(tank)]
        loader = UnitLoader(service)
        asyncio.run(loader.load_faction("MLA"))
        loader.evict_faction("MLA")
        assert loader.get_unit("MLA:tank") is None
        assert "MLA" not in loader.faction_indexes
